"""Network profiles and protocol constants for hwsigner."""

from enum import Enum

__all__ = [
    "Network",
    "ADDRESS_PREFIXES",
    "BECH32_HRP",
    "TRANSACTION_VERSION",
    "DEFAULT_SEQUENCE",
    "DEFAULT_LOCKTIME",
    "SIGHASH_ALL",
    "MAX_SUPPLY",
    "MAX_SCRIPT_SIZE",
    "SECP256K1_ORDER",
    "HARDENED_OFFSET",
    "PROGRESS_STEPS",
]


class Network(str, Enum):
    """Supported Bitcoin networks."""

    MAINNET = "mainnet"
    TESTNET = "testnet"
    REGTEST = "regtest"


# Base58Check version bytes
ADDRESS_PREFIXES = {
    "p2pkh": {
        Network.MAINNET: b"\x00",
        Network.TESTNET: b"\x6f",
        Network.REGTEST: b"\x6f",
    },
    "p2sh": {
        Network.MAINNET: b"\x05",
        Network.TESTNET: b"\xc4",
        Network.REGTEST: b"\xc4",
    },
}

BECH32_HRP = {
    Network.MAINNET: "bc",
    Network.TESTNET: "tb",
    Network.REGTEST: "bcrt",
}

# Transaction layout
TRANSACTION_VERSION = 1
DEFAULT_SEQUENCE = 0xFFFFFFFF
DEFAULT_LOCKTIME = 0
SIGHASH_ALL = 0x01

# Limits
MAX_SUPPLY = 21_000_000 * 100_000_000
MAX_SCRIPT_SIZE = 10_000

# secp256k1
SECP256K1_ORDER = 0xFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFFEBAAEDCE6AF48A03BBFD25E8CD0364141

# BIP32
HARDENED_OFFSET = 0x80000000

# One notification per pipeline phase
PROGRESS_STEPS = 5
