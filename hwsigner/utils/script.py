"""Script construction helpers for hwsigner."""

import struct

from ..constants import Network
from ..exceptions import SerializationError
from ..utils.encoding import decode_address

__all__ = [
    "OP_DUP",
    "OP_HASH160",
    "OP_EQUAL",
    "OP_EQUALVERIFY",
    "OP_CHECKSIG",
    "push_data",
    "address_to_script",
    "build_script_sig",
]

OP_0 = 0x00
OP_1 = 0x51
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xa9
OP_CHECKSIG = 0xac


def push_data(data: bytes) -> bytes:
    """Return the minimal push of ``data``."""
    length = len(data)
    if length <= 75:
        return bytes([length]) + data
    elif length <= 0xff:
        return bytes([0x4c, length]) + data  # OP_PUSHDATA1
    elif length <= 0xffff:
        return b"\x4d" + struct.pack("<H", length) + data  # OP_PUSHDATA2
    else:
        return b"\x4e" + struct.pack("<I", length) + data  # OP_PUSHDATA4


def address_to_script(address: str, network: Network = Network.MAINNET) -> bytes:
    """
    Build the output script paying to ``address``.

    Args:
        address: P2PKH, P2SH, P2WPKH, P2WSH or P2TR address
        network: Network the address must belong to

    Returns:
        scriptPubKey bytes

    Raises:
        ValidationError: If the address is invalid for ``network``
    """
    address_type, program = decode_address(address, network)

    if address_type == "p2pkh":
        return bytes([OP_DUP, OP_HASH160]) + push_data(program) + bytes([OP_EQUALVERIFY, OP_CHECKSIG])
    if address_type == "p2sh":
        return bytes([OP_HASH160]) + push_data(program) + bytes([OP_EQUAL])
    if address_type == "p2tr":
        return bytes([OP_1]) + push_data(program)
    # p2wpkh / p2wsh
    return bytes([OP_0]) + push_data(program)


def build_script_sig(signature: bytes, public_key: bytes) -> bytes:
    """
    Build a pay-to-pubkey-hash scriptSig: ``<signature> <public key>``.

    ``signature`` already ends with its sighash type byte.

    Raises:
        SerializationError: If either element needs more than a direct push
    """
    if len(signature) > 75 or len(public_key) > 75:
        raise SerializationError("scriptSig elements must fit a direct push")
    return push_data(signature) + push_data(public_key)
