from unittest.mock import AsyncMock

import pytest
from coincurve import PrivateKey as SecpPrivateKey

from hwsigner.builder import TransactionBuilder
from hwsigner.constants import Network
from hwsigner.crypto.signature import encode_der_signature
from hwsigner.device.base import DeviceSigningPort
from hwsigner.types import FinalizeResult, TrustedInput, Utxo
from hwsigner.utils.encoding import encode_address

GENESIS_ADDRESS = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
CHANGE_ADDRESS = encode_address("p2pkh", b"\x22" * 20, Network.MAINNET)
CHANGE_PATH = "m/44'/0'/0'/1/0"

SIG_R = int.from_bytes(b"\x11" * 32, "big")
SIG_S = int.from_bytes(b"\x22" * 32, "big")


def device_signature(r: int = SIG_R, s: int = SIG_S) -> bytes:
    """Signature as a device returns it: parity flag set, sighash byte appended."""
    signature = bytearray(encode_der_signature(r, s, 0x01))
    signature[0] |= 0x01
    return bytes(signature)


class MockDevice(DeviceSigningPort):
    """Device port whose operations are AsyncMocks."""

    def __init__(self) -> None:
        super().__init__()
        self.get_trusted_input = AsyncMock(
            side_effect=lambda utxo: TrustedInput(b"trusted:" + utxo.outpoint.bytes)
        )
        self.start_untrusted_transaction = AsyncMock(return_value=None)
        self.finalize_input = AsyncMock(return_value=FinalizeResult())
        self.untrusted_hash_sign = AsyncMock(return_value=device_signature())

    async def get_trusted_input(self, utxo):
        raise NotImplementedError

    async def start_untrusted_transaction(self, is_new_transaction, input_index, trusted_inputs, redeem_script):
        raise NotImplementedError

    async def finalize_input(self, outputs, first_address, first_amount, fee, change_path, has_change_output):
        raise NotImplementedError

    async def untrusted_hash_sign(self, path, authorization):
        raise NotImplementedError

    @property
    def total_calls(self) -> int:
        return (
            self.get_trusted_input.await_count
            + self.start_untrusted_transaction.await_count
            + self.finalize_input.await_count
            + self.untrusted_hash_sign.await_count
        )


@pytest.fixture
def device():
    return MockDevice()


@pytest.fixture
def public_key():
    return SecpPrivateKey(b"\x01" * 32).public_key.format(compressed=False)


@pytest.fixture
def make_utxo(public_key):
    def factory(value=100_000, index=0, vout=0):
        txid = f"{index + 1:02x}" * 32
        return Utxo.create(
            txid=txid,
            vout=vout,
            value=value,
            path=f"m/44'/0'/0'/0/{index}",
            public_key=public_key,
            script_pubkey=bytes.fromhex("76a914") + bytes([index]) * 20 + bytes.fromhex("88ac"),
        )
    return factory


@pytest.fixture
def destination_address():
    return GENESIS_ADDRESS


@pytest.fixture
def change_address():
    return CHANGE_ADDRESS


@pytest.fixture
def builder_for(destination_address, change_address):
    """Builder with one destination, a fee and a change target already set."""
    def factory(device, *utxos, amount=50_000, fee=1_000):
        return (
            TransactionBuilder(device)
            .spend(*utxos)
            .to(destination_address, amount)
            .fees(fee)
            .change(CHANGE_PATH, change_address)
        )
    return factory
