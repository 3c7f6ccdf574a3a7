import pytest
from coincurve import PrivateKey as SecpPrivateKey

import hwsigner
import hwsigner.types
from hwsigner.constants import HARDENED_OFFSET
from hwsigner.exceptions import SerializationError, ValidationError
from hwsigner.types import (
    ChangeTarget,
    DerivationPath,
    Destination,
    FinalizeResult,
    OutPoint,
    SignedTransaction,
    Utxo,
    ValidationRequest,
)

PUBLIC_KEY = SecpPrivateKey(b"\x03" * 32).public_key.format(compressed=True)
SCRIPT = "76a914" + "11" * 20 + "88ac"


def test_derivation_path_parse():
    path = DerivationPath.parse("m/44'/0h/0H/1/5")
    assert path.indexes == (44 + HARDENED_OFFSET, HARDENED_OFFSET, HARDENED_OFFSET, 1, 5)
    assert path.depth == 5
    assert str(path) == "m/44'/0'/0'/1/5"
    assert DerivationPath.parse(path) is path
    assert DerivationPath.parse("m") == DerivationPath()


def test_derivation_path_bytes():
    path = DerivationPath.parse("m/44'/1")
    assert path.to_bytes().hex() == "02" + "8000002c" + "00000001"
    assert path.child(7, hardened=True) == DerivationPath.parse("m/44'/1/7'")


@pytest.mark.parametrize("bad", ["m/x", "m/44''", "m//1", f"m/{HARDENED_OFFSET}", "m/-1"])
def test_derivation_path_rejects(bad):
    with pytest.raises(ValidationError):
        DerivationPath.parse(bad)


def test_outpoint_serialization():
    outpoint = OutPoint("AB" * 32, 2)
    assert outpoint.txid == "ab" * 32
    assert outpoint.bytes == bytes.fromhex("ab" * 32)[::-1] + b"\x02\x00\x00\x00"
    assert str(outpoint) == "ab" * 32 + ":2"

    with pytest.raises(ValidationError):
        OutPoint("ab" * 32, -1)
    with pytest.raises(ValidationError):
        OutPoint("ab" * 31, 0)


def test_utxo_normalizes_fields():
    utxo = Utxo.create("cd" * 32, 1, 10_000, "m/44'/0'/0'/0/0", PUBLIC_KEY.hex(), SCRIPT)
    assert utxo.txid == "cd" * 32
    assert utxo.vout == 1
    assert isinstance(utxo.path, DerivationPath)
    assert utxo.public_key == PUBLIC_KEY
    assert utxo.script_pubkey == bytes.fromhex(SCRIPT)


@pytest.mark.parametrize("field, value", [
    ("value", 0),
    ("value", 1.5),
    ("path", "m/abc"),
    ("public_key", b"\x02" * 10),
    ("script_pubkey", b""),
])
def test_utxo_rejects(field, value):
    kwargs = dict(
        txid="cd" * 32,
        vout=0,
        value=10_000,
        path="m/0",
        public_key=PUBLIC_KEY,
        script_pubkey=SCRIPT,
    )
    kwargs[field] = value
    with pytest.raises(ValidationError):
        Utxo.create(**kwargs)


def test_destination_and_change_target():
    assert Destination("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa", 5).amount == 5
    with pytest.raises(ValidationError):
        Destination("1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa", 0)
    with pytest.raises(ValidationError):
        Destination("", 5)

    assert ChangeTarget("m/1", "addr").path == DerivationPath.parse("m/1")
    with pytest.raises(ValidationError):
        ChangeTarget("m/1", "")


def test_device_results():
    assert not FinalizeResult().needs_validation
    request = ValidationRequest(b"\x01\x02")
    assert FinalizeResult(request).needs_validation
    assert request.hex == "0102"


# Genesis coinbase transaction
GENESIS_TX = bytes.fromhex(
    "01000000010000000000000000000000000000000000000000000000000000000000000000"
    "ffffffff4d04ffff001d0104455468652054696d65732030332f4a616e2f32303039204368"
    "616e63656c6c6f72206f6e206272696e6b206f66207365636f6e64206261696c6f75742066"
    "6f722062616e6b73ffffffff0100f2052a01000000434104678afdb0fe5548271967f1a671"
    "30b7105cd6a828e03909a67962e0ea1f61deb649f6bc3f4cef38c4f35504e51ec112de5c38"
    "4df7ba0b8d578a4c702b6bf11d5fac00000000"
)


def test_signed_transaction_layout():
    tx = SignedTransaction(GENESIS_TX)
    assert tx.txid == "4a5e1e4baab89f3a32518a88c31bc87f618f76673e2cc77ab2127b7afdeda33b"
    assert tx.version == 1
    assert tx.input_count == 1
    assert tx.output_count == 1
    assert tx.locktime == 0
    assert tx.size == len(GENESIS_TX) == 204
    assert tx.hex == GENESIS_TX.hex()
    assert str(tx) == tx.hex


@pytest.mark.parametrize("raw", [GENESIS_TX[:-1], GENESIS_TX + b"\x00", b"\x01\x00"])
def test_signed_transaction_rejects_malformed(raw):
    with pytest.raises(SerializationError):
        SignedTransaction(raw)


@pytest.mark.parametrize("module", [hwsigner, hwsigner.types])
def test_exports_resolve(module):
    for name in module.__all__:
        assert getattr(module, name) is not None
    assert set(hwsigner.types.__all__) >= {"Utxo", "OutPoint", "SignedTransaction"}
    assert "SigHashType" not in hwsigner.types.__all__
