import pytest
from coincurve import PrivateKey as SecpPrivateKey

from hwsigner.utils import validation as v
from hwsigner.constants import MAX_SUPPLY, Network
from hwsigner.utils.encoding import encode_address

KEY = SecpPrivateKey(b"\x07" * 32).public_key


def test_address_validation():
    h = bytes.fromhex("11" * 20)
    addr = encode_address("p2wpkh", h, Network.MAINNET)
    assert v.is_valid_address(addr, Network.MAINNET)
    assert not v.is_valid_address(addr, Network.TESTNET)
    assert v.validate_address(addr, Network.MAINNET) == addr
    with pytest.raises(v.ValidationError):
        v.validate_address("invalid")
    with pytest.raises(v.ValidationError):
        v.validate_address("")


def test_txid_validation():
    txid = "A" * 64
    assert v.is_valid_txid(txid)
    assert v.validate_txid(txid) == "a" * 64
    with pytest.raises(v.ValidationError):
        v.validate_txid("xyz")


def test_amount_validation():
    assert v.validate_amount(1) == 1
    assert v.validate_amount(0, allow_zero=True) == 0
    assert v.validate_amount(MAX_SUPPLY) == MAX_SUPPLY

    for bad in [0, -1, MAX_SUPPLY + 1, 1.5, "100", True]:
        with pytest.raises(v.ValidationError):
            v.validate_amount(bad)


def test_public_key_validation():
    compressed = KEY.format(compressed=True)
    uncompressed = KEY.format(compressed=False)

    assert v.validate_public_key(compressed) == compressed
    assert v.validate_public_key(uncompressed.hex()) == uncompressed
    assert v.to_uncompressed_public_key(compressed) == uncompressed
    assert v.to_uncompressed_public_key(uncompressed) == uncompressed

    with pytest.raises(v.ValidationError):
        v.validate_public_key(b"\x05" + compressed[1:])
    with pytest.raises(v.ValidationError):
        v.validate_public_key(compressed[:-1])
    with pytest.raises(v.ValidationError):
        v.validate_public_key(b"\x02" + b"\xff" * 32)
    with pytest.raises(v.ValidationError):
        v.validate_public_key("not hex")


def test_script_validation():
    assert v.validate_script("76a9") == b"\x76\xa9"
    assert v.validate_script(b"", allow_empty=True) == b""
    with pytest.raises(v.ValidationError):
        v.validate_script(b"")
    with pytest.raises(v.ValidationError):
        v.validate_script(b"\x00" * 10_001)
