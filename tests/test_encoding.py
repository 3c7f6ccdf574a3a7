import pytest
from hwsigner.utils.encoding import (
    hex_to_bytes, bytes_to_hex, encode_varint, decode_varint, hash160,
    encode_base58, decode_base58, encode_base58_check, decode_base58_check,
    encode_bech32, decode_bech32, encode_bech32m, decode_bech32m,
    encode_address, decode_address
)
from hwsigner.constants import Network
from hwsigner.exceptions import ValidationError
from hwsigner.utils.script import address_to_script, build_script_sig, push_data
from hwsigner.exceptions import SerializationError

GENESIS_PUBKEY = bytes.fromhex(
    "04678afdb0fe5548271967f1a67130b7105cd6a828e03909a67962e0ea1f61deb6"
    "49f6bc3f4cef38c4f35504e51ec112de5c384df7ba0b8d578a4c702b6bf11d5f"
)


def test_hex_bytes_roundtrip():
    data = b"\x00\x01deadbeef"
    hex_str = bytes_to_hex(data, prefix=True)
    assert hex_str.startswith("0x")
    assert hex_to_bytes(hex_str) == data
    with pytest.raises(ValidationError):
        hex_to_bytes("zzzz")


def test_varint_roundtrip():
    for value in [0, 1, 252, 253, 65535, 65536, 2**32 + 1]:
        encoded = encode_varint(value)
        decoded, offset = decode_varint(encoded)
        assert decoded == value
        assert offset == len(encoded)


def test_varint_rejects_negative():
    with pytest.raises(ValidationError):
        encode_varint(-1)


def test_base58_roundtrip():
    payload = b"hello world"
    encoded = encode_base58(payload)
    assert decode_base58(encoded) == payload
    assert encode_base58(b"\x00\x00\x01") == "112"


def test_base58check_roundtrip():
    payload = b"test payload"
    enc = encode_base58_check(payload)
    dec = decode_base58_check(enc)
    assert dec == payload
    with pytest.raises(ValidationError):
        decode_base58_check(enc[:-1] + ("1" if enc[-1] != "1" else "2"))


def test_genesis_address():
    assert hash160(GENESIS_PUBKEY).hex() == "62e907b15cbf27d5425399ebf6f0fb50ebb88f18"
    assert encode_address("p2pkh", hash160(GENESIS_PUBKEY)) == "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"


def test_bech32_and_bech32m_roundtrip():
    hrp = "bc"
    witprog = b"\x01" * 20
    addr = encode_bech32(hrp, 0, witprog)
    assert decode_bech32(addr) == (hrp, 0, witprog)

    prog_m = b"\x02" * 32
    addr_m = encode_bech32m(hrp, 1, prog_m)
    assert decode_bech32m(addr_m) == (hrp, 1, prog_m)

    # Checksums are not interchangeable
    with pytest.raises(ValidationError):
        decode_bech32(addr_m)


def test_bip173_vector():
    address = "BC1QW508D6QEJXTDG4Y5R3ZARVARY0C5XW7KV8F3T4"
    assert decode_address(address) == ("p2wpkh", bytes.fromhex("751e76e8199196d454941c45d1b3a323f1433bd6"))
    assert address_to_script(address).hex() == "0014751e76e8199196d454941c45d1b3a323f1433bd6"


def test_encode_decode_address():
    hash20 = bytes.fromhex("11" * 20)
    hash32 = bytes.fromhex("22" * 32)

    for address_type, program in [
        ("p2pkh", hash20),
        ("p2sh", hash20),
        ("p2wpkh", hash20),
        ("p2wsh", hash32),
        ("p2tr", hash32),
    ]:
        for network in Network:
            address = encode_address(address_type, program, network)
            assert decode_address(address, network) == (address_type, program)


def test_address_prefixes_per_network():
    hash20 = bytes.fromhex("11" * 20)
    assert encode_address("p2pkh", hash20, Network.MAINNET).startswith("1")
    assert encode_address("p2sh", hash20, Network.MAINNET).startswith("3")
    assert encode_address("p2wpkh", hash20, Network.TESTNET).startswith("tb1q")
    assert encode_address("p2wpkh", hash20, Network.REGTEST).startswith("bcrt1q")
    assert encode_address("p2tr", b"\x22" * 32, Network.MAINNET).startswith("bc1p")


def test_decode_address_rejects_other_network():
    hash20 = bytes.fromhex("11" * 20)
    with pytest.raises(ValidationError):
        decode_address(encode_address("p2wpkh", hash20, Network.TESTNET), Network.MAINNET)
    with pytest.raises(ValidationError):
        decode_address(encode_address("p2pkh", hash20, Network.MAINNET), Network.TESTNET)


def test_encode_address_rejects_bad_input():
    with pytest.raises(ValidationError):
        encode_address("p2pk", b"\x11" * 20)
    with pytest.raises(ValidationError):
        encode_address("p2wsh", b"\x11" * 20)


def test_address_to_script_templates():
    hash20 = b"\x11" * 20
    hash32 = b"\x22" * 32
    assert address_to_script(encode_address("p2pkh", hash20)) == b"\x76\xa9\x14" + hash20 + b"\x88\xac"
    assert address_to_script(encode_address("p2sh", hash20)) == b"\xa9\x14" + hash20 + b"\x87"
    assert address_to_script(encode_address("p2wpkh", hash20)) == b"\x00\x14" + hash20
    assert address_to_script(encode_address("p2wsh", hash32)) == b"\x00\x20" + hash32
    assert address_to_script(encode_address("p2tr", hash32)) == b"\x51\x20" + hash32


def test_push_data_sizes():
    assert push_data(b"\xaa" * 75)[:1] == b"\x4b"
    assert push_data(b"\xaa" * 76)[:2] == b"\x4c\x4c"
    assert push_data(b"\xaa" * 256)[:3] == b"\x4d\x00\x01"


def test_script_sig_layout():
    signature = b"\x30" + b"\x01" * 70
    script = build_script_sig(signature, GENESIS_PUBKEY)
    assert script[0] == 71
    assert script[1:72] == signature
    assert script[72] == 65
    assert script[73:] == GENESIS_PUBKEY
    with pytest.raises(SerializationError):
        build_script_sig(b"\x30" * 76, GENESIS_PUBKEY)
