"""Encoding and decoding utilities for hwsigner."""

import hashlib
import struct
from typing import Tuple, List, Union

from ..constants import ADDRESS_PREFIXES, BECH32_HRP, Network
from ..exceptions import ValidationError
from ..types.common import HexStr, Address

__all__ = [
    "hex_to_bytes",
    "bytes_to_hex",
    "encode_varint",
    "decode_varint",
    "double_sha256",
    "hash160",
    "encode_base58",
    "decode_base58",
    "encode_base58_check",
    "decode_base58_check",
    "encode_bech32",
    "decode_bech32",
    "encode_bech32m",
    "decode_bech32m",
    "decode_address",
    "encode_address",
]

BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"
BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"

# Checksum constants (BIP173 / BIP350)
BECH32_CONST = 1
BECH32M_CONST = 0x2bc830a3


def hex_to_bytes(hex_str: Union[HexStr, str]) -> bytes:
    """
    Convert hex string to bytes.

    Args:
        hex_str: Hex string with or without 0x prefix

    Returns:
        Decoded bytes

    Raises:
        ValidationError: If hex string is invalid
    """
    try:
        if isinstance(hex_str, str) and hex_str.startswith("0x"):
            hex_str = hex_str[2:]
        return bytes.fromhex(hex_str)
    except ValueError as e:
        raise ValidationError(f"Invalid hex string: {hex_str}") from e


def bytes_to_hex(data: bytes, prefix: bool = False) -> HexStr:
    """Convert bytes to hex string, optionally 0x-prefixed."""
    hex_str = data.hex()
    if prefix:
        hex_str = f"0x{hex_str}"
    return HexStr(hex_str)


def encode_varint(n: int) -> bytes:
    """
    Encode integer as Bitcoin variable length integer.

    Args:
        n: Non-negative integer below 2**64

    Returns:
        Encoded varint bytes
    """
    if n < 0:
        raise ValidationError(f"Varint cannot encode negative value: {n}")
    if n < 0xfd:
        return bytes([n])
    elif n <= 0xffff:
        return b"\xfd" + struct.pack("<H", n)
    elif n <= 0xffffffff:
        return b"\xfe" + struct.pack("<I", n)
    else:
        return b"\xff" + struct.pack("<Q", n)


def decode_varint(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """
    Decode Bitcoin variable length integer.

    Args:
        data: Bytes containing varint
        offset: Starting position

    Returns:
        Tuple of (value, new_offset)
    """
    if data[offset] < 0xfd:
        return data[offset], offset + 1
    elif data[offset] == 0xfd:
        return struct.unpack_from("<H", data, offset + 1)[0], offset + 3
    elif data[offset] == 0xfe:
        return struct.unpack_from("<I", data, offset + 1)[0], offset + 5
    else:
        return struct.unpack_from("<Q", data, offset + 1)[0], offset + 9


def double_sha256(data: bytes) -> bytes:
    """Perform double SHA256 hash."""
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def hash160(data: bytes) -> bytes:
    """Perform RIPEMD160(SHA256(data))."""
    sha256_hash = hashlib.sha256(data).digest()
    return hashlib.new("ripemd160", sha256_hash).digest()


def encode_base58(data: bytes) -> str:
    """Encode bytes as Base58 string."""
    n = int.from_bytes(data, "big")

    encoded = ""
    while n:
        n, remainder = divmod(n, 58)
        encoded = BASE58_ALPHABET[remainder] + encoded

    # Leading zero bytes map to '1'
    pad = len(data) - len(data.lstrip(b"\x00"))
    return "1" * pad + encoded


def decode_base58(string: str) -> bytes:
    """
    Decode Base58 string to bytes.

    Raises:
        ValidationError: If string contains invalid characters
    """
    n = 0
    for char in string:
        try:
            n = n * 58 + BASE58_ALPHABET.index(char)
        except ValueError:
            raise ValidationError(f"Invalid Base58 character: {char}")

    body = n.to_bytes((n.bit_length() + 7) // 8, "big")
    leading_zeros = len(string) - len(string.lstrip("1"))
    return b"\x00" * leading_zeros + body


def encode_base58_check(data: bytes) -> str:
    """Encode bytes as Base58Check (with checksum)."""
    checksum = double_sha256(data)[:4]
    return encode_base58(data + checksum)


def decode_base58_check(string: str) -> bytes:
    """
    Decode Base58Check string.

    Returns:
        Decoded data (without checksum)

    Raises:
        ValidationError: If checksum is invalid
    """
    data = decode_base58(string)
    if len(data) < 4:
        raise ValidationError("Invalid Base58Check string: too short")

    payload, checksum = data[:-4], data[-4:]
    if checksum != double_sha256(payload)[:4]:
        raise ValidationError("Invalid Base58Check checksum")

    return payload


def _bech32_polymod(values: List[int]) -> int:
    generator = [0x3b6a57b2, 0x26508e6d, 0x1ea119fa, 0x3d4233dd, 0x2a1462b3]
    chk = 1
    for value in values:
        top = chk >> 25
        chk = (chk & 0x1ffffff) << 5 ^ value
        for i in range(5):
            chk ^= generator[i] if ((top >> i) & 1) else 0
    return chk


def _bech32_hrp_expand(hrp: str) -> List[int]:
    return [ord(x) >> 5 for x in hrp] + [0] + [ord(x) & 31 for x in hrp]


def _convert_bits(data: List[int], from_bits: int, to_bits: int, pad: bool) -> List[int]:
    """Regroup a sequence of ``from_bits`` integers into ``to_bits`` integers."""
    acc = 0
    bits = 0
    result = []
    maxv = (1 << to_bits) - 1
    for value in data:
        acc = (acc << from_bits) | value
        bits += from_bits
        while bits >= to_bits:
            bits -= to_bits
            result.append((acc >> bits) & maxv)
    if pad and bits:
        result.append((acc << (to_bits - bits)) & maxv)
    elif not pad and (bits >= from_bits or (acc << (to_bits - bits)) & maxv):
        raise ValidationError("Invalid padding in witness program")
    return result


def _encode_segwit(hrp: str, witver: int, witprog: bytes, const: int) -> str:
    values = [witver] + _convert_bits(list(witprog), 8, 5, pad=True)
    polymod = _bech32_polymod(_bech32_hrp_expand(hrp) + values + [0] * 6) ^ const
    checksum = [(polymod >> 5 * (5 - i)) & 31 for i in range(6)]
    return hrp + "1" + "".join(BECH32_CHARSET[v] for v in values + checksum)


def _decode_segwit(address: str, const: int, name: str) -> Tuple[str, int, bytes]:
    pos = address.rfind("1")
    if pos < 1 or len(address) - pos < 8:
        raise ValidationError(f"Invalid {name} address: no separator")

    hrp = address[:pos]
    values = []
    for char in address[pos + 1:]:
        try:
            values.append(BECH32_CHARSET.index(char))
        except ValueError:
            raise ValidationError(f"Invalid {name} character: {char}")

    if _bech32_polymod(_bech32_hrp_expand(hrp) + values) != const:
        raise ValidationError(f"Invalid {name} checksum")

    witprog = _convert_bits(values[1:-6], 5, 8, pad=False)
    return hrp, values[0], bytes(witprog)


def encode_bech32(hrp: str, witver: int, witprog: bytes) -> str:
    """Encode a SegWit v0 program as a Bech32 address."""
    return _encode_segwit(hrp, witver, witprog, BECH32_CONST)


def decode_bech32(address: str) -> Tuple[str, int, bytes]:
    """
    Decode Bech32 address.

    Returns:
        Tuple of (hrp, witness_version, witness_program)

    Raises:
        ValidationError: If address is invalid
    """
    return _decode_segwit(address, BECH32_CONST, "Bech32")


def encode_bech32m(hrp: str, witver: int, witprog: bytes) -> str:
    """Encode a SegWit v1+ program as a Bech32m address."""
    return _encode_segwit(hrp, witver, witprog, BECH32M_CONST)


def decode_bech32m(address: str) -> Tuple[str, int, bytes]:
    """Decode Bech32m address into (hrp, witness_version, witness_program)."""
    return _decode_segwit(address, BECH32M_CONST, "Bech32m")


def decode_address(address: str, network: Network = Network.MAINNET) -> Tuple[str, bytes]:
    """
    Decode Bitcoin address to type and hash.

    Args:
        address: Bitcoin address
        network: Network the address must belong to

    Returns:
        Tuple of (address_type, hash_bytes)

    Raises:
        ValidationError: If address is invalid or for another network
    """
    hrp = BECH32_HRP[network]
    if address.lower().startswith(hrp + "1"):
        lowered = address.lower()
        try:
            decoded_hrp, witver, witprog = decode_bech32(lowered)
        except ValidationError:
            decoded_hrp, witver, witprog = decode_bech32m(lowered)

        if decoded_hrp != hrp:
            raise ValidationError(f"Wrong network: expected {hrp}, got {decoded_hrp}")

        if witver == 0:
            if len(witprog) == 20:
                return "p2wpkh", witprog
            elif len(witprog) == 32:
                return "p2wsh", witprog
        elif witver == 1 and len(witprog) == 32:
            return "p2tr", witprog

        raise ValidationError(f"Unsupported witness program: version {witver}, {len(witprog)} bytes")

    decoded = decode_base58_check(address)
    if len(decoded) != 21:
        raise ValidationError(f"Invalid address length: {address}")

    version, hash_bytes = decoded[0:1], decoded[1:]
    if version == ADDRESS_PREFIXES["p2pkh"][network]:
        return "p2pkh", hash_bytes
    elif version == ADDRESS_PREFIXES["p2sh"][network]:
        return "p2sh", hash_bytes

    raise ValidationError(f"Unknown address version {version.hex()} for {network.value}")


def encode_address(
    address_type: str,
    hash_bytes: bytes,
    network: Network = Network.MAINNET
) -> Address:
    """
    Encode hash as Bitcoin address.

    Args:
        address_type: Type of address (p2pkh, p2sh, p2wpkh, p2wsh, p2tr)
        hash_bytes: Hash or witness program to encode
        network: Target network

    Raises:
        ValidationError: If parameters are invalid
    """
    expected = {"p2pkh": 20, "p2sh": 20, "p2wpkh": 20, "p2wsh": 32, "p2tr": 32}
    if address_type not in expected:
        raise ValidationError(f"Unknown address type: {address_type}")
    if len(hash_bytes) != expected[address_type]:
        raise ValidationError(
            f"{address_type.upper()} requires {expected[address_type]}-byte hash"
        )

    if address_type in ("p2pkh", "p2sh"):
        prefix = ADDRESS_PREFIXES[address_type][network]
        return Address(encode_base58_check(prefix + hash_bytes))
    if address_type == "p2tr":
        return Address(encode_bech32m(BECH32_HRP[network], 1, hash_bytes))
    return Address(encode_bech32(BECH32_HRP[network], 0, hash_bytes))
