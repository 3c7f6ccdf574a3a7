"""Signature utilities for hwsigner."""

from typing import Optional, Tuple

from ..constants import SECP256K1_ORDER, SIGHASH_ALL
from ..exceptions import CryptoError, DeviceProtocolError
from ..types.common import Signature

__all__ = [
    "parse_der_signature",
    "encode_der_signature",
    "is_low_s",
    "canonicalize_signature",
]

HALF_ORDER = SECP256K1_ORDER // 2

# Some devices set bit 0 of the sequence tag to report the parity of R
DER_SEQUENCE = 0x30
DER_SEQUENCE_WITH_PARITY = 0x31
DER_INTEGER = 0x02


def _read_integer(signature: bytes, offset: int, name: str) -> Tuple[int, int]:
    if signature[offset] != DER_INTEGER:
        raise ValueError(f"missing {name} integer tag")
    length = signature[offset + 1]
    start = offset + 2
    if length == 0 or start + length > len(signature):
        raise ValueError(f"bad {name} length")
    value = int.from_bytes(signature[start:start + length], "big")
    if not 0 < value < SECP256K1_ORDER:
        raise ValueError(f"{name} out of range")
    return value, start + length


def parse_der_signature(
    signature: bytes,
    allow_parity_flag: bool = False
) -> Tuple[int, int, Optional[int]]:
    """
    Parse DER-encoded signature.

    The DER body is delimited by its own length field; a single byte
    following it is returned as the sighash type.

    Args:
        signature: DER-encoded signature (possibly with sighash type)
        allow_parity_flag: Accept ``0x31`` as the sequence tag

    Returns:
        Tuple of (r, s, sighash_type)

    Raises:
        CryptoError: If signature format is invalid
    """
    try:
        tags = (DER_SEQUENCE, DER_SEQUENCE_WITH_PARITY) if allow_parity_flag else (DER_SEQUENCE,)
        if signature[0] not in tags:
            raise ValueError("missing sequence tag")

        length = signature[1]
        if length & 0x80 or length < 6:
            raise ValueError("incorrect length")
        end = 2 + length
        if end > len(signature):
            raise ValueError("truncated signature")

        r, offset = _read_integer(signature, 2, "r")
        s, offset = _read_integer(signature, offset, "s")
        if offset != end:
            raise ValueError("length does not match content")

        trailer = signature[end:]
        if len(trailer) > 1:
            raise ValueError(f"{len(trailer)} unexpected trailing bytes")
        sighash_type = trailer[0] if trailer else None

        return r, s, sighash_type

    except (IndexError, ValueError) as e:
        raise CryptoError(f"Invalid DER signature: {e}") from e


def _encode_der_integer(value: int) -> bytes:
    encoded = value.to_bytes((value.bit_length() + 7) // 8, "big")
    if encoded[0] & 0x80:
        encoded = b"\x00" + encoded
    return bytes([DER_INTEGER, len(encoded)]) + encoded


def encode_der_signature(r: int, s: int, sighash_type: Optional[int] = None) -> Signature:
    """
    Encode signature as strict DER.

    Args:
        r: Signature r value
        s: Signature s value
        sighash_type: Optional sighash type to append

    Returns:
        DER-encoded signature
    """
    if not (0 < r < SECP256K1_ORDER and 0 < s < SECP256K1_ORDER):
        raise CryptoError("Signature values out of range")

    sequence = _encode_der_integer(r) + _encode_der_integer(s)
    result = bytes([DER_SEQUENCE, len(sequence)]) + sequence

    if sighash_type is not None:
        result += bytes([sighash_type])

    return Signature(result)


def is_low_s(signature: bytes) -> bool:
    """Check whether S is in the lower half of the curve order."""
    _, s, _ = parse_der_signature(signature, allow_parity_flag=True)
    return s <= HALF_ORDER


def canonicalize_signature(signature: bytes, sighash_type: int = SIGHASH_ALL) -> Signature:
    """
    Normalize a device signature to strict low-S DER with a sighash suffix.

    Args:
        signature: Raw signature returned by the device
        sighash_type: Sighash type byte to append

    Returns:
        Canonical signature ending with ``sighash_type``

    Raises:
        DeviceProtocolError: If the device returned a malformed signature
    """
    try:
        r, s, _ = parse_der_signature(signature, allow_parity_flag=True)
    except CryptoError as e:
        raise DeviceProtocolError(f"Device returned an invalid signature: {e.message}") from e

    if s > HALF_ORDER:
        s = SECP256K1_ORDER - s

    return encode_der_signature(r, s, sighash_type)
