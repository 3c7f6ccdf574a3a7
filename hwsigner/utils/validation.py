"""Validation utilities for hwsigner."""

import re
from typing import Union

from coincurve import PublicKey as SecpPublicKey

from ..constants import MAX_SUPPLY, MAX_SCRIPT_SIZE, Network
from ..exceptions import ValidationError
from ..types.common import Satoshi, PublicKeyBytes
from ..utils.encoding import decode_address

__all__ = [
    "is_valid_address",
    "validate_address",
    "is_valid_txid",
    "validate_txid",
    "validate_amount",
    "validate_public_key",
    "to_uncompressed_public_key",
    "validate_script",
]

TXID_PATTERN = re.compile(r"^[0-9a-fA-F]{64}$")
HEX_PATTERN = re.compile(r"^[0-9a-fA-F]*$")


def _hex_or_bytes(value: Union[str, bytes], what: str) -> bytes:
    if isinstance(value, bytes):
        return value
    if value.startswith("0x"):
        value = value[2:]
    if not HEX_PATTERN.match(value):
        raise ValidationError(f"{what} must be hexadecimal")
    try:
        return bytes.fromhex(value)
    except ValueError as e:
        raise ValidationError(f"Invalid hex {what.lower()}: {e}") from e


def is_valid_address(address: str, network: Network = Network.MAINNET) -> bool:
    """Check if address decodes on the given network."""
    try:
        decode_address(address, network)
        return True
    except ValidationError:
        return False


def validate_address(address: str, network: Network = Network.MAINNET) -> str:
    """
    Validate a Bitcoin address for a network.

    Raises:
        ValidationError: If address is invalid
    """
    if not address:
        raise ValidationError("Address cannot be empty")
    decode_address(address, network)
    return address


def is_valid_txid(txid: str) -> bool:
    """Check if transaction ID format is valid."""
    return bool(TXID_PATTERN.match(txid))


def validate_txid(txid: str) -> str:
    """
    Validate transaction ID and return normalized form.

    Args:
        txid: Transaction ID to validate

    Returns:
        Normalized txid (lowercase)

    Raises:
        ValidationError: If txid is invalid
    """
    if not txid:
        raise ValidationError("Transaction ID cannot be empty")

    txid = txid.lower()

    if not is_valid_txid(txid):
        raise ValidationError(f"Invalid transaction ID: {txid}")

    return txid


def validate_amount(amount: int, allow_zero: bool = False) -> Satoshi:
    """
    Validate a satoshi amount.

    Args:
        amount: Amount in satoshis
        allow_zero: Accept 0 (fees may be zero, payments may not)

    Raises:
        ValidationError: If amount is not an integer or out of range
    """
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise ValidationError(f"Amount must be an integer number of satoshis: {amount!r}")

    if amount < 0 or (amount == 0 and not allow_zero):
        raise ValidationError(f"Amount must be positive: {amount}")

    if amount > MAX_SUPPLY:
        raise ValidationError(f"Amount exceeds maximum supply: {amount}")

    return Satoshi(amount)


def validate_public_key(key: Union[str, bytes]) -> PublicKeyBytes:
    """
    Validate public key and return as bytes.

    The key must be a point on secp256k1, in compressed (33 bytes) or
    uncompressed (65 bytes) SEC1 form.

    Raises:
        ValidationError: If public key is invalid
    """
    key = _hex_or_bytes(key, "Public key")

    if len(key) == 33:
        if key[0] not in (0x02, 0x03):
            raise ValidationError("Compressed public key must start with 0x02 or 0x03")
    elif len(key) == 65:
        if key[0] != 0x04:
            raise ValidationError("Uncompressed public key must start with 0x04")
    else:
        raise ValidationError(f"Public key must be 33 or 65 bytes, got {len(key)}")

    try:
        SecpPublicKey(key)
    except ValueError as e:
        raise ValidationError(f"Public key is not on the curve: {e}") from e

    return PublicKeyBytes(key)


def to_uncompressed_public_key(key: Union[str, bytes]) -> PublicKeyBytes:
    """Validate a public key and return its 65-byte uncompressed form."""
    key = validate_public_key(key)
    if len(key) == 65:
        return key
    return PublicKeyBytes(SecpPublicKey(key).format(compressed=False))


def validate_script(script: Union[str, bytes], allow_empty: bool = False) -> bytes:
    """
    Validate script and return as bytes.

    Raises:
        ValidationError: If script is invalid
    """
    script = _hex_or_bytes(script, "Script")

    if not script and not allow_empty:
        raise ValidationError("Script cannot be empty")

    if len(script) > MAX_SCRIPT_SIZE:
        raise ValidationError(f"Script exceeds maximum size of {MAX_SCRIPT_SIZE} bytes")

    return script
