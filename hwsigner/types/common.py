"""Common type definitions for hwsigner."""

from typing import NewType

__all__ = [
    "HexStr",
    "Satoshi",
    "TxId",
    "Address",
    "PublicKeyBytes",
    "Signature",
]

HexStr = NewType("HexStr", str)
"""Hexadecimal string representation."""

Satoshi = NewType("Satoshi", int)
"""Satoshi amount (smallest unit)."""

TxId = NewType("TxId", str)
"""Transaction ID in display (big-endian) order."""

Address = NewType("Address", str)
"""Bitcoin address string."""

PublicKeyBytes = NewType("PublicKeyBytes", bytes)
"""33 or 65 byte SEC1 public key."""

Signature = NewType("Signature", bytes)
"""DER-encoded signature, optionally followed by a sighash byte."""
