"""Cryptographic utilities for hwsigner."""

from ..crypto.hd import HDNode
from ..crypto.signature import (
    parse_der_signature,
    encode_der_signature,
    is_low_s,
    canonicalize_signature,
)

__all__ = [
    # Keys
    "HDNode",

    # Signatures
    "parse_der_signature",
    "encode_der_signature",
    "is_low_s",
    "canonicalize_signature",
]
