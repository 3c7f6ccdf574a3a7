"""Hierarchical Deterministic key derivation (BIP32) for hwsigner."""

import hmac
import hashlib
from typing import Union

from coincurve import PrivateKey as SecpPrivateKey

from ..constants import HARDENED_OFFSET, SECP256K1_ORDER
from ..exceptions import CryptoError, ValidationError
from ..types.path import DerivationPath
from ..utils.encoding import hash160

__all__ = ["HDNode"]


class HDNode:
    """HD wallet node holding a private key (BIP32)."""

    def __init__(
        self,
        private_key: bytes,
        chain_code: bytes,
        depth: int = 0,
        parent_fingerprint: bytes = b'\x00\x00\x00\x00',
        index: int = 0,
    ):
        self.private_key = private_key
        self.chain_code = chain_code
        self.depth = depth
        self.parent_fingerprint = parent_fingerprint
        self.index = index
        self._key = SecpPrivateKey(private_key)

    @classmethod
    def from_seed(cls, seed: bytes) -> "HDNode":
        """Create master node from seed."""
        if len(seed) < 16 or len(seed) > 64:
            raise ValidationError("Seed must be between 16 and 64 bytes")

        h = hmac.new(b"Bitcoin seed", seed, hashlib.sha512).digest()

        key_int = int.from_bytes(h[:32], 'big')
        if key_int == 0 or key_int >= SECP256K1_ORDER:
            raise CryptoError("Invalid master key")

        return cls(private_key=h[:32], chain_code=h[32:])

    @property
    def signing_key(self) -> SecpPrivateKey:
        return self._key

    def public_key(self, compressed: bool = True) -> bytes:
        return self._key.public_key.format(compressed=compressed)

    @property
    def fingerprint(self) -> bytes:
        return hash160(self.public_key())[:4]

    def derive(self, index: int) -> "HDNode":
        """Derive child node."""
        if index >= HARDENED_OFFSET:
            data = b'\x00' + self.private_key + index.to_bytes(4, 'big')
        else:
            data = self.public_key() + index.to_bytes(4, 'big')

        h = hmac.new(self.chain_code, data, hashlib.sha512).digest()

        tweak = int.from_bytes(h[:32], 'big')
        child_int = (int.from_bytes(self.private_key, 'big') + tweak) % SECP256K1_ORDER
        if tweak >= SECP256K1_ORDER or child_int == 0:
            # Invalid child, BIP32 says move on to the next index
            return self.derive(index + 1)

        return HDNode(
            private_key=child_int.to_bytes(32, 'big'),
            chain_code=h[32:],
            depth=self.depth + 1,
            parent_fingerprint=self.fingerprint,
            index=index,
        )

    def derive_path(self, path: Union[str, DerivationPath, None]) -> "HDNode":
        """Derive using BIP32 path like m/44'/0'/0'/0/0."""
        node = self
        for index in DerivationPath.parse(path or "m").indexes:
            node = node.derive(index)
        return node

    def __repr__(self) -> str:
        return f"HDNode(depth={self.depth}, fingerprint={self.fingerprint.hex()})"
