"""BIP32 derivation paths."""

from dataclasses import dataclass
from typing import Tuple, Union

from ..constants import HARDENED_OFFSET
from ..exceptions import ValidationError

__all__ = ["DerivationPath"]


@dataclass(frozen=True)
class DerivationPath:
    """
    Immutable BIP32 derivation path.

    Indexes are stored with the hardened bit already applied, so
    ``DerivationPath.parse("m/44'/0")`` holds ``(0x8000002c, 0)``.
    """

    indexes: Tuple[int, ...] = ()

    def __post_init__(self) -> None:
        if len(self.indexes) > 255:
            raise ValidationError("Derivation path is deeper than 255 levels")
        for index in self.indexes:
            if not 0 <= index <= 0xFFFFFFFF:
                raise ValidationError(f"Derivation index out of range: {index}")

    @classmethod
    def parse(cls, path: Union[str, "DerivationPath"]) -> "DerivationPath":
        """
        Parse a path like ``m/44'/0'/0'/1/0``.

        Both ``'`` and ``h`` mark hardened components.

        Raises:
            ValidationError: If a component is not a valid index
        """
        if isinstance(path, DerivationPath):
            return path

        path = path.strip()
        if path in ("", "m", "M"):
            return cls()
        if path.startswith(("m/", "M/")):
            path = path[2:]

        indexes = []
        for component in path.split("/"):
            hardened = component.endswith(("'", "h", "H"))
            digits = component[:-1] if hardened else component
            if not digits.isdigit():
                raise ValidationError(f"Invalid derivation path component: {component!r}")
            index = int(digits)
            if index >= HARDENED_OFFSET:
                raise ValidationError(f"Derivation index too large: {component!r}")
            indexes.append(index + HARDENED_OFFSET if hardened else index)

        return cls(tuple(indexes))

    @property
    def depth(self) -> int:
        return len(self.indexes)

    def child(self, index: int, hardened: bool = False) -> "DerivationPath":
        """Return the path extended by one level."""
        return DerivationPath(self.indexes + (index + HARDENED_OFFSET if hardened else index,))

    def to_bytes(self) -> bytes:
        """Device form: depth byte followed by 4-byte big-endian indexes."""
        return bytes([self.depth]) + b"".join(i.to_bytes(4, "big") for i in self.indexes)

    def __str__(self) -> str:
        parts = ["m"]
        for index in self.indexes:
            if index >= HARDENED_OFFSET:
                parts.append(f"{index - HARDENED_OFFSET}'")
            else:
                parts.append(str(index))
        return "/".join(parts)
