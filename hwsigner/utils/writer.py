"""Append-only byte buffer used for transaction serialization."""

import struct

from ..exceptions import ValidationError
from ..utils.encoding import encode_varint

__all__ = ["BytesWriter"]


class BytesWriter:
    """
    Growable little-endian byte writer.

    Every ``write_*`` method returns the writer so calls can be chained:

        >>> BytesWriter().write_le_int(1).write_var_int(2).to_bytes().hex()
        '0100000002'
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    def write_byte(self, value: int) -> "BytesWriter":
        if not 0 <= value <= 0xFF:
            raise ValidationError(f"Byte value out of range: {value}")
        self._buffer.append(value)
        return self

    def write_le_int(self, value: int) -> "BytesWriter":
        """Write 4 bytes, little-endian. Negative values use two's complement."""
        self._buffer.extend(struct.pack("<I", value & 0xFFFFFFFF))
        return self

    def write_le_long(self, value: int) -> "BytesWriter":
        """Write 8 bytes, little-endian. Negative values use two's complement."""
        self._buffer.extend(struct.pack("<Q", value & 0xFFFFFFFFFFFFFFFF))
        return self

    def write_var_int(self, value: int) -> "BytesWriter":
        self._buffer.extend(encode_varint(value))
        return self

    def write_bytes(self, data: bytes) -> "BytesWriter":
        self._buffer.extend(data)
        return self

    def write_reversed_bytes(self, data: bytes) -> "BytesWriter":
        """Write ``data`` in reverse order (hash fields are stored reversed)."""
        self._buffer.extend(data[::-1])
        return self

    def to_bytes(self) -> bytes:
        """Snapshot of everything written so far."""
        return bytes(self._buffer)

    def __len__(self) -> int:
        return len(self._buffer)
