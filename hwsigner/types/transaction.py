"""Transaction-related type definitions for hwsigner."""

import struct
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from ..constants import Network
from ..exceptions import SerializationError, ValidationError
from ..types.common import Address, HexStr, PublicKeyBytes, Satoshi, TxId
from ..types.path import DerivationPath
from ..utils.encoding import decode_varint, double_sha256
from ..utils.validation import (
    validate_amount,
    validate_public_key,
    validate_script,
    validate_txid,
)

__all__ = [
    "OutPoint",
    "Utxo",
    "Destination",
    "ChangeTarget",
    "SignedTransaction",
]


@dataclass(frozen=True)
class OutPoint:
    """Transaction output reference."""
    txid: TxId
    vout: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "txid", TxId(validate_txid(self.txid)))
        if isinstance(self.vout, bool) or not isinstance(self.vout, int):
            raise ValidationError(f"Output index must be an integer: {self.vout!r}")
        if not 0 <= self.vout <= 0xFFFFFFFF:
            raise ValidationError(f"Output index out of range: {self.vout}")

    @property
    def hash_bytes(self) -> bytes:
        """Previous transaction hash in display order."""
        return bytes.fromhex(self.txid)

    @property
    def bytes(self) -> bytes:
        """Get outpoint as serialized in a transaction (reversed txid + LE vout)."""
        return self.hash_bytes[::-1] + struct.pack("<I", self.vout)

    def __str__(self) -> str:
        return f"{self.txid}:{self.vout}"


@dataclass(frozen=True)
class Utxo:
    """
    Spendable previous output owned by the signing device.

    Attributes:
        outpoint: Reference to the previous output
        value: Output value in satoshis
        path: Derivation path of the key that controls the output
        public_key: Public key at ``path`` (compressed or uncompressed)
        script_pubkey: Script of the previous output, used as redeem script
        previous_transaction: Raw previous transaction, for devices that
            rebuild the trusted input from it
    """

    outpoint: OutPoint
    value: Satoshi
    path: DerivationPath
    public_key: PublicKeyBytes
    script_pubkey: bytes
    previous_transaction: Optional[bytes] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "value", validate_amount(self.value))
        object.__setattr__(self, "path", DerivationPath.parse(self.path))
        object.__setattr__(self, "public_key", validate_public_key(self.public_key))
        object.__setattr__(self, "script_pubkey", validate_script(self.script_pubkey))

    @classmethod
    def create(
        cls,
        txid: Union[TxId, str],
        vout: int,
        value: int,
        path: Union[DerivationPath, str],
        public_key: Union[bytes, str],
        script_pubkey: Union[bytes, str],
        previous_transaction: Optional[bytes] = None,
    ) -> "Utxo":
        """Build a UTXO from loose values (hex strings accepted)."""
        return cls(
            outpoint=OutPoint(TxId(txid), vout),
            value=Satoshi(value),
            path=path,
            public_key=public_key,
            script_pubkey=script_pubkey,
            previous_transaction=previous_transaction,
        )

    @property
    def txid(self) -> TxId:
        return self.outpoint.txid

    @property
    def vout(self) -> int:
        return self.outpoint.vout

    def __str__(self) -> str:
        return f"{self.outpoint}:{self.value}"


@dataclass(frozen=True)
class Destination:
    """Payment target."""
    address: Address
    amount: Satoshi

    def __post_init__(self) -> None:
        if not self.address:
            raise ValidationError("Destination address cannot be empty")
        object.__setattr__(self, "amount", validate_amount(self.amount))


@dataclass(frozen=True)
class ChangeTarget:
    """Where leftover value returns."""
    path: DerivationPath
    address: Address

    def __post_init__(self) -> None:
        if not self.address:
            raise ValidationError("Change address cannot be empty")
        object.__setattr__(self, "path", DerivationPath.parse(self.path))


@dataclass(frozen=True)
class SignedTransaction:
    """Fully signed, serialized transaction."""

    raw: bytes
    network: Network = Network.MAINNET
    _layout: Tuple[int, int, int, int] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "_layout", self._parse_layout(self.raw))

    @staticmethod
    def _parse_layout(raw: bytes) -> Tuple[int, int, int, int]:
        """Return (version, input count, output count, locktime)."""
        try:
            version = struct.unpack_from("<i", raw, 0)[0]
            input_count, offset = decode_varint(raw, 4)
            for _ in range(input_count):
                offset += 36
                script_length, offset = decode_varint(raw, offset)
                offset += script_length + 4
            output_count, offset = decode_varint(raw, offset)
            for _ in range(output_count):
                offset += 8
                script_length, offset = decode_varint(raw, offset)
                offset += script_length
            locktime = struct.unpack_from("<I", raw, offset)[0]
        except (IndexError, struct.error) as e:
            raise SerializationError(f"Malformed transaction: {e}") from e
        if offset + 4 != len(raw):
            raise SerializationError("Malformed transaction: trailing bytes")
        return version, input_count, output_count, locktime

    @property
    def hex(self) -> HexStr:
        return HexStr(self.raw.hex())

    @property
    def txid(self) -> TxId:
        """Transaction ID (reversed double SHA256 of the raw bytes)."""
        return TxId(double_sha256(self.raw)[::-1].hex())

    @property
    def size(self) -> int:
        return len(self.raw)

    @property
    def version(self) -> int:
        return self._layout[0]

    @property
    def input_count(self) -> int:
        return self._layout[1]

    @property
    def output_count(self) -> int:
        return self._layout[2]

    @property
    def locktime(self) -> int:
        return self._layout[3]

    def __str__(self) -> str:
        return self.hex
