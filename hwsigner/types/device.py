"""Artifacts exchanged with the signing device."""

from dataclasses import dataclass
from typing import Optional

__all__ = ["TrustedInput", "ValidationRequest", "FinalizeResult"]


@dataclass(frozen=True)
class TrustedInput:
    """Device attestation binding one UTXO to the transaction being built."""
    data: bytes

    def __len__(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class ValidationRequest:
    """Opaque token describing the second factor validation the device wants."""
    data: bytes

    @property
    def hex(self) -> str:
        return self.data.hex()


@dataclass(frozen=True)
class FinalizeResult:
    """Device response to output finalization."""
    validation: Optional[ValidationRequest] = None

    @property
    def needs_validation(self) -> bool:
        return self.validation is not None
