"""Type definitions for hwsigner."""

# Common types
from ..types.common import (
    HexStr,
    Satoshi,
    TxId,
    Address,
    PublicKeyBytes,
    Signature,
)

from ..types.path import DerivationPath

# Device artifacts
from ..types.device import (
    TrustedInput,
    ValidationRequest,
    FinalizeResult,
)

# Transaction types
from ..types.transaction import (
    OutPoint,
    Utxo,
    Destination,
    ChangeTarget,
    SignedTransaction,
)

__all__ = [
    # Common
    "HexStr",
    "Satoshi",
    "TxId",
    "Address",
    "PublicKeyBytes",
    "Signature",
    "DerivationPath",

    # Device
    "TrustedInput",
    "ValidationRequest",
    "FinalizeResult",

    # Transaction
    "OutPoint",
    "Utxo",
    "Destination",
    "ChangeTarget",
    "SignedTransaction",
]
