"""
hwsigner

Build and sign Bitcoin transactions whose keys live on a hardware signing
device, including the device's second factor validation round-trip.
"""

from .builder import Phase, SigningOutcome, TransactionBuilder
from .constants import Network
from .device import DeviceSigningPort, SoftwareSigningDevice
from .exceptions import (
    HwSignerError,
    ValidationError,
    ConfigurationError,
    TransactionError,
    InsufficientFundsError,
    ValidationRequiredError,
    DeviceError,
    DeviceProtocolError,
    DeviceIOError,
)
from .types import (
    DerivationPath,
    Utxo,
    Destination,
    ChangeTarget,
    SignedTransaction,
    TrustedInput,
    ValidationRequest,
    FinalizeResult,
)

__version__ = "1.0.0"

__all__ = [
    # Builder
    "TransactionBuilder",
    "Phase",
    "SigningOutcome",
    "build_transaction",

    # Network
    "Network",

    # Devices
    "DeviceSigningPort",
    "SoftwareSigningDevice",

    # Exceptions
    "HwSignerError",
    "ValidationError",
    "ConfigurationError",
    "TransactionError",
    "InsufficientFundsError",
    "ValidationRequiredError",
    "DeviceError",
    "DeviceProtocolError",
    "DeviceIOError",

    # Types
    "DerivationPath",
    "Utxo",
    "Destination",
    "ChangeTarget",
    "SignedTransaction",
    "TrustedInput",
    "ValidationRequest",
    "FinalizeResult",
]


def build_transaction(
    device: DeviceSigningPort,
    network: Network = Network.MAINNET,
) -> TransactionBuilder:
    """
    Start a new transaction signed by ``device``.

    Args:
        device: Signing device holding the input keys
        network: Network of the addresses involved

    Returns:
        Fresh TransactionBuilder

    Example:
        >>> builder = hwsigner.build_transaction(device)
        >>> tx = await builder.spend(utxo).to(address, 50_000).fees(1_000).change(path, change).sign()
    """
    return TransactionBuilder(device, network=network)
