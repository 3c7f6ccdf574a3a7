"""hwsigner exceptions hierarchy."""

from typing import Any, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .types.device import ValidationRequest

__all__ = [
    "HwSignerError",
    "ValidationError",
    "ConfigurationError",
    "TransactionError",
    "InsufficientFundsError",
    "ValidationRequiredError",
    "CryptoError",
    "SerializationError",
    "DeviceError",
    "DeviceProtocolError",
    "DeviceIOError",
]


class HwSignerError(Exception):
    """Base exception for all hwsigner errors."""

    def __init__(
        self,
        message: str,
        code: Optional[int] = None,
        data: Optional[Any] = None
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code
        self.data = data

    def __str__(self) -> str:
        if self.code:
            return f"[{self.code}] {self.message}"
        return self.message


class ValidationError(HwSignerError):
    """Raised when a value fails validation."""
    pass


class ConfigurationError(HwSignerError):
    """Raised when the builder is missing required configuration."""

    def __init__(self, message: str, field: Optional[str] = None) -> None:
        super().__init__(message)
        self.field = field


class TransactionError(HwSignerError):
    """Raised when a transaction operation fails."""
    pass


class InsufficientFundsError(TransactionError):
    """Raised when inputs do not cover outputs and fee."""

    def __init__(
        self,
        required: int,
        available: int,
        message: Optional[str] = None
    ) -> None:
        if message is None:
            message = f"Insufficient funds: required {required} sats, available {available} sats"
        super().__init__(message)
        self.required = required
        self.available = available


class ValidationRequiredError(TransactionError):
    """
    Raised when the device asks for second factor validation.

    Not a failure of the transaction: supply the answer with
    ``TransactionBuilder.complete_second_factor`` and sign again.
    """

    def __init__(self, request: "ValidationRequest") -> None:
        super().__init__("Device requires second factor validation", data=request)
        self.request = request


class CryptoError(HwSignerError):
    """Raised when a cryptographic operation fails."""
    pass


class SerializationError(HwSignerError):
    """Raised when serialization/deserialization fails."""
    pass


class DeviceError(HwSignerError):
    """Base class for signing device failures."""
    pass


class DeviceProtocolError(DeviceError):
    """Raised when the device rejects a request or returns malformed data."""
    pass


class DeviceIOError(DeviceError):
    """Raised by transports when communication with the device fails."""
    pass
