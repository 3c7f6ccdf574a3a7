"""Base signing device interface for hwsigner."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Sequence

from ..types.common import Address, Satoshi
from ..types.device import FinalizeResult, TrustedInput
from ..types.path import DerivationPath
from ..types.transaction import Utxo

__all__ = ["DeviceSigningPort"]

logger = logging.getLogger(__name__)


class DeviceSigningPort(ABC):
    """
    Abstract interface to a hardware signing device.

    The device is a single-threaded resource that keeps session state
    between calls: callers must hold ``lock`` across a whole sequence of
    related calls (for example one signing pass) so that no other request
    reaches the device in between. Implementations raise
    ``DeviceProtocolError`` when the device rejects a request and
    ``DeviceIOError`` when the transport fails.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def lock(self) -> asyncio.Lock:
        """Single in-flight slot of the physical device."""
        return self._lock

    @abstractmethod
    async def get_trusted_input(self, utxo: Utxo) -> TrustedInput:
        """
        Obtain a trusted input attestation for ``utxo``.

        Raises:
            DeviceProtocolError: If the device rejects the UTXO reference
        """
        raise NotImplementedError

    @abstractmethod
    async def start_untrusted_transaction(
        self,
        is_new_transaction: bool,
        input_index: int,
        trusted_inputs: Sequence[TrustedInput],
        redeem_script: bytes,
    ) -> None:
        """
        Begin or resume the untrusted transaction hash for one input.

        Args:
            is_new_transaction: True only for input 0 of a fresh pass
            input_index: Input being signed
            trusted_inputs: All trusted inputs, in UTXO order
            redeem_script: Script of the previous output being spent
        """
        raise NotImplementedError

    @abstractmethod
    async def finalize_input(
        self,
        outputs: bytes,
        first_address: Address,
        first_amount: Satoshi,
        fee: Satoshi,
        change_path: DerivationPath,
        has_change_output: bool,
    ) -> FinalizeResult:
        """
        Hand the serialized outputs to the device.

        Returns:
            Result carrying a ``ValidationRequest`` when the device wants
            second factor validation
        """
        raise NotImplementedError

    @abstractmethod
    async def untrusted_hash_sign(
        self,
        path: DerivationPath,
        authorization: bytes,
    ) -> bytes:
        """
        Sign the current input with the key at ``path``.

        Args:
            path: Derivation path of the signing key
            authorization: Second factor answer, empty when none was given

        Returns:
            Raw signature as produced by the device
        """
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"
