"""Transaction builder driving a hardware signing device."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, AsyncIterator, Awaitable, Callable, Iterable, List, Optional, Tuple, Union

from .constants import (
    DEFAULT_LOCKTIME,
    DEFAULT_SEQUENCE,
    PROGRESS_STEPS,
    TRANSACTION_VERSION,
    Network,
)
from .crypto.signature import canonicalize_signature
from .device.base import DeviceSigningPort
from .exceptions import (
    ConfigurationError,
    DeviceError,
    InsufficientFundsError,
    TransactionError,
    ValidationError,
    ValidationRequiredError,
)
from .types.common import Address, Satoshi
from .types.device import TrustedInput, ValidationRequest
from .types.path import DerivationPath
from .types.transaction import ChangeTarget, Destination, SignedTransaction, Utxo
from .utils.encoding import bytes_to_hex
from .utils.script import address_to_script, build_script_sig
from .utils.validation import to_uncompressed_public_key, validate_address, validate_amount
from .utils.writer import BytesWriter

__all__ = ["Phase", "SigningOutcome", "TransactionBuilder"]

logger = logging.getLogger(__name__)

ProgressHandler = Callable[[int, int], Any]


class Phase(IntEnum):
    """Signing pipeline phases, in execution order."""

    COMPUTE_CHANGE = 1
    PREPARE_OUTPUTS = 2
    FETCH_TRUSTED_INPUTS = 3
    SIGN_INPUTS = 4
    BUILD_TRANSACTION = 5


@dataclass
class _PipelineState:
    """Artifacts produced so far. Each field is written once, when its phase completes."""

    change_value: Optional[Satoshi] = None
    raw_outputs: Optional[bytes] = None
    trusted_inputs: Optional[Tuple[TrustedInput, ...]] = None
    signatures: Optional[Tuple[bytes, ...]] = None

    @property
    def phase(self) -> Phase:
        if self.change_value is None:
            return Phase.COMPUTE_CHANGE
        if self.raw_outputs is None:
            return Phase.PREPARE_OUTPUTS
        if self.trusted_inputs is None:
            return Phase.FETCH_TRUSTED_INPUTS
        if self.signatures is None:
            return Phase.SIGN_INPUTS
        return Phase.BUILD_TRANSACTION


@dataclass(frozen=True)
class SigningOutcome:
    """Result of ``TransactionBuilder.try_sign``: a transaction or a 2FA request."""

    transaction: Optional[SignedTransaction] = None
    validation_request: Optional[ValidationRequest] = None

    @property
    def needs_validation(self) -> bool:
        return self.validation_request is not None


class TransactionBuilder:
    """
    Builds and signs a transaction with a hardware signing device.

    Configure the builder, then call ``sign()``. The pipeline runs five
    phases (see ``Phase``), each gated on the artifact of the previous one.
    When the device asks for second factor validation, ``sign()`` raises
    ``ValidationRequiredError``; pass the answer to
    ``complete_second_factor()`` and call ``sign()`` again on the same
    builder. Outputs and trusted inputs are reused, signing restarts at the
    first input.

    Example:
        >>> builder = (
        ...     TransactionBuilder(device)
        ...     .spend(utxo)
        ...     .to("1BoatSLRHtKNngkdXEeobR76b53LETtpyT", 50_000)
        ...     .fees(1_000)
        ...     .change("m/44'/0'/0'/1/0", change_address)
        ... )
        >>> tx = await builder.sign()

    A builder serves one transaction attempt and must not be shared
    between concurrent tasks.
    """

    def __init__(
        self,
        device: DeviceSigningPort,
        network: Network = Network.MAINNET,
    ) -> None:
        """
        Initialize builder.

        Args:
            device: Signing device the inputs belong to
            network: Network used to encode output scripts
        """
        self._device = device
        self._network = network
        self._logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

        # Configuration
        self._utxos: List[Utxo] = []
        self._destinations: List[Destination] = []
        self._fee: Optional[Satoshi] = None
        self._change: Optional[ChangeTarget] = None
        self._second_factor_answer: Optional[bytes] = None
        self._progress: Optional[Tuple[ProgressHandler, asyncio.AbstractEventLoop]] = None

        # Progression
        self._state = _PipelineState()
        self._validation_request: Optional[ValidationRequest] = None
        self._running = False

    # Configuration

    def spend(self, *utxos: Utxo) -> "TransactionBuilder":
        """Add one or more UTXOs to the spend set."""
        self._check_mutable()
        for utxo in utxos:
            if any(existing.outpoint == utxo.outpoint for existing in self._utxos):
                raise ValidationError(f"UTXO {utxo.outpoint} is already spent by this builder")
            self._utxos.append(utxo)
        return self

    def spend_all(self, utxos: Iterable[Utxo]) -> "TransactionBuilder":
        return self.spend(*utxos)

    def to(self, address: Union[Address, str], amount: int) -> "TransactionBuilder":
        """Add a payment. Destinations are serialized in the order they are added."""
        self._check_mutable()
        validate_address(address, self._network)
        self._destinations.append(Destination(Address(address), Satoshi(amount)))
        return self

    def fees(self, amount: int) -> "TransactionBuilder":
        self._check_mutable()
        self._fee = validate_amount(amount, allow_zero=True)
        return self

    def change(
        self,
        path: Union[DerivationPath, str],
        address: Union[Address, str],
    ) -> "TransactionBuilder":
        """Set where leftover value returns."""
        self._check_mutable()
        validate_address(address, self._network)
        self._change = ChangeTarget(DerivationPath.parse(path), Address(address))
        return self

    def complete_second_factor(self, answer: Union[bytes, str]) -> "TransactionBuilder":
        """Supply the answer to the device's second factor validation request."""
        if isinstance(answer, str):
            answer = answer.encode("utf-8")
        if not answer:
            raise ValidationError("Second factor answer cannot be empty")
        self._second_factor_answer = bytes(answer)
        return self

    def on_progress(
        self,
        handler: ProgressHandler,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> "TransactionBuilder":
        """
        Register a progress handler called with ``(step, total)``.

        The handler is scheduled on ``loop`` (the running loop when omitted)
        after each completed phase, never called inline from a device call.
        """
        if loop is None:
            try:
                loop = asyncio.get_running_loop()
            except RuntimeError as e:
                raise ConfigurationError(
                    "No running event loop; pass loop= to on_progress", field="loop"
                ) from e
        self._progress = (handler, loop)
        return self

    @property
    def network(self) -> Network:
        return self._network

    @network.setter
    def network(self, network: Network) -> None:
        self._check_mutable()
        addresses = [d.address for d in self._destinations]
        if self._change is not None:
            addresses.append(self._change.address)
        for address in addresses:
            validate_address(address, network)
        self._network = network

    @property
    def utxos(self) -> Tuple[Utxo, ...]:
        return tuple(self._utxos)

    @property
    def destinations(self) -> Tuple[Destination, ...]:
        return tuple(self._destinations)

    @property
    def fee(self) -> Optional[Satoshi]:
        return self._fee

    @property
    def change_target(self) -> Optional[ChangeTarget]:
        return self._change

    @property
    def change_value(self) -> Optional[Satoshi]:
        return self._state.change_value

    @property
    def current_phase(self) -> Phase:
        return self._state.phase

    @property
    def validation_request(self) -> Optional[ValidationRequest]:
        """Pending second factor request, if the last pass was interrupted."""
        return self._validation_request

    @property
    def is_started(self) -> bool:
        return self._running or self._state.change_value is not None

    def _check_mutable(self) -> None:
        if self.is_started:
            raise ConfigurationError("Configuration cannot change once signing has started")

    @property
    def _needs_change_output(self) -> bool:
        return bool(self._state.change_value)

    # Signature

    async def sign(self) -> SignedTransaction:
        """
        Run the pipeline to completion.

        Returns:
            Signed transaction

        Raises:
            ConfigurationError: If fee, change, UTXOs or destinations are missing
            InsufficientFundsError: If inputs do not cover outputs and fee
            ValidationRequiredError: If the device needs second factor validation
            DeviceError: If the device rejects a request or cannot be reached
        """
        async with self._exclusive():
            while True:
                transaction = await self._advance()
                if transaction is not None:
                    return transaction

    async def step(self) -> Optional[SignedTransaction]:
        """Run exactly one phase. Returns the transaction once the last phase ran."""
        async with self._exclusive():
            return await self._advance()

    async def try_sign(self) -> SigningOutcome:
        """Like ``sign()`` but reports a second factor request as a value."""
        try:
            return SigningOutcome(transaction=await self.sign())
        except ValidationRequiredError as e:
            return SigningOutcome(validation_request=e.request)

    @contextlib.asynccontextmanager
    async def _exclusive(self) -> AsyncIterator[None]:
        if self._running:
            raise TransactionError("Signing is already in progress on this builder")
        self._running = True
        try:
            yield
        except ValidationRequiredError:
            raise
        except Exception:
            # Only a second factor interruption keeps partial progress
            self._reset()
            raise
        finally:
            self._running = False

    async def _advance(self) -> Optional[SignedTransaction]:
        phase = self._state.phase
        self._logger.debug(f"Running phase {phase.name}")

        transaction = None
        if phase is Phase.COMPUTE_CHANGE:
            self._compute_change_value()
        elif phase is Phase.PREPARE_OUTPUTS:
            self._prepare_outputs()
        elif phase is Phase.FETCH_TRUSTED_INPUTS:
            # The device keeps session state between calls, hold it for the whole pass
            async with self._device.lock:
                await self._fetch_trusted_inputs()
        elif phase is Phase.SIGN_INPUTS:
            async with self._device.lock:
                await self._sign_inputs()
        else:
            transaction = self._build_transaction()

        self._notify_progress(phase)
        return transaction

    def _compute_change_value(self) -> None:
        if self._fee is None:
            raise ConfigurationError("You must set fees before signing", field="fee")
        if self._change is None:
            raise ConfigurationError("You must set a change before signing", field="change")
        if not self._utxos:
            raise ConfigurationError("You must use at least one UTXO", field="utxos")
        if not self._destinations:
            raise ConfigurationError("You must have at least one output", field="destinations")

        available = sum(utxo.value for utxo in self._utxos)
        required = sum(destination.amount for destination in self._destinations) + self._fee
        change_value = available - required
        if change_value < 0:
            raise InsufficientFundsError(required, available)

        self._logger.info(
            f"Spending {available} sats from {len(self._utxos)} inputs, "
            f"fee {self._fee}, change {change_value}"
        )
        self._state.change_value = Satoshi(change_value)

    def _prepare_outputs(self) -> None:
        outputs = [(d.address, d.amount) for d in self._destinations]
        if self._needs_change_output:
            outputs.append((self._change.address, self._state.change_value))

        writer = BytesWriter()
        writer.write_var_int(len(outputs))
        for address, amount in outputs:
            script = address_to_script(address, self._network)
            writer.write_le_long(amount)
            writer.write_var_int(len(script))
            writer.write_bytes(script)

        self._state.raw_outputs = writer.to_bytes()

    async def _fetch_trusted_inputs(self) -> None:
        trusted_inputs = []
        for utxo in self._utxos:
            trusted_input = await self._call_device(
                "get_trusted_input", self._device.get_trusted_input, utxo
            )
            trusted_inputs.append(trusted_input)
        self._state.trusted_inputs = tuple(trusted_inputs)

    async def _sign_inputs(self) -> None:
        answer = self._second_factor_answer
        trusted_inputs = list(self._state.trusted_inputs)
        first = self._destinations[0]
        captured = None
        signatures = []

        for index, utxo in enumerate(self._utxos):
            await self._call_device(
                "start_untrusted_transaction",
                self._device.start_untrusted_transaction,
                index == 0 and answer is None,
                index,
                trusted_inputs,
                utxo.script_pubkey,
            )
            result = await self._call_device(
                "finalize_input",
                self._device.finalize_input,
                self._state.raw_outputs,
                first.address,
                first.amount,
                self._fee,
                self._change.path,
                self._needs_change_output,
            )
            # Only the first input's response decides on validation
            if captured is None:
                captured = result
            if captured.needs_validation:
                self._validation_request = captured.validation
                self._logger.info("Device requires second factor validation")
                raise ValidationRequiredError(captured.validation)

            raw_signature = await self._call_device(
                "untrusted_hash_sign",
                self._device.untrusted_hash_sign,
                utxo.path,
                answer or b"",
            )
            signatures.append(canonicalize_signature(raw_signature))

        self._validation_request = None
        self._state.signatures = tuple(signatures)

    def _build_transaction(self) -> SignedTransaction:
        transaction = BytesWriter()

        transaction.write_le_int(TRANSACTION_VERSION)
        transaction.write_var_int(len(self._utxos))
        for utxo, signature in zip(self._utxos, self._state.signatures):
            transaction.write_reversed_bytes(utxo.outpoint.hash_bytes)
            transaction.write_le_int(utxo.vout)
            script_sig = build_script_sig(signature, to_uncompressed_public_key(utxo.public_key))
            transaction.write_var_int(len(script_sig))
            transaction.write_bytes(script_sig)
            transaction.write_le_int(DEFAULT_SEQUENCE)
        transaction.write_bytes(self._state.raw_outputs)
        transaction.write_le_int(DEFAULT_LOCKTIME)

        raw = transaction.to_bytes()
        self._logger.debug(f"Create {bytes_to_hex(raw)}")
        return SignedTransaction(raw, self._network)

    async def _call_device(self, name: str, operation: Callable[..., Awaitable[Any]], *args: Any) -> Any:
        """Run one device operation. The caller holds the device lock."""
        self._logger.debug(f"Device call {name}")
        try:
            return await operation(*args)
        except DeviceError as e:
            self._logger.error(f"Device call {name} failed: {e}")
            raise

    def _notify_progress(self, phase: Phase) -> None:
        if self._progress is None:
            return
        handler, loop = self._progress
        try:
            loop.call_soon_threadsafe(handler, int(phase), PROGRESS_STEPS)
        except RuntimeError as e:
            # Loop closed since on_progress
            self._logger.warning(f"Progress for phase {phase.name} dropped: {e}")

    def _reset(self) -> None:
        self._state = _PipelineState()
        self._validation_request = None

    def __repr__(self) -> str:
        return (
            f"TransactionBuilder(inputs={len(self._utxos)}, "
            f"outputs={len(self._destinations)}, phase={self.current_phase.name})"
        )

