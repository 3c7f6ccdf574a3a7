"""In-memory signing device backed by a BIP32 seed."""

import hashlib
import hmac
import secrets
import struct
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from ..constants import (
    DEFAULT_LOCKTIME,
    DEFAULT_SEQUENCE,
    SECP256K1_ORDER,
    SIGHASH_ALL,
    TRANSACTION_VERSION,
    Network,
)
from ..crypto.hd import HDNode
from ..crypto.signature import encode_der_signature
from ..device.base import DeviceSigningPort
from ..exceptions import DeviceProtocolError, ValidationError
from ..types.common import Address, Satoshi
from ..types.device import FinalizeResult, TrustedInput, ValidationRequest
from ..types.path import DerivationPath
from ..types.transaction import Utxo
from ..utils.encoding import decode_varint, double_sha256, encode_address, hash160
from ..utils.script import address_to_script
from ..utils.writer import BytesWriter

__all__ = ["SoftwareSigningDevice"]

TRUSTED_INPUT_MAGIC = b"\x32\x00"
TRUSTED_INPUT_MAC_SIZE = 8
# magic + outpoint + value + mac
TRUSTED_INPUT_SIZE = 2 + 36 + 8 + TRUSTED_INPUT_MAC_SIZE


@dataclass
class _Session:
    """Untrusted transaction hash state."""
    inputs: List[Tuple[bytes, int]]
    input_index: Optional[int] = None
    redeem_script: bytes = b""
    outputs: Optional[bytes] = None
    validation: Optional[bytes] = None
    authorized: bool = False


class SoftwareSigningDevice(DeviceSigningPort):
    """
    Software emulation of a hardware signing device.

    Keys are derived from ``seed``. Trusted inputs are authenticated with a
    per-instance HMAC key, so blobs from another device are rejected.
    Signatures come back in device form: DER with the parity of R in the
    sequence tag and the sighash type appended.

    When ``second_factor`` is set, the first output finalization of every
    new transaction returns a ``ValidationRequest`` and signing then requires
    ``second_factor`` as the authorization answer.
    """

    def __init__(
        self,
        seed: bytes,
        network: Network = Network.MAINNET,
        second_factor: Optional[bytes] = None,
        high_s: bool = False,
    ) -> None:
        super().__init__()
        self.network = network
        self._master = HDNode.from_seed(seed)
        self._second_factor = second_factor
        self._high_s = high_s
        self._attestation_key = secrets.token_bytes(32)
        self._session: Optional[_Session] = None

    # Wallet helpers

    def public_key(self, path: DerivationPath, compressed: bool = False) -> bytes:
        return self._master.derive_path(path).public_key(compressed=compressed)

    def address(self, path: DerivationPath) -> Address:
        """P2PKH address of the uncompressed key at ``path``."""
        return encode_address("p2pkh", hash160(self.public_key(path)), self.network)

    def output_script(self, path: DerivationPath) -> bytes:
        return address_to_script(self.address(path), self.network)

    # Device operations

    async def get_trusted_input(self, utxo: Utxo) -> TrustedInput:
        if utxo.previous_transaction is not None:
            txid = double_sha256(utxo.previous_transaction)[::-1].hex()
            if txid != utxo.txid:
                raise DeviceProtocolError(f"Previous transaction does not hash to {utxo.txid}")

        body = TRUSTED_INPUT_MAGIC + utxo.outpoint.bytes + struct.pack("<Q", utxo.value)
        self._logger.debug(f"Trusted input issued for {utxo.outpoint}")
        return TrustedInput(body + self._mac(body))

    async def start_untrusted_transaction(
        self,
        is_new_transaction: bool,
        input_index: int,
        trusted_inputs: Sequence[TrustedInput],
        redeem_script: bytes,
    ) -> None:
        inputs = [self._open_trusted_input(item) for item in trusted_inputs]
        if not 0 <= input_index < len(inputs):
            raise DeviceProtocolError(f"Input index {input_index} out of range")

        if is_new_transaction:
            self._session = _Session(inputs=inputs)
        elif self._session is None:
            raise DeviceProtocolError("No untrusted transaction in progress")
        elif self._session.inputs != inputs:
            raise DeviceProtocolError("Trusted inputs differ from the transaction in progress")

        self._session.input_index = input_index
        self._session.redeem_script = redeem_script
        self._session.outputs = None

    async def finalize_input(
        self,
        outputs: bytes,
        first_address: Address,
        first_amount: Satoshi,
        fee: Satoshi,
        change_path: DerivationPath,
        has_change_output: bool,
    ) -> FinalizeResult:
        session = self._require_session()
        parsed = self._parse_outputs(outputs)

        try:
            first_script = address_to_script(first_address, self.network)
        except ValidationError as e:
            raise DeviceProtocolError(f"Rejected destination address: {e}") from e
        if parsed[0] != (first_amount, first_script):
            raise DeviceProtocolError("First output does not match the displayed destination")

        if has_change_output and parsed[-1][1] != self.output_script(change_path):
            raise DeviceProtocolError(f"Change output does not pay to {change_path}")

        spent = sum(value for _, value in session.inputs)
        paid = sum(value for value, _ in parsed)
        if spent - paid != fee:
            raise DeviceProtocolError(f"Fee mismatch: inputs leave {spent - paid}, expected {fee}")

        session.outputs = outputs

        if self._second_factor is not None and not session.authorized and session.validation is None:
            session.validation = secrets.token_bytes(8)
            self._logger.info("Second factor validation requested")
            return FinalizeResult(ValidationRequest(session.validation))

        return FinalizeResult()

    async def untrusted_hash_sign(
        self,
        path: DerivationPath,
        authorization: bytes,
    ) -> bytes:
        session = self._require_session()
        if session.outputs is None:
            raise DeviceProtocolError("Outputs were not finalized")

        if session.validation is not None and not session.authorized:
            if not hmac.compare_digest(authorization, self._second_factor):
                raise DeviceProtocolError("Invalid second factor answer")
            session.authorized = True

        digest = double_sha256(self._signature_preimage(session))
        recoverable = self._master.derive_path(path).signing_key.sign_recoverable(digest, hasher=None)
        r = int.from_bytes(recoverable[:32], "big")
        s = int.from_bytes(recoverable[32:64], "big")
        if self._high_s:
            s = SECP256K1_ORDER - s

        signature = bytearray(encode_der_signature(r, s, SIGHASH_ALL))
        signature[0] |= recoverable[64] & 0x01

        session.input_index = None
        session.outputs = None
        return bytes(signature)

    # Internals

    def _mac(self, body: bytes) -> bytes:
        return hmac.new(self._attestation_key, body, hashlib.sha256).digest()[:TRUSTED_INPUT_MAC_SIZE]

    def _open_trusted_input(self, trusted_input: TrustedInput) -> Tuple[bytes, int]:
        data = trusted_input.data
        if len(data) != TRUSTED_INPUT_SIZE or not data.startswith(TRUSTED_INPUT_MAGIC):
            raise DeviceProtocolError("Malformed trusted input")
        body, mac = data[:-TRUSTED_INPUT_MAC_SIZE], data[-TRUSTED_INPUT_MAC_SIZE:]
        if not hmac.compare_digest(mac, self._mac(body)):
            raise DeviceProtocolError("Trusted input was not issued by this device")
        return body[2:38], struct.unpack("<Q", body[38:46])[0]

    def _require_session(self) -> _Session:
        if self._session is None or self._session.input_index is None:
            raise DeviceProtocolError("No input selected for signing")
        return self._session

    @staticmethod
    def _parse_outputs(outputs: bytes) -> List[Tuple[int, bytes]]:
        try:
            count, offset = decode_varint(outputs)
            parsed = []
            for _ in range(count):
                value = struct.unpack_from("<Q", outputs, offset)[0]
                length, offset = decode_varint(outputs, offset + 8)
                script = outputs[offset:offset + length]
                if len(script) != length:
                    raise ValueError("truncated script")
                parsed.append((value, script))
                offset += length
        except (IndexError, ValueError, struct.error) as e:
            raise DeviceProtocolError(f"Malformed outputs: {e}") from e
        if not parsed or offset != len(outputs):
            raise DeviceProtocolError("Malformed outputs")
        return parsed

    @staticmethod
    def _signature_preimage(session: _Session) -> bytes:
        """Legacy SIGHASH_ALL preimage for the selected input."""
        writer = BytesWriter()
        writer.write_le_int(TRANSACTION_VERSION)
        writer.write_var_int(len(session.inputs))
        for index, (outpoint, _) in enumerate(session.inputs):
            writer.write_bytes(outpoint)
            if index == session.input_index:
                writer.write_var_int(len(session.redeem_script))
                writer.write_bytes(session.redeem_script)
            else:
                writer.write_var_int(0)
            writer.write_le_int(DEFAULT_SEQUENCE)
        writer.write_bytes(session.outputs)
        writer.write_le_int(DEFAULT_LOCKTIME)
        writer.write_le_int(SIGHASH_ALL)
        return writer.to_bytes()
