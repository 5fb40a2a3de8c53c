"""
Coordinator errors.

This module defines a small, typed hierarchy of exceptions raised by the
request/fulfilment pipeline (quote → open → close → dispatch → refund).
Callers can catch the base `CoordinatorError` to handle every protocol
rejection, or catch the concrete subclasses for more granular control.

Every protocol error carries:
  code:     short machine-readable code string (stable, used by RPC)
  message:  human-readable message
  context:  ordered mapping of the error's arguments
  selector: 4-byte identifier derived from the error signature

`encode()` renders the error the way a custom-error revert travels on the
wire (selector followed by one 32-byte word per argument), which is what a
consumer callback exposes when one of these errors escapes it.

Execution-level failures (`Revert`, `OutOfGas`, `TransferFailed`) are kept
separate: they describe what happened inside an untrusted call, not a
rejected coordinator operation. `OutOfGas` is not an `Exception` at all.
"""

from __future__ import annotations

from hashlib import sha3_256
from typing import Any, Dict

from .constants import SELECTOR_LEN, WORD_BYTES


def _encode_word(value: Any) -> bytes:
    if isinstance(value, bool):
        return int(value).to_bytes(WORD_BYTES, "big")
    if isinstance(value, int):
        return (value % (1 << (8 * WORD_BYTES))).to_bytes(WORD_BYTES, "big")
    if isinstance(value, (bytes, bytearray)) and len(value) <= WORD_BYTES:
        # addresses / short byte strings are left-padded like ABI addresses
        return bytes(value).rjust(WORD_BYTES, b"\x00")
    # Anything that does not fit a word travels as its hash, like an indexed topic.
    if isinstance(value, (bytes, bytearray)):
        return sha3_256(bytes(value)).digest()
    if isinstance(value, str):
        return sha3_256(value.encode("utf-8", "surrogatepass")).digest()
    return sha3_256(repr(value).encode("utf-8", "backslashreplace")).digest()


class CoordinatorError(Exception):
    """Base class for all coordinator protocol errors."""

    code: str = "coordinator_error"
    signature: str = "CoordinatorError()"

    def __init__(self, message: str = "", **context: Any) -> None:
        self.context: Dict[str, Any] = dict(context)
        self.message = message or self._default_message()
        super().__init__(self.message)

    def _default_message(self) -> str:
        name = type(self).__name__
        if not self.context:
            return name
        args = " ".join(f"{k}={_fmt(v)}" for k, v in self.context.items())
        return f"{name}: {args}"

    @property
    def selector(self) -> bytes:
        return sha3_256(self.signature.encode("ascii")).digest()[:SELECTOR_LEN]

    def encode(self) -> bytes:
        """Selector followed by one 32-byte word per context argument."""
        return self.selector + b"".join(_encode_word(v) for v in self.context.values())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message,
            "context": {k: _fmt(v) for k, v in self.context.items()},
        }


def _fmt(v: Any) -> Any:
    if isinstance(v, (bytes, bytearray)):
        return "0x" + bytes(v).hex()
    return v


# --------------------------------------------------------------------------
# Oracle membership / balances
# --------------------------------------------------------------------------


class ZeroAddress(CoordinatorError):
    """An address argument was the zero address where a real account is required."""

    code = "zero_address"
    signature = "ZeroAddress()"


class NotOracle(CoordinatorError):
    """The caller is not a registered oracle.

    Context:
        caller: address that attempted an oracle-only operation.
    """

    code = "not_oracle"
    signature = "NotOracle(address)"


class OracleAlreadyRegistered(CoordinatorError):
    code = "oracle_already_registered"
    signature = "OracleAlreadyRegistered(address)"


class InsufficientOracleBalance(CoordinatorError):
    """Withdrawal larger than the oracle's credited balance."""

    code = "insufficient_oracle_balance"
    signature = "InsufficientOracleBalance(uint256,uint256)"


class WithdrawFailed(CoordinatorError):
    code = "withdraw_failed"
    signature = "WithdrawFailed(address,uint256)"


class FundingFailed(CoordinatorError):
    code = "funding_failed"
    signature = "FundingFailed()"


# --------------------------------------------------------------------------
# Pricing / request validation
# --------------------------------------------------------------------------


class InsufficientGasLimit(CoordinatorError):
    """Callback budget below the configured minimum.

    Context:
        given: requested callback budget.
        minimum: smallest accepted budget.
    """

    code = "insufficient_gas_limit"
    signature = "InsufficientGasLimit(uint32,uint32)"


class OverConsumerGasLimit(CoordinatorError):
    """Callback budget above the configured maximum.

    Context:
        given: requested callback budget.
        maximum: largest accepted budget.
    """

    code = "over_consumer_gas_limit"
    signature = "OverConsumerGasLimit(uint32,uint32)"


class InsufficientGasPayment(CoordinatorError):
    """Attached payment is below the quote.

    Context:
        paid: value attached to the request.
        required: quoted price.
    """

    code = "insufficient_gas_payment"
    signature = "InsufficientGasPayment(uint256,uint256)"


class InvalidNumWords(CoordinatorError):
    """Number of words outside [1, max] or not matching the request.

    Context:
        given: requested/provided number of words.
        expected: maximum (at request time) or recorded count (at fulfilment).
    """

    code = "invalid_num_words"
    signature = "InvalidNumWords(uint256,uint256)"


class InvalidGasPriceHistoryWindow(CoordinatorError):
    code = "invalid_gas_price_history_window"
    signature = "InvalidGasPriceHistoryWindow(uint256)"


# --------------------------------------------------------------------------
# Fulfilment
# --------------------------------------------------------------------------


class CommitmentMismatch(CoordinatorError):
    """
    The fulfilment parameters do not hash to the stored commitment.

    Raised for tampered parameters, for ids that were never opened and for
    requests that are already closed (their commitment has been erased).
    """

    code = "commitment_mismatch"
    signature = "CommitmentMismatch(uint256)"


class RequestNotFound(CoordinatorError):
    code = "request_not_found"
    signature = "RequestNotFound(uint256)"


class InvalidPublicKey(CoordinatorError):
    code = "invalid_public_key"
    signature = "InvalidPublicKey()"


class InvalidProof(CoordinatorError):
    code = "invalid_proof"
    signature = "InvalidProof()"


# --------------------------------------------------------------------------
# Consumer side
# --------------------------------------------------------------------------


class OnlyCoordinator(CoordinatorError):
    """A consumer callback was invoked by someone other than its coordinator."""

    code = "only_coordinator"
    signature = "OnlyVRFCoordinator(address,address)"


# --------------------------------------------------------------------------
# Execution-level failures (inside untrusted calls)
# --------------------------------------------------------------------------


class ExecutionError(Exception):
    """Base for failures raised while running external code or moving value."""


class Revert(ExecutionError):
    """
    Explicit revert carrying raw failure data.

    `data` is returned verbatim to the dispatcher, which classifies it.
    """

    def __init__(self, data: bytes = b"") -> None:
        if not isinstance(data, (bytes, bytearray)):
            raise TypeError("revert data must be bytes")
        self.data = bytes(data)
        super().__init__(f"revert ({len(self.data)} bytes)")


class OutOfGas(BaseException):
    """
    Raised by the gas meter when a charge would exceed the hard limit.

    Derives from BaseException so callee code written `except Exception:`
    cannot catch it; the meter also remembers the trip (`GasMeter.tripped`).
    """


class TransferFailed(ExecutionError):
    """A value transfer was rejected (insufficient funds or recipient refused)."""


__all__ = [
    "CoordinatorError",
    "ZeroAddress",
    "NotOracle",
    "OracleAlreadyRegistered",
    "InsufficientOracleBalance",
    "WithdrawFailed",
    "FundingFailed",
    "InsufficientGasLimit",
    "OverConsumerGasLimit",
    "InsufficientGasPayment",
    "InvalidNumWords",
    "InvalidGasPriceHistoryWindow",
    "CommitmentMismatch",
    "RequestNotFound",
    "InvalidPublicKey",
    "InvalidProof",
    "OnlyCoordinator",
    "ExecutionError",
    "Revert",
    "OutOfGas",
    "TransferFailed",
]
