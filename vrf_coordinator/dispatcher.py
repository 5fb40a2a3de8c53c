"""
Callback dispatcher: deliver random words to an untrusted consumer.

The consumer's `raw_fulfill_random_words(ctx, request_id, words, meter)` runs
under a GasMeter limited to the request's callback budget, charged per
executed instruction (`instruction_gas`) on top of the callee's own
`consume` calls. It also runs inside a host checkpoint, so a failing callee
leaves no balance movements, events or coordinator state behind.

Failure payloads
----------------
- `Revert(data)`            -> data, verbatim
- `OutOfGas`                -> empty (whole budget charged); this also
                               applies when the meter tripped but the
                               callee caught OutOfGas and carried on
- CoordinatorError subclass -> custom-error selector + encoded args
- any other Exception       -> standard Error(string) with the message

The payload is then classified by `abi.classify_failure` for the
`DebugFulfillment` reason (cut to MAX_REASON_LEN characters), and its leading selector becomes the
`ConsumerCallbackFailed.reason_code`.
"""

from __future__ import annotations

import logging
from typing import Sequence, Tuple

from .abi import classify_failure, encode_error_string, reason_code
from .constants import CALLBACK_INSTRUCTION_GAS, MAX_REASON_LEN, REASON_SUCCESS
from .context import CallContext
from .errors import CoordinatorError, OutOfGas, Revert
from .events import CONSUMER_CALLBACK_FAILED, DEBUG_FULFILLMENT, RANDOM_WORDS_FULFILLED
from .gasmeter import GasMeter
from .host import Host
from .stats import StatsAggregator
from .store import State
from .types import DispatchResult

logger = logging.getLogger(__name__)

CALLBACK_ENTRYPOINT = "raw_fulfill_random_words"


def capture_failure(exc: BaseException) -> bytes:
    """Raw revert data a caught callee exception exposes. Never raises."""
    if isinstance(exc, Revert):
        return exc.data
    if isinstance(exc, OutOfGas):
        return b""
    if isinstance(exc, CoordinatorError):
        try:
            return exc.encode()
        except Exception as e:
            # A callee-defined subclass can break its own selector.
            logger.debug("unencodable %s: %r", type(exc).__name__, e)
    try:
        message = str(exc)
    except Exception:
        message = type(exc).__name__
    return encode_error_string(message)


def clip_reason(reason: str) -> str:
    if len(reason) <= MAX_REASON_LEN:
        return reason
    return reason[: MAX_REASON_LEN - 3] + "..."


class CallbackDispatcher:
    def __init__(
        self,
        host: Host,
        state: State,
        stats: StatsAggregator,
        *,
        coordinator_address: bytes,
        instruction_gas: int = CALLBACK_INSTRUCTION_GAS,
    ) -> None:
        self.host = host
        self._state = state
        self.stats = stats
        self.coordinator_address = bytes(coordinator_address)
        self.instruction_gas = instruction_gas

    def invoke(
        self,
        ctx: CallContext,
        consumer: bytes,
        budget: int,
        request_id: int,
        words: Sequence[int],
    ) -> Tuple[DispatchResult, int]:
        """
        Run the consumer callback in a sandbox.

        Returns (DispatchResult, remaining_gas). Never raises for callee faults.
        """
        target = self.host.code_at(consumer)
        entry = getattr(target, CALLBACK_ENTRYPOINT, None) if target is not None else None
        if entry is None:
            # A value-only account has no code to run.
            return DispatchResult(True, b"", 0), budget

        meter = GasMeter(limit=budget)
        cb_ctx = ctx.nested(self.coordinator_address)
        failure = b""
        out_of_gas = False
        try:
            with self._state.checkpoint(), self.host.checkpoint():
                meter.run(
                    entry, cb_ctx, request_id, list(words), meter,
                    step_cost=self.instruction_gas,
                )
                if meter.tripped:
                    raise OutOfGas("callback returned after running out of gas")
        except OutOfGas as e:
            out_of_gas = True
            logger.debug("callback out of gas id=%#x: %s", request_id, e)
        except Exception as e:
            failure = capture_failure(e)
            logger.debug("callback failed id=%#x: %r", request_id, e)
        else:
            return DispatchResult(True, b"", meter.used), meter.remaining

        if out_of_gas or meter.tripped:
            meter.exhaust()
            failure = b""
        return DispatchResult(False, failure, meter.used), meter.remaining

    def dispatch(
        self,
        ctx: CallContext,
        consumer: bytes,
        budget: int,
        request_id: int,
        words: Sequence[int],
    ) -> DispatchResult:
        """
        Deliver `words`, record the outcome and emit the fulfilment events.

        `ctx.sender` is the oracle presenting the fulfilment.
        """
        result, remaining = self.invoke(ctx, consumer, budget, request_id, words)
        self.stats.record_outcome(request_id, result.success)

        events = self.host.events
        if result.success:
            reason = REASON_SUCCESS
        else:
            reason = clip_reason(classify_failure(result.raw_failure_data))
            events.emit(
                CONSUMER_CALLBACK_FAILED,
                {
                    "request_id": request_id,
                    "reason_code": reason_code(result.raw_failure_data),
                    "consumer": bytes(consumer),
                    "remaining_gas": remaining,
                },
            )
        events.emit(
            RANDOM_WORDS_FULFILLED,
            {
                "request_id": request_id,
                "random_words": list(words),
                "oracle": ctx.sender,
                "success": result.success,
                "timestamp": ctx.timestamp,
            },
        )
        events.emit(
            DEBUG_FULFILLMENT,
            {"request_id": request_id, "success": result.success, "reason": reason},
        )
        return result


__all__ = ["CallbackDispatcher", "DispatchResult", "capture_failure", "clip_reason", "CALLBACK_ENTRYPOINT"]
