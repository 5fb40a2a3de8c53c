from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, NewType, Tuple

"""
Core typed records for the coordinator.

Types provided:
  • RequestId:         unsigned 256-bit identifier of a randomness request
  • Request:           immutable row describing an accepted request
  • CallbackStatus:    PENDING / SUCCESS / FAILURE per request
  • FulfillmentStats:  aggregate counters (pending is derived)
  • RequestResult:     (was_success, was_fulfilled) view of a request
  • DispatchResult:    outcome of one consumer callback
"""

RequestId = NewType("RequestId", int)

# Internal constants (kept local to avoid import cycles)
_ADDR = 20
_U256_MAX = (1 << 256) - 1


def _require_len(name: str, b: bytes, n: int) -> None:
    if len(b) != n:
        raise ValueError(f"{name} must be exactly {n} bytes (got {len(b)})")


def _require_nonneg(name: str, v: int) -> None:
    if v < 0:
        raise ValueError(f"{name} must be non-negative (got {v})")


class CallbackStatus(IntEnum):
    PENDING = 0
    SUCCESS = 1
    FAILURE = 2


@dataclass(frozen=True, slots=True)
class Request:
    """
    An accepted randomness request.

    Fields:
      id             : request id (u256)
      consumer       : address that requested and receives the callback
      callback_budget: gas the consumer callback may use
      num_words      : number of 256-bit words to deliver
      gas_price_paid : unit price snapshotted at request time
      refundee       : where unused budget is refunded (zero = no refund)
      requested_at   : host timestamp of the request
      fulfilled      : set once, when the request is closed
      payment        : quoted price retained for the request
    """

    id: int
    consumer: bytes
    callback_budget: int
    num_words: int
    gas_price_paid: int
    refundee: bytes
    requested_at: int
    fulfilled: bool = False
    payment: int = 0

    def __post_init__(self) -> None:  # type: ignore[override]
        if not (0 <= self.id <= _U256_MAX):
            raise ValueError("id must be a u256")
        for name in ("consumer", "refundee"):
            v = getattr(self, name)
            if not isinstance(v, (bytes, bytearray)):
                raise TypeError(f"{name} must be bytes")
            _require_len(name, v, _ADDR)
        for name in ("callback_budget", "num_words", "gas_price_paid", "requested_at", "payment"):
            _require_nonneg(name, getattr(self, name))

    @classmethod
    def empty(cls, request_id: int) -> "Request":
        """Zeroed row returned by read-only views for ids that were never opened."""
        zero = b"\x00" * _ADDR
        return cls(request_id, zero, 0, 0, 0, zero, 0)

    @property
    def exists(self) -> bool:
        return self.consumer != b"\x00" * _ADDR

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": hex(self.id),
            "consumer": "0x" + self.consumer.hex(),
            "callbackBudget": self.callback_budget,
            "numWords": self.num_words,
            "gasPricePaid": self.gas_price_paid,
            "refundee": "0x" + self.refundee.hex(),
            "requestedAt": self.requested_at,
            "fulfilled": self.fulfilled,
            "payment": self.payment,
        }


@dataclass(frozen=True, slots=True)
class FulfillmentStats:
    """Aggregate counters; `pending` is always total - successes - failures."""

    total: int = 0
    successes: int = 0
    failures: int = 0
    total_words_requested: int = 0

    @property
    def pending(self) -> int:
        return self.total - self.successes - self.failures

    def to_dict(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "pending": self.pending,
            "successes": self.successes,
            "failures": self.failures,
            "totalWordsRequested": self.total_words_requested,
        }


@dataclass(frozen=True, slots=True)
class RequestResult:
    was_success: bool
    was_fulfilled: bool

    def as_tuple(self) -> Tuple[bool, bool]:
        return (self.was_success, self.was_fulfilled)


@dataclass(frozen=True, slots=True)
class DispatchResult:
    """
    Outcome of delivering words to a consumer.

      success         : the callback returned normally within its budget
      raw_failure_data: revert payload on failure (empty for out-of-gas)
      gas_used        : gas charged to the callback
    """

    success: bool
    raw_failure_data: bytes
    gas_used: int


__all__ = [
    "RequestId",
    "CallbackStatus",
    "Request",
    "FulfillmentStats",
    "RequestResult",
    "DispatchResult",
]
