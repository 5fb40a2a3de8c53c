from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .constants import MAX_NUM_WORDS_LIMIT

logger = logging.getLogger(__name__)

# Basic bounds (kept generous; the log is validated, not size-optimized).
MAX_EVENT_NAME_LEN = 64
MAX_KEY_LEN = 64
MAX_BYTES_LEN = 4096
MAX_STR_LEN = 4096
MAX_INT_BITS = 256
MAX_ARRAY_LEN = MAX_NUM_WORDS_LIMIT

_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9]*$")
# Keys must be identifier-like: letters/underscore, then letters/digits/underscore.
_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

ArgValue = Any  # constrained at runtime


class EventError(ValueError):
    """An event failed validation before being appended to the log."""


@dataclass
class Event:
    """In-memory representation of an emitted event."""

    name: str
    args: Dict[str, ArgValue]

    def __getitem__(self, key: str) -> ArgValue:
        return self.args[key]


@dataclass
class CanonicalEvent:
    """
    Canonical event representation for receipts:

        name: event name
        args: sequence of {"k", "t", "v"} dicts
              t="b"  => bytes encoded as 0x-prefixed hex
              t="i"  => integer
              t="z"  => boolean
              t="s"  => text
              t="ai" => array of integers
    """

    name: str
    args: Sequence[Mapping[str, Any]]

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "args": [dict(a) for a in self.args]}


def _check_int(value: int, where: str) -> int:
    if value.bit_length() > MAX_INT_BITS:
        raise EventError(f"event int arg out of range ({where})")
    return int(value)


class EventLog:
    """
    Append-only, validated event log.

    The log supports `snapshot()`/`restore()` so the host can discard the
    events of a call that failed.
    """

    def __init__(self) -> None:
        self._events: List[Event] = []

    # --- Validation helpers -------------------------------------------------

    def _check_name(self, name: Any) -> str:
        if not isinstance(name, str) or not name:
            raise EventError("event name must be a non-empty str")
        if len(name) > MAX_EVENT_NAME_LEN:
            raise EventError(f"event name too long: {len(name)}")
        if not _NAME_RE.match(name):
            raise EventError(f"event name has invalid characters: {name!r}")
        return name

    def _check_key(self, key: Any) -> str:
        if not isinstance(key, str) or not key:
            raise EventError("event key must be a non-empty str")
        if len(key) > MAX_KEY_LEN:
            raise EventError(f"event key too long: {len(key)}")
        if not _KEY_RE.match(key):
            raise EventError(f"event key has invalid characters: {key!r}")
        return key

    def _check_value(self, value: Any) -> ArgValue:
        if isinstance(value, (bytes, bytearray)):
            b = bytes(value)
            if len(b) > MAX_BYTES_LEN:
                raise EventError(f"event bytes arg too long: {len(b)}")
            return b

        if isinstance(value, bool):
            # bool is a subclass of int, so check it before int.
            return value

        if isinstance(value, int):
            return _check_int(value, "scalar")

        if isinstance(value, str):
            if len(value) > MAX_STR_LEN:
                raise EventError(f"event str arg too long: {len(value)}")
            return value

        if isinstance(value, (list, tuple)):
            if len(value) > MAX_ARRAY_LEN:
                raise EventError(f"event array arg too long: {len(value)}")
            out = []
            for item in value:
                if not isinstance(item, int) or isinstance(item, bool):
                    raise EventError("event arrays may only contain ints")
                out.append(_check_int(item, "array"))
            return tuple(out)

        raise EventError(f"unsupported event arg type: {type(value).__name__}")

    # --- Core operations ----------------------------------------------------

    def emit(self, name: str, args: Mapping[str, Any]) -> Event:
        n = self._check_name(name)
        if not isinstance(args, Mapping):
            raise EventError("event args must be a mapping")

        checked: Dict[str, ArgValue] = {}
        for raw_k, raw_v in args.items():
            checked[self._check_key(raw_k)] = self._check_value(raw_v)

        ev = Event(n, checked)
        self._events.append(ev)
        logger.debug("event %s %s", n, checked)
        return ev

    def events(self, name: Optional[str] = None) -> List[Event]:
        """All events, optionally filtered by name, in emission order."""
        if name is None:
            return list(self._events)
        return [e for e in self._events if e.name == name]

    def last(self, name: str) -> Optional[Event]:
        for ev in reversed(self._events):
            if ev.name == name:
                return ev
        return None

    def __len__(self) -> int:
        return len(self._events)

    # --- Checkpoints --------------------------------------------------------

    def snapshot(self) -> int:
        return len(self._events)

    def restore(self, mark: int) -> None:
        if not isinstance(mark, int) or mark < 0 or mark > len(self._events):
            raise EventError(f"invalid event log snapshot: {mark!r}")
        del self._events[mark:]

    # --- Receipt encoding ---------------------------------------------------

    def events_for_receipt(self, start: int = 0) -> List[CanonicalEvent]:
        """Convert the log (from `start`) into canonical receipt events."""
        out: List[CanonicalEvent] = []
        for ev in self._events[start:]:
            out.append(CanonicalEvent(name=ev.name, args=tuple(_encode_args(ev.args))))
        return out


def _encode_args(args: Mapping[str, ArgValue]) -> List[Dict[str, Any]]:
    enc: List[Dict[str, Any]] = []
    for k, v in args.items():
        if isinstance(v, (bytes, bytearray)):
            enc.append({"k": k, "t": "b", "v": "0x" + bytes(v).hex()})
        elif isinstance(v, bool):
            enc.append({"k": k, "t": "z", "v": v})
        elif isinstance(v, int):
            enc.append({"k": k, "t": "i", "v": int(v)})
        elif isinstance(v, str):
            enc.append({"k": k, "t": "s", "v": v})
        elif isinstance(v, tuple):
            enc.append({"k": k, "t": "ai", "v": [int(x) for x in v]})
        else:
            raise EventError(f"unsupported event arg type in receipt: {type(v).__name__}")
    return enc


# Event names emitted by the coordinator.
RANDOM_WORDS_REQUESTED = "RandomWordsRequested"
RANDOM_WORDS_FULFILLED = "RandomWordsFulfilled"
CONSUMER_CALLBACK_FAILED = "ConsumerCallbackFailed"
DEBUG_FULFILLMENT = "DebugFulfillment"
REQUEST_GAS_REFUNDED = "RequestGasRefunded"
FULFILLMENT_GAS_REFUNDED = "FulfillmentGasRefunded"
ORACLE_REGISTERED = "OracleRegistered"
ORACLE_WITHDRAWAL = "OracleWithdrawal"
FUNDS_RECEIVED = "FundsReceived"

__all__ = [
    "Event",
    "CanonicalEvent",
    "EventLog",
    "EventError",
    "RANDOM_WORDS_REQUESTED",
    "RANDOM_WORDS_FULFILLED",
    "CONSUMER_CALLBACK_FAILED",
    "DEBUG_FULFILLMENT",
    "REQUEST_GAS_REFUNDED",
    "FULFILLMENT_GAS_REFUNDED",
    "ORACLE_REGISTERED",
    "ORACLE_WITHDRAWAL",
    "FUNDS_RECEIVED",
]
