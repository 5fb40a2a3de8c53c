"""
CallContext: who is calling, with how much value, at what block time.

The host hands one to every externally triggered coordinator operation and
the dispatcher derives a nested one for the consumer callback. Addresses are
raw 20-byte values; the helpers also accept 0x-hex strings.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Optional, Union

from .constants import ADDRESS_LEN

AddressLike = Union[bytes, bytearray, memoryview, str]


class ContextError(ValueError):
    """A CallContext field could not be coerced or failed validation."""


def to_address(value: AddressLike) -> bytes:
    """Normalize `value` to a 20-byte address."""
    if isinstance(value, str):
        text = value.strip()
        if text[:2] in ("0x", "0X"):
            text = text[2:]
        try:
            raw = bytes.fromhex(text)
        except ValueError as e:
            raise ContextError(f"not a hex address: {value!r}") from e
    elif isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
    else:
        raise ContextError(f"address expected, got {type(value).__name__}")
    if len(raw) != ADDRESS_LEN:
        raise ContextError(f"address is {len(raw)} bytes, expected {ADDRESS_LEN}")
    return raw


def _uint(field_name: str, v: Any) -> int:
    if isinstance(v, bool) or not isinstance(v, int) or v < 0:
        raise ContextError(f"{field_name} must be a non-negative int (got {v!r})")
    return v


@dataclass(frozen=True)
class CallContext:
    """
    sender:    immediate caller (the consumer when requesting, the oracle when fulfilling)
    origin:    transaction originator, `sender` unless given
    value:     native value attached to the call
    timestamp: host block timestamp
    """

    sender: bytes
    origin: Optional[bytes] = None
    value: int = 0
    timestamp: int = 0

    def __post_init__(self) -> None:
        sender = to_address(self.sender)
        object.__setattr__(self, "sender", sender)
        object.__setattr__(self, "origin", sender if self.origin is None else to_address(self.origin))
        object.__setattr__(self, "value", _uint("value", self.value))
        object.__setattr__(self, "timestamp", _uint("timestamp", self.timestamp))

    def nested(self, sender: bytes, *, value: int = 0) -> "CallContext":
        """Context of a call `sender` makes while this one is running; origin is kept."""
        return replace(self, sender=sender, value=value)


__all__ = ["AddressLike", "CallContext", "ContextError", "to_address"]
