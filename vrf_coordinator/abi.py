"""
Minimal ABI codec for revert payloads.

Only what the dispatcher needs to classify callback failures:

- `encode_string` / `decode_error_string`: a single dynamic `string` value
  (head offset word, length word, right-padded UTF-8 body).
- `encode_error_string`: the standard `Error(string)` revert payload.
- `classify_failure`: turn raw revert data into the human-readable reason
  recorded in `DebugFulfillment`.
- `reason_code`: leading 4 bytes as an int (0 if shorter).
"""

from __future__ import annotations

from .constants import (
    ERROR_STRING_SELECTOR,
    REASON_EMPTY_ERROR_STRING,
    REASON_LOW_LEVEL,
    REASON_LOW_LEVEL_WITH_DATA,
    REASON_PREFIX,
    SELECTOR_LEN,
    WORD_BYTES,
)


class AbiDecodeError(ValueError):
    """Payload is not a well-formed ABI-encoded string."""


def _word(n: int) -> bytes:
    return n.to_bytes(WORD_BYTES, "big")


def _read_word(data: bytes, offset: int) -> int:
    end = offset + WORD_BYTES
    if offset < 0 or end > len(data):
        raise AbiDecodeError(f"word at {offset} out of bounds ({len(data)} bytes)")
    return int.from_bytes(data[offset:end], "big")


def encode_string(s: str) -> bytes:
    body = s.encode("utf-8")
    pad = (-len(body)) % WORD_BYTES
    return _word(WORD_BYTES) + _word(len(body)) + body + b"\x00" * pad


def decode_error_string(data: bytes) -> str:
    """
    Decode an ABI-encoded `string` (without selector).

    Raises AbiDecodeError if the offset or length point outside the payload,
    or the body is not valid UTF-8.
    """
    data = bytes(data)
    offset = _read_word(data, 0)
    length = _read_word(data, offset)
    start = offset + WORD_BYTES
    if start + length > len(data):
        raise AbiDecodeError(f"string length {length} exceeds payload")
    try:
        return data[start:start + length].decode("utf-8")
    except UnicodeDecodeError as e:
        raise AbiDecodeError("string body is not valid UTF-8") from e


def encode_error_string(message: str) -> bytes:
    """Standard `Error(string)` revert payload for `message`."""
    return ERROR_STRING_SELECTOR + encode_string(message)


def reason_code(data: bytes) -> int:
    if len(data) < SELECTOR_LEN:
        return 0
    return int.from_bytes(data[:SELECTOR_LEN], "big")


def classify_failure(data: bytes) -> str:
    """
    Reason text for a failed callback's raw revert data.

    Order matters:
      * Error(string) selector: decoded message, or the "no message" reason
        when the body is absent, malformed or empty
      * any other selector: low level revert with data
      * empty: low level revert
      * 1..3 bytes: low level revert with data
    """
    data = bytes(data)
    if len(data) >= SELECTOR_LEN:
        if data[:SELECTOR_LEN] == ERROR_STRING_SELECTOR:
            try:
                msg = decode_error_string(data[SELECTOR_LEN:])
            except AbiDecodeError:
                return REASON_EMPTY_ERROR_STRING
            if not msg:
                return REASON_EMPTY_ERROR_STRING
            return REASON_PREFIX + msg
        return REASON_LOW_LEVEL_WITH_DATA
    if not data:
        return REASON_LOW_LEVEL
    return REASON_LOW_LEVEL_WITH_DATA


__all__ = [
    "AbiDecodeError",
    "encode_string",
    "decode_error_string",
    "encode_error_string",
    "reason_code",
    "classify_failure",
]
