"""
Per-consumer nonces and request id derivation.

    nonce' = nonce + 1
    id     = int( SHA3-256(DOMAIN_REQUEST_ID || consumer || u256(nonce')) )

Nonces only ever increase, so ids are unique per consumer. `next_id` is a
pure preview that always equals the id the following `allocate` returns.
"""

from __future__ import annotations

from hashlib import sha3_256
from typing import Tuple

from .commitment import u256
from .constants import ADDRESS_LEN, DOMAIN_REQUEST_ID, MAX_UINT256
from .store import State


def derive_request_id(consumer: bytes, nonce: int) -> int:
    if len(consumer) != ADDRESS_LEN:
        raise ValueError(f"consumer must be exactly {ADDRESS_LEN} bytes")
    digest = sha3_256(DOMAIN_REQUEST_ID + bytes(consumer) + u256(nonce)).digest()
    return int.from_bytes(digest, "big")


class NonceAllocator:
    def __init__(self, state: State) -> None:
        self._state = state

    def nonce_of(self, consumer: bytes) -> int:
        return self._state.nonces.get(bytes(consumer), 0)

    def _bumped(self, consumer: bytes) -> int:
        n = self.nonce_of(consumer)
        if n >= MAX_UINT256:
            raise OverflowError("consumer nonce exhausted")
        return n + 1

    def next_id(self, consumer: bytes) -> int:
        return derive_request_id(consumer, self._bumped(consumer))

    def allocate(self, consumer: bytes) -> Tuple[int, int]:
        """Bump the consumer's nonce; returns (request_id, new_nonce)."""
        nonce = self._bumped(consumer)
        rid = derive_request_id(consumer, nonce)
        self._state.nonces[bytes(consumer)] = nonce
        return rid, nonce


__all__ = ["NonceAllocator", "derive_request_id"]
