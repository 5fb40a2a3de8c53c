"""
Request commitment: the binding hash stored while a request is pending.

Definition
----------
C = H( DOMAIN_COMMITMENT
       || u256(request_id)
       || consumer (20 bytes)
       || u256(callback_budget)
       || u256(num_words)
       || refundee (20 bytes)
       || u256(gas_price_paid)
       || u256(environment_id) )

- H is SHA3-256.
- Every field is fixed width, so no two distinct parameter tuples share an
  encoding.
- `environment_id` binds the commitment to one deployment/network.

This module exposes:
- `build_commitment(...)`: compute C from a `CommitmentParams` bundle.
- `verify_commitment(...)`: constant-time comparison, raises CommitmentMismatch.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from hashlib import sha3_256

from .constants import ADDRESS_LEN, DOMAIN_COMMITMENT, MAX_UINT256, WORD_BYTES
from .errors import CommitmentMismatch
from .types import Request

COMMITMENT_LEN = 32
ZERO_COMMITMENT = b"\x00" * COMMITMENT_LEN


def u256(n: int) -> bytes:
    if not isinstance(n, int) or isinstance(n, bool):
        raise TypeError("expected int")
    if n < 0 or n > MAX_UINT256:
        raise ValueError("value out of u256 range")
    return n.to_bytes(WORD_BYTES, "big")


@dataclass(frozen=True, slots=True)
class CommitmentParams:
    """The parameters a fulfilment must present to close a request."""

    request_id: int
    consumer: bytes
    callback_budget: int
    num_words: int
    refundee: bytes
    gas_price_paid: int

    @classmethod
    def from_request(cls, req: Request) -> "CommitmentParams":
        return cls(
            request_id=req.id,
            consumer=req.consumer,
            callback_budget=req.callback_budget,
            num_words=req.num_words,
            refundee=req.refundee,
            gas_price_paid=req.gas_price_paid,
        )


def _addr(name: str, b: bytes) -> bytes:
    if not isinstance(b, (bytes, bytearray)):
        raise TypeError(f"{name} must be bytes")
    if len(b) != ADDRESS_LEN:
        raise ValueError(f"{name} must be exactly {ADDRESS_LEN} bytes")
    return bytes(b)


def build_commitment(params: CommitmentParams, *, environment_id: int) -> bytes:
    """Compute the 32-byte commitment for `params` in `environment_id`."""
    h = sha3_256()
    h.update(DOMAIN_COMMITMENT)
    h.update(u256(params.request_id))
    h.update(_addr("consumer", params.consumer))
    h.update(u256(params.callback_budget))
    h.update(u256(params.num_words))
    h.update(_addr("refundee", params.refundee))
    h.update(u256(params.gas_price_paid))
    h.update(u256(environment_id))
    return h.digest()


def verify_commitment(
    stored: bytes,
    params: CommitmentParams,
    *,
    environment_id: int,
) -> None:
    """
    Recompute the commitment from `params` and compare with `stored`.

    A missing or zero `stored` value (unknown or already closed request)
    never matches.

    Raises
    ------
    CommitmentMismatch
        If the recomputed commitment differs, or the request is not pending.
    """
    if not stored or stored == ZERO_COMMITMENT:
        raise CommitmentMismatch(request_id=params.request_id)
    try:
        recomputed = build_commitment(params, environment_id=environment_id)
    except (TypeError, ValueError) as e:
        # Malformed parameters can never hash to a stored commitment.
        raise CommitmentMismatch(request_id=params.request_id) from e
    if not hmac.compare_digest(stored, recomputed):
        raise CommitmentMismatch(request_id=params.request_id)


__all__ = [
    "COMMITMENT_LEN",
    "ZERO_COMMITMENT",
    "CommitmentParams",
    "build_commitment",
    "verify_commitment",
    "u256",
]
