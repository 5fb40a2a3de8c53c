"""
Commitment ledger: the request/fulfilment state machine.

    NonExistent --open--> Pending --close--> Resolved(Success | Failure)

A request is pending iff its commitment is stored and non-zero. `close`
erases the commitment *before* the consumer callback is dispatched, so any
second close of the same request (including a reentrant one from inside the
callback) fails with CommitmentMismatch.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Optional

from .commitment import ZERO_COMMITMENT, CommitmentParams, build_commitment, verify_commitment
from .context import CallContext
from .errors import InsufficientGasPayment, RequestNotFound
from .events import RANDOM_WORDS_REQUESTED, EventLog
from .nonces import NonceAllocator
from .pricing import PricingEngine
from .stats import StatsAggregator
from .store import State
from .types import Request

logger = logging.getLogger(__name__)


class CommitmentLedger:
    def __init__(
        self,
        state: State,
        *,
        pricing: PricingEngine,
        nonces: NonceAllocator,
        stats: StatsAggregator,
        events: EventLog,
        environment_id: int,
    ) -> None:
        self._state = state
        self.pricing = pricing
        self.nonces = nonces
        self.stats = stats
        self.events = events
        self.environment_id = environment_id

    # ---- open ---- #

    def open(
        self,
        ctx: CallContext,
        callback_budget: int,
        num_words: int,
        refundee: bytes,
    ) -> Request:
        """
        Accept a request from `ctx.sender`.

        The caller must have attached at least the quoted price; any excess is
        handled by the refund engine afterwards.
        """
        self.pricing.check_num_words(num_words)
        price = self.pricing.quote(callback_budget)
        if ctx.value < price:
            raise InsufficientGasPayment(paid=ctx.value, required=price)

        consumer = ctx.sender
        request_id, nonce = self.nonces.allocate(consumer)
        req = Request(
            id=request_id,
            consumer=consumer,
            callback_budget=callback_budget,
            num_words=num_words,
            gas_price_paid=self.pricing.unit_price,
            refundee=bytes(refundee),
            requested_at=ctx.timestamp,
            fulfilled=False,
            payment=price,
        )
        commitment = build_commitment(
            CommitmentParams.from_request(req), environment_id=self.environment_id
        )
        self._state.commitments[request_id] = commitment
        self._state.requests[request_id] = req
        self.stats.record_request(request_id, num_words)

        self.events.emit(
            RANDOM_WORDS_REQUESTED,
            {
                "request_id": request_id,
                "callback_gas_limit": callback_budget,
                "num_words": num_words,
                "origin": ctx.origin,
                "consumer": consumer,
                "nonce": nonce,
                "refundee": req.refundee,
                "gas_price_paid": req.gas_price_paid,
                "requested_at": req.requested_at,
            },
        )
        logger.debug(
            "request opened id=%#x consumer=0x%s budget=%d words=%d",
            request_id, consumer.hex(), callback_budget, num_words,
        )
        return req

    # ---- close ---- #

    def check(self, params: CommitmentParams) -> bytes:
        """Verify `params` against the stored commitment; returns the commitment."""
        stored = self._state.commitments.get(params.request_id, ZERO_COMMITMENT)
        verify_commitment(stored, params, environment_id=self.environment_id)
        return stored

    def close(self, params: CommitmentParams) -> Request:
        """Erase the commitment and mark the request fulfilled."""
        self.check(params)
        del self._state.commitments[params.request_id]
        req = replace(self._state.requests[params.request_id], fulfilled=True)
        self._state.requests[params.request_id] = req
        logger.debug("request closed id=%#x", params.request_id)
        return req

    # ---- views ---- #

    def is_pending(self, request_id: int) -> bool:
        c = self._state.commitments.get(request_id)
        return c is not None and c != ZERO_COMMITMENT

    def get_request(self, request_id: int) -> Optional[Request]:
        return self._state.requests.get(request_id)

    def require_request(self, request_id: int) -> Request:
        req = self._state.requests.get(request_id)
        if req is None:
            raise RequestNotFound(request_id=request_id)
        return req

    def commitment_of(self, request_id: int) -> bytes:
        return self._state.commitments.get(request_id, ZERO_COMMITMENT)


__all__ = ["CommitmentLedger"]
