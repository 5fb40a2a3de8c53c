"""
VRF coordinator facade.

Wires the pricing engine, nonce allocator, commitment ledger, callback
dispatcher, refund engine, statistics and oracle set around one State and
one Host, and exposes the request/fulfilment API:

    price = coord.calculate_request_price(100_000)
    rid = coord.request_random_words(CallContext(sender=consumer, value=price), 100_000, 3)
    ok = coord.fulfill_random_words(oracle_ctx, rid, consumer, 100_000, 3,
                                    ZERO_ADDRESS, gas_price_paid, proof)

Every mutating operation runs under a re-entrant lock and inside `_atomic`:
state tables, balances and the event log are restored if a validation error
escapes. The consumer callback has its own sandbox, and refunds never fail
the operation that triggered them.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .abi import decode_error_string
from .commitment import CommitmentParams, u256
from .config import CoordinatorConfig
from .constants import ZERO_ADDRESS
from .context import CallContext, to_address
from .dispatcher import CallbackDispatcher
from .errors import (
    FundingFailed,
    InvalidNumWords,
    TransferFailed,
    WithdrawFailed,
)
from .events import FUNDS_RECEIVED, ORACLE_WITHDRAWAL, Event, EventLog
from .host import Host
from .ledger import CommitmentLedger
from .metrics import METRICS, Metrics
from .nonces import NonceAllocator
from .oracles import OracleSet
from .pricing import PricingEngine
from .refunds import RefundEngine
from .stats import StatsAggregator
from .store import State
from .types import FulfillmentStats, Request, RequestResult
from .verifier import Proof, ProofVerifier, PseudoRandomVerifier, pseudo_random_words

logger = logging.getLogger(__name__)


class Coordinator:
    def __init__(
        self,
        *,
        signer: bytes,
        config: Optional[CoordinatorConfig] = None,
        host: Optional[Host] = None,
        verifier: Optional[ProofVerifier] = None,
        metrics: Metrics = METRICS,
    ) -> None:
        cfg = config if config is not None else CoordinatorConfig()
        cfg.validate()
        self.config = cfg
        self.address = cfg.address()
        self.host = host if host is not None else Host()
        self.verifier: ProofVerifier = verifier if verifier is not None else PseudoRandomVerifier()
        self.metrics = metrics

        self._lock = threading.RLock()
        self._state = State()

        self.pricing = PricingEngine(cfg.pricing, self._state)
        self.nonces = NonceAllocator(self._state)
        self.stats = StatsAggregator(self._state)
        self.oracles = OracleSet(self._state, self.host.events)
        self.ledger = CommitmentLedger(
            self._state,
            pricing=self.pricing,
            nonces=self.nonces,
            stats=self.stats,
            events=self.host.events,
            environment_id=cfg.environment_id,
        )
        self.dispatcher = CallbackDispatcher(
            self.host,
            self._state,
            self.stats,
            coordinator_address=self.address,
            instruction_gas=cfg.callback_instruction_gas,
        )
        self.refunds = RefundEngine(
            cfg.refunds, self.host, coordinator_address=self.address, metrics=metrics
        )

        self.oracles.register(to_address(signer))

    # ------------------------------------------------------------------ #
    # Atomicity
    # ------------------------------------------------------------------ #

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        with self._lock, self._state.checkpoint(), self.host.checkpoint():
            yield

    def _collect(self, ctx: CallContext) -> None:
        """Move the value attached to `ctx` into the coordinator's account."""
        if ctx.value:
            self.host.treasury.transfer(ctx.sender, self.address, ctx.value)

    # ------------------------------------------------------------------ #
    # Pricing
    # ------------------------------------------------------------------ #

    def calculate_request_price(self, callback_budget: int) -> int:
        return self.pricing.quote(callback_budget)

    def set_unit_price(self, price: int) -> None:
        with self._lock:
            self.pricing.set_unit_price(price)

    def set_gas_price_history_window(self, window: int) -> None:
        with self._atomic():
            self.pricing.set_history_window(window)

    def recent_gas_prices(self) -> List[int]:
        return self.pricing.recent_gas_prices()

    def average_gas_price(self) -> int:
        return self.pricing.average_gas_price()

    # ------------------------------------------------------------------ #
    # Requests
    # ------------------------------------------------------------------ #

    def request_random_words(
        self,
        ctx: CallContext,
        callback_budget: int,
        num_words: int,
        refundee: Optional[bytes] = None,
    ) -> int:
        """
        Open a request for `num_words` words delivered to `ctx.sender`.

        `refundee=None` disables the unused-budget refund. Overpayment above
        the quote is partly refunded to the caller.
        """
        with self._atomic():
            refundee_b = ZERO_ADDRESS if refundee is None else to_address(refundee)
            self._collect(ctx)
            req = self.ledger.open(ctx, callback_budget, num_words, refundee_b)
            self.pricing.record_price(req.gas_price_paid)
            self.refunds.refund_excess(
                req.id, ctx.sender, ctx.value - req.payment, timestamp=ctx.timestamp
            )
            self.metrics.record_request()
            logger.info(
                "randomness requested id=%#x consumer=0x%s words=%d",
                req.id, req.consumer.hex(), num_words,
            )
            return req.id

    # ------------------------------------------------------------------ #
    # Fulfilment
    # ------------------------------------------------------------------ #

    def fulfill_random_words(
        self,
        ctx: CallContext,
        request_id: int,
        consumer: bytes,
        callback_budget: int,
        num_words: int,
        refundee: bytes,
        gas_price_paid: int,
        proof: Proof,
    ) -> bool:
        """
        Close a request with verified words and deliver them.

        Returns the callback success flag; a failing callback is not an error.
        """
        with self._atomic():
            self.oracles.require_oracle(ctx.sender)
            params = CommitmentParams(
                request_id=request_id,
                consumer=bytes(consumer),
                callback_budget=callback_budget,
                num_words=num_words,
                refundee=bytes(refundee),
                gas_price_paid=gas_price_paid,
            )
            seed = self.ledger.check(params)
            words = self.verifier.verify(
                proof, request_id=request_id, num_words=num_words, seed=seed
            )
            if len(words) != num_words:
                raise InvalidNumWords(given=len(words), expected=num_words)
            return self._settle(ctx, params, words)

    def fulfill_request_mock(self, ctx: CallContext, request_id: int, words: Sequence[int]) -> bool:
        """Manual fulfilment with oracle-chosen words, for tests and local networks."""
        with self._atomic():
            params = self._mock_params(ctx, request_id)
            if len(words) != params.num_words:
                raise InvalidNumWords(given=len(words), expected=params.num_words)
            return self._settle(ctx, params, [int(w) for w in words])

    def fulfill_request_mock_with_random_words(self, ctx: CallContext, request_id: int) -> bool:
        """Manual fulfilment with pseudorandom words of the recorded length."""
        with self._atomic():
            params = self._mock_params(ctx, request_id)
            seed = self.ledger.commitment_of(request_id)
            words = pseudo_random_words(
                seed, params.num_words, salt=u256(ctx.timestamp)
            )
            return self._settle(ctx, params, words)

    def _mock_params(self, ctx: CallContext, request_id: int) -> CommitmentParams:
        self.oracles.require_oracle(ctx.sender)
        req = self.ledger.require_request(request_id)
        params = CommitmentParams.from_request(req)
        self.ledger.check(params)
        return params

    def _settle(self, ctx: CallContext, params: CommitmentParams, words: List[int]) -> bool:
        req = self.ledger.close(params)
        result = self.dispatcher.dispatch(
            ctx, req.consumer, req.callback_budget, req.id, words
        )
        refunded = self.refunds.refund_unused(req, result.gas_used, timestamp=ctx.timestamp)

        overhead = self.pricing.params.fulfillment_gas_overhead
        earned = (req.callback_budget + overhead) * req.gas_price_paid - refunded
        self.oracles.credit(ctx.sender, earned)

        outcome = "success" if result.success else "failure"
        self.metrics.record_fulfillment(outcome)
        self.metrics.observe_callback_gas(result.gas_used)
        logger.info(
            "request fulfilled id=%#x outcome=%s gas_used=%d refunded=%d",
            req.id, outcome, result.gas_used, refunded,
        )
        return result.success

    # ------------------------------------------------------------------ #
    # Oracles, balances, funding
    # ------------------------------------------------------------------ #

    def register_oracle(self, oracle: bytes) -> None:
        with self._atomic():
            self.oracles.register(to_address(oracle))

    def withdraw(self, ctx: CallContext, amount: int) -> None:
        """Pay `amount` of the caller's credited oracle balance to the caller."""
        with self._atomic():
            self.oracles.debit(ctx.sender, amount)
            try:
                self.host.send_value(self.address, ctx.sender, amount, timestamp=ctx.timestamp)
            except TransferFailed as e:
                logger.warning("withdrawal of %d by 0x%s failed: %s", amount, ctx.sender.hex(), e)
                raise WithdrawFailed(oracle=ctx.sender, amount=amount) from e
            self.host.events.emit(ORACLE_WITHDRAWAL, {"oracle": ctx.sender, "amount": amount})

    def fund(self, ctx: CallContext) -> None:
        """Accept plain value into the coordinator's account."""
        with self._atomic():
            if ctx.value == 0:
                raise FundingFailed()
            self._collect(ctx)
            self.host.events.emit(FUNDS_RECEIVED, {"sender": ctx.sender, "amount": ctx.value})

    def oracle_balance(self, oracle: bytes) -> int:
        return self.oracles.balance_of(oracle)

    def is_oracle(self, addr: bytes) -> bool:
        return self.oracles.is_oracle(addr)

    def get_signer_address(self) -> bytes:
        return self.oracles.signer()

    # ------------------------------------------------------------------ #
    # Views
    # ------------------------------------------------------------------ #

    def get_request(self, request_id: int) -> Request:
        """The stored row; a zeroed row (`exists` is False) for unknown ids."""
        req = self.ledger.get_request(request_id)
        return req if req is not None else Request.empty(request_id)

    def get_request_result(self, request_id: int) -> RequestResult:
        return self.stats.request_result(request_id)

    def get_fulfillment_stats(self) -> FulfillmentStats:
        return self.stats.snapshot()

    def get_nonce(self, consumer: bytes) -> int:
        return self.nonces.nonce_of(consumer)

    def calculate_next_request_id(self, consumer: bytes) -> int:
        return self.nonces.next_id(to_address(consumer))

    def is_request_pending(self, request_id: int) -> bool:
        return self.ledger.is_pending(request_id)

    @property
    def events(self) -> EventLog:
        return self.host.events

    def logs(self, name: Optional[str] = None) -> List[Event]:
        return self.host.events.events(name)

    @staticmethod
    def decode_error_string(data: bytes) -> str:
        return decode_error_string(data)

    def params(self) -> Dict[str, Any]:
        p = self.pricing.params
        return {
            "coordinator": "0x" + self.address.hex(),
            "environmentId": self.config.environment_id,
            "minCallbackGas": p.min_callback_gas,
            "maxCallbackGas": p.max_callback_gas,
            "fulfillmentGasOverhead": p.fulfillment_gas_overhead,
            "unitPrice": p.unit_price,
            "maxNumWords": p.max_num_words,
            "refundPercent": self.config.refunds.refund_percent,
            "minRefund": self.config.refunds.min_refund,
            "gasPriceHistoryWindow": p.gas_price_history_window,
        }


__all__ = ["Coordinator"]
