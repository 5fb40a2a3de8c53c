"""
Gas refund engine.

Two best-effort refunds, neither of which can fail the surrounding operation:

1. Request-time overpayment: `excess * refund_percent // 100` back to the caller.
2. Fulfilment-time unused budget:
   `(budget - gas_used) * gas_price_paid * refund_percent // 100` to the refundee,
   valued at the price recorded when the request was accepted.

Refunds below `min_refund` are skipped silently. A rejected transfer is
reported through the event's `success` flag and a warning log.
"""

from __future__ import annotations

import logging

from .config import RefundPolicy
from .constants import PERCENT_DENOMINATOR, ZERO_ADDRESS
from .errors import TransferFailed
from .events import FULFILLMENT_GAS_REFUNDED, REQUEST_GAS_REFUNDED
from .host import Host
from .metrics import METRICS, Metrics
from .types import Request

logger = logging.getLogger(__name__)


class RefundEngine:
    def __init__(
        self,
        policy: RefundPolicy,
        host: Host,
        *,
        coordinator_address: bytes,
        metrics: Metrics = METRICS,
    ) -> None:
        policy.validate()
        self.policy = policy
        self.host = host
        self.coordinator_address = bytes(coordinator_address)
        self.metrics = metrics

    def _portion(self, amount: int) -> int:
        return amount * self.policy.refund_percent // PERCENT_DENOMINATOR

    def _send(self, to: bytes, amount: int, timestamp: int) -> bool:
        try:
            self.host.send_value(self.coordinator_address, to, amount, timestamp=timestamp)
        except TransferFailed as e:
            logger.warning("refund of %d to 0x%s failed: %s", amount, to.hex(), e)
            return False
        return True

    def refund_excess(
        self,
        request_id: int,
        recipient: bytes,
        excess: int,
        *,
        timestamp: int = 0,
    ) -> int:
        """Refund part of a request-time overpayment. Returns the amount paid."""
        amount = self._portion(max(0, excess))
        if amount == 0 or amount < self.policy.min_refund:
            if excess > 0:
                self.metrics.record_refund("request", "skipped")
            return 0
        ok = self._send(recipient, amount, timestamp)
        self.host.events.emit(
            REQUEST_GAS_REFUNDED,
            {"request_id": request_id, "recipient": recipient, "amount": amount, "success": ok},
        )
        self.metrics.record_refund("request", "paid" if ok else "failed")
        return amount if ok else 0

    def refund_unused(self, request: Request, gas_used: int, *, timestamp: int = 0) -> int:
        """Refund the unused callback budget to the request's refundee. Returns the amount paid."""
        refundee = request.refundee
        if refundee == ZERO_ADDRESS or refundee == self.coordinator_address:
            return 0
        unused = max(0, request.callback_budget - gas_used)
        amount = self._portion(unused * request.gas_price_paid)
        if amount == 0 or amount < self.policy.min_refund:
            self.metrics.record_refund("fulfillment", "skipped")
            return 0
        ok = self._send(refundee, amount, timestamp)
        self.host.events.emit(
            FULFILLMENT_GAS_REFUNDED,
            {
                "request_id": request.id,
                "refundee": refundee,
                "amount": amount,
                "gas_used": gas_used,
                "success": ok,
            },
        )
        self.metrics.record_refund("fulfillment", "paid" if ok else "failed")
        return amount if ok else 0


__all__ = ["RefundEngine"]
