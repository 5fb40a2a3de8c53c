"""
Prometheus metrics for the VRF coordinator.

This module defines counters and histograms for the request pipeline:
  • requests:      accepted randomness requests
  • fulfillments:  closed requests per callback outcome
  • refunds:       refund attempts per kind and outcome
  • callback_gas_used: gas charged to consumer callbacks

Design notes
------------
- Label cardinality is intentionally low: `outcome` and `kind` use small,
  finite vocabularies. Request ids and addresses are never used as labels.

Usage
-----
    from vrf_coordinator.metrics import METRICS

    METRICS.record_request()
    METRICS.record_fulfillment("success")
    METRICS.record_refund("fulfillment", "paid")
    METRICS.observe_callback_gas(41_000)

If you need a custom Prometheus registry or different namespace/subsystem, construct
your own `Metrics` instance.
"""

from __future__ import annotations

from typing import Iterable

from prometheus_client import Counter, Histogram, REGISTRY


# --------- Vocabularies (kept small for bounded cardinality) ---------

_FULFILLMENT_OUTCOMES = (
    "success",   # consumer callback returned normally
    "failure",   # callback reverted / ran out of gas
)

_REFUND_KINDS = (
    "request",      # overpayment at request time
    "fulfillment",  # unused callback budget at fulfilment time
)

_REFUND_OUTCOMES = (
    "paid",      # transfer succeeded
    "failed",    # transfer attempted and rejected
    "skipped",   # below minimum / no refundee
)

# --------- Default histogram buckets ---------

# Callback gas buckets: spans MIN_CONSUMER_GAS_LIMIT up to MAX_CONSUMER_GAS_LIMIT
_CALLBACK_GAS_BUCKETS = (
    1_000.0, 5_000.0, 10_000.0, 25_000.0,
    50_000.0, 100_000.0, 250_000.0, 500_000.0,
    1_000_000.0, 2_500_000.0, 6_000_000.0,
)


class Metrics:
    """
    Container for all coordinator Prometheus instruments.

    Args:
        namespace: Prometheus metric namespace (prefix).
        subsystem: Prometheus metric subsystem (inserted between namespace and name).
        registry:  Prometheus registry to register the metrics with.
    """

    def __init__(
        self,
        *,
        namespace: str = "vrf",
        subsystem: str = "coordinator",
        registry = REGISTRY,
        gas_buckets: Iterable[float] = _CALLBACK_GAS_BUCKETS,
    ) -> None:
        # Counters
        self.requests_total = Counter(
            "requests_total",
            "Number of randomness requests accepted.",
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.fulfillments_total = Counter(
            "fulfillments_total",
            "Number of requests closed, labeled by callback outcome.",
            labelnames=("outcome",),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )
        self.refunds_total = Counter(
            "refunds_total",
            "Number of refund attempts, labeled by kind and outcome.",
            labelnames=("kind", "outcome"),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

        # Histograms
        self.callback_gas_used = Histogram(
            "callback_gas_used",
            "Gas charged to consumer callbacks.",
            buckets=tuple(gas_buckets),
            namespace=namespace,
            subsystem=subsystem,
            registry=registry,
        )

    # ----- Recording helpers -------------------------------------------------

    def record_request(self) -> None:
        self.requests_total.inc()

    def record_fulfillment(self, outcome: str) -> None:
        """
        Increment the fulfilment counter for a specific outcome.

        Valid outcomes: one of _FULFILLMENT_OUTCOMES.
        """
        if outcome not in _FULFILLMENT_OUTCOMES:
            outcome = "failure"
        self.fulfillments_total.labels(outcome=outcome).inc()

    def record_refund(self, kind: str, outcome: str) -> None:
        if kind not in _REFUND_KINDS:
            raise ValueError(f"unknown refund kind: {kind!r}")
        if outcome not in _REFUND_OUTCOMES:
            outcome = "failed"
        self.refunds_total.labels(kind=kind, outcome=outcome).inc()

    def observe_callback_gas(self, gas: int) -> None:
        self.callback_gas_used.observe(float(gas))


# Singleton used by most components
METRICS = Metrics()

__all__ = [
    "Metrics",
    "METRICS",
    "_FULFILLMENT_OUTCOMES",
    "_REFUND_KINDS",
    "_REFUND_OUTCOMES",
]
