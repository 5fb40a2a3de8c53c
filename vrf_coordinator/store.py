"""
In-memory state tables owned by one coordinator instance.

Tables
------
- commitments:   request id → 32-byte commitment (present iff pending)
- requests:      request id → Request row (never removed)
- nonces:        consumer → request counter (never reset)
- statuses:      request id → CallbackStatus
- stats:         FulfillmentStats aggregate
- oracles:       registered oracle addresses (insertion ordered)
- balances:      oracle → credited fees
- gas_prices:    bounded history of unit prices paid by accepted requests

Every table is created empty; rows are added on request and mutated on
fulfilment. `snapshot()`/`restore()` copy the tables so a rejected operation
can be undone wholesale.
"""

from __future__ import annotations

from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, Tuple

from .types import CallbackStatus, FulfillmentStats, Request


@dataclass
class State:
    commitments: Dict[int, bytes] = field(default_factory=dict)
    requests: Dict[int, Request] = field(default_factory=dict)
    nonces: Dict[bytes, int] = field(default_factory=dict)
    statuses: Dict[int, CallbackStatus] = field(default_factory=dict)
    stats: FulfillmentStats = field(default_factory=FulfillmentStats)
    oracles: Dict[bytes, None] = field(default_factory=dict)
    balances: Dict[bytes, int] = field(default_factory=dict)
    gas_prices: Deque[int] = field(default_factory=deque)

    # Records are immutable, so one level of copying is enough.
    def snapshot(self) -> Tuple:
        return (
            dict(self.commitments),
            dict(self.requests),
            dict(self.nonces),
            dict(self.statuses),
            self.stats,
            dict(self.oracles),
            dict(self.balances),
            deque(self.gas_prices),
        )

    def restore(self, snap: Tuple) -> None:
        commitments, requests, nonces, statuses, stats, oracles, balances, gas_prices = snap
        self.commitments = dict(commitments)
        self.requests = dict(requests)
        self.nonces = dict(nonces)
        self.statuses = dict(statuses)
        self.stats = stats
        self.oracles = dict(oracles)
        self.balances = dict(balances)
        self.gas_prices = deque(gas_prices)

    @contextmanager
    def checkpoint(self) -> Iterator["State"]:
        snap = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(snap)
            raise


__all__ = ["State"]
