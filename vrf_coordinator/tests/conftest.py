from typing import Callable, Optional

import pytest
from prometheus_client import CollectorRegistry

from vrf_coordinator.config import CoordinatorConfig
from vrf_coordinator.consumer import RandomnessConsumer
from vrf_coordinator.context import CallContext
from vrf_coordinator.coordinator import Coordinator
from vrf_coordinator.metrics import Metrics

ORACLE = bytes.fromhex("0a" * 20)
CONSUMER = bytes.fromhex("11" * 20)
USER = bytes.fromhex("22" * 20)
REFUNDEE = bytes.fromhex("33" * 20)

ETHER = 10**18
BUDGET = 100_000


class ScriptedConsumer(RandomnessConsumer):
    """Consumer whose callback body is supplied by the test."""

    def __init__(self, coordinator, address, behaviour: Optional[Callable] = None) -> None:
        super().__init__(coordinator, address)
        self.behaviour = behaviour
        self.received = []

    def fulfill_random_words(self, ctx, request_id, words, meter) -> None:
        self.received.append((request_id, list(words)))
        if self.behaviour is not None:
            self.behaviour(self, ctx, request_id, words, meter)


class RejectingAccount:
    """Deployed account that refuses any incoming value."""

    def receive(self, ctx, amount) -> None:
        raise RuntimeError("no thanks")


@pytest.fixture
def metrics_registry() -> CollectorRegistry:
    return CollectorRegistry()


@pytest.fixture
def metrics(metrics_registry) -> Metrics:
    return Metrics(registry=metrics_registry)


@pytest.fixture
def coord(metrics) -> Coordinator:
    # Explicit charges only, so gas figures in assertions are exact.
    c = Coordinator(signer=ORACLE, config=CoordinatorConfig(callback_instruction_gas=0), metrics=metrics)
    c.host.treasury.credit(CONSUMER, 10 * ETHER)
    c.host.treasury.credit(USER, 10 * ETHER)
    return c


@pytest.fixture
def deploy_consumer(coord):
    """Factory: deploy a ScriptedConsumer at `address` with an optional callback body."""

    def _deploy(behaviour: Optional[Callable] = None, address: bytes = CONSUMER) -> ScriptedConsumer:
        return coord.host.deploy(address, ScriptedConsumer(coord, address, behaviour))

    return _deploy


@pytest.fixture
def open_request(coord):
    """Factory: open a request from CONSUMER paying exactly the quote."""

    def _open(
        budget: int = BUDGET,
        num_words: int = 3,
        refundee: Optional[bytes] = REFUNDEE,
        sender: bytes = CONSUMER,
        extra: int = 0,
        timestamp: int = 1_000,
    ) -> int:
        price = coord.calculate_request_price(budget)
        ctx = CallContext(sender=sender, value=price + extra, timestamp=timestamp)
        return coord.request_random_words(ctx, budget, num_words, refundee=refundee)

    return _open


@pytest.fixture
def oracle_ctx() -> CallContext:
    return CallContext(sender=ORACLE, timestamp=2_000)
