"""
Consumer side of the protocol.

`RandomnessConsumer` is the base every consumer deployed on the host should
derive from: its `raw_fulfill_random_words` entry point rejects callers other
than the coordinator (OnlyCoordinator) and forwards to `fulfill_random_words`,
which subclasses implement.

`ExampleConsumer` is a complete consumer used by local networks and tests. It
pays for requests either with the caller's value or with its own deposited
funds, stores delivered words per request and turns them into a dice roll,
lottery numbers and a percentage.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from hashlib import sha3_256
from typing import TYPE_CHECKING, Dict, List, Sequence, Tuple

from .commitment import u256
from .context import CallContext
from .errors import FundingFailed, InvalidNumWords, OnlyCoordinator
from .gasmeter import GasMeter
from .host import Host

if TYPE_CHECKING:  # pragma: no cover
    from .coordinator import Coordinator

logger = logging.getLogger(__name__)


class RandomnessConsumer:
    """Base class: only the coordinator may deliver words."""

    def __init__(self, coordinator: "Coordinator", address: bytes) -> None:
        self.coordinator = coordinator
        self.address = bytes(address)

    @property
    def host(self) -> Host:
        return self.coordinator.host

    def raw_fulfill_random_words(
        self,
        ctx: CallContext,
        request_id: int,
        words: Sequence[int],
        meter: GasMeter,
    ) -> None:
        if ctx.sender != self.coordinator.address:
            raise OnlyCoordinator(have=ctx.sender, want=self.coordinator.address)
        self.fulfill_random_words(ctx, request_id, words, meter)

    def fulfill_random_words(
        self,
        ctx: CallContext,
        request_id: int,
        words: Sequence[int],
        meter: GasMeter,
    ) -> None:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Range helpers
# ---------------------------------------------------------------------------


def random_in_range(word: int, lo: int, hi: int) -> int:
    """Map a random word onto [lo, hi] (inclusive)."""
    if lo > hi:
        raise ValueError(f"InvalidRange: min={lo}, max={hi}")
    return lo + word % (hi - lo + 1)


def multiple_random_in_range(word: int, count: int, lo: int, hi: int) -> List[int]:
    """`count` values in [lo, hi], each from H(word || i)."""
    if count <= 0:
        raise ValueError("CountMustBePositive")
    if lo > hi:
        raise ValueError(f"InvalidRange: min={lo}, max={hi}")
    out = []
    for i in range(count):
        derived = int.from_bytes(sha3_256(u256(word % (1 << 256)) + u256(i)).digest(), "big")
        out.append(random_in_range(derived, lo, hi))
    return out


# ---------------------------------------------------------------------------
# Example consumer
# ---------------------------------------------------------------------------


@dataclass
class RequestStatus:
    exists: bool = False
    fulfilled: bool = False
    requester: bytes = b""
    num_words: int = 0
    refundee: bytes = b""
    requested_at: int = 0
    random_words: List[int] = field(default_factory=list)

    def as_tuple(self) -> Tuple:
        return (
            self.exists,
            self.fulfilled,
            self.requester,
            self.num_words,
            self.refundee,
            self.requested_at,
            list(self.random_words),
        )


class ExampleConsumer(RandomnessConsumer):
    MAX_WORDS_PER_REQUEST = 10
    CALLBACK_GAS_LIMIT = 2_000_000
    GAS_BASE = 21_000
    GAS_PER_WORD = 5_000

    def __init__(self, coordinator: "Coordinator", address: bytes) -> None:
        super().__init__(coordinator, address)
        self.requests: Dict[int, RequestStatus] = {}
        self.by_requester: Dict[bytes, List[int]] = {}
        self.total_requests = 0
        self.fulfilled_requests = 0

    # ---- pricing / funding ---- #

    def _check_words(self, num_words: int) -> None:
        if num_words < 1 or num_words > self.MAX_WORDS_PER_REQUEST:
            raise InvalidNumWords(given=num_words, expected=self.MAX_WORDS_PER_REQUEST)

    def get_request_price(self, num_words: int) -> int:
        self._check_words(num_words)
        return self.coordinator.calculate_request_price(self.CALLBACK_GAS_LIMIT)

    def fund_vrf(self, ctx: CallContext) -> None:
        if ctx.value == 0:
            raise FundingFailed()
        self.host.treasury.transfer(ctx.sender, self.address, ctx.value)
        self.host.events.emit("FundsDeposited", {"sender": ctx.sender, "amount": ctx.value})

    def funds(self) -> int:
        return self.host.treasury.balance_of(self.address)

    # ---- requests ---- #

    def request_random_words(self, ctx: CallContext, num_words: int) -> int:
        """Caller pays the quote with `ctx.value`."""
        self._check_words(num_words)
        with self.host.checkpoint():
            self.host.treasury.transfer(ctx.sender, self.address, ctx.value)
            return self._request(ctx, num_words, ctx.value, paid_from_contract=False)

    def request_random_words_from_contract(self, ctx: CallContext, num_words: int) -> int:
        """Pay the quote from this consumer's deposited funds."""
        price = self.get_request_price(num_words)
        return self._request(ctx, num_words, price, paid_from_contract=True)

    def _request(self, ctx: CallContext, num_words: int, value: int, *, paid_from_contract: bool) -> int:
        inner = ctx.nested(self.address, value=value)
        request_id = self.coordinator.request_random_words(
            inner, self.CALLBACK_GAS_LIMIT, num_words, refundee=ctx.sender
        )
        self.requests[request_id] = RequestStatus(
            exists=True,
            requester=ctx.sender,
            num_words=num_words,
            refundee=ctx.sender,
            requested_at=ctx.timestamp,
        )
        self.by_requester.setdefault(ctx.sender, []).append(request_id)
        self.total_requests += 1
        self.host.events.emit(
            "RandomnessRequested",
            {
                "request_id": request_id,
                "requester": ctx.sender,
                "num_words": num_words,
                "timestamp": ctx.timestamp,
                "paid_from_contract": paid_from_contract,
            },
        )
        return request_id

    # ---- callback ---- #

    def fulfill_random_words(
        self,
        ctx: CallContext,
        request_id: int,
        words: Sequence[int],
        meter: GasMeter,
    ) -> None:
        meter.consume(self.GAS_BASE + self.GAS_PER_WORD * len(words))
        status = self.requests.get(request_id)
        if status is None or status.fulfilled:
            # Unknown or repeated delivery: nothing to record.
            return
        status.fulfilled = True
        status.random_words = list(words)
        self.fulfilled_requests += 1
        self._process_random_words(request_id, status.requester, words)

    def _process_random_words(self, request_id: int, requester: bytes, words: Sequence[int]) -> None:
        if not words:
            return
        events = self.host.events
        events.emit(
            "RandomDiceRoll",
            {"request_id": request_id, "requester": requester, "roll": random_in_range(words[0], 1, 6)},
        )
        events.emit(
            "RandomLotteryNumbers",
            {
                "request_id": request_id,
                "requester": requester,
                "numbers": multiple_random_in_range(words[0], 3, 1, 50),
            },
        )
        if len(words) > 1:
            events.emit(
                "RandomPercentage",
                {
                    "request_id": request_id,
                    "requester": requester,
                    "percentage": random_in_range(words[1], 0, 100),
                },
            )

    # ---- views ---- #

    def get_request_status(self, request_id: int) -> RequestStatus:
        return self.requests.get(request_id, RequestStatus())

    def get_requests_by_requester(self, requester: bytes) -> List[int]:
        return list(self.by_requester.get(bytes(requester), ()))


__all__ = [
    "RandomnessConsumer",
    "ExampleConsumer",
    "RequestStatus",
    "random_in_range",
    "multiple_random_in_range",
]
