"""
Fulfilment statistics.

Counters are only moved by two events: a request being opened (total and
words requested) and a callback outcome being recorded (successes or
failures). `pending` is derived, so `total == pending + successes + failures`
holds at every observable point.
"""

from __future__ import annotations

from dataclasses import replace

from .store import State
from .types import CallbackStatus, FulfillmentStats, RequestResult


class StatsAggregator:
    def __init__(self, state: State) -> None:
        self._state = state

    def record_request(self, request_id: int, num_words: int) -> None:
        s = self._state.stats
        self._state.stats = replace(
            s, total=s.total + 1, total_words_requested=s.total_words_requested + num_words
        )
        self._state.statuses[request_id] = CallbackStatus.PENDING

    def record_outcome(self, request_id: int, success: bool) -> None:
        if self._state.statuses.get(request_id) is not CallbackStatus.PENDING:
            raise RuntimeError(f"request {request_id:#x} has no pending callback")
        s = self._state.stats
        if success:
            self._state.stats = replace(s, successes=s.successes + 1)
            self._state.statuses[request_id] = CallbackStatus.SUCCESS
        else:
            self._state.stats = replace(s, failures=s.failures + 1)
            self._state.statuses[request_id] = CallbackStatus.FAILURE

    def snapshot(self) -> FulfillmentStats:
        return self._state.stats

    def request_result(self, request_id: int) -> RequestResult:
        """(was_success, was_fulfilled); unknown ids give (False, False)."""
        req = self._state.requests.get(request_id)
        if req is None:
            return RequestResult(False, False)
        return RequestResult(
            was_success=self._state.statuses.get(request_id) is CallbackStatus.SUCCESS,
            was_fulfilled=req.fulfilled,
        )


__all__ = ["StatsAggregator"]
