"""
Pricing engine: quotes for randomness requests and the recent gas price history.

    payment = (callback_budget + fulfillment_gas_overhead) * unit_price

The quote does not depend on the number of words requested. The unit price
is snapshotted into each request, so later price changes never affect the
value of refunds for requests already accepted.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import List, Optional

from .config import PricingParams
from .constants import MAX_GAS_PRICE_HISTORY_WINDOW
from .errors import (
    InsufficientGasLimit,
    InvalidGasPriceHistoryWindow,
    InvalidNumWords,
    OverConsumerGasLimit,
)
from .store import State

logger = logging.getLogger(__name__)


class PricingEngine:
    def __init__(self, params: PricingParams, state: Optional[State] = None) -> None:
        params.validate()
        self.params = replace(params)
        self._state = state if state is not None else State()

    # ---- quoting ---- #

    def check_budget(self, callback_budget: int) -> None:
        p = self.params
        if callback_budget < p.min_callback_gas:
            raise InsufficientGasLimit(given=callback_budget, minimum=p.min_callback_gas)
        if callback_budget > p.max_callback_gas:
            raise OverConsumerGasLimit(given=callback_budget, maximum=p.max_callback_gas)

    def check_num_words(self, num_words: int) -> None:
        if num_words < 1 or num_words > self.params.max_num_words:
            raise InvalidNumWords(given=num_words, expected=self.params.max_num_words)

    def quote(self, callback_budget: int) -> int:
        """Price of a request with `callback_budget`. No side effects."""
        self.check_budget(callback_budget)
        return (callback_budget + self.params.fulfillment_gas_overhead) * self.params.unit_price

    @property
    def unit_price(self) -> int:
        return self.params.unit_price

    def set_unit_price(self, price: int) -> None:
        """Change the unit price for future quotes; open requests keep theirs."""
        if not isinstance(price, int) or price <= 0:
            raise ValueError("unit price must be a positive int")
        logger.info("unit price %d -> %d", self.params.unit_price, price)
        self.params.unit_price = price

    # ---- history ---- #

    def record_price(self, price: int) -> None:
        hist = self._state.gas_prices
        hist.append(price)
        while len(hist) > self.params.gas_price_history_window:
            hist.popleft()

    def set_history_window(self, window: int) -> None:
        if not isinstance(window, int) or not (1 <= window <= MAX_GAS_PRICE_HISTORY_WINDOW):
            raise InvalidGasPriceHistoryWindow(window=window)
        self.params.gas_price_history_window = window
        hist = self._state.gas_prices
        while len(hist) > window:
            hist.popleft()

    def recent_gas_prices(self) -> List[int]:
        """Unit prices of the most recent accepted requests, oldest first."""
        return list(self._state.gas_prices)

    def average_gas_price(self) -> int:
        """Integer mean of the history; the current unit price when empty."""
        hist = self._state.gas_prices
        if not hist:
            return self.params.unit_price
        return sum(hist) // len(hist)


__all__ = ["PricingEngine"]
