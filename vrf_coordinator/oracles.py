"""
Oracle membership and credited oracle balances.

The signer configured at construction is always the first oracle. Balances
are bookkeeping only: the native value backing them sits in the
coordinator's own treasury account until withdrawn.
"""

from __future__ import annotations

import logging
from typing import List

from .constants import ADDRESS_LEN, ZERO_ADDRESS
from .errors import InsufficientOracleBalance, NotOracle, OracleAlreadyRegistered, ZeroAddress
from .events import ORACLE_REGISTERED, EventLog
from .store import State

logger = logging.getLogger(__name__)


class OracleSet:
    def __init__(self, state: State, events: EventLog) -> None:
        self._state = state
        self._events = events

    # ---- membership ---- #

    def register(self, oracle: bytes) -> None:
        addr = bytes(oracle)
        if len(addr) != ADDRESS_LEN:
            raise ValueError(f"oracle must be exactly {ADDRESS_LEN} bytes")
        if addr == ZERO_ADDRESS:
            raise ZeroAddress()
        if addr in self._state.oracles:
            raise OracleAlreadyRegistered(oracle=addr)
        self._state.oracles[addr] = None
        self._events.emit(ORACLE_REGISTERED, {"oracle": addr})
        logger.info("oracle registered: 0x%s", addr.hex())

    def is_oracle(self, addr: bytes) -> bool:
        return bytes(addr) in self._state.oracles

    def require_oracle(self, addr: bytes) -> None:
        if not self.is_oracle(addr):
            raise NotOracle(caller=bytes(addr))

    def signer(self) -> bytes:
        """The first registered oracle."""
        return next(iter(self._state.oracles))

    def members(self) -> List[bytes]:
        return list(self._state.oracles)

    # ---- balances ---- #

    def balance_of(self, oracle: bytes) -> int:
        return self._state.balances.get(bytes(oracle), 0)

    def credit(self, oracle: bytes, amount: int) -> None:
        if amount < 0:
            raise ValueError("credit must be non-negative")
        addr = bytes(oracle)
        self._state.balances[addr] = self._state.balances.get(addr, 0) + amount

    def debit(self, oracle: bytes, amount: int) -> None:
        addr = bytes(oracle)
        have = self._state.balances.get(addr, 0)
        if amount > have:
            raise InsufficientOracleBalance(balance=have, requested=amount)
        self._state.balances[addr] = have - amount


__all__ = ["OracleSet"]
