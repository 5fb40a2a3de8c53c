"""
vrf_coordinator.treasury: deterministic native-value ledger.

A tiny in-memory balance table shared by the coordinator, its consumers and
oracles. It exposes:

- balance_of(addr) -> int
- credit(addr, amount) / debit(addr, amount)
- transfer(frm, to, amount)

Notes
-----
* Deterministic: no wall-clock, no randomness, pure arithmetic with explicit caps.
* Snapshots let the host undo value movements of a failed call.
"""

from __future__ import annotations

import threading
from typing import Dict, Tuple

from .constants import ADDRESS_LEN
from .errors import TransferFailed

MAX_BALANCE_BITS = 256


def _check_addr(addr: bytes) -> bytes:
    if not isinstance(addr, (bytes, bytearray)):
        raise ValueError("address must be bytes")
    if len(addr) != ADDRESS_LEN:
        raise ValueError(f"address must be exactly {ADDRESS_LEN} bytes")
    return bytes(addr)


def _check_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool):
        raise ValueError("amount must be int")
    if amount < 0:
        raise ValueError("amount must be non-negative")
    if amount.bit_length() > MAX_BALANCE_BITS:
        raise ValueError(f"amount exceeds {MAX_BALANCE_BITS}-bit limit")
    return amount


def _add_checked(a: int, b: int) -> int:
    c = a + b
    if c.bit_length() > MAX_BALANCE_BITS:
        raise OverflowError("balance overflow")
    return c


class Treasury:
    """Address → balance table (non-negative ints)."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._ledger: Dict[bytes, int] = {}

    def balance_of(self, addr: bytes) -> int:
        a = _check_addr(addr)
        with self._lock:
            return self._ledger.get(a, 0)

    def credit(self, addr: bytes, amount: int) -> None:
        """Increase balance of `addr` by `amount` (minting; host/testing use)."""
        a = _check_addr(addr)
        amt = _check_amount(amount)
        with self._lock:
            self._ledger[a] = _add_checked(self._ledger.get(a, 0), amt)

    def debit(self, addr: bytes, amount: int) -> None:
        """Decrease balance of `addr` by `amount` if sufficient."""
        a = _check_addr(addr)
        amt = _check_amount(amount)
        with self._lock:
            cur = self._ledger.get(a, 0)
            if amt > cur:
                raise TransferFailed(f"insufficient balance: have {cur}, need {amt}")
            self._ledger[a] = cur - amt

    def transfer(self, frm: bytes, to: bytes, amount: int) -> None:
        """Debit `frm` and credit `to`. Atomic w.r.t. this ledger."""
        bfrm = _check_addr(frm)
        bto = _check_addr(to)
        amt = _check_amount(amount)
        if amt == 0:
            return
        with self._lock:
            cur_from = self._ledger.get(bfrm, 0)
            if amt > cur_from:
                raise TransferFailed(
                    f"insufficient balance: have {cur_from}, need {amt}"
                )
            # Perform debit then credit with overflow check.
            self._ledger[bfrm] = cur_from - amt
            self._ledger[bto] = _add_checked(self._ledger.get(bto, 0), amt)

    # ---- checkpoints ---- #

    def snapshot(self) -> Tuple[Tuple[bytes, int], ...]:
        with self._lock:
            return tuple(self._ledger.items())

    def restore(self, snap: Tuple[Tuple[bytes, int], ...]) -> None:
        with self._lock:
            self._ledger = dict(snap)

    def total_supply(self) -> int:
        with self._lock:
            return sum(self._ledger.values())


__all__ = ["Treasury", "MAX_BALANCE_BITS"]
