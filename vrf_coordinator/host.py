"""
vrf_coordinator.host: the in-process ledger the coordinator runs on.

The Host owns the shared Treasury, the EventLog and an account registry that
maps addresses to deployed objects (consumers, oracles with custom receive
logic). A plain address with nothing deployed is a value-only account.

Value sent to a deployed object invokes its optional `receive(ctx, amount)`
hook; raising from the hook rejects the transfer, which is how tests model a
recipient that refuses refunds.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Tuple

from .context import CallContext, to_address
from .errors import TransferFailed
from .events import EventLog
from .treasury import Treasury

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HostSnapshot:
    balances: Tuple[Tuple[bytes, int], ...]
    event_mark: int


class Host:
    def __init__(
        self,
        *,
        treasury: Optional[Treasury] = None,
        events: Optional[EventLog] = None,
    ) -> None:
        self.treasury = treasury if treasury is not None else Treasury()
        self.events = events if events is not None else EventLog()
        self._accounts: Dict[bytes, Any] = {}

    # ---- accounts ---- #

    def deploy(self, address: bytes, obj: Any) -> Any:
        """Bind `obj` to `address`; returns `obj` for chaining."""
        addr = to_address(address)
        if addr in self._accounts:
            raise ValueError(f"account already deployed at 0x{addr.hex()}")
        self._accounts[addr] = obj
        return obj

    def code_at(self, address: bytes) -> Optional[Any]:
        return self._accounts.get(bytes(address))

    # ---- value ---- #

    def send_value(self, frm: bytes, to: bytes, amount: int, *, timestamp: int = 0) -> None:
        """
        Move `amount` from `frm` to `to`, running the recipient's receive hook.

        Raises TransferFailed (with the ledger unchanged) if funds are
        insufficient or the recipient rejects the value.
        """
        with self.checkpoint():
            self.treasury.transfer(frm, to, amount)
            target = self._accounts.get(bytes(to))
            hook = getattr(target, "receive", None) if target is not None else None
            if hook is not None:
                ctx = CallContext(sender=frm, value=amount, timestamp=timestamp)
                try:
                    hook(ctx, amount)
                except Exception as e:
                    logger.debug("recipient 0x%s rejected %d: %s", bytes(to).hex(), amount, e)
                    raise TransferFailed(f"recipient rejected value: {e}") from e

    # ---- checkpoints ---- #

    def snapshot(self) -> HostSnapshot:
        return HostSnapshot(self.treasury.snapshot(), self.events.snapshot())

    def restore(self, snap: HostSnapshot) -> None:
        self.treasury.restore(snap.balances)
        self.events.restore(snap.event_mark)

    @contextmanager
    def checkpoint(self) -> Iterator["Host"]:
        """
        Roll balances and events back to the entry state if an exception
        escapes the block. On success, changes remain.
        """
        snap = self.snapshot()
        try:
            yield self
        except BaseException:
            self.restore(snap)
            raise


__all__ = ["Host", "HostSnapshot"]
