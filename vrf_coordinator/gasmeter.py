"""
Gas metering for consumer callbacks.

A callback receives a GasMeter capped at its request's callback budget. Gas
is charged two ways:

- explicitly, by the callee calling `consume` before expensive work;
- implicitly, by `run`, which traces the call and charges `step_cost` for
  every bytecode instruction executed anywhere inside it.

A charge that does not fit raises OutOfGas and leaves the meter untouched.
The meter remembers the trip, so a callee that catches OutOfGas and returns
anyway is still reported out of gas; the dispatcher then calls `exhaust` so
the failed call is billed the whole budget.

Instruction tracing is per thread and sees Python bytecode only: a single
call into a C builtin counts as one instruction however long it runs, and
threads started by the callee are not metered.
"""
from __future__ import annotations

import sys
from typing import Any, Callable, TypeVar

from .errors import OutOfGas

T = TypeVar("T")


def _gas_amount(value: int, what: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{what} must be an int, got {type(value).__name__}")
    if value < 0:
        raise ValueError(f"{what} cannot be negative ({value})")
    return value


class GasMeter:
    """
    Budget-limited gas counter.

        meter = GasMeter(limit=100_000)
        meter.consume(21_000)
        meter.remaining   # 79_000
    """

    __slots__ = ("_cap", "_spent", "_tripped")

    def __init__(self, *, limit: int) -> None:
        self._cap = _gas_amount(limit, "gas limit")
        self._spent = 0
        self._tripped = False

    @property
    def limit(self) -> int:
        return self._cap

    @property
    def used(self) -> int:
        return self._spent

    @property
    def remaining(self) -> int:
        return self._cap - self._spent

    @property
    def tripped(self) -> bool:
        """True once any charge has been refused."""
        return self._tripped

    def consume(self, amount: int) -> None:
        """Charge `amount`; OutOfGas if it does not fit in what is left."""
        cost = _gas_amount(amount, "gas charge")
        if cost > self.remaining:
            self._tripped = True
            raise OutOfGas(f"charge of {cost} exceeds remaining {self.remaining} of {self._cap}")
        self._spent += cost

    def exhaust(self) -> None:
        self._spent = self._cap

    def run(self, fn: Callable[..., T], *args: Any, step_cost: int = 0) -> T:
        """
        Call `fn(*args)`, charging `step_cost` per executed instruction.

        With `step_cost=0` this is a plain call. Otherwise an OutOfGas raised
        by the tracer surfaces at the instruction that ran out.
        """
        step = _gas_amount(step_cost, "step cost")
        if step == 0:
            return fn(*args)

        def on_opcode(frame, event, arg):
            if event == "opcode":
                self.consume(step)
            return on_opcode

        def on_call(frame, event, arg):
            frame.f_trace_lines = False
            frame.f_trace_opcodes = True
            return on_opcode

        previous = sys.gettrace()
        sys.settrace(on_call)
        try:
            return fn(*args)
        finally:
            sys.settrace(previous)

    def __repr__(self) -> str:  # pragma: no cover
        return f"GasMeter(used={self._spent}/{self._cap})"


__all__ = ["GasMeter"]
