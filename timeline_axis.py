from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from timeline_core import ResolvedEvent

AXIS_PADDING = 5.0
MIN_TICKS = 5
MAX_TICKS = 10


@dataclass(frozen=True)
class AxisTick:
    value: float
    position: float
    label: str


@dataclass(frozen=True)
class AxisScale:
    """Maps coordinates onto the normalized [0, 100] axis.

    ``lo``/``hi`` span every start and end coordinate; ``span`` is
    ``hi - lo`` floored to 1 so a single-date timeline stays finite.
    """

    mode: str
    count: int
    lo: float
    hi: float
    span: float
    padding: float = AXIS_PADDING

    @classmethod
    def from_events(cls, resolved: Sequence[ResolvedEvent], mode: str) -> "AxisScale":
        if not resolved:
            return cls(mode=mode, count=0, lo=0, hi=0, span=1)
        lo = min(r.start for r in resolved)
        hi = max(r.end for r in resolved)
        return cls(mode=mode, count=len(resolved), lo=lo, hi=hi, span=(hi - lo) or 1)

    @property
    def is_compressed(self) -> bool:
        return self.mode == "compressed"

    def _rescale(self, factor: float) -> float:
        return self.padding + factor * (100 - 2 * self.padding)

    def position_of_index(self, index: int) -> float:
        # rank only: date gaps are ignored in compressed mode
        factor = index / (self.count - 1) if self.count > 1 else 0.5
        return self._rescale(factor)

    def position_of_value(self, value: float) -> float:
        return self._rescale((value - self.lo) / self.span)

    def position(self, index: int, resolved: ResolvedEvent) -> float:
        if self.is_compressed:
            return self.position_of_index(index)
        return self.position_of_value(resolved.start)


# -------------------------
# Ticks
# -------------------------
def nice_step(span: float) -> float:
    target = max(MIN_TICKS, min(MAX_TICKS, math.floor(span)))
    raw_step = span / target
    magnitude = 10 ** math.floor(math.log10(raw_step))
    residual = raw_step / magnitude
    if residual > 5:
        step = 10 * magnitude
    elif residual > 2:
        step = 5 * magnitude
    elif residual > 1:
        step = 2 * magnitude
    else:
        step = magnitude
    return max(1, step)


def tick_values(lo: float, hi: float, span: float) -> list[float]:
    step = nice_step(span)
    first = math.floor(lo / step)
    last = math.ceil(hi / step)
    values: list[float] = []
    for k in range(first, last + 1):
        value = k * step
        if lo - step / 2 <= value <= hi + step / 2:
            values.append(value)
    return values


def generate_ticks(scale: AxisScale) -> list[AxisTick]:
    """Gridline ticks for proportional mode; compressed mode has none."""
    if scale.is_compressed:
        return []
    return [
        AxisTick(value=value, position=scale.position_of_value(value), label=str(round(value)))
        for value in tick_values(scale.lo, scale.hi, scale.span)
    ]
