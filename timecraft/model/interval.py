"""
Half-open availability intervals.

``[start, end)`` means the value is present from ``start`` through
``end - 1`` inclusive. The algebra only checks subsumption; it never widens
or shrinks an interval.
"""

from typing import Any, Mapping, Optional, Tuple

from pydantic import Field, field_validator, model_validator

from .base import FrozenModel
from .event import TimeExpr
from .expr import LinearForm


def _coerce_time(v: Any) -> Any:
    if isinstance(v, str):
        from timecraft.parser.grammar import parse_time

        return parse_time(v)
    return v


class Interval(FrozenModel):
    """Availability window ``[start, end)``."""

    start: TimeExpr = Field(..., description="First cycle the value is valid")
    end: TimeExpr = Field(..., description="First cycle the value is no longer valid")

    @field_validator("start", "end", mode="before")
    @classmethod
    def coerce_time(cls, v: Any) -> Any:
        return _coerce_time(v)

    @model_validator(mode="after")
    def check_non_empty(self) -> "Interval":
        if self.start.event == self.end.event and self.end.offset <= self.start.offset:
            raise ValueError(f"Interval {self} is empty: end must come after start")
        return self

    @classmethod
    def on(cls, event: str, start: int, end: int) -> "Interval":
        """Build an interval whose bounds share one event."""
        return cls(start=TimeExpr.at(event, start), end=TimeExpr.at(event, end))

    @property
    def length(self) -> Optional[int]:
        """Number of cycles covered, when both bounds share an event."""
        if self.start.event != self.end.event:
            return None
        return self.end.offset - self.start.offset

    @property
    def events(self) -> frozenset:
        return frozenset([self.start.event, self.end.event])

    def length_form(self) -> LinearForm:
        return self.end.linearize() - self.start.linearize()

    def substitute(self, binding: Mapping[str, TimeExpr]) -> "Interval":
        return Interval(start=self.start.substitute(binding), end=self.end.substitute(binding))

    def covers(self, required: "Interval") -> bool:
        """True when this interval is available for all of ``required``."""
        return contains(required, self)

    def __str__(self) -> str:
        return f"[{self.start}, {self.end})"


def contains(required: Interval, available: Interval) -> bool:
    """Subsumption: ``available`` provides the value for all of ``required``.

    Both bounds are compared even when the first comparison already fails,
    so bounds on unrelated events are always reported.

    Raises:
        IncomparableEventsError: If matching bounds are on different events.
    """
    starts_in_time = available.start <= required.start
    lasts_long_enough = required.end <= available.end
    return starts_in_time and lasts_long_enough


def coverage_gap(required: Interval, available: Interval) -> Tuple[int, int]:
    """Return ``(late_by, expires_early_by)`` in cycles, both >= 0."""
    late_by = max(0, available.start - required.start)
    early_by = max(0, required.end - available.end)
    return late_by, early_by
