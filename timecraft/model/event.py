"""
Events and time expressions.

An event is an abstract clock tick a component is scheduled relative to.
A time expression is an event plus an integer offset (``'G+3``). Two time
expressions can only be ordered when they share the same event; anything
else raises :class:`IncomparableEventsError`.
"""

from typing import Any, Mapping

from pydantic import Field, field_validator

from .base import FrozenModel, NamedModel, validate_identifier
from .errors import IncomparableEventsError
from .expr import Const, EventRef, Expr, LinearForm, as_expr


def _strip_tick(v: Any) -> Any:
    if isinstance(v, str):
        return v.strip().lstrip("'")
    return v


class TimeExpr(FrozenModel):
    """An event plus a constant cycle offset."""

    event: str = Field(..., description="Event name without the leading quote")
    offset: int = Field(default=0, description="Cycles after the event")

    @field_validator("event", mode="before")
    @classmethod
    def normalize_event(cls, v: Any) -> Any:
        return _strip_tick(v)

    @field_validator("event")
    @classmethod
    def validate_event(cls, v: str) -> str:
        return validate_identifier(v)

    @classmethod
    def at(cls, event: str, offset: int = 0) -> "TimeExpr":
        return cls(event=event, offset=offset)

    def __add__(self, delta: Any) -> "TimeExpr":
        if isinstance(delta, bool) or not isinstance(delta, int):
            return NotImplemented
        return TimeExpr(event=self.event, offset=self.offset + delta)

    def __sub__(self, other: Any) -> Any:
        """Shift back by an int, or measure the distance to another time."""
        if isinstance(other, TimeExpr):
            self.require_comparable(other)
            return self.offset - other.offset
        if isinstance(other, bool) or not isinstance(other, int):
            return NotImplemented
        return TimeExpr(event=self.event, offset=self.offset - other)

    def substitute(self, binding: Mapping[str, "TimeExpr"]) -> "TimeExpr":
        """Replace the event by the time it is bound to, keeping the offset."""
        target = binding.get(self.event)
        if target is None:
            return self
        return target + self.offset

    def require_comparable(self, other: "TimeExpr") -> None:
        if self.event != other.event:
            raise IncomparableEventsError(self, other)

    def __lt__(self, other: "TimeExpr") -> bool:
        self.require_comparable(other)
        return self.offset < other.offset

    def __le__(self, other: "TimeExpr") -> bool:
        self.require_comparable(other)
        return self.offset <= other.offset

    def __gt__(self, other: "TimeExpr") -> bool:
        self.require_comparable(other)
        return self.offset > other.offset

    def __ge__(self, other: "TimeExpr") -> bool:
        self.require_comparable(other)
        return self.offset >= other.offset

    def to_expr(self) -> Expr:
        base = EventRef(name=self.event)
        if self.offset == 0:
            return base
        return base + Const(value=self.offset)

    def linearize(self) -> LinearForm:
        return LinearForm.of_event(self.event, self.offset)

    def __str__(self) -> str:
        if self.offset > 0:
            return f"'{self.event}+{self.offset}"
        if self.offset < 0:
            return f"'{self.event}{self.offset}"
        return f"'{self.event}"


class EventDef(NamedModel):
    """
    Event declared by a component signature.

    The delay is the minimum number of cycles between two triggerings of
    this event on the same instance. It may be a constant or an expression
    over the component's other events and parameters (``'L - 'G``).
    """

    delay: Expr = Field(..., description="Minimum re-trigger delay")
    description: str = Field(default="", description="Event description")

    @field_validator("name", mode="before")
    @classmethod
    def normalize_name(cls, v: Any) -> Any:
        return _strip_tick(v)

    @field_validator("delay", mode="before")
    @classmethod
    def coerce_delay(cls, v: Any) -> Any:
        return as_expr(v)

    @property
    def label(self) -> str:
        return f"'{self.name}"

    @property
    def is_relative(self) -> bool:
        """True when the delay mentions other events."""
        return bool(self.delay.free_events())

    def __str__(self) -> str:
        return f"{self.label}: {self.delay}"
