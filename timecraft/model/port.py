"""
Port definitions for component signatures.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from pydantic import Field, field_validator

from .base import NamedModel
from .event import TimeExpr
from .expr import Const, Expr, LinearForm, as_expr, render_form
from .interval import Interval


class PortDirection(str, Enum):
    """Port direction enumeration."""

    IN = "in"
    OUT = "out"

    @classmethod
    def from_string(cls, value: str) -> "PortDirection":
        """Normalize common direction aliases into ``PortDirection``."""
        normalized = value.lower().strip()
        mapping = {
            "in": cls.IN,
            "input": cls.IN,
            "inputs": cls.IN,
            "out": cls.OUT,
            "output": cls.OUT,
            "outputs": cls.OUT,
        }
        if normalized not in mapping:
            raise ValueError(f"Unsupported port direction: '{value}'")
        return mapping[normalized]


class PortDef(NamedModel):
    """
    Port of a component signature.

    The width may reference the component's parameters; the interval is
    expressed over the component's own events.
    """

    direction: PortDirection = Field(..., description="Port direction")
    width: Expr = Field(default=Const(value=1), description="Width in bits")
    interval: Interval = Field(..., description="Availability interval")
    description: str = Field(default="", description="Port description")

    @field_validator("direction", mode="before")
    @classmethod
    def normalize_direction(cls, v: Any) -> Any:
        if isinstance(v, str):
            return PortDirection.from_string(v).value
        return v

    @field_validator("width", mode="before")
    @classmethod
    def coerce_width(cls, v: Any) -> Any:
        return as_expr(v)

    @field_validator("width")
    @classmethod
    def validate_width(cls, v: Expr) -> Expr:
        """Ensure constant widths are positive."""
        if isinstance(v, Const) and v.value <= 0:
            raise ValueError("Port width must be positive")
        return v

    @field_validator("interval", mode="before")
    @classmethod
    def coerce_interval(cls, v: Any) -> Any:
        if isinstance(v, str):
            from timecraft.parser.grammar import parse_interval

            return parse_interval(v)
        return v

    @property
    def is_input(self) -> bool:
        return self.direction == PortDirection.IN

    @property
    def is_output(self) -> bool:
        return self.direction == PortDirection.OUT

    def bind(self, events: Mapping[str, TimeExpr], params: Mapping[str, Expr]) -> "BoundPort":
        """Produce the concrete copy of this port for one invocation."""
        width = self.width.substitute(params=params).linearize()
        return BoundPort(
            name=self.name,
            direction=self.direction,
            width=width,
            interval=self.interval.substitute(events),
        )

    def __str__(self) -> str:
        return f"{self.name}: {self.interval} {self.width}"


@dataclass(frozen=True)
class BoundPort:
    """A port after an invocation substituted its events and parameters."""

    name: str
    direction: PortDirection
    width: LinearForm
    interval: Interval

    @property
    def width_value(self):
        """Plain int width when concrete, otherwise its symbolic text."""
        return render_form(self.width)
