"""Component signature model - the declared interface of a component."""

from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Tuple, TypeVar

from pydantic import Field, field_validator

from .base import FrozenModel, NamedModel, SourceLoc
from .event import EventDef, TimeExpr
from .expr import Expr, LinearForm, as_expr
from .port import PortDef

NamedItem = TypeVar("NamedItem")


class Relation(str, Enum):
    """Comparison operator of a where-clause."""

    LT = "<"
    LE = "<="
    GT = ">"
    GE = ">="
    EQ = "=="

    def holds(self, lhs: int, rhs: int) -> bool:
        return {
            Relation.LT: lhs < rhs,
            Relation.LE: lhs <= rhs,
            Relation.GT: lhs > rhs,
            Relation.GE: lhs >= rhs,
            Relation.EQ: lhs == rhs,
        }[self]


class Parameter(NamedModel):
    """
    Integer parameter of a component.

    A parameter with a default is optional at instantiation sites
    (written ``?OUT_WIDTH=IN_WIDTH``).
    """

    default: Optional[Expr] = Field(default=None, description="Default value expression")
    description: str = Field(default="", description="Parameter description")

    @field_validator("name", mode="before")
    @classmethod
    def strip_optional_marker(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lstrip("?")
        return v

    @field_validator("default", mode="before")
    @classmethod
    def coerce_default(cls, v: Any) -> Any:
        if v is None:
            return v
        return as_expr(v)

    @property
    def is_optional(self) -> bool:
        return self.default is not None

    def __str__(self) -> str:
        if self.default is not None:
            return f"?{self.name}={self.default}"
        return self.name


class WhereClause(FrozenModel):
    """Side constraint ``lhs <relation> rhs`` over parameters and events."""

    lhs: Expr
    relation: Relation
    rhs: Expr
    loc: Optional[SourceLoc] = Field(default=None, description="Declaration site")

    @field_validator("lhs", "rhs", mode="before")
    @classmethod
    def coerce_operand(cls, v: Any) -> Any:
        return as_expr(v)

    @property
    def mentions_events(self) -> bool:
        return bool(self.lhs.free_events() | self.rhs.free_events())

    def free_params(self) -> frozenset:
        return self.lhs.free_params() | self.rhs.free_params()

    def free_events(self) -> frozenset:
        return self.lhs.free_events() | self.rhs.free_events()

    def form(self) -> LinearForm:
        """``lhs - rhs`` as a linear form; the clause reads ``form <relation> 0``."""
        return self.lhs.linearize() - self.rhs.linearize()

    def substitute(
        self,
        params: Optional[Mapping[str, Expr]] = None,
        events: Optional[Mapping[str, TimeExpr]] = None,
    ) -> "WhereClause":
        event_exprs = {name: t.to_expr() for name, t in (events or {}).items()}
        return WhereClause(
            lhs=self.lhs.substitute(params, event_exprs),
            relation=self.relation,
            rhs=self.rhs.substitute(params, event_exprs),
            loc=self.loc,
        )

    def __str__(self) -> str:
        return f"{self.lhs} {self.relation.value} {self.rhs}"


class ComponentSignature(NamedModel):
    """
    Declared interface of a component - shared by every instantiation site.

    Includes:
    - Parameters (with optional defaults)
    - Events, each with a minimum re-trigger delay
    - Ports with width expressions and availability intervals
    - Where-clauses over parameters and events

    The model is frozen; collections are tuples.
    """

    params: Tuple[Parameter, ...] = Field(default=(), description="Parameters")
    events: Tuple[EventDef, ...] = Field(..., description="Events, primary event first")
    ports: Tuple[PortDef, ...] = Field(default=(), description="Input and output ports")
    where: Tuple[WhereClause, ...] = Field(default=(), description="Side constraints")
    extern: bool = Field(default=False, description="Signature-only (primitive) component")
    description: str = Field(default="", description="Component description")

    @field_validator("events")
    @classmethod
    def validate_events(cls, v: Tuple[EventDef, ...]) -> Tuple[EventDef, ...]:
        if not v:
            raise ValueError("A component must declare at least one event")
        return v

    # --- Convenience accessors ---

    @staticmethod
    def _find_by_name(items: Sequence[NamedItem], name: str) -> Optional[NamedItem]:
        """Return the first item with a matching ``name`` attribute."""
        return next((item for item in items if getattr(item, "name", None) == name), None)

    def get_port(self, name: str) -> Optional[PortDef]:
        return self._find_by_name(self.ports, name)

    def get_event(self, name: str) -> Optional[EventDef]:
        return self._find_by_name(self.events, name.lstrip("'"))

    def get_param(self, name: str) -> Optional[Parameter]:
        return self._find_by_name(self.params, name)

    @property
    def inputs(self) -> Tuple[PortDef, ...]:
        return tuple(p for p in self.ports if p.is_input)

    @property
    def outputs(self) -> Tuple[PortDef, ...]:
        return tuple(p for p in self.ports if p.is_output)

    @property
    def primary_event(self) -> EventDef:
        return self.events[0]

    @property
    def param_names(self) -> Tuple[str, ...]:
        return tuple(p.name for p in self.params)

    @property
    def event_names(self) -> Tuple[str, ...]:
        return tuple(e.name for e in self.events)

    @property
    def param_clauses(self) -> Tuple[WhereClause, ...]:
        """Clauses checked once per instantiation."""
        return tuple(c for c in self.where if not c.mentions_events)

    @property
    def event_clauses(self) -> Tuple[WhereClause, ...]:
        """Clauses checked once per invocation."""
        return tuple(c for c in self.where if c.mentions_events)

    def __str__(self) -> str:
        params = f"[{', '.join(str(p) for p in self.params)}]" if self.params else ""
        events = ", ".join(str(e) for e in self.events)
        return f"{self.name}{params}<{events}>"
