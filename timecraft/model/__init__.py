"""
Pydantic-based canonical data models for timing-checked components.

This module provides the single source of truth for signatures, bodies and
the time algebra they are written in.

For checking designs, use timecraft.checker.
"""

from .base import FrozenModel, SourceLoc, StrictModel, TimecraftBaseModel
from .design import (
    ComponentBody,
    ComponentDef,
    Connection,
    Design,
    Instantiation,
    Invocation,
    PortRef,
)
from .errors import (
    DiagnosticKind,
    IncomparableEventsError,
    NonLinearExpressionError,
    TimingError,
    UnboundParameterError,
)
from .event import EventDef, TimeExpr
from .expr import Add, Const, EventRef, Expr, LinearForm, Mul, ParamRef, Sub, as_expr
from .interval import Interval, contains, coverage_gap
from .port import BoundPort, PortDef, PortDirection
from .signature import ComponentSignature, Parameter, Relation, WhereClause

__all__ = [
    # Base
    "TimecraftBaseModel",
    "StrictModel",
    "FrozenModel",
    "SourceLoc",
    # Errors
    "DiagnosticKind",
    "TimingError",
    "IncomparableEventsError",
    "UnboundParameterError",
    "NonLinearExpressionError",
    # Expressions
    "Expr",
    "Const",
    "ParamRef",
    "EventRef",
    "Add",
    "Sub",
    "Mul",
    "LinearForm",
    "as_expr",
    # Time
    "TimeExpr",
    "EventDef",
    "Interval",
    "contains",
    "coverage_gap",
    # Ports
    "PortDef",
    "PortDirection",
    "BoundPort",
    # Signature
    "ComponentSignature",
    "Parameter",
    "Relation",
    "WhereClause",
    # Design
    "PortRef",
    "Instantiation",
    "Invocation",
    "Connection",
    "ComponentBody",
    "ComponentDef",
    "Design",
]
