"""Diagnostic kinds and the exceptions raised by the timing model."""

from enum import Enum
from typing import Any


class DiagnosticKind(str, Enum):
    """Kind tag carried by every diagnostic."""

    INCOMPARABLE_EVENTS = "IncomparableEvents"
    INTERVAL_MISMATCH = "IntervalMismatch"
    WIDTH_MISMATCH = "WidthMismatch"
    DOUBLE_DRIVE = "DoubleDrive"
    DELAY_VIOLATION = "DelayViolation"
    UNBOUND_PARAMETER = "UnboundParameter"
    UNSATISFIABLE_WHERE = "UnsatisfiableWhere"
    INVALID_SIGNATURE = "InvalidSignature"
    UNDEFINED_NAME = "UndefinedName"
    DUPLICATE_NAME = "DuplicateName"
    ARITY_MISMATCH = "ArityMismatch"
    DIRECTION_MISMATCH = "DirectionMismatch"
    UNDRIVEN_PORT = "UndrivenPort"
    RECURSIVE_INSTANTIATION = "RecursiveInstantiation"


class TimingError(Exception):
    """Base class for errors raised while reasoning about time expressions.

    Carries the diagnostic kind and structured fields so that the checker
    can turn the exception into a located diagnostic.
    """

    kind: DiagnosticKind = DiagnosticKind.INVALID_SIGNATURE

    def __init__(self, message: str, **fields: Any):
        self.fields = fields
        super().__init__(message)


class IncomparableEventsError(TimingError):
    """Raised when two time expressions on unrelated events are compared."""

    kind = DiagnosticKind.INCOMPARABLE_EVENTS

    def __init__(self, left: Any, right: Any):
        super().__init__(
            f"Cannot compare {left} with {right}: they are relative to different events",
            left=str(left),
            right=str(right),
        )


class UnboundParameterError(TimingError):
    """Raised when an expression mentions a parameter with no binding."""

    kind = DiagnosticKind.UNBOUND_PARAMETER

    def __init__(self, name: str, context: str = ""):
        suffix = f" in {context}" if context else ""
        super().__init__(f"Parameter '{name}' has no binding{suffix}", parameter=name)


class NonLinearExpressionError(TimingError, ValueError):
    """Raised when an expression multiplies two non-constant terms."""

    kind = DiagnosticKind.INVALID_SIGNATURE
