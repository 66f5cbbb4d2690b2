"""
Located diagnostics produced by the checker.

Every rejection is reported as a :class:`Diagnostic` carrying a kind tag, a
source location, a human-readable message and structured fields; interval
mismatches also carry the two intervals involved.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from timecraft.model import DiagnosticKind, Interval, SourceLoc, TimingError


@dataclass
class Diagnostic:
    """Checker error with context."""

    kind: DiagnosticKind
    message: str
    location: Optional[SourceLoc] = None
    component: str = ""
    fields: Dict[str, Any] = field(default_factory=dict)
    available: Optional[Interval] = None
    required: Optional[Interval] = None
    suggestion: str = ""  # Optional fix suggestion

    @classmethod
    def from_error(
        cls,
        error: TimingError,
        location: Optional[SourceLoc] = None,
        component: str = "",
        **fields: Any,
    ) -> "Diagnostic":
        """Wrap a model-level exception into a located diagnostic."""
        return cls(
            kind=error.kind,
            message=str(error),
            location=location,
            component=component,
            fields={**error.fields, **fields},
        )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-friendly representation for external reporting layers."""
        data: Dict[str, Any] = {
            "kind": self.kind.value,
            "component": self.component,
            "message": self.message,
            "location": {
                "file": self.location.file if self.location else None,
                "line": self.location.line if self.location else None,
            },
            "fields": {k: _plain(v) for k, v in self.fields.items()},
        }
        if self.available is not None:
            data["available"] = str(self.available)
        if self.required is not None:
            data["required"] = str(self.required)
        if self.suggestion:
            data["suggestion"] = self.suggestion
        return data

    def __str__(self) -> str:
        where = str(self.location) if self.location else self.component or "<unknown>"
        return f"[{self.kind.value}] {where}: {self.message}"


def _plain(value: Any) -> Any:
    if isinstance(value, (int, bool, float)) or value is None:
        return value
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return str(value)


class SignatureError(Exception):
    """Raised when a signature cannot be registered (definitional error)."""

    def __init__(self, component: str, diagnostics: List[Diagnostic]):
        self.component = component
        self.diagnostics = diagnostics
        details = "\n  ".join(str(d) for d in diagnostics)
        super().__init__(f"Signature '{component}' rejected:\n  {details}")
