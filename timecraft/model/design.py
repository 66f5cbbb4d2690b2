"""Component bodies and whole designs - the canonical input of the checker."""

from typing import Any, Dict, List, Optional, Set, Tuple

from pydantic import Field, field_validator

from .base import FrozenModel, NamedModel, SourceLoc, StrictModel
from .event import TimeExpr
from .expr import Expr, as_expr
from .signature import ComponentSignature


class PortRef(FrozenModel):
    """Reference to a caller port (``x``) or an invocation port (``a0.out``)."""

    port: str
    invocation: Optional[str] = None

    @classmethod
    def from_string(cls, text: str) -> "PortRef":
        head, _, tail = text.strip().partition(".")
        if tail:
            return cls(invocation=head, port=tail)
        return cls(port=head)

    @property
    def is_local(self) -> bool:
        """True for ports of the enclosing component itself."""
        return self.invocation is None

    def __str__(self) -> str:
        if self.invocation:
            return f"{self.invocation}.{self.port}"
        return self.port


class Instantiation(NamedModel):
    """``A := new Add[32]`` - a named resource inside a body."""

    component: str = Field(..., description="Instantiated component name")
    args: Tuple[Expr, ...] = Field(default=(), description="Positional parameter bindings")
    named_args: Dict[str, Expr] = Field(default_factory=dict, description="Named bindings")

    @field_validator("args", mode="before")
    @classmethod
    def coerce_args(cls, v: Any) -> Any:
        return tuple(as_expr(a) for a in v)

    @field_validator("named_args", mode="before")
    @classmethod
    def coerce_named_args(cls, v: Any) -> Any:
        return {k: as_expr(a) for k, a in dict(v).items()}

    def __str__(self) -> str:
        bindings = [str(a) for a in self.args]
        bindings += [f"{k}={v}" for k, v in self.named_args.items()]
        suffix = f"[{', '.join(bindings)}]" if bindings else ""
        return f"{self.name} := new {self.component}{suffix}"


class Invocation(NamedModel):
    """``a0 := A<'G>(x, y)`` - one triggering of an instance."""

    instance: str = Field(..., description="Invoked instance name")
    events: Tuple[TimeExpr, ...] = Field(..., description="Binding of the callee's events")
    inputs: Optional[Tuple[PortRef, ...]] = Field(
        default=None, description="Positional input sources; None when wired by connections"
    )

    @field_validator("events", mode="before")
    @classmethod
    def coerce_events(cls, v: Any) -> Any:
        from timecraft.parser.grammar import parse_time

        return tuple(parse_time(t) if isinstance(t, str) else t for t in v)

    @field_validator("inputs", mode="before")
    @classmethod
    def coerce_inputs(cls, v: Any) -> Any:
        if v is None:
            return v
        return tuple(PortRef.from_string(p) if isinstance(p, str) else p for p in v)

    def __str__(self) -> str:
        events = ", ".join(str(t) for t in self.events)
        text = f"{self.name} := {self.instance}<{events}>"
        if self.inputs is not None:
            text += f"({', '.join(str(p) for p in self.inputs)})"
        return text


class Connection(FrozenModel):
    """``dest = src`` - a direct port-to-port wire."""

    dest: PortRef
    src: PortRef
    loc: Optional[SourceLoc] = Field(default=None, description="Statement site")

    @field_validator("dest", "src", mode="before")
    @classmethod
    def coerce_ref(cls, v: Any) -> Any:
        if isinstance(v, str):
            return PortRef.from_string(v)
        return v

    def __str__(self) -> str:
        return f"{self.dest} = {self.src}"


class ComponentBody(FrozenModel):
    """Statements of a component body."""

    instances: Tuple[Instantiation, ...] = ()
    invocations: Tuple[Invocation, ...] = ()
    connections: Tuple[Connection, ...] = ()

    @property
    def dependencies(self) -> Set[str]:
        """Names of all instantiated components."""
        return {inst.component for inst in self.instances}


class ComponentDef(FrozenModel):
    """A signature together with its (optional) body."""

    signature: ComponentSignature
    body: Optional[ComponentBody] = None

    @property
    def name(self) -> str:
        return self.signature.name

    @property
    def has_body(self) -> bool:
        return self.body is not None


class Design(StrictModel):
    """
    A complete design description: every component to register and check.

    Imported components contribute signatures only; their bodies are
    checked where they are defined.
    """

    api_version: str = Field(default="timecraft/v1", description="Schema version")
    name: str = Field(default="", description="Design name")
    use_primitives: bool = Field(default=True, description="Register the bundled primitives")
    components: List[ComponentDef] = Field(default_factory=list, description="Components")
    imported: List[ComponentSignature] = Field(
        default_factory=list, description="Signatures pulled in from imports"
    )
    source: Optional[str] = Field(default=None, description="File the design was loaded from")

    @staticmethod
    def _find(items: List[ComponentDef], name: str) -> Optional[ComponentDef]:
        return next((item for item in items if item.name == name), None)

    def get_component(self, name: str) -> Optional[ComponentDef]:
        return self._find(self.components, name)

    @property
    def component_names(self) -> List[str]:
        return [c.name for c in self.components]
