"""
Symbolic integer expressions over parameters and events.

Widths, parameter defaults, event delays and where-clause operands are all
small expression trees. The tree is a tagged union (``kind`` discriminator)
so it round-trips through pydantic. Every expression must normalise to a
linear form; multiplication is only allowed when one side is constant.

Example:
    >>> from timecraft.model.expr import EventRef, ParamRef
    >>> delay = EventRef(name="L") - EventRef(name="G")
    >>> str(delay)
    "'L - 'G"
"""

from typing import Annotated, Any, Dict, FrozenSet, Literal, Mapping, Optional, Union

from pydantic import Field

from .base import FrozenModel
from .errors import NonLinearExpressionError, UnboundParameterError


class LinearForm:
    """Normalised ``sum(coeff * symbol) + constant``.

    Event symbols are keyed with a leading quote (``"'G"``), parameters by
    their bare name.
    """

    __slots__ = ("terms", "constant")

    def __init__(self, terms: Optional[Mapping[str, int]] = None, constant: int = 0):
        self.terms: Dict[str, int] = {k: v for k, v in (terms or {}).items() if v != 0}
        self.constant = constant

    @classmethod
    def of_symbol(cls, key: str) -> "LinearForm":
        return cls({key: 1})

    @classmethod
    def of_event(cls, name: str, offset: int = 0) -> "LinearForm":
        return cls({f"'{name}": 1}, offset)

    def __add__(self, other: "LinearForm") -> "LinearForm":
        terms = dict(self.terms)
        for key, coeff in other.terms.items():
            terms[key] = terms.get(key, 0) + coeff
        return LinearForm(terms, self.constant + other.constant)

    def __neg__(self) -> "LinearForm":
        return LinearForm({k: -v for k, v in self.terms.items()}, -self.constant)

    def __sub__(self, other: "LinearForm") -> "LinearForm":
        return self + (-other)

    def scale(self, factor: int) -> "LinearForm":
        return LinearForm({k: v * factor for k, v in self.terms.items()}, self.constant * factor)

    def shift(self, delta: int) -> "LinearForm":
        return LinearForm(self.terms, self.constant + delta)

    @property
    def is_constant(self) -> bool:
        return not self.terms

    @property
    def events(self) -> FrozenSet[str]:
        return frozenset(k[1:] for k in self.terms if k.startswith("'"))

    @property
    def params(self) -> FrozenSet[str]:
        return frozenset(k for k in self.terms if not k.startswith("'"))

    def evaluate(self, env: Optional[Mapping[str, int]] = None) -> int:
        """Evaluate with every symbol bound in ``env``."""
        env = env or {}
        total = self.constant
        for key, coeff in self.terms.items():
            if key not in env:
                raise UnboundParameterError(key)
            total += coeff * env[key]
        return total

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, LinearForm):
            return NotImplemented
        return self.terms == other.terms and self.constant == other.constant

    def __hash__(self) -> int:
        return hash((frozenset(self.terms.items()), self.constant))

    def __str__(self) -> str:
        parts = []
        for key in sorted(self.terms):
            coeff = self.terms[key]
            if coeff == 1:
                term = key
            elif coeff == -1:
                term = f"-{key}"
            else:
                term = f"{coeff}*{key}"
            parts.append(term)
        if self.constant or not parts:
            parts.append(str(self.constant))
        text = " + ".join(parts)
        return text.replace("+ -", "- ")

    def __repr__(self) -> str:
        return f"LinearForm({self})"


class ExprNode(FrozenModel):
    """Common behaviour of expression tree nodes."""

    def linearize(self) -> LinearForm:
        raise NotImplementedError

    def substitute(
        self,
        params: Optional[Mapping[str, "Expr"]] = None,
        events: Optional[Mapping[str, "Expr"]] = None,
    ) -> "Expr":
        """Replace parameters and events by expressions."""
        raise NotImplementedError

    def free_params(self) -> FrozenSet[str]:
        return frozenset()

    def free_events(self) -> FrozenSet[str]:
        return frozenset()

    def evaluate(self, env: Optional[Mapping[str, int]] = None) -> int:
        return self.linearize().evaluate(env)

    def __add__(self, other: Any) -> "Expr":
        return Add(lhs=self, rhs=as_expr(other))

    def __radd__(self, other: Any) -> "Expr":
        return Add(lhs=as_expr(other), rhs=self)

    def __sub__(self, other: Any) -> "Expr":
        return Sub(lhs=self, rhs=as_expr(other))

    def __rsub__(self, other: Any) -> "Expr":
        return Sub(lhs=as_expr(other), rhs=self)

    def __mul__(self, other: Any) -> "Expr":
        return Mul(lhs=self, rhs=as_expr(other))

    def __rmul__(self, other: Any) -> "Expr":
        return Mul(lhs=as_expr(other), rhs=self)


class Const(ExprNode):
    kind: Literal["const"] = "const"
    value: int

    def linearize(self) -> LinearForm:
        return LinearForm(constant=self.value)

    def substitute(self, params=None, events=None) -> "Expr":
        return self

    def __str__(self) -> str:
        return str(self.value)


class ParamRef(ExprNode):
    kind: Literal["param"] = "param"
    name: str

    def linearize(self) -> LinearForm:
        return LinearForm.of_symbol(self.name)

    def substitute(self, params=None, events=None) -> "Expr":
        if params and self.name in params:
            return params[self.name]
        return self

    def free_params(self) -> FrozenSet[str]:
        return frozenset([self.name])

    def __str__(self) -> str:
        return self.name


class EventRef(ExprNode):
    kind: Literal["event"] = "event"
    name: str

    def linearize(self) -> LinearForm:
        return LinearForm.of_event(self.name)

    def substitute(self, params=None, events=None) -> "Expr":
        if events and self.name in events:
            return events[self.name]
        return self

    def free_events(self) -> FrozenSet[str]:
        return frozenset([self.name])

    def __str__(self) -> str:
        return f"'{self.name}"


class _BinaryExpr(ExprNode):
    lhs: "Expr"
    rhs: "Expr"

    def free_params(self) -> FrozenSet[str]:
        return self.lhs.free_params() | self.rhs.free_params()

    def free_events(self) -> FrozenSet[str]:
        return self.lhs.free_events() | self.rhs.free_events()

    def substitute(self, params=None, events=None) -> "Expr":
        return type(self)(
            lhs=self.lhs.substitute(params, events),
            rhs=self.rhs.substitute(params, events),
        )


class Add(_BinaryExpr):
    kind: Literal["add"] = "add"

    def linearize(self) -> LinearForm:
        return self.lhs.linearize() + self.rhs.linearize()

    def __str__(self) -> str:
        return f"{self.lhs} + {self.rhs}"


class Sub(_BinaryExpr):
    kind: Literal["sub"] = "sub"

    def linearize(self) -> LinearForm:
        return self.lhs.linearize() - self.rhs.linearize()

    def __str__(self) -> str:
        rhs = f"({self.rhs})" if isinstance(self.rhs, (Add, Sub)) else str(self.rhs)
        return f"{self.lhs} - {rhs}"


class Mul(_BinaryExpr):
    kind: Literal["mul"] = "mul"

    def linearize(self) -> LinearForm:
        lhs = self.lhs.linearize()
        rhs = self.rhs.linearize()
        if lhs.is_constant:
            return rhs.scale(lhs.constant)
        if rhs.is_constant:
            return lhs.scale(rhs.constant)
        raise NonLinearExpressionError(f"Expression '{self}' is not linear", expr=str(self))

    def __str__(self) -> str:
        def wrap(e: "Expr") -> str:
            return f"({e})" if isinstance(e, (Add, Sub)) else str(e)

        return f"{wrap(self.lhs)}*{wrap(self.rhs)}"


Expr = Annotated[Union[Const, ParamRef, EventRef, Add, Sub, Mul], Field(discriminator="kind")]

for _model in (_BinaryExpr, Add, Sub, Mul):
    _model.model_rebuild()


def as_expr(value: Any) -> "Expr":
    """Coerce ints and expression strings into expression nodes."""
    if isinstance(value, ExprNode):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Cannot interpret boolean {value!r} as an expression")
    if isinstance(value, int):
        return Const(value=value)
    if isinstance(value, str):
        # Deferred import: the grammar builds model objects.
        from timecraft.parser.grammar import parse_expr

        return parse_expr(value)
    raise ValueError(f"Cannot interpret {value!r} as an expression")


def render_form(form: LinearForm) -> Union[int, str]:
    """Return a plain int for constant forms, text otherwise."""
    return form.constant if form.is_constant else str(form)
