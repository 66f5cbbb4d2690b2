"""
Grammar for one-line declarations and body statements, built with pyparsing.

Accepted forms::

    W                         parameter
    ?OUT_WIDTH=IN_WIDTH       optional parameter with default
    'G: 1                     event with constant delay
    'G: 'L-('G)               event with relative delay
    left: ['G, 'G+1) W        port (``]`` also closes an interval; both are half-open)
    IN_WIDTH <= OUT_WIDTH     where-clause
    A := new Add[32]          instantiation (``new Ext[IN_WIDTH=8]`` for named bindings)
    a0 := A<'G>(x, y)         invocation
    out = a0.out              connection
"""

import logging
from typing import Any, List, Optional

from pyparsing import (
    Group,
    Keyword,
    Literal,
    OpAssoc,
    ParseBaseException,
    ParserElement,
    ParseResults,
    Regex,
    Suppress,
    Word,
    ZeroOrMore,
    infix_notation,
    nums,
    one_of,
)
from pyparsing import Optional as Opt

from timecraft.model import (
    Add,
    ComponentSignature,
    Connection,
    Const,
    EventDef,
    EventRef,
    Instantiation,
    Interval,
    Invocation,
    Mul,
    Parameter,
    ParamRef,
    PortDef,
    PortRef,
    SourceLoc,
    Sub,
    TimeExpr,
    WhereClause,
)

from .errors import ParseError

logger = logging.getLogger(__name__)

# Enable packrat parsing for better performance
ParserElement.enable_packrat()

_IDENT = r"[A-Za-z_][A-Za-z0-9_]*"
_BINARY = {"+": Add, "-": Sub, "*": Mul}


def _identifier() -> Regex:
    return Regex(_IDENT)


def _event_token() -> Regex:
    return Regex(r"'" + _IDENT)


def _fold_binary(tokens: ParseResults) -> Any:
    items = tokens[0]
    result = items[0]
    for i in range(1, len(items), 2):
        result = _BINARY[items[i]](lhs=result, rhs=items[i + 1])
    return result


def _negate(tokens: ParseResults) -> Any:
    _, operand = tokens[0]
    if isinstance(operand, Const):
        return Const(value=-operand.value)
    return Sub(lhs=Const(value=0), rhs=operand)


def _make_time(tokens: ParseResults) -> TimeExpr:
    offset = 0
    if len(tokens) == 3:
        offset = int(tokens[2]) if tokens[1] == "+" else -int(tokens[2])
    return TimeExpr(event=tokens[0][1:], offset=offset)


def _make_param(tokens: ParseResults) -> Parameter:
    toks = list(tokens)
    optional = toks[0] == "?"
    if optional:
        toks = toks[1:]
    name = toks[0]
    default = toks[1] if len(toks) > 1 else None
    if optional and default is None:
        raise ValueError(f"Optional parameter '{name}' needs a default value")
    return Parameter(name=name, default=default)


def _make_instantiation(tokens: ParseResults) -> Instantiation:
    args: List[Any] = []
    named = {}
    for tok in tokens[2:]:
        if isinstance(tok, ParseResults):
            named[tok[0]] = tok[1]
        else:
            args.append(tok)
    return Instantiation(name=tokens[0], component=tokens[1], args=args, named_args=named)


def _make_invocation(tokens: ParseResults) -> Invocation:
    times = [t for t in tokens[2:] if isinstance(t, TimeExpr)]
    groups = [t for t in tokens[2:] if isinstance(t, ParseResults)]
    inputs = tuple(groups[0]) if groups else None
    return Invocation(name=tokens[0], instance=tokens[1], events=times, inputs=inputs)


def _make_port_ref(tokens: ParseResults) -> PortRef:
    if len(tokens) == 2:
        return PortRef(invocation=tokens[0], port=tokens[1])
    return PortRef(port=tokens[0])


class TimingGrammar:
    """Grammar elements for expressions, declarations and statements."""

    def __init__(self):
        operand = (
            Word(nums).set_parse_action(lambda t: Const(value=int(t[0])))
            | _event_token().set_parse_action(lambda t: EventRef(name=t[0][1:]))
            | _identifier().set_parse_action(lambda t: ParamRef(name=t[0]))
        )
        self.expr = infix_notation(
            operand,
            [
                (Literal("-"), 1, OpAssoc.RIGHT, _negate),
                (Literal("*"), 2, OpAssoc.LEFT, _fold_binary),
                (one_of("+ -"), 2, OpAssoc.LEFT, _fold_binary),
            ],
        )

        self.time_expr = (_event_token() + Opt(one_of("+ -") + Word(nums))).set_parse_action(
            _make_time
        )
        self.interval = (
            Suppress("[")
            + self.time_expr
            + Suppress(",")
            + self.time_expr
            + (Suppress(")") | Suppress("]"))
        ).set_parse_action(lambda t: Interval(start=t[0], end=t[1]))

        self.where_clause = (self.expr + one_of("<= >= == < >") + self.expr).set_parse_action(
            lambda t: WhereClause(lhs=t[0], relation=t[1], rhs=t[2])
        )

        self.param_decl = (
            Opt(Literal("?")) + _identifier() + Opt(Suppress("=") + self.expr)
        ).set_parse_action(_make_param)

        self.event_decl = (_event_token() + Suppress(":") + self.expr).set_parse_action(
            lambda t: EventDef(name=t[0], delay=t[1])
        )

        self.port_decl = _identifier() + Suppress(":") + self.interval + self.expr

        port_ref = (_identifier() + Opt(Suppress(".") + _identifier())).set_parse_action(
            _make_port_ref
        )
        named_arg = Group(_identifier() + Suppress("=") + self.expr)
        arg = named_arg | self.expr
        arg_list = arg + ZeroOrMore(Suppress(",") + arg)
        self.instantiation = (
            _identifier()
            + Suppress(":=")
            + Suppress(Keyword("new"))
            + _identifier()
            + Opt(Suppress("[") + Opt(arg_list) + Suppress("]"))
        ).set_parse_action(_make_instantiation)

        time_list = self.time_expr + ZeroOrMore(Suppress(",") + self.time_expr)
        ref_list = port_ref + ZeroOrMore(Suppress(",") + port_ref)
        self.invocation = (
            _identifier()
            + Suppress(":=")
            + _identifier()
            + Suppress("<")
            + time_list
            + Suppress(">")
            + Opt(Group(Suppress("(") + Opt(ref_list) + Suppress(")")))
        ).set_parse_action(_make_invocation)

        self.connection = (port_ref + Suppress("=") + port_ref).set_parse_action(
            lambda t: Connection(dest=t[0], src=t[1])
        )

        self.statement = self.instantiation | self.invocation | self.connection


_grammar: Optional[TimingGrammar] = None


def get_grammar() -> TimingGrammar:
    """Get or create the shared grammar instance."""
    global _grammar
    if _grammar is None:
        _grammar = TimingGrammar()
    return _grammar


def _parse(element_name: str, what: str, text: str) -> ParseResults:
    element = getattr(get_grammar(), element_name)
    try:
        return element.parse_string(str(text), parse_all=True)
    except ParseBaseException as e:
        raise ParseError(f"Invalid {what} '{text}': {e}")
    except ValueError as e:
        raise ParseError(f"Invalid {what} '{text}': {e}")


def parse_expr(text: str):
    """Parse an integer expression such as ``IN_WIDTH + 1`` or ``'L - 'G``."""
    return _parse("expr", "expression", text)[0]


def parse_time(text: str) -> TimeExpr:
    """Parse a time expression such as ``'G+3``."""
    return _parse("time_expr", "time expression", text)[0]


def parse_interval(text: str) -> Interval:
    """Parse an interval such as ``['G, 'G+1)``."""
    return _parse("interval", "interval", text)[0]


def parse_where(text: str, loc: Optional[SourceLoc] = None) -> WhereClause:
    clause = _parse("where_clause", "where-clause", text)[0]
    return clause.model_copy(update={"loc": loc}) if loc else clause


def parse_param(text: str, loc: Optional[SourceLoc] = None) -> Parameter:
    param = _parse("param_decl", "parameter", text)[0]
    return param.model_copy(update={"loc": loc}) if loc else param


def parse_event(text: str, loc: Optional[SourceLoc] = None) -> EventDef:
    event = _parse("event_decl", "event", text)[0]
    return event.model_copy(update={"loc": loc}) if loc else event


def parse_port(text: str, direction: str, loc: Optional[SourceLoc] = None) -> PortDef:
    """Parse ``name: interval width`` into a port of the given direction."""
    tokens = _parse("port_decl", "port", text)
    name, interval, width = tokens[0], tokens[1], tokens[2]
    try:
        return PortDef(name=name, direction=direction, interval=interval, width=width, loc=loc)
    except ValueError as e:
        raise ParseError(f"Invalid port '{text}': {e}")


def parse_statement(text: str, loc: Optional[SourceLoc] = None):
    """Parse one body statement (instantiation, invocation or connection)."""
    statement = _parse("statement", "statement", text)[0]
    logger.debug(f"Parsed statement: {statement}")
    return statement.model_copy(update={"loc": loc}) if loc else statement


def format_signature(signature: ComponentSignature) -> str:
    """Render a signature in the declaration syntax accepted above."""
    inputs = ", ".join(str(p) for p in signature.inputs)
    outputs = ", ".join(str(p) for p in signature.outputs)
    text = f"comp {signature}({inputs}) -> ({outputs})"
    if signature.where:
        text += " where " + ", ".join(str(c) for c in signature.where)
    return text
