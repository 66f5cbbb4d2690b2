"""
Tests for the one-line declaration grammar.
"""

import pytest

from timecraft.model import (
    Connection,
    Const,
    Instantiation,
    Interval,
    Invocation,
    LinearForm,
    ParamRef,
    PortDirection,
    PortRef,
    Relation,
    SourceLoc,
    TimeExpr,
)
from timecraft.parser import (
    ParseError,
    parse_event,
    parse_expr,
    parse_interval,
    parse_param,
    parse_port,
    parse_statement,
    parse_time,
    parse_where,
)
from timecraft.parser.grammar import format_signature


class TestExpressions:
    @pytest.mark.parametrize(
        "text, form",
        [
            ("32", LinearForm(constant=32)),
            ("IN_WIDTH + 1", LinearForm({"IN_WIDTH": 1}, 1)),
            ("2*(W+1)", LinearForm({"W": 2}, 2)),
            ("'L-('G)", LinearForm({"'L": 1, "'G": -1})),
            ("A - B - 1", LinearForm({"A": 1, "B": -1}, -1)),
            ("-3", LinearForm(constant=-3)),
            ("-W", LinearForm({"W": -1})),
        ],
    )
    def test_linear_forms(self, text, form):
        assert parse_expr(text).linearize() == form

    def test_param_reference(self):
        assert parse_expr("W") == ParamRef(name="W")

    @pytest.mark.parametrize("text", ["", "1 +", "W W", "(W"])
    def test_invalid(self, text):
        with pytest.raises(ParseError, match="Invalid expression"):
            parse_expr(text)


class TestTimeAndIntervals:
    @pytest.mark.parametrize(
        "text, expected",
        [("'G", TimeExpr.at("G")), ("'G+3", TimeExpr.at("G", 3)), ("'G - 1", TimeExpr.at("G", -1))],
    )
    def test_time(self, text, expected):
        assert parse_time(text) == expected

    def test_interval(self):
        assert parse_interval("['G, 'G+1)") == Interval.on("G", 0, 1)

    def test_interval_square_close_is_half_open(self):
        assert parse_interval("['G+1, 'G+3]") == Interval.on("G", 1, 3)

    def test_empty_interval(self):
        with pytest.raises(ParseError, match="empty"):
            parse_interval("['G+1, 'G+1)")

    def test_missing_tick(self):
        with pytest.raises(ParseError):
            parse_time("G+1")


class TestDeclarations:
    def test_where(self):
        loc = SourceLoc(file="d.yml", line=7)
        clause = parse_where("IN_WIDTH <= OUT_WIDTH", loc)
        assert clause.relation == Relation.LE
        assert clause.loc == loc
        assert str(clause) == "IN_WIDTH <= OUT_WIDTH"

    def test_event_where(self):
        clause = parse_where("'L > 'G+1")
        assert clause.relation == Relation.GT
        assert clause.mentions_events

    def test_param(self):
        assert parse_param("W").default is None
        param = parse_param("?OUT_WIDTH=IN_WIDTH")
        assert param.name == "OUT_WIDTH"
        assert param.default == ParamRef(name="IN_WIDTH")

    def test_optional_param_needs_default(self):
        with pytest.raises(ParseError):
            parse_param("?OUT_WIDTH")

    def test_event(self):
        event = parse_event("'G: 'L-('G)")
        assert event.name == "G"
        assert event.is_relative
        assert parse_event("'L: 1").delay == Const(value=1)

    def test_port(self):
        port = parse_port("left: ['G, 'G+1) W", "in")
        assert port.name == "left"
        assert port.direction == PortDirection.IN
        assert port.width == ParamRef(name="W")
        assert port.interval == Interval.on("G", 0, 1)

    def test_port_needs_width(self):
        with pytest.raises(ParseError, match="Invalid port"):
            parse_port("left: ['G, 'G+1)", "in")


class TestStatements:
    def test_instantiation(self):
        stmt = parse_statement("A := new Add[32]")
        assert isinstance(stmt, Instantiation)
        assert stmt.name == "A"
        assert stmt.component == "Add"
        assert stmt.args == (Const(value=32),)

    def test_instantiation_named_args(self):
        stmt = parse_statement("Z := new ZeroExtend[IN_WIDTH=8]")
        assert stmt.args == ()
        assert stmt.named_args == {"IN_WIDTH": Const(value=8)}

    def test_instantiation_mixed_args(self):
        stmt = parse_statement("Z := new ZeroExtend[N + 1, OUT_WIDTH=16]")
        assert stmt.args[0].linearize() == LinearForm({"N": 1}, 1)
        assert stmt.named_args["OUT_WIDTH"] == Const(value=16)

    def test_instantiation_without_params(self):
        stmt = parse_statement("I := new inner")
        assert stmt.args == ()
        assert str(stmt) == "I := new inner"

    def test_invocation(self):
        stmt = parse_statement("a0 := A<'G+1>(x, m0.out)")
        assert isinstance(stmt, Invocation)
        assert stmt.instance == "A"
        assert stmt.events == (TimeExpr.at("G", 1),)
        assert stmt.inputs == (PortRef(port="x"), PortRef(invocation="m0", port="out"))

    def test_invocation_multiple_events(self):
        stmt = parse_statement("r0 := R<'G, 'G+3>(x)")
        assert stmt.events == (TimeExpr.at("G"), TimeExpr.at("G", 3))

    def test_invocation_without_inputs(self):
        stmt = parse_statement("a0 := A<'G>")
        assert stmt.inputs is None
        assert str(stmt) == "a0 := A<'G>"

    def test_connection(self):
        loc = SourceLoc(line=3)
        stmt = parse_statement("out = a0.out", loc)
        assert isinstance(stmt, Connection)
        assert stmt.dest == PortRef(port="out")
        assert stmt.src == PortRef(invocation="a0", port="out")
        assert stmt.loc == loc

    def test_invalid_statement(self):
        with pytest.raises(ParseError, match="Invalid statement"):
            parse_statement("a0 <- A")


def test_format_signature(primitives):
    text = format_signature(primitives.get_signature("Register"))
    assert text.startswith("comp Register[W]<'G: 'L - 'G, 'L: 1>(in: ['G, 'G+1) W)")
    assert text.endswith("where 'L > 'G + 1")
