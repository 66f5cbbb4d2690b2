"""
Tests for invocation scheduling and the re-trigger delay checks.
"""

import pytest

from timecraft.checker import ConstraintSolver, InvocationScheduler
from timecraft.model import ComponentSignature, DiagnosticKind, Interval, TimeExpr
from timecraft.parser import parse_event, parse_statement, parse_where


def make_scheduler(table, events, where=()):
    caller = ComponentSignature(
        name="top",
        events=[parse_event(e) for e in events],
        where=[parse_where(w) for w in where],
    )
    return InvocationScheduler(caller, ConstraintSolver(table, caller))


def resolve_all(scheduler, *statements):
    instances = {}
    for text in statements:
        resolved, diagnostics = scheduler.solver.resolve(parse_statement(text))
        assert diagnostics == []
        instances[resolved.name] = resolved
    return instances


def schedule_all(scheduler, instances, *statements):
    diagnostics = []
    for text in statements:
        _, diags = scheduler.schedule(parse_statement(text), instances)
        diagnostics.extend(diags)
    return diagnostics


def at(offset):
    return "'G" if offset == 0 else f"'G+{offset}"


class TestSchedule:
    def test_binds_ports(self, table):
        scheduler = make_scheduler(table, ["'G: 10"])
        instances = resolve_all(scheduler, "M := new Mult[16]")
        record, diagnostics = scheduler.schedule(parse_statement("m0 := M<'G+1>(x, y)"), instances)
        assert diagnostics == []
        assert record.trigger == TimeExpr.at("G", 1)
        assert record.port("left").interval == Interval.on("G", 1, 2)
        assert record.port("out").interval == Interval.on("G", 3, 4)
        assert record.port("out").width_value == 16
        assert [r.name for r in scheduler.history("M")] == ["m0"]

    def test_unknown_instance(self, table):
        scheduler = make_scheduler(table, ["'G: 1"])
        diagnostics = schedule_all(scheduler, {}, "a0 := A<'G>")
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNDEFINED_NAME]

    def test_event_arity(self, table):
        scheduler = make_scheduler(table, ["'G: 1"])
        instances = resolve_all(scheduler, "A := new Add[8]")
        diagnostics = schedule_all(scheduler, instances, "a0 := A<'G, 'G+1>")
        assert [d.kind for d in diagnostics] == [DiagnosticKind.ARITY_MISMATCH]
        assert scheduler.history("A") == []

    def test_unknown_caller_event(self, table):
        scheduler = make_scheduler(table, ["'G: 1"])
        instances = resolve_all(scheduler, "A := new Add[8]")
        diagnostics = schedule_all(scheduler, instances, "a0 := A<'X>")
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNDEFINED_NAME]
        assert diagnostics[0].fields["name"] == "X"


class TestEventClauses:
    def test_register_hold_too_short(self, table):
        scheduler = make_scheduler(table, ["'G: 4"])
        instances = resolve_all(scheduler, "R := new Register[8]")
        diagnostics = schedule_all(scheduler, instances, "r0 := R<'G, 'G+1>")
        assert [d.kind for d in diagnostics] == [DiagnosticKind.UNSATISFIABLE_WHERE]
        assert diagnostics[0].fields["instantiated"] == "'G + 1 > 'G + 1"

    def test_register_hold_ok(self, table):
        scheduler = make_scheduler(table, ["'G: 4"])
        instances = resolve_all(scheduler, "R := new Register[8]")
        assert schedule_all(scheduler, instances, "r0 := R<'G, 'G+2>") == []
        assert scheduler.verify_delays() == []

    def test_unordered_caller_events(self, table):
        scheduler = make_scheduler(table, ["'G: 1", "'L: 1"])
        instances = resolve_all(scheduler, "R := new Register[8]")
        diagnostics = schedule_all(scheduler, instances, "r0 := R<'G, 'L>")
        assert [d.kind for d in diagnostics] == [DiagnosticKind.INCOMPARABLE_EVENTS]

    def test_ordered_caller_events(self, table):
        scheduler = make_scheduler(table, ["'G: 'L - 'G", "'L: 1"], ["'L > 'G + 4"])
        instances = resolve_all(scheduler, "R := new Register[8]")
        assert schedule_all(scheduler, instances, "r0 := R<'G, 'L>") == []
        assert scheduler.history("R")[0].port("out").interval == Interval(start="'G+1", end="'L")
        assert scheduler.verify_delays() == []


class TestDelays:
    @pytest.mark.parametrize("gap", range(6))
    def test_mult_gap(self, table, gap):
        scheduler = make_scheduler(table, ["'G: 10"])
        instances = resolve_all(scheduler, "M := new Mult[32]")
        assert schedule_all(scheduler, instances, "m0 := M<'G>", f"m1 := M<{at(gap)}>") == []
        diagnostics = scheduler.verify_delays()
        if gap >= 3:
            assert diagnostics == []
        else:
            assert [d.kind for d in diagnostics] == [DiagnosticKind.DELAY_VIOLATION]
            assert diagnostics[0].fields["min_delay"] == 3
            assert diagnostics[0].fields["gap"] == gap
            assert diagnostics[0].fields["invocations"] == ["m0", "m1"]

    def test_statement_order_does_not_matter(self, table):
        scheduler = make_scheduler(table, ["'G: 10"])
        instances = resolve_all(scheduler, "M := new Mult[32]")
        schedule_all(scheduler, instances, "m1 := M<'G+1>", "m0 := M<'G>")
        diagnostics = scheduler.verify_delays()
        assert diagnostics[0].fields["invocations"] == ["m0", "m1"]
        assert diagnostics[0].fields["first"] == "'G"

    def test_pipelined_back_to_back(self, table):
        scheduler = make_scheduler(table, ["'G: 2"])
        instances = resolve_all(scheduler, "F := new FastMult[32]")
        schedule_all(scheduler, instances, "m0 := F<'G>", "m1 := F<'G+1>")
        assert scheduler.verify_delays() == []

    def test_one_diagnostic_per_instance(self, table):
        scheduler = make_scheduler(table, ["'G: 10"])
        instances = resolve_all(scheduler, "M := new Mult[32]", "N := new Mult[32]")
        schedule_all(
            scheduler,
            instances,
            "m0 := M<'G>",
            "m1 := M<'G+1>",
            "m2 := M<'G+2>",
            "n0 := N<'G>",
            "n1 := N<'G>",
        )
        diagnostics = scheduler.verify_delays()
        assert [d.fields["instance"] for d in diagnostics] == ["M", "N"]

    def test_symbolic_delay(self, table):
        scheduler = make_scheduler(table, ["'G: 'L - 'G", "'L: 1"], ["'L > 'G + 4"])
        instances = resolve_all(scheduler, "R := new Register[8]")
        schedule_all(scheduler, instances, "r0 := R<'G, 'L>", "r1 := R<'G+1, 'L+1>")
        diagnostics = scheduler.verify_delays()
        assert [d.kind for d in diagnostics] == [DiagnosticKind.DELAY_VIOLATION]
        assert diagnostics[0].fields["gap"] == 1

    def test_triggers_on_different_events(self, table):
        scheduler = make_scheduler(table, ["'G: 1", "'H: 1"])
        instances = resolve_all(scheduler, "A := new Add[8]")
        schedule_all(scheduler, instances, "a0 := A<'G>", "a1 := A<'H>")
        diagnostics = scheduler.verify_delays()
        assert [d.kind for d in diagnostics] == [DiagnosticKind.INCOMPARABLE_EVENTS]
        assert (diagnostics[0].fields["first"], diagnostics[0].fields["second"]) == ("'G", "'H")


class TestThroughput:
    def test_busy_longer_than_caller_delay(self, table):
        scheduler = make_scheduler(table, ["'G: 2"])
        instances = resolve_all(scheduler, "M := new Mult[32]")
        schedule_all(scheduler, instances, "m0 := M<'G>")
        diagnostics = scheduler.verify_delays()
        assert [d.kind for d in diagnostics] == [DiagnosticKind.DELAY_VIOLATION]
        assert diagnostics[0].fields["min_delay"] == 3
        assert diagnostics[0].fields["gap"] == 2
        assert diagnostics[0].fields["caller_event"] == "G"

    def test_late_invocation_counts(self, table):
        scheduler = make_scheduler(table, ["'G: 4"])
        instances = resolve_all(scheduler, "M := new Mult[32]")
        schedule_all(scheduler, instances, "m0 := M<'G+2>")
        assert scheduler.verify_delays() == []
        schedule_all(scheduler, instances, "m1 := M<'G+5>")
        diagnostics = scheduler.verify_delays()
        assert diagnostics[0].fields["min_delay"] == 6

    @pytest.mark.parametrize(
        "where, kind",
        [
            (["'L > 'G + 2"], None),
            (["'L > 'G + 1"], DiagnosticKind.DELAY_VIOLATION),
            ([], DiagnosticKind.INCOMPARABLE_EVENTS),
        ],
    )
    def test_symbolic_caller_delay(self, table, where, kind):
        scheduler = make_scheduler(table, ["'G: 'L - 'G", "'L: 1"], where)
        instances = resolve_all(scheduler, "M := new Mult[32]")
        schedule_all(scheduler, instances, "m0 := M<'G>")
        diagnostics = scheduler.verify_delays()
        assert [d.kind for d in diagnostics] == ([kind] if kind else [])
