"""
Tests for where-clause reasoning on Z3.
"""

from concurrent.futures import ThreadPoolExecutor

import pytest

from timecraft.checker import FactSet, SolverResult
from timecraft.model import LinearForm, Relation
from timecraft.parser import parse_where


def facts_of(*clauses: str) -> FactSet:
    return FactSet([parse_where(c) for c in clauses])


class TestSatisfiability:
    def test_empty(self):
        assert facts_of().is_satisfiable()
        assert facts_of().check_sat() == SolverResult.SAT

    def test_bounds(self):
        assert facts_of("N >= 2", "N <= 5").is_satisfiable()
        assert not facts_of("N >= 6", "N <= 5").is_satisfiable()

    def test_chain(self):
        assert facts_of("A < B", "B < C", "C <= A + 2").is_satisfiable()
        assert not facts_of("A < B", "B < C", "C <= A + 1").is_satisfiable()

    def test_strict_integer_bounds(self):
        # No integer lies strictly between 1 and 2
        assert not facts_of("N > 1", "N < 2").is_satisfiable()

    def test_equality(self):
        assert facts_of("A == B + 1", "B >= 3").is_satisfiable()
        assert not facts_of("A == B + 1", "A <= B").is_satisfiable()

    def test_false_ground_clause(self):
        assert not facts_of("1 > 2").is_satisfiable()

    def test_sum_of_widths(self):
        assert not facts_of("A >= 1", "B >= 1", "A + B <= 1").is_satisfiable()
        assert facts_of("A >= 1", "B >= 1", "A + B <= 2").is_satisfiable()

    def test_extra_facts_are_not_kept(self):
        facts = facts_of("N >= 1")
        assert facts.check_sat([(LinearForm({"N": 1}), Relation.LT)]) == SolverResult.UNSAT
        assert facts.is_satisfiable()
        assert len(facts) == 1


class TestBounds:
    def test_scaled_bound(self):
        assert facts_of("2*N >= 5").lower_bound(LinearForm({"N": 1})) == 3

    def test_relative_event_delay(self):
        facts = facts_of("'L > 'G+1")
        assert facts.lower_bound(LinearForm({"'L": 1, "'G": -1})) == 2

    def test_unbounded(self):
        assert facts_of().lower_bound(LinearForm({"N": 1})) is None
        assert facts_of("N <= 4").lower_bound(LinearForm({"N": 1})) is None

    def test_transitive_bound(self):
        facts = facts_of("A <= B", "B <= C - 2")
        assert facts.lower_bound(LinearForm({"C": 1, "A": -1})) == 2

    def test_sum_bound(self):
        facts = facts_of("A >= 1", "B >= 3")
        assert facts.lower_bound(LinearForm({"A": 1, "B": 1})) == 4

    def test_constant_form(self):
        assert facts_of().lower_bound(LinearForm(constant=7)) == 7


class TestImplication:
    @pytest.mark.parametrize(
        "facts, form, relation, expected",
        [
            (("N <= M",), LinearForm({"N": 1, "M": -1}), Relation.LE, True),
            (("N < M",), LinearForm({"N": 1, "M": -1}, 1), Relation.LE, True),
            (("N <= M",), LinearForm({"N": 1, "M": -1}), Relation.LT, False),
            (("N >= 4",), LinearForm({"N": 1}, -1), Relation.GE, True),
            (("N >= 4",), LinearForm({"N": 1}, -2), Relation.LE, False),
            (("A == B",), LinearForm({"A": 1, "B": -1}), Relation.EQ, True),
            ((), LinearForm({"N": 1}), Relation.GE, False),
            ((), LinearForm(constant=0), Relation.LE, True),
            ((), LinearForm(constant=1), Relation.LE, False),
        ],
    )
    def test_implies(self, facts, form, relation, expected):
        assert facts_of(*facts).implies(form, relation) is expected

    def test_implies_clause(self):
        facts = facts_of("IN <= 8", "OUT >= 8")
        assert facts.implies_clause(parse_where("IN <= OUT"))
        assert not facts.implies_clause(parse_where("IN < OUT"))

    def test_sum_goal(self):
        facts = facts_of("A >= 1", "B >= 1")
        assert facts.implies(LinearForm({"A": 1, "B": 1}, -2), Relation.GE)
        assert not facts.implies(LinearForm({"A": 1, "B": 1}, -3), Relation.GE)

    def test_concatenation_width(self):
        facts = facts_of("C == A + B", "A >= 1", "B >= 1")
        assert facts.implies_clause(parse_where("C == A + B"))
        assert facts.implies_clause(parse_where("A < C"))
        assert not facts.implies_clause(parse_where("C == 2*A"))

    def test_copy_is_independent(self):
        facts = facts_of("N >= 1")
        other = facts.copy()
        other.add(LinearForm({"N": 1}), Relation.LT)
        assert facts.is_satisfiable()
        assert not other.is_satisfiable()

    def test_queries_from_threads(self):
        facts = facts_of("N >= 4", "M >= N + 2")
        goals = [LinearForm({"M": 1}, -k) for k in range(10)]
        with ThreadPoolExecutor(max_workers=4) as pool:
            proven = list(pool.map(lambda g: facts.implies(g, Relation.GE), goals))
        assert proven == [k <= 6 for k in range(10)]
