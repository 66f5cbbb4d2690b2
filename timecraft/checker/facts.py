"""
Where-clause reasoning over integer parameters and events, backed by Z3.

A :class:`FactSet` is a conjunction of linear facts ``form <relation> 0``
over integer symbols (parameters by name, events as ``'G``). Queries:

- ``check_sat``: can every fact hold at once
- ``implies``: does every model satisfy a goal (the facts plus the negated
  goal are unsat)
- ``lower_bound``: the minimum of a form over all models, if bounded

Each query builds its own ``z3.Context`` and solver, so one fact set can be
queried from several component checks running on different threads.
"""

import enum
import logging
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import z3

from timecraft.model import LinearForm, Relation, WhereClause

logger = logging.getLogger(__name__)

TIMEOUT_MS = 10000

Fact = Tuple[LinearForm, Relation]

_RELATIONS: Dict[Relation, Callable[[z3.ArithRef], z3.BoolRef]] = {
    Relation.LT: lambda term: term < 0,
    Relation.LE: lambda term: term <= 0,
    Relation.GT: lambda term: term > 0,
    Relation.GE: lambda term: term >= 0,
    Relation.EQ: lambda term: term == 0,
}


class SolverResult(enum.Enum):
    SAT = "sat"
    UNSAT = "unsat"
    UNKNOWN = "unknown"


def to_z3(form: LinearForm, ctx: z3.Context) -> z3.ArithRef:
    """Integer term for a linear form inside ``ctx``."""
    term = z3.IntVal(form.constant, ctx)
    for key, coeff in sorted(form.terms.items()):
        term = term + coeff * z3.Int(key, ctx)
    return term


def to_constraint(form: LinearForm, relation: Relation, ctx: z3.Context) -> z3.BoolRef:
    return _RELATIONS[relation](to_z3(form, ctx))


def _result(value: z3.CheckSatResult) -> SolverResult:
    if value == z3.sat:
        return SolverResult.SAT
    if value == z3.unsat:
        return SolverResult.UNSAT
    return SolverResult.UNKNOWN


class FactSet:
    """A conjunction of linear integer facts with Z3 queries."""

    def __init__(self, clauses: Iterable[WhereClause] = ()):
        self._facts: List[Fact] = []
        for clause in clauses:
            self.add_clause(clause)

    def copy(self) -> "FactSet":
        other = FactSet()
        other._facts = list(self._facts)
        return other

    def add_clause(self, clause: WhereClause) -> None:
        self.add(clause.form(), clause.relation)

    def add(self, form: LinearForm, relation: Relation) -> None:
        """Add ``form <relation> 0``."""
        self._facts.append((form, relation))

    def __len__(self) -> int:
        return len(self._facts)

    def _populate(self, solver, ctx: z3.Context) -> None:
        solver.set("timeout", TIMEOUT_MS)
        for form, relation in self._facts:
            solver.add(to_constraint(form, relation, ctx))

    def check_sat(self, extra: Iterable[Fact] = ()) -> SolverResult:
        """Satisfiability of the facts, plus ``extra`` facts for this query only."""
        ctx = z3.Context()
        solver = z3.Solver(ctx=ctx)
        self._populate(solver, ctx)
        for form, relation in extra:
            solver.add(to_constraint(form, relation, ctx))
        result = _result(solver.check())
        if result == SolverResult.UNKNOWN:
            logger.warning(f"Z3 gave up on {len(self._facts)} fact(s): {solver.reason_unknown()}")
        return result

    def is_satisfiable(self) -> bool:
        """False only when the facts provably cannot all hold."""
        return self.check_sat() != SolverResult.UNSAT

    def implies(self, form: LinearForm, relation: Relation) -> bool:
        """True when every model of the facts satisfies ``form <relation> 0``."""
        if form.is_constant:
            return relation.holds(form.constant, 0)
        ctx = z3.Context()
        solver = z3.Solver(ctx=ctx)
        self._populate(solver, ctx)
        solver.add(z3.Not(to_constraint(form, relation, ctx)))
        result = _result(solver.check())
        if result == SolverResult.UNKNOWN:
            logger.warning(f"Z3 could not decide {form} {relation.value} 0: {solver.reason_unknown()}")
        return result == SolverResult.UNSAT

    def implies_clause(self, clause: WhereClause) -> bool:
        return self.implies(clause.form(), clause.relation)

    def lower_bound(self, form: LinearForm) -> Optional[int]:
        """Minimum of ``form`` over every model, or None if unbounded."""
        if form.is_constant:
            return form.constant
        ctx = z3.Context()
        optimizer = z3.Optimize(ctx=ctx)
        self._populate(optimizer, ctx)
        objective = optimizer.minimize(to_z3(form, ctx))
        if optimizer.check() != z3.sat:
            return None
        value = optimizer.lower(objective)
        # Unbounded objectives come back as a term over infinity
        if not z3.is_int_value(value):
            return None
        return value.as_long()
