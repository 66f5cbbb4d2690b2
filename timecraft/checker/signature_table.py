"""
Signature table: one immutable signature per component name.

Registration is where definitional errors are reported: duplicate or
undeclared names, non-linear expressions, jointly unsatisfiable
where-clauses, delays that are not provably positive and intervals that may
be empty. After registration the table is only read, so it can be shared by
concurrent component checks.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterable, List, Mapping, Optional

from timecraft.model import (
    ComponentSignature,
    DiagnosticKind,
    NonLinearExpressionError,
    Relation,
    WhereClause,
)

from .diagnostics import Diagnostic, SignatureError
from .facts import FactSet

logger = logging.getLogger(__name__)


class SignatureTable:
    """Registry of component signatures, looked up by name."""

    def __init__(self):
        self._signatures: Dict[str, ComponentSignature] = {}
        self._facts: Dict[str, FactSet] = {}
        self._rejected: Dict[str, List[Diagnostic]] = {}

    def register(self, signature: ComponentSignature) -> ComponentSignature:
        """
        Register a signature exactly once.

        Raises:
            SignatureError: If the name is taken or the signature is malformed
        """
        if signature.name in self._signatures or signature.name in self._rejected:
            raise SignatureError(
                signature.name,
                [
                    Diagnostic(
                        kind=DiagnosticKind.DUPLICATE_NAME,
                        message=f"Component '{signature.name}' is already defined",
                        location=signature.loc,
                        component=signature.name,
                    )
                ],
            )

        diagnostics = SignatureValidator(signature).validate()
        if diagnostics:
            raise SignatureError(signature.name, diagnostics)

        self._signatures[signature.name] = signature
        self._facts[signature.name] = build_facts(signature)
        logger.debug(f"Registered signature {signature}")
        return signature

    def register_all(self, signatures: Iterable[ComponentSignature]) -> None:
        for signature in signatures:
            self.register(signature)

    def reject(self, name: str, diagnostics: List[Diagnostic]) -> None:
        """Withdraw a name whose definition failed, keeping the reasons.

        Any signature already registered under the name is removed, so an
        ambiguous name cannot be instantiated.
        """
        self._signatures.pop(name, None)
        self._facts.pop(name, None)
        self._rejected.setdefault(name, []).extend(diagnostics)
        logger.debug(f"Withdrew signature '{name}'")

    def rejection(self, name: str) -> Optional[List[Diagnostic]]:
        """Diagnostics that withdrew ``name``, or None if it was never rejected."""
        return self._rejected.get(name)

    def get(self, name: str) -> Optional[ComponentSignature]:
        """Get a registered signature, or None."""
        return self._signatures.get(name)

    def facts(self, name: str) -> FactSet:
        """Where-clause facts of a registered signature (do not mutate)."""
        return self._facts[name]

    @property
    def signatures(self) -> Mapping[str, ComponentSignature]:
        """Read-only view of every registered signature."""
        return MappingProxyType(self._signatures)

    def __contains__(self, name: object) -> bool:
        return name in self._signatures

    def __len__(self) -> int:
        return len(self._signatures)


def build_facts(
    signature: ComponentSignature, clauses: Optional[Iterable[WhereClause]] = None
) -> FactSet:
    """Where-clauses plus the implicit ``width >= 1`` of every port."""
    facts = FactSet(signature.where if clauses is None else clauses)
    for port in signature.ports:
        facts.add(port.width.linearize().shift(-1), Relation.GE)
    return facts


class SignatureValidator:
    """Definitional checks of one signature."""

    def __init__(self, signature: ComponentSignature):
        self.signature = signature
        self.diagnostics: List[Diagnostic] = []

    def validate(self) -> List[Diagnostic]:
        self.diagnostics.clear()
        self.validate_unique_names()
        sound_clauses = self.validate_references()
        if self.diagnostics:
            return self.diagnostics

        facts = build_facts(self.signature, sound_clauses)
        if not facts.is_satisfiable():
            clauses = ", ".join(str(c) for c in self.signature.where)
            self._error(
                DiagnosticKind.UNSATISFIABLE_WHERE,
                f"Where-clauses of '{self.signature.name}' cannot all hold: {clauses}",
                clauses=[str(c) for c in self.signature.where],
            )
            return self.diagnostics

        self.validate_delays(facts)
        self.validate_intervals(facts)
        return self.diagnostics

    def _error(self, kind: DiagnosticKind, message: str, loc=None, **fields) -> None:
        self.diagnostics.append(
            Diagnostic(
                kind=kind,
                message=message,
                location=loc or self.signature.loc,
                component=self.signature.name,
                fields=fields,
            )
        )

    def validate_unique_names(self) -> None:
        """Check for duplicate names within each category."""
        for category, names in (
            ("parameter", self.signature.param_names),
            ("event", self.signature.event_names),
            ("port", tuple(p.name for p in self.signature.ports)),
        ):
            seen = set()
            for name in names:
                if name in seen:
                    self._error(
                        DiagnosticKind.DUPLICATE_NAME,
                        f"Duplicate {category} name: '{name}'",
                        name=name,
                    )
                seen.add(name)

    def _check_expr(self, expr, what: str, loc, allow_events: bool, allow_params=None) -> bool:
        params = set(self.signature.param_names if allow_params is None else allow_params)
        events = set(self.signature.event_names)
        ok = True
        for name in sorted(expr.free_params() - params):
            self._error(
                DiagnosticKind.INVALID_SIGNATURE,
                f"{what} refers to undeclared parameter '{name}'",
                loc,
                name=name,
            )
            ok = False
        used_events = expr.free_events()
        if used_events and not allow_events:
            self._error(
                DiagnosticKind.INVALID_SIGNATURE,
                f"{what} cannot refer to events",
                loc,
            )
            ok = False
        for name in sorted(used_events - events):
            self._error(
                DiagnosticKind.INVALID_SIGNATURE,
                f"{what} refers to undeclared event '{name}'",
                loc,
                name=name,
            )
            ok = False
        if ok:
            try:
                expr.linearize()
            except NonLinearExpressionError as e:
                self._error(DiagnosticKind.INVALID_SIGNATURE, f"{what}: {e}", loc)
                ok = False
        return ok

    def validate_references(self) -> List[WhereClause]:
        """Check every expression names declared parameters/events and is linear.

        Returns the where-clauses that passed, for use as facts.
        """
        sig = self.signature
        for index, param in enumerate(sig.params):
            if param.default is not None:
                # Defaults may only refer to earlier parameters
                self._check_expr(
                    param.default,
                    f"Default of parameter '{param.name}'",
                    param.loc,
                    allow_events=False,
                    allow_params=sig.param_names[:index],
                )
        for event in sig.events:
            self._check_expr(event.delay, f"Delay of event {event.label}", event.loc, True)
        for port in sig.ports:
            self._check_expr(port.width, f"Width of port '{port.name}'", port.loc, False)
            for bound in (port.interval.start, port.interval.end):
                if bound.event not in sig.event_names:
                    self._error(
                        DiagnosticKind.INVALID_SIGNATURE,
                        f"Interval of port '{port.name}' refers to undeclared event '{bound.event}'",
                        port.loc,
                        name=bound.event,
                    )
        sound = []
        for clause in sig.where:
            expr_ok = self._check_expr(clause.lhs, f"Where-clause '{clause}'", clause.loc, True)
            expr_ok = self._check_expr(clause.rhs, f"Where-clause '{clause}'", clause.loc, True) and expr_ok
            if expr_ok:
                sound.append(clause)
        return sound

    def validate_delays(self, facts: FactSet) -> None:
        """Every event delay must be provably positive."""
        for event in self.signature.events:
            form = event.delay.linearize()
            if form.is_constant:
                if form.constant <= 0:
                    self._error(
                        DiagnosticKind.INVALID_SIGNATURE,
                        f"Delay of event {event.label} must be positive, got {form.constant}",
                        event.loc,
                        event=event.name,
                        delay=form.constant,
                    )
                continue
            if not facts.implies(form, Relation.GT):
                self._error(
                    DiagnosticKind.INVALID_SIGNATURE,
                    f"Delay of event {event.label} ({event.delay}) cannot be shown to be "
                    f"positive from the where-clauses",
                    event.loc,
                    event=event.name,
                    delay=str(event.delay),
                )

    def validate_intervals(self, facts: FactSet) -> None:
        """Intervals spanning two events must be provably non-empty."""
        for port in self.signature.ports:
            interval = port.interval
            if interval.start.event == interval.end.event:
                continue
            if not facts.implies(interval.length_form(), Relation.GT):
                self._error(
                    DiagnosticKind.INVALID_SIGNATURE,
                    f"Interval {interval} of port '{port.name}' may be empty; add a "
                    f"where-clause ordering {interval.end} after {interval.start}",
                    port.loc,
                    port=port.name,
                )
