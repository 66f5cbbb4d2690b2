"""
Constraint solver: binds call-site arguments to callee parameters and checks
where-clauses.

Ground clauses are evaluated directly. Clauses that stay symbolic because
the caller is itself parametric must follow from the caller's where-clauses;
that implication is decided by :class:`FactSet`.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from timecraft.model import (
    ComponentSignature,
    Const,
    DiagnosticKind,
    Expr,
    Instantiation,
    NonLinearExpressionError,
    Relation,
    SourceLoc,
    TimeExpr,
    WhereClause,
)

from .diagnostics import Diagnostic
from .facts import FactSet
from .signature_table import SignatureTable

logger = logging.getLogger(__name__)


@dataclass
class ResolvedInstance:
    """An instantiation whose parameters are fully bound.

    ``bindings`` maps every callee parameter to a constant or to an
    expression over the caller's parameters.
    """

    name: str
    signature: ComponentSignature
    bindings: Dict[str, Expr] = field(default_factory=dict)
    loc: Optional[SourceLoc] = None

    @property
    def component(self) -> str:
        return self.signature.name

    def binding_text(self) -> Dict[str, str]:
        return {k: str(v) for k, v in self.bindings.items()}


class ConstraintSolver:
    """Resolves instantiations inside one caller component."""

    def __init__(self, table: SignatureTable, caller: ComponentSignature):
        self.table = table
        self.caller = caller
        self.facts: FactSet = (
            table.facts(caller.name) if caller.name in table else FactSet(caller.where)
        )

    def _diag(self, kind: DiagnosticKind, message: str, loc: Optional[SourceLoc], **fields) -> Diagnostic:
        return Diagnostic(
            kind=kind,
            message=message,
            location=loc,
            component=self.caller.name,
            fields=fields,
        )

    def resolve(self, inst: Instantiation) -> Tuple[Optional[ResolvedInstance], List[Diagnostic]]:
        """Bind parameters and check parameter clauses of one instantiation."""
        signature = self.table.get(inst.component)
        causes = self.table.rejection(inst.component)
        if signature is None and causes is not None:
            return None, [
                self._diag(
                    DiagnosticKind.UNDEFINED_NAME,
                    f"Component '{inst.component}' instantiated as '{inst.name}' was rejected "
                    f"at registration: {causes[0].message}",
                    inst.loc,
                    instance=inst.name,
                    name=inst.component,
                    causes=[str(d) for d in causes],
                )
            ]
        if signature is None:
            return None, [
                self._diag(
                    DiagnosticKind.UNDEFINED_NAME,
                    f"Unknown component '{inst.component}' instantiated as '{inst.name}'",
                    inst.loc,
                    instance=inst.name,
                    name=inst.component,
                )
            ]

        bindings, diagnostics = self.bind_parameters(signature, inst)
        if diagnostics:
            return None, diagnostics

        resolved = ResolvedInstance(name=inst.name, signature=signature, bindings=bindings, loc=inst.loc)
        for clause in signature.param_clauses:
            diag = self.check_clause(clause, resolved)
            if diag is not None:
                diagnostics.append(diag)
        diagnostics.extend(self._check_widths(resolved))
        if diagnostics:
            return None, diagnostics

        logger.debug(f"Resolved {inst.name} := {signature.name}{resolved.binding_text()}")
        return resolved, []

    def bind_parameters(
        self, signature: ComponentSignature, inst: Instantiation
    ) -> Tuple[Dict[str, Expr], List[Diagnostic]]:
        """Bind positional and named arguments, then apply defaults.

        A default can only use parameters given explicitly at this site;
        defaults are never resolved through other defaults.
        """
        diagnostics: List[Diagnostic] = []
        params = signature.params

        if len(inst.args) > len(params):
            diagnostics.append(
                self._diag(
                    DiagnosticKind.ARITY_MISMATCH,
                    f"'{signature.name}' takes {len(params)} parameter(s), "
                    f"'{inst.name}' passes {len(inst.args)}",
                    inst.loc,
                    instance=inst.name,
                    expected=len(params),
                    actual=len(inst.args),
                )
            )

        explicit: Dict[str, Expr] = {}
        for param, arg in zip(params, inst.args):
            explicit[param.name] = arg
        for name, arg in inst.named_args.items():
            if signature.get_param(name) is None:
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.UNDEFINED_NAME,
                        f"'{signature.name}' has no parameter '{name}'",
                        inst.loc,
                        instance=inst.name,
                        name=name,
                    )
                )
            elif name in explicit:
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.DUPLICATE_NAME,
                        f"Parameter '{name}' of '{inst.name}' is bound twice",
                        inst.loc,
                        instance=inst.name,
                        name=name,
                    )
                )
            else:
                explicit[name] = arg

        for name, arg in explicit.items():
            diagnostics.extend(self._check_argument(inst, name, arg))

        bindings = dict(explicit)
        for param in params:
            if param.name in bindings:
                continue
            if param.default is None:
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.UNBOUND_PARAMETER,
                        f"Parameter '{param.name}' of '{inst.name}' ({signature.name}) "
                        f"has no argument and no default",
                        inst.loc,
                        instance=inst.name,
                        parameter=param.name,
                    )
                )
                continue
            missing = sorted(param.default.free_params() - explicit.keys())
            if missing:
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.UNBOUND_PARAMETER,
                        f"Default of '{param.name}' ({param.default}) refers to "
                        f"{', '.join(repr(m) for m in missing)}, which '{inst.name}' does not bind",
                        inst.loc,
                        instance=inst.name,
                        parameter=param.name,
                        missing=missing,
                    )
                )
                continue
            bindings[param.name] = param.default.substitute(params=explicit)

        if diagnostics:
            return {}, diagnostics
        return {k: _simplify(v) for k, v in bindings.items()}, []

    def _check_argument(self, inst: Instantiation, name: str, arg: Expr) -> List[Diagnostic]:
        """Arguments may only use the caller's parameters."""
        diagnostics = []
        if arg.free_events():
            diagnostics.append(
                self._diag(
                    DiagnosticKind.INVALID_SIGNATURE,
                    f"Argument {name}={arg} of '{inst.name}' cannot refer to events",
                    inst.loc,
                    instance=inst.name,
                    parameter=name,
                )
            )
        for unknown in sorted(arg.free_params() - set(self.caller.param_names)):
            diagnostics.append(
                self._diag(
                    DiagnosticKind.UNBOUND_PARAMETER,
                    f"Argument {name}={arg} of '{inst.name}' refers to '{unknown}', "
                    f"which is not a parameter of '{self.caller.name}'",
                    inst.loc,
                    instance=inst.name,
                    parameter=unknown,
                )
            )
        if not diagnostics:
            try:
                arg.linearize()
            except NonLinearExpressionError as e:
                diagnostics.append(Diagnostic.from_error(e, inst.loc, self.caller.name, instance=inst.name))
        return diagnostics

    def check_clause(
        self,
        clause: WhereClause,
        instance: ResolvedInstance,
        events: Optional[Mapping[str, TimeExpr]] = None,
        loc: Optional[SourceLoc] = None,
    ) -> Optional[Diagnostic]:
        """Check one callee clause under a parameter (and event) binding."""
        concrete = clause.substitute(params=instance.bindings, events=events)
        form = concrete.form()
        if self.prove(form, clause.relation):
            return None

        loc = loc or instance.loc
        fields = {"clause": str(clause), "instance": instance.name, "instantiated": str(concrete)}
        if len(form.events) > 1 and self.unordered(form):
            return self._diag(
                DiagnosticKind.INCOMPARABLE_EVENTS,
                f"Constraint '{clause}' of '{instance.component}' becomes '{concrete}' at "
                f"'{instance.name}', which relates events '{self.caller.name}' never orders",
                loc,
                **fields,
            )
        if form.is_constant:
            reason = "is false"
        else:
            reason = f"does not follow from the where-clauses of '{self.caller.name}'"
        return self._diag(
            DiagnosticKind.UNSATISFIABLE_WHERE,
            f"Constraint '{clause}' of '{instance.component}' becomes '{concrete}' at "
            f"'{instance.name}', which {reason}",
            loc,
            **fields,
        )

    def _check_widths(self, instance: ResolvedInstance) -> List[Diagnostic]:
        diagnostics = []
        for port in instance.signature.ports:
            width = port.width.substitute(params=instance.bindings).linearize()
            if not self.prove(width.shift(-1), Relation.GE):
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.UNSATISFIABLE_WHERE,
                        f"Port '{instance.name}.{port.name}' would have width {width}, "
                        f"which is not provably positive",
                        instance.loc,
                        instance=instance.name,
                        port=port.name,
                        width=str(width),
                    )
                )
        return diagnostics

    def prove(self, form, relation: Relation) -> bool:
        """True when ``form <relation> 0`` holds for every admissible caller."""
        return self.facts.implies(form, relation)

    def unordered(self, form) -> bool:
        """True when the caller bounds ``form`` neither from below nor from above."""
        return self.facts.lower_bound(form) is None and self.facts.lower_bound(-form) is None


def _simplify(expr: Expr) -> Expr:
    form = expr.linearize()
    if form.is_constant:
        return Const(value=form.constant)
    return expr
