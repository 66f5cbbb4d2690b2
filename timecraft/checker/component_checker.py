"""
Per-component check driver.

Runs the stages over one body in order:
Unchecked -> ConstraintsResolved -> PortsBound -> DelaysVerified -> Verified.
Any stage that produces diagnostics moves the body to Rejected; there is no
partial success.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from timecraft.model import BoundPort, ComponentBody, ComponentDef, DiagnosticKind, PortDef

from .bindings import BindingChecker
from .constraints import ConstraintSolver, ResolvedInstance
from .diagnostics import Diagnostic
from .scheduler import InvocationRecord, InvocationScheduler
from .signature_table import SignatureTable

logger = logging.getLogger(__name__)


class CheckState(str, Enum):
    """Progress of one component-body check."""

    UNCHECKED = "Unchecked"
    CONSTRAINTS_RESOLVED = "ConstraintsResolved"
    PORTS_BOUND = "PortsBound"
    DELAYS_VERIFIED = "DelaysVerified"
    VERIFIED = "Verified"
    REJECTED = "Rejected"


def _port_entry(name: str, direction: str, width: Any, interval: Any) -> Dict[str, Any]:
    return {"name": name, "direction": direction, "width": width, "interval": str(interval)}


@dataclass
class VerifiedInvocation:
    """Concrete ports of one invocation after verification."""

    name: str
    instance: str
    component: str
    events: Dict[str, str]
    ports: List[BoundPort]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "instance": self.instance,
            "component": self.component,
            "events": dict(self.events),
            "ports": [
                _port_entry(p.name, p.direction.value, p.width_value, p.interval) for p in self.ports
            ],
        }


@dataclass
class VerifiedComponent:
    """Export of a verified body: its own ports plus every invocation's."""

    name: str
    ports: Tuple[PortDef, ...]
    invocations: List[VerifiedInvocation] = field(default_factory=list)

    @classmethod
    def build(cls, component: ComponentDef, records: List[InvocationRecord]) -> "VerifiedComponent":
        invocations = [
            VerifiedInvocation(
                name=r.name,
                instance=r.instance.name,
                component=r.instance.component,
                events={k: str(v) for k, v in r.events.items()},
                ports=list(r.ports.values()),
            )
            for r in records
        ]
        return cls(name=component.name, ports=component.signature.ports, invocations=invocations)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "ports": [
                _port_entry(p.name, p.direction.value, str(p.width), p.interval) for p in self.ports
            ],
            "invocations": [inv.to_dict() for inv in self.invocations],
        }


@dataclass
class CheckResult:
    """Outcome of checking one component."""

    component: str
    state: CheckState
    diagnostics: List[Diagnostic] = field(default_factory=list)
    verified: Optional[VerifiedComponent] = None

    @property
    def ok(self) -> bool:
        return self.state == CheckState.VERIFIED

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "component": self.component,
            "state": self.state.value,
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }
        if self.verified is not None:
            data["verified"] = self.verified.to_dict()
        return data


class ComponentChecker:
    """
    Checks component bodies against a populated signature table.

    The checker holds no per-body state, so one instance can check many
    components from several threads.
    """

    def __init__(self, table: SignatureTable):
        self.table = table

    def check(self, component: ComponentDef) -> CheckResult:
        name = component.name
        body = component.body or ComponentBody()
        signature = self.table.get(name) or component.signature
        state = CheckState.UNCHECKED
        logger.debug(f"Checking {name}: {state.value}")

        solver = ConstraintSolver(self.table, signature)
        diagnostics = self._check_names(component, body)
        instances: Dict[str, ResolvedInstance] = {}
        for inst in body.instances:
            resolved, errors = solver.resolve(inst)
            diagnostics.extend(errors)
            if resolved is not None:
                instances[inst.name] = resolved
        if diagnostics:
            return self._reject(name, state, diagnostics)
        state = self._advance(name, CheckState.CONSTRAINTS_RESOLVED)

        scheduler = InvocationScheduler(signature, solver)
        records: Dict[str, InvocationRecord] = {}
        poisoned = set()
        for invocation in body.invocations:
            record, errors = scheduler.schedule(invocation, instances)
            diagnostics.extend(errors)
            if record is None:
                poisoned.add(invocation.name)
            else:
                records[invocation.name] = record
        diagnostics.extend(BindingChecker(signature, records, poisoned).check(body))
        if diagnostics:
            return self._reject(name, state, diagnostics)
        state = self._advance(name, CheckState.PORTS_BOUND)

        diagnostics = scheduler.verify_delays()
        if diagnostics:
            return self._reject(name, state, diagnostics)
        state = self._advance(name, CheckState.DELAYS_VERIFIED)

        verified = VerifiedComponent.build(component, list(records.values()))
        logger.info(f"Component '{name}' verified ({len(records)} invocation(s))")
        return CheckResult(name, CheckState.VERIFIED, [], verified)

    def _advance(self, name: str, state: CheckState) -> CheckState:
        logger.debug(f"Checking {name}: {state.value}")
        return state

    def _reject(self, name: str, state: CheckState, diagnostics: List[Diagnostic]) -> CheckResult:
        logger.info(f"Component '{name}' rejected after {state.value} with {len(diagnostics)} diagnostic(s)")
        return CheckResult(name, CheckState.REJECTED, diagnostics)

    def _check_names(self, component: ComponentDef, body: ComponentBody) -> List[Diagnostic]:
        """Instance and invocation names share one namespace per body."""
        diagnostics = []
        statements = list(body.instances) + list(body.invocations)
        counts = Counter(s.name for s in statements)
        reported = set()
        for statement in statements:
            if counts[statement.name] > 1 and statement.name not in reported:
                reported.add(statement.name)
                diagnostics.append(
                    Diagnostic(
                        kind=DiagnosticKind.DUPLICATE_NAME,
                        message=f"Name '{statement.name}' is defined {counts[statement.name]} times "
                        f"in the body of '{component.name}'",
                        location=statement.loc,
                        component=component.name,
                        fields={"name": statement.name},
                    )
                )
        return diagnostics
