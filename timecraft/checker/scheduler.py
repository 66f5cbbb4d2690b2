"""
Invocation scheduler.

Keeps, per instance, the ordered log of every invocation inside one caller
body and verifies that the shared physical resource is never re-triggered
faster than the callee's declared delay. Also substitutes each invocation's
event binding into the callee's ports.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple

from timecraft.model import (
    BoundPort,
    ComponentSignature,
    DiagnosticKind,
    EventDef,
    Invocation,
    LinearForm,
    Relation,
    SourceLoc,
    TimeExpr,
)
from timecraft.model.expr import render_form

from .constraints import ConstraintSolver, ResolvedInstance
from .diagnostics import Diagnostic

logger = logging.getLogger(__name__)


@dataclass
class InvocationRecord:
    """One triggering of an instance with its concrete ports."""

    name: str
    instance: ResolvedInstance
    events: Dict[str, TimeExpr]
    ports: Dict[str, BoundPort] = field(default_factory=dict)
    loc: Optional[SourceLoc] = None

    @property
    def trigger(self) -> TimeExpr:
        """Time bound to the callee's primary event."""
        return self.events[self.instance.signature.primary_event.name]

    def port(self, name: str) -> Optional[BoundPort]:
        return self.ports.get(name)

    def delay_of(self, event: EventDef) -> LinearForm:
        """Callee delay of ``event`` evaluated under this invocation's binding."""
        bound = {name: t.to_expr() for name, t in self.events.items()}
        return event.delay.substitute(params=self.instance.bindings, events=bound).linearize()


class InvocationLog:
    """Invocations of one instance, in statement order."""

    def __init__(self, instance: ResolvedInstance):
        self.instance = instance
        self.records: List[InvocationRecord] = []

    def append(self, record: InvocationRecord) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)

    def ordered(self, event: str) -> List[Tuple[TimeExpr, InvocationRecord]]:
        """Records sorted by the time bound to one callee event."""
        return sorted(
            ((r.events[event], r) for r in self.records),
            key=lambda item: item[0].offset,
        )


class InvocationScheduler:
    """Schedules invocations of one caller body."""

    def __init__(self, caller: ComponentSignature, solver: ConstraintSolver):
        self.caller = caller
        self.solver = solver
        self._logs: Dict[str, InvocationLog] = {}

    def _diag(self, kind: DiagnosticKind, message: str, loc: Optional[SourceLoc], **fields) -> Diagnostic:
        return Diagnostic(kind=kind, message=message, location=loc, component=self.caller.name, fields=fields)

    @property
    def logs(self) -> Mapping[str, InvocationLog]:
        return self._logs

    def history(self, instance: str) -> List[InvocationRecord]:
        log = self._logs.get(instance)
        return list(log.records) if log else []

    def schedule(
        self, invocation: Invocation, instances: Mapping[str, ResolvedInstance]
    ) -> Tuple[Optional[InvocationRecord], List[Diagnostic]]:
        """Bind an invocation's events, check event clauses and bind ports."""
        instance = instances.get(invocation.instance)
        if instance is None:
            return None, [
                self._diag(
                    DiagnosticKind.UNDEFINED_NAME,
                    f"Invocation '{invocation.name}' refers to unknown instance '{invocation.instance}'",
                    invocation.loc,
                    invocation=invocation.name,
                    name=invocation.instance,
                )
            ]

        signature = instance.signature
        if len(invocation.events) != len(signature.events):
            return None, [
                self._diag(
                    DiagnosticKind.ARITY_MISMATCH,
                    f"'{invocation.name}' binds {len(invocation.events)} event(s) but "
                    f"'{signature.name}' declares {len(signature.events)}",
                    invocation.loc,
                    invocation=invocation.name,
                    expected=len(signature.events),
                    actual=len(invocation.events),
                )
            ]

        diagnostics = []
        for time in invocation.events:
            if self.caller.get_event(time.event) is None:
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.UNDEFINED_NAME,
                        f"'{invocation.name}' is scheduled at {time}, but '{self.caller.name}' "
                        f"has no event '{time.event}'",
                        invocation.loc,
                        invocation=invocation.name,
                        name=time.event,
                    )
                )
        if diagnostics:
            return None, diagnostics

        binding = dict(zip(signature.event_names, invocation.events))
        for clause in signature.event_clauses:
            diag = self.solver.check_clause(clause, instance, binding, invocation.loc)
            if diag is not None:
                diagnostics.append(diag)
        if diagnostics:
            return None, diagnostics

        record = InvocationRecord(
            name=invocation.name,
            instance=instance,
            events=binding,
            ports={p.name: p.bind(binding, instance.bindings) for p in signature.ports},
            loc=invocation.loc,
        )
        self._logs.setdefault(instance.name, InvocationLog(instance)).append(record)
        logger.debug(f"Scheduled {invocation.name} of {instance.name} at {record.trigger}")
        return record, []

    def verify_delays(self) -> List[Diagnostic]:
        """Check every instance log; at most one diagnostic per instance."""
        diagnostics = []
        for name, log in self._logs.items():
            diag = self._verify_instance(log)
            if diag is not None:
                logger.debug(f"Delay check failed for {name}: {diag.message}")
                diagnostics.append(diag)
        return diagnostics

    def _verify_instance(self, log: InvocationLog) -> Optional[Diagnostic]:
        signature = log.instance.signature
        for event in signature.events:
            ordered = log.ordered(event.name)
            first_time, first_record = ordered[0]
            for time, record in ordered[1:]:
                if time.event != first_time.event:
                    return self._diag(
                        DiagnosticKind.INCOMPARABLE_EVENTS,
                        f"Event {event.label} of instance '{log.instance.name}' is triggered "
                        f"at {first_time} ({first_record.name}) and {time} ({record.name}), "
                        f"which are relative to different events",
                        record.loc,
                        instance=log.instance.name,
                        first=str(first_time),
                        second=str(time),
                    )

            for (t1, r1), (t2, r2) in zip(ordered, ordered[1:]):
                min_delay = r1.delay_of(event)
                gap = t2 - t1
                if not self.solver.prove(min_delay.shift(-gap), Relation.LE):
                    return self._diag(
                        DiagnosticKind.DELAY_VIOLATION,
                        f"Instance '{log.instance.name}' is re-triggered on {event.label} at {t2} "
                        f"({r2.name}) only {gap} cycle(s) after {t1} ({r1.name}); "
                        f"'{signature.name}' needs at least {min_delay}",
                        r2.loc,
                        instance=log.instance.name,
                        event=event.name,
                        first=str(t1),
                        second=str(t2),
                        invocations=[r1.name, r2.name],
                        min_delay=render_form(min_delay),
                        gap=gap,
                    )

            diag = self._check_throughput(log, event, ordered)
            if diag is not None:
                return diag
        return None

    def _check_throughput(
        self, log: InvocationLog, event: EventDef, ordered: List[Tuple[TimeExpr, InvocationRecord]]
    ) -> Optional[Diagnostic]:
        """Every use of the instance must end before the caller may be re-triggered.

        For each invocation ``i``: ``t_i + d_i <= t_min + D`` where ``D`` is
        the caller's delay for the event the invocations are scheduled on.
        """
        start = ordered[0][0]
        caller_event = self.caller.get_event(start.event)
        budget = caller_event.delay.linearize()
        for time, record in ordered:
            busy = record.delay_of(event).shift(time - start)
            if self.solver.prove(busy - budget, Relation.LE):
                continue
            excess = busy - budget
            if excess.events and self.solver.facts.lower_bound(-excess) is None:
                kind = DiagnosticKind.INCOMPARABLE_EVENTS
            else:
                kind = DiagnosticKind.DELAY_VIOLATION
            return self._diag(
                kind,
                f"Instance '{log.instance.name}' is busy on {event.label} for {busy} cycle(s) "
                f"after {start} ({record.name}), but '{self.caller.name}' may be re-triggered "
                f"on {caller_event.label} every {budget} cycle(s)",
                record.loc,
                instance=log.instance.name,
                event=event.name,
                caller_event=caller_event.name,
                first=str(start),
                second=str(time),
                min_delay=render_form(busy),
                gap=render_form(budget),
            )
        return None
