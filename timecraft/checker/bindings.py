"""
Binding checker: verifies every port-to-port connection of a body.

For each destination (an invocation input or a caller output) the required
interval is compared with the available interval of its source (a caller
input or an invocation output). Widths must match after parameter
substitution and every destination has exactly one driver.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Set, Tuple

from timecraft.model import (
    ComponentBody,
    ComponentSignature,
    DiagnosticKind,
    IncomparableEventsError,
    Interval,
    LinearForm,
    PortDirection,
    PortRef,
    SourceLoc,
    contains,
    coverage_gap,
)

from .diagnostics import Diagnostic
from .scheduler import InvocationRecord

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Endpoint:
    """A resolved end of a connection."""

    ref: PortRef
    width: LinearForm
    interval: Interval


class BindingChecker:
    """Checks the connections of one body against scheduled invocations.

    Invocations in ``poisoned`` failed earlier; references to them are
    skipped so one mistake is not reported again for every wire.
    """

    def __init__(
        self,
        caller: ComponentSignature,
        records: Mapping[str, InvocationRecord],
        poisoned: Optional[Set[str]] = None,
    ):
        self.caller = caller
        self.records = records
        self.poisoned = set(poisoned or ())
        self._drivers: Dict[str, PortRef] = {}
        self._unwired: Set[str] = set()

    def _diag(self, kind: DiagnosticKind, message: str, loc: Optional[SourceLoc], **fields) -> Diagnostic:
        return Diagnostic(kind=kind, message=message, location=loc, component=self.caller.name, fields=fields)

    def check(self, body: ComponentBody) -> List[Diagnostic]:
        diagnostics: List[Diagnostic] = []
        for invocation in body.invocations:
            record = self.records.get(invocation.name)
            if record is None or invocation.inputs is None:
                continue
            inputs = record.instance.signature.inputs
            if len(invocation.inputs) != len(inputs):
                self._unwired.add(invocation.name)
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.ARITY_MISMATCH,
                        f"'{invocation.name}' passes {len(invocation.inputs)} input(s) but "
                        f"'{record.instance.component}' takes {len(inputs)}",
                        invocation.loc,
                        invocation=invocation.name,
                        expected=len(inputs),
                        actual=len(invocation.inputs),
                    )
                )
                continue
            for port, src in zip(inputs, invocation.inputs):
                dest = PortRef(invocation=invocation.name, port=port.name)
                diagnostics.extend(self.connect(dest, src, invocation.loc))

        for connection in body.connections:
            diagnostics.extend(self.connect(connection.dest, connection.src, connection.loc))

        diagnostics.extend(self._check_undriven(body))
        return diagnostics

    def _resolve(
        self, ref: PortRef, as_source: bool, loc: Optional[SourceLoc]
    ) -> Tuple[Optional[Endpoint], List[Diagnostic]]:
        role = "read" if as_source else "driven"
        if ref.is_local:
            port = self.caller.get_port(ref.port)
            if port is None:
                return None, [
                    self._diag(
                        DiagnosticKind.UNDEFINED_NAME,
                        f"'{self.caller.name}' has no port '{ref.port}'",
                        loc,
                        name=ref.port,
                    )
                ]
            # Inside the body, caller inputs are sources and caller outputs are sinks
            expected = PortDirection.IN if as_source else PortDirection.OUT
            if port.direction != expected:
                return None, [
                    self._diag(
                        DiagnosticKind.DIRECTION_MISMATCH,
                        f"{port.direction.value}put port '{ref}' of '{self.caller.name}' "
                        f"cannot be {role} inside its body",
                        loc,
                        port=str(ref),
                    )
                ]
            return Endpoint(ref, port.width.linearize(), port.interval), []

        if ref.invocation in self.poisoned:
            return None, []
        record = self.records.get(ref.invocation)
        if record is None:
            return None, [
                self._diag(
                    DiagnosticKind.UNDEFINED_NAME,
                    f"Unknown invocation '{ref.invocation}' in '{ref}'",
                    loc,
                    name=ref.invocation,
                )
            ]
        bound = record.port(ref.port)
        if bound is None:
            return None, [
                self._diag(
                    DiagnosticKind.UNDEFINED_NAME,
                    f"'{record.instance.component}' has no port '{ref.port}' (in '{ref}')",
                    loc,
                    name=ref.port,
                )
            ]
        expected = PortDirection.OUT if as_source else PortDirection.IN
        if bound.direction != expected:
            return None, [
                self._diag(
                    DiagnosticKind.DIRECTION_MISMATCH,
                    f"{bound.direction.value}put port '{ref}' cannot be {role}",
                    loc,
                    port=str(ref),
                )
            ]
        return Endpoint(ref, bound.width, bound.interval), []

    def connect(self, dest_ref: PortRef, src_ref: PortRef, loc: Optional[SourceLoc]) -> List[Diagnostic]:
        """Check one wire ``dest = src``."""
        dest, diagnostics = self._resolve(dest_ref, as_source=False, loc=loc)
        src, src_diagnostics = self._resolve(src_ref, as_source=True, loc=loc)
        diagnostics = diagnostics + src_diagnostics
        if dest is None:
            return diagnostics

        key = str(dest_ref)
        if key in self._drivers:
            diagnostics.append(
                self._diag(
                    DiagnosticKind.DOUBLE_DRIVE,
                    f"'{dest_ref}' is already driven by '{self._drivers[key]}'; "
                    f"cannot also drive it from '{src_ref}'",
                    loc,
                    port=key,
                    first=str(self._drivers[key]),
                    second=str(src_ref),
                )
            )
            return diagnostics
        self._drivers[key] = src_ref
        if src is None:
            return diagnostics

        if dest.width != src.width:
            diagnostics.append(
                self._diag(
                    DiagnosticKind.WIDTH_MISMATCH,
                    f"'{src_ref}' is {src.width} bit(s) wide but '{dest_ref}' expects {dest.width}",
                    loc,
                    source=str(src_ref),
                    dest=key,
                    source_width=str(src.width),
                    dest_width=str(dest.width),
                )
            )

        diag = self._check_interval(dest, src, loc)
        if diag is not None:
            diagnostics.append(diag)
        return diagnostics

    def _check_interval(self, dest: Endpoint, src: Endpoint, loc: Optional[SourceLoc]) -> Optional[Diagnostic]:
        try:
            if contains(dest.interval, src.interval):
                return None
            late_by, early_by = coverage_gap(dest.interval, src.interval)
        except IncomparableEventsError as e:
            diag = Diagnostic.from_error(e, loc, self.caller.name, source=str(src.ref), dest=str(dest.ref))
            diag.available = src.interval
            diag.required = dest.interval
            return diag

        problems = []
        if late_by:
            problems.append(f"it arrives {late_by} cycle(s) too late")
        if early_by:
            problems.append(f"it expires {early_by} cycle(s) too early")
        return Diagnostic(
            kind=DiagnosticKind.INTERVAL_MISMATCH,
            message=(
                f"'{src.ref}' is available {src.interval} but '{dest.ref}' requires "
                f"{dest.interval}: {' and '.join(problems)}"
            ),
            location=loc,
            component=self.caller.name,
            fields={
                "source": str(src.ref),
                "dest": str(dest.ref),
                "late_by": late_by,
                "early_by": early_by,
            },
            available=src.interval,
            required=dest.interval,
            suggestion="Insert a register to hold the value" if early_by else "",
        )

    def _check_undriven(self, body: ComponentBody) -> List[Diagnostic]:
        diagnostics = []
        for port in self.caller.outputs:
            if port.name not in self._drivers:
                diagnostics.append(
                    self._diag(
                        DiagnosticKind.UNDRIVEN_PORT,
                        f"Output '{port.name}' of '{self.caller.name}' is never driven",
                        port.loc or self.caller.loc,
                        port=port.name,
                    )
                )
        for invocation in body.invocations:
            record = self.records.get(invocation.name)
            if record is None or invocation.name in self._unwired:
                continue
            for port in record.instance.signature.inputs:
                key = f"{invocation.name}.{port.name}"
                if key not in self._drivers:
                    diagnostics.append(
                        self._diag(
                            DiagnosticKind.UNDRIVEN_PORT,
                            f"Input '{key}' is never driven",
                            invocation.loc,
                            port=key,
                        )
                    )
        return diagnostics
