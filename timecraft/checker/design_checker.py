"""
Design-level driver: registers every signature, then checks component bodies
in dependency order, one ready batch at a time on a thread pool.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from graphlib import CycleError, TopologicalSorter
from typing import Dict, List, Optional

from timecraft.model import ComponentDef, Design, DiagnosticKind

from .component_checker import CheckResult, CheckState, ComponentChecker, VerifiedComponent
from .diagnostics import Diagnostic, SignatureError
from .signature_table import SignatureTable

logger = logging.getLogger(__name__)


@dataclass
class DesignReport:
    """Results of every component, in design order."""

    design: str
    results: List[CheckResult] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(r.ok for r in self.results)

    @property
    def diagnostics(self) -> List[Diagnostic]:
        return [d for r in self.results for d in r.diagnostics]

    @property
    def verified(self) -> List[VerifiedComponent]:
        return [r.verified for r in self.results if r.verified is not None]

    @property
    def rejected(self) -> List[CheckResult]:
        return [r for r in self.results if not r.ok]

    def get(self, component: str) -> Optional[CheckResult]:
        return next((r for r in self.results if r.component == component), None)

    def summary(self) -> str:
        passed = len(self.results) - len(self.rejected)
        return f"{passed}/{len(self.results)} component(s) verified, {len(self.diagnostics)} diagnostic(s)"

    def to_dict(self) -> Dict:
        return {
            "design": self.design,
            "ok": self.ok,
            "components": [r.to_dict() for r in self.results],
        }


class DesignChecker:
    """
    Checks a whole design.

    Args:
        jobs: Worker threads used for each batch of independent components
        primitives: Library registered before the design's own components;
            defaults to the bundled one
    """

    def __init__(self, jobs: int = 1, primitives=None):
        if jobs < 1:
            raise ValueError(f"jobs must be at least 1, got {jobs}")
        self.jobs = jobs
        self._primitives = primitives

    @property
    def primitives(self):
        if self._primitives is None:
            from timecraft.primitives import get_primitive_library

            self._primitives = get_primitive_library()
        return self._primitives

    def build_table(self, design: Design) -> tuple:
        """Register primitives, imports and components.

        Returns the table and the results of components whose signature was
        rejected.
        """
        table = SignatureTable()
        rejected: Dict[str, CheckResult] = {}
        if design.use_primitives:
            table.register_all(self.primitives.signatures)

        for signature in design.imported:
            if signature.name in table and table.get(signature.name) == signature:
                continue
            try:
                table.register(signature)
            except SignatureError as e:
                logger.warning(f"Imported signature '{signature.name}' rejected: {e}")
                table.reject(signature.name, e.diagnostics)

        for component in design.components:
            try:
                table.register(component.signature)
            except SignatureError as e:
                table.reject(component.name, e.diagnostics)
                rejected[component.name] = CheckResult(component.name, CheckState.REJECTED, e.diagnostics)
        logger.debug(f"Signature table holds {len(table)} signature(s)")
        return table, rejected

    def check(self, design: Design) -> DesignReport:
        table, results = self.build_table(design)
        checker = ComponentChecker(table)
        bodies: Dict[str, ComponentDef] = {}

        for component in design.components:
            if component.name in results:
                continue
            if not component.has_body:
                results[component.name] = CheckResult(
                    component.name,
                    CheckState.VERIFIED,
                    verified=VerifiedComponent(component.name, component.signature.ports),
                )
                continue
            bodies[component.name] = component

        graph = {
            name: {dep for dep in comp.body.dependencies if dep in bodies}
            for name, comp in bodies.items()
        }
        sorter = self._prepare(graph, bodies, results)

        with ThreadPoolExecutor(max_workers=self.jobs) as pool:
            while sorter.is_active():
                ready = sorted(sorter.get_ready())
                for name, result in zip(ready, pool.map(checker.check, [bodies[n] for n in ready])):
                    results[name] = result
                sorter.done(*ready)

        ordered = []
        seen = set()
        for component in design.components:
            if component.name in seen:
                continue
            seen.add(component.name)
            ordered.append(results[component.name])
        report = DesignReport(design=design.name, results=ordered)
        logger.info(f"Design '{design.name}': {report.summary()}")
        return report

    def _prepare(self, graph, bodies, results) -> TopologicalSorter:
        """Remove instantiation cycles, reporting each member, and prepare the sorter."""
        while True:
            sorter = TopologicalSorter(graph)
            try:
                sorter.prepare()
                return sorter
            except CycleError as e:
                cycle = e.args[1]
                path = " -> ".join(cycle)
                members = set(cycle)
                for name in sorted(members):
                    results[name] = CheckResult(
                        name,
                        CheckState.REJECTED,
                        [
                            Diagnostic(
                                kind=DiagnosticKind.RECURSIVE_INSTANTIATION,
                                message=f"'{name}' instantiates itself through {path}",
                                location=bodies[name].signature.loc,
                                component=name,
                                fields={"cycle": list(cycle)},
                            )
                        ],
                    )
                graph = {
                    n: deps - members for n, deps in graph.items() if n not in members
                }
