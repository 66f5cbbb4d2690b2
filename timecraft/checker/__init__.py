"""
Static timing checker.

Typical use::

    from timecraft.checker import DesignChecker
    from timecraft.parser import YamlDesignParser

    design = YamlDesignParser().parse_file("adder.yml")
    report = DesignChecker(jobs=4).check(design)
"""

from .bindings import BindingChecker
from .component_checker import (
    CheckResult,
    CheckState,
    ComponentChecker,
    VerifiedComponent,
    VerifiedInvocation,
)
from .constraints import ConstraintSolver, ResolvedInstance
from .design_checker import DesignChecker, DesignReport
from .diagnostics import Diagnostic, SignatureError
from .facts import FactSet, SolverResult
from .scheduler import InvocationLog, InvocationRecord, InvocationScheduler
from .signature_table import SignatureTable, SignatureValidator

__all__ = [
    "BindingChecker",
    "CheckResult",
    "CheckState",
    "ComponentChecker",
    "ConstraintSolver",
    "DesignChecker",
    "DesignReport",
    "Diagnostic",
    "FactSet",
    "InvocationLog",
    "InvocationRecord",
    "InvocationScheduler",
    "ResolvedInstance",
    "SignatureError",
    "SignatureTable",
    "SignatureValidator",
    "SolverResult",
    "VerifiedComponent",
    "VerifiedInvocation",
]
