"""
Text report of a design check.

Interval mismatches are drawn as two waveform rows (available vs required)
when both intervals are on the same event, so the gap is visible at a
glance.
"""

from typing import List, Optional

from timecraft.checker import DesignReport, Diagnostic
from timecraft.model import Interval

from .base_generator import BaseGenerator

HIGH = "#"
LOW = "."


def waveform(available: Interval, required: Interval) -> Optional[List[str]]:
    """
    Render two intervals as aligned one-character-per-cycle rows.

    Returns:
        Three lines (cycle ruler, available, required), or None when the
        bounds are not all on one event
    """
    bounds = [available.start, available.end, required.start, required.end]
    event = bounds[0].event
    if any(b.event != event for b in bounds):
        return None

    first = min(b.offset for b in bounds)
    last = max(b.offset for b in bounds)

    def row(interval: Interval) -> str:
        return "".join(
            HIGH if interval.start.offset <= cycle < interval.end.offset else LOW
            for cycle in range(first, last)
        )

    ruler = "".join(str(abs(cycle) % 10) for cycle in range(first, last))
    return [
        f"{'cycle':<10} {ruler}   ('{event}{first:+d} onwards)",
        f"{'available':<10} {row(available)}   {available}",
        f"{'required':<10} {row(required)}   {required}",
    ]


def diagnostic_waveform(diagnostic: Diagnostic) -> List[str]:
    if diagnostic.available is None or diagnostic.required is None:
        return []
    return waveform(diagnostic.available, diagnostic.required) or []


class DiagnosticReportGenerator(BaseGenerator):
    """Human-readable report rendered from ``report.txt.j2``."""

    template_name = "report.txt.j2"

    def __init__(self, template_dir: Optional[str] = None, show_verified: bool = True):
        super().__init__(template_dir)
        self.show_verified = show_verified
        self.env.globals["waveform"] = diagnostic_waveform

    def generate(self, report: DesignReport) -> str:
        template = self.env.get_template(self.template_name)
        return template.render(report=report, show_verified=self.show_verified)
