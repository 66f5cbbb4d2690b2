"""
Tests for the text report and its waveform rendering.
"""

# editorconfig-checker-disable-file
# This file contains YAML fixtures that use 2-space indentation per YAML standard

from timecraft.generator.report_generator import DiagnosticReportGenerator, waveform
from timecraft.model import Interval

DESIGN = """
name: demo
components:
  - name: good
    events: ["'G: 1"]
    inputs: ["x: ['G, 'G+1) 8"]
    outputs: ["y: ['G+1, 'G+2) 8"]
    body:
      - D := new Delay[8]
      - "d0 := D<'G>(x)"
      - y = d0.out
  - name: bad
    events: ["'G: 1"]
    inputs: ["x: ['G, 'G+1) 8", "z: ['G, 'G+1) 8"]
    outputs: ["y: ['G, 'G+4) 8"]
    body:
      - A := new Add[8]
      - "a0 := A<'G>(x, z)"
      - y = a0.out
"""


class TestWaveform:
    def test_late_value(self):
        lines = waveform(Interval.on("G", 1, 2), Interval.on("G", 0, 1))
        assert lines == [
            "cycle      01   ('G+0 onwards)",
            "available  .#   ['G+1, 'G+2)",
            "required   #.   ['G, 'G+1)",
        ]

    def test_negative_offsets(self):
        lines = waveform(Interval.on("G", -2, 0), Interval.on("G", -1, 1))
        assert lines[0].startswith("cycle      210")
        assert lines[1].split()[1] == "##."
        assert lines[2].split()[1] == ".##"

    def test_rows_have_equal_length(self):
        lines = waveform(Interval.on("G", 0, 2), Interval.on("G", 3, 7))
        rows = [line.split()[1] for line in lines]
        assert len({len(r) for r in rows}) == 1
        assert rows[1] == "##....."
        assert rows[2] == "...####"

    def test_different_events(self):
        assert waveform(Interval.on("G", 0, 1), Interval.on("H", 0, 1)) is None


class TestTextReport:
    def test_report(self, check_design):
        text = DiagnosticReportGenerator().generate(check_design(DESIGN))
        assert text.startswith("Timing check of demo\n")
        assert "[ok]   good" in text
        assert "[fail] bad" in text
        assert "[IntervalMismatch]" in text
        assert "available  #...   ['G, 'G+1)" in text
        assert "required   ####   ['G, 'G+4)" in text
        assert "hint: Insert a register to hold the value" in text
        assert text.rstrip().endswith("1/2 component(s) verified, 1 diagnostic(s)")

    def test_hide_verified(self, check_design):
        text = DiagnosticReportGenerator(show_verified=False).generate(check_design(DESIGN))
        assert "[ok]" not in text
        assert "[fail] bad" in text

    def test_write(self, check_design, tmp_path):
        output = DiagnosticReportGenerator().write(check_design(DESIGN), tmp_path / "out" / "report.txt")
        assert output.read_text().startswith("Timing check of demo")
