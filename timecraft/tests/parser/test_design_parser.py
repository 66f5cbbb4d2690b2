"""
Tests for the YAML design parser.
"""

# editorconfig-checker-disable-file
# This file contains YAML fixtures that use 2-space indentation per YAML standard

import pytest

from timecraft.model import Const, Instantiation, Interval, ParamRef, PortDirection
from timecraft.parser import ParseError, YamlDesignParser

ADDER = """
apiVersion: timecraft/v1
name: adder
components:
  - name: main
    description: Adds two numbers
    params: [N]
    events: ["'G: 1"]
    inputs:
      - "x: ['G, 'G+1) N"
      - "y: ['G, 'G+1) N"
    outputs:
      - "out: ['G, 'G+1) N"
    where:
      - N >= 1
    body:
      - A := new Add[N]
      - a0 := A<'G>(x, y)
      - out = a0.out
"""


def line_of(text: str, needle: str) -> int:
    """1-based line of the first line containing ``needle``."""
    for number, line in enumerate(text.splitlines(), start=1):
        if needle in line:
            return number
    raise AssertionError(f"{needle!r} not in text")


def test_parse_design(write_design):
    path = write_design(ADDER)
    design = YamlDesignParser().parse_file(path)

    assert design.name == "adder"
    assert design.api_version == "timecraft/v1"
    assert design.use_primitives
    assert design.source == str(path.resolve())
    assert design.component_names == ["main"]

    main = design.get_component("main")
    sig = main.signature
    assert sig.description == "Adds two numbers"
    assert sig.param_names == ("N",)
    assert [p.name for p in sig.inputs] == ["x", "y"]
    assert sig.get_port("out").direction == PortDirection.OUT
    assert sig.get_port("out").width == ParamRef(name="N")
    assert [str(c) for c in sig.where] == ["N >= 1"]

    body = main.body
    assert len(body.instances) == 1
    inst = body.instances[0]
    assert isinstance(inst, Instantiation)
    assert (inst.name, inst.component, inst.args) == ("A", "Add", (ParamRef(name="N"),))
    assert [i.name for i in body.invocations] == ["a0"]
    assert [str(c) for c in body.connections] == ["out = a0.out"]
    assert body.dependencies == {"Add"}


def test_locations(write_design):
    path = write_design(ADDER)
    design = YamlDesignParser().parse_file(path)
    main = design.get_component("main")
    text = path.read_text()

    assert main.signature.loc.line == line_of(text, "name: main")
    assert main.signature.loc.file == str(path.resolve())
    assert main.signature.get_port("y").loc.line == line_of(text, "y: ['G")
    assert main.body.connections[0].loc.line == line_of(text, "out = a0.out")
    assert main.body.invocations[0].loc.line == line_of(text, "a0 :=")


def test_dict_entries(load_design):
    design = load_design(
        """
        components:
          - name: ext
            extern: true
            params:
              - name: W
                description: data width
              - name: DEPTH
                default: W + 1
            events:
              - name: G
                delay: 2
            inputs:
              - name: d
                interval: "['G, 'G+1)"
                width: W
            outputs:
              - name: q
                interval: "['G+1, 'G+2)"
        """
    )
    sig = design.components[0].signature
    assert sig.extern
    assert design.components[0].body is None
    assert sig.get_param("DEPTH").default.linearize().terms == {"W": 1}
    assert sig.primary_event.delay == Const(value=2)
    assert sig.get_port("q").width == Const(value=1)
    assert sig.get_port("q").interval == Interval.on("G", 1, 2)


def test_use_primitives_flag(load_design):
    design = load_design(
        """
        usePrimitives: false
        components: []
        """
    )
    assert not design.use_primitives
    assert design.components == []


class TestErrors:
    def test_missing_file(self, tmp_path):
        with pytest.raises(ParseError, match="File not found"):
            YamlDesignParser().parse_file(tmp_path / "missing.yml")

    def test_yaml_syntax_error(self, write_design):
        path = write_design("components:\n  - name: [unclosed\n")
        with pytest.raises(ParseError) as exc:
            YamlDesignParser().parse_file(path)
        assert "YAML syntax error" in str(exc.value)
        assert exc.value.line is not None

    def test_root_must_be_mapping(self, write_design):
        with pytest.raises(ParseError, match="Root element"):
            YamlDesignParser().parse_file(write_design("- a\n- b\n"))

    def test_unknown_design_key(self, write_design):
        with pytest.raises(ParseError, match="Unknown design keys: component"):
            YamlDesignParser().parse_file(write_design("component: []\n"))

    def test_unknown_component_key(self, write_design):
        path = write_design(
            """
            components:
              - name: main
                events: ["'G: 1"]
                latency: 3
            """
        )
        with pytest.raises(ParseError, match="unknown keys: latency") as exc:
            YamlDesignParser().parse_file(path)
        assert exc.value.line == 3

    def test_missing_name(self, write_design):
        path = write_design(
            """
            components:
              - events: ["'G: 1"]
            """
        )
        with pytest.raises(ParseError, match=r"components\[0\] is missing 'name'"):
            YamlDesignParser().parse_file(path)

    def test_bad_statement_reports_line(self, write_design):
        text = """
            components:
              - name: main
                events: ["'G: 1"]
                body:
                  - A := new Add[32]
                  - a0 <- A
            """
        path = write_design(text)
        with pytest.raises(ParseError, match="Invalid statement") as exc:
            YamlDesignParser().parse_file(path)
        assert exc.value.line == 7
        assert exc.value.file_path == path.resolve()

    def test_bad_port_reports_line(self, write_design):
        path = write_design(
            """
            components:
              - name: main
                events: ["'G: 1"]
                inputs:
                  - "x: ['G, 'G) 8"
            """
        )
        with pytest.raises(ParseError) as exc:
            YamlDesignParser().parse_file(path)
        assert exc.value.line == 6

    def test_component_without_events(self, write_design):
        path = write_design(
            """
            components:
              - name: main
            """
        )
        with pytest.raises(ParseError, match="at least one event"):
            YamlDesignParser().parse_file(path)

    def test_extern_with_body(self, write_design):
        path = write_design(
            """
            components:
              - name: main
                extern: true
                events: ["'G: 1"]
                body:
                  - A := new Add[32]
            """
        )
        with pytest.raises(ParseError, match="cannot have a body"):
            YamlDesignParser().parse_file(path)


class TestImports:
    def test_import_signatures(self, write_design):
        write_design(
            """
            components:
              - name: inc
                params: [W]
                events: ["'G: 1"]
                inputs: ["a: ['G, 'G+1) W"]
                outputs: ["o: ['G, 'G+1) W"]
                body:
                  - C := new Const[W, 1]
                  - A := new Add[W]
                  - c0 := C<'G>
                  - a0 := A<'G>(a, c0.out)
                  - o = a0.out
            """,
            "lib.yml",
        )
        path = write_design(
            """
            imports: [lib.yml]
            components:
              - name: main
                events: ["'G: 1"]
            """
        )
        design = YamlDesignParser().parse_file(path)
        assert [s.name for s in design.imported] == ["inc"]
        assert design.component_names == ["main"]

    def test_diamond_import(self, write_design):
        write_design(
            """
            components:
              - name: base
                extern: true
                events: ["'G: 1"]
            """,
            "base.yml",
        )
        write_design("imports: [base.yml]\ncomponents: []\n", "left.yml")
        write_design("imports: [base.yml]\ncomponents: []\n", "right.yml")
        path = write_design("imports: [left.yml, right.yml]\ncomponents: []\n")
        design = YamlDesignParser().parse_file(path)
        assert [s.name for s in design.imported] == ["base"]

    def test_circular_import(self, write_design):
        write_design("imports: [b.yml]\ncomponents: []\n", "a.yml")
        write_design("imports: [a.yml]\ncomponents: []\n", "b.yml")
        path = write_design("imports: [a.yml]\ncomponents: []\n")
        with pytest.raises(ParseError, match="Circular import"):
            YamlDesignParser().parse_file(path)
