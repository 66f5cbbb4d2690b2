"""
YAML Parser for design descriptions.

Loads YAML files and converts them to canonical Pydantic models.
Supports imports of other design files (signatures only) and keeps the
YAML line of every declaration so diagnostics can point at it.
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

import yaml
from pydantic import ValidationError

from timecraft.model import (
    ComponentBody,
    ComponentDef,
    ComponentSignature,
    Connection,
    Design,
    EventDef,
    Instantiation,
    Invocation,
    Parameter,
    PortDef,
    SourceLoc,
    WhereClause,
)
from timecraft.parser.errors import ParseError
from timecraft.parser.grammar import (
    parse_event,
    parse_param,
    parse_port,
    parse_statement,
    parse_where,
)

logger = logging.getLogger(__name__)

_DESIGN_KEYS = {"apiVersion", "name", "usePrimitives", "imports", "components", "description"}
_COMPONENT_KEYS = {
    "name",
    "extern",
    "description",
    "params",
    "events",
    "inputs",
    "outputs",
    "where",
    "body",
}


class LocatedStr(str):
    """String scalar that remembers the YAML line it came from."""

    line: Optional[int]

    def __new__(cls, value: str, line: Optional[int] = None):
        obj = super().__new__(cls, value)
        obj.line = line
        return obj


class LineLoader(yaml.SafeLoader):
    """SafeLoader that attaches line numbers to string scalars."""


def _construct_located_str(loader: LineLoader, node: yaml.ScalarNode) -> LocatedStr:
    return LocatedStr(loader.construct_scalar(node), node.start_mark.line + 1)


LineLoader.add_constructor("tag:yaml.org,2002:str", _construct_located_str)


def _line_of(value: Any) -> Optional[int]:
    return getattr(value, "line", None)


class YamlDesignParser:
    """
    Parser for design YAML files.

    Handles:
    - Main design file parsing
    - Import of other design files (signatures only), cached per path
    - Validation and error reporting with line numbers
    """

    def __init__(self):
        self._import_cache: Dict[Path, Design] = {}
        self._loading: Set[Path] = set()
        self._current_file: Optional[Path] = None

    def parse_file(self, file_path: Union[str, Path]) -> Design:
        """
        Parse a design YAML file.

        Args:
            file_path: Path to the design YAML file

        Returns:
            Design: Validated design model

        Raises:
            ParseError: If parsing or validation fails
        """
        file_path = Path(file_path).resolve()

        if not file_path.exists():
            raise ParseError(f"File not found: {file_path}")

        text = file_path.read_text(encoding="utf-8")
        return self.parse_string(text, file_path)

    def parse_string(self, text: str, file_path: Optional[Path] = None) -> Design:
        """Parse design YAML held in memory; imports resolve against ``file_path``."""
        self._current_file = file_path
        try:
            data = yaml.load(text, Loader=LineLoader)
        except yaml.YAMLError as e:
            mark = getattr(e, "problem_mark", None)
            line_num = mark.line + 1 if mark else None
            raise ParseError(f"YAML syntax error: {e}", file_path, line_num)

        if not isinstance(data, dict):
            raise ParseError("Root element must be a YAML object/dictionary", file_path)

        try:
            return self._parse_design(data, file_path)
        except ValidationError as e:
            # Convert Pydantic validation errors to ParseError
            errors = []
            for error in e.errors():
                loc = " -> ".join(str(x) for x in error["loc"])
                errors.append(f"{loc}: {error['msg']}")
            raise ParseError("Validation failed:\n  " + "\n  ".join(errors), file_path)

    def _parse_design(self, data: Dict[str, Any], file_path: Optional[Path]) -> Design:
        """Parse the top-level design structure."""
        unknown = set(data) - _DESIGN_KEYS
        if unknown:
            raise ParseError(f"Unknown design keys: {', '.join(sorted(unknown))}", file_path)

        components = [
            self._parse_component(comp_data, idx, file_path)
            for idx, comp_data in enumerate(data.get("components") or [])
        ]
        imported = self._parse_imports(data.get("imports") or [], file_path)

        kwargs = {
            "api_version": str(data.get("apiVersion", "timecraft/v1")),
            "use_primitives": bool(data.get("usePrimitives", True)),
            "components": components,
            "imported": imported,
        }
        if data.get("name"):
            kwargs["name"] = str(data["name"])
        if file_path:
            kwargs["source"] = str(file_path)

        design = Design(**kwargs)
        logger.debug(
            f"Parsed design '{design.name}' with {len(components)} component(s) "
            f"and {len(imported)} imported signature(s)"
        )
        return design

    def _loc(self, value: Any, file_path: Optional[Path]) -> SourceLoc:
        return SourceLoc(file=str(file_path) if file_path else None, line=_line_of(value))

    def _parse_component(
        self, data: Any, idx: int, file_path: Optional[Path]
    ) -> ComponentDef:
        """Parse one component entry: signature plus optional body."""
        if not isinstance(data, dict):
            raise ParseError(f"components[{idx}] must be a mapping", file_path)
        name = data.get("name")
        if not name:
            raise ParseError(f"components[{idx}] is missing 'name'", file_path)
        line = _line_of(name)
        unknown = set(data) - _COMPONENT_KEYS
        if unknown:
            raise ParseError(
                f"Component '{name}' has unknown keys: {', '.join(sorted(unknown))}",
                file_path,
                line,
            )

        try:
            signature = ComponentSignature(
                name=str(name),
                params=self._parse_params(data.get("params") or [], file_path),
                events=self._parse_events(data.get("events") or [], file_path),
                ports=self._parse_ports(data.get("inputs") or [], "in", file_path)
                + self._parse_ports(data.get("outputs") or [], "out", file_path),
                where=self._parse_where(data.get("where") or [], file_path),
                extern=bool(data.get("extern", False)),
                description=str(data.get("description") or ""),
                loc=self._loc(name, file_path),
            )
        except ParseError:
            raise
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise ParseError(f"Error parsing component '{name}': {e}", file_path, line)

        body_data = data.get("body")
        body = None
        if body_data is not None:
            if signature.extern:
                raise ParseError(f"Extern component '{name}' cannot have a body", file_path, line)
            body = self._parse_body(body_data, file_path)
        return ComponentDef(signature=signature, body=body)

    def _parse_params(self, data: List[Any], file_path: Optional[Path]) -> List[Parameter]:
        """Parse parameter declarations (strings or mappings)."""
        params = []
        for item in data:
            loc = self._loc(item, file_path)
            if isinstance(item, dict):
                params.append(
                    Parameter(
                        name=item.get("name"),
                        default=item.get("default"),
                        description=item.get("description") or "",
                        loc=loc,
                    )
                )
            else:
                params.append(self._located(parse_param, item, file_path, loc))
        return params

    def _parse_events(self, data: List[Any], file_path: Optional[Path]) -> List[EventDef]:
        """Parse event declarations (strings or mappings)."""
        events = []
        for item in data:
            loc = self._loc(item, file_path)
            if isinstance(item, dict):
                events.append(
                    EventDef(
                        name=item.get("name"),
                        delay=item.get("delay"),
                        description=item.get("description") or "",
                        loc=loc,
                    )
                )
            else:
                events.append(self._located(parse_event, item, file_path, loc))
        return events

    def _parse_ports(
        self, data: List[Any], direction: str, file_path: Optional[Path]
    ) -> List[PortDef]:
        """Parse port declarations (strings or mappings)."""
        ports = []
        for item in data:
            loc = self._loc(item, file_path)
            if isinstance(item, dict):
                ports.append(
                    PortDef(
                        name=item.get("name"),
                        direction=direction,
                        interval=item.get("interval"),
                        width=item.get("width", 1),
                        description=item.get("description") or "",
                        loc=loc,
                    )
                )
            else:
                try:
                    ports.append(parse_port(item, direction, loc))
                except ParseError as e:
                    raise ParseError(str(e), file_path, loc.line)
        return ports

    def _parse_where(self, data: List[Any], file_path: Optional[Path]) -> List[WhereClause]:
        return [
            self._located(parse_where, item, file_path, self._loc(item, file_path))
            for item in data
        ]

    def _parse_body(self, data: Any, file_path: Optional[Path]) -> ComponentBody:
        """Parse body statements, keeping their order within each kind."""
        if not isinstance(data, list):
            raise ParseError("Component body must be a list of statements", file_path)
        instances: List[Instantiation] = []
        invocations: List[Invocation] = []
        connections: List[Connection] = []
        for item in data:
            stmt = self._located(parse_statement, item, file_path, self._loc(item, file_path))
            if isinstance(stmt, Instantiation):
                instances.append(stmt)
            elif isinstance(stmt, Invocation):
                invocations.append(stmt)
            else:
                connections.append(stmt)
        return ComponentBody(
            instances=instances, invocations=invocations, connections=connections
        )

    @staticmethod
    def _located(fn, item: Any, file_path: Optional[Path], loc: SourceLoc):
        """Run a grammar entry point, re-raising errors with file and line."""
        try:
            return fn(str(item), loc)
        except ParseError as e:
            raise ParseError(str(e), file_path, loc.line)

    def _parse_imports(
        self, data: List[Any], file_path: Optional[Path]
    ) -> List[ComponentSignature]:
        """Load imported designs and collect their signatures."""
        signatures: List[ComponentSignature] = []
        base_dir = file_path.parent if file_path else Path.cwd()
        for item in data:
            import_path = (base_dir / str(item)).resolve()
            if import_path in self._loading:
                raise ParseError(f"Circular import of {import_path}", file_path, _line_of(item))
            design = self._import_cache.get(import_path)
            if design is None:
                self._loading.add(import_path)
                try:
                    design = self.parse_file(import_path)
                finally:
                    self._loading.discard(import_path)
                    self._current_file = file_path
                self._import_cache[import_path] = design
                logger.info(f"Imported {len(design.components)} component(s) from {import_path}")
            for signature in list(design.imported) + [c.signature for c in design.components]:
                # Diamond imports bring the same signature in twice
                if signature not in signatures:
                    signatures.append(signature)
        return signatures
