import os
import sys
import textwrap

import pytest

# Add the project root to sys.path so that timecraft is importable
# This is needed because of the flat layout structure
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "../.."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from timecraft.checker import DesignChecker, SignatureTable  # noqa: E402
from timecraft.parser import YamlDesignParser  # noqa: E402
from timecraft.primitives import get_primitive_library  # noqa: E402


@pytest.fixture
def primitives():
    return get_primitive_library()


@pytest.fixture
def table(primitives):
    """Signature table with the bundled primitives registered."""
    table = SignatureTable()
    table.register_all(primitives.signatures)
    return table


@pytest.fixture
def write_design(tmp_path):
    """Write dedented YAML text to a file and return its path."""

    def _write(text: str, name: str = "design.yml"):
        path = tmp_path / name
        path.write_text(textwrap.dedent(text))
        return path

    return _write


@pytest.fixture
def load_design(write_design):
    def _load(text: str, name: str = "design.yml"):
        return YamlDesignParser().parse_file(write_design(text, name))

    return _load


@pytest.fixture
def check_design(load_design):
    """Parse YAML text and run the design checker on it."""

    def _check(text: str, jobs: int = 1):
        return DesignChecker(jobs=jobs).check(load_design(text))

    return _check
