"""
YAML parsers for design descriptions.
"""

from timecraft.parser.errors import ParseError

from .design_parser import LineLoader, YamlDesignParser

__all__ = ["YamlDesignParser", "LineLoader", "ParseError"]
