"""
Parsers for design descriptions and their one-line declaration syntax.
"""

from .errors import ParseError
from .grammar import (
    parse_event,
    parse_expr,
    parse_interval,
    parse_param,
    parse_port,
    parse_statement,
    parse_time,
    parse_where,
)
from .yaml import YamlDesignParser

__all__ = [
    "YamlDesignParser",
    "ParseError",
    "parse_expr",
    "parse_time",
    "parse_interval",
    "parse_where",
    "parse_param",
    "parse_event",
    "parse_port",
    "parse_statement",
]
