"""Tessera parser: token list → immutable node tree."""

from tessera.parser.core import Parser, parse
from tessera.parser.errors import ParseError

__all__ = ["ParseError", "Parser", "parse"]
