"""Enums and small value types shared across Tessera modules."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class TokenType(Enum):
    """Kinds of tokens produced by the lexer."""

    DATA = "data"
    VARIABLE_BEGIN = "variable_begin"
    VARIABLE_END = "variable_end"
    BLOCK_BEGIN = "block_begin"
    BLOCK_END = "block_end"

    NAME = "name"
    STRING = "string"
    INTEGER = "integer"
    FLOAT = "float"

    DOT = "dot"
    COMMA = "comma"
    PIPE = "pipe"
    ASSIGN = "assign"
    LPAREN = "lparen"
    RPAREN = "rparen"

    EOF = "eof"


@dataclass(frozen=True, slots=True)
class Token:
    """A single lexed token with its source position."""

    type: TokenType
    value: str
    lineno: int
    col_offset: int

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.value!r}, {self.lineno}:{self.col_offset})"


class ReclaimPath(Enum):
    """How a Context was recovered from its ContextHandle."""

    UNIQUE = "unique"
    DEEP_COPY = "deep_copy"
