"""Tessera lexer: template source → flat token list.

Recognized delimiters:
    ``{{ ... }}``  variable output
    ``{% ... %}``  block / tag
    ``{# ... #}``  comment (dropped)

Everything outside delimiters becomes a single DATA token per run of text.
Inside delimiters the lexer produces names, string and number literals,
and the punctuation ``. , | = ( )``.

Complexity:
    O(n) in the source length; every regex is compiled once at class level.

"""

from __future__ import annotations

import re
from bisect import bisect_right

from tessera._types import Token, TokenType
from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError

_ESCAPES = {"n": "\n", "t": "\t", "r": "\r"}

_PUNCTUATION = {
    ".": TokenType.DOT,
    ",": TokenType.COMMA,
    "|": TokenType.PIPE,
    "=": TokenType.ASSIGN,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
}


class Lexer:
    """Tokenizer for one template source.

    Example:
        >>> [t.type.name for t in Lexer("Hi {{ name }}").tokenize()]
        ['DATA', 'VARIABLE_BEGIN', 'NAME', 'VARIABLE_END', 'EOF']
    """

    _BEGIN_RE = re.compile(r"\{\{|\{%|\{#")
    _TOKEN_RE = re.compile(
        r"""
          (?P<ws>\s+)
        | (?P<float>-?\d+\.\d+)
        | (?P<integer>-?\d+)
        | (?P<name>[A-Za-z_][A-Za-z0-9_]*)
        | (?P<string>'(?:[^'\\]|\\.)*'|"(?:[^"\\]|\\.)*")
        | (?P<punct>[.,|=()])
        """,
        re.VERBOSE | re.DOTALL,
    )
    _ESCAPE_RE = re.compile(r"\\(.)", re.DOTALL)

    __slots__ = ("_line_starts", "_name", "_source", "_tokens")

    def __init__(self, source: str, name: str | None = None) -> None:
        self._source = source
        self._name = name
        self._tokens: list[Token] = []
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", source)]

    def tokenize(self) -> list[Token]:
        source = self._source
        pos = 0
        end = len(source)
        while pos < end:
            match = self._BEGIN_RE.search(source, pos)
            if match is None:
                self._emit(TokenType.DATA, source[pos:], pos)
                break
            if match.start() > pos:
                self._emit(TokenType.DATA, source[pos : match.start()], pos)

            opener = match.group()
            if opener == "{#":
                close = source.find("#}", match.end())
                if close == -1:
                    raise self._error("Unclosed comment", match.start(), ErrorCode.UNCLOSED_COMMENT)
                pos = close + 2
                continue

            if opener == "{{":
                begin, finish, closer = TokenType.VARIABLE_BEGIN, TokenType.VARIABLE_END, "}}"
                code = ErrorCode.UNCLOSED_VARIABLE
            else:
                begin, finish, closer = TokenType.BLOCK_BEGIN, TokenType.BLOCK_END, "%}"
                code = ErrorCode.UNCLOSED_TAG
            self._emit(begin, opener, match.start())
            pos = self._lex_inside(match.end(), closer, finish, code, match.start())

        self._emit(TokenType.EOF, "", end)
        return self._tokens

    def _lex_inside(
        self, pos: int, closer: str, finish: TokenType, code: ErrorCode, opened_at: int
    ) -> int:
        source = self._source
        while True:
            if source.startswith(closer, pos):
                self._emit(finish, closer, pos)
                return pos + 2
            if pos >= len(source):
                raise self._error(f"Expected '{closer}' before end of template", opened_at, code)

            match = self._TOKEN_RE.match(source, pos)
            if match is None:
                raise self._error(
                    f"Unexpected character {source[pos]!r}", pos, ErrorCode.UNEXPECTED_CHARACTER
                )
            kind = match.lastgroup
            text = match.group()
            if kind == "name":
                self._emit(TokenType.NAME, text, pos)
            elif kind == "integer":
                self._emit(TokenType.INTEGER, text, pos)
            elif kind == "float":
                self._emit(TokenType.FLOAT, text, pos)
            elif kind == "string":
                body = self._ESCAPE_RE.sub(lambda m: _ESCAPES.get(m.group(1), m.group(1)), text[1:-1])
                self._emit(TokenType.STRING, body, pos)
            elif kind == "punct":
                self._emit(_PUNCTUATION[text], text, pos)
            pos = match.end()

    def _position(self, offset: int) -> tuple[int, int]:
        index = bisect_right(self._line_starts, offset) - 1
        return index + 1, offset - self._line_starts[index]

    def _emit(self, kind: TokenType, value: str, offset: int) -> None:
        lineno, col = self._position(offset)
        self._tokens.append(Token(kind, value, lineno, col))

    def _error(self, message: str, offset: int, code: ErrorCode) -> TemplateSyntaxError:
        lineno, col = self._position(offset)
        return TemplateSyntaxError(
            message, lineno, self._name, self._source, col, code=code
        )


def tokenize(source: str, name: str | None = None) -> list[Token]:
    """Tokenize ``source`` in one call."""
    return Lexer(source, name).tokenize()
