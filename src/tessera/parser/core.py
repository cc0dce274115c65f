"""Recursive-descent parser producing the Tessera node tree.

Block keywords are dispatched through a table, so adding a construct means
adding one ``_parse_*`` method and one table entry. Any other block name is
a registered-tag call, resolved at render time.

Grammar (informal):
    ```
    expr     := "not" expr | filtered
    filtered := primary ("|" NAME ["(" [expr ("," expr)*] ")"])*
    primary  := literal | NAME ("." (NAME | INTEGER))* | "(" expr ")"
    literal  := STRING | INTEGER | FLOAT | true | false | none
    tag      := NAME (expr | NAME "=" expr)* ["as" NAME]
    ```

"""

from __future__ import annotations

from collections.abc import Callable

from tessera._types import Token, TokenType
from tessera.environment.exceptions import ErrorCode
from tessera.lexer import tokenize
from tessera.nodes import (
    CallTag,
    Const,
    Data,
    Expr,
    Filter,
    For,
    Getattr,
    If,
    Name,
    Node,
    Not,
    Output,
    Set,
    Template,
    With,
)
from tessera.parser.errors import ParseError

_BLOCK_PARSERS: dict[str, str] = {
    "for": "_parse_for",
    "if": "_parse_if",
    "with": "_parse_with",
    "set": "_parse_set",
}

_CONTINUATION_KEYWORDS = frozenset({"elif", "else", "empty"})
_END_KEYWORDS = frozenset({"end", "endfor", "endif", "endwith"})

_LITERALS: dict[str, bool | None] = {
    "true": True,
    "True": True,
    "false": False,
    "False": False,
    "none": None,
    "None": None,
}


class Parser:
    """Parse one token list into a ``nodes.Template``."""

    __slots__ = ("_name", "_pos", "_source", "_tokens")

    def __init__(self, tokens: list[Token], name: str | None = None, source: str | None = None):
        self._tokens = tokens
        self._pos = 0
        self._name = name
        self._source = source

    def parse(self) -> Template:
        body, terminator = self._subparse(frozenset())
        if terminator is not None:
            raise self._error(f"Unexpected '{terminator.value}'", terminator)
        return Template(lineno=1, col_offset=0, body=tuple(body))

    # ------------------------------------------------------------------
    # Token helpers
    # ------------------------------------------------------------------

    @property
    def _current(self) -> Token:
        return self._tokens[self._pos]

    def _peek(self, offset: int = 1) -> Token:
        index = min(self._pos + offset, len(self._tokens) - 1)
        return self._tokens[index]

    def _advance(self) -> Token:
        token = self._tokens[self._pos]
        if token.type is not TokenType.EOF:
            self._pos += 1
        return token

    def _expect(self, kind: TokenType, value: str | None = None) -> Token:
        token = self._current
        if token.type is not kind or (value is not None and token.value != value):
            wanted = value or kind.value
            raise self._error(f"Expected '{wanted}', got '{token.value or token.type.value}'", token)
        return self._advance()

    def _error(
        self,
        message: str,
        token: Token,
        suggestion: str | None = None,
        code: ErrorCode = ErrorCode.UNEXPECTED_TOKEN,
    ) -> ParseError:
        return ParseError(message, token, self._source, self._name, suggestion, code)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _subparse(self, stop: frozenset[str]) -> tuple[list[Node], Token | None]:
        """Parse nodes until a block keyword in ``stop`` (or any end keyword).

        Returns the nodes and the keyword token that ended them, leaving the
        parser just past that keyword. The terminator is None at EOF.
        """
        body: list[Node] = []
        while True:
            token = self._current
            if token.type is TokenType.EOF:
                return body, None
            if token.type is TokenType.DATA:
                self._advance()
                body.append(Data(token.lineno, token.col_offset, token.value))
            elif token.type is TokenType.VARIABLE_BEGIN:
                self._advance()
                expr = self._parse_expr()
                self._expect(TokenType.VARIABLE_END)
                body.append(Output(token.lineno, token.col_offset, expr))
            elif token.type is TokenType.BLOCK_BEGIN:
                keyword = self._peek()
                if keyword.type is not TokenType.NAME:
                    raise self._error("Expected a tag name after '{%'", keyword)
                if keyword.value in stop or keyword.value in _END_KEYWORDS:
                    self._advance()
                    self._advance()
                    return body, keyword
                if keyword.value in _CONTINUATION_KEYWORDS:
                    raise self._error(f"'{keyword.value}' outside of a matching block", keyword)
                self._advance()
                body.append(self._parse_block())
            else:
                raise self._error(f"Unexpected '{token.value}'", token)

    def _parse_block(self) -> Node:
        keyword = self._current
        method = _BLOCK_PARSERS.get(keyword.value)
        if method is None:
            return self._parse_tag_call()
        parser: Callable[[], Node] = getattr(self, method)
        return parser()

    def _parse_body(self, opener: Token, stop: frozenset[str]) -> tuple[list[Node], Token]:
        body, terminator = self._subparse(stop)
        if terminator is None:
            raise self._error(
                f"Unclosed '{opener.value}' block",
                opener,
                suggestion="Close it with {% end %}",
                code=ErrorCode.UNCLOSED_BLOCK,
            )
        return body, terminator

    def _finish_block(self, terminator: Token) -> None:
        if terminator.value not in _END_KEYWORDS:
            raise self._error(f"Unexpected '{terminator.value}'", terminator)
        self._expect(TokenType.BLOCK_END)

    def _parse_for(self) -> For:
        opener = self._advance()
        target = self._expect(TokenType.NAME).value
        self._expect(TokenType.NAME, "in")
        iterable = self._parse_expr()
        self._expect(TokenType.BLOCK_END)

        body, terminator = self._parse_body(opener, frozenset({"empty"}))
        empty: list[Node] = []
        if terminator.value == "empty":
            self._expect(TokenType.BLOCK_END)
            empty, terminator = self._parse_body(opener, frozenset())
        self._finish_block(terminator)
        return For(opener.lineno, opener.col_offset, target, iterable, tuple(body), tuple(empty))

    def _parse_if(self) -> If:
        opener = self._advance()
        test = self._parse_expr()
        self._expect(TokenType.BLOCK_END)

        stop = frozenset({"elif", "else"})
        body, terminator = self._parse_body(opener, stop)
        elifs: list[tuple[Expr, tuple[Node, ...]]] = []
        else_: list[Node] = []
        while terminator.value == "elif":
            elif_test = self._parse_expr()
            self._expect(TokenType.BLOCK_END)
            elif_body, terminator = self._parse_body(opener, stop)
            elifs.append((elif_test, tuple(elif_body)))
        if terminator.value == "else":
            self._expect(TokenType.BLOCK_END)
            else_, terminator = self._parse_body(opener, frozenset())
        self._finish_block(terminator)
        return If(opener.lineno, opener.col_offset, test, tuple(body), tuple(elifs), tuple(else_))

    def _parse_with(self) -> With:
        opener = self._advance()
        bindings: list[tuple[str, Expr]] = []
        while self._current.type is not TokenType.BLOCK_END:
            name = self._expect(TokenType.NAME).value
            self._expect(TokenType.ASSIGN)
            bindings.append((name, self._parse_expr()))
            if self._current.type is TokenType.COMMA:
                self._advance()
        if not bindings:
            raise self._error("'with' needs at least one name=value binding", opener)
        self._expect(TokenType.BLOCK_END)
        body, terminator = self._parse_body(opener, frozenset())
        self._finish_block(terminator)
        return With(opener.lineno, opener.col_offset, tuple(bindings), tuple(body))

    def _parse_set(self) -> Set:
        opener = self._advance()
        target = self._expect(TokenType.NAME).value
        self._expect(TokenType.ASSIGN)
        value = self._parse_expr()
        self._expect(TokenType.BLOCK_END)
        return Set(opener.lineno, opener.col_offset, target, value)

    def _parse_tag_call(self) -> CallTag:
        opener = self._advance()
        args: list[Expr] = []
        kwargs: list[tuple[str, Expr]] = []
        target: str | None = None
        while self._current.type is not TokenType.BLOCK_END:
            token = self._current
            if (
                token.type is TokenType.NAME
                and token.value == "as"
                and self._peek().type is TokenType.NAME
                and self._peek(2).type is TokenType.BLOCK_END
            ):
                self._advance()
                target = self._advance().value
                break
            if token.type is TokenType.NAME and self._peek().type is TokenType.ASSIGN:
                self._advance()
                self._advance()
                kwargs.append((token.value, self._parse_expr()))
            else:
                if kwargs:
                    raise self._error(
                        f"Positional argument after keyword argument in '{opener.value}'", token
                    )
                args.append(self._parse_expr())
            if self._current.type is TokenType.COMMA:
                self._advance()
        self._expect(TokenType.BLOCK_END)
        return CallTag(
            opener.lineno, opener.col_offset, opener.value, tuple(args), tuple(kwargs), target
        )

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _parse_expr(self) -> Expr:
        token = self._current
        if token.type is TokenType.NAME and token.value == "not":
            self._advance()
            return Not(token.lineno, token.col_offset, self._parse_expr())
        return self._parse_filtered()

    def _parse_filtered(self) -> Expr:
        expr = self._parse_primary()
        while self._current.type is TokenType.PIPE:
            pipe = self._advance()
            name = self._expect(TokenType.NAME).value
            args: list[Expr] = []
            if self._current.type is TokenType.LPAREN:
                self._advance()
                while self._current.type is not TokenType.RPAREN:
                    args.append(self._parse_expr())
                    if self._current.type is TokenType.COMMA:
                        self._advance()
                    elif self._current.type is not TokenType.RPAREN:
                        raise self._error("Expected ',' or ')' in filter arguments", self._current)
                self._advance()
            expr = Filter(pipe.lineno, pipe.col_offset, expr, name, tuple(args))
        return expr

    def _parse_primary(self) -> Expr:
        token = self._current
        kind = token.type
        if kind is TokenType.STRING:
            self._advance()
            return Const(token.lineno, token.col_offset, token.value)
        if kind is TokenType.INTEGER:
            self._advance()
            return Const(token.lineno, token.col_offset, int(token.value))
        if kind is TokenType.FLOAT:
            self._advance()
            return Const(token.lineno, token.col_offset, float(token.value))
        if kind is TokenType.LPAREN:
            self._advance()
            inner = self._parse_expr()
            self._expect(TokenType.RPAREN)
            return inner
        if kind is TokenType.NAME:
            self._advance()
            if token.value in _LITERALS:
                return Const(token.lineno, token.col_offset, _LITERALS[token.value])
            expr: Expr = Name(token.lineno, token.col_offset, token.value)
            while self._current.type is TokenType.DOT:
                self._advance()
                attr = self._current
                if attr.type not in (TokenType.NAME, TokenType.INTEGER):
                    raise self._error("Expected attribute name after '.'", attr)
                self._advance()
                expr = Getattr(attr.lineno, attr.col_offset, expr, attr.value)
            return expr
        raise self._error(
            f"Expected an expression, got '{token.value or kind.value}'",
            token,
            code=ErrorCode.INVALID_EXPRESSION,
        )


def parse(source: str, name: str | None = None) -> Template:
    """Lex and parse ``source`` into a node tree."""
    return Parser(tokenize(source, name), name, source).parse()
