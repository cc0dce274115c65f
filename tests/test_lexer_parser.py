"""Tests for the Tessera lexer and parser."""

from __future__ import annotations

import pytest

from tessera import ErrorCode, TemplateSyntaxError, TokenType
from tessera.lexer import tokenize
from tessera.nodes import CallTag, Const, Data, Filter, For, Getattr, If, Name, Output, Set, With
from tessera.parser import ParseError, parse
from tessera.parser.core import _BLOCK_PARSERS, _CONTINUATION_KEYWORDS, _END_KEYWORDS


class TestLexer:
    def test_token_stream(self) -> None:
        kinds = [t.type for t in tokenize("Hi {{ user.name | upper }}")]
        assert kinds == [
            TokenType.DATA,
            TokenType.VARIABLE_BEGIN,
            TokenType.NAME,
            TokenType.DOT,
            TokenType.NAME,
            TokenType.PIPE,
            TokenType.NAME,
            TokenType.VARIABLE_END,
            TokenType.EOF,
        ]

    def test_positions(self) -> None:
        tokens = tokenize("a\n  {{ x }}")
        name = next(t for t in tokens if t.type is TokenType.NAME)
        assert (name.lineno, name.col_offset) == (2, 5)

    def test_string_escapes(self) -> None:
        tokens = tokenize(r"""{{ 'it\'s' }}{{ "a\nb" }}""")
        strings = [t.value for t in tokens if t.type is TokenType.STRING]
        assert strings == ["it's", "a\nb"]

    def test_numbers(self) -> None:
        tokens = tokenize("{{ 3 }}{{ -1.5 }}")
        values = [(t.type, t.value) for t in tokens if t.type in (TokenType.INTEGER, TokenType.FLOAT)]
        assert values == [(TokenType.INTEGER, "3"), (TokenType.FLOAT, "-1.5")]

    def test_closer_inside_string_is_not_a_delimiter(self) -> None:
        tokens = tokenize("{{ '}}' }}")
        assert [t.value for t in tokens if t.type is TokenType.STRING] == ["}}"]

    @pytest.mark.parametrize(
        ("source", "code"),
        [
            ("{{ x ", ErrorCode.UNCLOSED_VARIABLE),
            ("{% tag ", ErrorCode.UNCLOSED_TAG),
            ("{# open", ErrorCode.UNCLOSED_COMMENT),
            ("{{ x $ }}", ErrorCode.UNEXPECTED_CHARACTER),
        ],
    )
    def test_lexer_errors(self, source: str, code: ErrorCode) -> None:
        with pytest.raises(TemplateSyntaxError) as exc_info:
            tokenize(source)
        assert exc_info.value.code is code


class TestParser:
    def test_output_and_data(self) -> None:
        body = parse("a{{ x }}").body
        assert isinstance(body[0], Data)
        assert isinstance(body[1], Output)
        assert body[1].expr == Name(1, 4, "x")

    def test_filter_with_arguments(self) -> None:
        expr = parse("{{ x | join(', ') | upper }}").body[0].expr
        assert isinstance(expr, Filter)
        assert expr.name == "upper"
        inner = expr.value
        assert isinstance(inner, Filter)
        assert inner.name == "join"
        assert inner.args[0].value == ", "

    def test_dotted_lookup(self) -> None:
        expr = parse("{{ a.b.0 }}").body[0].expr
        assert isinstance(expr, Getattr)
        assert expr.attr == "0"
        assert isinstance(expr.obj, Getattr)

    def test_tag_call_shapes(self) -> None:
        node = parse("{% greet 'Hi' user, loud=true as line %}").body[0]
        assert isinstance(node, CallTag)
        assert node.name == "greet"
        assert [type(a) for a in node.args] == [Const, Name]
        assert node.kwargs[0][0] == "loud"
        assert node.target == "line"

    def test_positional_after_keyword_is_rejected(self) -> None:
        with pytest.raises(ParseError):
            parse("{% t a=1 b %}")

    def test_block_constructs(self) -> None:
        body = parse(
            "{% for i in xs %}{% empty %}{% end %}"
            "{% if a %}{% elif b %}{% else %}{% endif %}"
            "{% with a=1 %}{% endwith %}"
            "{% set y = 2 %}"
        ).body
        assert [type(n) for n in body] == [For, If, With, Set]
        assert len(body[1].elif_) == 1

    def test_unclosed_block(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse("{% for i in xs %}body")
        assert exc_info.value.code is ErrorCode.UNCLOSED_BLOCK
        assert "{% end %}" in str(exc_info.value)

    def test_stray_end(self) -> None:
        with pytest.raises(ParseError, match="Unexpected 'end'"):
            parse("text{% end %}")

    def test_continuation_outside_block(self) -> None:
        with pytest.raises(ParseError, match="outside of a matching block"):
            parse("{% else %}")

    def test_error_carries_source_line(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse("ok\n{{ | }}", name="bad.html")
        err = exc_info.value
        assert err.lineno == 2
        assert "bad.html:2" in str(err)
        assert "{{ | }}" in str(err)


class TestDispatchTable:
    def test_parsers_exist(self) -> None:
        from tessera.parser.core import Parser

        for method_name in _BLOCK_PARSERS.values():
            assert hasattr(Parser, method_name)

    def test_keyword_sets_do_not_overlap(self) -> None:
        blocks = set(_BLOCK_PARSERS)
        assert blocks.isdisjoint(_CONTINUATION_KEYWORDS)
        assert blocks.isdisjoint(_END_KEYWORDS)
        assert _CONTINUATION_KEYWORDS.isdisjoint(_END_KEYWORDS)
