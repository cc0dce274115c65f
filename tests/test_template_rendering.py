"""End-to-end rendering tests: syntax, scoping and tags inside templates."""

from __future__ import annotations

import asyncio

import pytest

from tessera import (
    Context,
    ContextSlot,
    Environment,
    TagError,
    TemplateRuntimeError,
    UndefinedError,
    render_context,
)

from .conftest import assert_contains


class TestOutput:
    def test_plain_text(self, env: Environment) -> None:
        assert env.from_string("Hello").render() == "Hello"

    def test_variable(self, env: Environment) -> None:
        assert env.from_string("Hi {{ name }}!").render(name="Ada") == "Hi Ada!"

    def test_dict_positional_context(self, env: Environment) -> None:
        assert env.from_string("{{ a }}{{ b }}").render({"a": 1}, b=2) == "12"

    def test_too_many_positional_arguments(self, env: Environment) -> None:
        with pytest.raises(TypeError):
            env.from_string("x").render({}, {})

    def test_none_renders_empty(self, env: Environment) -> None:
        assert env.from_string("[{{ value }}]").render(value=None) == "[]"

    def test_attribute_and_item_access(self, env: Environment) -> None:
        class User:
            name = "ada"

        tmpl = env.from_string("{{ user.name }} {{ data.key }} {{ items.1 }}")
        assert tmpl.render(user=User(), data={"key": "v"}, items=["a", "b"]) == "ada v b"

    def test_literals(self, env: Environment) -> None:
        tmpl = env.from_string("{{ 'a' }}{{ 1 }}{{ 2.5 }}{{ true }}{{ none }}")
        assert tmpl.render() == "a12.5True"

    def test_comments_are_dropped(self, env: Environment) -> None:
        assert env.from_string("a{# hidden #}b").render() == "ab"

    def test_globals(self) -> None:
        env = Environment(globals={"site": "docs"})
        assert env.from_string("{{ site }}").render() == "docs"
        assert env.from_string("{{ site }}").render(site="override") == "override"


class TestFilters:
    def test_builtin_filters(self, env: Environment) -> None:
        tmpl = env.from_string("{{ name | upper }} {{ items | length }} {{ items | join(', ') }}")
        assert tmpl.render(name="ada", items=["a", "b"]) == "ADA 2 a, b"

    def test_chained_filters(self, env: Environment) -> None:
        assert env.from_string("{{ s | trim | title }}").render(s="  hello world ") == "Hello World"

    def test_default_accepts_undefined_in_strict_mode(self, env: Environment) -> None:
        assert env.from_string("{{ missing | default('N/A') }}").render() == "N/A"

    def test_custom_filter_decorator(self, env: Environment) -> None:
        @env.filter()
        def money(amount, currency="$"):
            return f"{currency}{amount:,.2f}"

        assert env.from_string("{{ total | money('€') }}").render(total=1234.5) == "€1,234.50"

    def test_unknown_filter(self, env: Environment) -> None:
        with pytest.raises(TemplateRuntimeError, match="Unknown filter 'nope'"):
            env.from_string("{{ x | nope }}").render(x=1)


class TestControlFlow:
    def test_for_loop_with_loop_variable(self, env: Environment) -> None:
        tmpl = env.from_string("{% for i in items %}{{ loop.index }}={{ i }};{% end %}")
        assert tmpl.render(items=["a", "b"]) == "1=a;2=b;"

    def test_for_empty(self, env: Environment) -> None:
        tmpl = env.from_string("{% for i in items %}{{ i }}{% empty %}none{% endfor %}")
        assert tmpl.render(items=[]) == "none"

    def test_loop_variable_does_not_leak(self, env: Environment) -> None:
        tmpl = env.from_string("{% for item in items %}{{ item }}{% end %}{{ item }}")
        assert tmpl.render(items=[1, 2], item="outer") == "12outer"

    def test_if_elif_else(self, env: Environment) -> None:
        tmpl = env.from_string("{% if a %}A{% elif b %}B{% else %}C{% endif %}")
        assert tmpl.render(a=True, b=False) == "A"
        assert tmpl.render(a=False, b=True) == "B"
        assert tmpl.render(a=False, b=False) == "C"

    def test_not(self, env: Environment) -> None:
        assert env.from_string("{% if not flag %}off{% end %}").render(flag=False) == "off"

    def test_with_scopes_bindings(self, env: Environment) -> None:
        tmpl = env.from_string("{% with a=1, b=x %}{{ a }}{{ b }}{% end %}{{ x }}")
        assert tmpl.render(x=2) == "122"

    def test_binding_named_self(self, env: Environment) -> None:
        assert env.from_string("{% with self=1 %}{{ self }}{% end %}").render() == "1"
        tmpl = env.from_string("{% for self in xs %}{{ self }}{% end %}")
        assert tmpl.render(xs=["a", "b"]) == "ab"
        assert env.from_string("{{ self }}").render(self="kw") == "kw"

    def test_set_writes_current_scope(self, env: Environment) -> None:
        tmpl = env.from_string(
            "{% set greeting = 'hi' %}{{ greeting }}"
            "{% for i in items %}{% set greeting = i %}{% end %}{{ greeting }}"
        )
        assert tmpl.render(items=["x"]) == "hihi"


class TestStrictMode:
    def test_undefined_raises(self, env: Environment) -> None:
        with pytest.raises(UndefinedError) as exc_info:
            env.from_string("{{ usernme }}").render(username="ada")
        assert "usernme" in str(exc_info.value)
        assert "Did you mean 'username'?" in str(exc_info.value)

    def test_undefined_attribute_raises(self, env: Environment) -> None:
        with pytest.raises(UndefinedError, match="user.email"):
            env.from_string("{{ user.email }}").render(user={})

    def test_lenient_mode_renders_empty(self, env_lenient: Environment) -> None:
        assert env_lenient.from_string("[{{ missing }}{{ a.b }}]").render(a={}) == "[]"


class TestTagsInTemplates:
    def test_plain_tag_with_literal_argument(self, env: Environment) -> None:
        env.register_tag("shout", lambda text: text.upper())
        tmpl = env.from_string("{% shout 'hi' %}")
        with render_context() as rc:
            assert tmpl.render(x=1) == "HI"
        assert rc.handoff.handoffs == 0

    def test_plain_tag_is_idempotent(self, env: Environment) -> None:
        env.register_tag("pair", lambda a, b: f"{a}:{b}")
        tmpl = env.from_string("{% pair x 'y' %}|{% pair x 'y' %}")
        first, second = tmpl.render(x=1).split("|")
        assert first == second == "1:y"

    def test_context_tag_reads_and_writes(self, env: Environment) -> None:
        @env.tag(takes_context=True)
        def stamp(ctx):
            ctx["rendered_at"] = f"noon {ctx['timezone']}"
            return "stamped"

        tmpl = env.from_string("{% stamp %} {{ rendered_at }} {{ timezone }}")
        slot = ContextSlot(Context({"timezone": "UTC"}))
        with render_context() as rc:
            out = tmpl.render_slot(slot)

        assert out == "stamped noon UTC UTC"
        assert slot.context["timezone"] == "UTC"
        assert slot.context["rendered_at"] == "noon UTC"
        assert rc.handoff.unique == 1

    def test_context_tag_sees_loop_scope(self, env: Environment) -> None:
        @env.tag(takes_context=True)
        def position(ctx):
            loop = ctx["loop"]
            return f"{ctx['item']}@{loop.index}"

        tmpl = env.from_string("{% for item in items %}{% position %} {% end %}")
        assert tmpl.render(items=["a", "b"]) == "a@1 b@2 "

    def test_kwargs_and_as_target(self, env: Environment) -> None:
        @env.tag(takes_context=True)
        def greet(ctx, greeting, punctuation="."):
            return f"{greeting}, {ctx['user']}{punctuation}"

        tmpl = env.from_string("{% greet 'Hi' punctuation='!' as line %}[{{ line }}]")
        assert tmpl.render(user="Ada") == "[Hi, Ada!]"

    def test_retained_handle_does_not_affect_render(
        self, env: Environment, retained: list
    ) -> None:
        @env.tag(takes_context=True)
        def keep(ctx):
            ctx["kept"] = "yes"
            retained.append(ctx)

        tmpl = env.from_string("{% keep %}{% set after = 1 %}{{ kept }}")
        slot = ContextSlot(Context({"x": 1}))
        with render_context() as rc:
            assert tmpl.render_slot(slot) == "yes"

        assert rc.handoff.deep_copy == 1
        handle = retained[0]
        assert handle["kept"] == "yes"
        assert "after" not in handle
        handle["late"] = True
        assert "late" not in slot.context

    def test_retained_handle_inside_loop_keeps_scopes_balanced(
        self, env: Environment, retained: list
    ) -> None:
        env.register_tag("keep", retained.append, takes_context=True)
        tmpl = env.from_string("{% for i in items %}{% keep %}{{ i }}{% end %}{{ i }}")
        slot = ContextSlot(Context({"items": [1, 2], "i": "outer"}))
        assert tmpl.render_slot(slot) == "12outer"
        assert slot.context.depth == 1
        assert len(retained) == 2

    def test_failing_tag_aborts_render_with_message(self, env: Environment) -> None:
        @env.tag(takes_context=True)
        def explode(ctx):
            ctx["partial"] = 1
            raise ValueError("cannot stamp")

        slot = ContextSlot(Context({"x": 1}))
        tmpl = env.from_string("before\n{% explode %}\nafter", name="page.html")
        with pytest.raises(TagError) as exc_info:
            tmpl.render_slot(slot)

        err = exc_info.value
        assert_contains(str(err), "cannot stamp", "page.html:2")
        assert not slot.vacant
        assert slot.context["x"] == 1
        assert slot.context["partial"] == 1

    def test_unknown_tag(self, env: Environment) -> None:
        with pytest.raises(TemplateRuntimeError, match="Unknown tag 'missing'"):
            env.from_string("{% missing %}").render()

    def test_tag_can_render_another_template(self, env: Environment) -> None:
        inner = env.from_string("<{{ who }}>")

        @env.tag(takes_context=True)
        def include_who(ctx):
            return inner.render(who=ctx["user"])

        with render_context() as rc:
            assert env.from_string("{% include_who %}").render(user="ada") == "<ada>"
        assert rc.handoff.unique == 1


class TestErrorEnhancement:
    def test_generic_errors_become_runtime_errors(self, env: Environment) -> None:
        env.add_filter("half", lambda v: v / 0)
        with pytest.raises(TemplateRuntimeError) as exc_info:
            env.from_string("line1\n{{ x | half }}", name="calc.html").render(x=1)
        err = exc_info.value
        assert err.lineno == 2
        assert err.template_name == "calc.html"
        assert "ZeroDivisionError" in str(err)
        assert isinstance(err.__cause__, ZeroDivisionError)


class TestAsync:
    @pytest.mark.asyncio
    async def test_render_async(self, env: Environment) -> None:
        result = await env.from_string("{{ a }}").render_async(a="ok")
        assert result == "ok"

    def test_concurrent_async_renders(self, env: Environment) -> None:
        env.register_tag("echo", lambda ctx: ctx["n"], takes_context=True)
        tmpl = env.from_string("{% echo %}")

        async def main() -> list[str]:
            return await asyncio.gather(*(tmpl.render_async(n=i) for i in range(10)))

        assert asyncio.run(main()) == [str(i) for i in range(10)]
