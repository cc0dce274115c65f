"""Tessera Template — parsed template object ready for rendering.

The Template wraps an immutable node tree and provides the ``render()`` API.
Rendering walks the tree with a per-call ``_Renderer`` that owns the
render's ContextSlot and output buffer, so one Template can be rendered
concurrently from several threads.

Architecture:
    ```
    Template
    ├── _env_ref: WeakRef[Environment]  # Prevents circular refs
    ├── _ast: nodes.Template            # Immutable node tree
    └── _name, _source                  # For error messages

    render(**ctx)
    └── ContextSlot(Context(globals + ctx))
        └── _Renderer.render(body)      # buf.append() + ''.join(buf)
            └── CallTag → dispatch.render_tag(definition, slot, ...)
    ```

Slot Discipline:
    The renderer never caches ``slot.context`` across a tag call. A
    context-consuming tag may come back with a copied Context, and every
    later lookup, assignment and scope pop must land on that one.

"""

from __future__ import annotations

import weakref
from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Any

from tessera.context import Context
from tessera.dispatch import render_tag
from tessera.environment.exceptions import (
    ErrorCode,
    HandoffInvariantError,
    TemplateError,
    TemplateRuntimeError,
    UndefinedError,
    build_source_snippet,
)
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
    With,
)
from tessera.ownership import ContextSlot
from tessera.render_context import RenderContext, get_render_context, render_context
from tessera.template.helpers import UNDEFINED, describe, getattr_or_item, str_safe
from tessera.template.loop_context import LoopContext

if TYPE_CHECKING:
    from tessera.environment import Environment
    from tessera.nodes import Template as TemplateNode

_LENIENT_FILTERS = frozenset({"default", "d"})


class Template:
    """Parsed template ready for rendering.

    Thread-Safety:
        - Template object is immutable after construction
        - Each ``render()`` call creates local state only (slot, buf)

    Example:
            >>> from tessera import Environment
            >>> env = Environment()
            >>> env.from_string("Hello, {{ name | upper }}!").render(name="World")
            'Hello, WORLD!'

    """

    __slots__ = ("_ast", "_env_ref", "_name", "_source")

    def __init__(
        self,
        env: Environment,
        ast: TemplateNode,
        name: str | None = None,
        source: str | None = None,
    ):
        # Use weakref to prevent circular reference: Template <-> Environment
        self._env_ref: weakref.ref[Environment] = weakref.ref(env)
        self._ast = ast
        self._name = name
        self._source = source

    @property
    def _env(self) -> Environment:
        env = self._env_ref()
        if env is None:
            raise RuntimeError(
                f"Environment has been garbage collected (template: {self._name or 'unknown'})"
            )
        return env

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def source(self) -> str | None:
        return self._source

    @property
    def ast(self) -> TemplateNode:
        return self._ast

    def render(self, /, *args: Any, **kwargs: Any) -> str:
        """Render template with given context.

        Args:
            *args: Single dict of context variables
            **kwargs: Context variables as keyword arguments

        Example:
            >>> t.render(name="World")
            'Hello, World!'
            >>> t.render({"name": "World"})
            'Hello, World!'
        """
        base: dict[str, Any] = dict(self._env.globals)
        if args:
            if len(args) == 1 and isinstance(args[0], dict):
                base.update(args[0])
            else:
                raise TypeError(
                    f"render() takes at most 1 positional argument (a dict), got {len(args)}"
                )
        base.update(kwargs)
        return self.render_slot(ContextSlot(Context(base)))

    def render_slot(self, slot: ContextSlot) -> str:
        """Render against a caller-owned slot.

        The slot is left holding the final Context, including writes made
        by ``{% set %}`` and by context-consuming tags. Handoff counters are
        shared with an enclosing ``render_context()`` when there is one.
        """
        parent = get_render_context()
        with render_context(
            template_name=self._name,
            source=self._source,
            handoff=parent.handoff if parent is not None else None,
        ) as render_ctx:
            if parent is not None:
                render_ctx.tag_depth = parent.tag_depth
            buf: list[str] = []
            renderer = _Renderer(self._env, slot, buf, render_ctx)
            try:
                renderer.render(self._ast.body)
            except (TemplateError, HandoffInvariantError):
                raise
            except Exception as e:
                raise self._enhance_error(e, render_ctx) from e
            return "".join(buf)

    async def render_async(self, /, *args: Any, **kwargs: Any) -> str:
        """Run the synchronous ``render()`` in a worker thread."""
        import asyncio

        return await asyncio.to_thread(self.render, *args, **kwargs)

    def _enhance_error(self, error: Exception, render_ctx: RenderContext) -> Exception:
        """Convert a generic exception into a TemplateRuntimeError with location."""
        lineno = render_ctx.line
        error_str = str(error).strip() or f"{type(error).__name__} (no details available)"
        snippet = None
        if self._source and lineno:
            snippet = build_source_snippet(self._source, lineno)
        return TemplateRuntimeError(
            f"{type(error).__name__}: {error_str}",
            template_name=self._name,
            lineno=lineno,
            source_snippet=snippet,
        )

    def __repr__(self) -> str:
        return f"<Template {self._name or '(inline)'}>"


class _Renderer:
    """Tree walker for one render call."""

    __slots__ = ("_buf", "_clone", "_filters", "_render_ctx", "_slot", "_strict", "_tags")

    def __init__(
        self,
        env: Environment,
        slot: ContextSlot,
        buf: list[str],
        render_ctx: RenderContext,
    ) -> None:
        self._slot = slot
        self._buf = buf
        self._render_ctx = render_ctx
        self._strict = env.strict
        self._clone = env.clone
        # Copy-on-write tables: this snapshot stays stable for the whole render.
        self._filters = env._filters
        self._tags = env._tags

    def render(self, body: Sequence[Node]) -> None:
        render_ctx = self._render_ctx
        for node in body:
            render_ctx.line = node.lineno
            handler: Callable[[_Renderer, Any], None] = _NODE_RENDERERS[type(node)]
            handler(self, node)

    # ------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------

    def _render_data(self, node: Data) -> None:
        self._buf.append(node.value)

    def _render_output(self, node: Output) -> None:
        self._buf.append(str_safe(self._eval(node.expr)))

    def _render_if(self, node: If) -> None:
        if self._eval(node.test):
            self.render(node.body)
            return
        for test, body in node.elif_:
            if self._eval(test):
                self.render(body)
                return
        self.render(node.else_)

    def _render_for(self, node: For) -> None:
        items = list(self._eval(node.iter))
        if not items:
            self.render(node.empty)
            return
        loop = LoopContext(items)
        for item in loop:
            with self._slot.scope(**{node.target: item, "loop": loop}):
                self.render(node.body)

    def _render_with(self, node: With) -> None:
        bindings = {name: self._eval(expr) for name, expr in node.bindings}
        with self._slot.scope(**bindings):
            self.render(node.body)

    def _render_set(self, node: Set) -> None:
        self._slot.context.set(node.target, self._eval(node.value))

    def _render_call_tag(self, node: CallTag) -> None:
        definition = self._tags.get(node.name)
        if definition is None:
            raise TemplateRuntimeError(
                f"Unknown tag '{node.name}'",
                template_name=self._render_ctx.template_name,
                lineno=node.lineno,
                suggestion=f"Register it with env.register_tag('{node.name}', func)",
            )
        args = [self._eval(arg) for arg in node.args]
        kwargs = {name: self._eval(expr) for name, expr in node.kwargs}
        fragment = render_tag(definition, self._slot, args, kwargs, clone=self._clone)
        if node.target is not None:
            self._slot.context.set(node.target, fragment)
        else:
            self._buf.append(fragment)

    # ------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------

    def _eval(self, expr: Expr, strict: bool | None = None) -> Any:
        strict = self._strict if strict is None else strict
        if isinstance(expr, Const):
            return expr.value
        if isinstance(expr, Name):
            try:
                return self._slot.context.lookup(expr.name)
            except KeyError:
                if strict:
                    raise self._undefined(expr.name) from None
                return None
        if isinstance(expr, Getattr):
            obj = self._eval(expr.obj, strict)
            value = getattr_or_item(obj, expr.attr) if obj is not None else UNDEFINED
            if value is UNDEFINED:
                if strict:
                    raise self._undefined(describe(expr)) from None
                return None
            return value
        if isinstance(expr, Not):
            return not self._eval(expr.operand, strict)
        if isinstance(expr, Filter):
            return self._apply_filter(expr, strict)
        raise TemplateRuntimeError(f"Cannot evaluate {type(expr).__name__} node")

    def _apply_filter(self, expr: Filter, strict: bool) -> Any:
        func = self._filters.get(expr.name)
        if func is None:
            err = TemplateRuntimeError(
                f"Unknown filter '{expr.name}'",
                template_name=self._render_ctx.template_name,
                lineno=expr.lineno,
            )
            err.code = ErrorCode.FILTER_ERROR
            raise err
        value = self._eval(expr.value, False if expr.name in _LENIENT_FILTERS else strict)
        args = [self._eval(arg, strict) for arg in expr.args]
        return func(value, *args)

    def _undefined(self, name: str) -> UndefinedError:
        render_ctx = self._render_ctx
        source = render_ctx.source
        lineno = render_ctx.line
        snippet = build_source_snippet(source, lineno) if source and lineno else None
        return UndefinedError(
            name,
            render_ctx.template_name,
            lineno,
            available_names=frozenset(self._slot.context.names()),
            source_snippet=snippet,
        )


_NODE_RENDERERS: dict[type, Callable[[_Renderer, Any], None]] = {
    Data: _Renderer._render_data,
    Output: _Renderer._render_output,
    If: _Renderer._render_if,
    For: _Renderer._render_for,
    With: _Renderer._render_with,
    Set: _Renderer._render_set,
    CallTag: _Renderer._render_call_tag,
}
