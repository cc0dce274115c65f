"""Tessera RenderContext — per-render state kept out of the user's Context.

Template name, source, current line and handoff counters live in a
ContextVar for the duration of one render instead of being injected into
the Context that tags can see.

Benefits:
    - Tags cannot clobber engine state through their ContextHandle
    - Error messages can report location without threading it everywhere
    - Thread-safe and async-safe via ContextVar

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar, Token
from dataclasses import dataclass, field

from tessera._types import ReclaimPath


@dataclass
class HandoffStats:
    """Counters for context handoffs performed during one render.

    Attributes:
        handoffs: Context-consuming tag calls started
        unique: Reclamations that moved the Context back without copying
        deep_copy: Reclamations that had to copy because a handle escaped
    """

    handoffs: int = 0
    unique: int = 0
    deep_copy: int = 0

    def record(self, path: ReclaimPath) -> None:
        if path is ReclaimPath.UNIQUE:
            self.unique += 1
        else:
            self.deep_copy += 1

    @property
    def reclaimed(self) -> int:
        return self.unique + self.deep_copy


@dataclass
class RenderContext:
    """Per-render state isolated from the user Context.

    Thread Safety:
        ContextVars are thread-local by design. Each thread/async task
        has its own RenderContext instance.

    Attributes:
        template_name: Current template name for error messages
        source: Template source for runtime error snippets
        line: Current line number, updated as nodes are rendered
        tag_depth: Nesting depth of tag calls (a tag may render a template)
        handoff: Counters for context handoffs in this render
    """

    template_name: str | None = None
    source: str | None = None
    line: int = 0
    tag_depth: int = 0
    handoff: HandoffStats = field(default_factory=HandoffStats)


_render_context: ContextVar[RenderContext | None] = ContextVar(
    "tessera_render_context",
    default=None,
)


def get_render_context() -> RenderContext | None:
    """Get current render context (None if not in render)."""
    return _render_context.get()


def get_render_context_required() -> RenderContext:
    """Get current render context, raise if not in render.

    Raises:
        RuntimeError: If not in a render context
    """
    ctx = _render_context.get()
    if ctx is None:
        raise RuntimeError("Not in a render context")
    return ctx


@contextmanager
def render_context(
    template_name: str | None = None,
    source: str | None = None,
    handoff: HandoffStats | None = None,
) -> Iterator[RenderContext]:
    """Context manager for render-scoped state.

    Creates a new RenderContext and sets it as current for the duration of
    the with block, restoring the previous one on exit.

    Args:
        template_name: Template name for error messages
        source: Template source for runtime error snippets
        handoff: Counters to accumulate into (shared with the caller)

    Example:
        with render_context(template_name="page.html") as ctx:
            html = template.render_slot(slot)
        print(ctx.handoff.deep_copy)
    """
    ctx = RenderContext(
        template_name=template_name,
        source=source,
        handoff=handoff if handoff is not None else HandoffStats(),
    )
    token: Token[RenderContext | None] = _render_context.set(ctx)
    try:
        yield ctx
    finally:
        _render_context.reset(token)
