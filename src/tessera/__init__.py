"""Tessera — a small template engine that lends its render context to tags.

Quickstart:
    >>> from tessera import Environment
    >>> env = Environment()
    >>> @env.tag(takes_context=True)
    ... def stamp(ctx, label):
    ...     ctx["stamped"] = True
    ...     return f"{label} ({ctx['timezone']})"
    >>> env.from_string("{% stamp 'now' %} {{ stamped }}").render(timezone="UTC")
    'now (UTC) True'

Architecture:
Template Source → Lexer → Parser → node tree → Template (tree-walking render)

Context Handoff:
Tags registered with ``takes_context=True`` get a ContextHandle as their
first argument. For the duration of the call the render's Context is moved
out of its ContextSlot into a shared, lock-guarded, reference-counted cell;
afterwards it is reclaimed and moved back:

    ```
    take(slot) → ContextHandle.wrap → tag(handle.duplicate(), *args)
               → reclaim(handle) → swap_back(slot)
    ```

Reclamation is free when the tag let its handle go (the same Context object
comes back) and falls back to a deep copy when the tag kept a handle, whose
later use then never affects the render.

Thread-Safety:
- Templates are immutable after parsing; each render has its own slot
- Handle accessors take the cell lock for one operation at a time
- Tag and filter registries are copy-on-write

"""

from tessera._types import Token, TokenType
from tessera.context import Context
from tessera.dispatch import TagDefinition, TagMode, fold_result, render_tag
from tessera.environment import (
    ContextError,
    Environment,
    ErrorCode,
    HandleConsumedError,
    HandleError,
    HandleLockTimeout,
    HandleReleasedError,
    HandoffInvariantError,
    SourceSnippet,
    TagError,
    TemplateError,
    TemplateRuntimeError,
    TemplateSyntaxError,
    UndefinedError,
    build_source_snippet,
)
from tessera.handle import ContextHandle, SharedContext
from tessera.ownership import ContextSlot, swap_back, take
from tessera.reclaim import Reclaimed, ReclaimPath, reclaim
from tessera.render_context import (
    HandoffStats,
    RenderContext,
    get_render_context,
    get_render_context_required,
    render_context,
)
from tessera.template import LoopContext, Template

__version__ = "0.1.0"

__all__ = [
    "Context",
    "ContextError",
    "ContextHandle",
    "ContextSlot",
    "Environment",
    "ErrorCode",
    "HandleConsumedError",
    "HandleError",
    "HandleLockTimeout",
    "HandleReleasedError",
    "HandoffInvariantError",
    "HandoffStats",
    "LoopContext",
    "ReclaimPath",
    "Reclaimed",
    "RenderContext",
    "SharedContext",
    "SourceSnippet",
    "TagDefinition",
    "TagError",
    "TagMode",
    "Template",
    "TemplateError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "Token",
    "TokenType",
    "UndefinedError",
    "__version__",
    "build_source_snippet",
    "fold_result",
    "get_render_context",
    "get_render_context_required",
    "reclaim",
    "render_context",
    "render_tag",
    "swap_back",
    "take",
]
