"""Tag dispatch: call a registered tag and fold its result into the output.

Each tag is registered once as PLAIN or CONTEXT; the mode is never
re-derived per call.

PLAIN tags get their resolved arguments and nothing else.

CONTEXT tags get a ContextHandle as their first argument. The handoff runs
strictly in this order, and is finished before ``render_tag`` returns:

    ```
    take(slot) → ContextHandle.wrap → func(handle.duplicate(), *args)
               → reclaim(handle)    → swap_back(slot)
    ```

``reclaim`` and ``swap_back`` sit in ``finally`` blocks, and the slot is
refilled even if reclamation itself fails: a tag that raises
still leaves the slot holding a real Context (possibly with the tag's
partial writes) before the error propagates.

"""

from __future__ import annotations

import logging
import traceback
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from tessera.environment.exceptions import TagError, TemplateError
from tessera.handle import ContextHandle
from tessera.ownership import ContextSlot, swap_back, take
from tessera.reclaim import Reclaimed, reclaim
from tessera.render_context import get_render_context

logger = logging.getLogger(__name__)


class TagMode(Enum):
    """Whether a tag receives the render context."""

    PLAIN = "plain"
    CONTEXT = "context"


@dataclass(frozen=True, slots=True)
class TagDefinition:
    """A registered tag: its name, callable and fixed calling mode."""

    name: str
    func: Callable[..., Any]
    mode: TagMode = TagMode.PLAIN

    @property
    def takes_context(self) -> bool:
        return self.mode is TagMode.CONTEXT

    @classmethod
    def create(
        cls, name: str, func: Callable[..., Any], *, takes_context: bool = False
    ) -> TagDefinition:
        if not callable(func):
            raise TypeError(f"Tag '{name}' must be callable, got {type(func).__name__}")
        return cls(name, func, TagMode.CONTEXT if takes_context else TagMode.PLAIN)


def fold_result(result: Any) -> str:
    """Stringify a tag result; None renders as nothing."""
    if result is None:
        return ""
    return str(result)


def render_tag(
    definition: TagDefinition,
    slot: ContextSlot,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
    *,
    clone: Callable[[Any, dict[int, Any]], Any] | None = None,
) -> str:
    """Invoke one tag and return its rendered fragment.

    Args:
        definition: The registered tag
        slot: The render's context slot
        args: Positional arguments, already resolved
        kwargs: Keyword arguments, already resolved
        clone: Deep-copy function for the reclamation fallback

    Raises:
        TagError: Wrapping any non-template exception raised by the tag
        TemplateError: Raised by the tag itself, propagated unchanged
    """
    kwargs = kwargs or {}
    render_ctx = get_render_context()
    if render_ctx is not None:
        render_ctx.tag_depth += 1
    try:
        if definition.mode is TagMode.PLAIN:
            result = _call(definition, definition.func, args, kwargs)
        else:
            result = _call_with_context(definition, slot, args, kwargs, clone)
    finally:
        if render_ctx is not None:
            render_ctx.tag_depth -= 1
    return fold_result(result)


def _call_with_context(
    definition: TagDefinition,
    slot: ContextSlot,
    args: Sequence[Any],
    kwargs: Mapping[str, Any],
    clone: Callable[[Any, dict[int, Any]], Any] | None,
) -> Any:
    render_ctx = get_render_context()
    if render_ctx is not None:
        render_ctx.handoff.handoffs += 1

    handle = ContextHandle.wrap(take(slot))
    try:
        # The duplicate is created inline so that no local here keeps it
        # alive once the call returns.
        return _call(definition, definition.func, (handle.duplicate(), *args), kwargs)
    finally:
        reclaimed = _restore(slot, handle, clone)
        logger.debug(f"Tag '{definition.name}' returned context via {reclaimed.path.value} path")


def _restore(
    slot: ContextSlot,
    handle: ContextHandle,
    clone: Callable[[Any, dict[int, Any]], Any] | None,
) -> Reclaimed:
    """Reclaim the handle's Context and put it back into ``slot``.

    The slot is refilled even when reclamation itself fails: the shared
    Context goes back as-is before the failure propagates.
    """
    try:
        reclaimed = reclaim(handle, clone)
    except BaseException:
        shared = handle.cell.context
        if shared is not None:
            swap_back(slot, shared)
        raise
    swap_back(slot, reclaimed.context)
    return reclaimed


def _call(
    definition: TagDefinition,
    func: Callable[..., Any],
    args: Sequence[Any],
    kwargs: Mapping[str, Any],
) -> Any:
    try:
        return func(*args, **kwargs)
    except Exception as e:
        # The traceback pins the tag's frames and this frame's arguments.
        # Dropping them lets a handle the tag did not keep be reclaimed
        # without copying.
        del args
        traceback.clear_frames(e.__traceback__)
        if isinstance(e, TemplateError):
            raise
        logger.debug(f"Tag '{definition.name}' raised {type(e).__name__}: {e}")
        render_ctx = get_render_context()
        raise TagError(
            definition.name,
            e,
            template_name=render_ctx.template_name if render_ctx else None,
            lineno=render_ctx.line if render_ctx else None,
        ) from e
