"""Recover an owned Context from a ContextHandle after a tag returns.

Two paths, chosen by the handle's reference count:

UNIQUE (count == 1):
    Nobody but the renderer still holds a handle. The Context is detached
    from the cell and returned as the very same object, with no copy. The
    cell is marked consumed.

DEEP_COPY (count > 1):
    The tag kept a handle alive (stored it, handed it to a thread, or its
    frame is still referenced by a traceback). Detaching would pull the
    data out from under a live reference, so the Context is deep-copied
    under the lock instead. The tag's handles keep working on the original,
    which from now on is independent of the render.

The copying path is a normal, successful outcome, not an error. It must
never be skipped: the render slot would otherwise keep the empty
placeholder left by ``take`` for the rest of the render.

"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from tessera._types import ReclaimPath
from tessera.context import Context
from tessera.environment.exceptions import HandoffInvariantError
from tessera.handle import ContextHandle
from tessera.render_context import get_render_context

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Reclaimed:
    """Result of ``reclaim``: the owned Context and the path that produced it."""

    context: Context
    path: ReclaimPath


def reclaim(
    handle: ContextHandle,
    clone: Callable[[Any, dict[int, Any]], Any] | None = None,
) -> Reclaimed:
    """Turn the renderer's own handle back into an owned Context.

    ``handle`` is released in both paths.

    Args:
        handle: The handle created by ``ContextHandle.wrap`` at the call site
        clone: ``(value, memo) -> copy`` used by the copying path

    Raises:
        HandoffInvariantError: If the lock is held while the count is 1
    """
    cell = handle.cell
    if cell.refs == 1:
        if cell.locked:
            raise HandoffInvariantError(
                "Context lock is held during unique reclamation; "
                "the lock must never outlive a single accessor call"
            )
        context = cell.detach()
        handle.release()
        path = ReclaimPath.UNIQUE
    else:
        with handle.lock() as shared:
            context = shared.deep_copy(clone)
        logger.debug(f"Context handle escaped ({cell.refs} refs); reclaimed by deep copy")
        handle.release()
        path = ReclaimPath.DEEP_COPY

    render_ctx = get_render_context()
    if render_ctx is not None:
        render_ctx.handoff.record(path)
    return Reclaimed(context, path)
