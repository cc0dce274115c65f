"""Ownership transfer between the renderer's context slot and a free Context.

The renderer keeps the active Context in a ContextSlot it exclusively owns
and keeps using for sibling nodes after a tag returns. A context-consuming
tag needs a freestanding Context it can wrap and share. ``take`` and
``swap_back`` bridge the two:

    ```
    slot ──take──▶ Context ──wrap/dispatch/reclaim──▶ Context ──swap_back──▶ slot
      └─ holds a fresh empty Context (vacant) in between ─┘
    ```

The slot is never None and never half-built: between the two calls it holds
a real, empty Context. Both operations are a single attribute rebind, which
is atomic under the interpreter lock.

"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tessera.context import Context


class ContextSlot:
    """Exclusively-owned mutable holder of the current render Context.

    Control-flow code must always go through ``slot.context`` rather than
    keeping its own reference, because a tag handoff may put a different
    (copied) Context object back into the slot.
    """

    __slots__ = ("_context", "_vacant")

    def __init__(self, context: Context | None = None) -> None:
        self._context = context if context is not None else Context()
        self._vacant = False

    @property
    def context(self) -> Context:
        return self._context

    @property
    def vacant(self) -> bool:
        """True only while the Context is handed off (between take and swap_back)."""
        return self._vacant

    @contextmanager
    def scope(self, /, **bindings: Any) -> Iterator[Context]:
        """Push a frame on the slot's Context and pop it from whatever Context
        the slot holds on exit."""
        self._context.push(bindings)
        try:
            yield self._context
        finally:
            self._context.pop()

    def __repr__(self) -> str:
        state = "vacant" if self._vacant else "owned"
        return f"<ContextSlot {state} {self._context!r}>"


def take(slot: ContextSlot) -> Context:
    """Move the Context out of ``slot``, leaving a fresh empty Context behind.

    Always succeeds. The only allocation is the placeholder itself.
    """
    context, slot._context = slot._context, Context()
    slot._vacant = True
    return context


def swap_back(slot: ContextSlot, value: Context) -> None:
    """Put ``value`` into ``slot``, discarding the placeholder left by ``take``."""
    slot._context = value
    slot._vacant = False
