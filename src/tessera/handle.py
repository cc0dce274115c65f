"""Shared, lock-guarded, reference-counted access to a Context for tag code.

Context-consuming tags never see a Context directly. They get a
ContextHandle: one counted reference to a SharedContext cell that owns the
Context while the tag runs.

Architecture:
    ```
    ContextHandle ─┐
    ContextHandle ─┼──▶ SharedContext
    ContextHandle ─┘     ├── _context: Context | None
                         ├── _lock: threading.Lock    # guards _context
                         └── _refs: int               # live handles
    ```

Reference Counting:
    Every ContextHandle adds one reference on creation and drops it exactly
    once, either through ``release()`` or when the handle object itself is
    garbage-collected (``weakref.finalize``). A tag that just uses its
    argument and returns therefore gives its reference back as soon as the
    call's argument tuple goes away. A tag that stores the handle somewhere
    keeps the count above one, which is what steers reclamation onto the
    copying path (see ``tessera.reclaim``).

Locking:
    Each accessor holds the cell lock for one dict operation and never calls
    back into tag code while holding it. Blocking acquisition releases the
    interpreter lock while waiting, so a tag that hands the handle to
    another thread cannot deadlock against it. The lock is not re-entrant:
    inside ``with handle.lock() as ctx:`` use ``ctx`` directly, not the
    handle's accessors.

Example:
    >>> handle = ContextHandle.wrap(Context({"timezone": "UTC"}))
    >>> handle["timezone"]
    'UTC'
    >>> handle["rendered_at"] = "12:00"
    >>> sorted(handle.names())
    ['rendered_at', 'timezone']

"""

from __future__ import annotations

import threading
import weakref
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from tessera.context import Context
from tessera.environment.exceptions import (
    HandleConsumedError,
    HandleLockTimeout,
    HandleReleasedError,
)


class SharedContext:
    """Cell owning a Context while it is shared with tag code."""

    __slots__ = ("_consumed", "_context", "_lock", "_refs", "_refs_lock")

    def __init__(self, context: Context) -> None:
        self._context: Context | None = context
        self._lock = threading.Lock()
        self._refs = 0
        self._consumed = False
        # Re-entrant: a handle finalizer can fire on this thread while the
        # count is being updated.
        self._refs_lock = threading.RLock()

    @property
    def refs(self) -> int:
        return self._refs

    @property
    def consumed(self) -> bool:
        return self._consumed

    @property
    def locked(self) -> bool:
        return self._lock.locked()

    @property
    def context(self) -> Context | None:
        """The shared Context without taking the lock; None once reclaimed or dropped."""
        return self._context

    def _incref(self) -> None:
        with self._refs_lock:
            self._refs += 1

    def _decref(self) -> None:
        with self._refs_lock:
            self._refs -= 1
            if self._refs == 0:
                self._context = None

    def detach(self) -> Context:
        """Move the Context out of the cell. Callers must hold the only reference."""
        context = self._context
        if context is None:
            raise HandleConsumedError("Shared context was already reclaimed")
        self._context = None
        self._consumed = True
        return context


class ContextHandle:
    """One counted reference to a SharedContext.

    This is the first positional argument of every context-consuming tag,
    and the only way tag code reaches render context data.

    Methods:
        lookup(name), get(name, default): read, innermost frame first
        set(name, value): write the innermost frame
        names(): snapshot of visible names
        duplicate(): another reference to the same context
        release(): give this reference back (also happens on garbage collection)
        lock(timeout): hold the lock and work on the Context directly
    """

    __slots__ = ("__weakref__", "_cell", "_finalizer")

    def __init__(self, cell: SharedContext) -> None:
        cell._incref()
        self._cell = cell
        self._finalizer = weakref.finalize(self, cell._decref)
        self._finalizer.atexit = False

    @classmethod
    def wrap(cls, context: Context) -> ContextHandle:
        """Wrap ``context`` in a fresh cell and return its first handle (count 1)."""
        return cls(SharedContext(context))

    # ------------------------------------------------------------------
    # Reference management
    # ------------------------------------------------------------------

    def duplicate(self) -> ContextHandle:
        """Return a new handle to the same cell, adding one reference."""
        self._check_alive()
        return ContextHandle(self._cell)

    def release(self) -> None:
        """Drop this handle's reference. Idempotent."""
        self._finalizer()

    @property
    def released(self) -> bool:
        return not self._finalizer.alive

    @property
    def refcount(self) -> int:
        """Number of live handles sharing this handle's context."""
        return self._cell.refs

    @property
    def cell(self) -> SharedContext:
        return self._cell

    def __enter__(self) -> ContextHandle:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()

    # ------------------------------------------------------------------
    # Locking
    # ------------------------------------------------------------------

    @contextmanager
    def lock(self, timeout: float = -1) -> Iterator[Context]:
        """Hold the context lock and yield the Context itself.

        Do not call back into anything that may use this handle while inside
        the block; the lock is not re-entrant.

        Args:
            timeout: Seconds to wait, -1 to wait forever

        Raises:
            HandleLockTimeout: If the lock was not acquired in time
            HandleConsumedError: If the renderer already reclaimed the context
        """
        self._check_alive()
        cell = self._cell
        if not cell._lock.acquire(timeout=timeout):
            raise HandleLockTimeout(f"Could not lock shared context within {timeout}s")
        try:
            context = cell._context
            if context is None:
                raise HandleConsumedError("Shared context was already reclaimed by the renderer")
            yield context
        finally:
            cell._lock.release()

    # ------------------------------------------------------------------
    # Accessors (one lock acquisition each)
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> Any:
        """Resolve ``name`` innermost frame first; raise KeyError if unbound."""
        with self.lock() as context:
            return context.lookup(name)

    def get(self, name: str, default: Any = None) -> Any:
        with self.lock() as context:
            return context.get(name, default)

    def set(self, name: str, value: Any) -> None:
        """Bind ``name`` in the innermost frame."""
        with self.lock() as context:
            context.set(name, value)

    def names(self) -> list[str]:
        """Snapshot of the currently visible names."""
        with self.lock() as context:
            return context.names()

    def __getitem__(self, name: str) -> Any:
        return self.lookup(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        with self.lock() as context:
            return name in context

    def __iter__(self) -> Iterator[str]:
        return iter(self.names())

    def __len__(self) -> int:
        return len(self.names())

    def _check_alive(self) -> None:
        if not self._finalizer.alive:
            raise HandleReleasedError("Context handle was released")

    def __repr__(self) -> str:
        if not self._finalizer.alive:
            return "<ContextHandle released>"
        if self._cell.consumed:
            return "<ContextHandle consumed>"
        return f"<ContextHandle refs={self._cell.refs}>"
