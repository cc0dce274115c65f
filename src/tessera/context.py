"""Scoped variable store used by one render.

A Context is a stack of scope frames. Lookups scan from the most recently
pushed frame down to the base frame, so an inner ``{% for %}`` or
``{% with %}`` binding shadows an outer one of the same name without
touching it. Writes always go to the innermost frame.

Frame push/pop belongs to the control-flow constructs of the renderer;
registered tags only read and write names.

Thread-Safety:
    A Context is NOT thread-safe on its own. While a context-consuming tag
    runs, the Context lives inside a ContextHandle whose lock serializes
    every access (see ``tessera.handle``).

Example:
    >>> ctx = Context({"user": "ada"})
    >>> with ctx.scope(user="grace"):
    ...     ctx["user"]
    'grace'
    >>> ctx["user"]
    'ada'

"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any

from tessera.environment.exceptions import ContextError

logger = logging.getLogger(__name__)

_MISSING: Any = object()


class Context:
    """Ordered stack of name → value scope frames with a permanent base frame."""

    __slots__ = ("_frames",)

    def __init__(self, base: Mapping[str, Any] | None = None) -> None:
        self._frames: list[dict[str, Any]] = [dict(base) if base else {}]

    @classmethod
    def from_frames(cls, frames: list[dict[str, Any]]) -> Context:
        """Build a Context that adopts ``frames`` as-is (no copy)."""
        if not frames:
            raise ContextError("A context needs at least a base frame")
        ctx = cls.__new__(cls)
        ctx._frames = frames
        return ctx

    # ------------------------------------------------------------------
    # Lookup
    # ------------------------------------------------------------------

    def lookup(self, name: str) -> Any:
        """Resolve ``name`` newest frame first.

        Raises:
            KeyError: If no frame binds ``name``
        """
        for frame in reversed(self._frames):
            value = frame.get(name, _MISSING)
            if value is not _MISSING:
                return value
        raise KeyError(name)

    def get(self, name: str, default: Any = None) -> Any:
        try:
            return self.lookup(name)
        except KeyError:
            return default

    def __getitem__(self, name: str) -> Any:
        return self.lookup(name)

    def __contains__(self, name: object) -> bool:
        return any(name in frame for frame in self._frames)

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def set(self, name: str, value: Any) -> None:
        """Bind ``name`` in the innermost frame (shadowing outer bindings)."""
        self._frames[-1][name] = value

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def update(self, mapping: Mapping[str, Any]) -> None:
        self._frames[-1].update(mapping)

    def push(self, frame: Mapping[str, Any] | None = None) -> None:
        """Push a new innermost scope frame."""
        self._frames.append(dict(frame) if frame else {})

    def pop(self) -> dict[str, Any]:
        """Pop and return the innermost frame.

        Raises:
            ContextError: If only the base frame is left
        """
        if len(self._frames) == 1:
            raise ContextError("Cannot pop the base frame of a context")
        return self._frames.pop()

    @contextmanager
    def scope(self, /, **bindings: Any) -> Iterator[Context]:
        """Push a frame holding ``bindings`` for the duration of a with block."""
        self.push(bindings)
        try:
            yield self
        finally:
            self.pop()

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    def names(self) -> list[str]:
        """Visible names, innermost frame first, without duplicates."""
        seen: dict[str, None] = {}
        for frame in reversed(self._frames):
            for name in frame:
                seen.setdefault(name, None)
        return list(seen)

    def flatten(self) -> dict[str, Any]:
        """Collapse the visible bindings into a single dict."""
        flat: dict[str, Any] = {}
        for frame in self._frames:
            flat.update(frame)
        return flat

    @property
    def depth(self) -> int:
        """Number of frames, base frame included."""
        return len(self._frames)

    @property
    def frames(self) -> tuple[dict[str, Any], ...]:
        return tuple(self._frames)

    @property
    def is_empty(self) -> bool:
        """True for a single empty base frame, the shape of a fresh Context."""
        return len(self._frames) == 1 and not self._frames[0]

    def deep_copy(self, clone: Callable[[Any, dict[int, Any]], Any] | None = None) -> Context:
        """Return a structural copy of every frame.

        All frames share one memo, so a value bound in two frames is still a
        single object in the copy. A value the clone function cannot copy
        (locks, generators, open files, connections) is shared by reference
        instead; the copy never fails because of what the context holds.

        Args:
            clone: ``(value, memo) -> copy`` function, ``copy.deepcopy`` by default
        """
        clone = clone or copy.deepcopy
        memo: dict[int, Any] = {}
        frames = []
        for frame in self._frames:
            copied: dict[str, Any] = {}
            for name, value in frame.items():
                try:
                    copied[name] = clone(value, memo)
                except Exception as e:
                    logger.debug(
                        f"Sharing '{name}' by reference; {type(value).__name__} "
                        f"could not be copied: {e}"
                    )
                    copied[name] = value
            frames.append(copied)
        return Context.from_frames(frames)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Context):
            return NotImplemented
        return self._frames == other._frames

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"<Context depth={len(self._frames)} names={self.names()!r}>"
