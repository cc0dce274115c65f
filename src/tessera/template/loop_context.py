"""The ``loop`` variable bound inside ``{% for %}`` bodies."""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any


class LoopContext:
    """Iteration state for one ``{% for %}`` loop.

    Lives in the loop's scope frame next to the target variable, so a
    context-consuming tag in the body reads it as ``ctx["loop"]``. It is
    plain data and survives the deep copy taken when a tag keeps its handle.

    Example:
        ``{% for item in items %}{{ loop.index }}/{{ loop.length }}{% end %}``
    """

    __slots__ = ("_items", "_position")

    def __init__(self, items: list[Any]) -> None:
        self._items = items
        self._position = 0

    def __iter__(self) -> Iterator[Any]:
        for self._position, item in enumerate(self._items):
            yield item

    @property
    def index(self) -> int:
        return self._position + 1

    @property
    def index0(self) -> int:
        return self._position

    @property
    def length(self) -> int:
        return len(self._items)

    @property
    def first(self) -> bool:
        return self._position == 0

    @property
    def last(self) -> bool:
        return self._position == len(self._items) - 1

    def cycle(self, *values: Any) -> Any:
        return values[self._position % len(values)] if values else None

    def __repr__(self) -> str:
        return f"<LoopContext {self.index}/{self.length}>"
