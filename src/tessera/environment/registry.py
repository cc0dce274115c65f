"""Name tables behind ``env.filters`` and ``env.tags``."""

from __future__ import annotations

from collections.abc import Iterator, Mapping, MutableMapping
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from tessera.environment.core import Environment


class Registry(MutableMapping[str, Any]):
    """Live mapping view over one Environment table.

    The Environment holds each table as a plain dict and the renderer grabs
    that dict once per render. Writes through the view never mutate it in
    place: they build a new dict and rebind the attribute, so a render in
    flight keeps the table it started with while another thread registers
    a tag or filter.

    ``env.tags`` values are ``TagDefinition`` objects. Assigning a bare
    callable there is allowed but bypasses the PLAIN/CONTEXT choice;
    ``Environment.register_tag`` is the normal way in.
    """

    __slots__ = ("_attr", "_env")

    def __init__(self, env: Environment, attr: str):
        self._env = env
        self._attr = attr

    @property
    def _table(self) -> dict[str, Any]:
        return getattr(self._env, self._attr)

    def _rebind(self, changes: Mapping[str, Any]) -> None:
        setattr(self._env, self._attr, {**self._table, **changes})

    def __getitem__(self, name: str) -> Any:
        return self._table[name]

    def __setitem__(self, name: str, value: Any) -> None:
        self._rebind({name: value})

    def __delitem__(self, name: str) -> None:
        table = dict(self._table)
        del table[name]
        setattr(self._env, self._attr, table)

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def update(self, other: Mapping[str, Any] | None = None, /, **more: Any) -> None:  # type: ignore[override]
        """Register several entries with a single rebind."""
        self._rebind({**(other or {}), **more})

    def copy(self) -> dict[str, Any]:
        return dict(self._table)

    def __repr__(self) -> str:
        return f"<Registry {self._attr.lstrip('_')} {sorted(self._table)}>"
