"""Built-in filters.

A deliberately small set; applications add their own with
``Environment.add_filter`` or the ``@env.filter()`` decorator.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable, Sized
from typing import Any


def _filter_upper(value: Any) -> str:
    return str(value).upper()


def _filter_lower(value: Any) -> str:
    return str(value).lower()


def _filter_title(value: Any) -> str:
    return str(value).title()


def _filter_trim(value: Any) -> str:
    return str(value).strip()


def _filter_length(value: Sized) -> int:
    return len(value)


def _filter_default(value: Any, default: Any = "", boolean: bool = False) -> Any:
    """Return ``default`` when value is None (or falsy with ``boolean=True``).

    Undefined names reach this filter as None, which is what makes
    ``{{ missing | default('x') }}`` work in strict mode.
    """
    if value is None or (boolean and not value):
        return default
    return value


def _filter_join(value: Iterable[Any], separator: str = "") -> str:
    return separator.join(str(item) for item in value)


DEFAULT_FILTERS: dict[str, Callable[..., Any]] = {
    "upper": _filter_upper,
    "lower": _filter_lower,
    "title": _filter_title,
    "trim": _filter_trim,
    "length": _filter_length,
    "default": _filter_default,
    "d": _filter_default,
    "join": _filter_join,
}
