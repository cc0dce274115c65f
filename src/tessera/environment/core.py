"""Tessera Environment — configuration and registries shared by templates.

Configuration is passed as constructor keywords:

    ```python
    env = Environment(
        strict=True,            # undefined names raise UndefinedError
        globals={"site": site}, # merged into every render's base frame
        clone=copy.deepcopy,    # copy used when a tag keeps its handle
    )
    ```

Tags and filters are registered on ``env.tags`` / ``env.filters`` (both
copy-on-write registries) or through the helpers below.

"""

from __future__ import annotations

import copy
import logging
from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any

from tessera.environment.filters import DEFAULT_FILTERS
from tessera.environment.registry import Registry

if TYPE_CHECKING:
    from tessera.dispatch import TagDefinition
    from tessera.template import Template

logger = logging.getLogger(__name__)

CloneFunc = Callable[[Any, dict[int, Any]], Any]


class Environment:
    """Shared configuration for parsing and rendering templates.

    Attributes:
        strict: Raise UndefinedError for undefined names (default True)
        globals: Variables available to every template
        clone: ``(value, memo) -> copy`` used by the reclamation fallback

    Example:
        >>> env = Environment()
        >>> @env.tag(takes_context=True)
        ... def greet(ctx, greeting):
        ...     return f"{greeting}, {ctx['user']}"
        >>> env.from_string("{% greet 'Hi' %}").render(user="Ada")
        'Hi, Ada'
    """

    def __init__(
        self,
        *,
        strict: bool = True,
        globals: Mapping[str, Any] | None = None,
        clone: CloneFunc | None = None,
        filters: Mapping[str, Callable[..., Any]] | None = None,
    ) -> None:
        self.strict = strict
        self.globals: dict[str, Any] = dict(globals or {})
        self.clone: CloneFunc = clone or copy.deepcopy
        self._filters: dict[str, Callable[..., Any]] = {**DEFAULT_FILTERS, **(filters or {})}
        self._tags: dict[str, TagDefinition] = {}

    @property
    def filters(self) -> Registry:
        return Registry(self, "_filters")

    @property
    def tags(self) -> Registry:
        return Registry(self, "_tags")

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def add_filter(self, name: str, func: Callable[..., Any]) -> None:
        self.filters[name] = func

    def filter(self, name: str | None = None) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``add_filter``; defaults to the function name."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.add_filter(name or func.__name__, func)
            return func

        return decorator

    def register_tag(
        self,
        name: str,
        func: Callable[..., Any],
        *,
        takes_context: bool = False,
    ) -> TagDefinition:
        """Register ``func`` as ``{% name ... %}``.

        Args:
            name: Tag name used in templates
            func: The callable to invoke
            takes_context: Pass a ContextHandle as the first argument

        Returns:
            The stored TagDefinition
        """
        from tessera.dispatch import TagDefinition

        definition = TagDefinition.create(name, func, takes_context=takes_context)
        self.tags[name] = definition
        logger.debug(f"Registered tag '{name}' ({definition.mode.value})")
        return definition

    def tag(
        self, name: str | None = None, *, takes_context: bool = False
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """Decorator form of ``register_tag``; defaults to the function name."""

        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            self.register_tag(name or func.__name__, func, takes_context=takes_context)
            return func

        return decorator

    # ------------------------------------------------------------------
    # Templates
    # ------------------------------------------------------------------

    def from_string(self, source: str, name: str | None = None) -> Template:
        """Parse ``source`` into a Template bound to this environment.

        Raises:
            TemplateSyntaxError: If the source does not parse
        """
        from tessera.parser import parse
        from tessera.template import Template

        return Template(self, parse(source, name), name, source)
