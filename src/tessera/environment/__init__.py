"""Tessera environment: configuration, registries and errors."""

from tessera.environment.core import Environment
from tessera.environment.exceptions import (
    ContextError,
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
from tessera.environment.registry import Registry

__all__ = [
    "ContextError",
    "Environment",
    "ErrorCode",
    "HandleConsumedError",
    "HandleError",
    "HandleLockTimeout",
    "HandleReleasedError",
    "HandoffInvariantError",
    "Registry",
    "SourceSnippet",
    "TagError",
    "TemplateError",
    "TemplateRuntimeError",
    "TemplateSyntaxError",
    "UndefinedError",
    "build_source_snippet",
]
