"""Exceptions for the Tessera template system.

Exception Hierarchy:
TemplateError (base)
├── TemplateSyntaxError       # Lex/parse-time syntax error
├── TemplateRuntimeError      # Render-time error with context
│   └── TagError              # A registered tag raised
├── UndefinedError            # Undefined variable access
├── ContextError              # Misuse of the scope-frame stack
└── HandleError               # Misuse of a ContextHandle from tag code
    ├── HandleReleasedError   # Handle was released
    ├── HandleConsumedError   # Context was reclaimed by unique extraction
    └── HandleLockTimeout     # lock(timeout=...) expired

HandoffInvariantError deliberately sits outside this hierarchy. It marks an
internal defect in the ownership handoff and is never caught by the renderer.

Example:
    ```
    K-RUN-008: Tag 'stamp' failed: division by zero
      Location: page.html:3
       |
    >  3 | {% stamp %}
       |
    ```

"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------


class ErrorCode(Enum):
    """Searchable error codes for Tessera errors.

    Format: K-{CATEGORY}-{NUMBER}
    Categories: LEX (lexer), PAR (parser), RUN (runtime), HND (context handle)
    """

    # Lexer errors (K-LEX-xxx)
    UNCLOSED_TAG = "K-LEX-001"
    UNCLOSED_COMMENT = "K-LEX-002"
    UNCLOSED_VARIABLE = "K-LEX-003"
    UNEXPECTED_CHARACTER = "K-LEX-004"

    # Parser errors (K-PAR-xxx)
    UNEXPECTED_TOKEN = "K-PAR-001"
    UNCLOSED_BLOCK = "K-PAR-002"
    INVALID_EXPRESSION = "K-PAR-003"

    # Runtime errors (K-RUN-xxx)
    UNDEFINED_VARIABLE = "K-RUN-001"
    FILTER_ERROR = "K-RUN-002"
    RUNTIME_ERROR = "K-RUN-007"
    TAG_ERROR = "K-RUN-008"
    SCOPE_ERROR = "K-RUN-009"

    # Context handle errors (K-HND-xxx)
    HANDLE_RELEASED = "K-HND-001"
    HANDLE_CONSUMED = "K-HND-002"
    HANDLE_LOCK_TIMEOUT = "K-HND-003"

    @property
    def category(self) -> str:
        """Error category (e.g., 'runtime', 'lexer', 'parser', 'handle')."""
        prefix = self.value.split("-")[1]
        return {
            "LEX": "lexer",
            "PAR": "parser",
            "RUN": "runtime",
            "HND": "handle",
        }.get(prefix, "unknown")


# ---------------------------------------------------------------------------
# Source snippets
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class SourceSnippet:
    """Template source context around an error line.

    Attributes:
        lines: Tuple of (line_number, line_content) pairs around the error.
        error_line: The 1-based line number where the error occurred.
        column: Optional column offset for caret pointer.
    """

    lines: tuple[tuple[int, str], ...]
    error_line: int
    column: int | None = None

    def format(self) -> str:
        """Format snippet with line numbers, marking the error line with ``>``."""
        parts: list[str] = ["   |"]
        for lineno, content in self.lines:
            marker = ">" if lineno == self.error_line else " "
            parts.append(f"{marker}{lineno:>3} | {content}")
        if self.column is not None:
            parts.append(f"     | {' ' * self.column}^")
        parts.append("   |")
        return "\n".join(parts)


def build_source_snippet(
    source: str,
    error_line: int,
    *,
    context_lines: int = 2,
    column: int | None = None,
) -> SourceSnippet:
    """Build a SourceSnippet from template source.

    Args:
        source: Full template source text.
        error_line: 1-based line number of the error.
        context_lines: Number of lines to show before/after the error line.
        column: Optional column offset for caret pointer.
    """
    all_lines = source.splitlines()
    start = max(0, error_line - 1 - context_lines)
    end = min(len(all_lines), error_line + context_lines)
    lines = tuple((i + 1, all_lines[i]) for i in range(start, end))
    return SourceSnippet(lines=lines, error_line=error_line, column=column)


class TemplateError(Exception):
    """Base exception for all Tessera template errors.

    Attributes:
        code: Optional ErrorCode for searchable error identification.
    """

    code: ErrorCode | None = None

    def format_compact(self) -> str:
        """Format error as a short diagnostic prefixed with its error code."""
        header = str(self)
        if self.code and self.code.value not in header:
            header = f"{self.code.value}: {header}"
        return header


class TemplateSyntaxError(TemplateError):
    """Lex/parse-time syntax error in template source.

    When ``source`` and ``lineno`` are provided, the message includes the
    offending line, and a caret when ``col_offset`` is known.
    """

    code: ErrorCode | None = ErrorCode.INVALID_EXPRESSION

    def __init__(
        self,
        message: str,
        lineno: int | None = None,
        name: str | None = None,
        source: str | None = None,
        col_offset: int | None = None,
        *,
        code: ErrorCode | None = None,
    ):
        self.message = message
        self.lineno = lineno
        self.name = name
        self.source = source
        self.col_offset = col_offset
        if code is not None:
            self.code = code
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        location = self.name or "<template>"
        if self.lineno:
            location += f":{self.lineno}"
            if self.col_offset is not None:
                location += f":{self.col_offset}"

        header = f"Syntax Error: {self.message}\n  --> {location}"

        if self.source and self.lineno:
            lines = self.source.splitlines()
            if 0 < self.lineno <= len(lines):
                error_line = lines[self.lineno - 1]
                snippet = f"\n   |\n{self.lineno:>3} | {error_line}"
                if self.col_offset is not None:
                    snippet += f"\n   | {' ' * self.col_offset}^"
                return header + snippet

        return header


class TemplateRuntimeError(TemplateError):
    """Render-time error with template location and source context.

    Output Format:
            ```
            Runtime Error: 'NoneType' object has no attribute 'title'
              Location: article.html:15
              Values:
                post = None (NoneType)
              Suggestion: Check if 'post' is defined
            ```

    Attributes:
        message: Error description
        values: Dict of variable names → values for context
        template_name: Name of the template
        lineno: Line number in template source
        suggestion: Actionable fix suggestion
    """

    code: ErrorCode | None = ErrorCode.RUNTIME_ERROR

    def __init__(
        self,
        message: str,
        *,
        values: dict[str, Any] | None = None,
        template_name: str | None = None,
        lineno: int | None = None,
        suggestion: str | None = None,
        source_snippet: SourceSnippet | None = None,
    ):
        self.message = message
        self.values = values or {}
        self.template_name = template_name
        self.lineno = lineno
        self.suggestion = suggestion
        self.source_snippet = source_snippet
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [f"Runtime Error: {self.message}"]

        if self.template_name or self.lineno:
            loc = self.template_name or "<template>"
            if self.lineno:
                loc += f":{self.lineno}"
            parts.append(f"  Location: {loc}")

        if self.source_snippet:
            parts.append(self.source_snippet.format())

        if self.values:
            parts.append("  Values:")
            for name, value in self.values.items():
                value_repr = repr(value)
                if len(value_repr) > 80:
                    value_repr = value_repr[:77] + "..."
                parts.append(f"    {name} = {value_repr} ({type(value).__name__})")

        if self.suggestion:
            parts.append(f"\n  Suggestion: {self.suggestion}")

        return "\n".join(parts)


class TagError(TemplateRuntimeError):
    """A registered tag raised while rendering.

    Wraps the tag's own exception (available as ``__cause__``) and keeps its
    message, so a failing tag aborts the render with the underlying reason.

    Example:
            >>> {% stamp %}
        TagError: Tag 'stamp' failed: ZeroDivisionError: division by zero
    """

    code: ErrorCode | None = ErrorCode.TAG_ERROR

    def __init__(self, tag_name: str, error: BaseException, **kwargs: Any):
        self.tag_name = tag_name
        self.original = error
        detail = str(error).strip() or "no details available"
        super().__init__(
            f"Tag '{tag_name}' failed: {type(error).__name__}: {detail}",
            **kwargs,
        )


class UndefinedError(TemplateError):
    """Raised when a strict-mode template reads an undefined variable.

    If ``available_names`` is provided, a "Did you mean?" suggestion is
    included when a close match is found.
    """

    code: ErrorCode | None = ErrorCode.UNDEFINED_VARIABLE

    def __init__(
        self,
        name: str,
        template: str | None = None,
        lineno: int | None = None,
        available_names: frozenset[str] | None = None,
        source_snippet: SourceSnippet | None = None,
    ):
        self.name = name
        self.template = template or "<template>"
        self.lineno = lineno
        self._available_names = available_names
        self.source_snippet = source_snippet
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        location = self.template
        if self.lineno:
            location += f":{self.lineno}"
        msg = f"Undefined variable '{self.name}' in {location}"

        if self._available_names:
            from difflib import get_close_matches

            matches = get_close_matches(self.name, self._available_names, n=1, cutoff=0.6)
            if matches:
                msg += f". Did you mean '{matches[0]}'?"

        if self.source_snippet:
            msg += "\n" + self.source_snippet.format()

        msg += f"\n  Hint: Use {{{{ {self.name} | default('') }}}} for optional variables"
        return msg


class ContextError(TemplateError):
    """Scope-frame misuse, such as popping the base frame."""

    code: ErrorCode | None = ErrorCode.SCOPE_ERROR


class HandleError(TemplateError):
    """A ContextHandle was used in a way its current state does not allow.

    Raised into tag code, never by the renderer itself; a tag that lets it
    escape fails like any other tag.
    """


class HandleReleasedError(HandleError):
    """The handle has already been released."""

    code: ErrorCode | None = ErrorCode.HANDLE_RELEASED


class HandleConsumedError(HandleError):
    """The shared context was reclaimed by the renderer and is gone."""

    code: ErrorCode | None = ErrorCode.HANDLE_CONSUMED


class HandleLockTimeout(HandleError):
    """``ContextHandle.lock(timeout=...)`` could not acquire the lock in time."""

    code: ErrorCode | None = ErrorCode.HANDLE_LOCK_TIMEOUT


class HandoffInvariantError(RuntimeError):
    """Internal defect in the context handoff.

    Raised when unique extraction finds the context lock held. The renderer
    never holds that lock across a tag call, so this cannot happen under the
    documented call discipline and is not recoverable.
    """
