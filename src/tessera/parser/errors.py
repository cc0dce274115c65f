"""Parser error handling for Tessera.

Provides ParseError, a TemplateSyntaxError positioned at a token.
"""

from __future__ import annotations

from tessera._types import Token
from tessera.environment.exceptions import ErrorCode, TemplateSyntaxError


class ParseError(TemplateSyntaxError):
    """Syntax error located at the token where parsing failed.

    Carries an optional suggestion that is appended to the message.
    """

    def __init__(
        self,
        message: str,
        token: Token,
        source: str | None = None,
        name: str | None = None,
        suggestion: str | None = None,
        code: ErrorCode = ErrorCode.UNEXPECTED_TOKEN,
    ):
        self.token = token
        self.suggestion = suggestion
        if suggestion:
            message = f"{message}\n\nSuggestion: {suggestion}"
        super().__init__(message, token.lineno, name, source, token.col_offset, code=code)
