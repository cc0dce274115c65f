"""Pure runtime helpers used by the template renderer.

None of them close over Environment state.

Thread-Safety:
All functions are stateless and safe for concurrent use.

"""

from __future__ import annotations

from typing import Any

from tessera.nodes import Expr, Filter, Getattr, Name, Not

UNDEFINED: Any = object()


def getattr_or_item(obj: Any, attr: str) -> Any:
    """Resolve ``obj.attr`` the way templates expect.

    Tries attribute access first, then item access (with an integer key
    for numeric segments, so ``items.0`` works on lists). Returns
    UNDEFINED when neither succeeds.
    """
    try:
        return getattr(obj, attr)
    except AttributeError:
        pass
    key: Any = int(attr) if attr.isdigit() else attr
    try:
        return obj[key]
    except (KeyError, IndexError, TypeError):
        return UNDEFINED


def describe(expr: Expr) -> str:
    """Short template-syntax rendering of an expression for error messages."""
    if isinstance(expr, Name):
        return expr.name
    if isinstance(expr, Getattr):
        return f"{describe(expr.obj)}.{expr.attr}"
    if isinstance(expr, Not):
        return f"not {describe(expr.operand)}"
    if isinstance(expr, Filter):
        return f"{describe(expr.value)} | {expr.name}"
    return repr(getattr(expr, "value", expr))


def str_safe(value: Any) -> str:
    """Convert an output value to text; None renders as nothing."""
    if value is None:
        return ""
    return str(value)
