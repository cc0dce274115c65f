"""Variable and scoping nodes for the Tessera template tree."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from tessera.nodes.base import Node
from tessera.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class Set(Node):
    """Assignment in the innermost scope: {% set x = expr %}"""

    target: str
    value: Expr


@dataclass(frozen=True, slots=True)
class With(Node):
    """Scoped bindings: {% with a=expr, b=expr %}...{% end %}"""

    bindings: Sequence[tuple[str, Expr]]
    body: Sequence[Node]
