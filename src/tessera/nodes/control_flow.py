"""Control flow nodes for the Tessera template tree."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from tessera.nodes.base import Node
from tessera.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class If(Node):
    """Conditional: {% if cond %}...{% elif cond %}...{% else %}...{% end %}"""

    test: Expr
    body: Sequence[Node]
    elif_: Sequence[tuple[Expr, Sequence[Node]]] = ()
    else_: Sequence[Node] = ()


@dataclass(frozen=True, slots=True)
class For(Node):
    """For loop: {% for x in items %}...{% empty %}...{% end %}

    Each iteration binds ``target`` and ``loop`` in a fresh scope frame.
    """

    target: str
    iter: Expr
    body: Sequence[Node]
    empty: Sequence[Node] = ()
