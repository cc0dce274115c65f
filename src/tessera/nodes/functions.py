"""Registered tag call node for the Tessera template tree."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from tessera.nodes.base import Node
from tessera.nodes.expressions import Expr


@dataclass(frozen=True, slots=True)
class CallTag(Node):
    """Call of a registered tag: {% name arg key=value as target %}

    The tag is looked up by name at render time, so tags registered after
    parsing are honoured. With ``target`` set, the folded result is bound
    in the innermost scope instead of being emitted.
    """

    name: str
    args: Sequence[Expr] = ()
    kwargs: Sequence[tuple[str, Expr]] = ()
    target: str | None = None
