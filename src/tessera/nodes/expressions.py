"""Expression nodes for the Tessera template tree."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from tessera.nodes.base import Node


@dataclass(frozen=True, slots=True)
class Expr(Node):
    """Base class for expressions."""


@dataclass(frozen=True, slots=True)
class Const(Expr):
    """Constant value: string, number, boolean, None."""

    value: str | int | float | bool | None


@dataclass(frozen=True, slots=True)
class Name(Expr):
    """Variable reference: {{ user }}"""

    name: str


@dataclass(frozen=True, slots=True)
class Getattr(Expr):
    """Attribute or item access: obj.attr"""

    obj: Expr
    attr: str


@dataclass(frozen=True, slots=True)
class Not(Expr):
    """Negation: not expr"""

    operand: Expr


@dataclass(frozen=True, slots=True)
class Filter(Expr):
    """Filter application: expr | name(args)"""

    value: Expr
    name: str
    args: Sequence[Expr] = ()
