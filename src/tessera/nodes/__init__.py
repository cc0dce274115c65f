"""Immutable node tree produced by the Tessera parser."""

from dataclasses import dataclass

from tessera.nodes.base import Node
from tessera.nodes.control_flow import For, If
from tessera.nodes.expressions import Const, Expr, Filter, Getattr, Name, Not
from tessera.nodes.functions import CallTag
from tessera.nodes.output import Data, Output
from tessera.nodes.variables import Set, With


@dataclass(frozen=True, slots=True)
class Template(Node):
    """Root node: the whole parsed template body."""

    body: tuple[Node, ...]


__all__ = [
    "CallTag",
    "Const",
    "Data",
    "Expr",
    "Filter",
    "For",
    "Getattr",
    "If",
    "Name",
    "Node",
    "Not",
    "Output",
    "Set",
    "Template",
    "With",
]
