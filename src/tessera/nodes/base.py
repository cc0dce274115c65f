"""Base node class for the Tessera template tree."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Node:
    """Base class for all template nodes.

    Nodes carry their source position for error reporting and are frozen,
    so one parsed Template can be rendered from several threads at once.

    """

    lineno: int
    col_offset: int
