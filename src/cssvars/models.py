"""Records produced by the variable indexer.

Definitions and usages share ``name``, ``uri`` and ``range``; each carries a
class-level ``kind`` so a mixed reference list can be told apart without
isinstance checks.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, ClassVar, Literal, Union

if TYPE_CHECKING:
    from .parser import NodeInfo


@dataclass(frozen=True, order=True)
class Position:
    """Zero-based line and character offset within a document."""

    line: int
    character: int


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    def contains(self, position: Position) -> bool:
        return self.start <= position <= self.end


@dataclass(frozen=True)
class VariableDefinition:
    """A ``--name: value`` declaration under one selector branch."""

    kind: ClassVar[Literal["definition"]] = "definition"

    name: str
    value: str
    selector: str
    uri: str
    range: Range
    important: bool = False
    source_position: int = 0

    @property
    def is_definition(self) -> bool:
        return True


@dataclass(frozen=True)
class VariableUsage:
    """A ``var(--name)`` reference inside a declaration value."""

    kind: ClassVar[Literal["usage"]] = "usage"

    name: str
    usage_context: str
    uri: str
    range: Range
    dom_node: NodeInfo | None = None

    @property
    def is_definition(self) -> bool:
        return False


VariableReference = Union[VariableDefinition, VariableUsage]
