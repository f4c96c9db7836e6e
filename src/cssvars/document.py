from __future__ import annotations

import re
from bisect import bisect_left, bisect_right
from dataclasses import dataclass, field

from .models import Position, Range

_LINE_BREAK = re.compile(r"\r\n?|\n")
_ASTRAL = re.compile("[\U00010000-\U0010ffff]")


class LineIndex:
    """Maps character offsets of a text to zero-based line/character positions.

    Characters are counted in UTF-16 code units, the way editors count them, so
    a character outside the Basic Multilingual Plane takes two. Lines break on
    ``\\r\\n``, ``\\r`` and ``\\n``.
    """

    __slots__ = ("_astral", "_line_ends", "_line_starts", "length")

    def __init__(self, text: str) -> None:
        starts = [0]
        ends = []
        for match in _LINE_BREAK.finditer(text):
            ends.append(match.start())
            starts.append(match.end())
        ends.append(len(text))
        self._line_starts = starts
        self._line_ends = ends
        self._astral = [match.start() for match in _ASTRAL.finditer(text)]
        self.length = len(text)

    def _units(self, start: int, end: int) -> int:
        return end - start + bisect_left(self._astral, end) - bisect_left(self._astral, start)

    def position_at(self, offset: int) -> Position:
        offset = max(0, min(offset, self.length))
        line = bisect_right(self._line_starts, offset) - 1
        return Position(line, self._units(self._line_starts[line], offset))

    def range_of(self, start: int, end: int) -> Range:
        return Range(self.position_at(start), self.position_at(end))

    def offset_at(self, position: Position) -> int:
        line = max(position.line, 0)
        if line >= len(self._line_starts):
            return self.length
        offset = self._line_starts[line]
        end = self._line_ends[line]
        remaining = max(position.character, 0)
        astral = self._astral
        i = bisect_left(astral, offset)
        while remaining > 0 and offset < end:
            stop = astral[i] if i < len(astral) and astral[i] < end else end
            step = min(remaining, stop - offset)
            offset += step
            remaining -= step
            if offset == stop and stop < end:
                # Never land between the two halves of a surrogate pair
                if remaining < 2:
                    break
                offset += 1
                remaining -= 2
                i += 1
        return offset


@dataclass(frozen=True)
class TextDocument:
    """An editor buffer snapshot."""

    uri: str
    language_id: str
    version: int
    text: str
    _line_index: LineIndex | None = field(default=None, init=False, repr=False, compare=False)

    @property
    def line_index(self) -> LineIndex:
        index = self._line_index
        if index is None:
            index = LineIndex(self.text)
            object.__setattr__(self, "_line_index", index)
        return index

    def position_at(self, offset: int) -> Position:
        return self.line_index.position_at(offset)

    def offset_at(self, position: Position) -> int:
        return self.line_index.offset_at(position)
