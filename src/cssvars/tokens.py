from __future__ import annotations

from typing import Literal


class Tag:
    __slots__ = ("attr_spans", "attrs", "end", "kind", "name", "self_closing", "start")

    START: Literal[0] = 0
    END: Literal[1] = 1

    kind: int
    name: str
    attrs: dict[str, str]
    attr_spans: dict[str, tuple[int, int]]
    self_closing: bool
    start: int
    end: int

    def __init__(
        self,
        kind: int,
        name: str,
        attrs: dict[str, str] | None,
        self_closing: bool = False,
        start: int = 0,
        end: int = 0,
        attr_spans: dict[str, tuple[int, int]] | None = None,
    ) -> None:
        self.kind = kind
        self.name = name
        self.attrs = attrs if attrs is not None else {}
        self.self_closing = bool(self_closing)
        # Offsets of "<" and just past ">" in the source text
        self.start = start
        self.end = end
        # Raw (undecoded) value span of each attribute, keyed like attrs
        self.attr_spans = attr_spans if attr_spans is not None else {}

    def __repr__(self) -> str:
        prefix = "/" if self.kind == Tag.END else ""
        return f"Tag(<{prefix}{self.name}>, {self.start}-{self.end})"


class CommentToken:
    __slots__ = ("data", "end", "start")

    data: str
    start: int
    end: int

    def __init__(self, data: str, start: int = 0, end: int = 0) -> None:
        self.data = data
        self.start = start
        self.end = end


class Doctype:
    __slots__ = ("name",)

    name: str | None

    def __init__(self, name: str | None = None) -> None:
        self.name = name


class DoctypeToken:
    __slots__ = ("doctype", "end", "start")

    doctype: Doctype
    start: int
    end: int

    def __init__(self, doctype: Doctype, start: int = 0, end: int = 0) -> None:
        self.doctype = doctype
        self.start = start
        self.end = end


class EOFToken:
    __slots__ = ()


class TokenSinkResult:
    __slots__ = ()

    Continue: Literal[0] = 0


class ParseError:
    """A recoverable problem found while parsing markup or CSS.

    Parsing never stops on these; they are only collected when a parser is
    created with ``collect_errors=True``.
    """

    __slots__ = ("code", "column", "line", "message", "offset")

    code: str
    line: int | None
    column: int | None
    offset: int | None
    message: str

    __hash__ = None  # type: ignore[assignment]  # Unhashable since we define __eq__

    def __init__(
        self,
        code: str,
        line: int | None = None,
        column: int | None = None,
        message: str | None = None,
        offset: int | None = None,
    ) -> None:
        self.code = code
        self.line = line
        self.column = column
        self.message = message or code
        self.offset = offset

    def __repr__(self) -> str:
        if self.line is not None and self.column is not None:
            return f"ParseError({self.code!r}, line={self.line}, column={self.column})"
        return f"ParseError({self.code!r})"

    def __str__(self) -> str:
        if self.line is not None and self.column is not None:
            if self.message != self.code:
                return f"({self.line},{self.column}): {self.code} - {self.message}"
            return f"({self.line},{self.column}): {self.code}"
        if self.message != self.code:
            return f"{self.code} - {self.message}"
        return self.code

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ParseError):
            return NotImplemented
        return self.code == other.code and self.line == other.line and self.column == other.column
