from __future__ import annotations

import weakref
from collections.abc import Iterator
from typing import Any



class SimpleDomNode:
    """A non-element node: the ``#document`` root, a ``#comment`` or a ``!doctype``.

    Children are owned by their parent through ``children``. ``parent`` is a
    weak back-reference, only used to walk upwards during selector matching.
    """

    __slots__ = ("__weakref__", "_parent", "attrs", "children", "data", "end", "name", "start")

    name: str
    attrs: dict[str, str] | None
    children: list[Any] | None
    data: str | None
    start: int
    end: int

    def __init__(
        self,
        name: str,
        attrs: dict[str, str] | None = None,
        data: str | None = None,
        start: int = 0,
        end: int = 0,
    ) -> None:
        self.name = name
        self._parent = None
        self.data = data
        self.start = start
        self.end = end

        if name == "#comment" or name == "!doctype":
            self.children = None
            self.attrs = None
        else:
            self.children = []
            self.attrs = attrs if attrs is not None else {}

    @property
    def parent(self) -> SimpleDomNode | ElementNode | None:
        ref = self._parent
        return ref() if ref is not None else None

    @parent.setter
    def parent(self, node: SimpleDomNode | ElementNode | None) -> None:
        self._parent = weakref.ref(node) if node is not None else None

    def __repr__(self) -> str:
        return f"<{self.name}>"

    def append_child(self, node: Any) -> None:
        if self.children is not None:
            self.children.append(node)
            node.parent = self

    def iter_descendants(self) -> Iterator[Any]:
        """Yield every descendant in document (pre-order) order, excluding self."""
        stack: list[Any] = list(reversed(self.children or ()))
        while stack:
            node = stack.pop()
            yield node
            children = node.children
            if children:
                stack.extend(reversed(children))

    def contains_offset(self, offset: int) -> bool:
        return self.start <= offset <= self.end


class ElementNode(SimpleDomNode):
    """An element with source spans for itself, its content and its attribute values."""

    __slots__ = ("attr_spans", "content_end", "content_start")

    attrs: dict[str, str]
    children: list[Any]
    attr_spans: dict[str, tuple[int, int]]
    content_start: int
    content_end: int

    def __init__(
        self,
        name: str,
        attrs: dict[str, str] | None = None,
        start: int = 0,
        end: int = 0,
        attr_spans: dict[str, tuple[int, int]] | None = None,
    ) -> None:
        self.name = name
        self._parent = None
        self.data = None
        self.children = []
        self.attrs = attrs if attrs is not None else {}
        self.attr_spans = attr_spans if attr_spans is not None else {}
        self.start = start
        self.end = end
        self.content_start = end
        self.content_end = end

    @property
    def tag_name(self) -> str:
        return self.name

    @property
    def id(self) -> str | None:
        return self.attrs.get("id")

    @property
    def classes(self) -> list[str]:
        class_attr = self.attrs.get("class")
        return class_attr.split() if class_attr else []


class TextNode:
    __slots__ = ("__weakref__", "_parent", "data", "end", "name", "start")

    data: str | None
    name: str
    start: int
    end: int

    def __init__(self, data: str | None, start: int = 0, end: int = 0) -> None:
        self.data = data
        self._parent = None
        self.name = "#text"
        self.start = start
        self.end = end

    parent = SimpleDomNode.parent

    def __repr__(self) -> str:
        return repr(self.data)

    @property
    def children(self) -> list[Any]:
        """Return empty list for TextNode (leaf node)."""
        return []
