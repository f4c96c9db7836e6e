"""Locate the CSS inside a document.

Stylesheet languages yield the whole text as one segment. Markup yields one
segment per ``<style>`` element and, optionally, one per ``style=""``
attribute. Each segment carries an :class:`OffsetMap` back to the original
text, so positions computed inside a segment land on the right character of
the document.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal

from .node import ElementNode
from .parser import DOMTree, NodeInfo

logger = logging.getLogger(__name__)

CSS_LANGUAGES: frozenset[str] = frozenset({"css", "scss", "sass", "less"})
HOST_LANGUAGES: frozenset[str] = frozenset({"html", "htm", "xhtml", "vue", "svelte", "php"})


@dataclass(frozen=True)
class OffsetMap:
    """Translates offsets inside a segment to offsets in the original text."""

    base: int
    length: int

    @classmethod
    def identity(cls, text: str) -> OffsetMap:
        return cls(0, len(text))

    def to_document(self, offset: int) -> int:
        return self.base + max(0, min(offset, self.length))


@dataclass(frozen=True)
class CssSegment:
    """CSS text cut out of a document.

    Markup segments hold on to the parsed ``tree``. Element parents are weak
    references, so ``node.element`` only keeps its ancestors while the tree
    is alive.
    """

    kind: Literal["stylesheet", "inline"]
    text: str
    offset_map: OffsetMap
    node: NodeInfo | None = None
    tree: DOMTree | None = field(default=None, compare=False, repr=False)


def is_host_language(language_id: str) -> bool:
    return language_id.lower() in HOST_LANGUAGES


def extract(
    text: str,
    language_id: str,
    *,
    inline_styles: bool = True,
    dom_tree: DOMTree | None = None,
) -> list[CssSegment]:
    """Return the CSS segments of ``text`` in document order.

    ``dom_tree`` may be passed to reuse an already parsed tree for markup.
    Unknown language ids are handled as plain CSS.
    """
    if not is_host_language(language_id):
        if language_id.lower() not in CSS_LANGUAGES:
            logger.debug(f"Unknown language id {language_id!r}, treating as CSS")
        return [CssSegment("stylesheet", text, OffsetMap.identity(text))]

    tree = dom_tree if dom_tree is not None else DOMTree(text)
    segments = list(_iter_segments(tree, text, inline_styles))
    logger.debug(f"Extracted {len(segments)} CSS segments from {language_id} markup")
    return segments


def _iter_segments(tree: DOMTree, text: str, inline_styles: bool):
    # Comments are leaves, so commented-out markup never yields elements
    for node in tree.root.iter_descendants():
        if type(node) is not ElementNode:
            continue

        if inline_styles and "style" in node.attrs:
            value_start, value_end = node.attr_spans["style"]
            raw = text[value_start:value_end]
            if raw.strip():
                yield CssSegment(
                    "inline",
                    raw,
                    OffsetMap(value_start, len(raw)),
                    NodeInfo.from_element(node),
                    tree,
                )

        if node.name == "style":
            start, end = node.content_start, node.content_end
            if end > start:
                yield CssSegment("stylesheet", text[start:end], OffsetMap(start, end - start), tree=tree)
