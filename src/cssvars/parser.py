"""Markup parsing entry point: parse once, then query the tree with selectors."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .node import ElementNode
from .selector import SelectorError, match, matches
from .tokenizer import Tokenizer, TokenizerOpts
from .treebuilder import TreeBuilder

if TYPE_CHECKING:
    from .node import SimpleDomNode
    from .tokens import ParseError


@dataclass(frozen=True)
class NodeInfo:
    """Summary of a matched element, with the element itself attached."""

    tag_name: str
    id: str | None
    classes: tuple[str, ...]
    element: ElementNode = field(repr=False, compare=False)

    @classmethod
    def from_element(cls, element: ElementNode) -> NodeInfo:
        return cls(element.tag_name, element.id, tuple(element.classes), element)


class DOMTree:
    __slots__ = ("errors", "root", "text", "tokenizer", "tree_builder")

    errors: list[ParseError]
    root: SimpleDomNode
    text: str
    tokenizer: Tokenizer
    tree_builder: TreeBuilder

    def __init__(
        self,
        html: str | None,
        *,
        collect_errors: bool = False,
        tokenizer_opts: TokenizerOpts | None = None,
    ) -> None:
        self.text = html or ""
        self.tree_builder = TreeBuilder(collect_errors=collect_errors)
        self.tokenizer = Tokenizer(self.tree_builder, tokenizer_opts or TokenizerOpts(), collect_errors=collect_errors)
        # Link tokenizer to tree_builder for position info
        self.tree_builder.tokenizer = self.tokenizer

        self.tokenizer.run(self.text)
        self.root = self.tree_builder.finish(len(self.text))

        # Merge errors from both tokenizer and tree builder, in source order
        self.errors = sorted(
            self.tokenizer.errors + self.tree_builder.errors,
            key=lambda error: error.offset or 0,
        )

    def get_root(self) -> SimpleDomNode:
        return self.root

    def query_selector_all(self, selector: str) -> list[NodeInfo]:
        """Return every element matching ``selector`` in document order.

        An empty or invalid selector yields an empty list.
        """
        return [NodeInfo.from_element(element) for element in match(self.root, selector)]

    def find_node_at_position(self, offset: int) -> ElementNode | None:
        """Return the innermost element whose source span contains ``offset``."""
        found: ElementNode | None = None
        children = self.root.children
        while children:
            for child in children:
                if type(child) is ElementNode and child.contains_offset(offset):
                    found = child
                    children = child.children
                    break
            else:
                break
        return found

    def matches_selector(self, node: NodeInfo | ElementNode, selector: str) -> bool:
        element = node.element if isinstance(node, NodeInfo) else node
        try:
            return matches(element, selector)
        except SelectorError:
            return False
