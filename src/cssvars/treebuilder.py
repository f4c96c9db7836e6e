from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .errors import generate_error_message, line_and_column
from .node import ElementNode, SimpleDomNode, TextNode
from .tokens import CommentToken, DoctypeToken, EOFToken, ParseError, Tag, TokenSinkResult

if TYPE_CHECKING:
    from .tokenizer import Tokenizer


VOID_ELEMENTS: frozenset[str] = frozenset(
    {
        "area",
        "base",
        "br",
        "col",
        "embed",
        "hr",
        "img",
        "input",
        "link",
        "meta",
        "param",
        "source",
        "track",
        "wbr",
    }
)

# Elements whose end tag may be left out without it being worth reporting
OPTIONAL_END_TAG_ELEMENTS: frozenset[str] = frozenset(
    {
        "html",
        "head",
        "body",
        "p",
        "li",
        "dt",
        "dd",
        "option",
        "optgroup",
        "colgroup",
        "tbody",
        "thead",
        "tfoot",
        "tr",
        "td",
        "th",
    }
)

# An open <p> is closed by the start of any of these
P_CLOSERS: frozenset[str] = frozenset(
    {
        "address",
        "article",
        "aside",
        "blockquote",
        "details",
        "div",
        "dl",
        "fieldset",
        "figcaption",
        "figure",
        "footer",
        "form",
        "h1",
        "h2",
        "h3",
        "h4",
        "h5",
        "h6",
        "header",
        "hgroup",
        "hr",
        "main",
        "menu",
        "nav",
        "ol",
        "p",
        "pre",
        "section",
        "table",
        "ul",
    }
)

SCOPE_TERMINATORS: frozenset[str] = frozenset(
    {"applet", "button", "caption", "html", "marquee", "object", "table", "td", "template", "th"}
)

# start tag -> (open elements it closes, elements that stop the search)
IMPLIED_END_TAGS: dict[str, tuple[frozenset[str], frozenset[str]]] = {
    "li": (frozenset({"li"}), SCOPE_TERMINATORS | {"ol", "ul"}),
    "dt": (frozenset({"dt", "dd"}), SCOPE_TERMINATORS | {"dl"}),
    "dd": (frozenset({"dt", "dd"}), SCOPE_TERMINATORS | {"dl"}),
    "option": (frozenset({"option"}), frozenset({"select", "datalist", "optgroup"})),
    "optgroup": (frozenset({"option", "optgroup"}), frozenset({"select"})),
    "tr": (frozenset({"tr"}), frozenset({"table", "tbody", "thead", "tfoot"})),
    "td": (frozenset({"td", "th"}), frozenset({"tr", "table"})),
    "th": (frozenset({"td", "th"}), frozenset({"tr", "table"})),
    "tbody": (frozenset({"tbody", "thead", "tfoot", "tr", "td", "th"}), frozenset({"table"})),
    "thead": (frozenset({"tbody", "thead", "tfoot", "tr", "td", "th"}), frozenset({"table"})),
    "tfoot": (frozenset({"tbody", "thead", "tfoot", "tr", "td", "th"}), frozenset({"table"})),
}


class TreeBuilder:
    """Builds a node tree from tokenizer output.

    Recovery is kept small: void elements never take children,
    self-closing syntax closes any element, an end tag closes the nearest
    open element of that name, stray end tags are dropped, and a short table
    of implied end tags covers lists, definition lists, options and tables.
    No ``html``/``head``/``body`` elements are synthesized.
    """

    __slots__ = ("collect_errors", "document", "errors", "open_elements", "tokenizer")

    collect_errors: bool
    document: SimpleDomNode
    errors: list[ParseError]
    open_elements: list[ElementNode]
    tokenizer: Tokenizer | None

    def __init__(self, collect_errors: bool = False) -> None:
        self.collect_errors = collect_errors
        self.errors = []
        self.document = SimpleDomNode("#document")
        self.open_elements = []
        self.tokenizer = None

    def _parse_error(self, code: str, offset: int, tag_name: str | None = None) -> None:
        if not self.collect_errors:
            return
        line = None
        column = None
        tokenizer = self.tokenizer
        if tokenizer is not None and tokenizer._newline_positions is not None:
            line, column = line_and_column(tokenizer._newline_positions, offset)
        message = generate_error_message(code, tag_name)
        self.errors.append(ParseError(code, line=line, column=column, message=message, offset=offset))

    def _current_node(self) -> SimpleDomNode:
        if self.open_elements:
            return self.open_elements[-1]
        return self.document

    # Token handling --------------------------------------------------------

    def process_token(self, token: Any) -> int:
        token_type = type(token)
        if token_type is Tag:
            if token.kind == Tag.START:
                self._start_tag(token)
            else:
                self._end_tag(token)
        elif token_type is CommentToken:
            node = SimpleDomNode("#comment", data=token.data, start=token.start, end=token.end)
            self._current_node().append_child(node)
        elif token_type is DoctypeToken:
            if self.open_elements or any(type(child) is ElementNode for child in self.document.children or ()):
                self._parse_error("unexpected-doctype", token.start)
            else:
                node = SimpleDomNode("!doctype", data=token.doctype.name, start=token.start, end=token.end)
                self.document.append_child(node)
        elif token_type is EOFToken:
            pass
        return TokenSinkResult.Continue

    def process_characters(self, data: str, start: int, end: int) -> None:
        target = self._current_node()
        children = target.children
        if children:
            last_child = children[-1]
            if type(last_child) is TextNode and last_child.end == start:
                last_child.data = (last_child.data or "") + data
                last_child.end = end
                return
        target.append_child(TextNode(data, start, end))

    def _start_tag(self, tag: Tag) -> None:
        name = tag.name
        if name in P_CLOSERS:
            self._close_implied(frozenset({"p"}), SCOPE_TERMINATORS, tag.start)
        implied = IMPLIED_END_TAGS.get(name)
        if implied is not None:
            self._close_implied(implied[0], implied[1], tag.start)

        node = ElementNode(name, tag.attrs, start=tag.start, end=tag.end, attr_spans=tag.attr_spans)
        self._current_node().append_child(node)

        if name in VOID_ELEMENTS:
            return
        if tag.self_closing:
            self._parse_error("non-void-html-element-start-tag-with-trailing-solidus", tag.start, tag_name=name)
            return
        self.open_elements.append(node)

    def _end_tag(self, tag: Tag) -> None:
        name = tag.name
        index = len(self.open_elements) - 1
        while index >= 0:
            if self.open_elements[index].name == name:
                break
            index -= 1
        else:
            self._parse_error("unexpected-end-tag", tag.start, tag_name=name)
            return

        if index != len(self.open_elements) - 1:
            self._parse_error("end-tag-too-early", tag.start, tag_name=name)
        node = self.open_elements[index]
        self._pop_to(index + 1, tag.start)
        self.open_elements.pop()
        node.content_end = tag.start
        node.end = tag.end

    def _close_implied(self, closes: frozenset[str], boundaries: frozenset[str], offset: int) -> None:
        # Closes the outermost match above the nearest boundary
        target = -1
        for index in range(len(self.open_elements) - 1, -1, -1):
            node_name = self.open_elements[index].name
            if node_name in boundaries:
                break
            if node_name in closes:
                target = index
        if target >= 0:
            self._pop_to(target, offset)

    def _pop_to(self, depth: int, offset: int) -> None:
        """Close open elements until only ``depth`` remain; they end at ``offset``."""
        while len(self.open_elements) > depth:
            node = self.open_elements.pop()
            node.content_end = offset
            node.end = offset

    def finish(self, length: int | None = None) -> SimpleDomNode:
        """Close everything still open at the end of the text and return the document."""
        if length is None:
            length = self.tokenizer.length if self.tokenizer is not None else 0
        for node in self.open_elements:
            if node.name not in OPTIONAL_END_TAG_ELEMENTS:
                self._parse_error("expected-closing-tag-but-got-eof", length, tag_name=node.name)
        self._pop_to(0, length)
        self.document.end = length
        return self.document
