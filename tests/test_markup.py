"""
Tests for the markup tokenizer and tree builder.

Covers source spans, raw text handling, character references, comments and
the best-effort recovery rules for malformed markup.
"""

from cssvars.node import ElementNode, TextNode
from cssvars.parser import DOMTree
from cssvars.tokenizer import TokenizerOpts


def _elements(node):
    return [child for child in node.children if type(child) is ElementNode]


def _codes(tree):
    return [error.code for error in tree.errors]


class TestTreeShape:
    def test_basic_nesting_and_parent_links(self):
        tree = DOMTree('<div class="parent"><span id="child">Text</span></div>')
        div = tree.root.children[0]
        span = div.children[0]

        assert div.name == "div"
        assert span.name == "span"
        assert span.parent is div
        assert div.parent is tree.root
        assert span.children[0].data == "Text"

    def test_tag_and_attribute_names_are_lower_cased(self):
        tree = DOMTree("<DIV CLASS=Foo></DIV>")
        div = tree.root.children[0]

        assert div.name == "div"
        assert div.attrs == {"class": "Foo"}

    def test_duplicate_attribute_keeps_first(self):
        tree = DOMTree('<p id="a" id="b"></p>', collect_errors=True)

        assert tree.root.children[0].attrs == {"id": "a"}
        assert "duplicate-attribute" in _codes(tree)

    def test_doctype_node(self):
        tree = DOMTree("<!DOCTYPE html><html></html>")

        assert tree.root.children[0].name == "!doctype"
        assert tree.root.children[0].data == "html"
        assert tree.root.children[1].name == "html"

    def test_no_implicit_html_head_or_body(self):
        tree = DOMTree("<p>hi</p>")

        assert [child.name for child in tree.root.children] == ["p"]


class TestSourceSpans:
    def test_element_and_content_offsets(self):
        html = '<div id="a">hi</div>'
        div = DOMTree(html).root.children[0]

        assert div.start == 0
        assert div.end == len(html)
        assert div.content_start == 12
        assert div.content_end == 14
        assert html[div.content_start : div.content_end] == "hi"

    def test_attribute_value_span_is_raw(self):
        html = '<a title="x &lt; y" href=go></a>'
        a = DOMTree(html).root.children[0]

        start, end = a.attr_spans["title"]
        assert a.attrs["title"] == "x < y"
        assert html[start:end] == "x &lt; y"
        start, end = a.attr_spans["href"]
        assert html[start:end] == "go"

    def test_byte_order_mark_is_skipped_not_removed(self):
        tree = DOMTree("\ufeff<p>x</p>")

        assert tree.root.children[0].start == 1

    def test_byte_order_mark_kept_when_not_discarded(self):
        tree = DOMTree("\ufeff<p>x</p>", tokenizer_opts=TokenizerOpts(discard_bom=False))

        assert type(tree.root.children[0]) is TextNode
        assert tree.root.children[0].data == "\ufeff"

    def test_line_endings_are_preserved(self):
        tree = DOMTree("<p>a\r\nb</p>")

        assert tree.root.children[0].children[0].data == "a\r\nb"


class TestRawTextAndReferences:
    def test_style_content_is_not_parsed_as_markup(self):
        tree = DOMTree("<style>a < b { --x: 1 } <p></style><p>ok</p>")
        style, p = _elements(tree.root)

        assert style.name == "style"
        assert len(style.children) == 1
        assert style.children[0].data == "a < b { --x: 1 } <p>"
        assert p.name == "p"

    def test_style_content_is_not_decoded(self):
        tree = DOMTree('<style>a{content:"&amp;"}</style>')

        assert "&amp;" in tree.root.children[0].children[0].data

    def test_style_end_tag_is_case_insensitive(self):
        tree = DOMTree("<style>a{}</STYLE ><div></div>")

        assert [child.name for child in tree.root.children] == ["style", "div"]

    def test_text_references_are_decoded(self):
        tree = DOMTree("<p>a &amp; b &#60; &#x3E;</p>")

        assert tree.root.children[0].children[0].data == "a & b < >"

    def test_title_is_decoded_but_not_parsed(self):
        tree = DOMTree("<title>a &amp; <b></title>")

        assert tree.root.children[0].children[0].data == "a & <b>"

    def test_lone_less_than_is_text(self):
        tree = DOMTree("<p>1 < 2</p>")

        assert tree.root.children[0].children[0].data == "1 < 2"

    def test_unterminated_style_runs_to_end(self):
        html = "<style>.a { --x: 1 }"
        tree = DOMTree(html, collect_errors=True)
        style = tree.root.children[0]

        assert style.children[0].data == ".a { --x: 1 }"
        assert style.content_end == len(html)
        assert "eof-in-rawtext" in _codes(tree)


class TestComments:
    def test_markup_inside_comment_yields_no_elements(self):
        tree = DOMTree("<!-- <style>a{}</style> --><div></div>")

        assert [child.name for child in tree.root.children] == ["#comment", "div"]
        assert tree.root.children[0].data == " <style>a{}</style> "

    def test_unterminated_comment(self):
        tree = DOMTree("<!-- abc", collect_errors=True)

        assert tree.root.children[0].data == " abc"
        assert _codes(tree) == ["eof-in-comment"]

    def test_processing_instruction_becomes_comment(self):
        tree = DOMTree('<?xml version="1.0"?><p></p>')

        assert [child.name for child in tree.root.children] == ["#comment", "p"]


class TestRecovery:
    def test_void_elements_take_no_children(self):
        tree = DOMTree("<div><br><img src=x><span></span></div>")
        div = tree.root.children[0]

        assert [child.name for child in div.children] == ["br", "img", "span"]
        assert div.children[0].children == []

    def test_self_closing_closes_any_element(self):
        tree = DOMTree("<div/><p></p>")

        assert [child.name for child in tree.root.children] == ["div", "p"]

    def test_unmatched_end_tag_is_ignored(self):
        tree = DOMTree("<div></span><p></p></div>", collect_errors=True)
        div = tree.root.children[0]

        assert [child.name for child in div.children] == ["p"]
        assert "unexpected-end-tag" in _codes(tree)

    def test_end_tag_closes_nearest_open_element(self):
        tree = DOMTree("<div><span><b>x</div><p></p>", collect_errors=True)

        assert [child.name for child in tree.root.children] == ["div", "p"]
        assert "end-tag-too-early" in _codes(tree)

    def test_list_items_close_each_other(self):
        tree = DOMTree("<ul><li>a<li>b</ul>")
        ul = tree.root.children[0]

        assert [child.name for child in ul.children] == ["li", "li"]

    def test_block_start_closes_paragraph(self):
        tree = DOMTree("<p>one<div>two</div>")

        assert [child.name for child in tree.root.children] == ["p", "div"]

    def test_table_cells_and_rows(self):
        tree = DOMTree("<table><tr><td>1<td>2<tr><td>3</table>")
        table = tree.root.children[0]

        assert [child.name for child in table.children] == ["tr", "tr"]
        assert [child.name for child in table.children[0].children] == ["td", "td"]

    def test_open_elements_close_at_end_of_text(self):
        html = "<div><span>x"
        tree = DOMTree(html, collect_errors=True)
        div = tree.root.children[0]
        span = div.children[0]

        assert div.end == len(html)
        assert span.end == len(html)
        assert _codes(tree) == ["expected-closing-tag-but-got-eof", "expected-closing-tag-but-got-eof"]

    def test_eof_inside_tag_drops_it(self):
        tree = DOMTree("<div class='a", collect_errors=True)

        assert tree.root.children == []
        assert _codes(tree) == ["eof-in-tag"]

    def test_errors_carry_line_and_column(self):
        tree = DOMTree("<div>\n</span></div>", collect_errors=True)
        error = tree.errors[0]

        assert error.code == "unexpected-end-tag"
        assert (error.line, error.column) == (2, 1)
        assert "</span>" in error.message

    def test_errors_not_collected_by_default(self):
        assert DOMTree("<div></span>").errors == []
