"""Tests for DOMTree: selector queries, element summaries and position lookup."""

from cssvars.parser import DOMTree, NodeInfo


def test_query_by_tag_and_class():
    tree = DOMTree('<div class="parent"><span class="text">Hello</span></div>')

    nodes = tree.query_selector_all("span.text")

    assert len(nodes) == 1
    assert nodes[0].tag_name == "span"
    assert nodes[0].classes == ("text",)
    assert nodes[0].id is None


def test_query_by_class_anywhere():
    tree = DOMTree('<div><p class="target">1</p><section><p class="target">2</p></section></div>')

    assert len(tree.query_selector_all(".target")) == 2


def test_descendant_queries():
    tree = DOMTree('<div><span class="inner">a</span></div><p><span class="inner">b</span></p>')

    assert len(tree.query_selector_all("div .inner")) == 1
    assert len(tree.query_selector_all("p .inner")) == 1
    assert len(tree.query_selector_all(".inner")) == 2


def test_child_versus_descendant():
    tree = DOMTree("<div><p>1</p><section><p>2</p></section></div>")

    assert len(tree.query_selector_all("div > p")) == 1
    assert len(tree.query_selector_all("div p")) == 2


def test_full_document():
    html = """<!DOCTYPE html>
<html>
  <head><style>:root { --main: red; }</style></head>
  <body>
    <div id="app" class="container main">
      <header><h1 class="title">Title</h1></header>
      <main><p class="content">Text</p></main>
    </div>
  </body>
</html>"""
    tree = DOMTree(html)

    app = tree.query_selector_all("#app")
    assert len(app) == 1
    assert app[0].tag_name == "div"
    assert app[0].classes == ("container", "main")
    assert [n.tag_name for n in tree.query_selector_all("body div > header h1.title")] == ["h1"]
    assert [n.tag_name for n in tree.query_selector_all("html > body > div > main > p")] == ["p"]
    assert tree.query_selector_all("head > p") == []


def test_invalid_selector_yields_nothing():
    tree = DOMTree("<div></div>")

    assert tree.query_selector_all("div[") == []
    assert tree.query_selector_all("") == []


def test_node_info_equality_ignores_element():
    tree = DOMTree('<p class="a b"></p><p class="a b"></p>')
    first, second = tree.query_selector_all("p")

    assert first == second
    assert first.element is not second.element
    assert NodeInfo.from_element(first.element) == first


def test_element_summary_properties():
    tree = DOMTree('<a ID="x" class=" one  two " href="/"></a>')
    a = tree.root.children[0]

    assert a.tag_name == "a"
    assert a.id == "x"
    assert a.classes == ["one", "two"]
    assert a.attrs["href"] == "/"


def test_find_node_at_position_returns_innermost_element():
    html = '<div><p>hello <b>world</b></p></div><span style="--x: 1"></span>'
    tree = DOMTree(html)

    assert tree.find_node_at_position(html.index("world")).name == "b"
    assert tree.find_node_at_position(html.index("hello")).name == "p"
    assert tree.find_node_at_position(html.index("--x")).name == "span"
    assert tree.find_node_at_position(len(html) + 10) is None


def test_matches_selector():
    tree = DOMTree('<div class="card"><p id="t"></p></div>')
    info = tree.query_selector_all("#t")[0]

    assert tree.matches_selector(info, ".card > p")
    assert tree.matches_selector(info.element, "div #t")
    assert not tree.matches_selector(info, "section p")
    assert not tree.matches_selector(info, "p[")


def test_get_root():
    tree = DOMTree("<p></p>")

    assert tree.get_root() is tree.root
    assert tree.root.name == "#document"


def test_empty_input():
    tree = DOMTree(None)

    assert tree.root.children == []
    assert tree.query_selector_all("div") == []
    assert tree.find_node_at_position(0) is None
