"""
Tests for the tolerant CSS scanner: rules, declarations, selectors, var()
calls and error recovery.
"""

import pytest

from cssvars.cssparser import (
    CssParser,
    find_var_calls,
    normalize_selector,
    parse_inline_declarations,
    parse_rules,
    split_selector_list,
)


def _codes(parser):
    return [error.code for error in parser.errors]


class TestRules:
    def test_rule_with_declarations(self):
        css = ":root { --main-color: red; color: blue }"

        (rule,) = parse_rules(css)

        assert rule.selectors == (":root",)
        assert [(d.name, d.value) for d in rule.declarations] == [("--main-color", "red"), ("color", "blue")]
        assert rule.declarations[0].is_custom_property
        assert not rule.declarations[1].is_custom_property

    def test_declaration_offsets(self):
        css = "a { --x : 1px ; }"

        declaration = parse_rules(css)[0].declarations[0]

        assert css[declaration.start : declaration.end] == "--x : 1px"
        assert css[declaration.value_start :].startswith(" 1px")

    def test_selector_list_is_split(self):
        (rule,) = parse_rules("h1,\n  .title > span , a[href='x,y'] { --a: 1 }")

        assert rule.selectors == ("h1", ".title > span", "a[href='x,y']")

    def test_selector_keeps_written_combinators(self):
        (rule,) = parse_rules("div>p, ul  >  li { --a: 1 }")

        assert rule.selectors == ("div>p", "ul > li")

    def test_important_flag(self):
        declarations = parse_rules("a { --a: 1 !important; --b: 2 ! IMPORTANT; --c: '!important' }")[0].declarations

        assert [(d.value, d.important) for d in declarations] == [
            ("1", True),
            ("2", True),
            ("'!important'", False),
        ]

    def test_at_rules_are_skipped(self):
        css = (
            "@import url('x.css');\n"
            "@media (min-width: 10px) { :root { --m: 1 } }\n"
            "@font-face { font-family: x }\n"
            ".a { --a: 1 }"
        )

        rules = parse_rules(css)

        assert [rule.selectors for rule in rules] == [(".a",)]

    def test_nested_rules_are_skipped(self):
        (rule,) = parse_rules(".a { --a: 1; &:hover { --b: 2 } --c: 3 }")

        assert [d.name for d in rule.declarations] == ["--a", "--c"]

    def test_comments_are_ignored(self):
        css = "/* :root { --x: 1 } */ .a /* c */ { /* --y: 2; */ --z: /* c */ 3 }"

        (rule,) = parse_rules(css)

        assert rule.selectors == (".a",)
        assert [(d.name, d.value) for d in rule.declarations] == [("--z", "3")]

    def test_strings_may_contain_braces_and_semicolons(self):
        (rule,) = parse_rules('.a { --s: "}; {"; --t: 1 }')

        assert [(d.name, d.value) for d in rule.declarations] == [("--s", '"}; {"'), ("--t", "1")]

    def test_value_keeps_nested_parentheses(self):
        (rule,) = parse_rules(".a { --g: linear-gradient(rgb(0, 0, 0), var(--x, red)); }")

        assert rule.declarations[0].value == "linear-gradient(rgb(0, 0, 0), var(--x, red))"

    def test_empty_custom_property_value(self):
        (rule,) = parse_rules(".a { --empty: ; }")

        assert rule.declarations[0].value == ""

    def test_html_comment_markers_are_skipped(self):
        rules = parse_rules("<!-- .a { --a: 1 } -->")

        assert [rule.selectors for rule in rules] == [(".a",)]


class TestRecovery:
    def test_missing_colon_drops_declaration(self):
        parser = CssParser(".a { oops; --b: 1 }", collect_errors=True)

        (rule,) = parser.parse_rules()

        assert [d.name for d in rule.declarations] == ["--b"]
        assert _codes(parser) == ["css-missing-colon"]

    def test_stray_close_brace(self):
        parser = CssParser("} .a { --a: 1 }", collect_errors=True)

        rules = parser.parse_rules()

        assert len(rules) == 1
        assert _codes(parser) == ["css-unexpected-close-brace"]

    def test_unterminated_block_keeps_declarations(self):
        parser = CssParser(".a { --a: 1", collect_errors=True)

        (rule,) = parser.parse_rules()

        assert rule.declarations[0].value == "1"
        assert _codes(parser) == ["css-unterminated-block"]

    def test_empty_selector(self):
        parser = CssParser("{ --a: 1 } .b { --b: 2 }", collect_errors=True)

        rules = parser.parse_rules()

        assert [rule.selectors for rule in rules] == [(".b",)]
        assert _codes(parser) == ["css-empty-selector"]

    def test_declaration_outside_block(self):
        parser = CssParser("--a: 1; .b { --b: 2 }", collect_errors=True)

        rules = parser.parse_rules()

        assert len(rules) == 1
        assert _codes(parser) == ["css-missing-block"]

    def test_unterminated_comment(self):
        parser = CssParser(".a { --a: 1 } /* open", collect_errors=True)

        assert len(parser.parse_rules()) == 1
        assert _codes(parser) == ["css-unterminated-comment"]

    def test_error_positions(self):
        parser = CssParser(".a {\n  bad;\n}", collect_errors=True)
        parser.parse_rules()

        (error,) = parser.errors
        assert (error.line, error.column, error.offset) == (2, 3, 7)

    def test_errors_not_collected_by_default(self):
        parser = CssParser(".a { bad }")
        parser.parse_rules()

        assert parser.errors == []

    def test_never_raises_on_garbage(self):
        for text in ["{{{", "}}}", "a{b{c", "@", '"', "/*", "a{--x:var(", "\\"]:
            parse_rules(text, collect_errors=True)


class TestInlineDeclarations:
    def test_bare_declaration_list(self):
        declarations = parse_inline_declarations("color: var(--fg); --bg: white")

        assert [(d.name, d.value) for d in declarations] == [("color", "var(--fg)"), ("--bg", "white")]

    def test_offsets_are_relative_to_attribute_value(self):
        text = "  --a: 1"

        (declaration,) = parse_inline_declarations(text)

        assert declaration.start == 2


class TestSelectors:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("div   >  p", "div > p"),
            ("div>p", "div>p"),
            ("a+b~c", "a+b~c"),
            ("  .a\n\t.b  ", ".a .b"),
            (".a /* x */ .b", ".a .b"),
            ("a[title='x  > y']", "a[title='x  > y']"),
            ("li:nth-child(2n + 1)", "li:nth-child(2n + 1)"),
        ],
    )
    def test_normalize(self, raw, expected):
        assert normalize_selector(raw) == expected

    def test_split_ignores_nested_commas(self):
        assert split_selector_list(":is(a, b), c") == [":is(a, b)", "c"]

    def test_split_drops_empty_branches(self):
        assert split_selector_list("a,, b,") == ["a", "b"]


class TestVarCalls:
    def test_finds_calls_with_offsets(self):
        text = "color: var(--a); margin: VAR( --b , 2px )"

        calls = find_var_calls(text)

        assert [call.name for call in calls] == ["--a", "--b"]
        assert text[calls[0].start : calls[0].end] == "var(--a)"
        assert text[calls[1].start : calls[1].end] == "VAR( --b , 2px )"

    def test_nested_fallback_is_not_reported(self):
        calls = find_var_calls("var(--outer, var(--inner))")

        assert [call.name for call in calls] == ["--outer"]

    def test_calls_in_other_functions(self):
        calls = find_var_calls("calc(var(--a) * 2) rgb(var(--b))")

        assert [call.name for call in calls] == ["--a", "--b"]

    def test_names_are_case_sensitive(self):
        assert [call.name for call in find_var_calls("var(--Main)")] == ["--Main"]

    def test_strings_and_comments_are_skipped(self):
        assert find_var_calls("'var(--a)' /* var(--b) */ \"var(--c)\"") == []

    def test_rejects_non_custom_names(self):
        assert find_var_calls("var(a) var(--) myvar(--x)") == []

    def test_unterminated_call_runs_to_end(self):
        text = "var(--a, 1"

        (call,) = find_var_calls(text)

        assert call.end == len(text)

    def test_search_window(self):
        text = "var(--a) var(--b)"

        assert [call.name for call in find_var_calls(text, 9)] == ["--b"]
        assert [call.name for call in find_var_calls(text, 0, 8)] == ["--a"]
