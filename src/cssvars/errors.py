"""Human-readable messages for the error codes emitted while parsing.

Markup codes come from the tokenizer and tree builder, ``css-*`` codes from
the stylesheet scanner in :mod:`cssvars.cssparser`.
"""

from __future__ import annotations

from bisect import bisect_right

# "{tag}" in a template is replaced by the element the error is about
_MESSAGES: dict[str, str] = {
    # Markup tokenizer
    "eof-in-doctype": "End of input inside a <!DOCTYPE>",
    "eof-in-comment": "End of input inside a comment",
    "abrupt-closing-of-empty-comment": "Empty comment closed with <!--> or <!--->",
    "incorrectly-opened-comment": "Markup declaration is not a comment or DOCTYPE",
    "eof-in-tag": "End of input inside a tag; the tag is dropped",
    "eof-before-tag-name": "End of input right after <",
    "empty-end-tag": "</> has no tag name and is ignored",
    "invalid-first-character-of-tag-name": "< is not followed by a tag name and is kept as text",
    "unexpected-question-mark-instead-of-tag-name": "<? processing instruction read as a comment",
    "unexpected-solidus-in-tag": "Stray / inside a tag",
    "duplicate-attribute": "Repeated attribute; the first value is kept",
    "missing-attribute-value": "= is not followed by an attribute value",
    "missing-whitespace-between-attributes": "Attributes are not separated by whitespace",
    "unexpected-equals-sign-before-attribute-name": "= where an attribute name was expected",
    "end-tag-with-attributes": "End tag carries attributes",
    "eof-in-rawtext": "End of input before </{tag}>",
    # Tree builder
    "unexpected-doctype": "<!DOCTYPE> after the first element",
    "unexpected-end-tag": "</{tag}> has no open element and is ignored",
    "end-tag-too-early": "</{tag}> also closes elements opened inside it",
    "expected-closing-tag-but-got-eof": "<{tag}> is still open at the end of input",
    "non-void-html-element-start-tag-with-trailing-solidus": "<{tag}/> closes an element that is not void",
    # Stylesheets
    "css-unterminated-comment": "Unterminated /* comment",
    "css-unterminated-string": "Unterminated string",
    "css-unterminated-block": "Declaration block is missing its closing }",
    "css-unexpected-close-brace": "Unexpected } outside of a block",
    "css-missing-block": "Selector is not followed by a { block",
    "css-empty-selector": "Rule has an empty selector",
    "css-missing-colon": "Declaration is missing a colon",
    "css-empty-property": "Declaration has an empty property name",
    "css-invalid-property": "Property name contains whitespace",
}


def generate_error_message(code: str, tag_name: str | None = None) -> str:
    """Return the message for ``code``, or the code itself when unknown."""
    template = _MESSAGES.get(code)
    if template is None:
        return code
    # Plain replace: several templates contain literal braces
    return template.replace("{tag}", tag_name or "")


def line_and_column(newline_positions: list[int], pos: int) -> tuple[int, int]:
    """Return the 1-indexed (line, column) of ``pos``.

    ``newline_positions`` holds the offsets of every "\\n" in the source, in
    order.
    """
    line_index = bisect_right(newline_positions, pos - 1)
    line_start = newline_positions[line_index - 1] + 1 if line_index else 0
    return line_index + 1, pos - line_start + 1


def newline_positions(text: str) -> list[int]:
    positions: list[int] = []
    pos = -1
    while True:
        pos = text.find("\n", pos + 1)
        if pos == -1:
            return positions
        positions.append(pos)
