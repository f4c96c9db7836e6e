from __future__ import annotations

from typing import TYPE_CHECKING

from .cssparser import CssParser, Declaration, find_var_calls
from .document import LineIndex
from .extractor import OffsetMap
from .models import VariableDefinition, VariableUsage
from .tokens import ParseError

if TYPE_CHECKING:
    from .models import Range
    from .parser import NodeInfo

INLINE_STYLE_CONTEXT = "inline-style"


def index(
    css_text: str,
    offset_map: OffsetMap,
    uri: str,
    *,
    line_index: LineIndex | None = None,
    usage_context: str | None = None,
    dom_node: NodeInfo | None = None,
    errors: list[ParseError] | None = None,
) -> tuple[list[VariableDefinition], list[VariableUsage]]:
    """Index the custom property definitions and ``var()`` usages of one CSS segment.

    Args:
        css_text: The segment text
        offset_map: Maps segment offsets to offsets in the original document
        uri: Document URI recorded on every produced item
        line_index: Line index of the original document; defaults to one
            built from ``css_text``, which is only correct for whole-file CSS
        usage_context: When set, ``css_text`` is parsed as a bare declaration
            list (an inline ``style`` attribute) and this string is used as the
            selector of definitions and the context of usages
        dom_node: Element the inline declarations belong to, recorded on usages
        errors: When given, CSS parse errors are appended with document offsets

    Returns:
        ``(definitions, usages)`` in source order
    """
    if line_index is None:
        line_index = LineIndex(css_text)
    parser = CssParser(css_text, collect_errors=errors is not None)

    definitions: list[VariableDefinition] = []
    usages: list[VariableUsage] = []

    def to_range(start: int, end: int) -> Range:
        return line_index.range_of(offset_map.to_document(start), offset_map.to_document(end))

    def add(declarations: tuple[Declaration, ...] | list[Declaration], selector: str, node: NodeInfo | None) -> None:
        for declaration in declarations:
            if declaration.is_custom_property:
                definitions.append(
                    VariableDefinition(
                        name=declaration.name,
                        value=declaration.value,
                        selector=selector,
                        uri=uri,
                        range=to_range(declaration.start, declaration.end),
                        important=declaration.important,
                        source_position=offset_map.to_document(declaration.start),
                    )
                )
            for call in find_var_calls(css_text, declaration.value_start, declaration.end):
                usages.append(VariableUsage(call.name, selector, uri, to_range(call.start, call.end), node))

    if usage_context is not None:
        add(parser.parse_declarations(), usage_context, dom_node)
    else:
        for rule in parser.parse_rules():
            for selector in rule.selectors:
                add(rule.declarations, selector, None)

    if errors is not None:
        for error in parser.errors:
            offset = offset_map.to_document(error.offset or 0)
            position = line_index.position_at(offset)
            errors.append(ParseError(error.code, position.line + 1, position.character + 1, error.message, offset))

    return definitions, usages
