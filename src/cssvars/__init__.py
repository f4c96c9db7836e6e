from .cssparser import Declaration, Rule, parse_inline_declarations, parse_rules
from .document import LineIndex, TextDocument
from .extractor import CssSegment, OffsetMap, extract
from .indexer import index
from .manager import CssVariableManager, DocumentIndex
from .models import Position, Range, VariableDefinition, VariableReference, VariableUsage
from .node import ElementNode, SimpleDomNode, TextNode
from .parser import DOMTree, NodeInfo
from .selector import SelectorError, match, matches, parse_selector, query
from .tokens import ParseError

__all__ = [
    "CssSegment",
    "CssVariableManager",
    "DOMTree",
    "Declaration",
    "DocumentIndex",
    "ElementNode",
    "LineIndex",
    "NodeInfo",
    "OffsetMap",
    "ParseError",
    "Position",
    "Range",
    "Rule",
    "SelectorError",
    "SimpleDomNode",
    "TextDocument",
    "TextNode",
    "VariableDefinition",
    "VariableReference",
    "VariableUsage",
    "extract",
    "index",
    "match",
    "matches",
    "parse_inline_declarations",
    "parse_rules",
    "parse_selector",
    "query",
]
