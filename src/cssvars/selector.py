# Selector engine for the markup tree.
#
# Selector text is lexed into (kind, value) pairs, parsed into a small AST
# (SelectorList > ComplexSelector > CompoundSelector > SimpleSelector) and
# matched right to left against elements.

from __future__ import annotations

import re
from typing import Any


class SelectorError(ValueError):
    """Raised when selector text cannot be compiled."""


# Pseudo-classes the matcher evaluates. Any other pseudo-class, and every
# pseudo-element, is dropped while lexing and leaves a "*" in its place.
SUPPORTED_PSEUDO_CLASSES: frozenset[str] = frozenset(
    {
        "root",
        "empty",
        "not",
        "first-child",
        "last-child",
        "only-child",
        "nth-child",
        "first-of-type",
        "last-of-type",
        "only-of-type",
        "nth-of-type",
    }
)

_NTH_PSEUDO_CLASSES = frozenset({"nth-child", "nth-of-type"})

# Lexeme kinds. The first six double as SimpleSelector kinds.
TAG = "tag"
ID = "id"
CLASS = "class"
UNIVERSAL = "universal"
ATTR = "attr"
PSEUDO = "pseudo"
CHILD = "child"
DESCENDANT = "descendant"
COMMA = "comma"
EOF = "eof"

_SIMPLE_KINDS = frozenset({TAG, ID, CLASS, UNIVERSAL, ATTR, PSEUDO})

_WHITESPACE = " \t\n\r\f"
# Two-character operators first so "~=" is not read as "~"
_ATTR_OPERATORS = ("~=", "|=", "^=", "$=", "*=", "=")

_NTH_PATTERN = re.compile(r"^(?:([+-]?\d*)n([+-]\d+)?|([+-]?\d+))$")

Lexeme = tuple[str, Any]


class SelectorTokenizer:
    """Splits selector text into lexemes.

    Whitespace between two compounds becomes a DESCENDANT lexeme. ``+`` and
    ``~`` are read as whitespace, so sibling combinators behave like the
    descendant combinator.
    """

    __slots__ = ("length", "pos", "text")

    text: str
    pos: int
    length: int

    def __init__(self, text: str) -> None:
        self.text = text
        self.pos = 0
        self.length = len(text)

    def _peek(self, ahead: int = 0) -> str:
        pos = self.pos + ahead
        return self.text[pos] if pos < self.length else ""

    def _skip_whitespace(self) -> None:
        while self.pos < self.length and self.text[self.pos] in _WHITESPACE:
            self.pos += 1

    def _read_name(self) -> str:
        parts: list[str] = []
        text = self.text
        while self.pos < self.length:
            ch = text[self.pos]
            if ch == "\\" and self.pos + 1 < self.length:
                # .md\:flex
                parts.append(text[self.pos + 1])
                self.pos += 2
            elif _is_name_char(ch):
                parts.append(ch)
                self.pos += 1
            else:
                break
        return "".join(parts)

    def tokenize(self) -> list[Lexeme]:
        lexemes: list[Lexeme] = []
        pending_space = False

        while self.pos < self.length:
            ch = self.text[self.pos]

            if ch in _WHITESPACE or ch == "+" or ch == "~":
                pending_space = True
                self.pos += 1
                continue

            if ch == ">" or ch == ",":
                lexemes.append((CHILD if ch == ">" else COMMA, None))
                pending_space = False
                self.pos += 1
                continue

            if pending_space and lexemes and lexemes[-1][0] in _SIMPLE_KINDS:
                lexemes.append((DESCENDANT, None))
            pending_space = False
            lexemes.append(self._read_simple(ch))

        lexemes.append((EOF, None))
        return lexemes

    def _read_simple(self, ch: str) -> Lexeme:
        if ch == "*":
            self.pos += 1
            return UNIVERSAL, None

        if ch == "#" or ch == ".":
            self.pos += 1
            name = self._read_name()
            if not name:
                raise SelectorError(f"Expected a name after {ch!r} at position {self.pos}")
            return (ID if ch == "#" else CLASS), name

        if ch == "[":
            return self._read_attribute()

        if ch == ":":
            return self._read_pseudo()

        if _is_name_start(ch):
            return TAG, self._read_name().lower()

        raise SelectorError(f"Unexpected character {ch!r} at position {self.pos}")

    def _read_attribute(self) -> Lexeme:
        self.pos += 1
        self._skip_whitespace()
        name = self._read_name()
        if not name:
            raise SelectorError(f"Expected an attribute name at position {self.pos}")
        self._skip_whitespace()

        operator: str | None = None
        value: str | None = None
        if self._peek() != "]":
            for candidate in _ATTR_OPERATORS:
                if self.text.startswith(candidate, self.pos):
                    operator = candidate
                    self.pos += len(candidate)
                    break
            else:
                raise SelectorError(f"Unexpected {self._peek()!r} in attribute selector at position {self.pos}")

            self._skip_whitespace()
            value = self._read_attribute_value()
            self._skip_whitespace()
            # [type=a i] and [type=a s]: flags are accepted and ignored
            if self._peek() in ("i", "I", "s", "S") and self._peek(1) in (" ", "]"):
                self.pos += 1
                self._skip_whitespace()

        if self._peek() != "]":
            raise SelectorError(f"Expected ] at position {self.pos}")
        self.pos += 1
        return ATTR, (name.lower(), operator, value)

    def _read_attribute_value(self) -> str:
        quote = self._peek()
        if quote != '"' and quote != "'":
            start = self.pos
            while self.pos < self.length and self.text[self.pos] not in _WHITESPACE and self.text[self.pos] != "]":
                self.pos += 1
            if self.pos == start:
                raise SelectorError(f"Expected an attribute value at position {self.pos}")
            return self.text[start : self.pos]

        self.pos += 1
        parts: list[str] = []
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch == quote:
                self.pos += 1
                return "".join(parts)
            if ch == "\\" and self.pos + 1 < self.length:
                ch = self.text[self.pos + 1]
                self.pos += 1
            parts.append(ch)
            self.pos += 1
        raise SelectorError(f"Unterminated string in selector {self.text!r}")

    def _read_pseudo(self) -> Lexeme:
        self.pos += 1
        pseudo_element = self._peek() == ":"
        if pseudo_element:
            self.pos += 1

        name = self._read_name().lower()
        if not name:
            raise SelectorError(f"Expected a pseudo-class name at position {self.pos}")
        arg = self._read_argument() if self._peek() == "(" else None

        if pseudo_element or name not in SUPPORTED_PSEUDO_CLASSES:
            return UNIVERSAL, None
        return PSEUDO, (name, arg)

    def _read_argument(self) -> str:
        """Consume a balanced ``( ... )`` group and return its stripped contents."""
        start = self.pos + 1
        depth = 0
        while self.pos < self.length:
            ch = self.text[self.pos]
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth == 0:
                    self.pos += 1
                    return self.text[start : self.pos - 1].strip()
            self.pos += 1
        raise SelectorError(f"Expected ) before the end of {self.text!r}")


def _is_name_start(ch: str) -> bool:
    return ch.isalpha() or ch == "_" or ch == "-" or ord(ch) > 127


def _is_name_char(ch: str) -> bool:
    return _is_name_start(ch) or ch.isdigit()


class SimpleSelector:
    """One predicate: a tag, id, class, ``*``, attribute test or pseudo-class.

    ``value`` holds the attribute value, the ``(a, b)`` pair of an nth
    pseudo-class, or the compiled argument of ``:not()``.
    """

    __slots__ = ("kind", "name", "operator", "value")

    kind: str
    name: str | None
    operator: str | None
    value: Any

    def __init__(self, kind: str, name: str | None = None, operator: str | None = None, value: Any = None) -> None:
        self.kind = kind
        self.name = name
        self.operator = operator
        self.value = value

    def __repr__(self) -> str:
        return f"SimpleSelector({self.kind}, {self.name!r}, {self.operator!r}, {self.value!r})"


class CompoundSelector:
    """Simple selectors that must all hold for the same element (``p.note#x``)."""

    __slots__ = ("selectors",)

    selectors: list[SimpleSelector]

    def __init__(self, selectors: list[SimpleSelector]) -> None:
        self.selectors = selectors

    def __repr__(self) -> str:
        return f"CompoundSelector({self.selectors!r})"


class ComplexSelector:
    """Compounds joined by combinators.

    ``parts`` is a list of ``(combinator, compound)`` pairs. The first
    combinator is None; later ones are ``" "`` (descendant) or ``">"`` (child).
    """

    __slots__ = ("parts",)

    parts: list[tuple[str | None, CompoundSelector]]

    def __init__(self) -> None:
        self.parts = []

    def __repr__(self) -> str:
        return f"ComplexSelector({self.parts!r})"


class SelectorList:
    __slots__ = ("selectors",)

    selectors: list[ComplexSelector]

    def __init__(self, selectors: list[ComplexSelector]) -> None:
        self.selectors = selectors

    def __repr__(self) -> str:
        return f"SelectorList({self.selectors!r})"


ParsedSelector = ComplexSelector | SelectorList


class SelectorParser:
    """Builds the selector AST from lexemes."""

    __slots__ = ("lexemes", "pos")

    lexemes: list[Lexeme]
    pos: int

    def __init__(self, lexemes: list[Lexeme]) -> None:
        self.lexemes = lexemes
        self.pos = 0

    def _kind(self) -> str:
        return self.lexemes[self.pos][0] if self.pos < len(self.lexemes) else EOF

    def parse(self) -> ParsedSelector:
        branches = [self._parse_complex()]
        while self._kind() == COMMA:
            self.pos += 1
            branches.append(self._parse_complex())

        if self._kind() != EOF:
            raise SelectorError(f"Unexpected {self._kind()} in selector")
        return branches[0] if len(branches) == 1 else SelectorList(branches)

    def _parse_complex(self) -> ComplexSelector:
        selector = ComplexSelector()
        selector.parts.append((None, self._parse_compound()))
        while self._kind() in (CHILD, DESCENDANT):
            combinator = ">" if self._kind() == CHILD else " "
            self.pos += 1
            selector.parts.append((combinator, self._parse_compound()))
        return selector

    def _parse_compound(self) -> CompoundSelector:
        simples: list[SimpleSelector] = []
        while self._kind() in _SIMPLE_KINDS:
            kind, value = self.lexemes[self.pos]
            self.pos += 1
            if kind == ATTR:
                name, operator, attr_value = value
                simples.append(SimpleSelector(ATTR, name, operator, attr_value))
            elif kind == PSEUDO:
                simples.append(_compile_pseudo(*value))
            else:
                simples.append(SimpleSelector(kind, value))

        if not simples:
            raise SelectorError(f"Expected a selector, got {self._kind()}")
        return CompoundSelector(simples)


def _compile_pseudo(name: str, arg: str | None) -> SimpleSelector:
    if name in _NTH_PSEUDO_CLASSES:
        if not arg:
            raise SelectorError(f":{name}() needs an argument")
        return SimpleSelector(PSEUDO, name, value=_parse_nth(arg))

    if name == "not":
        if not arg:
            raise SelectorError(":not() needs an argument")
        return SimpleSelector(PSEUDO, name, value=parse_selector(arg))

    if arg is not None:
        raise SelectorError(f":{name} takes no argument")
    return SimpleSelector(PSEUDO, name)


def _parse_nth(expr: str) -> tuple[int, int]:
    """Parse ``odd``, ``even``, ``3`` or ``An+B`` into ``(a, b)``."""
    compact = "".join(expr.split()).lower()
    if compact == "odd":
        return 2, 1
    if compact == "even":
        return 2, 0

    found = _NTH_PATTERN.match(compact)
    if found is None:
        raise SelectorError(f"Invalid nth expression {expr!r}")
    step, offset, constant = found.groups()
    if constant is not None:
        return 0, int(constant)
    if step in ("", "+"):
        a = 1
    elif step == "-":
        a = -1
    else:
        a = int(step)
    return a, int(offset) if offset else 0


def _is_element(node: Any) -> bool:
    # Document, text and comment names start with "#", doctypes with "!"
    return not node.name.startswith(("#", "!"))


def _element_children(parent: Any) -> list[Any]:
    if parent is None:
        return []
    return [child for child in parent.children or () if _is_element(child)]


def _position(node: Any, of_type: bool) -> tuple[int, int]:
    """1-based index of ``node`` among its element siblings, and their count."""
    siblings = _element_children(node.parent)
    if of_type:
        siblings = [sibling for sibling in siblings if sibling.name == node.name]
    for index, sibling in enumerate(siblings):
        if sibling is node:
            return index + 1, len(siblings)
    return 0, 0


def _nth_matches(index: int, a: int, b: int) -> bool:
    if index <= 0:
        return False
    if a == 0:
        return index == b
    steps, remainder = divmod(index - b, a)
    return remainder == 0 and steps >= 0


def _attribute_matches(actual: str | None, operator: str | None, expected: str | None) -> bool:
    if actual is None:
        return False
    if operator is None:
        return True

    expected = expected or ""
    if operator == "=":
        return actual == expected
    if operator == "~=":
        return expected in actual.split()
    if operator == "|=":
        return actual == expected or actual.startswith(expected + "-")
    # Substring operators never match an empty value
    if not expected:
        return False
    if operator == "^=":
        return actual.startswith(expected)
    if operator == "$=":
        return actual.endswith(expected)
    return expected in actual


class SelectorMatcher:
    """Evaluates compiled selectors against elements."""

    __slots__ = ()

    def matches(self, node: Any, selector: ParsedSelector) -> bool:
        if isinstance(selector, SelectorList):
            return any(self._matches_complex(node, branch) for branch in selector.selectors)
        return self._matches_complex(node, selector)

    def _matches_complex(self, node: Any, selector: ComplexSelector) -> bool:
        """Match a complex selector right to left.

        A descendant step may be satisfied by several ancestors; if the
        nearest one cannot complete the chain, farther ones are tried. The
        walk is driven by an explicit stack of (part index, matched node).
        """
        parts = selector.parts
        if not self._matches_compound(node, parts[-1][1]):
            return False

        stack: list[tuple[int, Any]] = [(len(parts) - 1, node)]
        seen: set[tuple[int, int]] = set()
        while stack:
            index, current = stack.pop()
            if index == 0:
                return True

            combinator = parts[index][0]
            previous = parts[index - 1][1]

            if combinator == ">":
                parent = current.parent
                if parent is not None and self._matches_compound(parent, previous):
                    stack.append((index - 1, parent))
                continue

            # Descendant: push every matching ancestor, nearest on top
            candidates: list[tuple[int, Any]] = []
            ancestor = current.parent
            while ancestor is not None:
                key = (index - 1, id(ancestor))
                if key not in seen and self._matches_compound(ancestor, previous):
                    seen.add(key)
                    candidates.append((index - 1, ancestor))
                ancestor = ancestor.parent
            stack.extend(reversed(candidates))

        return False

    def _matches_compound(self, node: Any, compound: CompoundSelector) -> bool:
        if not _is_element(node):
            return False
        return all(self._matches_simple(node, simple) for simple in compound.selectors)

    def _matches_simple(self, node: Any, simple: SimpleSelector) -> bool:
        kind = simple.kind
        if kind == UNIVERSAL:
            return True
        if kind == TAG:
            # Both sides are lower-cased when parsed
            return node.name == simple.name
        if kind == ID:
            return node.attrs.get("id") == simple.name
        if kind == CLASS:
            return simple.name in node.attrs.get("class", "").split()
        if kind == ATTR:
            return _attribute_matches(node.attrs.get(simple.name), simple.operator, simple.value)
        return self._matches_pseudo(node, simple)

    def _matches_pseudo(self, node: Any, simple: SimpleSelector) -> bool:
        name = simple.name

        if name == "root":
            parent = node.parent
            return parent is not None and parent.name == "#document"

        if name == "empty":
            for child in node.children:
                if child.name == "#comment":
                    continue
                if child.name != "#text" or child.data:
                    return False
            return True

        if name == "not":
            return not self.matches(node, simple.value)

        of_type = name.endswith("-of-type")
        index, count = _position(node, of_type)
        if name.startswith("first-"):
            return index == 1
        if name.startswith("last-"):
            return index > 0 and index == count
        if name.startswith("only-"):
            return index == 1 and count == 1
        return _nth_matches(index, *simple.value)


def parse_selector(selector_string: str) -> ParsedSelector:
    """Compile selector text.

    Raises:
        SelectorError: If the selector is empty or malformed
    """
    text = selector_string.strip() if selector_string else ""
    if not text:
        raise SelectorError("Empty selector")
    return SelectorParser(SelectorTokenizer(text).tokenize()).parse()


_matcher: SelectorMatcher = SelectorMatcher()


def _iter_elements(root: Any) -> list[Any]:
    """Return the elements below root in document (pre-order) order."""
    elements: list[Any] = []
    stack: list[Any] = list(reversed(root.children or ()))
    while stack:
        node = stack.pop()
        if not _is_element(node):
            continue
        elements.append(node)
        if node.children:
            stack.extend(reversed(node.children))
    return elements


def query(root: Any, selector_string: str) -> list[Any]:
    """
    Return the elements below root that match, in document order.

    Root itself is never included. An element matched by several branches of
    a selector list appears once.

    Raises:
        SelectorError: If the selector is invalid
    """
    selector = parse_selector(selector_string)
    return [node for node in _iter_elements(root) if _matcher.matches(node, selector)]


def match(root: Any, selector_string: str) -> list[Any]:
    """Best-effort variant of :func:`query`: invalid selectors match nothing."""
    try:
        return query(root, selector_string)
    except SelectorError:
        return []


def matches(node: Any, selector_string: str) -> bool:
    """
    Check whether one element matches.

    Raises:
        SelectorError: If the selector is invalid
    """
    return _matcher.matches(node, parse_selector(selector_string))
