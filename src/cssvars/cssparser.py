"""A tolerant scanner for the parts of CSS the variable index needs.

Only top-level qualified rules and their declarations are produced. Comments,
strings, escapes and bracket nesting are respected while scanning; at-rules
and rules nested inside a block are skipped whole. Malformed input never
raises: the offending rule or declaration is dropped and, when errors are
being collected, a :class:`~cssvars.tokens.ParseError` is recorded.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from .errors import generate_error_message, line_and_column, newline_positions
from .tokens import ParseError

_IMPORTANT_PATTERN = re.compile(r"!\s*important\s*$", re.IGNORECASE)
_COMMENT_PATTERN = re.compile(r"/\*.*?(?:\*/|$)", re.DOTALL)
_WHITESPACE = " \t\n\r\f"
_OPENERS = "(["
_CLOSERS = ")]"


@dataclass(frozen=True)
class Declaration:
    """``name: value`` with offsets relative to the scanned text.

    ``start``/``end`` span the declaration without its trailing ``;``.
    ``value_start`` is the first character after the colon.
    """

    name: str
    value: str
    important: bool
    start: int
    end: int
    value_start: int

    @property
    def is_custom_property(self) -> bool:
        return self.name.startswith("--")


@dataclass(frozen=True)
class Rule:
    selector_text: str
    selectors: tuple[str, ...]
    declarations: tuple[Declaration, ...]
    start: int
    end: int


@dataclass(frozen=True)
class VarCall:
    """One ``var(--name, fallback)`` call; ``end`` is just past the ``)``."""

    name: str
    start: int
    end: int


def _is_name_char(ch: str) -> bool:
    return ch.isalnum() or ch in "-_" or ord(ch) > 127


class CssParser:
    """Scans one piece of CSS text."""

    __slots__ = ("_newlines", "collect_errors", "errors", "length", "pos", "text")

    text: str
    pos: int
    length: int
    collect_errors: bool
    errors: list[ParseError]

    def __init__(self, text: str, collect_errors: bool = False) -> None:
        self.text = text
        self.pos = 0
        self.length = len(text)
        self.collect_errors = collect_errors
        self.errors = []
        self._newlines: list[int] | None = None

    def _error(self, code: str, offset: int) -> None:
        if not self.collect_errors:
            return
        if self._newlines is None:
            self._newlines = newline_positions(self.text)
        line, column = line_and_column(self._newlines, offset)
        self.errors.append(
            ParseError(code, line=line, column=column, message=generate_error_message(code), offset=offset)
        )

    # Low-level scanning ----------------------------------------------------

    def _skip_comment(self) -> None:
        """Skip a comment starting at ``pos`` (which points at ``/*``)."""
        end = self.text.find("*/", self.pos + 2)
        if end == -1:
            self._error("css-unterminated-comment", self.pos)
            self.pos = self.length
        else:
            self.pos = end + 2

    def _skip_string(self) -> None:
        """Skip a quoted string; an unescaped newline ends it unterminated."""
        start = self.pos
        quote = self.text[start]
        pos = start + 1
        while pos < self.length:
            ch = self.text[pos]
            if ch == "\\":
                pos += 2
                continue
            if ch == quote:
                self.pos = pos + 1
                return
            if ch == "\n":
                break
            pos += 1
        self._error("css-unterminated-string", start)
        self.pos = min(pos, self.length)

    def _skip_trivia(self) -> None:
        """Skip whitespace, comments and the legacy ``<!--``/``-->`` markers."""
        text = self.text
        while self.pos < self.length:
            ch = text[self.pos]
            if ch in _WHITESPACE:
                self.pos += 1
            elif text.startswith("/*", self.pos):
                self._skip_comment()
            elif text.startswith("<!--", self.pos):
                self.pos += 4
            elif text.startswith("-->", self.pos):
                self.pos += 3
            else:
                return

    def _scan_until(self, stops: str) -> str | None:
        """Advance to the next stop character and return it, or None at EOF.

        ``{`` and ``}`` stop at any nesting depth when listed; other stop
        characters only count outside parentheses and brackets.
        """
        text = self.text
        depth = 0
        while self.pos < self.length:
            ch = text[self.pos]
            if ch in "{}":
                if ch in stops:
                    return ch
                self.pos += 1
            elif ch == "\\":
                self.pos += 2
            elif ch == '"' or ch == "'":
                self._skip_string()
            elif ch == "/" and text.startswith("/*", self.pos):
                self._skip_comment()
            elif ch in _OPENERS:
                depth += 1
                self.pos += 1
            elif ch in _CLOSERS:
                depth = max(0, depth - 1)
                self.pos += 1
            elif depth == 0 and ch in stops:
                return ch
            else:
                self.pos += 1
        self.pos = self.length
        return None

    def _skip_block(self) -> None:
        """Skip a ``{ ... }`` block; ``pos`` points just past its ``{``."""
        depth = 1
        while True:
            ch = self._scan_until("{}")
            if ch is None:
                self._error("css-unterminated-block", self.length)
                return
            self.pos += 1
            depth += 1 if ch == "{" else -1
            if depth == 0:
                return

    # Rules -----------------------------------------------------------------

    def parse_rules(self) -> list[Rule]:
        rules: list[Rule] = []
        text = self.text
        while True:
            self._skip_trivia()
            if self.pos >= self.length:
                return rules

            start = self.pos
            ch = text[start]
            if ch == "}":
                self._error("css-unexpected-close-brace", start)
                self.pos += 1
                continue

            if ch == "@":
                stop = self._scan_until(";{}")
                if stop == ";":
                    self.pos += 1
                elif stop == "{":
                    self.pos += 1
                    self._skip_block()
                continue

            stop = self._scan_until(";{}")
            if stop != "{":
                # A declaration or stray text outside any block
                self._error("css-missing-block", start)
                if stop == ";":
                    self.pos += 1
                continue

            selector_text = normalize_selector(text[start : self.pos])
            self.pos += 1
            selectors = split_selector_list(selector_text)
            if not selectors:
                self._error("css-empty-selector", start)
                self._skip_block()
                continue

            declarations = self._parse_declarations(in_block=True)
            rules.append(Rule(selector_text, tuple(selectors), tuple(declarations), start, self.pos))

    # Declarations ----------------------------------------------------------

    def parse_declarations(self) -> list[Declaration]:
        """Parse the whole text as a bare declaration list (a ``style`` attribute)."""
        return self._parse_declarations(in_block=False)

    def _parse_declarations(self, in_block: bool) -> list[Declaration]:
        declarations: list[Declaration] = []
        text = self.text
        while True:
            self._skip_trivia()
            if self.pos >= self.length:
                if in_block:
                    self._error("css-unterminated-block", self.length)
                return declarations

            ch = text[self.pos]
            if ch == ";":
                self.pos += 1
                continue
            if ch == "}":
                self.pos += 1
                if in_block:
                    return declarations
                self._error("css-unexpected-close-brace", self.pos - 1)
                continue

            start = self.pos
            stop = self._scan_until(";{}")
            if stop == "{":
                # Nested rule
                self.pos += 1
                self._skip_block()
                continue

            declaration = self._make_declaration(start, self.pos)
            if declaration is not None:
                declarations.append(declaration)
            if stop == ";":
                self.pos += 1

    def _make_declaration(self, start: int, end: int) -> Declaration | None:
        raw = self.text[start:end]
        colon = raw.find(":")
        if colon == -1:
            self._error("css-missing-colon", start)
            return None

        name = _COMMENT_PATTERN.sub("", raw[:colon]).strip()
        if not name:
            self._error("css-empty-property", start)
            return None
        if any(ch in _WHITESPACE for ch in name):
            self._error("css-invalid-property", start)
            return None

        value = raw[colon + 1 :]
        if "/*" in value:
            value = _COMMENT_PATTERN.sub("", value)
        value = value.strip()
        important = False
        match = _IMPORTANT_PATTERN.search(value)
        if match:
            important = True
            value = value[: match.start()].rstrip()

        trimmed_end = start + len(raw.rstrip())
        return Declaration(name, value, important, start, trimmed_end, start + colon + 1)


def normalize_selector(selector: str) -> str:
    """Drop comments and collapse whitespace runs to a single space.

    ``div   >  p`` becomes ``div > p`` while ``div>p`` stays as written.
    Quoted strings are left untouched.
    """
    if "/*" in selector:
        selector = _COMMENT_PATTERN.sub("", selector)

    out: list[str] = []
    pending_space = False
    i = 0
    length = len(selector)
    while i < length:
        ch = selector[i]
        if ch in _WHITESPACE:
            pending_space = True
            i += 1
            continue

        if ch == '"' or ch == "'":
            end = i + 1
            while end < length and selector[end] != ch:
                end += 2 if selector[end] == "\\" else 1
            token = selector[i : end + 1]
            i = end + 1
        elif ch == "\\" and i + 1 < length:
            token = selector[i : i + 2]
            i += 2
        else:
            token = ch
            i += 1

        if pending_space and out and out[-1] != " ":
            out.append(" ")
        pending_space = False
        out.append(token)

    return "".join(out).strip()


def split_selector_list(selector_text: str) -> list[str]:
    """Split on commas that are not inside parentheses, brackets or strings."""
    branches: list[str] = []
    depth = 0
    quote = ""
    start = 0
    i = 0
    length = len(selector_text)
    while i < length:
        ch = selector_text[i]
        if ch == "\\":
            i += 2
            continue
        if quote:
            if ch == quote:
                quote = ""
        elif ch == '"' or ch == "'":
            quote = ch
        elif ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth = max(0, depth - 1)
        elif ch == "," and depth == 0:
            branches.append(selector_text[start:i])
            start = i + 1
        i += 1
    branches.append(selector_text[start:])
    return [normalize_selector(branch) for branch in branches if branch.strip()]


def find_var_calls(text: str, start: int = 0, end: int | None = None) -> list[VarCall]:
    """Find the outermost ``var(--name ...)`` calls in ``text[start:end]``.

    Scanning resumes after each call's closing parenthesis, so a ``var()``
    nested in a fallback is not reported. Offsets are positions in ``text``.
    """
    if end is None:
        end = len(text)
    calls: list[VarCall] = []
    pos = start
    while pos < end:
        ch = text[pos]
        if ch == '"' or ch == "'":
            pos = _string_end(text, pos, end)
            continue
        if ch == "/" and text.startswith("/*", pos):
            close = text.find("*/", pos + 2, end)
            pos = end if close == -1 else close + 2
            continue
        if (
            (ch == "v" or ch == "V")
            and text[pos : pos + 4].lower() == "var("
            and (pos == 0 or not _is_name_char(text[pos - 1]))
        ):
            name_start = pos + 4
            while name_start < end and text[name_start] in _WHITESPACE:
                name_start += 1
            name_end = name_start
            while name_end < end and (_is_name_char(text[name_end]) or text[name_end] == "\\"):
                name_end += 2 if text[name_end] == "\\" else 1
            name = text[name_start:name_end]
            if not name.startswith("--") or len(name) <= 2:
                pos += 4
                continue
            call_end = _matching_paren(text, pos + 3, end)
            calls.append(VarCall(name, pos, call_end))
            pos = call_end
            continue
        pos += 1
    return calls


def _string_end(text: str, pos: int, end: int) -> int:
    quote = text[pos]
    pos += 1
    while pos < end:
        ch = text[pos]
        if ch == "\\":
            pos += 2
            continue
        pos += 1
        if ch == quote or ch == "\n":
            break
    return min(pos, end)


def _matching_paren(text: str, open_pos: int, end: int) -> int:
    """Return the offset just past the ``)`` matching ``text[open_pos]``, or ``end``."""
    depth = 0
    pos = open_pos
    while pos < end:
        ch = text[pos]
        if ch == '"' or ch == "'":
            pos = _string_end(text, pos, end)
            continue
        if ch == "\\":
            pos += 2
            continue
        if ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return pos + 1
        pos += 1
    return end


def parse_rules(css_text: str, collect_errors: bool = False) -> list[Rule]:
    return CssParser(css_text, collect_errors).parse_rules()


def parse_inline_declarations(text: str) -> list[Declaration]:
    return CssParser(text).parse_declarations()
