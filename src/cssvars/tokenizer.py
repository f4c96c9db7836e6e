import re

from .entities import decode_entities_in_text
from .errors import generate_error_message, line_and_column, newline_positions
from .tokens import CommentToken, Doctype, DoctypeToken, EOFToken, ParseError, Tag

_ASCII_LOWER_TABLE = str.maketrans({chr(code): chr(code + 32) for code in range(65, 91)})
_WHITESPACE = "\t\n\f\r "
_RCDATA_ELEMENTS = {"title", "textarea"}
_RAWTEXT_SWITCH_TAGS = {
    "script",
    "style",
    "xmp",
    "iframe",
    "noembed",
    "noframes",
    "noscript",
    "textarea",
    "title",
}

_TAG_NAME_RUN_PATTERN = re.compile(r"[^\t\n\f\r />]+")
_ATTR_NAME_RUN_PATTERN = re.compile(r"[^\t\n\f\r />=]+")
_ATTR_VALUE_UNQUOTED_PATTERN = re.compile(r"[^\t\n\f\r >]+")
_WHITESPACE_PATTERN = re.compile(r"[\t\n\f\r ]*")
_COMMENT_END_PATTERN = re.compile(r"--!?>")

_rawtext_end_patterns = {}


def _rawtext_end_pattern(name):
    pattern = _rawtext_end_patterns.get(name)
    if pattern is None:
        pattern = re.compile(r"</" + re.escape(name) + r"(?=[\t\n\f\r />])", re.IGNORECASE)
        _rawtext_end_patterns[name] = pattern
    return pattern


def _is_ascii_alpha(c):
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


class TokenizerOpts:
    __slots__ = ("discard_bom",)

    def __init__(self, discard_bom=True):
        self.discard_bom = bool(discard_bom)


class Tokenizer:
    """Turns markup into tokens for a sink, recording source offsets on each.

    Offsets always index the text passed to :meth:`run`. Line endings are
    left alone and a leading byte order mark is skipped rather than removed,
    so a token's ``start``/``end`` can be used to slice the original text.
    """

    DATA = 0
    TAG_OPEN = 1
    END_TAG_OPEN = 2
    TAG_NAME = 3
    BEFORE_ATTRIBUTE_NAME = 4
    ATTRIBUTE_NAME = 5
    AFTER_ATTRIBUTE_NAME = 6
    BEFORE_ATTRIBUTE_VALUE = 7
    ATTRIBUTE_VALUE_DOUBLE = 8
    ATTRIBUTE_VALUE_SINGLE = 9
    ATTRIBUTE_VALUE_UNQUOTED = 10
    AFTER_ATTRIBUTE_VALUE_QUOTED = 11
    SELF_CLOSING_START_TAG = 12
    MARKUP_DECLARATION_OPEN = 13
    COMMENT = 14
    BOGUS_COMMENT = 15
    DOCTYPE = 16
    RAWTEXT = 17

    __slots__ = (
        "_newline_positions",
        "buffer",
        "collect_errors",
        "current_attr_name",
        "current_attr_name_end",
        "current_tag_attr_spans",
        "current_tag_attrs",
        "current_tag_kind",
        "current_tag_name",
        "current_tag_self_closing",
        "errors",
        "length",
        "opts",
        "pos",
        "rawtext_tag_name",
        "sink",
        "state",
        "tag_start",
        "text_start",
    )

    # _STATE_HANDLERS is defined at the end of the file

    def __init__(self, sink, opts=None, collect_errors=False):
        self.sink = sink
        self.opts = opts or TokenizerOpts()
        self.collect_errors = collect_errors
        self.errors = []

        self.state = self.DATA
        self.buffer = ""
        self.length = 0
        self.pos = 0
        self.tag_start = 0
        self.text_start = -1
        self.current_tag_kind = Tag.START
        self.current_tag_name = ""
        self.current_tag_attrs = {}
        self.current_tag_attr_spans = {}
        self.current_tag_self_closing = False
        self.current_attr_name = ""
        self.current_attr_name_end = 0
        self.rawtext_tag_name = None
        self._newline_positions = None

    def initialize(self, html):
        self.buffer = html or ""
        self.length = len(self.buffer)
        self.pos = 0
        if self.buffer.startswith("\ufeff") and self.opts.discard_bom:
            self.pos = 1

        self.state = self.DATA
        self.errors = []
        self.tag_start = 0
        self.text_start = -1
        self.rawtext_tag_name = None
        self._start_tag(Tag.START, "")

        # Pre-compute newline positions for O(log n) line lookups
        if self.collect_errors:
            self._newline_positions = newline_positions(self.buffer)
        else:
            self._newline_positions = None

    def step(self):
        """Run one step of the tokenizer state machine. Returns True if EOF reached."""
        handler = self._STATE_HANDLERS[self.state]
        return handler(self)

    def run(self, html):
        self.initialize(html)
        while True:
            if self.step():
                break

    # ---------------------
    # Helper methods
    # ---------------------

    def _peek_char(self):
        if self.pos < self.length:
            return self.buffer[self.pos]
        return None

    def _skip_whitespace(self):
        self.pos = _WHITESPACE_PATTERN.match(self.buffer, self.pos).end()

    def _start_tag(self, kind, name):
        self.current_tag_kind = kind
        self.current_tag_name = name
        self.current_tag_attrs = {}
        self.current_tag_attr_spans = {}
        self.current_tag_self_closing = False
        self.current_attr_name = ""

    def _mark_text(self, pos):
        if self.text_start < 0:
            self.text_start = pos

    def _flush_text(self, end, decode=True):
        start = self.text_start
        self.text_start = -1
        if start < 0 or end <= start:
            return
        data = self.buffer[start:end]
        # Raw text (style, script) is never decoded so CSS offsets stay exact
        if decode and "&" in data:
            data = decode_entities_in_text(data)
        self.sink.process_characters(data, start, end)

    def _emit_eof(self):
        name = self.rawtext_tag_name
        self._flush_text(self.length, decode=name is None or name in _RCDATA_ELEMENTS)
        self.sink.process_token(EOFToken())
        return True

    def _eof_in_tag(self):
        # The incomplete tag is dropped
        self._emit_error("eof-in-tag")
        self.sink.process_token(EOFToken())
        return True

    # ---------------------
    # State handlers
    # ---------------------

    def _state_data(self):
        pos = self.pos
        next_lt = self.buffer.find("<", pos)
        if next_lt == -1:
            if pos < self.length:
                self._mark_text(pos)
            self.pos = self.length
            return self._emit_eof()

        if next_lt > pos:
            self._mark_text(pos)
        self.tag_start = next_lt
        self.pos = next_lt + 1
        self.state = self.TAG_OPEN
        return False

    def _state_tag_open(self):
        c = self._peek_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self._mark_text(self.tag_start)
            return self._emit_eof()
        if c == "!":
            self.pos += 1
            self.state = self.MARKUP_DECLARATION_OPEN
            return False
        if c == "/":
            self.pos += 1
            self.state = self.END_TAG_OPEN
            return False
        if _is_ascii_alpha(c):
            self._flush_text(self.tag_start)
            self._start_tag(Tag.START, "")
            self.state = self.TAG_NAME
            return False
        if c == "?":
            self._emit_error("unexpected-question-mark-instead-of-tag-name")
            self._flush_text(self.tag_start)
            self.state = self.BOGUS_COMMENT
            return False

        # A lone "<" is ordinary text
        self._emit_error("invalid-first-character-of-tag-name")
        self._mark_text(self.tag_start)
        self.state = self.DATA
        return False

    def _state_end_tag_open(self):
        c = self._peek_char()
        if c is None:
            self._emit_error("eof-before-tag-name")
            self._mark_text(self.tag_start)
            return self._emit_eof()
        if c == ">":
            self._emit_error("empty-end-tag")
            self._flush_text(self.tag_start)
            self.pos += 1
            self.state = self.DATA
            return False
        if _is_ascii_alpha(c):
            self._flush_text(self.tag_start)
            self._start_tag(Tag.END, "")
            self.state = self.TAG_NAME
            return False

        self._emit_error("invalid-first-character-of-tag-name")
        self._flush_text(self.tag_start)
        self.state = self.BOGUS_COMMENT
        return False

    def _state_tag_name(self):
        match = _TAG_NAME_RUN_PATTERN.match(self.buffer, self.pos)
        if match:
            self.current_tag_name += match.group(0).translate(_ASCII_LOWER_TABLE)
            self.pos = match.end()

        c = self._peek_char()
        if c is None:
            return self._eof_in_tag()
        if c == "/":
            self.pos += 1
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self.pos += 1
            self._emit_current_tag()
            return False
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_before_attribute_name(self):
        self._skip_whitespace()
        c = self._peek_char()
        if c is None:
            return self._eof_in_tag()
        if c == "/":
            self.pos += 1
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self.pos += 1
            self._emit_current_tag()
            return False
        if c == "=":
            self._emit_error("unexpected-equals-sign-before-attribute-name")
            self.pos += 1
            self.current_attr_name = "="
            self.state = self.ATTRIBUTE_NAME
            return False

        self.current_attr_name = ""
        self.state = self.ATTRIBUTE_NAME
        return False

    def _state_attribute_name(self):
        match = _ATTR_NAME_RUN_PATTERN.match(self.buffer, self.pos)
        if match:
            self.current_attr_name += match.group(0).translate(_ASCII_LOWER_TABLE)
            self.pos = match.end()
        self.current_attr_name_end = self.pos

        if self._peek_char() == "=":
            self.pos += 1
            self.state = self.BEFORE_ATTRIBUTE_VALUE
            return False
        self.state = self.AFTER_ATTRIBUTE_NAME
        return False

    def _state_after_attribute_name(self):
        self._skip_whitespace()
        c = self._peek_char()
        if c is None:
            return self._eof_in_tag()
        if c == "=":
            self.pos += 1
            self.state = self.BEFORE_ATTRIBUTE_VALUE
            return False

        # Attribute without a value
        end = self.current_attr_name_end
        self._finish_attribute("", end, end)
        if c == "/":
            self.pos += 1
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self.pos += 1
            self._emit_current_tag()
            return False
        self.state = self.ATTRIBUTE_NAME
        return False

    def _state_before_attribute_value(self):
        self._skip_whitespace()
        c = self._peek_char()
        if c is None:
            return self._eof_in_tag()
        if c == '"':
            self.pos += 1
            self.state = self.ATTRIBUTE_VALUE_DOUBLE
            return False
        if c == "'":
            self.pos += 1
            self.state = self.ATTRIBUTE_VALUE_SINGLE
            return False
        if c == ">":
            self._emit_error("missing-attribute-value")
            self._finish_attribute("", self.pos, self.pos)
            self.pos += 1
            self._emit_current_tag()
            return False
        self.state = self.ATTRIBUTE_VALUE_UNQUOTED
        return False

    def _consume_quoted_value(self, quote):
        start = self.pos
        end = self.buffer.find(quote, start)
        if end == -1:
            self.pos = self.length
            return self._eof_in_tag()
        self._finish_attribute(self.buffer[start:end], start, end)
        self.pos = end + 1
        self.state = self.AFTER_ATTRIBUTE_VALUE_QUOTED
        return False

    def _state_attribute_value_double(self):
        return self._consume_quoted_value('"')

    def _state_attribute_value_single(self):
        return self._consume_quoted_value("'")

    def _state_attribute_value_unquoted(self):
        start = self.pos
        match = _ATTR_VALUE_UNQUOTED_PATTERN.match(self.buffer, start)
        end = match.end() if match else start
        self.pos = end
        if self._peek_char() is None:
            return self._eof_in_tag()
        self._finish_attribute(self.buffer[start:end], start, end)
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_after_attribute_value_quoted(self):
        c = self._peek_char()
        if c is None:
            return self._eof_in_tag()
        if c in _WHITESPACE:
            self.state = self.BEFORE_ATTRIBUTE_NAME
            return False
        if c == "/":
            self.pos += 1
            self.state = self.SELF_CLOSING_START_TAG
            return False
        if c == ">":
            self.pos += 1
            self._emit_current_tag()
            return False
        self._emit_error("missing-whitespace-between-attributes")
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_self_closing_start_tag(self):
        c = self._peek_char()
        if c is None:
            return self._eof_in_tag()
        if c == ">":
            self.pos += 1
            self.current_tag_self_closing = True
            self._emit_current_tag()
            return False
        self._emit_error("unexpected-solidus-in-tag")
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    def _state_markup_declaration_open(self):
        self._flush_text(self.tag_start)
        if self._consume_if("--"):
            self.state = self.COMMENT
            return False
        if self._consume_case_insensitive("doctype"):
            self.state = self.DOCTYPE
            return False
        self._emit_error("incorrectly-opened-comment")
        self.state = self.BOGUS_COMMENT
        return False

    def _state_comment(self):
        start = self.pos
        # "<!-->" and "<!--->"
        for closer in (">", "->"):
            if self.buffer.startswith(closer, start):
                self._emit_error("abrupt-closing-of-empty-comment")
                self.pos = start + len(closer)
                self._emit_comment("", self.pos)
                return False

        match = _COMMENT_END_PATTERN.search(self.buffer, start)
        if match is None:
            self._emit_error("eof-in-comment")
            self.pos = self.length
            self._emit_comment(self.buffer[start:], self.length)
            return self._emit_eof()

        self.pos = match.end()
        self._emit_comment(self.buffer[start : match.start()], self.pos)
        return False

    def _state_bogus_comment(self):
        start = self.pos
        end = self.buffer.find(">", start)
        if end == -1:
            self.pos = self.length
            self._emit_comment(self.buffer[start:], self.length)
            return self._emit_eof()
        self.pos = end + 1
        self._emit_comment(self.buffer[start:end], self.pos)
        return False

    def _state_doctype(self):
        start = self.pos
        end = self.buffer.find(">", start)
        if end == -1:
            self._emit_error("eof-in-doctype")
            body = self.buffer[start:]
            self.pos = self.length
        else:
            body = self.buffer[start:end]
            self.pos = end + 1

        words = body.split()
        name = words[0].translate(_ASCII_LOWER_TABLE) if words else None
        self.sink.process_token(DoctypeToken(Doctype(name), self.tag_start, self.pos))
        self.state = self.DATA
        if end == -1:
            return self._emit_eof()
        return False

    def _state_rawtext(self):
        name = self.rawtext_tag_name
        decode = name in _RCDATA_ELEMENTS
        start = self.pos
        match = _rawtext_end_pattern(name).search(self.buffer, start)
        if match is None:
            self._emit_error("eof-in-rawtext", tag_name=name)
            if start < self.length:
                self._mark_text(start)
            self.pos = self.length
            return self._emit_eof()

        if match.start() > start:
            self._mark_text(start)
        self._flush_text(match.start(), decode=decode)
        self.rawtext_tag_name = None
        self.tag_start = match.start()
        self._start_tag(Tag.END, name)
        self.pos = match.end()
        self.state = self.BEFORE_ATTRIBUTE_NAME
        return False

    # ---------------------
    # Emitting
    # ---------------------

    def _finish_attribute(self, value, value_start, value_end):
        name = self.current_attr_name
        self.current_attr_name = ""
        if not name:
            return
        if name in self.current_tag_attrs:
            self._emit_error("duplicate-attribute")
            return
        if "&" in value:
            value = decode_entities_in_text(value, in_attribute=True)
        self.current_tag_attrs[name] = value
        self.current_tag_attr_spans[name] = (value_start, value_end)

    def _emit_current_tag(self):
        name = self.current_tag_name
        kind = self.current_tag_kind
        tag = Tag(
            kind,
            name,
            self.current_tag_attrs,
            self.current_tag_self_closing,
            start=self.tag_start,
            end=self.pos,
            attr_spans=self.current_tag_attr_spans,
        )
        if kind == Tag.END and tag.attrs:
            self._emit_error("end-tag-with-attributes")

        self.state = self.DATA
        if kind == Tag.START and name in _RAWTEXT_SWITCH_TAGS and not tag.self_closing:
            self.state = self.RAWTEXT
            self.rawtext_tag_name = name

        self.sink.process_token(tag)
        self._start_tag(Tag.START, "")

    def _emit_comment(self, data, end):
        self.sink.process_token(CommentToken(data, self.tag_start, end))
        self.state = self.DATA

    def _emit_error(self, code, tag_name=None):
        if not self.collect_errors:
            return
        pos = max(0, min(self.pos, self.length - 1)) if self.length else 0
        line, column = line_and_column(self._newline_positions, pos)
        message = generate_error_message(code, tag_name)
        self.errors.append(ParseError(code, line=line, column=column, message=message, offset=pos))

    def _consume_if(self, literal):
        if self.buffer.startswith(literal, self.pos):
            self.pos += len(literal)
            return True
        return False

    def _consume_case_insensitive(self, literal):
        end = self.pos + len(literal)
        if end > self.length:
            return False
        if self.buffer[self.pos : end].lower() != literal.lower():
            return False
        self.pos = end
        return True


Tokenizer._STATE_HANDLERS = [  # type: ignore[attr-defined]
    Tokenizer._state_data,
    Tokenizer._state_tag_open,
    Tokenizer._state_end_tag_open,
    Tokenizer._state_tag_name,
    Tokenizer._state_before_attribute_name,
    Tokenizer._state_attribute_name,
    Tokenizer._state_after_attribute_name,
    Tokenizer._state_before_attribute_value,
    Tokenizer._state_attribute_value_double,
    Tokenizer._state_attribute_value_single,
    Tokenizer._state_attribute_value_unquoted,
    Tokenizer._state_after_attribute_value_quoted,
    Tokenizer._state_self_closing_start_tag,
    Tokenizer._state_markup_declaration_open,
    Tokenizer._state_comment,
    Tokenizer._state_bogus_comment,
    Tokenizer._state_doctype,
    Tokenizer._state_rawtext,
]
