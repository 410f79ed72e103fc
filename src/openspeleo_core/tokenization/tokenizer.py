"""Strict XML tokenization.

This module converts XML text into a flat, positioned token stream. The
tokenizer recognises the lexical structure only (tags, attributes, text,
CDATA, comments, processing instructions, DOCTYPE); nesting and balance are
checked by the tree builder. Any lexical error raises ``MalformedXmlError``.
"""

import bisect
import re
from dataclasses import dataclass
from enum import Enum, auto
from typing import Iterator, List, Optional

from openspeleo_core.shared import MalformedXmlError, get_logger
from openspeleo_core.shared.names import INVALID_CHAR_RE, NAME_RE

PREDEFINED_ENTITIES = {
    "lt": "<",
    "gt": ">",
    "amp": "&",
    "apos": "'",
    "quot": '"',
}

_REFERENCE_RE = re.compile(
    r"&(?:#([0-9]+)|#x([0-9a-fA-F]+)|([^\s&;<>\"']+));"
)
_WHITESPACE_RE = re.compile(r"[ \t\n]*")
_ATTR_WHITESPACE_RE = re.compile(r"[\t\n]")

MAX_CODE_POINT = 0x10FFFF


class TokenType(Enum):
    """XML token types produced by the tokenizer."""

    TAG_START = auto()          # "<" for start tags, "</" for end tags
    TAG_END = auto()            # ">" or "/>"
    TAG_NAME = auto()           # Element name within tags
    ATTR_NAME = auto()          # Attribute name within a start tag
    ATTR_VALUE = auto()         # Unescaped attribute value
    TEXT = auto()               # Unescaped character data between tags
    CDATA = auto()              # Verbatim content of <![CDATA[ ... ]]>
    COMMENT = auto()            # <!-- ... -->
    PROCESSING_INSTRUCTION = auto()  # <? ... ?>, including the XML declaration
    DOCTYPE = auto()            # <!DOCTYPE ... >


@dataclass(frozen=True)
class TokenPosition:
    """Position information for XML tokens."""

    line: int
    column: int
    offset: int

    def __post_init__(self) -> None:
        """Validate position values."""
        if self.line < 1:
            raise ValueError("Line number must be >= 1")
        if self.column < 1:
            raise ValueError("Column number must be >= 1")
        if self.offset < 0:
            raise ValueError("Offset must be >= 0")


@dataclass(frozen=True)
class Token:
    """A single XML token with its source position."""

    type: TokenType
    value: str
    position: TokenPosition


class XMLTokenizer:
    """Converts XML text into tokens with a single forward scan.

    A tokenizer instance holds per-document scanning state; create one per
    document (or call ``tokenize`` again, which resets it).
    """

    def __init__(self, correlation_id: Optional[str] = None) -> None:
        """Initialize the XML tokenizer.

        Args:
            correlation_id: Optional correlation ID for tracking requests
        """
        self.correlation_id = correlation_id
        self.logger = get_logger(__name__, correlation_id, "xml_tokenizer")
        self._reset_state("")

    def _reset_state(self, text: str) -> None:
        self._text = text
        self._line_starts = [0] + [m.end() for m in re.finditer("\n", text)]
        self._tokens: List[Token] = []

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize a complete XML document.

        Args:
            text: XML content; line endings are normalized to ``\\n`` first

        Returns:
            List of tokens in document order

        Raises:
            MalformedXmlError: If the text is not lexically well-formed
        """
        return list(self.iter_tokens(text))

    def iter_tokens(self, text: str) -> Iterator[Token]:
        """Tokenize lazily, yielding tokens as each construct is scanned."""
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        self._reset_state(text)

        invalid = INVALID_CHAR_RE.search(text)
        if invalid:
            self._fail(
                f"Invalid character U+{ord(invalid.group()):04X} in document",
                invalid.start(),
            )

        self.logger.debug(
            "Starting tokenization", extra={"content_length": len(text)}
        )

        pos = 0
        end = len(text)
        while pos < end:
            if text[pos] != "<":
                pos = self._scan_text(pos)
            elif text.startswith("<!--", pos):
                pos = self._scan_comment(pos)
            elif text.startswith("<![CDATA[", pos):
                pos = self._scan_cdata(pos)
            elif text.startswith("<!DOCTYPE", pos):
                pos = self._scan_doctype(pos)
            elif text.startswith("<?", pos):
                pos = self._scan_processing_instruction(pos)
            elif text.startswith("</", pos):
                pos = self._scan_end_tag(pos)
            else:
                pos = self._scan_start_tag(pos)

            yield from self._tokens
            self._tokens.clear()

    def position_at(self, offset: int) -> TokenPosition:
        """Translate a character offset into a line/column position."""
        line_index = bisect.bisect_right(self._line_starts, offset) - 1
        return TokenPosition(
            line=line_index + 1,
            column=offset - self._line_starts[line_index] + 1,
            offset=offset,
        )

    def _emit(self, token_type: TokenType, value: str, offset: int) -> None:
        self._tokens.append(Token(token_type, value, self.position_at(offset)))

    def _fail(self, message: str, offset: int) -> None:
        position = self.position_at(min(offset, len(self._text)))
        raise MalformedXmlError(
            message, line=position.line, column=position.column, offset=offset
        )

    def _find(self, marker: str, start: int, what: str, opened_at: int) -> int:
        index = self._text.find(marker, start)
        if index < 0:
            self._fail(f"Unterminated {what}", opened_at)
        return index

    def _skip_whitespace(self, pos: int) -> int:
        return _WHITESPACE_RE.match(self._text, pos).end()

    # Character data

    def _scan_text(self, pos: int) -> int:
        end = self._text.find("<", pos)
        if end < 0:
            end = len(self._text)
        raw = self._text[pos:end]
        marker = raw.find("]]>")
        if marker >= 0:
            self._fail("Sequence ']]>' not allowed in character data", pos + marker)
        self._emit(TokenType.TEXT, self.unescape(raw, pos), pos)
        return end

    def unescape(self, raw: str, base_offset: int = 0) -> str:
        """Replace entity and character references in ``raw``.

        Raises:
            MalformedXmlError: For a bare ``&``, an undefined entity, or a
                reference to a character not allowed in XML
        """
        if "&" not in raw:
            return raw

        parts = []
        last = 0
        index = raw.find("&")
        while index >= 0:
            match = _REFERENCE_RE.match(raw, index)
            if not match:
                self._fail("Unescaped '&' in content", base_offset + index)
            decimal, hexadecimal, name = match.groups()
            if name is not None:
                if name not in PREDEFINED_ENTITIES:
                    self._fail(f"Undefined entity '&{name};'", base_offset + index)
                replacement = PREDEFINED_ENTITIES[name]
            else:
                code_point = int(decimal) if decimal else int(hexadecimal, 16)
                if code_point > MAX_CODE_POINT or INVALID_CHAR_RE.match(
                    chr(code_point)
                ):
                    self._fail(
                        f"Character reference '{match.group()}' is not a legal "
                        "XML character",
                        base_offset + index,
                    )
                replacement = chr(code_point)
            parts.append(raw[last:index])
            parts.append(replacement)
            last = match.end()
            index = raw.find("&", last)
        parts.append(raw[last:])
        return "".join(parts)

    # Markup declarations

    def _scan_comment(self, pos: int) -> int:
        start = pos + len("<!--")
        end = self._find("-->", start, "comment", pos)
        content = self._text[start:end]
        double_dash = content.find("--")
        if double_dash >= 0 or content.endswith("-"):
            self._fail("'--' not allowed inside comment", start + max(double_dash, 0))
        self._emit(TokenType.COMMENT, content, pos)
        return end + len("-->")

    def _scan_cdata(self, pos: int) -> int:
        start = pos + len("<![CDATA[")
        end = self._find("]]>", start, "CDATA section", pos)
        self._emit(TokenType.CDATA, self._text[start:end], pos)
        return end + len("]]>")

    def _scan_processing_instruction(self, pos: int) -> int:
        start = pos + len("<?")
        end = self._find("?>", start, "processing instruction", pos)
        content = self._text[start:end]
        match = NAME_RE.match(content)
        if not match:
            self._fail("Processing instruction without target", start)
        if match.group().lower() == "xml" and pos != 0:
            self._fail("XML declaration is only allowed at document start", pos)
        self._emit(TokenType.PROCESSING_INSTRUCTION, content, pos)
        return end + len("?>")

    def _scan_doctype(self, pos: int) -> int:
        text = self._text
        index = pos + len("<!DOCTYPE")
        depth = 0
        while index < len(text):
            char = text[index]
            if char in "\"'":
                index = self._find(char, index + 1, "DOCTYPE literal", index)
            elif char == "[":
                depth += 1
            elif char == "]":
                depth -= 1
            elif char == ">" and depth <= 0:
                self._emit(TokenType.DOCTYPE, text[pos + 2:index], pos)
                return index + 1
            index += 1
        self._fail("Unterminated DOCTYPE declaration", pos)
        return index

    # Tags

    def _scan_name(self, pos: int, what: str) -> int:
        match = NAME_RE.match(self._text, pos)
        if not match:
            self._fail(f"Expected {what} name", pos)
        return match.end()

    def _scan_end_tag(self, pos: int) -> int:
        self._emit(TokenType.TAG_START, "</", pos)
        name_start = pos + len("</")
        name_end = self._scan_name(name_start, "closing tag")
        self._emit(TokenType.TAG_NAME, self._text[name_start:name_end], name_start)
        close = self._skip_whitespace(name_end)
        if not self._text.startswith(">", close):
            self._fail(
                f"Expected '>' to close tag </{self._text[name_start:name_end]}",
                close,
            )
        self._emit(TokenType.TAG_END, ">", close)
        return close + 1

    def _scan_start_tag(self, pos: int) -> int:
        text = self._text
        self._emit(TokenType.TAG_START, "<", pos)
        name_start = pos + 1
        name_end = self._scan_name(name_start, "tag")
        self._emit(TokenType.TAG_NAME, text[name_start:name_end], name_start)

        index = name_end
        while True:
            after_space = self._skip_whitespace(index)
            if after_space >= len(text):
                self._fail("Unterminated start tag", pos)
            if text.startswith("/>", after_space):
                self._emit(TokenType.TAG_END, "/>", after_space)
                return after_space + 2
            if text[after_space] == ">":
                self._emit(TokenType.TAG_END, ">", after_space)
                return after_space + 1
            if after_space == index:
                self._fail("Expected whitespace before attribute", index)
            index = self._scan_attribute(after_space)

    def _scan_attribute(self, pos: int) -> int:
        text = self._text
        name_end = self._scan_name(pos, "attribute")
        name = text[pos:name_end]
        self._emit(TokenType.ATTR_NAME, name, pos)

        equals = self._skip_whitespace(name_end)
        if not text.startswith("=", equals):
            self._fail(f"Attribute '{name}' has no value", equals)
        quote_at = self._skip_whitespace(equals + 1)
        quote = text[quote_at:quote_at + 1]
        if quote not in ("\"", "'"):
            self._fail(f"Value of attribute '{name}' must be quoted", quote_at)
        value_start = quote_at + 1
        value_end = self._find(quote, value_start, "attribute value", quote_at)
        raw = text[value_start:value_end]
        lt = raw.find("<")
        if lt >= 0:
            self._fail("'<' not allowed in attribute value", value_start + lt)

        # Attribute-value normalization: literal tab and newline become spaces,
        # character references to them are kept.
        value = self.unescape(_ATTR_WHITESPACE_RE.sub(" ", raw), value_start)
        self._emit(TokenType.ATTR_VALUE, value, value_start)
        return value_end + 1
