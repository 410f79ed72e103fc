"""Element tree construction from token streams.

This module defines the ordered element tree shared by the parser, the
serializer and the structural mapper, and the strict builder that assembles
it from tokenizer output.
"""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Optional

from openspeleo_core.shared import MalformedXmlError, get_logger
from openspeleo_core.tokenization import Token, TokenPosition, TokenType

XML_WHITESPACE = " \t\r\n"


@dataclass
class XMLElement:
    """A single XML element: tag, ordered attributes, ordered children, text.

    Mixed content is reduced to one concatenated ``text`` run; the position
    of text relative to children is not kept.
    """

    tag: str
    attributes: Dict[str, str] = field(default_factory=dict)
    text: Optional[str] = None
    children: List["XMLElement"] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate element values."""
        if not self.tag:
            raise ValueError("Element tag cannot be empty")

    @property
    def is_leaf(self) -> bool:
        """Check if element has neither attributes nor children."""
        return not self.attributes and not self.children

    def add_child(self, child: "XMLElement") -> None:
        """Append a child element."""
        if not isinstance(child, XMLElement):
            raise TypeError("Child must be an XMLElement instance")
        self.children.append(child)

    def find_child(self, tag: str) -> Optional["XMLElement"]:
        """Find first direct child with matching tag name."""
        for child in self.children:
            if child.tag == tag:
                return child
        return None

    def find_children(self, tag: str) -> List["XMLElement"]:
        """Find all direct children with matching tag name."""
        return [child for child in self.children if child.tag == tag]

    def get_attribute(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get attribute value with optional default."""
        return self.attributes.get(name, default)

    def set_attribute(self, name: str, value: str) -> None:
        """Set attribute value."""
        if not isinstance(name, str) or not isinstance(value, str):
            raise TypeError("Attribute name and value must be strings")
        self.attributes[name] = value

    def iter(self) -> Iterator["XMLElement"]:
        """Iterate over this element and all descendants in document order."""
        stack = [self]
        while stack:
            element = stack.pop()
            yield element
            stack.extend(reversed(element.children))

    def same_structure(self, other: "XMLElement") -> bool:
        """Compare two trees including attribute order.

        Dataclass equality compares attribute dicts without regard to order;
        round-trip checks need the stricter comparison.
        """
        pairs = [(self, other)]
        while pairs:
            left, right = pairs.pop()
            if (
                left.tag != right.tag
                or list(left.attributes.items()) != list(right.attributes.items())
                or left.text != right.text
                or len(left.children) != len(right.children)
            ):
                return False
            pairs.extend(zip(left.children, right.children))
        return True

    def to_dict(self) -> Dict[str, Any]:
        """Convert element to a debugging dictionary representation."""
        result: Dict[str, Any] = {
            "tag": self.tag,
            "attributes": dict(self.attributes),
        }
        if self.text is not None:
            result["text"] = self.text
        if self.children:
            result["children"] = [child.to_dict() for child in self.children]
        return result


def join_text_runs(runs: List[str], strip_whitespace: bool = True) -> Optional[str]:
    """Combine the text runs collected for one element.

    Runs are joined as written, so whitespace next to CDATA sections,
    comments or child elements is kept. With ``strip_whitespace`` only the
    ends of the joined text are trimmed. Text that is whitespace only never
    counts as content.

    Returns:
        The element text, or None if there was no significant text
    """
    text = "".join(runs)
    if not text.strip(XML_WHITESPACE):
        return None
    if strip_whitespace:
        return text.strip(XML_WHITESPACE)
    return text


@dataclass
class _OpenElement:
    element: XMLElement
    position: TokenPosition
    text_runs: List[str] = field(default_factory=list)


class XMLTreeBuilder:
    """Builds an element tree from a token stream.

    The builder keeps an explicit stack of open elements, so document depth
    is limited by memory only. Every structural error is fatal.
    """

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        strip_whitespace: bool = True
    ) -> None:
        """Initialize tree builder.

        Args:
            correlation_id: Optional correlation ID for request tracking
            strip_whitespace: Trim leading and trailing whitespace of text runs
        """
        self.correlation_id = correlation_id
        self.strip_whitespace = strip_whitespace
        self.logger = get_logger(__name__, correlation_id, "xml_tree_builder")
        self._reset_state()

    def _reset_state(self) -> None:
        self._element_stack: List[_OpenElement] = []
        self._root: Optional[XMLElement] = None
        self._in_closing_tag = False
        self._pending_attribute: Optional[str] = None
        self._elements_created = 0

    def build(self, tokens: Iterable[Token]) -> XMLElement:
        """Build the document tree from tokens.

        Args:
            tokens: Token stream, typically from ``XMLTokenizer.iter_tokens``

        Returns:
            The root element

        Raises:
            MalformedXmlError: On unbalanced, mismatched or duplicated
                structure, or when the document has no root element
        """
        start_time = time.time()
        self._reset_state()

        for token in tokens:
            self._process_token(token)

        if self._element_stack:
            unclosed = self._element_stack[-1]
            self._fail(
                f"Unclosed element <{unclosed.element.tag}> at end of document",
                unclosed.position,
            )
        if self._root is None:
            raise MalformedXmlError("Document has no root element")

        self.logger.debug(
            "Tree building completed",
            extra={
                "element_count": self._elements_created,
                "processing_time_ms": (time.time() - start_time) * 1000,
            }
        )
        return self._root

    def _fail(self, message: str, position: TokenPosition) -> None:
        raise MalformedXmlError(
            message,
            line=position.line,
            column=position.column,
            offset=position.offset,
        )

    def _process_token(self, token: Token) -> None:
        if token.type == TokenType.TAG_START:
            self._in_closing_tag = token.value == "</"
        elif token.type == TokenType.TAG_NAME:
            if self._in_closing_tag:
                self._handle_closing_tag_name(token)
            else:
                self._handle_tag_name(token)
        elif token.type == TokenType.TAG_END:
            if token.value == "/>":
                self._close_current_element()
            self._in_closing_tag = False
        elif token.type == TokenType.ATTR_NAME:
            self._handle_attribute_name(token)
        elif token.type == TokenType.ATTR_VALUE:
            self._handle_attribute_value(token)
        elif token.type in (TokenType.TEXT, TokenType.CDATA):
            self._add_text_content(token)
        elif token.type == TokenType.DOCTYPE:
            if self._root is not None:
                self._fail("DOCTYPE must precede the root element", token.position)
        # Comments and processing instructions carry no data

    def _handle_tag_name(self, token: Token) -> None:
        if self._root is not None and not self._element_stack:
            self._fail(
                f"Element <{token.value}> after the root element", token.position
            )

        element = XMLElement(tag=token.value)
        self._elements_created += 1

        if self._element_stack:
            self._element_stack[-1].element.add_child(element)
        else:
            self._root = element
        self._element_stack.append(_OpenElement(element, token.position))

    def _handle_closing_tag_name(self, token: Token) -> None:
        if not self._element_stack:
            self._fail(
                f"Closing tag </{token.value}> without matching opening tag",
                token.position,
            )

        current = self._element_stack[-1].element
        if current.tag != token.value:
            self._fail(
                f"Mismatched closing tag </{token.value}>, expected </{current.tag}>",
                token.position,
            )
        self._close_current_element()

    def _close_current_element(self) -> None:
        closed = self._element_stack.pop()
        closed.element.text = join_text_runs(closed.text_runs, self.strip_whitespace)

    def _handle_attribute_name(self, token: Token) -> None:
        current = self._element_stack[-1].element
        if token.value in current.attributes:
            self._fail(
                f"Duplicate attribute '{token.value}' on <{current.tag}>",
                token.position,
            )
        self._pending_attribute = token.value

    def _handle_attribute_value(self, token: Token) -> None:
        current = self._element_stack[-1].element
        current.set_attribute(self._pending_attribute, token.value)
        self._pending_attribute = None

    def _add_text_content(self, token: Token) -> None:
        if self._element_stack:
            self._element_stack[-1].text_runs.append(token.value)
        elif token.type == TokenType.CDATA or token.value.strip(XML_WHITESPACE):
            self._fail("Content outside the root element", token.position)
