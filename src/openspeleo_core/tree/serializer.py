"""Element tree serialization.

Renders an ``XMLElement`` tree as XML text. The walk uses an explicit stack
so arbitrarily deep trees serialize without recursion.
"""

from typing import List, Optional, Tuple

from openspeleo_core.shared import ConversionConfig, get_logger

from .builder import XMLElement

_TEXT_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "\r": "&#13;",
})
_ATTRIBUTE_ESCAPES = str.maketrans({
    "&": "&amp;",
    "<": "&lt;",
    ">": "&gt;",
    "\"": "&quot;",
    "\t": "&#9;",
    "\n": "&#10;",
    "\r": "&#13;",
})


def escape_text(text: str) -> str:
    """Escape character data for use between tags."""
    return text.translate(_TEXT_ESCAPES)


def escape_attribute(value: str) -> str:
    """Escape an attribute value for use inside double quotes.

    Tab, newline and carriage return become character references so they
    survive attribute-value normalization on the way back in.
    """
    return value.translate(_ATTRIBUTE_ESCAPES)


class XMLSerializer:
    """Writes element trees as XML according to a ``ConversionConfig``."""

    def __init__(
        self,
        config: Optional[ConversionConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.config = config or ConversionConfig()
        self.logger = get_logger(__name__, correlation_id, "xml_serializer")

    def declaration(self) -> str:
        """Return the XML declaration written ahead of the root element."""
        return f'<?xml version="1.0" encoding="{self.config.encoding}"?>'

    def serialize(self, root: XMLElement) -> str:
        """Serialize a tree to an XML string."""
        config = self.config
        parts: List[str] = []
        if config.xml_declaration:
            parts.append(self.declaration())
            parts.append(config.newline)

        # (element, depth, closing) entries; closing entries write end tags
        stack: List[Tuple[XMLElement, int, bool]] = [(root, 0, False)]
        while stack:
            element, depth, closing = stack.pop()
            if closing:
                if config.pretty and element.children:
                    parts.append(config.newline + config.indent * depth)
                parts.append(f"</{element.tag}>")
                continue

            if config.pretty and depth:
                parts.append(config.newline + config.indent * depth)
            parts.append(self._start_tag(element))

            if not element.children and not element.text:
                if config.short_empty_elements:
                    parts.append("/>")
                else:
                    parts.append(f"></{element.tag}>")
                continue

            parts.append(">")
            if element.text:
                parts.append(escape_text(element.text))
            stack.append((element, depth, True))
            stack.extend(
                (child, depth + 1, False) for child in reversed(element.children)
            )

        if config.pretty:
            parts.append(config.newline)

        result = "".join(parts)
        self.logger.debug(
            "Serialized element tree", extra={"output_length": len(result)}
        )
        return result

    def serialize_bytes(self, root: XMLElement) -> bytes:
        """Serialize a tree to encoded XML bytes."""
        return self.serialize(root).encode(self.config.encoding)

    @staticmethod
    def _start_tag(element: XMLElement) -> str:
        attributes = "".join(
            f' {name}="{escape_attribute(value)}"'
            for name, value in element.attributes.items()
        )
        return f"<{element.tag}{attributes}"
