"""Conversion API between XML documents and ordered dictionaries.

Level 1 is a set of module functions (``decode``, ``encode`` and the
lower-level ``parse`` / ``serialize``); level 2 is ``XMLDictCodec``, which
binds a configuration and correlation ID for repeated use. Every call is
independent: each one builds its own tokenizer, tree and mapping.
"""

import time
from typing import IO, Any, Dict, Optional, Union

from openspeleo_core.mapping import to_mapping, to_xml
from openspeleo_core.shared import (
    ConversionConfig,
    MalformedXmlError,
    XmlDictError,
    get_logger,
)
from openspeleo_core.tokenization import XMLTokenizer
from openspeleo_core.tree import XMLElement, XMLSerializer, XMLTreeBuilder

# Type definitions for input data
InputType = Union[str, bytes, bytearray, IO[str], IO[bytes]]

MS_PER_SECOND = 1000
UTF8_BOM = "\ufeff"


def _read_input(xml_input: InputType) -> str:
    """Turn any supported input into text.

    Raises:
        TypeError: For unsupported input types
        MalformedXmlError: When bytes are not valid UTF-8
    """
    if hasattr(xml_input, "read"):
        xml_input = xml_input.read()

    if isinstance(xml_input, (bytes, bytearray)):
        try:
            return bytes(xml_input).decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise MalformedXmlError(
                f"Input is not valid UTF-8: {e.reason}", offset=e.start
            ) from e
    if isinstance(xml_input, str):
        return xml_input[1:] if xml_input.startswith(UTF8_BOM) else xml_input
    raise TypeError(
        f"xml_input must be str or bytes, not {type(xml_input).__name__}"
    )


def parse(
    xml_input: InputType,
    config: Optional[ConversionConfig] = None,
    correlation_id: Optional[str] = None
) -> XMLElement:
    """Parse an XML document into its root element.

    Args:
        xml_input: XML as str, UTF-8 bytes, or a readable file-like object
        config: Conversion options (whitespace handling)
        correlation_id: Optional correlation ID for request tracking

    Returns:
        The root ``XMLElement``

    Raises:
        MalformedXmlError: If the document is not well-formed

    Examples:
        >>> parse('<root><item id="1">value</item></root>').find_child("item").text
        'value'
    """
    config = config or ConversionConfig()
    text = _read_input(xml_input)
    tokenizer = XMLTokenizer(correlation_id=correlation_id)
    builder = XMLTreeBuilder(
        correlation_id=correlation_id,
        strip_whitespace=config.strip_whitespace,
    )
    return builder.build(tokenizer.iter_tokens(text))


def serialize(
    tree: XMLElement,
    config: Optional[ConversionConfig] = None,
    correlation_id: Optional[str] = None
) -> bytes:
    """Serialize an element tree to encoded XML bytes."""
    return XMLSerializer(config, correlation_id).serialize_bytes(tree)


def decode(
    xml_input: InputType,
    config: Optional[ConversionConfig] = None,
    correlation_id: Optional[str] = None
) -> Dict[str, Any]:
    """Decode an XML document into an ordered dictionary.

    Args:
        xml_input: XML as str, UTF-8 bytes, or a readable file-like object
        config: Conversion options
        correlation_id: Optional correlation ID for request tracking

    Returns:
        A dict with exactly one key, the root element's tag

    Raises:
        MalformedXmlError: If the document is not well-formed
        ReservedNameCollisionError: If a name starts with ``@`` or ``#``

    Examples:
        >>> decode('<root id="7"><item>A</item><item>B</item></root>')
        {'root': {'@id': 7, 'item': ['A', 'B']}}
        >>> decode('<flag>true</flag>')
        {'flag': True}
    """
    start_time = time.time()
    config = config or ConversionConfig()
    logger = get_logger(__name__, correlation_id, "decode")
    logger.debug(
        "Starting decode",
        extra={"input_type": type(xml_input).__name__}
    )

    try:
        root = parse(xml_input, config, correlation_id)
        mapping = to_mapping(root, config)
    except XmlDictError as e:
        logger.warning(
            "Decode failed",
            extra={
                "error_type": type(e).__name__,
                "error": str(e),
                "processing_time_ms": (time.time() - start_time) * MS_PER_SECOND,
            }
        )
        raise

    logger.info(
        "Decode completed",
        extra={
            "root_tag": root.tag,
            "processing_time_ms": (time.time() - start_time) * MS_PER_SECOND,
        }
    )
    return mapping


def encode(
    mapping: Dict[str, Any],
    config: Optional[ConversionConfig] = None,
    correlation_id: Optional[str] = None
) -> str:
    """Encode a single-key ordered dictionary as an XML string.

    Raises:
        AmbiguousStructureError: If the mapping has no single root key or a
            value has no XML shape
        ReservedNameCollisionError: If a name starts with ``@`` or ``#``
        UnsupportedScalarError: If a scalar has no canonical text

    Examples:
        >>> encode({"root": {"@id": 1, "item": ["A", "B"]}})
        '<?xml version="1.0" encoding="utf-8"?>\\n<root id="1"><item>A</item><item>B</item></root>'
    """
    start_time = time.time()
    logger = get_logger(__name__, correlation_id, "encode")
    logger.debug(
        "Starting encode",
        extra={"input_type": type(mapping).__name__}
    )

    try:
        tree = to_xml(mapping)
        text = XMLSerializer(config, correlation_id).serialize(tree)
    except XmlDictError as e:
        logger.warning(
            "Encode failed",
            extra={
                "error_type": type(e).__name__,
                "error": str(e),
                "processing_time_ms": (time.time() - start_time) * MS_PER_SECOND,
            }
        )
        raise

    logger.info(
        "Encode completed",
        extra={
            "root_tag": tree.tag,
            "output_length": len(text),
            "processing_time_ms": (time.time() - start_time) * MS_PER_SECOND,
        }
    )
    return text


def encode_bytes(
    mapping: Dict[str, Any],
    config: Optional[ConversionConfig] = None,
    correlation_id: Optional[str] = None
) -> bytes:
    """Encode a mapping as UTF-8 XML bytes."""
    config = config or ConversionConfig()
    return encode(mapping, config, correlation_id).encode(config.encoding)


def xml_str_to_dict(xml_str: InputType) -> Dict[str, Any]:
    """Alias of ``decode`` with default options."""
    return decode(xml_str)


def dict_to_xml_str(data: Dict[str, Any]) -> str:
    """Alias of ``encode`` with default options."""
    return encode(data)


class XMLDictCodec:
    """Codec bound to a configuration and correlation ID.

    Holds no per-call state, so one instance may be shared between threads.

    Examples:
        >>> codec = XMLDictCodec(ConversionConfig.pretty_printed())
        >>> codec.decode(codec.encode({"root": {"a": 1}}))
        {'root': {'a': 1}}
    """

    def __init__(
        self,
        config: Optional[ConversionConfig] = None,
        correlation_id: Optional[str] = None
    ) -> None:
        self.config = config or ConversionConfig()
        self.correlation_id = correlation_id

    def parse(self, xml_input: InputType) -> XMLElement:
        """Parse XML into an element tree."""
        return parse(xml_input, self.config, self.correlation_id)

    def serialize(self, tree: XMLElement) -> bytes:
        """Serialize an element tree to XML bytes."""
        return serialize(tree, self.config, self.correlation_id)

    def decode(self, xml_input: InputType) -> Dict[str, Any]:
        """Decode XML into an ordered dictionary."""
        return decode(xml_input, self.config, self.correlation_id)

    def encode(self, mapping: Dict[str, Any]) -> str:
        """Encode an ordered dictionary as an XML string."""
        return encode(mapping, self.config, self.correlation_id)

    def encode_bytes(self, mapping: Dict[str, Any]) -> bytes:
        """Encode an ordered dictionary as XML bytes."""
        return encode_bytes(mapping, self.config, self.correlation_id)
