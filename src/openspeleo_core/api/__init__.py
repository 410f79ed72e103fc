"""Public conversion API.

Key Components:
    decode / encode: Module-level conversion functions
    XMLDictCodec: Codec bound to a configuration
    to_etree / from_etree: ElementTree and lxml interoperability
"""

from .adapters import (
    AdapterMetadata,
    EtreeAdapter,
    IntegrationAdapter,
    LxmlAdapter,
    from_etree,
    get_adapter,
    lxml_available,
    to_etree,
)
from .codec import (
    XMLDictCodec,
    decode,
    dict_to_xml_str,
    encode,
    encode_bytes,
    parse,
    serialize,
    xml_str_to_dict,
)

__all__ = [
    "AdapterMetadata",
    "EtreeAdapter",
    "IntegrationAdapter",
    "LxmlAdapter",
    "XMLDictCodec",
    "decode",
    "dict_to_xml_str",
    "encode",
    "encode_bytes",
    "from_etree",
    "get_adapter",
    "lxml_available",
    "parse",
    "serialize",
    "to_etree",
    "xml_str_to_dict",
]
