"""OpenSpeleo Core XML conversion.

Lossless-enough conversion between XML documents and ordered dictionaries,
with reversible scalar inference (bools, ints, floats) and repeated sibling
tags represented as lists.

Progressive API Disclosure:
- Level 1: Simple functions - decode(), encode(), encode_bytes()
- Level 2: Configured codec - XMLDictCodec class
- Level 3: Element trees - parse(), serialize(), to_etree(), from_etree()
"""

__version__ = "0.1.0"
__author__ = "OpenSpeleo Core Team"

# Progressive API disclosure - Level 1 and 2
from .api import (
    XMLDictCodec,
    decode,
    dict_to_xml_str,
    encode,
    encode_bytes,
    from_etree,
    parse,
    serialize,
    to_etree,
    xml_str_to_dict,
)

# Configuration and errors
from .shared import (
    AmbiguousStructureError,
    ConversionConfig,
    MalformedXmlError,
    ReservedNameCollisionError,
    UnsupportedScalarError,
    XmlDictError,
)

# Core tree object
from .tree import XMLElement

__all__ = [
    # Version and metadata
    "__author__",
    "__version__",

    # Level 1: Simple conversion functions
    "decode",
    "encode",
    "encode_bytes",
    "xml_str_to_dict",
    "dict_to_xml_str",

    # Level 2: Configured codec
    "XMLDictCodec",

    # Level 3: Element trees
    "parse",
    "serialize",
    "to_etree",
    "from_etree",
    "XMLElement",

    # Configuration
    "ConversionConfig",

    # Errors
    "XmlDictError",
    "MalformedXmlError",
    "AmbiguousStructureError",
    "ReservedNameCollisionError",
    "UnsupportedScalarError",
]
