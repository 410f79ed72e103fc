"""Element tree for XML/dict conversion.

Key Components:
    XMLElement: Element with ordered attributes, ordered children and text
    XMLTreeBuilder: Strict tree construction from token streams
    XMLSerializer: Tree to XML text rendering
"""

from .builder import (
    XMLElement,
    XMLTreeBuilder,
    join_text_runs,
)
from .serializer import (
    XMLSerializer,
    escape_attribute,
    escape_text,
)

__all__ = [
    "XMLElement",
    "XMLSerializer",
    "XMLTreeBuilder",
    "escape_attribute",
    "escape_text",
    "join_text_runs",
]
