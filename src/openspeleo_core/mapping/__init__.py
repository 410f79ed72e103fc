"""Structural mapper between element trees and ordered dictionaries.

Key Components:
    to_mapping / node_to_value: Element tree to mapping
    to_xml / value_to_node: Mapping to element tree
    infer_scalar / format_scalar: Scalar type coercion rules
"""

from .mapper import (
    Value,
    node_to_value,
    ordered_equal,
    to_mapping,
    to_xml,
    value_to_node,
)
from .scalars import (
    Scalar,
    format_scalar,
    infer_scalar,
    is_scalar,
)

__all__ = [
    "Scalar",
    "Value",
    "format_scalar",
    "infer_scalar",
    "is_scalar",
    "node_to_value",
    "ordered_equal",
    "to_mapping",
    "to_xml",
    "value_to_node",
]
