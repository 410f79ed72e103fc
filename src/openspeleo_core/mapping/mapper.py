"""Structural mapping between element trees and ordered dictionaries.

Decoding rules:

* a leaf element (no attributes, no children) maps to the inferred scalar of
  its text, or to ``{}`` when it has no text;
* any other element maps to a dict holding ``"@name"`` keys for attributes,
  ``"#text"`` for text, and one key per distinct child tag, whose value is a
  list when the tag repeats among siblings and a single value otherwise.

Encoding inverts these rules from the shape of the mapping alone: a list
always expands to repeated siblings, anything else to a single element.
Relative order between children of *different* tags is not represented.
"""

from typing import Any, Dict, List, Optional, Tuple, Union

from openspeleo_core.shared import (
    ATTR_PREFIX,
    TEXT_KEY,
    AmbiguousStructureError,
    ConversionConfig,
    ReservedNameCollisionError,
)
from openspeleo_core.shared.names import has_reserved_prefix, is_valid_name
from openspeleo_core.tree import XMLElement

from .scalars import Scalar, format_scalar, infer_scalar, is_scalar

Value = Union[Scalar, Dict[str, Any], List[Any]]


def to_mapping(
    root: XMLElement, config: Optional[ConversionConfig] = None
) -> Dict[str, Value]:
    """Convert a document tree into a single-key ordered mapping.

    Examples:
        >>> root = XMLElement("root", children=[XMLElement("item", text="1")])
        >>> to_mapping(root)
        {'root': {'item': 1}}
    """
    return {root.tag: node_to_value(root, config)}


def node_to_value(
    node: XMLElement, config: Optional[ConversionConfig] = None
) -> Value:
    """Convert one element into its mapping value.

    Child mappings are created empty-first and filled from an explicit
    stack, so conversion depth is not limited by recursion.
    """
    config = config or ConversionConfig()
    value = _start_value(node, config)

    stack = [(node, value)] if node.children else []
    while stack:
        current, target = stack.pop()
        groups: Dict[str, List[XMLElement]] = {}
        for child in current.children:
            groups.setdefault(child.tag, []).append(child)

        for tag, members in groups.items():
            values = []
            for member in members:
                member_value = _start_value(member, config)
                if member.children:
                    stack.append((member, member_value))
                values.append(member_value)
            target[tag] = values[0] if len(values) == 1 else values

    return value


def to_xml(mapping: Dict[str, Value]) -> XMLElement:
    """Convert a single-key mapping back into a document tree.

    Raises:
        AmbiguousStructureError: If the mapping does not have exactly one
            key, the root value is a list, or a value has no XML shape
        ReservedNameCollisionError: If a name starts with a reserved marker
        UnsupportedScalarError: If a scalar has no canonical text
    """
    if not isinstance(mapping, dict):
        raise AmbiguousStructureError(
            f"Expected a mapping with one root key, got {type(mapping).__name__}"
        )
    if len(mapping) != 1:
        raise AmbiguousStructureError(
            f"Expected exactly one root key, found {len(mapping)}"
        )

    ((name, value),) = mapping.items()
    if isinstance(value, list):
        raise AmbiguousStructureError(
            "Root value is a list; a document has exactly one root element",
            path=str(name),
        )
    return value_to_node(name, value)


def value_to_node(name: str, value: Any, path: Optional[str] = None) -> XMLElement:
    """Convert a mapping value stored under ``name`` into an element.

    Args:
        name: Element tag
        value: Scalar, dict, or None (an empty element)
        path: Location used in error messages; defaults to ``name``
    """
    path = path or str(name)
    root = _start_node(name, path)

    # (element, value to lower into it, path)
    stack: List[Tuple[XMLElement, Any, str]] = [(root, value, path)]
    while stack:
        element, current, current_path = stack.pop()
        if current is None:
            continue
        if isinstance(current, list):
            raise AmbiguousStructureError(
                "List nested directly inside a list has no element name",
                path=current_path,
            )
        if not isinstance(current, dict):
            element.text = format_scalar(current)
            continue

        for key, item in current.items():
            if not isinstance(key, str):
                raise AmbiguousStructureError(
                    f"Mapping key {key!r} is not a string", path=current_path
                )

            item_path = f"{current_path}/{key}"
            if key == TEXT_KEY:
                element.text = _encode_text(item, item_path)
            elif key.startswith(ATTR_PREFIX):
                attribute = key[len(ATTR_PREFIX):]
                _check_encoded_name(attribute, "attribute", item_path)
                element.set_attribute(attribute, _encode_text(item, item_path) or "")
            elif isinstance(item, list):
                for index, member in enumerate(item):
                    member_path = f"{item_path}[{index}]"
                    child = _start_node(key, member_path)
                    element.add_child(child)
                    stack.append((child, member, member_path))
            else:
                child = _start_node(key, item_path)
                element.add_child(child)
                stack.append((child, item, item_path))

    return root


def ordered_equal(left: Any, right: Any) -> bool:
    """Compare two mappings strictly: key order and scalar types must match.

    Plain ``==`` treats ``{"a": 1, "b": 2}`` and ``{"b": 2, "a": 1}`` as equal,
    and ``True == 1``; round-trip checks need both distinctions.
    """
    pairs = [(left, right)]
    while pairs:
        a, b = pairs.pop()
        if isinstance(a, dict) and isinstance(b, dict):
            if list(a) != list(b):
                return False
            pairs.extend((a[key], b[key]) for key in a)
        elif isinstance(a, list) and isinstance(b, list):
            if len(a) != len(b):
                return False
            pairs.extend(zip(a, b))
        elif type(a) is not type(b) or a != b:
            return False
    return True


def _start_value(node: XMLElement, config: ConversionConfig) -> Value:
    # Everything except the child groups
    _check_decoded_name(node.tag, "element")
    if node.is_leaf:
        if node.text is None:
            return {}
        return _decode_scalar(node.text, config)

    value: Dict[str, Value] = {}
    for name, raw in node.attributes.items():
        _check_decoded_name(name, "attribute")
        value[ATTR_PREFIX + name] = _decode_scalar(raw, config)
    if node.text is not None:
        value[TEXT_KEY] = _decode_scalar(node.text, config)
    return value


def _start_node(name: Any, path: str) -> XMLElement:
    _check_encoded_name(name, "element", path)
    return XMLElement(tag=name)


def _decode_scalar(text: str, config: ConversionConfig) -> Scalar:
    if config.infer_types:
        return infer_scalar(text)
    return text


def _encode_text(value: Any, path: str) -> Optional[str]:
    if value is None:
        return None
    if not is_scalar(value):
        raise AmbiguousStructureError(
            f"Expected a scalar, got {type(value).__name__}", path=path
        )
    return format_scalar(value)


def _check_decoded_name(name: str, kind: str) -> None:
    if has_reserved_prefix(name):
        raise ReservedNameCollisionError(name, kind)


def _check_encoded_name(name: Any, kind: str, path: str) -> None:
    if not isinstance(name, str):
        raise AmbiguousStructureError(f"{kind} name must be a string", path=path)
    if has_reserved_prefix(name):
        raise ReservedNameCollisionError(name, kind)
    if not is_valid_name(name):
        raise AmbiguousStructureError(
            f"{name!r} cannot be used as an XML {kind} name", path=path
        )
