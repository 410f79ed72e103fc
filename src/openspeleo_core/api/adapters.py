"""Adapters between ``XMLElement`` trees and ElementTree-compatible APIs.

Both the standard library ``xml.etree.ElementTree`` and ``lxml.etree`` are
supported. lxml is optional and only imported when its adapter is used.
"""

import importlib
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from types import ModuleType
from typing import Any, Dict, Optional, Type

from openspeleo_core.shared import AmbiguousStructureError, get_logger
from openspeleo_core.tree import XMLElement, join_text_runs


@dataclass(frozen=True)
class AdapterMetadata:
    """Descriptive information about an adapter."""

    name: str
    module: str
    description: str


class IntegrationAdapter(ABC):
    """Base class for converting element trees to and from another library."""

    def __init__(
        self,
        correlation_id: Optional[str] = None,
        strip_whitespace: bool = True
    ) -> None:
        """Initialize adapter.

        Args:
            correlation_id: Optional correlation ID for request tracking
            strip_whitespace: Trim text runs when importing foreign trees
        """
        self.correlation_id = correlation_id
        self.strip_whitespace = strip_whitespace
        self.logger = get_logger(__name__, correlation_id, self.metadata.name)

    @property
    @abstractmethod
    def metadata(self) -> AdapterMetadata:
        """Adapter metadata."""

    @property
    def is_available(self) -> bool:
        """Check whether the target library can be imported."""
        try:
            importlib.import_module(self.metadata.module)
        except ImportError:
            return False
        return True

    @abstractmethod
    def to_target(self, element: XMLElement) -> Any:
        """Convert an element tree into the target library's element."""

    @abstractmethod
    def from_target(self, target_data: Any) -> XMLElement:
        """Convert a target library element into an element tree."""


class EtreeAdapter(IntegrationAdapter):
    """Adapter for any module implementing the ElementTree element API."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="etree",
            module="xml.etree.ElementTree",
            description="Python standard library ElementTree",
        )

    @property
    def etree(self) -> ModuleType:
        """The imported ElementTree-compatible module."""
        return importlib.import_module(self.metadata.module)

    def to_target(self, element: XMLElement) -> Any:
        start_time = time.time()
        node = self._convert_element_to_etree(element, self.etree)
        self.logger.debug(
            "Converted tree to target elements",
            extra={
                "root_tag": element.tag,
                "conversion_time_ms": (time.time() - start_time) * 1000,
            }
        )
        return node

    def from_target(self, target_data: Any) -> XMLElement:
        # Accept ElementTree/ElementTree-like document wrappers as well
        if hasattr(target_data, "getroot"):
            target_data = target_data.getroot()
        element = self._convert_element_from_etree(target_data)
        if element is None:
            raise AmbiguousStructureError(
                "Root node is a comment or processing instruction"
            )
        return element

    def _convert_element_to_etree(self, element: XMLElement, etree: ModuleType) -> Any:
        root = etree.Element(element.tag, dict(element.attributes))
        root.text = element.text

        # Iterative DFS over (source, target) pairs
        stack = [(element, root)]
        while stack:
            source, target = stack.pop()
            for child in source.children:
                node = etree.SubElement(target, child.tag, dict(child.attributes))
                node.text = child.text
                stack.append((child, node))
        return root

    def _convert_element_from_etree(self, node: Any) -> Optional[XMLElement]:
        # Comments and processing instructions have a callable tag
        if not isinstance(node.tag, str):
            return None
        root = _new_element(node)

        stack = [(node, root)]
        while stack:
            source, target = stack.pop()
            runs = [source.text] if source.text else []
            for child in source:
                if isinstance(child.tag, str):
                    converted = _new_element(child)
                    target.add_child(converted)
                    stack.append((child, converted))
                if child.tail:
                    runs.append(child.tail)
            target.text = join_text_runs(runs, self.strip_whitespace)
        return root


class LxmlAdapter(EtreeAdapter):
    """Adapter for ``lxml.etree``."""

    @property
    def metadata(self) -> AdapterMetadata:
        return AdapterMetadata(
            name="lxml",
            module="lxml.etree",
            description="lxml ElementTree API",
        )


def _new_element(node: Any) -> XMLElement:
    _reject_qualified_name(node.tag)
    for name in node.attrib:
        _reject_qualified_name(name)
    return XMLElement(tag=node.tag, attributes=dict(node.attrib.items()))


def _reject_qualified_name(name: str) -> None:
    if name.startswith("{"):
        raise AmbiguousStructureError(
            f"Namespace-qualified name {name!r} has no mapping representation"
        )


_ADAPTERS: Dict[str, Type[IntegrationAdapter]] = {
    "etree": EtreeAdapter,
    "lxml": LxmlAdapter,
}


def get_adapter(
    name: str,
    correlation_id: Optional[str] = None,
    strip_whitespace: bool = True
) -> IntegrationAdapter:
    """Instantiate the adapter registered under ``name``.

    Raises:
        ValueError: If no adapter has that name
        ImportError: If the adapter's library is not installed
    """
    if name not in _ADAPTERS:
        raise ValueError(
            f"Unknown adapter {name!r}; available: {', '.join(sorted(_ADAPTERS))}"
        )
    adapter = _ADAPTERS[name](correlation_id, strip_whitespace)
    if not adapter.is_available:
        raise ImportError(f"{adapter.metadata.module} is not installed")
    return adapter


def lxml_available() -> bool:
    """Check whether lxml can be imported."""
    return LxmlAdapter().is_available


def to_etree(element: XMLElement, adapter: str = "etree") -> Any:
    """Convert an element tree into ElementTree (or lxml) elements."""
    return get_adapter(adapter).to_target(element)


def from_etree(node: Any, adapter: str = "etree", strip_whitespace: bool = True) -> XMLElement:
    """Convert ElementTree (or lxml) elements into an element tree."""
    return get_adapter(adapter, strip_whitespace=strip_whitespace).from_target(node)
