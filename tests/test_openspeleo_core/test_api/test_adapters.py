"""Tests for ElementTree and lxml adapters."""

import xml.etree.ElementTree as ET
from unittest.mock import PropertyMock, patch

import pytest

from openspeleo_core.api import (
    EtreeAdapter,
    IntegrationAdapter,
    LxmlAdapter,
    from_etree,
    get_adapter,
    lxml_available,
    parse,
    to_etree,
)
from openspeleo_core.mapping import to_mapping
from openspeleo_core.shared import AmbiguousStructureError

SAMPLE_XML = '<survey name="Main"><shot id="1">A</shot><shot id="2">B</shot><note/></survey>'


class TestAdapterRegistry:
    """Test adapter lookup."""

    def test_get_etree_adapter(self):
        """Test the standard library adapter."""
        adapter = get_adapter("etree", correlation_id="req-1")

        assert isinstance(adapter, EtreeAdapter)
        assert isinstance(adapter, IntegrationAdapter)
        assert adapter.metadata.module == "xml.etree.ElementTree"
        assert adapter.is_available
        assert adapter.correlation_id == "req-1"

    def test_unknown_adapter(self):
        """Test unknown names are rejected."""
        with pytest.raises(ValueError, match="Unknown adapter 'nope'; available: etree, lxml"):
            get_adapter("nope")

    def test_unavailable_adapter(self):
        """Test a missing library is reported as ImportError."""
        with patch.object(LxmlAdapter, "is_available", new_callable=PropertyMock, return_value=False):
            with pytest.raises(ImportError, match="lxml.etree is not installed"):
                get_adapter("lxml")

    def test_lxml_available_is_bool(self):
        """Test the availability probe."""
        assert isinstance(lxml_available(), bool)


class TestEtreeAdapter:
    """Test conversion with xml.etree.ElementTree."""

    def test_to_etree(self):
        """Test converting to ElementTree elements."""
        node = to_etree(parse(SAMPLE_XML))

        assert node.tag == "survey"
        assert node.attrib == {"name": "Main"}
        assert [child.text for child in node.findall("shot")] == ["A", "B"]
        assert node.find("note").text is None

    def test_to_etree_keeps_attribute_order(self):
        """Test attribute order survives conversion."""
        node = to_etree(parse("<a z='1' b='2' m='3'/>"))

        assert list(node.attrib) == ["z", "b", "m"]

    def test_from_etree(self):
        """Test converting from ElementTree elements."""
        element = from_etree(ET.fromstring(SAMPLE_XML))

        assert to_mapping(element) == {
            "survey": {"@name": "Main", "shot": [{"@id": 1, "#text": "A"}, {"@id": 2, "#text": "B"}], "note": {}}
        }

    def test_from_element_tree_wrapper(self):
        """Test ElementTree documents are unwrapped."""
        element = from_etree(ET.ElementTree(ET.fromstring("<a>1</a>")))

        assert element.tag == "a"
        assert element.text == "1"

    def test_round_trip(self):
        """Test to_etree then from_etree keeps structure."""
        tree = parse(SAMPLE_XML)

        assert from_etree(to_etree(tree)).same_structure(tree)

    def test_tails_join_text(self):
        """Test mixed content text and tails are joined."""
        element = from_etree(ET.fromstring("<p> Hello <b>big</b> world </p>"))

        assert element.text == "Hello  world"

    def test_whitespace_kept_without_stripping(self):
        """Test strip_whitespace is honoured."""
        element = from_etree(ET.fromstring("<a>  x </a>"), strip_whitespace=False)

        assert element.text == "  x "

    def test_comments_skipped(self):
        """Test comment nodes carry no data but their tails do."""
        node = ET.Element("a")
        comment = ET.Comment("note")
        comment.tail = "after"
        node.append(comment)
        node.append(ET.Element("b"))

        element = from_etree(node)

        assert [child.tag for child in element.children] == ["b"]
        assert element.text == "after"

    def test_comment_root_rejected(self):
        """Test a comment cannot be a root element."""
        with pytest.raises(AmbiguousStructureError, match="Root node is a comment"):
            from_etree(ET.Comment("x"))

    @pytest.mark.parametrize("text", [
        '<a xmlns="urn:cave"/>',
        '<a xmlns:s="urn:cave"><s:b/></a>',
        '<a xmlns:s="urn:cave" s:x="1"/>',
    ])
    def test_namespaces_rejected(self, text):
        """Test namespace-qualified names have no mapping form."""
        with pytest.raises(AmbiguousStructureError, match="Namespace-qualified name"):
            from_etree(ET.fromstring(text))


class TestLxmlAdapter:
    """Test conversion with lxml.etree."""

    @pytest.fixture
    def etree(self):
        """Provide lxml.etree or skip."""
        return pytest.importorskip("lxml.etree")

    def test_available(self, etree):
        """Test lxml is reported as available."""
        assert lxml_available()
        assert get_adapter("lxml").metadata.name == "lxml"

    def test_to_lxml(self, etree):
        """Test converting to lxml elements."""
        node = to_etree(parse(SAMPLE_XML), adapter="lxml")

        assert isinstance(node, etree._Element)
        assert etree.tostring(node) == SAMPLE_XML.encode("utf-8")

    def test_from_lxml_skips_comments_and_instructions(self, etree):
        """Test lxml comments and processing instructions are dropped."""
        node = etree.fromstring("<a><!-- c --><?pi data?><b>1</b></a>")

        element = from_etree(node, adapter="lxml")

        assert [child.tag for child in element.children] == ["b"]
        assert to_mapping(element) == {"a": {"b": 1}}

    def test_lxml_round_trip(self, etree):
        """Test structure survives a trip through lxml."""
        tree = parse(SAMPLE_XML)

        assert from_etree(to_etree(tree, adapter="lxml"), adapter="lxml").same_structure(tree)
