"""Tests for the structural mapper between trees and ordered mappings."""

import pytest

from openspeleo_core.mapping import (
    node_to_value,
    ordered_equal,
    to_mapping,
    to_xml,
    value_to_node,
)
from openspeleo_core.shared import (
    AmbiguousStructureError,
    ConversionConfig,
    ReservedNameCollisionError,
    UnsupportedScalarError,
)
from openspeleo_core.tokenization import XMLTokenizer
from openspeleo_core.tree import XMLElement, XMLSerializer, XMLTreeBuilder

BARE = ConversionConfig(xml_declaration=False)


def build(text):
    """Tokenize and build a tree."""
    return XMLTreeBuilder().build(XMLTokenizer().iter_tokens(text))


def decode_text(text, config=None):
    """Decode XML text through the tree layer."""
    return to_mapping(build(text), config)


def encode_text(mapping):
    """Encode a mapping to bare XML text."""
    return XMLSerializer(BARE).serialize(to_xml(mapping))


class TestToMapping:
    """Test tree to mapping conversion."""

    def test_leaf_scalar(self):
        """Test leaf text becomes a typed scalar."""
        assert decode_text("<depth>12.5</depth>") == {"depth": 12.5}

    def test_empty_element(self):
        """Test an element with nothing in it becomes an empty mapping."""
        assert decode_text("<a/>") == {"a": {}}
        assert decode_text("<a>   </a>") == {"a": {}}

    def test_attribute_and_child_with_same_name(self):
        """Test attributes and children do not collide."""
        assert decode_text('<a b="1"><b>2</b></a>') == {"a": {"@b": 1, "b": 2}}

    def test_repeated_children_become_list(self):
        """Test cardinality follows sibling repetition."""
        mapping = decode_text("<survey><shot>1</shot><shot>2</shot><name>X</name></survey>")

        assert mapping == {"survey": {"shot": [1, 2], "name": "X"}}

    def test_interleaved_children_grouped(self):
        """Test repeated tags are grouped at their first occurrence."""
        mapping = decode_text("<r><a>1</a><b>2</b><a>3</a></r>")

        assert list(mapping["r"]) == ["a", "b"]
        assert mapping["r"]["a"] == [1, 3]

    def test_key_order(self):
        """Test attributes first, then text, then children."""
        mapping = decode_text('<a z="1" y="2">text<c/><b/></a>')

        assert list(mapping["a"]) == ["@z", "@y", "#text", "c", "b"]

    def test_text_with_attributes(self):
        """Test text is stored under the text key when attributes exist."""
        assert decode_text('<a unit="m">3</a>') == {"a": {"@unit": "m", "#text": 3}}

    def test_strings_only(self):
        """Test inference can be disabled."""
        mapping = decode_text('<a x="1"><b>true</b></a>', ConversionConfig.strings_only())

        assert mapping == {"a": {"@x": "1", "b": "true"}}

    def test_nested_lists_of_mappings(self):
        """Test repeated complex children."""
        mapping = decode_text(
            '<cave><shot id="1"><len>2.5</len></shot><shot id="2"><len>3</len></shot></cave>'
        )

        assert mapping == {
            "cave": {"shot": [{"@id": 1, "len": 2.5}, {"@id": 2, "len": 3}]}
        }

    @pytest.mark.parametrize("text", [
        "<@a/>",
        "<r><#text>1</#text></r>",
        "<r><@b/></r>",
        "<r #x='1'/>",
        "<r @x='1'/>",
    ])
    def test_reserved_names_rejected(self, text):
        """Test names that would collide with key markers."""
        with pytest.raises(ReservedNameCollisionError):
            decode_text(text)

    def test_node_to_value(self):
        """Test single node conversion."""
        assert node_to_value(XMLElement("a", text="false")) is False


class TestToXml:
    """Test mapping to tree conversion."""

    def test_full_shape(self):
        """Test attributes, text, lists and empty values."""
        mapping = {"a": {"@x": 1, "#text": "t", "b": [1, 2], "c": None}}

        assert encode_text(mapping) == '<a x="1">t<b>1</b><b>2</b><c/></a>'

    def test_scalar_root(self):
        """Test a scalar root value becomes element text."""
        assert encode_text({"flag": True}) == "<flag>true</flag>"

    def test_empty_mapping_is_empty_element(self):
        """Test an empty mapping writes an empty element."""
        assert encode_text({"a": {"b": {}}}) == "<a><b/></a>"

    def test_none_attribute_is_empty(self):
        """Test None attribute values become empty strings."""
        assert encode_text({"a": {"@x": None}}) == '<a x=""/>'

    def test_empty_list_writes_nothing(self):
        """Test an empty list produces no elements."""
        assert encode_text({"a": {"b": []}}) == "<a/>"

    def test_list_of_mappings(self):
        """Test list members may be mappings."""
        mapping = {"r": {"s": [{"@id": 1}, {"@id": 2, "n": "x"}]}}

        assert encode_text(mapping) == '<r><s id="1"/><s id="2"><n>x</n></s></r>'

    def test_value_to_node(self):
        """Test single value conversion."""
        node = value_to_node("depth", 3.5)

        assert node.tag == "depth"
        assert node.text == "3.5"

    @pytest.mark.parametrize("mapping,message", [
        ({"a": 1, "b": 2}, "Expected exactly one root key, found 2"),
        ({}, "Expected exactly one root key, found 0"),
        ([{"a": 1}], "Expected a mapping with one root key, got list"),
        ({"a": [1, 2]}, "Root value is a list"),
        ({"a": {"b": [1, [2]]}}, "List nested directly inside a list"),
        ({"a": {"@x": {"y": 1}}}, "Expected a scalar, got dict"),
        ({"a": {"#text": [1]}}, "Expected a scalar, got list"),
        ({"a": {1: "x"}}, "Mapping key 1 is not a string"),
        ({"a b": 1}, "cannot be used as an XML element name"),
        ({"a": {"1b": 1}}, "cannot be used as an XML element name"),
        ({"a": {"@x y": 1}}, "cannot be used as an XML attribute name"),
        ({"": 1}, "cannot be used as an XML element name"),
        ({"a\x01": 1}, "cannot be used as an XML element name"),
        ({"a": {"b\ud800": 1}}, "cannot be used as an XML element name"),
        ({"a": {"@x\x00": 1}}, "cannot be used as an XML attribute name"),
    ])
    def test_ambiguous_structures(self, mapping, message):
        """Test mappings without a single XML reading."""
        with pytest.raises(AmbiguousStructureError, match=message):
            to_xml(mapping)

    def test_error_path(self):
        """Test errors report where in the mapping they occurred."""
        with pytest.raises(AmbiguousStructureError) as exc_info:
            to_xml({"root": {"b": [1, [2]]}})

        assert exc_info.value.path == "root/b[1]"

    @pytest.mark.parametrize("mapping", [
        {"@a": 1},
        {"a": {"#comment": "x"}},
        {"a": {"@@x": 1}},
        {"a": {"@#text": 1}},
    ])
    def test_reserved_names_rejected(self, mapping):
        """Test names that would collide with key markers."""
        with pytest.raises(ReservedNameCollisionError):
            to_xml(mapping)

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), object(), b"x", "x\x01y", "\ud800"])
    def test_unsupported_scalars(self, value):
        """Test values without canonical text."""
        with pytest.raises(UnsupportedScalarError):
            to_xml({"a": {"b": value}})

    @pytest.mark.parametrize("mapping", [
        {"a": {"@x": "\x0c"}},
        {"a": {"@x": 1, "#text": "bell\x07"}},
    ])
    def test_unsupported_characters_in_attributes_and_text(self, mapping):
        """Test attribute values and element text are checked like leaves."""
        with pytest.raises(UnsupportedScalarError):
            to_xml(mapping)


class TestRoundTrip:
    """Test the round-trip laws between trees and mappings."""

    DOCUMENTS = [
        "<a/>",
        "<flag>true</flag>",
        '<a b="1"><b>2</b></a>',
        '<survey name="Main" length="12.5"><shot id="1"><from>A</from><to>B</to></shot>'
        '<shot id="2"><from>B</from><to>C</to></shot><note>00042</note></survey>',
        '<r><x y="">z</x><empty/><list><i>1</i><i>2</i><i>3</i></list></r>',
        "<t>1 &lt; 2 &amp; 3</t>",
    ]

    @pytest.mark.parametrize("text", DOCUMENTS)
    def test_mapping_round_trip(self, text):
        """Test to_mapping(to_xml(m)) reproduces m including order and types."""
        mapping = decode_text(text)

        assert ordered_equal(to_mapping(to_xml(mapping)), mapping)

    @pytest.mark.parametrize("text", DOCUMENTS)
    def test_tree_round_trip(self, text):
        """Test documents without interleaved tags survive a full cycle."""
        tree = build(text)
        again = build(XMLSerializer().serialize(to_xml(to_mapping(tree))))

        assert again.same_structure(tree)

    def test_interleaving_is_not_preserved(self):
        """Test sibling order across different tags is regrouped."""
        tree = build("<r><a>1</a><b>2</b><a>3</a></r>")
        again = to_xml(to_mapping(tree))

        assert [child.tag for child in again.children] == ["a", "a", "b"]

    def test_deep_document(self):
        """Test conversion depth is not limited by recursion."""
        depth = 3000
        tree = build("<n>" * depth + "x" + "</n>" * depth)

        mapping = to_mapping(tree)
        again = to_xml(mapping)

        assert again.same_structure(tree)
        assert ordered_equal(to_mapping(again), mapping)

    def test_single_item_list_collapses(self):
        """Test a one-item list decodes as a single value."""
        text = encode_text({"r": {"a": [1]}})

        assert text == "<r><a>1</a></r>"
        assert decode_text(text) == {"r": {"a": 1}}


class TestOrderedEqual:
    """Test strict mapping comparison."""

    def test_key_order_matters(self):
        """Test differently ordered keys are unequal."""
        assert {"a": 1, "b": 2} == {"b": 2, "a": 1}
        assert not ordered_equal({"a": 1, "b": 2}, {"b": 2, "a": 1})

    def test_types_matter(self):
        """Test bool, int and float are distinguished."""
        assert not ordered_equal({"a": True}, {"a": 1})
        assert not ordered_equal({"a": 1}, {"a": 1.0})

    def test_nested_equal(self):
        """Test nested structures."""
        left = {"r": {"@x": 1, "a": [1, {"b": "c"}]}}
        right = {"r": {"@x": 1, "a": [1, {"b": "c"}]}}

        assert ordered_equal(left, right)
        assert not ordered_equal(left, {"r": {"@x": 1, "a": [1]}})

    def test_mapping_against_list(self):
        """Test a mapping never equals a list."""
        assert not ordered_equal({"a": {}}, {"a": []})
