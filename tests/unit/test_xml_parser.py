"""Unit tests for the XML template parser."""
import pytest

from messagelab.core.models import FieldKind
from messagelab.exceptions import XmlParseError
from messagelab.parsers import parse_document
from messagelab.parsers.xml_parser import XmlTemplateParser


class TestXmlTemplateParser:
    """Test XML parsing into fields, loops and relations."""

    def test_fields_in_document_order(self, order_xml):
        outcome = XmlTemplateParser().parse(order_xml)
        assert outcome.ok
        assert [f.id for f in outcome.fields] == [
            "order/@id",
            "order/customer/name",
            "order/customer/ref",
            "order/items/item[]/@sku",
            "order/items/item[]/qty",
            "order/items/item[]/price",
            "order/created",
        ]

    def test_repeated_items_become_a_loop(self, order_xml):
        outcome = XmlTemplateParser().parse(order_xml)
        assert [(loop.id, loop.count) for loop in outcome.loops] == [("order/items/item", 3)]

    def test_representative_is_first_occurrence(self, order_xml):
        outcome = XmlTemplateParser().parse(order_xml)
        values = {f.id: f.value for f in outcome.fields}
        assert values["order/items/item[]/@sku"] == "A1"
        assert values["order/items/item[]/price"] == "10.50"

    def test_kinds_are_inferred(self, order_xml):
        outcome = XmlTemplateParser().parse(order_xml)
        kinds = {f.id: f.kind for f in outcome.fields}
        assert kinds["order/items/item[]/qty"] == FieldKind.NUMBER
        assert kinds["order/created"] == FieldKind.DATE
        assert kinds["order/customer/name"] == FieldKind.TEXT

    def test_shared_values_become_relations(self, order_xml):
        outcome = XmlTemplateParser().parse(order_xml)
        assert [(r.master_id, r.dependent_id) for r in outcome.relations] == [
            ("order/@id", "order/customer/ref"),
        ]

    def test_namespace_prefixes_are_kept(self):
        text = (
            '<ns:doc xmlns:ns="urn:example" xml:lang="en">'
            '<ns:value ns:unit="kg">12</ns:value>'
            '</ns:doc>'
        )
        outcome = XmlTemplateParser().parse(text)
        assert outcome.ok
        ids = [f.id for f in outcome.fields]
        assert "ns:doc/@xmlns:ns" not in ids
        assert "ns:doc/@xml:lang" in ids
        assert "ns:doc/ns:value/@ns:unit" in ids
        assert "ns:doc/ns:value" in ids

    def test_repeated_namespace_uris_are_not_related(self):
        text = (
            '<root><a xmlns:p="urn:shared"><p:x>1</p:x></a>'
            '<b xmlns:p="urn:shared"><p:y>2</p:y></b></root>'
        )
        outcome = XmlTemplateParser().parse(text)
        assert [f.id for f in outcome.fields] == ["root/a/p:x", "root/b/p:y"]
        assert outcome.relations == []

    def test_comments_are_skipped(self):
        outcome = XmlTemplateParser().parse("<a><!-- note --><b>hello</b></a>")
        assert [f.id for f in outcome.fields] == ["a/b"]

    def test_malformed_document_raises_with_position(self):
        with pytest.raises(XmlParseError) as exc_info:
            XmlTemplateParser().parse("<a><b></a>")
        assert exc_info.value.line == 1
        assert exc_info.value.detail.startswith("line 1")

    def test_empty_document_raises(self):
        with pytest.raises(XmlParseError):
            XmlTemplateParser().parse("   ")

    def test_parse_document_reports_failure(self):
        outcome = parse_document("<a>", "xml")
        assert not outcome.ok
        assert outcome.error_kind == "xmlParse"
        assert outcome.detail
