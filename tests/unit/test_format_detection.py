"""Unit tests for source format detection."""
import pytest

from messagelab.core.models import DataFormat
from messagelab.parsers import detect_format, get_parser
from messagelab.parsers.csv_parser import CsvTemplateParser
from messagelab.parsers.json_parser import JsonTemplateParser
from messagelab.parsers.xml_parser import XmlTemplateParser


class TestDetectFormat:
    """Test extension- and content-based detection."""

    @pytest.mark.parametrize("file_name,expected", [
        ("order.xml", DataFormat.XML),
        ("ORDER.JSON", DataFormat.JSON),
        ("people.csv", DataFormat.CSV),
    ])
    def test_extension_wins(self, file_name, expected):
        assert detect_format(file_name, "<ignored/>" if expected != DataFormat.XML else "{}") == expected

    @pytest.mark.parametrize("text,expected", [
        ('  {"a": 1}', DataFormat.JSON),
        ("[1, 2]", DataFormat.JSON),
        ("﻿<root/>", DataFormat.XML),
        ("a;b\n1;2", DataFormat.CSV),
        ("a\tb", DataFormat.CSV),
        ("plain", DataFormat.XML),
    ])
    def test_content_sniffing(self, text, expected):
        assert detect_format("upload.txt", text) == expected
        assert detect_format(None, text) == expected

    def test_get_parser(self):
        assert isinstance(get_parser("xml"), XmlTemplateParser)
        assert isinstance(get_parser(DataFormat.JSON), JsonTemplateParser)
        parser = get_parser("csv", ",")
        assert isinstance(parser, CsvTemplateParser)
        assert parser.delimiter == ","
