"""Format detection and parsing of source documents into templates."""
from pathlib import PurePath
from typing import Optional, Union

from messagelab.core.models import DataFormat, ParseOutcome
from messagelab.exceptions import ParseException
from messagelab.parsers.base import TemplateParser, clean_text
from messagelab.parsers.csv_parser import CsvTemplateParser, detect_delimiter
from messagelab.parsers.json_parser import JsonTemplateParser
from messagelab.parsers.xml_parser import XmlTemplateParser

_CSV_HINTS = (";", ",", "\t")


def detect_format(file_name: Optional[str], text: str) -> DataFormat:
    """Guess the format of an uploaded document.

    The file extension wins when it is one of ``.xml``, ``.json`` or
    ``.csv``; otherwise the content is sniffed.
    """
    if file_name:
        suffix = PurePath(file_name).suffix.lower().lstrip(".")
        for fmt in DataFormat:
            if suffix == fmt.extension:
                return fmt

    content = clean_text(text).lstrip()
    if content.startswith(("{", "[")):
        return DataFormat.JSON
    if content.startswith("<"):
        return DataFormat.XML
    if any(hint in content for hint in _CSV_HINTS):
        return DataFormat.CSV
    return DataFormat.XML


def get_parser(fmt: Union[DataFormat, str], delimiter: Optional[str] = None) -> TemplateParser:
    """Return the parser for ``fmt``."""
    fmt = DataFormat(fmt)
    if fmt == DataFormat.JSON:
        return JsonTemplateParser()
    if fmt == DataFormat.CSV:
        return CsvTemplateParser(delimiter=delimiter)
    return XmlTemplateParser()


def parse_document(
    text: str,
    fmt: Union[DataFormat, str],
    delimiter: Optional[str] = None,
) -> ParseOutcome:
    """Parse ``text`` as ``fmt``; malformed input gives a failed outcome.

    Args:
        text: Raw document text
        fmt: Source format
        delimiter: CSV delimiter override (ignored for other formats)

    Returns:
        ParseOutcome, ``ok`` with the template or carrying ``error_kind``
        and ``detail`` on failure
    """
    try:
        return get_parser(fmt, delimiter).parse(text)
    except ParseException as e:
        return ParseOutcome.failure(e.error_kind, e.detail)


__all__ = [
    "CsvTemplateParser",
    "JsonTemplateParser",
    "TemplateParser",
    "XmlTemplateParser",
    "detect_delimiter",
    "detect_format",
    "get_parser",
    "parse_document",
]
