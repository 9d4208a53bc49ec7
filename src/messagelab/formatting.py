"""Pretty-printing of source documents.

Every formatter returns its input unchanged when the text cannot be parsed,
so an editor can offer "format" without guarding against bad input.
"""
import io
import json
from typing import Optional

import pandas as pd
from lxml import etree

from messagelab.core.models import DataFormat
from messagelab.exceptions import CsvParseError
from messagelab.parsers.base import clean_text
from messagelab.parsers.csv_parser import CsvTemplateParser


def format_xml(text: str) -> str:
    """Re-indent XML; the declaration is kept when the source has one."""
    source = clean_text(text).strip()
    parser = etree.XMLParser(remove_blank_text=True, resolve_entities=False, no_network=True)
    try:
        element = etree.fromstring(source.encode("utf-8"), parser=parser)
    except etree.XMLSyntaxError:
        return text

    body = etree.tostring(element, pretty_print=True, encoding="unicode")
    if source.startswith("<?xml"):
        return '<?xml version="1.0" encoding="UTF-8"?>\n' + body
    return body


def format_json(text: str) -> str:
    """Re-indent JSON with two spaces."""
    try:
        value = json.loads(clean_text(text))
    except json.JSONDecodeError:
        return text
    return json.dumps(value, indent=2, ensure_ascii=False) + "\n"


def format_csv(text: str, delimiter: Optional[str] = None) -> str:
    """Rewrite CSV with normalized quoting, dropping blank lines."""
    try:
        delimiter, headers, rows = CsvTemplateParser(delimiter).read_table(text)
    except CsvParseError:
        return text

    buffer = io.StringIO()
    pd.DataFrame(rows, columns=range(len(headers)), dtype=str).to_csv(
        buffer,
        sep=delimiter,
        index=False,
        header=headers,
        lineterminator="\n",
    )
    return buffer.getvalue()


def format_source(text: str, fmt: DataFormat, delimiter: Optional[str] = None) -> str:
    """Format ``text`` according to ``fmt``."""
    fmt = DataFormat(fmt)
    if fmt == DataFormat.JSON:
        return format_json(text)
    if fmt == DataFormat.CSV:
        return format_csv(text, delimiter)
    return format_xml(text)
