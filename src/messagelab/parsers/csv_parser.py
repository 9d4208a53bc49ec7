"""CSV template parser."""
import io
import re
from typing import Optional

import pandas as pd

from messagelab.core.fields import create_field_setting, detect_kind
from messagelab.core.models import (
    DataFormat,
    FieldKind,
    JsonNodeType,
    JsonScalarType,
    LoopSetting,
    Node,
    ParseOutcome,
)
from messagelab.core.paths import LOOP_MARKER, normalize_loop_id
from messagelab.core.relations import detect_relations
from messagelab.exceptions import CsvParseError
from messagelab.parsers.base import TemplateParser, clean_text

DELIMITERS = (";", ",", "\t")
ROOT_TAG = "root"

_LINE_BREAK = re.compile(r"\r\n|\n|\r")


def count_unquoted(line: str, delimiter: str) -> int:
    """Count occurrences of ``delimiter`` outside double-quoted sections."""
    count = 0
    in_quotes = False
    i = 0
    while i < len(line):
        ch = line[i]
        if ch == '"':
            if in_quotes and line[i + 1:i + 2] == '"':
                i += 1
            else:
                in_quotes = not in_quotes
        elif ch == delimiter and not in_quotes:
            count += 1
        i += 1
    return count


def detect_delimiter(header_line: str) -> str:
    """Pick the candidate delimiter occurring most often; ties go to the earlier one."""
    best = DELIMITERS[0]
    best_count = -1
    for delimiter in DELIMITERS:
        count = count_unquoted(header_line, delimiter)
        if count > best_count:
            best, best_count = delimiter, count
    return best


def unique_column_names(headers: list[str]) -> list[str]:
    """Name empty headers ``column_{n}`` and suffix duplicates with ``_{k}``."""
    columns = [header or f"column_{index + 1}" for index, header in enumerate(headers)]
    seen: dict[str, int] = {}
    for index, name in enumerate(columns):
        seen[name] = seen.get(name, 0) + 1
        if seen[name] > 1:
            columns[index] = f"{name}_{seen[name]}"
    return columns


def infer_column_kind(values: list[str]) -> FieldKind:
    """Kind shared by every non-blank value; mixed kinds collapse to text."""
    chosen: Optional[FieldKind] = None
    for raw in values:
        trimmed = raw.strip()
        if not trimmed or trimmed.lower() == "null":
            continue
        detected = detect_kind(trimmed)
        if chosen is None:
            chosen = detected
        elif chosen != detected:
            return FieldKind.TEXT
    return chosen or FieldKind.TEXT


def _first_non_blank(values: list[str]) -> str:
    return next((raw for raw in values if raw.strip()), "")


def _read(text: str, delimiter: str, width: Optional[int] = None) -> pd.DataFrame:
    options = dict(
        sep=delimiter,
        header=None,
        dtype=str,
        keep_default_na=False,
        quotechar='"',
        doublequote=True,
        skip_blank_lines=False,
        index_col=False,
        engine="python",
    )
    if width is not None:
        options.update(names=list(range(width)), on_bad_lines=lambda bad: bad[:width])
    return pd.read_csv(io.StringIO(text), **options)


class CsvTemplateParser(TemplateParser):
    """Parses delimited text into a single repeating row group."""

    format = DataFormat.CSV

    def __init__(self, delimiter: Optional[str] = None):
        """Initialize the CSV parser.

        Args:
            delimiter: Forced delimiter; detected from the header line when None
        """
        super().__init__()
        self.delimiter = delimiter

    def read_table(self, text: str) -> tuple[str, list[str], list[list[str]]]:
        """Split ``text`` into delimiter, header cells and data rows.

        Raises:
            CsvParseError: If there is no header or it cannot be tokenized
        """
        lines = [line for line in _LINE_BREAK.split(clean_text(text)) if line.strip()]
        if not lines:
            raise CsvParseError("Document is empty")

        delimiter = self.delimiter or detect_delimiter(lines[0])
        try:
            header_frame = _read(lines[0], delimiter)
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise CsvParseError(f"Unreadable header line: {e}", line=1, original_error=e) from e

        headers = [str(cell).strip() for cell in header_frame.iloc[0].tolist()]
        if not any(headers):
            raise CsvParseError("Header line has no column names", line=1)

        rows: list[list[str]] = []
        if len(lines) > 1:
            try:
                body = _read("\n".join(lines[1:]), delimiter, width=len(headers))
            except pd.errors.ParserError as e:
                raise CsvParseError(f"Unreadable rows: {e}", original_error=e) from e
            rows = body.fillna("").astype(str).values.tolist()

        return delimiter, headers, rows

    def _parse(self, text: str) -> ParseOutcome:
        delimiter, headers, rows = self.read_table(text)
        columns = unique_column_names(headers)
        column_values = [[row[index] for row in rows] for index in range(len(columns))]

        row_path = ROOT_TAG + LOOP_MARKER
        leaves = []
        fields = []
        for name, values in zip(columns, column_values):
            kind = infer_column_kind(values)
            sample = _first_non_blank(values)
            leaves.append(Node(
                tag=name,
                json_type=JsonNodeType.VALUE,
                json_value=sample,
                json_value_kind=kind,
                json_original_type=JsonScalarType.STRING,
                samples=tuple(values),
            ))
            fields.append(create_field_setting(f"{row_path}/{name}", sample, kind))

        loop_id = normalize_loop_id(row_path)
        row = Node(tag=LOOP_MARKER, children=tuple(leaves), json_type=JsonNodeType.OBJECT)
        root = Node(tag=ROOT_TAG, children=(row,), json_type=JsonNodeType.ARRAY, loop_id=loop_id)
        loops = [LoopSetting(id=loop_id, label=loop_id, count=max(1, len(rows)))]

        return ParseOutcome.success(root, fields, loops, detect_relations(fields), delimiter=delimiter)
