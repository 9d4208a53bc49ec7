"""CSV document generator."""
import io
from collections.abc import Iterator

import pandas as pd

from messagelab.core.models import DataFormat, GeneratedDocument, JsonNodeType, Node
from messagelab.core.tree import child_path
from messagelab.exceptions import InvalidStructureError
from messagelab.generators.base import DocumentGenerator
from messagelab.generators.value_resolver import ValueResolver


class CsvDocumentGenerator(DocumentGenerator):
    """Writes one CSV document with a row per requested output.

    The row index plays the role of the file index; rows sit outside any
    loop, so every field resolves with an empty loop map. Unedited columns
    replay the source rows in order, wrapping around past the last one.
    """

    format = DataFormat.CSV

    def __init__(
        self,
        resolver: ValueResolver,
        base_name: str = "message",
        max_documents: int | None = None,
        delimiter: str = ";",
    ):
        """Initialize the CSV generator.

        Args:
            resolver: Value resolver shared by the whole run
            base_name: Stem of the output file name
            max_documents: Number of rows to write
            delimiter: Column delimiter
        """
        super().__init__(resolver, base_name, max_documents)
        self.delimiter = delimiter

    def document_name(self, index: int = 1) -> str:
        return f"{self.base_name}_generated.csv"

    @staticmethod
    def row_template(root: Node) -> Node:
        """Return the single row node of a CSV tree.

        Raises:
            InvalidStructureError: If ``root`` is not an array of one object
        """
        if root.json_type != JsonNodeType.ARRAY:
            raise InvalidStructureError("array root", root.json_type.value if root.json_type else "element")
        if len(root.children) != 1 or root.children[0].json_type != JsonNodeType.OBJECT:
            raise InvalidStructureError("one object row", f"{len(root.children)} child node(s)")
        return root.children[0]

    def generate(self, root: Node) -> Iterator[GeneratedDocument]:
        row = self.row_template(root)
        row_path = child_path(root, root.tag, row)
        columns = [(leaf.tag, child_path(row, row_path, leaf), leaf.json_value) for leaf in row.children]
        self.resolver.bind_rows(
            root.loop_id,
            {field_id: leaf.samples for leaf, (_, field_id, _) in zip(row.children, columns)},
        )

        records = []
        while self.should_continue():
            row_index = self.document_count
            cache = {}
            records.append([
                self.field_value(field_id, original, row_index, {}, cache) or ""
                for _, field_id, original in columns
            ])
            self.increment_count()

        frame = pd.DataFrame(records, columns=[name for name, _, _ in columns], dtype=str)
        buffer = io.StringIO()
        frame.to_csv(buffer, sep=self.delimiter, index=False, lineterminator="\r\n")
        yield GeneratedDocument(name=self.document_name(), content=buffer.getvalue().encode("utf-8"))
