"""JSON document generator."""
import json
import math
import re
from collections.abc import Iterator, Mapping
from typing import Any, Optional

from messagelab.core.models import DataFormat, GeneratedDocument, JsonNodeType, JsonScalarType, Node
from messagelab.core.paths import LOOP_MARKER
from messagelab.core.tree import child_path
from messagelab.generators.base import DocumentGenerator
from messagelab.generators.value_resolver import Cache

_INTEGER = re.compile(r"^-?\d+$")


def coerce_value(value: Optional[str], original_type: Optional[JsonScalarType]) -> Any:
    """Convert a resolved string back to the JSON type of the source scalar."""
    if value is None or original_type == JsonScalarType.NULL:
        return None
    if original_type == JsonScalarType.NUMBER:
        text = value.strip()
        if _INTEGER.match(text):
            return int(text)
        try:
            number = float(text)
        except ValueError:
            return value
        return number if math.isfinite(number) else value
    if original_type == JsonScalarType.BOOLEAN:
        lowered = value.strip().lower()
        if lowered in ("true", "false"):
            return lowered == "true"
    return value


class JsonDocumentGenerator(DocumentGenerator):
    """Re-expands a JSON template tree into pretty-printed documents."""

    format = DataFormat.JSON

    def generate(self, root: Node) -> Iterator[GeneratedDocument]:
        while self.should_continue():
            file_index = self.document_count
            value = self.build(root, root.tag, file_index, {}, {})
            text = json.dumps(value, indent=2, ensure_ascii=False) + "\n"
            yield GeneratedDocument(
                name=self.document_name(file_index + 1),
                content=text.encode("utf-8"),
            )
            self.increment_count()

    def build(
        self,
        node: Node,
        path: str,
        file_index: int,
        loop_indices: Mapping[str, int],
        cache: Cache,
    ) -> Any:
        """Native value of one instance of ``node``."""
        if node.json_type == JsonNodeType.ARRAY:
            if not node.children:
                return []
            item = node.children[0]
            item_path = path + LOOP_MARKER
            return [
                self.build(item, item_path, file_index, {**loop_indices, node.loop_id: i}, cache)
                for i in range(self.resolver.loop_count(node.loop_id))
            ]

        if node.json_type == JsonNodeType.OBJECT:
            return {
                child.tag: self.build(child, child_path(node, path, child), file_index, loop_indices, cache)
                for child in node.children
            }

        value = self.field_value(path, node.json_value, file_index, loop_indices, cache)
        return coerce_value(value, node.json_original_type)
