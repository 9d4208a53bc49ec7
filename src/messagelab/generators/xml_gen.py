"""XML document generator."""
from collections.abc import Iterator, Mapping
from typing import Optional
from xml.sax.saxutils import escape

from messagelab.core.models import DataFormat, GeneratedDocument, Node
from messagelab.core.tree import child_path
from messagelab.generators.base import DocumentGenerator
from messagelab.generators.value_resolver import Cache

XML_DECLARATION = '<?xml version="1.0" encoding="UTF-8"?>\n'

_ENTITIES = {'"': "&quot;", "'": "&apos;"}


def escape_xml(value: Optional[str]) -> str:
    """Escape the five predefined XML entities."""
    return escape(value or "", _ENTITIES)


class XmlDocumentGenerator(DocumentGenerator):
    """Re-expands an XML template tree into compact documents."""

    format = DataFormat.XML

    def generate(self, root: Node) -> Iterator[GeneratedDocument]:
        while self.should_continue():
            file_index = self.document_count
            parts = [XML_DECLARATION]
            self.render(root, root.tag, file_index, {}, {}, parts)
            yield GeneratedDocument(
                name=self.document_name(file_index + 1),
                content="".join(parts).encode("utf-8"),
            )
            self.increment_count()

    def render(
        self,
        node: Node,
        path: str,
        file_index: int,
        loop_indices: Mapping[str, int],
        cache: Cache,
        out: list[str],
    ) -> None:
        """Append the markup of ``node`` (one instance) to ``out``."""
        out.append(f"<{node.tag}")
        for attr in node.attrs:
            if attr.is_namespace_declaration:
                out.append(f' {attr.name}="{escape_xml(attr.value)}"')
                continue
            value = self.field_value(f"{path}/@{attr.name}", attr.value, file_index, loop_indices, cache)
            out.append(f' {attr.name}="{escape_xml(value)}"')

        if node.children:
            out.append(">")
            for child in node.children:
                self.render_child(node, path, child, file_index, loop_indices, cache, out)
            out.append(f"</{node.tag}>")
            return

        text = self.field_value(path, node.text, file_index, loop_indices, cache)
        if text:
            out.append(f">{escape_xml(text)}</{node.tag}>")
        else:
            out.append("/>")

    def render_child(
        self,
        parent: Node,
        parent_path: str,
        child: Node,
        file_index: int,
        loop_indices: Mapping[str, int],
        cache: Cache,
        out: list[str],
    ) -> None:
        path = child_path(parent, parent_path, child)
        if child.loop_id is None:
            self.render(child, path, file_index, loop_indices, cache, out)
            return
        for i in range(self.resolver.loop_count(child.loop_id)):
            self.render(child, path, file_index, {**loop_indices, child.loop_id: i}, cache, out)
