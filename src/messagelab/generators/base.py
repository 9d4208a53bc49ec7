"""Base generator interface for document generation."""
from abc import ABC, abstractmethod
from collections.abc import Iterator, Mapping
from typing import Optional

from messagelab.core.models import DataFormat, GeneratedDocument, Node
from messagelab.generators.value_resolver import Cache, ValueResolver


class DocumentGenerator(ABC):
    """Abstract base class for all document generators."""

    format: DataFormat

    def __init__(
        self,
        resolver: ValueResolver,
        base_name: str = "message",
        max_documents: int | None = None,
    ):
        """Initialize the generator.

        Args:
            resolver: Value resolver shared by the whole run
            base_name: Stem of the output file names
            max_documents: Number of documents (CSV: rows) to produce
        """
        self.resolver = resolver
        self.base_name = base_name
        self.max_documents = max_documents
        self._document_count = 0

    @abstractmethod
    def generate(self, root: Node) -> Iterator[GeneratedDocument]:
        """Generate documents from a template tree.

        Yields:
            Named output buffers
        """
        pass

    def should_continue(self) -> bool:
        """Check if generation should continue based on max_documents."""
        if self.max_documents is None:
            return True
        return self._document_count < self.max_documents

    def increment_count(self) -> None:
        """Increment the document counter."""
        self._document_count += 1

    @property
    def document_count(self) -> int:
        """Get the current document count."""
        return self._document_count

    def document_name(self, index: int) -> str:
        """File name of the ``index``-th document (1-based)."""
        return f"{self.base_name}_{index}.{self.format.extension}"

    def field_value(
        self,
        field_id: str,
        original: Optional[str],
        file_index: int,
        loop_indices: Mapping[str, int],
        cache: Cache,
    ) -> Optional[str]:
        """Resolved value of ``field_id``, or ``original`` when it is not a field."""
        if self.resolver.field_for(field_id) is None:
            return original
        return self.resolver.resolve(field_id, file_index, loop_indices, cache)
