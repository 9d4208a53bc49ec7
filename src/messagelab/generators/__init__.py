"""Document generation: value resolution, uniqueness and format writers."""
import time
from pathlib import PurePath
from typing import Optional, Union

from messagelab.config.loader import GeneratorConfig
from messagelab.core.models import (
    DataFormat,
    FieldSetting,
    GeneratedDocument,
    GenerationOutcome,
    LoopSetting,
    Node,
    Relation,
)
from messagelab.exceptions import GenerationException, UniqueValuesExhaustedError
from messagelab.generators.base import DocumentGenerator
from messagelab.generators.csv_gen import CsvDocumentGenerator
from messagelab.generators.json_gen import JsonDocumentGenerator
from messagelab.generators.unique_values import UniqueValuePool
from messagelab.generators.value_resolver import ValueResolver
from messagelab.generators.xml_gen import XmlDocumentGenerator
from messagelab.logging_config import PerformanceTimer, get_logger

DEFAULT_BASE_NAME = "message"

logger = get_logger(__name__)


def base_name_for(file_name: Optional[str], default: str = DEFAULT_BASE_NAME) -> str:
    """Source file name without its last extension."""
    if not file_name:
        return default
    return PurePath(file_name).stem or default


def generate_documents(
    root: Node,
    fields: list[FieldSetting],
    loops: list[LoopSetting],
    relations: list[Relation],
    file_count: int,
    fmt: Union[DataFormat, str],
    csv_delimiter: str = ";",
    base_name: str = DEFAULT_BASE_NAME,
    config: Optional[GeneratorConfig] = None,
) -> list[GeneratedDocument]:
    """Generate a batch of documents from a template.

    Args:
        root: Template tree
        fields: Field settings
        loops: Loop settings
        relations: Relations between fields
        file_count: Number of documents (CSV: rows), coerced to at least 1
        fmt: Output format
        csv_delimiter: CSV column delimiter
        base_name: Stem of the output file names
        config: Generator configuration (seed, retry budget)

    Returns:
        The generated documents, in order

    Raises:
        UniqueValuesExhaustedError: If a random field cannot stay unique
        InvalidStructureError: If a CSV tree is not an array of one row
    """
    config = config or GeneratorConfig()
    fmt = DataFormat(fmt)
    count = max(1, int(file_count))

    resolver = ValueResolver(
        fields,
        loops,
        relations,
        seed=config.seed,
        max_unique_attempts=config.max_unique_attempts,
    )
    generator: DocumentGenerator
    if fmt == DataFormat.CSV:
        generator = CsvDocumentGenerator(resolver, base_name, count, delimiter=csv_delimiter)
    elif fmt == DataFormat.JSON:
        generator = JsonDocumentGenerator(resolver, base_name, count)
    else:
        generator = XmlDocumentGenerator(resolver, base_name, count)

    with PerformanceTimer(logger, "document generation", format=fmt.value, file_count=count):
        return list(generator.generate(root))


class GenerationService:
    """Runs generation as an all-or-nothing operation with a structured result."""

    def __init__(self, config: Optional[GeneratorConfig] = None):
        self.config = config or GeneratorConfig()
        self.logger = get_logger(__name__)

    def run(
        self,
        root: Node,
        fields: list[FieldSetting],
        loops: list[LoopSetting],
        relations: list[Relation],
        file_count: int,
        fmt: Union[DataFormat, str],
        csv_delimiter: Optional[str] = None,
        base_name: Optional[str] = None,
    ) -> GenerationOutcome:
        """Generate documents; failures come back as a failed outcome.

        Returns:
            GenerationOutcome with every document, or none and the error kind
        """
        fmt = DataFormat(fmt)
        start_time = time.time()
        try:
            documents = generate_documents(
                root,
                fields,
                loops,
                relations,
                file_count,
                fmt,
                csv_delimiter=csv_delimiter or self.config.default_csv_delimiter,
                base_name=base_name or self.config.base_name,
                config=self.config,
            )
        except UniqueValuesExhaustedError as e:
            self.logger.log_generation(fmt.value, file_count, False, time.time() - start_time, error=e.message)
            return GenerationOutcome(ok=False, error_kind=e.error_kind, field_id=e.field_id, detail=e.message)
        except GenerationException as e:
            self.logger.log_generation(fmt.value, file_count, False, time.time() - start_time, error=e.message)
            return GenerationOutcome(ok=False, error_kind=e.error_kind, detail=e.message)

        self.logger.log_generation(
            fmt.value,
            file_count,
            True,
            time.time() - start_time,
            document_count=len(documents),
        )
        return GenerationOutcome(ok=True, documents=documents)


__all__ = [
    "CsvDocumentGenerator",
    "DocumentGenerator",
    "GenerationService",
    "JsonDocumentGenerator",
    "UniqueValuePool",
    "ValueResolver",
    "XmlDocumentGenerator",
    "base_name_for",
    "generate_documents",
]
