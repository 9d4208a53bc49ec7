"""Base parser interface for turning source documents into templates."""
import time
from abc import ABC, abstractmethod

from messagelab.core.models import DataFormat, ParseOutcome
from messagelab.exceptions import ParseException
from messagelab.logging_config import get_logger


def clean_text(text: str) -> str:
    """Remove byte-order marks and NUL characters."""
    return text.replace("\ufeff", "").replace("\x00", "")


class TemplateParser(ABC):
    """Abstract base class for all format parsers.

    Subclasses implement :meth:`_parse`, which builds the node tree, the
    flattened fields, the loops and the relations, and raises a
    :class:`ParseException` subclass for malformed input.
    """

    format: DataFormat

    def __init__(self):
        self.logger = get_logger(self.__class__.__module__)

    def parse(self, text: str) -> ParseOutcome:
        """Parse ``text`` into a template.

        Args:
            text: Raw source document

        Returns:
            Successful ParseOutcome

        Raises:
            ParseException: If the document is malformed
        """
        start_time = time.time()
        try:
            outcome = self._parse(text)
        except ParseException as e:
            self.logger.log_parse(
                source_format=self.format.value,
                success=False,
                duration=time.time() - start_time,
                error=e.detail,
            )
            raise

        self.logger.log_parse(
            source_format=self.format.value,
            success=True,
            duration=time.time() - start_time,
            field_count=len(outcome.fields),
            loop_count=len(outcome.loops),
            relation_count=len(outcome.relations),
        )
        return outcome

    @abstractmethod
    def _parse(self, text: str) -> ParseOutcome:
        """Build the template from ``text``."""
        pass
