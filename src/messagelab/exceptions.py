"""Exception hierarchy for messagelab.

Parsers, the generation engine, configuration loading and the template
store raise these. Each carries a one-line ``message`` for users, optional
technical ``details`` and numbered ``suggestions``; the parse and
generation errors also expose an ``error_kind`` tag that callers can
surface without checking the type.
"""

import logging
from typing import Optional

logger = logging.getLogger(__name__)


class MessageLabException(Exception):
    """Root of every error messagelab raises on purpose."""

    error_kind = "error"

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        suggestions: Optional[list[str]] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details
        self.suggestions = list(suggestions) if suggestions else []
        self.original_error = original_error
        self._report()

    def _report(self) -> None:
        logger.error("%s: %s", type(self).__name__, self.message)
        for label, extra in (("details", self.details), ("cause", self.original_error)):
            if extra:
                logger.debug("%s %s: %s", type(self).__name__, label, extra)

    def get_user_message(self) -> str:
        """The message followed by a numbered list of suggestions, if any."""
        lines = [self.message]
        if self.suggestions:
            lines.append("\nSuggestions:")
            lines.extend(f"  {number}. {text}" for number, text in enumerate(self.suggestions, 1))
        return "\n".join(lines)


# Parse exceptions

class ParseException(MessageLabException):
    """Base exception for malformed source documents.

    ``detail`` is a short position hint (``line 3, col 7``) when the
    underlying parser reports one, otherwise the parser's own message.
    """

    error_kind = "parse"
    format_name = "document"

    def __init__(
        self,
        reason: str,
        line: Optional[int] = None,
        column: Optional[int] = None,
        original_error: Optional[Exception] = None
    ):
        self.line = line
        self.column = column
        self.reason = reason
        if line is not None and column is not None:
            self.detail = f"line {line}, col {column}"
        elif line is not None:
            self.detail = f"line {line}"
        else:
            self.detail = reason

        super().__init__(
            message=f"Could not parse {self.format_name}: {self.detail}",
            details=reason,
            suggestions=[f"Check that the file is well-formed {self.format_name}"],
            original_error=original_error
        )


class XmlParseError(ParseException):
    """Raised when an XML document is not well-formed."""

    error_kind = "xmlParse"
    format_name = "XML"


class JsonParseError(ParseException):
    """Raised when a JSON document cannot be decoded."""

    error_kind = "jsonParse"
    format_name = "JSON"


class CsvParseError(ParseException):
    """Raised when a CSV document has no usable header."""

    error_kind = "csvParse"
    format_name = "CSV"


# Generation exceptions

class GenerationException(MessageLabException):
    """Base exception for generation failures."""

    error_kind = "generation"


class UniqueValuesExhaustedError(GenerationException):
    """Raised when a random field cannot produce another distinct value."""

    error_kind = "uniqueValuesExhausted"

    def __init__(
        self,
        field_id: str,
        used_count: int,
        space: Optional[int] = None
    ):
        suggestions = [
            f"Widen the value range or length of field '{field_id}'",
            "Generate fewer files or reduce loop counts",
            f"Switch '{field_id}' to increment or list mode",
        ]
        space_text = f" (value space {space})" if space is not None else ""

        super().__init__(
            message=f"Cannot produce unique values for field: {field_id}",
            details=f"{used_count} distinct values already used{space_text}",
            suggestions=suggestions
        )
        self.field_id = field_id
        self.used_count = used_count
        self.space = space


class InvalidStructureError(GenerationException):
    """Raised when a tree does not have the shape a generator requires."""

    error_kind = "invalidStructure"

    def __init__(self, expected: str, found: str):
        super().__init__(
            message=f"Unexpected document structure: expected {expected}",
            details=f"Found: {found}",
            suggestions=["Re-parse the source document before generating"]
        )
        self.expected = expected
        self.found = found


# Configuration exceptions

class ConfigurationException(MessageLabException):
    """Base exception for configuration errors."""

    error_kind = "configuration"


class InvalidConfigurationError(ConfigurationException):
    """Raised when a settings file cannot be read or fails validation.

    ``config_errors`` holds one entry per problem, in the order reported.
    """

    def __init__(self, config_path: str, config_errors: list[str]):
        self.config_path = config_path
        self.config_errors = list(config_errors)
        super().__init__(
            message=f"Invalid configuration: {config_path}",
            details="; ".join(self.config_errors),
            suggestions=[
                f"Correct the listed settings in {config_path}",
                "Check key names against the documented settings sections",
            ]
        )


# Storage exceptions

class StorageException(MessageLabException):
    """Base exception for template store errors."""

    error_kind = "storage"


class TemplateNotFoundError(StorageException):
    """Raised when a stored template id is unknown."""

    def __init__(self, template_id: str):
        super().__init__(
            message=f"Template not found: {template_id}",
            suggestions=["List stored templates with: messagelab template list"]
        )
        self.template_id = template_id


class BackupImportError(StorageException):
    """Raised when a backup file cannot be read."""

    def __init__(self, backup_path: str, import_error: Exception):
        super().__init__(
            message=f"Failed to import backup: {backup_path}",
            details=f"Import error: {import_error}",
            suggestions=["Verify the file was produced by 'messagelab backup export'"],
            original_error=import_error
        )
        self.backup_path = backup_path
