"""Logging configuration for messagelab parse and generation operations.

Records carry their operation context (format, counts, durations) as extra
attributes, so a parse or a generation run can be traced from either
human-readable or JSON log lines.
"""

import json
import logging
import sys
import time
from typing import Any, Optional


# Attributes every LogRecord has; anything else was passed as context.
_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


def record_context(record: logging.LogRecord) -> dict[str, Any]:
    """Extra attributes attached to ``record``."""
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class StructuredFormatter(logging.Formatter):
    """Renders records as ``time - level - logger - message [k=v, ...]`` or JSON."""

    def __init__(self, json_format: bool = False):
        super().__init__()
        self.json_format = json_format

    def format(self, record: logging.LogRecord) -> str:
        stamp = time.strftime("%Y-%m-%d %H:%M:%S", time.localtime(record.created))
        context = record_context(record)
        exception = self.formatException(record.exc_info) if record.exc_info else None

        if self.json_format:
            entry: dict[str, Any] = {
                "timestamp": stamp,
                "level": record.levelname,
                "logger": record.name,
                "message": record.getMessage(),
            }
            if context:
                entry["context"] = context
            if exception:
                entry["exception"] = exception
            return json.dumps(entry, default=str)

        line = " - ".join((stamp, record.levelname, record.name, record.getMessage()))
        if context:
            line += " [" + ", ".join(f"{key}={value}" for key, value in context.items()) + "]"
        if exception:
            line += "\n" + exception
        return line


class OperationLogger:
    """Logger wrapper that attaches operation context to every record."""

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self._context: dict[str, Any] = {}

    def set_operation_context(self, **context: Any) -> None:
        """Attach ``context`` to every following record."""
        self._context.update(context)

    def clear_operation_context(self) -> None:
        self._context.clear()

    def log(self, level: int, message: str, **context: Any) -> None:
        self.logger.log(level, message, extra={**self._context, **context})

    def debug(self, message: str, **context: Any) -> None:
        self.log(logging.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self.log(logging.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self.log(logging.WARNING, message, **context)

    def error(self, message: str, **context: Any) -> None:
        self.log(logging.ERROR, message, **context)

    def log_parse(
        self,
        source_format: str,
        success: bool,
        duration: float,
        field_count: Optional[int] = None,
        loop_count: Optional[int] = None,
        relation_count: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record the result of parsing a source document.

        Successful parses log at INFO with the template size, failures at
        WARNING with the parser's error.
        """
        context = _run_context("parse", source_format, success, duration)
        if success:
            self.info(
                f"Parsed {source_format} template",
                fields=field_count,
                loops=loop_count,
                relations=relation_count,
                **context,
            )
        else:
            self.warning(f"Failed to parse {source_format} template", error=error, **context)

    def log_generation(
        self,
        output_format: str,
        file_count: int,
        success: bool,
        duration: float,
        document_count: Optional[int] = None,
        error: Optional[str] = None,
    ) -> None:
        """Record the result of a generation run.

        Args:
            output_format: Output format ('xml', 'json', 'csv')
            file_count: Requested file (or CSV row) count
            success: Whether every document was produced
            duration: Run duration in seconds
            document_count: Number of documents produced
            error: Error message if the run failed
        """
        context = _run_context("generation", output_format, success, duration)
        context["file_count"] = file_count
        if success:
            self.info(f"Generated {document_count} {output_format} document(s)", documents=document_count, **context)
        else:
            self.error(f"Generation of {output_format} documents failed", error=error, **context)


def _run_context(operation: str, fmt: str, success: bool, duration: float) -> dict[str, Any]:
    return {
        "operation": operation,
        "format": fmt,
        "success": success,
        "duration_seconds": round(duration, 3),
    }


def configure_logging(
    level: str = "INFO",
    json_format: bool = False,
    log_file: Optional[str] = None
) -> None:
    """Install messagelab's handlers on the root logger.

    Args:
        level: Console log level name
        json_format: Emit JSON lines instead of text
        log_file: Optional file that receives every record down to DEBUG
    """
    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO
    formatter = StructuredFormatter(json_format=json_format)

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(numeric_level)
    handlers: list[logging.Handler] = [console]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setFormatter(formatter)

    logging.basicConfig(level=numeric_level, handlers=handlers, force=True)
    logging.getLogger("messagelab").setLevel(numeric_level)


def get_logger(name: str) -> OperationLogger:
    return OperationLogger(name)


class PerformanceTimer:
    """Times a block and logs its start and outcome at DEBUG."""

    def __init__(self, logger: OperationLogger, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.start_time = 0.0
        self.duration = 0.0

    def __enter__(self) -> "PerformanceTimer":
        self.start_time = time.perf_counter()
        self.logger.debug(f"Starting {self.operation}", **self.context)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.duration = time.perf_counter() - self.start_time
        outcome = "Completed" if exc_type is None else "Failed"
        extra = {"duration_seconds": round(self.duration, 3)}
        if exc_type is not None:
            extra["error"] = str(exc_val) or exc_type.__name__
        self.logger.debug(f"{outcome} {self.operation}", **self.context, **extra)
