"""JSON-file backed key-value store."""
import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from messagelab.logging_config import get_logger

logger = get_logger(__name__)


class JsonFileStore:
    """Key-value store persisted as a single JSON object.

    Unreadable or corrupt files behave like an empty store; the next write
    replaces them. Writes go through a temporary file and an atomic rename.
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize the store.

        Args:
            path: Location of the JSON file (``~`` is expanded)
        """
        self.path = Path(path).expanduser()

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable store file", path=str(self.path), error=str(e))
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring store file without a top-level object", path=str(self.path))
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".store-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_name, self.path)
        finally:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)

    def get(self, key: str, default: Any = None) -> Any:
        """Get the value stored under ``key``."""
        return self._read().get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Store ``value`` (must be JSON serializable) under ``key``."""
        data = self._read()
        data[key] = value
        self._write(data)

    def delete(self, key: str) -> None:
        """Remove ``key``; unknown keys are ignored."""
        data = self._read()
        if key in data:
            del data[key]
            self._write(data)

    def keys(self) -> list[str]:
        return list(self._read())
