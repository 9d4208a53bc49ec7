"""Backup export and import of the template store."""
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Union

from pydantic import ValidationError

from messagelab.exceptions import BackupImportError
from messagelab.logging_config import get_logger
from messagelab.storage.templates import (
    DEFAULT_CATEGORY,
    LAST_KEY,
    TemplateRepository,
    load_payload,
)

BACKUP_VERSION = 1
BACKUP_FILE_NAME = "messagelab-backup.json"

logger = get_logger(__name__)


def export_backup(repository: TemplateRepository) -> dict[str, Any]:
    """Snapshot of every template, project and category."""
    return {
        "version": BACKUP_VERSION,
        "exportedAt": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
        "templates": [template.to_dict() for template in repository.list()],
        "projects": repository.projects(),
        "categories": repository.categories_map(),
    }


def write_backup(repository: TemplateRepository, path: Union[str, Path]) -> Path:
    """Write a backup file and return its path."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    with open(target, "w", encoding="utf-8") as f:
        json.dump(export_backup(repository), f, indent=2, ensure_ascii=False)
    logger.info("Exported backup", path=str(target))
    return target


def import_backup(repository: TemplateRepository, path: Union[str, Path]) -> int:
    """Replace the stored templates, projects and categories with a backup.

    Returns:
        Number of imported templates

    Raises:
        BackupImportError: If the file cannot be read or holds invalid data
    """
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError("Backup must be a JSON object")

        raw_templates = data.get("templates")
        templates = []
        for raw in raw_templates if isinstance(raw_templates, list) else []:
            entry = dict(raw)
            entry["category"] = entry.get("category") or DEFAULT_CATEGORY
            templates.append(load_payload(entry))

        projects = data.get("projects")
        projects = [str(p) for p in projects] if isinstance(projects, list) else []
        categories = data.get("categories")
        categories = categories if isinstance(categories, dict) else {}
    except (OSError, ValueError, TypeError, ValidationError) as e:
        raise BackupImportError(str(path), e) from e

    repository.replace_all(templates)
    repository.set_projects(projects)
    repository.set_categories_map(categories)
    repository.store.delete(LAST_KEY)

    logger.info("Imported backup", path=str(path), templates=len(templates))
    return len(templates)
