"""Local persistence of templates, presets and backups."""
from messagelab.storage.backup import export_backup, import_backup, write_backup
from messagelab.storage.presets import PresetRepository
from messagelab.storage.store import JsonFileStore
from messagelab.storage.templates import DEFAULT_CATEGORY, NO_PROJECT, TemplateRepository

__all__ = [
    "DEFAULT_CATEGORY",
    "JsonFileStore",
    "NO_PROJECT",
    "PresetRepository",
    "TemplateRepository",
    "export_backup",
    "import_backup",
    "write_backup",
]
