"""Per-template presets."""
from __future__ import annotations

from typing import Optional

from messagelab.core.models import Preset
from messagelab.storage.store import JsonFileStore

PRESETS_KEY = "messagelab.presets"


class PresetRepository:
    """Stores presets keyed by the template they belong to."""

    def __init__(self, store: JsonFileStore):
        self.store = store

    def _read(self) -> dict[str, list[dict]]:
        return self.store.get(PRESETS_KEY, {})

    def _write(self, presets: dict[str, list[dict]]) -> None:
        self.store.set(PRESETS_KEY, presets)

    def list(self, template_id: str) -> list[Preset]:
        """Get the presets of a template, oldest first."""
        return [Preset.model_validate(raw) for raw in self._read().get(template_id, [])]

    def get(self, template_id: str, preset_id: str) -> Optional[Preset]:
        return next((preset for preset in self.list(template_id) if preset.id == preset_id), None)

    def save(self, template_id: str, preset: Preset) -> None:
        """Append a preset to a template."""
        presets = self._read()
        presets.setdefault(template_id, []).append(preset.to_dict())
        self._write(presets)

    def update(
        self,
        template_id: str,
        preset_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> None:
        """Rename or re-describe a preset; None leaves the value as is."""
        presets = self._read()
        entries = presets.get(template_id, [])
        for entry in entries:
            if entry.get("id") != preset_id:
                continue
            if name is not None:
                entry["name"] = name
            if description is not None:
                entry["description"] = description
        presets[template_id] = entries
        self._write(presets)

    def delete(self, template_id: str, preset_id: str) -> None:
        presets = self._read()
        presets[template_id] = [entry for entry in presets.get(template_id, []) if entry.get("id") != preset_id]
        self._write(presets)
