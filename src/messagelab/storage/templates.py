"""Template repository: stored templates, projects and categories."""
from __future__ import annotations

from typing import Any, Optional

from messagelab.core.fields import normalize_field_setting
from messagelab.core.models import TemplatePayload
from messagelab.core.relations import normalize_relation
from messagelab.exceptions import TemplateNotFoundError
from messagelab.logging_config import get_logger
from messagelab.storage.store import JsonFileStore

TEMPLATES_KEY = "messagelab.templates"
LAST_KEY = "messagelab.last"
PROJECTS_KEY = "messagelab.projects"
CATEGORIES_KEY = "messagelab.categories"

NO_PROJECT = "__none__"
DEFAULT_CATEGORY = "General"


def project_key(project: Optional[str]) -> str:
    """Key under which a project's categories are kept."""
    trimmed = (project or "").strip()
    return trimmed or NO_PROJECT


def normalize_categories(categories: list[str]) -> list[str]:
    """Trim, drop blanks and duplicates, and make sure the default category leads."""
    unique: list[str] = []
    for category in categories:
        trimmed = category.strip()
        if trimmed and trimmed not in unique:
            unique.append(trimmed)
    if DEFAULT_CATEGORY not in unique:
        unique.insert(0, DEFAULT_CATEGORY)
    return unique


def load_payload(raw: dict[str, Any]) -> TemplatePayload:
    """Build a template from stored data, repairing missing settings."""
    data = dict(raw)
    data["description"] = data.get("description") or ""
    category = (data.get("category") or "").strip()
    data["category"] = category or DEFAULT_CATEGORY
    data["format"] = data.get("format") or "xml"
    data["csvDelimiter"] = data.get("csvDelimiter") or ";"
    data["fields"] = [normalize_field_setting(field) for field in data.get("fields") or []]
    data["relations"] = [normalize_relation(rel) for rel in data.get("relations") or []]
    data["loops"] = data.get("loops") or []
    return TemplatePayload.model_validate(data)


class TemplateRepository:
    """Stores templates grouped by project and category."""

    def __init__(self, store: JsonFileStore):
        self.store = store
        self.logger = get_logger(__name__)

    # Templates

    def list(self) -> list[TemplatePayload]:
        """Get every stored template, in save order."""
        return [load_payload(raw) for raw in self.store.get(TEMPLATES_KEY, [])]

    def get(self, template_id: str) -> TemplatePayload:
        """Get a template by id.

        Raises:
            TemplateNotFoundError: If no template has this id
        """
        for template in self.list():
            if template.id == template_id:
                return template
        raise TemplateNotFoundError(template_id)

    def replace_all(self, templates: list[TemplatePayload]) -> None:
        self.store.set(TEMPLATES_KEY, [template.to_dict() for template in templates])

    def save(self, payload: TemplatePayload) -> TemplatePayload:
        """Save a template, replacing any stored template with the same id.

        An overwritten template keeps its stored description and category.
        The saved template becomes the last-used one and its project and
        category are registered.
        """
        templates = self.list()
        existing = next((template for template in templates if template.id == payload.id), None)
        if existing is not None:
            payload = payload.model_copy(update={
                "description": payload.description or existing.description,
                "category": existing.category,
            })
        elif not payload.category.strip():
            payload = payload.model_copy(update={"category": DEFAULT_CATEGORY})

        project = payload.project.strip()
        payload = payload.model_copy(update={"project": project})
        templates = [template for template in templates if template.id != payload.id]
        templates.append(payload)
        self.replace_all(templates)
        self.set_last_id(payload.id)

        if project:
            self.add_project(project)
            self.add_category(project, payload.category)

        self.logger.info("Saved template", template_id=payload.id, project=project or None)
        return payload

    def delete(self, template_id: str) -> None:
        """Delete a template; clears the last-used id when it pointed at it.

        Raises:
            TemplateNotFoundError: If no template has this id
        """
        templates = self.list()
        remaining = [template for template in templates if template.id != template_id]
        if len(remaining) == len(templates):
            raise TemplateNotFoundError(template_id)
        self.replace_all(remaining)
        if self.last_id() == template_id:
            self.store.delete(LAST_KEY)
        self.logger.info("Deleted template", template_id=template_id)

    def move_to_project(self, template_id: str, project: str) -> TemplatePayload:
        """Move a template to ``project`` (``NO_PROJECT`` or blank detaches it)."""
        target = "" if project == NO_PROJECT else project.strip()
        return self._update(template_id, {"project": target})

    def update_meta(
        self,
        template_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
        project: Optional[str] = None,
        category: Optional[str] = None,
    ) -> TemplatePayload:
        """Update display metadata; blank names and categories keep the stored value."""
        current = self.get(template_id)
        patch: dict[str, Any] = {
            "name": (name or "").strip() or current.name,
            "category": (category or "").strip() or current.category.strip() or DEFAULT_CATEGORY,
        }
        if description is not None:
            patch["description"] = description
        if project is not None:
            patch["project"] = project.strip()
        return self._update(template_id, patch)

    def _update(self, template_id: str, patch: dict[str, Any]) -> TemplatePayload:
        templates = self.list()
        updated = None
        for index, template in enumerate(templates):
            if template.id == template_id:
                updated = template.model_copy(update=patch)
                templates[index] = updated
        if updated is None:
            raise TemplateNotFoundError(template_id)
        self.replace_all(templates)
        return updated

    def grouped(self) -> dict[str, dict[str, list[TemplatePayload]]]:
        """Templates grouped by project key, then by category."""
        groups: dict[str, dict[str, list[TemplatePayload]]] = {}
        for template in self.list():
            by_category = groups.setdefault(project_key(template.project), {})
            by_category.setdefault(template.category or DEFAULT_CATEGORY, []).append(template)
        return groups

    # Last used

    def last_id(self) -> Optional[str]:
        return self.store.get(LAST_KEY)

    def set_last_id(self, template_id: str) -> None:
        self.store.set(LAST_KEY, template_id)

    # Projects

    def projects(self) -> list[str]:
        return list(self.store.get(PROJECTS_KEY, []))

    def set_projects(self, projects: list[str]) -> None:
        self.store.set(PROJECTS_KEY, projects)

    def add_project(self, project: str) -> None:
        """Register a project name (kept sorted)."""
        trimmed = project.strip()
        projects = self.projects()
        if trimmed and trimmed not in projects:
            self.set_projects(sorted(projects + [trimmed]))

    def rename_project(self, old: str, new: str) -> None:
        """Rename a project, moving its templates and categories along."""
        target = new.strip()
        if not target or old == NO_PROJECT or old == target:
            return
        self.set_projects([target if project == old else project for project in self.projects()])

        templates = [
            template.model_copy(update={"project": target}) if template.project == old else template
            for template in self.list()
        ]
        self.replace_all(templates)

        categories = self.categories_map()
        if old in categories:
            categories[target] = categories.pop(old)
            self.set_categories_map(categories)

    def delete_project(self, project: str) -> bool:
        """Delete an empty project.

        Returns:
            False when the project still holds templates (nothing is deleted)
        """
        trimmed = project.strip()
        if not trimmed or trimmed == NO_PROJECT:
            return False
        if any(template.project.strip() == trimmed for template in self.list()):
            return False

        self.set_projects([p for p in self.projects() if p != trimmed])
        categories = self.categories_map()
        if categories.pop(trimmed, None) is not None:
            self.set_categories_map(categories)
        return True

    # Categories

    def categories_map(self) -> dict[str, list[str]]:
        stored = self.store.get(CATEGORIES_KEY, {})
        return {project: normalize_categories(categories) for project, categories in stored.items()}

    def set_categories_map(self, categories: dict[str, list[str]]) -> None:
        self.store.set(CATEGORIES_KEY, {
            project: normalize_categories(values) for project, values in categories.items()
        })

    def categories(self, project: Optional[str]) -> list[str]:
        """Categories of a project, including those only used by its templates."""
        key = project_key(project)
        known = self.categories_map().get(key, [DEFAULT_CATEGORY])
        used = [
            template.category
            for template in self.list()
            if project_key(template.project) == key
        ]
        return normalize_categories(known + used)

    def add_category(self, project: Optional[str], category: str) -> None:
        key = project_key(project)
        trimmed = category.strip()
        if not trimmed:
            return
        categories = self.categories_map()
        existing = categories.get(key, [DEFAULT_CATEGORY])
        if trimmed in existing:
            return
        categories[key] = existing + [trimmed]
        self.set_categories_map(categories)

    def rename_category(self, project: Optional[str], old: str, new: str) -> None:
        """Rename a category; the default category cannot be renamed."""
        key = project_key(project)
        target = new.strip()
        if not target or old == DEFAULT_CATEGORY:
            return

        templates = [
            template.model_copy(update={"category": target})
            if project_key(template.project) == key and template.category == old
            else template
            for template in self.list()
        ]
        self.replace_all(templates)

        categories = self.categories_map()
        existing = categories.get(key, [DEFAULT_CATEGORY])
        categories[key] = [target if category == old else category for category in existing]
        self.set_categories_map(categories)

    def delete_category(self, project: Optional[str], category: str) -> None:
        """Remove a category name; the default category cannot be deleted."""
        if category == DEFAULT_CATEGORY:
            return
        key = project_key(project)
        categories = self.categories_map()
        existing = categories.get(key, [DEFAULT_CATEGORY])
        categories[key] = [c for c in existing if c != category]
        self.set_categories_map(categories)
