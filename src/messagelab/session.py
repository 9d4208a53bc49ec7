"""Editing session around one active template.

A :class:`TemplateSession` holds the parsed template (tree, fields, loops,
relations) together with its source text and applies the edit operations a
user performs before generating. User errors never raise: every operation
returns a :class:`StatusMessage`, which is also kept as ``session.status``.
"""
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pydantic import ValidationError

from messagelab.config.loader import GeneratorConfig
from messagelab.core.fields import is_mode_allowed
from messagelab.core.loops import recompute_list_loop_counts
from messagelab.core.models import (
    DataFormat,
    FieldMode,
    FieldSetting,
    GenerationOutcome,
    ListScope,
    LoopSetting,
    Node,
    ParseOutcome,
    Preset,
    PresetField,
    PresetLoop,
    PresetRelation,
    Relation,
    TemplatePayload,
)
from messagelab.core.paths import LOOP_MARKER, normalize_id, normalize_loop_id, strip_loop_markers
from messagelab.core.relations import relation_id
from messagelab.core.tree import (
    apply_loop_marker,
    clear_loop_marker,
    collect_paths,
    flatten_xml_fields,
    iter_nodes,
)
from messagelab.generators import GenerationService, base_name_for
from messagelab.logging_config import get_logger
from messagelab.parsers import detect_format, parse_document

EDITABLE_FIELD_ATTRS = frozenset({
    "label",
    "mode",
    "step",
    "min",
    "max",
    "length",
    "date_span_days",
    "fixed_value",
    "list_text",
    "list_scope",
})

_LIST_ATTRS = frozenset({"mode", "list_text", "list_scope"})


@dataclass(frozen=True)
class StatusMessage:
    """Outcome of a session operation."""

    ok: bool
    key: str
    detail: Optional[str] = None

    @property
    def text(self) -> str:
        return f"{self.key} ({self.detail})" if self.detail else self.key


def _now_ms() -> int:
    return int(time.time() * 1000)


class TemplateSession:
    """The active template and its editable generation settings."""

    def __init__(self, config: Optional[GeneratorConfig] = None):
        """Initialize an empty session.

        Args:
            config: Generator configuration (defaults, seed, retry budget)
        """
        self.config = config or GeneratorConfig()
        self.logger = get_logger(__name__)
        self.service = GenerationService(self.config)

        self.format = DataFormat.XML
        self.source_text = ""
        self.file_name = ""
        self.csv_delimiter = self.config.default_csv_delimiter
        self.root: Optional[Node] = None
        self.fields: list[FieldSetting] = []
        self.loops: list[LoopSetting] = []
        self.relations: list[Relation] = []
        self.file_count = self.config.default_file_count

        self.template_id: Optional[str] = None
        self.template_name = ""
        self.project = ""
        self.status: Optional[StatusMessage] = None

    @property
    def is_loaded(self) -> bool:
        return self.root is not None

    def _report(self, ok: bool, key: str, detail: Optional[str] = None) -> StatusMessage:
        self.status = StatusMessage(ok=ok, key=key, detail=detail)
        if not ok:
            self.logger.warning("Session operation rejected", status=key, detail=detail)
        return self.status

    def _adopt(self, outcome: ParseOutcome, fmt: DataFormat, text: str) -> None:
        self.format = fmt
        self.source_text = text
        self.root = outcome.root
        self.fields = list(outcome.fields)
        self.loops = list(outcome.loops)
        self.relations = list(outcome.relations)
        if outcome.delimiter:
            self.csv_delimiter = outcome.delimiter
        self._sync_list_loops()

    # Loading

    def load_upload(self, file_name: str, text: str, delimiter: Optional[str] = None) -> StatusMessage:
        """Replace the session with a freshly uploaded document.

        The format is detected from the file name or the content. On a parse
        failure the previous state is kept.
        """
        fmt = detect_format(file_name, text)
        outcome = parse_document(text, fmt, delimiter)
        if not outcome.ok:
            return self._report(False, outcome.error_kind, outcome.detail)

        self._adopt(outcome, fmt, text)
        self.file_name = file_name
        self.template_id = None
        self.template_name = ""
        self.project = ""
        return self._report(True, "fileLoaded", file_name)

    def commit_edit(self, text: str) -> StatusMessage:
        """Re-parse edited source text in the current format.

        Settings are re-derived from the new text; a malformed edit leaves
        the session untouched.
        """
        delimiter = self.csv_delimiter if self.format == DataFormat.CSV else None
        outcome = parse_document(text, self.format, delimiter)
        if not outcome.ok:
            return self._report(False, outcome.error_kind, outcome.detail)

        self._adopt(outcome, self.format, text)
        return self._report(True, "editApplied")

    def load_template(self, payload: TemplatePayload) -> StatusMessage:
        """Activate a stored template.

        The tree is rebuilt by parsing the stored source; stored settings
        replace the derived ones, and loops added by hand are re-applied to
        the rebuilt XML tree.
        """
        delimiter = payload.csv_delimiter if payload.format == DataFormat.CSV else None
        outcome = parse_document(payload.source_text, payload.format, delimiter)
        if not outcome.ok:
            return self._report(False, outcome.error_kind, outcome.detail)

        root = outcome.root
        loops = list(payload.loops) or list(outcome.loops)
        if payload.format == DataFormat.XML:
            parsed_ids = {loop.id for loop in outcome.loops}
            for loop in loops:
                if loop.id not in parsed_ids:
                    root = self._restore_loop_marker(root, loop.id)

        self.format = payload.format
        self.source_text = payload.source_text
        self.file_name = payload.file_name
        self.csv_delimiter = payload.csv_delimiter
        self.root = root
        self.fields = list(payload.fields) or list(outcome.fields)
        self.loops = loops
        self.relations = list(payload.relations) or list(outcome.relations)
        self.template_id = payload.id
        self.template_name = payload.name
        self.project = payload.project
        self._sync_list_loops()
        return self._report(True, "templateLoaded", payload.name)

    @staticmethod
    def _restore_loop_marker(root: Node, loop_id: str) -> Node:
        for path, node in iter_nodes(root):
            if node is root or node.loop_id is not None:
                continue
            if strip_loop_markers(path) == loop_id:
                return apply_loop_marker(root, path, loop_id)
        return root

    def to_template(
        self,
        template_id: Optional[str] = None,
        name: Optional[str] = None,
        project: Optional[str] = None,
        description: str = "",
        category: str = "",
    ) -> TemplatePayload:
        """Bundle the session into a storable template.

        The id falls back to the trimmed name, then to a timestamped id.
        """
        trimmed_name = (name or self.template_name or "").strip()
        tpl_id = template_id or trimmed_name or self.template_id or f"template-{_now_ms()}"
        payload = TemplatePayload(
            id=tpl_id,
            name=trimmed_name or tpl_id,
            description=description,
            project=(project if project is not None else self.project).strip(),
            category=category,
            source_text=self.source_text,
            format=self.format,
            csv_delimiter=self.csv_delimiter,
            fields=self.fields,
            loops=self.loops,
            relations=self.relations,
            file_name=self.file_name,
        )
        self.template_id = payload.id
        self.template_name = payload.name
        self.project = payload.project
        return payload

    # Fields

    def field(self, field_id: str) -> Optional[FieldSetting]:
        """Field by id, falling back to a marker-insensitive match."""
        key = normalize_id(field_id)
        for field in self.fields:
            if field.id == key:
                return field
        stripped = strip_loop_markers(key)
        return next((field for field in self.fields if strip_loop_markers(field.id) == stripped), None)

    def update_field(self, field_id: str, **patch: Any) -> StatusMessage:
        """Change the generation settings of one field.

        Args:
            field_id: Field to update
            **patch: Attributes to change (snake_case names)
        """
        current = self.field(field_id)
        if current is None:
            return self._report(False, "fieldNotFound", field_id)

        unknown = set(patch) - EDITABLE_FIELD_ATTRS
        if unknown:
            return self._report(False, "fieldAttributeNotEditable", ", ".join(sorted(unknown)))

        if "mode" in patch:
            try:
                mode = FieldMode(patch["mode"])
            except ValueError:
                return self._report(False, "invalidMode", str(patch["mode"]))
            if not is_mode_allowed(current, mode):
                return self._report(False, "modeNotAllowed", f"{mode.value} for {current.kind.value}")

        try:
            updated = FieldSetting.model_validate({**current.model_dump(), **patch})
        except ValidationError as e:
            return self._report(False, "invalidFieldSetting", str(e.errors()[0]["msg"]))

        self.fields = [updated if field.id == current.id else field for field in self.fields]
        if _LIST_ATTRS & set(patch):
            self._sync_list_loops()
        return self._report(True, "fieldUpdated", current.id)

    def changed_fields(self) -> list[FieldSetting]:
        """Fields whose mode is not ``same``."""
        return [field for field in self.fields if field.mode != FieldMode.SAME]

    # Loops

    def loop(self, loop_id: str) -> Optional[LoopSetting]:
        return next((loop for loop in self.loops if loop.id == loop_id), None)

    def update_loop(self, loop_id: str, count: int) -> StatusMessage:
        """Set a loop's count (clamped to at least 1)."""
        if self.loop(loop_id) is None:
            return self._report(False, "loopNotFound", loop_id)
        self.loops = [
            LoopSetting(id=loop.id, label=loop.label, count=count) if loop.id == loop_id else loop
            for loop in self.loops
        ]
        return self._report(True, "loopUpdated", loop_id)

    def adjust_loop_count(self, loop_id: str, delta: int) -> StatusMessage:
        current = self.loop(loop_id)
        if current is None:
            return self._report(False, "loopNotFound", loop_id)
        return self.update_loop(loop_id, current.count + delta)

    def _locate(self, template_path: str) -> Optional[tuple[str, Node]]:
        target = normalize_id(template_path)
        nodes = list(iter_nodes(self.root))
        for path, node in nodes:
            if path == target:
                return path, node
        stripped = strip_loop_markers(target)
        return next(((path, node) for path, node in nodes if strip_loop_markers(path) == stripped), None)

    def add_loop_at(self, template_path: str) -> StatusMessage:
        """Make the XML node at ``template_path`` repeat.

        A node that already repeats gets one more iteration; otherwise a new
        loop with two iterations is created.
        """
        if not self.is_loaded or self.format != DataFormat.XML:
            return self._report(False, "loopsXmlOnly")
        located = self._locate(template_path)
        if located is None:
            return self._report(False, "pathNotFound", template_path)
        path, node = located
        if node is self.root:
            return self._report(False, "rootCannotRepeat", path)

        if node.loop_id is not None:
            existing = self.loop(node.loop_id)
            if existing is not None:
                return self.update_loop(existing.id, existing.count + 1)
            self.loops = self.loops + [LoopSetting(id=node.loop_id, label=node.loop_id, count=2)]
            return self._report(True, "loopAdded", node.loop_id)

        loop_id = normalize_loop_id(path + LOOP_MARKER)
        existing = self.loop(loop_id)
        if existing is not None:
            self.loops = [
                loop.model_copy(update={"count": loop.count + 1}) if loop.id == loop_id else loop
                for loop in self.loops
            ]
        else:
            self.loops = self.loops + [LoopSetting(id=loop_id, label=loop_id, count=2)]
        self._replace_tree(apply_loop_marker(self.root, path, loop_id))
        return self._report(True, "loopAdded", loop_id)

    def remove_loop_at(self, template_path: str) -> StatusMessage:
        """Stop the XML node at ``template_path`` from repeating."""
        if not self.is_loaded or self.format != DataFormat.XML:
            return self._report(False, "loopsXmlOnly")
        located = self._locate(template_path)
        if located is None:
            return self._report(False, "pathNotFound", template_path)
        path, node = located
        if node.loop_id is None:
            return self._report(False, "notALoop", path)

        self.loops = [loop for loop in self.loops if loop.id != node.loop_id]
        self._replace_tree(clear_loop_marker(self.root, path))
        return self._report(True, "loopRemoved", node.loop_id)

    def _replace_tree(self, root: Node) -> None:
        """Install an edited XML tree, carrying field and relation ids over."""
        new_ids = {strip_loop_markers(field.id): field.id for field in flatten_xml_fields(root)}

        def remap(field_id: str) -> str:
            return new_ids.get(strip_loop_markers(field_id), field_id)

        fields = []
        for field in self.fields:
            new_id = remap(field.id)
            label = new_id if field.label == field.id else field.label
            fields.append(field.model_copy(update={"id": new_id, "label": label}))

        relations = []
        for rel in self.relations:
            master_id, dependent_id = remap(rel.master_id), remap(rel.dependent_id)
            relations.append(rel.model_copy(update={
                "id": relation_id(master_id, dependent_id),
                "master_id": master_id,
                "dependent_id": dependent_id,
            }))

        self.root = root
        self.fields = fields
        self.relations = relations

    def paths(self) -> list[str]:
        """Template paths of every node of the active tree."""
        return collect_paths(self.root) if self.root is not None else []

    # Relations

    def relation(self, rel_id: str) -> Optional[Relation]:
        return next((rel for rel in self.relations if rel.id == rel_id), None)

    def set_relation_enabled(self, rel_id: str, enabled: bool) -> StatusMessage:
        return self._patch_relation(rel_id, {"enabled": bool(enabled)})

    def update_relation(
        self,
        rel_id: str,
        prefix: Optional[str] = None,
        suffix: Optional[str] = None,
    ) -> StatusMessage:
        """Change the text wrapped around the master value."""
        patch = {}
        if prefix is not None:
            patch["prefix"] = prefix
        if suffix is not None:
            patch["suffix"] = suffix
        return self._patch_relation(rel_id, patch)

    def _patch_relation(self, rel_id: str, patch: dict[str, Any]) -> StatusMessage:
        if self.relation(rel_id) is None:
            return self._report(False, "relationNotFound", rel_id)
        self.relations = [
            rel.model_copy(update=patch) if rel.id == rel_id else rel
            for rel in self.relations
        ]
        return self._report(True, "relationUpdated", rel_id)

    # Presets

    def apply_preset(self, preset: Preset) -> StatusMessage:
        """Overlay a preset; entries for unknown ids are ignored."""
        field_entries = {entry.id: entry for entry in preset.fields}
        fields = []
        for field in self.fields:
            entry = field_entries.get(field.id)
            if entry is None:
                fields.append(field)
                continue
            patch = entry.model_dump(exclude={"id"}, exclude_none=True)
            fields.append(FieldSetting.model_validate({**field.model_dump(), **patch}))
        self.fields = fields

        loop_counts = {entry.id: entry.count for entry in preset.loops}
        self.loops = [
            LoopSetting(id=loop.id, label=loop.label, count=loop_counts[loop.id])
            if loop.id in loop_counts else loop
            for loop in self.loops
        ]

        relation_entries = {entry.id: entry for entry in preset.relations}
        self.relations = [
            rel.model_copy(update=relation_entries[rel.id].model_dump(exclude={"id"}, exclude_none=True))
            if rel.id in relation_entries else rel
            for rel in self.relations
        ]

        self._sync_list_loops()
        return self._report(True, "presetApplied", preset.name)

    def to_preset(self, name: str, description: str = "") -> Preset:
        """Snapshot the changed fields and every loop and relation as a preset."""
        return Preset(
            id=f"preset-{_now_ms()}",
            name=name.strip(),
            description=description.strip(),
            created_at=datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            fields=[
                PresetField(
                    id=field.id,
                    mode=field.mode,
                    fixed_value=field.fixed_value,
                    step=field.step,
                    min=field.min,
                    max=field.max,
                    length=field.length,
                    date_span_days=field.date_span_days,
                    list_text=field.list_text,
                    list_scope=field.list_scope,
                )
                for field in self.changed_fields()
            ],
            loops=[PresetLoop(id=loop.id, count=loop.count) for loop in self.loops],
            relations=[
                PresetRelation(id=rel.id, enabled=rel.enabled, prefix=rel.prefix, suffix=rel.suffix)
                for rel in self.relations
            ],
        )

    # Generation

    def set_file_count(self, count: int) -> StatusMessage:
        """Set how many documents (CSV: rows) a run produces (at least 1)."""
        try:
            self.file_count = max(1, int(count))
        except (TypeError, ValueError):
            self.file_count = 1
        self._sync_list_loops()
        return self._report(True, "fileCountUpdated", str(self.file_count))

    def _sync_list_loops(self) -> None:
        if any(f.mode == FieldMode.LIST and f.list_scope == ListScope.GLOBAL for f in self.fields):
            self.loops = recompute_list_loop_counts(self.fields, self.loops, self.file_count)

    def generate(self, file_count: Optional[int] = None) -> GenerationOutcome:
        """Generate documents from the active template.

        Args:
            file_count: Overrides the session's file count for this run
        """
        if self.root is None:
            self._report(False, "noTemplate")
            return GenerationOutcome(ok=False, error_kind="noTemplate")

        if file_count is not None:
            self.set_file_count(file_count)

        outcome = self.service.run(
            self.root,
            self.fields,
            self.loops,
            self.relations,
            self.file_count,
            self.format,
            csv_delimiter=self.csv_delimiter,
            base_name=base_name_for(self.file_name, self.config.base_name),
        )
        if outcome.ok:
            self._report(True, "generated", str(len(outcome.documents)))
        else:
            self._report(False, outcome.error_kind, outcome.field_id or outcome.detail)
        return outcome
