"""Template model: node tree, paths, fields, loops and relations."""
from messagelab.core.fields import create_field_setting, detect_kind, normalize_field_setting
from messagelab.core.loops import recompute_list_loop_counts
from messagelab.core.models import (
    Attribute,
    DataFormat,
    FieldKind,
    FieldMode,
    FieldSetting,
    GeneratedDocument,
    GenerationOutcome,
    ListScope,
    LoopSetting,
    Node,
    ParseOutcome,
    Preset,
    Relation,
    TemplatePayload,
    allowed_modes,
)
from messagelab.core.paths import (
    normalize_loop_id,
    strip_loop_markers,
    to_template_path,
)
from messagelab.core.relations import detect_relations, normalize_relation

__all__ = [
    "Attribute",
    "DataFormat",
    "FieldKind",
    "FieldMode",
    "FieldSetting",
    "GeneratedDocument",
    "GenerationOutcome",
    "ListScope",
    "LoopSetting",
    "Node",
    "ParseOutcome",
    "Preset",
    "Relation",
    "TemplatePayload",
    "allowed_modes",
    "create_field_setting",
    "detect_kind",
    "detect_relations",
    "normalize_field_setting",
    "normalize_loop_id",
    "normalize_relation",
    "recompute_list_loop_counts",
    "strip_loop_markers",
    "to_template_path",
]
