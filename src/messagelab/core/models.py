"""Data model for templates: the generic node tree and the editable settings."""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class DataFormat(str, Enum):
    """Source/output document format."""

    XML = "xml"
    JSON = "json"
    CSV = "csv"

    @property
    def extension(self) -> str:
        return self.value


class FieldKind(str, Enum):
    """Primitive type inferred from a field's sample value."""

    TEXT = "text"
    NUMBER = "number"
    DATE = "date"
    BOOLEAN = "boolean"
    NULL = "null"


class FieldMode(str, Enum):
    """Value-generation strategy of a field."""

    SAME = "same"
    FIXED = "fixed"
    INCREMENT = "increment"
    RANDOM = "random"
    LIST = "list"


class ListScope(str, Enum):
    """How list-mode lines are distributed over the batch."""

    PER_FILE = "perFile"
    GLOBAL = "global"


class JsonNodeType(str, Enum):
    OBJECT = "object"
    ARRAY = "array"
    VALUE = "value"


class JsonScalarType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    NULL = "null"


def allowed_modes(kind: FieldKind) -> tuple[FieldMode, ...]:
    """Return the generation modes a field of ``kind`` may use.

    Booleans can only keep, fix or flip their value; nulls always stay null.
    """
    if kind == FieldKind.BOOLEAN:
        return (FieldMode.SAME, FieldMode.FIXED, FieldMode.RANDOM)
    if kind == FieldKind.NULL:
        return (FieldMode.SAME,)
    return (
        FieldMode.SAME,
        FieldMode.FIXED,
        FieldMode.INCREMENT,
        FieldMode.RANDOM,
        FieldMode.LIST,
    )


@dataclass(frozen=True)
class Attribute:
    """XML attribute (name, value) in source order."""

    name: str
    value: str

    @property
    def is_namespace_declaration(self) -> bool:
        return self.name == "xmlns" or self.name.startswith("xmlns:")


@dataclass(frozen=True)
class Node:
    """One structural position of a parsed document.

    XML nodes use ``attrs`` and ``text``; JSON and CSV nodes carry the
    ``json_*`` metadata instead. CSV column leaves also keep every source
    row's cell in ``samples``. Trees are treated as immutable snapshots:
    edits build new nodes with :func:`dataclasses.replace`.
    """

    tag: str
    attrs: tuple[Attribute, ...] = ()
    children: tuple[Node, ...] = ()
    text: Optional[str] = None
    loop_id: Optional[str] = None
    json_type: Optional[JsonNodeType] = None
    json_value: Optional[str] = None
    json_value_kind: Optional[FieldKind] = None
    json_original_type: Optional[JsonScalarType] = None
    samples: tuple[str, ...] = ()

    @property
    def is_leaf(self) -> bool:
        if self.json_type is not None:
            return self.json_type == JsonNodeType.VALUE
        return not self.children

    @property
    def is_array(self) -> bool:
        return self.json_type == JsonNodeType.ARRAY


class _CamelModel(BaseModel):
    """Base for persisted models: snake_case in Python, camelCase on disk."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class FieldSetting(_CamelModel):
    """Generation rule of one leaf value (or XML attribute)."""

    id: str
    label: str
    value: str
    kind: FieldKind = FieldKind.TEXT
    mode: FieldMode = FieldMode.SAME
    step: float = 1
    min: float = 0
    max: float = 9999
    length: int = 6
    date_span_days: int = 30
    fixed_value: str = ""
    list_text: str = ""
    list_scope: ListScope = ListScope.PER_FILE

    @model_validator(mode="after")
    def _constrain_mode(self) -> FieldSetting:
        if self.mode not in allowed_modes(self.kind):
            self.mode = FieldMode.SAME
        return self

    @property
    def list_lines(self) -> list[str]:
        """Non-blank, trimmed lines of ``list_text``."""
        return [line.strip() for line in self.list_text.splitlines() if line.strip()]


class LoopSetting(_CamelModel):
    """Desired output cardinality of a repeating group."""

    id: str
    label: str
    count: int = 1

    @field_validator("count", mode="before")
    @classmethod
    def _at_least_one(cls, v: Any) -> int:
        try:
            count = int(v)
        except (TypeError, ValueError):
            return 1
        return max(1, count)


class Relation(_CamelModel):
    """Equality link: the dependent mirrors ``prefix + master + suffix``."""

    id: str
    master_id: str
    dependent_id: str
    prefix: str = ""
    suffix: str = ""
    enabled: bool = True

    @field_validator("prefix", "suffix", mode="before")
    @classmethod
    def _none_to_empty(cls, v: Any) -> str:
        return "" if v is None else v


class TemplatePayload(_CamelModel):
    """Persisted template bundle."""

    id: str
    name: str
    description: str = ""
    project: str = ""
    category: str = ""
    source_text: str = Field(default="", alias="xmlText")
    format: DataFormat = DataFormat.XML
    csv_delimiter: str = ";"
    fields: list[FieldSetting] = Field(default_factory=list)
    loops: list[LoopSetting] = Field(default_factory=list)
    relations: list[Relation] = Field(default_factory=list)
    file_name: str = ""


class PresetField(_CamelModel):
    id: str
    mode: Optional[FieldMode] = None
    fixed_value: Optional[str] = None
    step: Optional[float] = None
    min: Optional[float] = None
    max: Optional[float] = None
    length: Optional[int] = None
    date_span_days: Optional[int] = None
    list_text: Optional[str] = None
    list_scope: Optional[ListScope] = None


class PresetLoop(_CamelModel):
    id: str
    count: int


class PresetRelation(_CamelModel):
    id: str
    enabled: Optional[bool] = None
    prefix: Optional[str] = None
    suffix: Optional[str] = None


class Preset(_CamelModel):
    """Named snapshot of the editable settings of a template."""

    id: str
    name: str
    description: str = ""
    created_at: str = ""
    fields: list[PresetField] = Field(default_factory=list)
    loops: list[PresetLoop] = Field(default_factory=list)
    relations: list[PresetRelation] = Field(default_factory=list)


@dataclass
class ParseOutcome:
    """Result of parsing a source document.

    Either ``ok`` with the ``(root, fields, loops, relations)`` tuple, or a
    failure with an ``error_kind`` and an optional ``detail``.
    """

    ok: bool
    root: Optional[Node] = None
    fields: list[FieldSetting] = field(default_factory=list)
    loops: list[LoopSetting] = field(default_factory=list)
    relations: list[Relation] = field(default_factory=list)
    delimiter: Optional[str] = None
    error_kind: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def success(cls, root, fields, loops, relations, delimiter=None) -> ParseOutcome:
        return cls(
            ok=True,
            root=root,
            fields=fields,
            loops=loops,
            relations=relations,
            delimiter=delimiter,
        )

    @classmethod
    def failure(cls, error_kind: str, detail: Optional[str] = None) -> ParseOutcome:
        return cls(ok=False, error_kind=error_kind, detail=detail)


@dataclass(frozen=True)
class GeneratedDocument:
    """One named output buffer."""

    name: str
    content: bytes


@dataclass
class GenerationOutcome:
    """All-or-nothing result of a generation run."""

    ok: bool
    documents: list[GeneratedDocument] = field(default_factory=list)
    error_kind: Optional[str] = None
    field_id: Optional[str] = None
    detail: Optional[str] = None
