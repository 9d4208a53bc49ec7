"""Field settings: kind inference and the field factory."""
import re
from datetime import date
from typing import Any, Optional

from messagelab.core.models import FieldKind, FieldMode, FieldSetting, allowed_modes

_NUMBER = re.compile(r"^-?\d+(\.\d+)?$")
_DATE_PREFIX = re.compile(r"^(\d{4})-(\d{2})-(\d{2})")

DEFAULT_STEP = 1
DEFAULT_MIN = 0
DEFAULT_MAX = 9999
DEFAULT_DATE_SPAN_DAYS = 30
MIN_DEFAULT_LENGTH = 6


def parse_date_prefix(value: str) -> Optional[date]:
    """Return the calendar date of a ``YYYY-MM-DD`` prefix, or None if invalid."""
    match = _DATE_PREFIX.match(value.strip())
    if not match:
        return None
    year, month, day = (int(part) for part in match.groups())
    try:
        return date(year, month, day)
    except ValueError:
        return None


def detect_kind(value: str) -> FieldKind:
    """Infer the kind of a textual sample value.

    Only ``number``, ``date`` and ``text`` can come out of plain text; the
    ``boolean`` and ``null`` kinds are reserved for JSON literals.
    """
    trimmed = value.strip()
    if not trimmed:
        return FieldKind.TEXT
    if _NUMBER.match(trimmed):
        return FieldKind.NUMBER
    if parse_date_prefix(trimmed) is not None:
        return FieldKind.DATE
    return FieldKind.TEXT


def create_field_setting(
    field_id: str,
    value: str,
    kind: Optional[FieldKind] = None,
) -> FieldSetting:
    """Create a field setting in ``same`` mode seeded from its sample value."""
    return FieldSetting(
        id=field_id,
        label=field_id,
        value=value,
        kind=kind if kind is not None else detect_kind(value),
        mode=FieldMode.SAME,
        step=DEFAULT_STEP,
        min=DEFAULT_MIN,
        max=DEFAULT_MAX,
        length=max(len(value), MIN_DEFAULT_LENGTH),
        date_span_days=DEFAULT_DATE_SPAN_DAYS,
        fixed_value=value,
    )


def normalize_field_setting(raw: dict[str, Any]) -> FieldSetting:
    """Build a field setting from stored data, filling gaps with defaults.

    Older stored templates may miss parameters or carry a mode the field's
    kind does not allow; both are repaired here.
    """
    data = {key: val for key, val in raw.items() if val is not None}
    value = str(data.get("value", ""))
    data.setdefault("label", data.get("id", ""))
    data.setdefault("length", max(len(value), MIN_DEFAULT_LENGTH))
    data.setdefault("fixedValue", data.pop("fixed_value", value))
    return FieldSetting.model_validate(data)


def is_mode_allowed(field: FieldSetting, mode: FieldMode) -> bool:
    return mode in allowed_modes(field.kind)
