"""Lookup helpers for the sparse custom-field lists Redmine attaches to issues."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from redmine_dashboard.core.data_models import CustomField

NOT_AVAILABLE = "N/A"

# Custom field names used by the normalizer, filters and charts.
CF_QA_NO = "Q&A No."
CF_MODULE = "Module"
CF_FIX_METHOD = "Fix Method"
CF_QUESTION_VN = "Question (VN)"
CF_QUESTION_JP = "Question (JP)"
CF_ANSWER_VN = "Answer (VN)"
CF_ANSWER_JP = "Answer (JP)"
CF_GENERATED_PG_ID = "発生PGID"
CF_DESIRED_DELIVERY = "希望納期"
CF_RESPONSE_DELIVERY = "回答納期"
CF_FJN_ERROR_TYPE = "FJN側障害種別"
CF_UCD_ERROR_TYPE = "UCD側障害種別"
CF_UNIT_ID = "部品ID"
CF_EDIT_PG_ID = "修正PGID"


def get_custom_field_value(
    custom_fields: Any, name: str, default: str = NOT_AVAILABLE
) -> str:
    """Return the value of the custom field called *name*.

    *custom_fields* may be a sequence of :class:`CustomField` or raw
    ``{"name": ..., "value": ...}`` mappings.  ``None``, non-sequences and
    malformed entries are treated as absent.  Returns *default* when the
    field is missing or its value is null or blank.
    """
    if not isinstance(custom_fields, (list, tuple)):
        return default
    for entry in custom_fields:
        entry_name, value = _entry_parts(entry)
        if entry_name != name:
            continue
        text = _value_text(value)
        return text if text else default
    return default


def parse_custom_fields(raw: Any) -> tuple[CustomField, ...]:
    """Convert a raw ``custom_fields`` list into :class:`CustomField` values.

    Entries without a string name are skipped.
    """
    if not isinstance(raw, (list, tuple)):
        return ()
    result: list[CustomField] = []
    for entry in raw:
        name, value = _entry_parts(entry)
        if not name:
            continue
        result.append(CustomField(name=name, value=_value_text(value)))
    return tuple(result)


def _entry_parts(entry: Any) -> tuple[str, Any]:
    if isinstance(entry, CustomField):
        return entry.name, entry.value
    if isinstance(entry, Mapping):
        name = entry.get("name")
        return (name if isinstance(name, str) else ""), entry.get("value")
    return "", None


def _value_text(value: Any) -> str:
    if value is None:
        return ""
    # Multi-value fields arrive as lists
    if isinstance(value, (list, tuple)):
        return ", ".join(str(v).strip() for v in value if v is not None and str(v).strip())
    return str(value).strip()
