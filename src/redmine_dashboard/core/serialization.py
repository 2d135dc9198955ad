"""Plain-dict conversion of the value types for JSON persistence.

Field names are written as-is (snake_case).  Readers are lenient: unknown
keys are ignored and missing ones take the dataclass default.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any

from redmine_dashboard.core.data_models import (
    Attachment,
    CustomField,
    Phase,
    Program,
    ProjectConfig,
    TrackingIssue,
)


def issue_to_dict(issue: TrackingIssue) -> dict[str, Any]:
    return _plain(dataclasses.asdict(issue))


def issue_from_dict(data: Mapping[str, Any]) -> TrackingIssue:
    values = _known_fields(TrackingIssue, data)
    values["attachments"] = tuple(
        Attachment(**_known_fields(Attachment, a))
        for a in data.get("attachments") or ()
        if isinstance(a, Mapping)
    )
    values["custom_fields"] = tuple(
        CustomField(**_known_fields(CustomField, cf))
        for cf in data.get("custom_fields") or ()
        if isinstance(cf, Mapping) and cf.get("name")
    )
    return TrackingIssue(**values)


def program_to_dict(program: Program) -> dict[str, Any]:
    return _plain(dataclasses.asdict(program))


def program_from_dict(data: Mapping[str, Any]) -> Program:
    values = _known_fields(Program, data)
    values["phases"] = tuple(
        Phase(**_known_fields(Phase, p))
        for p in data.get("phases") or ()
        if isinstance(p, Mapping) and p.get("phase_name")
    )
    values["tracking_issues"] = tuple(
        issue_from_dict(i) for i in data.get("tracking_issues") or () if isinstance(i, Mapping)
    )
    values.setdefault("prgid", "")
    values.setdefault("prgname", "")
    return Program(**values)


_SECRET_FIELDS = ("tracking_api_key", "redmine_api_key")


def project_to_dict(project: ProjectConfig, *, include_secrets: bool = False) -> dict[str, Any]:
    """Serialize *project*; API keys are left out unless asked for."""
    data = _plain(dataclasses.asdict(project))
    if not include_secrets:
        for name in _SECRET_FIELDS:
            data.pop(name, None)
    return data


def project_from_dict(data: Mapping[str, Any]) -> ProjectConfig:
    values = _known_fields(ProjectConfig, data)
    values.setdefault("project_id", "")
    return ProjectConfig(**{k: "" if v is None else str(v) for k, v in values.items()})


def _known_fields(cls: type, data: Mapping[str, Any]) -> dict[str, Any]:
    names = {f.name for f in dataclasses.fields(cls)}
    return {k: v for k, v in data.items() if k in names}


def _plain(value: Any) -> Any:
    """Replace tuples with lists so the result matches what ``json`` reads back."""
    if isinstance(value, dict):
        return {k: _plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_plain(v) for v in value]
    return value
