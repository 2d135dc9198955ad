"""Map raw Redmine issue JSON onto :class:`TrackingIssue` records."""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from redmine_dashboard.core.custom_fields import (
    CF_ANSWER_JP,
    CF_ANSWER_VN,
    CF_FIX_METHOD,
    CF_MODULE,
    CF_QA_NO,
    CF_QUESTION_JP,
    CF_QUESTION_VN,
    get_custom_field_value,
    parse_custom_fields,
)
from redmine_dashboard.core.data_models import Attachment, TrackingIssue


def normalize_issue(raw: Any, base_url: str = "") -> TrackingIssue:
    """Flatten one tracker issue.

    Never raises: missing or malformed parts fall back to empty values.
    When *base_url* is given the issue's browser URL is filled in.
    """
    if not isinstance(raw, Mapping):
        return TrackingIssue()

    custom_fields = parse_custom_fields(raw.get("custom_fields"))
    project = raw.get("project")
    issue_id = _as_int(raw.get("id"))

    return TrackingIssue(
        issue_id=issue_id,
        qa_no=get_custom_field_value(custom_fields, CF_QA_NO, ""),
        subject=_as_str(raw.get("subject")),
        status=_name(raw.get("status")),
        priority=_name(raw.get("priority")),
        assignee=_name(raw.get("assigned_to")),
        author=_name(raw.get("author")),
        created_on=_as_str(raw.get("created_on")),
        updated_on=_as_str(raw.get("updated_on")),
        tracker_name=_name(raw.get("tracker")),
        module=get_custom_field_value(custom_fields, CF_MODULE, ""),
        description=_as_str(raw.get("description")),
        attachments=_attachments(raw.get("attachments")),
        project_id=_as_int(project.get("id")) if isinstance(project, Mapping) else 0,
        project_name=_name(project),
        fix_method=get_custom_field_value(custom_fields, CF_FIX_METHOD, ""),
        question_vn=get_custom_field_value(custom_fields, CF_QUESTION_VN, ""),
        question_jp=get_custom_field_value(custom_fields, CF_QUESTION_JP, ""),
        answer_vn=get_custom_field_value(custom_fields, CF_ANSWER_VN, ""),
        answer_jp=get_custom_field_value(custom_fields, CF_ANSWER_JP, ""),
        custom_fields=custom_fields,
        url=f"{base_url.rstrip('/')}/issues/{issue_id}" if base_url and issue_id else "",
    )


def normalize_issues(raws: Iterable[Any], base_url: str = "") -> list[TrackingIssue]:
    """Normalize every issue in *raws*."""
    return [normalize_issue(raw, base_url) for raw in raws]


# -- helpers ------------------------------------------------------------------


def _attachments(raw: Any) -> tuple[Attachment, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    return tuple(
        Attachment(
            id=_as_int(att.get("id")),
            filename=_as_str(att.get("filename")),
            content_url=_as_str(att.get("content_url")),
            created_on=_as_str(att.get("created_on")),
        )
        for att in raw
        if isinstance(att, Mapping)
    )


def _name(obj: Any) -> str:
    if isinstance(obj, Mapping):
        return _as_str(obj.get("name"))
    return ""


def _as_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _as_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return 0
