"""Column filtering and sorting for the issue table."""

from __future__ import annotations

import dataclasses
from collections.abc import Sequence

from redmine_dashboard.core.custom_fields import (
    CF_DESIRED_DELIVERY,
    CF_EDIT_PG_ID,
    CF_FJN_ERROR_TYPE,
    CF_GENERATED_PG_ID,
    CF_RESPONSE_DELIVERY,
    CF_UCD_ERROR_TYPE,
    CF_UNIT_ID,
    NOT_AVAILABLE,
    get_custom_field_value,
)
from redmine_dashboard.core.data_models import IssueFilter, SortSpec, TrackingIssue

ASC = "asc"
DESC = "desc"

# Filter field → custom field name
_CUSTOM_COLUMNS = {
    "generated_pg_id": CF_GENERATED_PG_ID,
    "desired_delivery_date": CF_DESIRED_DELIVERY,
    "response_delivery_date": CF_RESPONSE_DELIVERY,
    "fjn_error_type": CF_FJN_ERROR_TYPE,
    "ucd_error_type": CF_UCD_ERROR_TYPE,
    "unit_id": CF_UNIT_ID,
    "edit_pg_id": CF_EDIT_PG_ID,
}

_NUMERIC_KEYS = frozenset({"stt", "ticket_no"})

SORT_KEYS: tuple[str, ...] = tuple(f.name for f in dataclasses.fields(IssueFilter))


def column_value(issue: TrackingIssue, key: str, position: int = 0) -> str:
    """Return the display text of column *key* for *issue*.

    *position* is the issue's 1-based row number, used by ``stt``.
    """
    if key == "stt":
        return str(position)
    if key == "ticket_no":
        return str(issue.issue_id)
    if key == "project_name":
        return issue.project_name
    if key == "author":
        return issue.author or NOT_AVAILABLE
    cf_name = _CUSTOM_COLUMNS.get(key)
    if cf_name is not None:
        return get_custom_field_value(issue.custom_fields, cf_name)
    return ""


def filter_issues(issues: Sequence[TrackingIssue], spec: IssueFilter) -> list[TrackingIssue]:
    """Keep issues matching every non-empty field of *spec*.

    Matching is a case-insensitive substring test.
    """
    active = [
        (name, value.casefold())
        for name, value in dataclasses.asdict(spec).items()
        if value
    ]
    if not active:
        return list(issues)

    result = []
    for position, issue in enumerate(issues, start=1):
        if all(needle in column_value(issue, name, position).casefold() for name, needle in active):
            result.append(issue)
    return result


def sort_issues(issues: Sequence[TrackingIssue], sort: SortSpec) -> list[TrackingIssue]:
    """Return *issues* ordered by ``sort.key``; unknown keys keep input order."""
    if not sort.key or sort.key not in SORT_KEYS:
        return list(issues)

    numeric = sort.key in _NUMERIC_KEYS

    def key_func(pair: tuple[int, TrackingIssue]) -> float | str:
        text = column_value(pair[1], sort.key, pair[0])
        return _as_number(text) if numeric else text

    positioned = list(enumerate(issues, start=1))
    ordered = sorted(positioned, key=key_func, reverse=sort.direction == DESC)
    return [issue for _, issue in ordered]


def apply_filters_and_sort(
    issues: Sequence[TrackingIssue], spec: IssueFilter, sort: SortSpec
) -> list[TrackingIssue]:
    return sort_issues(filter_issues(issues, spec), sort)


def toggle_sort(current: SortSpec, key: str) -> SortSpec:
    """Header-click behaviour: flip direction on the same key, else ascending."""
    if current.key == key:
        return SortSpec(key=key, direction=DESC if current.direction == ASC else ASC)
    return SortSpec(key=key, direction=ASC)


def select_issues(
    issues: Sequence[TrackingIssue],
    *,
    project: str | None = None,
    priority: str | None = None,
    response_due_date: str | None = None,
    fjn_error_type: str | None = None,
) -> list[TrackingIssue]:
    """Exact-match selection used when a chart bar is clicked."""
    result = []
    for issue in issues:
        if project is not None and issue.project_name != project:
            continue
        if priority is not None and issue.priority != priority:
            continue
        if response_due_date is not None and (
            get_custom_field_value(issue.custom_fields, CF_RESPONSE_DELIVERY) != response_due_date
        ):
            continue
        if fjn_error_type is not None and (
            get_custom_field_value(issue.custom_fields, CF_FJN_ERROR_TYPE) != fjn_error_type
        ):
            continue
        result.append(issue)
    return result


def _as_number(text: str) -> float:
    try:
        return float(text)
    except ValueError:
        return 0.0
