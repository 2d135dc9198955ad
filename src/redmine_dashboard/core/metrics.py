"""Issue and schedule aggregations behind the dashboard charts."""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime

from dateutil.parser import parse as dt_parse

from redmine_dashboard.core.custom_fields import (
    CF_FJN_ERROR_TYPE,
    CF_RESPONSE_DELIVERY,
    NOT_AVAILABLE,
    get_custom_field_value,
)
from redmine_dashboard.core.data_models import (
    PHASE_NAMES,
    IssueMetrics,
    Program,
    ScheduleSummary,
    TrackingIssue,
)

logger = logging.getLogger(__name__)


def calculate_issue_metrics(
    issues: Sequence[TrackingIssue], top_due_dates: int = 7
) -> IssueMetrics:
    """Count issues per project, priority, response due date and FJN error type."""
    m = IssueMetrics(total=len(issues))
    if not issues:
        logger.debug("No issues: returning empty metrics")
        return m

    m.by_project = dict(Counter(i.project_name or NOT_AVAILABLE for i in issues))
    m.by_priority = dict(Counter(i.priority or NOT_AVAILABLE for i in issues))

    due = Counter(
        get_custom_field_value(i.custom_fields, CF_RESPONSE_DELIVERY) for i in issues
    )
    due.pop(NOT_AVAILABLE, None)
    top = [d for d, _ in due.most_common(top_due_dates)]
    m.by_response_due_date = {d: due[d] for d in sorted(top, key=_date_key)}

    nested: dict[str, dict[str, int]] = {}
    for issue in issues:
        project = issue.project_name or NOT_AVAILABLE
        error_type = get_custom_field_value(issue.custom_fields, CF_FJN_ERROR_TYPE)
        per_project = nested.setdefault(project, {})
        per_project[error_type] = per_project.get(error_type, 0) + 1
    m.fjn_error_by_project = nested

    logger.debug(
        "Issue metrics: %d issue(s), %d project(s), %d priorities",
        m.total, len(m.by_project), len(m.by_priority),
    )
    return m


def summarize_programs(programs: Sequence[Program]) -> ScheduleSummary:
    """Total the bug and Q&A counts and average each phase's progress."""
    s = ScheduleSummary(programs=len(programs))
    for p in programs:
        s.bugs += p.bug_count
        s.bugs_resolved += p.bug_resolved_count
        s.qas += p.qa_count
        s.qas_resolved += p.qa_resolved_count

    for name in PHASE_NAMES:
        values = [ph.progress for p in programs if (ph := p.phase(name)) is not None]
        s.average_progress[name] = sum(values) / len(values) if values else 0.0
    return s


def _date_key(value: str) -> tuple[int, datetime | str]:
    """Sort parseable dates chronologically, anything else after them."""
    try:
        return (0, dt_parse(value).replace(tzinfo=None))
    except (ValueError, OverflowError):
        return (1, value)
