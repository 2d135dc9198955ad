"""Data models for Redmine Dashboard."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PHASE_NAMES: tuple[str, ...] = ("Design", "Review", "Coding", "Testing")

STATUS_OK = "ok"
STATUS_NOT_FOUND = "not_found"
STATUS_FAILED = "failed"
STATUS_CANCELLED = "cancelled"


@dataclass(frozen=True)
class CustomField:
    """A tracker-defined name/value pair attached to an issue."""

    name: str
    value: str = ""


@dataclass(frozen=True)
class Attachment:
    """A file attached to a tracker issue."""

    id: int = 0
    filename: str = ""
    content_url: str = ""
    created_on: str = ""


@dataclass(frozen=True)
class TrackingIssue:
    """A tracker issue flattened into display-ready fields.

    Every field has a concrete default so the table and chart code never
    has to check for missing values.
    """

    issue_id: int = 0
    qa_no: str = ""
    subject: str = ""
    status: str = ""
    priority: str = ""
    assignee: str = ""
    author: str = ""
    created_on: str = ""
    updated_on: str = ""
    tracker_name: str = ""
    module: str = ""
    description: str = ""
    attachments: tuple[Attachment, ...] = ()
    project_id: int = 0
    project_name: str = ""
    fix_method: str = ""
    question_vn: str = ""
    question_jp: str = ""
    answer_vn: str = ""
    answer_jp: str = ""
    custom_fields: tuple[CustomField, ...] = ()
    url: str = ""


@dataclass(frozen=True)
class Phase:
    """One of the four fixed schedule phases of a Program."""

    phase_name: str
    delivery_date: str = ""
    baseline_effort: float = 0.0
    planned_start_date: str = ""
    planned_end_date: str = ""
    actual_start_date: str = ""
    actual_end_date: str = ""
    assignee: str = ""
    progress: float = 0.0  # ratio 0–1
    actual_effort: float = 0.0
    design_pages: int = 0
    test_cases: int = 0
    defects: int = 0
    notes: str = ""

    @property
    def progress_percent(self) -> float:
        return self.progress * 100


@dataclass(frozen=True)
class Program:
    """A schedule row with its phases and the tracker issues joined onto it."""

    prgid: str
    prgname: str
    frame: str = ""
    phases: tuple[Phase, ...] = ()
    tracking_issues: tuple[TrackingIssue, ...] = ()
    bug_count: int = 0
    qa_count: int = 0
    bug_resolved_count: int = 0
    qa_resolved_count: int = 0

    def phase(self, name: str) -> Phase | None:
        """Return the phase called *name*, or ``None``."""
        for p in self.phases:
            if p.phase_name == name:
                return p
        return None


@dataclass(frozen=True)
class RawProgramRow:
    """One spreadsheet data row, before numeric coercion."""

    prgid: str = ""
    prgname: str = ""
    frame: str = ""
    design: dict[str, Any] = field(default_factory=dict)
    review: dict[str, Any] = field(default_factory=dict)
    coding: dict[str, Any] = field(default_factory=dict)
    testing: dict[str, Any] = field(default_factory=dict)

    def phase_data(self, phase_name: str) -> dict[str, Any]:
        return getattr(self, phase_name.lower())


@dataclass(frozen=True)
class ProjectConfig:
    """Static per-project configuration (paths and tracker credentials)."""

    project_id: str
    root_path: str = ""
    design_path: str = ""
    testing_path: str = ""
    schedule_path: str = ""
    schedule_file_name: str = ""
    tracking_url: str = ""
    tracking_api_key: str = ""
    redmine_name: str = ""
    redmine_url: str = ""
    redmine_api_key: str = ""

    @property
    def schedule_file(self) -> str:
        """Full path of the schedule workbook, or ``""`` when unset."""
        if not self.schedule_path or not self.schedule_file_name:
            return ""
        return f"{self.schedule_path.rstrip('/')}/{self.schedule_file_name}"


@dataclass(frozen=True)
class RedmineProject:
    """A project as listed by the tracker's ``/projects.json``."""

    id: int
    name: str
    identifier: str = ""


@dataclass(frozen=True)
class IssueQuery:
    """Filter parameters sent with every ``/issues.json`` request."""

    status_id: str = "*"
    assigned_to_id: str = ""
    created_from: str = ""  # YYYY-MM-DD
    created_to: str = ""
    include_attachments: bool = True


@dataclass(frozen=True)
class ProjectFetchResult:
    """Outcome of fetching one configured project.

    ``status`` separates a failed fetch from a project that simply has no
    issues.
    """

    project_id: str
    status: str
    issues: tuple[TrackingIssue, ...] = ()
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.status == STATUS_OK


@dataclass(frozen=True)
class AggregateFetch:
    """Union of all per-project fetches, deduplicated by issue id."""

    issues: tuple[TrackingIssue, ...] = ()
    results: tuple[ProjectFetchResult, ...] = ()
    from_cache: bool = False

    @property
    def failed(self) -> tuple[ProjectFetchResult, ...]:
        return tuple(r for r in self.results if r.status in (STATUS_FAILED, STATUS_CANCELLED))

    @property
    def not_found(self) -> tuple[ProjectFetchResult, ...]:
        return tuple(r for r in self.results if r.status == STATUS_NOT_FOUND)

    @property
    def any_succeeded(self) -> bool:
        return any(r.ok for r in self.results)


@dataclass(frozen=True)
class ReconcileRules:
    """Labels and join rule used when folding issues onto programs."""

    bug_tracker: str = "Bug"
    qa_tracker: str = "Q&A"
    resolved_statuses: tuple[str, ...] = ("Resolved",)
    module_match: str = "substring"  # "substring" or "exact"


@dataclass(frozen=True)
class ReconcileResult:
    """Programs after a reconciliation pass, plus what happened to the fetch."""

    programs: list[Program]
    issue_count: int = 0
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


@dataclass(frozen=True)
class IssueFilter:
    """Per-column substring filters for the issue table. Empty = no constraint."""

    stt: str = ""
    ticket_no: str = ""
    generated_pg_id: str = ""
    project_name: str = ""
    author: str = ""
    desired_delivery_date: str = ""
    response_delivery_date: str = ""
    fjn_error_type: str = ""
    ucd_error_type: str = ""
    unit_id: str = ""
    edit_pg_id: str = ""


@dataclass(frozen=True)
class SortSpec:
    """Sort key and direction for the issue table."""

    key: str = ""
    direction: str = "asc"  # "asc" or "desc"


@dataclass
class IssueMetrics:
    """Aggregated counts for the dashboard charts."""

    total: int = 0
    by_project: dict[str, int] = field(default_factory=dict)
    by_priority: dict[str, int] = field(default_factory=dict)
    by_response_due_date: dict[str, int] = field(default_factory=dict)
    fjn_error_by_project: dict[str, dict[str, int]] = field(default_factory=dict)


@dataclass
class ScheduleSummary:
    """Totals across a list of programs."""

    programs: int = 0
    bugs: int = 0
    bugs_resolved: int = 0
    qas: int = 0
    qas_resolved: int = 0
    average_progress: dict[str, float] = field(default_factory=dict)
