"""Join tracker issues onto schedule programs and recount them."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Sequence

from redmine_dashboard.core.data_models import (
    IssueQuery,
    Program,
    ProjectConfig,
    ReconcileResult,
    ReconcileRules,
    TrackingIssue,
)
from redmine_dashboard.core.errors import DownstreamUnavailableError
from redmine_dashboard.core.normalizer import normalize_issues
from redmine_dashboard.core.redmine_client import RedmineClient

logger = logging.getLogger(__name__)

MATCH_SUBSTRING = "substring"
MATCH_EXACT = "exact"


def module_matches(module: str, prgid: str, rule: str = MATCH_SUBSTRING) -> bool:
    """Return True when an issue's Module field refers to *prgid*."""
    if not prgid:
        return False
    if rule == MATCH_EXACT:
        return module.strip() == prgid
    return prgid in module


def reconcile_program(
    program: Program, issues: Sequence[TrackingIssue], rules: ReconcileRules
) -> Program:
    """Return a copy of *program* with its issues and counts recomputed."""
    matched = tuple(i for i in issues if module_matches(i.module, program.prgid, rules.module_match))
    resolved = set(rules.resolved_statuses)
    bugs = [i for i in matched if i.tracker_name == rules.bug_tracker]
    qas = [i for i in matched if i.tracker_name == rules.qa_tracker]
    return dataclasses.replace(
        program,
        tracking_issues=matched,
        bug_count=len(bugs),
        qa_count=len(qas),
        bug_resolved_count=sum(1 for i in bugs if i.status in resolved),
        qa_resolved_count=sum(1 for i in qas if i.status in resolved),
    )


def reconcile_programs(
    programs: list[Program],
    issues: Sequence[TrackingIssue],
    rules: ReconcileRules | None = None,
) -> list[Program]:
    """Attach matching issues to every program.

    With no issues the input list itself is returned, so counts from an
    earlier pass are kept.
    """
    if not issues:
        return programs
    rules = rules or ReconcileRules()
    result = [reconcile_program(p, issues, rules) for p in programs]
    logger.debug(
        "Reconciled %d program(s) against %d issue(s)", len(result), len(issues)
    )
    return result


def refresh_programs(
    programs: list[Program],
    project: ProjectConfig,
    client: RedmineClient,
    rules: ReconcileRules | None = None,
    query: IssueQuery | None = None,
    *,
    cancel: threading.Event | None = None,
) -> ReconcileResult:
    """Fetch *project*'s issues and reconcile *programs* against them.

    On any fetch failure the original list is returned untouched together
    with the error message.
    """
    try:
        raw = client.fetch_issues(project.project_id, query, cancel=cancel)
    except DownstreamUnavailableError as exc:
        logger.error("Could not refresh schedule for %s: %s", project.project_id, exc)
        return ReconcileResult(programs=programs, error=str(exc))

    issues = normalize_issues(raw, project.tracking_url)
    logger.info(
        "Refreshing %d program(s) of %s with %d issue(s)",
        len(programs), project.project_id, len(issues),
    )
    return ReconcileResult(
        programs=reconcile_programs(programs, issues, rules),
        issue_count=len(issues),
    )
