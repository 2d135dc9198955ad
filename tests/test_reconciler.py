"""Tests for redmine_dashboard.core.reconciler."""

from __future__ import annotations

from unittest.mock import MagicMock

from redmine_dashboard.core.data_models import (
    PHASE_NAMES,
    Phase,
    Program,
    ProjectConfig,
    ReconcileRules,
    TrackingIssue,
)
from redmine_dashboard.core.errors import DownstreamUnavailableError, FetchCancelledError
from redmine_dashboard.core.reconciler import (
    module_matches,
    reconcile_program,
    reconcile_programs,
    refresh_programs,
)


def _make_program(prgid: str, **counts: int) -> Program:
    phases = tuple(Phase(phase_name=n) for n in PHASE_NAMES)
    return Program(prgid=prgid, prgname=f"Program {prgid}", phases=phases, **counts)


def _make_issue(issue_id: int, module: str, tracker: str = "Bug", status: str = "New") -> TrackingIssue:
    return TrackingIssue(issue_id=issue_id, module=module, tracker_name=tracker, status=status)


def _raw_issue(issue_id: int, module: str, tracker: str = "Bug", status: str = "New") -> dict:
    return {
        "id": issue_id,
        "tracker": {"name": tracker},
        "status": {"name": status},
        "custom_fields": [{"name": "Module", "value": module}],
    }


class TestModuleMatches:
    def test_substring(self) -> None:
        assert module_matches("PG001, PG002", "PG002") is True
        assert module_matches("PG001", "PG002") is False

    def test_exact(self) -> None:
        assert module_matches("PG001", "PG001", "exact") is True
        assert module_matches("PG0011", "PG001", "exact") is False

    def test_empty_prgid_never_matches(self) -> None:
        assert module_matches("anything", "") is False
        assert module_matches("", "") is False


class TestReconcileProgram:
    def test_counts(self) -> None:
        issues = [
            _make_issue(1, "PG001", "Bug", "Resolved"),
            _make_issue(2, "PG001", "Bug", "New"),
            _make_issue(3, "PG001", "Q&A", "Resolved"),
            _make_issue(4, "PG001", "Feature", "Resolved"),
            _make_issue(5, "PG002", "Bug", "Resolved"),
        ]
        program = reconcile_program(_make_program("PG001"), issues, ReconcileRules())
        assert [i.issue_id for i in program.tracking_issues] == [1, 2, 3, 4]
        assert program.bug_count == 2
        assert program.bug_resolved_count == 1
        assert program.qa_count == 1
        assert program.qa_resolved_count == 1

    def test_custom_labels(self) -> None:
        rules = ReconcileRules(bug_tracker="不具合", qa_tracker="質問", resolved_statuses=("Closed", "Done"))
        issues = [_make_issue(1, "PG1", "不具合", "Closed"), _make_issue(2, "PG1", "質問", "Done")]
        program = reconcile_program(_make_program("PG1"), issues, rules)
        assert (program.bug_count, program.bug_resolved_count) == (1, 1)
        assert (program.qa_count, program.qa_resolved_count) == (1, 1)

    def test_counts_recomputed_from_scratch(self) -> None:
        stale = _make_program("PG001", bug_count=9, qa_count=9, bug_resolved_count=9, qa_resolved_count=9)
        program = reconcile_program(stale, [_make_issue(1, "PG001")], ReconcileRules())
        assert (program.bug_count, program.qa_count) == (1, 0)
        assert (program.bug_resolved_count, program.qa_resolved_count) == (0, 0)

    def test_input_not_mutated(self) -> None:
        original = _make_program("PG001")
        reconcile_program(original, [_make_issue(1, "PG001")], ReconcileRules())
        assert original.tracking_issues == ()
        assert original.bug_count == 0


class TestReconcilePrograms:
    def test_no_issues_returns_input_unchanged(self) -> None:
        programs = [_make_program("PG001", bug_count=3)]
        assert reconcile_programs(programs, []) is programs

    def test_phases_and_identity_preserved(self) -> None:
        programs = [_make_program("PG001"), _make_program("PG002")]
        result = reconcile_programs(programs, [_make_issue(1, "PG002")])
        for before, after in zip(programs, result):
            assert (after.prgid, after.prgname, after.phases) == (before.prgid, before.prgname, before.phases)
        assert result[0].tracking_issues == ()
        assert [i.issue_id for i in result[1].tracking_issues] == [1]

    def test_exact_rule(self) -> None:
        programs = [_make_program("PG1"), _make_program("PG10")]
        result = reconcile_programs(programs, [_make_issue(1, "PG10")], ReconcileRules(module_match="exact"))
        assert result[0].bug_count == 0
        assert result[1].bug_count == 1

    def test_substring_overlap_counts_twice(self) -> None:
        programs = [_make_program("PG1"), _make_program("PG10")]
        result = reconcile_programs(programs, [_make_issue(1, "PG10")])
        assert result[0].bug_count == 1
        assert result[1].bug_count == 1


class TestRefreshPrograms:
    def test_fetch_and_reconcile(self) -> None:
        client = MagicMock()
        client.fetch_issues.return_value = [_raw_issue(1, "PG001", "Bug", "Resolved"), _raw_issue(2, "PG002")]
        project = ProjectConfig(project_id="alpha", tracking_url="http://t")
        result = refresh_programs([_make_program("PG001")], project, client, ReconcileRules())

        assert result.ok
        assert result.issue_count == 2
        assert result.programs[0].bug_resolved_count == 1
        assert result.programs[0].tracking_issues[0].url == "http://t/issues/1"
        assert client.fetch_issues.call_args.args[0] == "alpha"

    def test_failure_leaves_programs_untouched(self) -> None:
        client = MagicMock()
        client.fetch_issues.side_effect = DownstreamUnavailableError("timed out", url="http://t")
        programs = [_make_program("PG001", bug_count=4)]
        result = refresh_programs(programs, ProjectConfig(project_id="alpha"), client)

        assert not result.ok
        assert "timed out" in result.error
        assert result.programs is programs

    def test_cancel_leaves_programs_untouched(self) -> None:
        client = MagicMock()
        client.fetch_issues.side_effect = FetchCancelledError("cancelled")
        programs = [_make_program("PG001")]
        result = refresh_programs(programs, ProjectConfig(project_id="alpha"), client)
        assert result.programs is programs
        assert result.error
