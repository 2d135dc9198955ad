"""Tests for redmine_dashboard.core.issue_filter."""

from __future__ import annotations

from redmine_dashboard.core.data_models import CustomField, IssueFilter, SortSpec, TrackingIssue
from redmine_dashboard.core.issue_filter import (
    apply_filters_and_sort,
    column_value,
    filter_issues,
    select_issues,
    sort_issues,
    toggle_sort,
)


def _make_issue(
    issue_id: int,
    project: str = "Alpha",
    author: str = "Tanaka",
    priority: str = "Normal",
    **custom: str,
) -> TrackingIssue:
    names = {
        "pgid": "発生PGID",
        "due": "回答納期",
        "fjn": "FJN側障害種別",
        "unit": "部品ID",
    }
    fields = tuple(CustomField(names[k], v) for k, v in custom.items())
    return TrackingIssue(
        issue_id=issue_id, project_name=project, author=author, priority=priority, custom_fields=fields,
    )


class TestColumnValue:
    def test_custom_field_column(self) -> None:
        issue = _make_issue(1, pgid="PG001")
        assert column_value(issue, "generated_pg_id") == "PG001"

    def test_missing_custom_field_is_na(self) -> None:
        assert column_value(_make_issue(1), "unit_id") == "N/A"

    def test_missing_author_is_na(self) -> None:
        assert column_value(_make_issue(1, author=""), "author") == "N/A"

    def test_stt_uses_position(self) -> None:
        assert column_value(_make_issue(9), "stt", 3) == "3"


class TestFilterIssues:
    def test_ticket_substring(self) -> None:
        issues = [_make_issue(5), _make_issue(10), _make_issue(100)]
        result = filter_issues(issues, IssueFilter(ticket_no="10"))
        assert [i.issue_id for i in result] == [10, 100]

    def test_case_insensitive(self) -> None:
        issues = [_make_issue(1, project="Alpha"), _make_issue(2, project="Beta")]
        assert [i.issue_id for i in filter_issues(issues, IssueFilter(project_name="ALP"))] == [1]

    def test_fields_combine_with_and(self) -> None:
        issues = [
            _make_issue(1, project="Alpha", author="Tanaka"),
            _make_issue(2, project="Alpha", author="Nguyen"),
            _make_issue(3, project="Beta", author="Tanaka"),
        ]
        result = filter_issues(issues, IssueFilter(project_name="alpha", author="tanaka"))
        assert [i.issue_id for i in result] == [1]

    def test_na_sentinel_is_filterable(self) -> None:
        issues = [_make_issue(1, fjn="仕様"), _make_issue(2)]
        assert [i.issue_id for i in filter_issues(issues, IssueFilter(fjn_error_type="n/a"))] == [2]

    def test_stt_filter_uses_input_position(self) -> None:
        issues = [_make_issue(30), _make_issue(20), _make_issue(10)]
        assert [i.issue_id for i in filter_issues(issues, IssueFilter(stt="2"))] == [20]

    def test_empty_spec_returns_everything(self) -> None:
        issues = [_make_issue(1), _make_issue(2)]
        assert filter_issues(issues, IssueFilter()) == issues


class TestSortIssues:
    def test_ticket_numeric(self) -> None:
        issues = [_make_issue(100), _make_issue(5), _make_issue(20)]
        assert [i.issue_id for i in sort_issues(issues, SortSpec("ticket_no"))] == [5, 20, 100]

    def test_desc_is_reverse_of_asc(self) -> None:
        issues = [_make_issue(3, project="C"), _make_issue(1, project="A"), _make_issue(2, project="B")]
        asc = sort_issues(issues, SortSpec("project_name", "asc"))
        desc = sort_issues(issues, SortSpec("project_name", "desc"))
        assert asc == list(reversed(desc))

    def test_lexicographic_custom_column(self) -> None:
        issues = [_make_issue(1, due="2024-03-01"), _make_issue(2, due="2024-01-15")]
        result = sort_issues(issues, SortSpec("response_delivery_date"))
        assert [i.issue_id for i in result] == [2, 1]

    def test_stable_for_equal_keys(self) -> None:
        issues = [_make_issue(1, project="A"), _make_issue(2, project="A"), _make_issue(3, project="A")]
        assert [i.issue_id for i in sort_issues(issues, SortSpec("project_name"))] == [1, 2, 3]

    def test_unknown_key_keeps_order(self) -> None:
        issues = [_make_issue(2), _make_issue(1)]
        assert sort_issues(issues, SortSpec("nope")) == issues
        assert sort_issues(issues, SortSpec()) == issues

    def test_stt_desc_reverses_input(self) -> None:
        issues = [_make_issue(7), _make_issue(8), _make_issue(9)]
        result = sort_issues(issues, SortSpec("stt", "desc"))
        assert [i.issue_id for i in result] == [9, 8, 7]


class TestApplyFiltersAndSort:
    def test_filter_then_sort(self) -> None:
        issues = [_make_issue(100), _make_issue(10), _make_issue(5)]
        result = apply_filters_and_sort(issues, IssueFilter(ticket_no="10"), SortSpec("ticket_no", "asc"))
        assert [i.issue_id for i in result] == [10, 100]

    def test_input_not_modified(self) -> None:
        issues = [_make_issue(2), _make_issue(1)]
        apply_filters_and_sort(issues, IssueFilter(), SortSpec("ticket_no"))
        assert [i.issue_id for i in issues] == [2, 1]


class TestToggleSort:
    def test_new_key_starts_ascending(self) -> None:
        assert toggle_sort(SortSpec("author", "desc"), "ticket_no") == SortSpec("ticket_no", "asc")

    def test_same_key_flips(self) -> None:
        assert toggle_sort(SortSpec("author", "asc"), "author") == SortSpec("author", "desc")
        assert toggle_sort(SortSpec("author", "desc"), "author") == SortSpec("author", "asc")


class TestSelectIssues:
    def test_by_project_and_priority(self) -> None:
        issues = [
            _make_issue(1, project="Alpha", priority="High"),
            _make_issue(2, project="Alpha", priority="Low"),
            _make_issue(3, project="Beta", priority="High"),
        ]
        assert [i.issue_id for i in select_issues(issues, project="Alpha", priority="High")] == [1]

    def test_by_custom_fields(self) -> None:
        issues = [_make_issue(1, due="2024-05-01", fjn="仕様"), _make_issue(2, due="2024-05-02")]
        assert [i.issue_id for i in select_issues(issues, response_due_date="2024-05-01")] == [1]
        assert [i.issue_id for i in select_issues(issues, fjn_error_type="N/A")] == [2]

    def test_no_criteria(self) -> None:
        issues = [_make_issue(1)]
        assert select_issues(issues) == issues
