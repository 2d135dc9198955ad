"""Tests for redmine_dashboard.core.normalizer."""

from __future__ import annotations

from typing import Any

from redmine_dashboard.core.data_models import Attachment, TrackingIssue
from redmine_dashboard.core.normalizer import normalize_issue, normalize_issues
from redmine_dashboard.core.serialization import issue_from_dict, issue_to_dict


def _make_raw_issue(issue_id: int = 101, **overrides: Any) -> dict[str, Any]:
    raw: dict[str, Any] = {
        "id": issue_id,
        "subject": "Crash on save",
        "status": {"id": 3, "name": "Resolved"},
        "priority": {"id": 2, "name": "High"},
        "author": {"id": 7, "name": "Tanaka"},
        "assigned_to": {"id": 8, "name": "Nguyen"},
        "project": {"id": 12, "name": "Alpha"},
        "tracker": {"id": 1, "name": "Bug"},
        "created_on": "2024-03-01T09:00:00Z",
        "updated_on": "2024-03-02T10:00:00Z",
        "description": "Steps…",
        "custom_fields": [
            {"id": 1, "name": "Q&A No.", "value": "QA-9"},
            {"id": 2, "name": "Module", "value": "PG001, PG002"},
            {"id": 3, "name": "Fix Method", "value": "Patch"},
            {"id": 4, "name": "Question (JP)", "value": "質問"},
            {"id": 5, "name": "Answer (VN)", "value": None},
        ],
        "attachments": [
            {"id": 5, "filename": "log.txt", "content_url": "http://r/attachments/5", "created_on": "2024-03-01"},
        ],
    }
    raw.update(overrides)
    return raw


class TestNormalizeIssue:
    def test_maps_core_fields(self) -> None:
        issue = normalize_issue(_make_raw_issue())
        assert issue.issue_id == 101
        assert issue.subject == "Crash on save"
        assert issue.status == "Resolved"
        assert issue.priority == "High"
        assert issue.author == "Tanaka"
        assert issue.assignee == "Nguyen"
        assert issue.tracker_name == "Bug"
        assert issue.project_id == 12
        assert issue.project_name == "Alpha"

    def test_maps_custom_fields(self) -> None:
        issue = normalize_issue(_make_raw_issue())
        assert issue.qa_no == "QA-9"
        assert issue.module == "PG001, PG002"
        assert issue.fix_method == "Patch"
        assert issue.question_jp == "質問"
        assert issue.answer_vn == ""
        assert issue.question_vn == ""

    def test_attachments_preserved(self) -> None:
        issue = normalize_issue(_make_raw_issue())
        assert issue.attachments == (
            Attachment(id=5, filename="log.txt", content_url="http://r/attachments/5", created_on="2024-03-01"),
        )

    def test_missing_nested_objects_default_to_empty(self) -> None:
        raw = _make_raw_issue()
        for key in ("assigned_to", "author", "status", "priority", "tracker", "project"):
            del raw[key]
        issue = normalize_issue(raw)
        assert issue.assignee == ""
        assert issue.author == ""
        assert issue.status == ""
        assert issue.project_id == 0
        assert issue.project_name == ""

    def test_null_nested_objects(self) -> None:
        issue = normalize_issue(_make_raw_issue(assigned_to=None, custom_fields=None, attachments=None))
        assert issue.assignee == ""
        assert issue.module == ""
        assert issue.attachments == ()

    def test_non_mapping_input(self) -> None:
        assert normalize_issue(None) == TrackingIssue()
        assert normalize_issue("junk") == TrackingIssue()

    def test_url_built_from_base(self) -> None:
        issue = normalize_issue(_make_raw_issue(), "https://redmine.example.com/")
        assert issue.url == "https://redmine.example.com/issues/101"

    def test_no_url_without_base(self) -> None:
        assert normalize_issue(_make_raw_issue()).url == ""

    def test_idempotent_through_dict(self) -> None:
        first = normalize_issue(_make_raw_issue())
        # Re-normalizing the same raw record gives an equal value
        assert normalize_issue(_make_raw_issue()) == first
        assert issue_from_dict(issue_to_dict(first)) == first

    def test_infinite_id_becomes_zero(self) -> None:
        assert normalize_issue({"id": float("inf")}).issue_id == 0
        assert normalize_issue({"id": 5, "project": {"id": float("-inf")}}).project_id == 0


class TestNormalizeIssues:
    def test_maps_list(self) -> None:
        issues = normalize_issues([_make_raw_issue(1), _make_raw_issue(2)], "http://r")
        assert [i.issue_id for i in issues] == [1, 2]
        assert issues[1].url == "http://r/issues/2"

    def test_empty(self) -> None:
        assert normalize_issues([]) == []
