"""Tests for redmine_dashboard.core.custom_fields."""

from __future__ import annotations

from redmine_dashboard.core.custom_fields import (
    NOT_AVAILABLE,
    get_custom_field_value,
    parse_custom_fields,
)
from redmine_dashboard.core.data_models import CustomField


class TestGetCustomFieldValue:
    def test_returns_value_of_named_field(self) -> None:
        fields = [{"name": "Module", "value": "PG001"}, {"name": "Other", "value": "x"}]
        assert get_custom_field_value(fields, "Module") == "PG001"

    def test_missing_field_returns_sentinel(self) -> None:
        assert get_custom_field_value([{"name": "Other", "value": "x"}], "Module") == NOT_AVAILABLE

    def test_null_value_returns_sentinel(self) -> None:
        assert get_custom_field_value([{"name": "Module", "value": None}], "Module") == "N/A"

    def test_blank_value_returns_sentinel(self) -> None:
        assert get_custom_field_value([{"name": "Module", "value": "   "}], "Module") == "N/A"

    def test_custom_default(self) -> None:
        assert get_custom_field_value([], "Module", "") == ""

    def test_none_collection(self) -> None:
        assert get_custom_field_value(None, "Module") == "N/A"

    def test_non_list_collection(self) -> None:
        assert get_custom_field_value({"name": "Module"}, "Module") == "N/A"
        assert get_custom_field_value("Module", "Module") == "N/A"

    def test_malformed_entries_are_skipped(self) -> None:
        fields = [None, 42, "junk", {"value": "no name"}, {"name": "Module", "value": "PG9"}]
        assert get_custom_field_value(fields, "Module") == "PG9"

    def test_list_value_is_joined(self) -> None:
        fields = [{"name": "Module", "value": ["PG1", "PG2"]}]
        assert get_custom_field_value(fields, "Module") == "PG1, PG2"

    def test_accepts_dataclass_entries(self) -> None:
        fields = (CustomField("回答納期", "2024-05-01"),)
        assert get_custom_field_value(fields, "回答納期") == "2024-05-01"

    def test_value_is_stripped(self) -> None:
        assert get_custom_field_value([{"name": "Module", "value": " PG1 "}], "Module") == "PG1"


class TestParseCustomFields:
    def test_parses_entries(self) -> None:
        parsed = parse_custom_fields([{"id": 1, "name": "Module", "value": "PG1"}])
        assert parsed == (CustomField("Module", "PG1"),)

    def test_skips_entries_without_name(self) -> None:
        parsed = parse_custom_fields([{"value": "x"}, {"name": 5, "value": "y"}, "junk"])
        assert parsed == ()

    def test_non_list_gives_empty_tuple(self) -> None:
        assert parse_custom_fields(None) == ()
        assert parse_custom_fields({"name": "Module"}) == ()

    def test_null_value_becomes_empty_string(self) -> None:
        assert parse_custom_fields([{"name": "Module", "value": None}]) == (CustomField("Module", ""),)
