"""Tests for redmine_dashboard.core.schedule."""

from __future__ import annotations

from pathlib import Path

import pytest
from openpyxl import Workbook

from redmine_dashboard.core.data_models import PHASE_NAMES, RawProgramRow
from redmine_dashboard.core.errors import InvalidFormatError
from redmine_dashboard.core.excel_importer import PHASE_HEADERS
from redmine_dashboard.core.schedule import (
    build_phase,
    build_programs,
    import_schedule,
    to_float,
    to_progress,
)


def _make_row(prgid: str = "PG001", prgname: str = "Order entry", **design: object) -> RawProgramRow:
    return RawProgramRow(prgid=prgid, prgname=prgname, frame="F1", design=dict(design))


class TestBuildPrograms:
    def test_four_phases_in_order(self) -> None:
        programs = build_programs([_make_row()])
        assert len(programs) == 1
        assert [p.phase_name for p in programs[0].phases] == list(PHASE_NAMES)

    def test_counts_start_at_zero(self) -> None:
        program = build_programs([_make_row()])[0]
        assert program.tracking_issues == ()
        assert (program.bug_count, program.qa_count) == (0, 0)
        assert (program.bug_resolved_count, program.qa_resolved_count) == (0, 0)

    def test_rows_without_identity_dropped(self) -> None:
        rows = [_make_row(prgid=""), _make_row(prgname=""), _make_row(prgid="PG9")]
        assert [p.prgid for p in build_programs(rows)] == ["PG9"]

    def test_phase_lookup(self) -> None:
        program = build_programs([_make_row(assignee="Tanaka")])[0]
        assert program.phase("Design").assignee == "Tanaka"
        assert program.phase("Unknown") is None

    def test_empty_input(self) -> None:
        assert build_programs([]) == []

    def test_non_finite_counts_do_not_abort(self) -> None:
        row = RawProgramRow(prgid="P1", prgname="X", testing={"test_cases": "NaN", "defects": "1e400", "progress": "inf"})
        program = build_programs([row, _make_row(prgid="P2")])[0]
        testing = program.phase("Testing")
        assert (testing.test_cases, testing.defects, testing.progress) == (0, 0, 0.0)


class TestBuildPhase:
    def test_numeric_coercion(self) -> None:
        phase = build_phase(
            "Design",
            {"baseline_effort": "3.5", "actual_effort": 2, "design_pages": 12.0, "test_cases": "7", "defects": None},
        )
        assert phase.baseline_effort == 3.5
        assert phase.actual_effort == 2.0
        assert phase.design_pages == 12
        assert phase.test_cases == 7
        assert phase.defects == 0

    def test_invalid_numbers_become_zero(self) -> None:
        phase = build_phase("Coding", {"baseline_effort": "n/a", "defects": "many"})
        assert phase.baseline_effort == 0.0
        assert phase.defects == 0

    def test_text_fields(self) -> None:
        phase = build_phase("Review", {"assignee": " Nguyen ", "delivery_date": "2024-02-01", "notes": None})
        assert phase.assignee == "Nguyen"
        assert phase.delivery_date == "2024-02-01"
        assert phase.notes == ""

    def test_progress_percent_property(self) -> None:
        assert build_phase("Testing", {"progress": "40%"}).progress_percent == pytest.approx(40.0)


class TestToProgress:
    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (0.25, 0.25),
            (1, 1.0),
            (50, 0.5),
            ("80%", 0.8),
            ("0.3", 0.3),
            (150, 1.0),
            (-5, 0.0),
            ("", 0.0),
            (None, 0.0),
            ("nan", 0.0),
            ("inf%", 0.0),
        ],
    )
    def test_values(self, value: object, expected: float) -> None:
        assert to_progress(value) == pytest.approx(expected)


class TestToFloat:
    def test_thousands_separator(self) -> None:
        assert to_float("1,250.5") == 1250.5

    def test_bool_is_not_a_number(self) -> None:
        assert to_float(True) == 0.0

    @pytest.mark.parametrize("value", ["NaN", "inf", "-Infinity", "1e400", float("nan"), float("inf"), 10**400])
    def test_non_finite_becomes_zero(self, value: object) -> None:
        assert to_float(value) == 0.0


class TestImportSchedule:
    def test_reads_workbook(self, tmp_path: Path) -> None:
        wb = Workbook()
        ws = wb.active
        headers = ["PGID", "PG名称"] + [t.format(n=n) for n in range(1, 5) for t in PHASE_HEADERS.values()]
        for c, h in enumerate(headers, start=1):
            ws.cell(row=5, column=c, value=h)
        ws.cell(row=6, column=1, value="PG001")
        ws.cell(row=6, column=2, value="Order entry")
        ws.cell(row=6, column=headers.index("進捗率2") + 1, value=0.5)
        path = tmp_path / "schedule.xlsx"
        wb.save(path)

        programs = import_schedule(path)
        assert [p.prgid for p in programs] == ["PG001"]
        assert programs[0].phase("Review").progress == 0.5

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(InvalidFormatError):
            import_schedule(tmp_path / "missing.xlsx")
