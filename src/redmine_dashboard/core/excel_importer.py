"""Read program schedules out of ``.xlsx`` workbooks with openpyxl.

The data region is located in this order:

1. a defined name ``schedule`` (workbook or sheet scope),
2. an Excel table named ``schedule``,
3. the sheet named ``schedule`` (else the first sheet) from row 5 down.

Its first row holds the column headers.  Phase columns carry a numeric
suffix: 1 Design, 2 Review, 3 Coding, 4 Testing.  ``開始日(1)`` is the
planned start of Design, ``開始日1`` the actual start.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import date, datetime
from os import PathLike
from typing import Any
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from openpyxl.utils.datetime import from_excel
from openpyxl.workbook.workbook import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from redmine_dashboard.core.data_models import PHASE_NAMES, RawProgramRow
from redmine_dashboard.core.errors import InvalidFormatError

logger = logging.getLogger(__name__)

SCHEDULE_NAME = "schedule"
FALLBACK_HEADER_ROW = 5

HEADER_PRGID = "PGID"
HEADER_PRGNAME = "PG名称"
HEADER_FRAME = "フレーム"

# Phase field → header template; "{n}" is the phase number.
PHASE_HEADERS: dict[str, str] = {
    "delivery_date": "納品({n})",
    "baseline_effort": "工数({n})",
    "planned_start_date": "開始日({n})",
    "planned_end_date": "終了日({n})",
    "actual_start_date": "開始日{n}",
    "actual_end_date": "終了日{n}",
    "assignee": "担当{n}",
    "progress": "進捗率{n}",
    "actual_effort": "工数{n}",
    "design_pages": "PageTK{n}",
    "test_cases": "テスト{n}",
    "defects": "不具合{n}",
    "notes": "コメント{n}",
}

REQUIRED_PHASE_FIELDS = (
    "planned_start_date",
    "planned_end_date",
    "actual_start_date",
    "actual_end_date",
    "assignee",
    "progress",
)

DATE_FIELDS = frozenset({
    "delivery_date",
    "planned_start_date",
    "planned_end_date",
    "actual_start_date",
    "actual_end_date",
})

# The Design comment column is historically headed plain "コメント".
_HEADER_ALIASES = {"コメント1": "コメント"}


def required_headers() -> list[str]:
    """Return every header a schedule sheet must contain."""
    headers = [HEADER_PRGID, HEADER_PRGNAME]
    for n in range(1, len(PHASE_NAMES) + 1):
        headers.extend(PHASE_HEADERS[f].format(n=n) for f in REQUIRED_PHASE_FIELDS)
    return headers


def extract(source: str | PathLike[str] | Workbook) -> list[RawProgramRow]:
    """Return one :class:`RawProgramRow` per non-blank data row.

    Raises :class:`InvalidFormatError` when the workbook has no usable
    sheet, the data region is empty, or required headers are missing.
    """
    if isinstance(source, Workbook):
        wb = source
    else:
        logger.info("Loading schedule workbook %s", source)
        try:
            wb = load_workbook(source, data_only=True)
        except (OSError, KeyError, ValueError, BadZipFile, InvalidFileException) as exc:
            raise InvalidFormatError(f"Cannot open workbook {source}: {exc}") from exc

    values = _region_values(wb)
    if not values:
        raise InvalidFormatError("No data found in the schedule region")

    headers = [_header_text(v) for v in values[0]]
    missing = [h for h in required_headers() if h not in headers]
    if missing:
        raise InvalidFormatError("Schedule is missing required header(s)", missing)

    index = {h: i for i, h in enumerate(headers) if h}
    rows: list[RawProgramRow] = []
    for values_row in values[1:]:
        if all(_is_blank(v) for v in values_row):
            continue
        rows.append(_build_row(values_row, index))

    if not rows:
        raise InvalidFormatError("Schedule region has a header row but no data rows")
    logger.info("Extracted %d schedule row(s)", len(rows))
    return rows


def format_date(value: Any) -> Any:
    """Coerce Excel dates and serial numbers to ``YYYY-MM-DD``.

    Other values are returned unchanged.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        try:
            converted = from_excel(value)
        except (ValueError, OverflowError):
            return value
        if isinstance(converted, datetime):
            return converted.date().isoformat()
        if isinstance(converted, date):
            return converted.isoformat()
    return value


# -- region lookup ------------------------------------------------------------


def _region_values(wb: Workbook) -> list[tuple[Any, ...]]:
    named = _defined_name_region(wb)
    if named is not None:
        ws, ref = named
        logger.debug("Using defined name %r → %s!%s", SCHEDULE_NAME, ws.title, ref)
        return _cells(ws, ref)

    for ws in wb.worksheets:
        table = ws.tables.get(SCHEDULE_NAME) if hasattr(ws, "tables") else None
        if table is not None:
            logger.debug("Using table %r → %s!%s", SCHEDULE_NAME, ws.title, table.ref)
            return _cells(ws, table.ref)

    if not wb.sheetnames:
        raise InvalidFormatError("Workbook contains no sheets")
    ws = wb[SCHEDULE_NAME] if SCHEDULE_NAME in wb.sheetnames else wb.worksheets[0]
    logger.debug("No %r range; reading sheet %r from row %d", SCHEDULE_NAME, ws.title, FALLBACK_HEADER_ROW)
    if ws.max_row < FALLBACK_HEADER_ROW:
        return []
    return [
        tuple(row)
        for row in ws.iter_rows(min_row=FALLBACK_HEADER_ROW, max_row=ws.max_row, values_only=True)
    ]


def _defined_name_region(wb: Workbook) -> tuple[Worksheet, str] | None:
    candidates = [wb.defined_names.get(SCHEDULE_NAME)]
    for ws in wb.worksheets:
        sheet_names = getattr(ws, "defined_names", None)
        if sheet_names is not None:
            candidates.append(sheet_names.get(SCHEDULE_NAME))

    for defn in candidates:
        if defn is None:
            continue
        for title, ref in defn.destinations:
            if title in wb.sheetnames:
                return wb[title], ref.replace("$", "")
    return None


def _cells(ws: Worksheet, ref: str) -> list[tuple[Any, ...]]:
    block = ws[ref]
    # A single-row or single-cell reference is not nested
    if not isinstance(block, tuple):
        return [(block.value,)]
    if block and not isinstance(block[0], tuple):
        return [tuple(c.value for c in block)]
    return [tuple(c.value for c in row) for row in block]


# -- row mapping --------------------------------------------------------------


def _build_row(values: Sequence[Any], index: dict[str, int]) -> RawProgramRow:
    def cell(header: str) -> Any:
        i = index.get(header)
        if i is None and header in _HEADER_ALIASES:
            i = index.get(_HEADER_ALIASES[header])
        if i is None or i >= len(values):
            return ""
        value = values[i]
        return "" if value is None else value

    phases: dict[str, dict[str, Any]] = {}
    for n, phase_name in enumerate(PHASE_NAMES, start=1):
        data: dict[str, Any] = {}
        for field_name, template in PHASE_HEADERS.items():
            value = cell(template.format(n=n))
            if field_name in DATE_FIELDS:
                value = format_date(value)
            data[field_name] = value
        phases[phase_name.lower()] = data

    return RawProgramRow(
        prgid=_text(cell(HEADER_PRGID)),
        prgname=_text(cell(HEADER_PRGNAME)),
        frame=_text(cell(HEADER_FRAME)),
        **phases,
    )


def _header_text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _text(value: Any) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
