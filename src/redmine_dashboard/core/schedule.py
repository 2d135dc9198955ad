"""Turn extracted spreadsheet rows into typed :class:`Program` records."""

from __future__ import annotations

import logging
import math
from collections.abc import Iterable, Mapping
from os import PathLike
from typing import Any

from redmine_dashboard.core.data_models import PHASE_NAMES, Phase, Program, RawProgramRow
from redmine_dashboard.core.excel_importer import extract

logger = logging.getLogger(__name__)

_FLOAT_FIELDS = ("baseline_effort", "actual_effort")
_INT_FIELDS = ("design_pages", "test_cases", "defects")
_TEXT_FIELDS = (
    "delivery_date",
    "planned_start_date",
    "planned_end_date",
    "actual_start_date",
    "actual_end_date",
    "assignee",
    "notes",
)


def build_programs(rows: Iterable[RawProgramRow]) -> list[Program]:
    """Build one Program with four ordered phases per row.

    Rows without a PGID or a program name are dropped.
    """
    programs: list[Program] = []
    for line, row in enumerate(rows, start=1):
        if not row.prgid or not row.prgname:
            logger.warning("Skipping schedule row %d: missing PGID or program name", line)
            continue
        phases = tuple(build_phase(name, row.phase_data(name)) for name in PHASE_NAMES)
        programs.append(
            Program(prgid=row.prgid, prgname=row.prgname, frame=row.frame, phases=phases)
        )
    logger.info("Built %d program(s)", len(programs))
    return programs


def build_phase(phase_name: str, data: Mapping[str, Any]) -> Phase:
    """Coerce one phase's raw cell values."""
    values: dict[str, Any] = {f: _to_text(data.get(f)) for f in _TEXT_FIELDS}
    values.update({f: to_float(data.get(f)) for f in _FLOAT_FIELDS})
    values.update({f: to_int(data.get(f)) for f in _INT_FIELDS})
    values["progress"] = to_progress(data.get("progress"))
    return Phase(phase_name=phase_name, **values)


def import_schedule(path: str | PathLike[str]) -> list[Program]:
    """Read the workbook at *path* and return its programs."""
    return build_programs(extract(path))


# -- coercion -----------------------------------------------------------------


def to_float(value: Any) -> float:
    """Return *value* as a finite float; blanks, garbage, NaN and infinities become ``0.0``."""
    if isinstance(value, bool) or value is None:
        return 0.0
    if isinstance(value, (int, float)):
        candidate: Any = value
    else:
        candidate = str(value).strip().replace(",", "")
        if not candidate:
            return 0.0
    try:
        result = float(candidate)
    except (ValueError, OverflowError):
        return 0.0
    return result if math.isfinite(result) else 0.0


def to_int(value: Any) -> int:
    return int(to_float(value))


def to_progress(value: Any) -> float:
    """Return progress as a 0–1 ratio.

    ``"80%"`` and ``80`` both mean 0.8; ``0.8`` is taken as-is.
    """
    if isinstance(value, str) and value.strip().endswith("%"):
        ratio = to_float(value.strip()[:-1]) / 100
    else:
        ratio = to_float(value)
        if ratio > 1:
            ratio /= 100
    return min(max(ratio, 0.0), 1.0)


def _to_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value).strip()
