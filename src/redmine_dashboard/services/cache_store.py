"""Local JSON cache for fetched issues and reconciled schedule snapshots.

Every document has the shape ``{"saved_at": <ISO-8601>, "items": [...]}``.
The issue cache expires after the configured TTL; schedule snapshots do
not expire.
"""

from __future__ import annotations

import json
import logging
import os
import shutil
import tempfile
import threading
from collections.abc import Callable, Sequence
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

from dateutil.parser import isoparse
from platformdirs import user_data_dir

from redmine_dashboard.core.data_models import Program, TrackingIssue
from redmine_dashboard.core.errors import PersistenceError
from redmine_dashboard.core.serialization import (
    issue_from_dict,
    issue_to_dict,
    program_from_dict,
    program_to_dict,
)

logger = logging.getLogger(__name__)

APP_NAME = "redmine-dashboard"
ISSUES_KEY = "issues"
SCHEDULES_DIR = "schedules"


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class CacheStore:
    """Read/write cached documents under *directory*."""

    def __init__(
        self,
        directory: str | Path | None = None,
        ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] = now_utc,
    ) -> None:
        self._dir = Path(directory) if directory else Path(user_data_dir(APP_NAME, appauthor=False))
        self._ttl = ttl
        self._clock = clock
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def ttl(self) -> timedelta:
        return self._ttl

    @ttl.setter
    def ttl(self, value: timedelta) -> None:
        self._ttl = value

    # -- issues ---------------------------------------------------------------

    def save_issues(self, issues: Sequence[TrackingIssue]) -> None:
        self._write(ISSUES_KEY, [issue_to_dict(i) for i in issues])
        logger.info("Cached %d issue(s)", len(issues))

    def load_issues(self, allow_expired: bool = False) -> list[TrackingIssue] | None:
        """Return cached issues, or ``None`` when missing or expired."""
        doc = self._read(ISSUES_KEY)
        if doc is None:
            return None
        if not allow_expired and not self._fresh(doc):
            logger.debug("Issue cache expired")
            return None
        return [issue_from_dict(i) for i in doc["items"] if isinstance(i, dict)]

    # -- schedule snapshots ---------------------------------------------------

    def save_programs(self, project_id: str, programs: Sequence[Program]) -> None:
        self._write(_schedule_key(project_id), [program_to_dict(p) for p in programs])
        logger.info("Saved schedule snapshot for %s (%d program(s))", project_id, len(programs))

    def load_programs(self, project_id: str) -> list[Program]:
        """Return the last snapshot for *project_id*, or ``[]``."""
        doc = self._read(_schedule_key(project_id))
        if doc is None:
            return []
        return [program_from_dict(p) for p in doc["items"] if isinstance(p, dict)]

    # -- housekeeping ---------------------------------------------------------

    def is_fresh(self, key: str = ISSUES_KEY) -> bool:
        doc = self._read(key)
        return doc is not None and self._fresh(doc)

    def clear(self, include_snapshots: bool = True) -> None:
        """Delete the issue cache and, unless told otherwise, all snapshots."""
        try:
            issues = self._path(ISSUES_KEY)
            if issues.exists():
                issues.unlink()
            schedules = self._dir / SCHEDULES_DIR
            if include_snapshots and schedules.exists():
                shutil.rmtree(schedules)
        except OSError as exc:
            raise PersistenceError(f"Failed to clear cache in {self._dir}: {exc}") from exc
        logger.info("Cache cleared")

    # -- internals ------------------------------------------------------------

    def _fresh(self, doc: dict[str, Any]) -> bool:
        try:
            saved_at = isoparse(str(doc.get("saved_at", "")))
        except ValueError:
            return False
        if saved_at.tzinfo is None:
            saved_at = saved_at.replace(tzinfo=timezone.utc)
        return self._clock() - saved_at < self._ttl

    def _path(self, key: str) -> Path:
        return self._dir / f"{key}.json"

    def _lock(self, key: str) -> threading.Lock:
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        with self._lock(key):
            if not path.exists():
                return None
            try:
                with open(path, encoding="utf-8") as fh:
                    doc = json.load(fh)
            except (json.JSONDecodeError, OSError) as exc:
                raise PersistenceError(f"Failed to read cache {path}: {exc}") from exc
        if not isinstance(doc, dict) or not isinstance(doc.get("items"), list):
            raise PersistenceError(f"Malformed cache document {path}")
        return doc

    def _write(self, key: str, items: list[dict[str, Any]]) -> None:
        path = self._path(key)
        doc = {"saved_at": self._clock().isoformat(), "items": items}
        with self._lock(key):
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}-", suffix=".tmp")
                try:
                    with os.fdopen(fd, "w", encoding="utf-8") as fh:
                        json.dump(doc, fh, ensure_ascii=False)
                    os.replace(tmp, path)
                except BaseException:
                    Path(tmp).unlink(missing_ok=True)
                    raise
            except (OSError, TypeError, ValueError) as exc:
                raise PersistenceError(f"Failed to write cache {path}: {exc}") from exc


def _schedule_key(project_id: str) -> str:
    safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in project_id)
    return f"{SCHEDULES_DIR}/{safe or '_'}"
