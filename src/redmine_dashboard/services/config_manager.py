"""JSON-based configuration persistence via platformdirs."""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from redmine_dashboard.core.data_models import IssueQuery, ReconcileRules

logger = logging.getLogger(__name__)

APP_NAME = "redmine-dashboard"
CONFIG_FILENAME = "config.json"

_DEFAULTS: dict[str, Any] = {
    "theme": "light",
    "cache_ttl_hours": 24,
    "request_timeout": 10,        # seconds, per HTTP request
    "page_size": 100,
    "max_workers": 4,             # parallel project fetches, clamped 1–8
    "status_filter": "*",         # Redmine status_id; "*" = all
    "assignee_filter": "",        # Redmine assigned_to_id, e.g. "me"
    "bug_tracker_label": "Bug",
    "qa_tracker_label": "Q&A",
    "resolved_status_labels": ["Resolved"],
    "module_match": "substring",  # "substring" or "exact"
    "schedule_file_name": "schedule.xlsx",
    "last_project_id": "",
}


class ConfigManager:
    """Read/write JSON configuration stored in the platform config directory."""

    def __init__(self, config_dir: str | Path | None = None) -> None:
        self._dir = Path(config_dir) if config_dir else Path(user_config_dir(APP_NAME, appauthor=False))
        self._path = self._dir / CONFIG_FILENAME
        self._data: dict[str, Any] = dict(_DEFAULTS)
        self._load()
        logger.debug("Config loaded from %s", self._path)

    # -- public API -----------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return a config value, falling back to *default*."""
        return self._data.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set a config value and persist to disk."""
        self._data[key] = value
        self._save()

    def update(self, values: dict[str, Any]) -> None:
        """Bulk-update config values and persist."""
        self._data.update(values)
        self._save()

    def reset(self) -> None:
        """Reset all values to defaults and persist."""
        logger.info("Resetting config to defaults")
        self._data = dict(_DEFAULTS)
        self._save()

    @property
    def data(self) -> dict[str, Any]:
        """Return a shallow copy of all configuration."""
        return dict(self._data)

    @property
    def path(self) -> Path:
        return self._path

    # -- typed views ----------------------------------------------------------

    def reconcile_rules(self) -> ReconcileRules:
        labels = self._data.get("resolved_status_labels") or []
        if isinstance(labels, str):
            labels = [labels]
        return ReconcileRules(
            bug_tracker=str(self._data.get("bug_tracker_label") or "Bug"),
            qa_tracker=str(self._data.get("qa_tracker_label") or "Q&A"),
            resolved_statuses=tuple(str(s) for s in labels),
            module_match="exact" if self._data.get("module_match") == "exact" else "substring",
        )

    def issue_query(self) -> IssueQuery:
        return IssueQuery(
            status_id=str(self._data.get("status_filter") or "*"),
            assigned_to_id=str(self._data.get("assignee_filter") or ""),
        )

    def cache_ttl(self) -> timedelta:
        return timedelta(hours=self._number("cache_ttl_hours"))

    def request_timeout(self) -> float:
        return self._number("request_timeout")

    def page_size(self) -> int:
        return max(1, int(self._number("page_size")))

    def max_workers(self) -> int:
        return min(max(int(self._number("max_workers")), 1), 8)

    # -- internals ------------------------------------------------------------

    def _number(self, key: str) -> float:
        try:
            return float(self._data.get(key, _DEFAULTS[key]))
        except (TypeError, ValueError):
            logger.warning("Invalid value for %s: %r, using default", key, self._data.get(key))
            return float(_DEFAULTS[key])

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored = json.load(fh)
            if isinstance(stored, dict):
                self._data.update(stored)
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Failed to load config from %s: %s", self._path, exc)

    def _save(self) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, indent=2, ensure_ascii=False, default=str)
        except OSError as exc:
            logger.warning("Failed to save config to %s: %s", self._path, exc)
