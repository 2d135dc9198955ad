"""High-level operations used by the UI: issue loading and schedule refresh."""

from __future__ import annotations

import logging
import threading
from pathlib import Path

from redmine_dashboard.core.data_models import (
    AggregateFetch,
    Program,
    ProjectConfig,
    ReconcileResult,
    TrackingIssue,
)
from redmine_dashboard.core.errors import InvalidFormatError, PersistenceError
from redmine_dashboard.core.reconciler import reconcile_programs, refresh_programs
from redmine_dashboard.core.redmine_client import ClientFactory, RedmineClient, fetch_all_projects
from redmine_dashboard.core.schedule import import_schedule
from redmine_dashboard.services.cache_store import CacheStore
from redmine_dashboard.services.config_manager import ConfigManager
from redmine_dashboard.services.project_store import ProjectStore

logger = logging.getLogger(__name__)


class DashboardService:
    """Glue between the stores, the tracker client and the pure pipeline."""

    def __init__(
        self,
        config: ConfigManager,
        projects: ProjectStore,
        cache: CacheStore,
        client_factory: ClientFactory = RedmineClient,
    ) -> None:
        self._config = config
        self._projects = projects
        self._cache = cache
        self._client_factory = client_factory

    @property
    def projects(self) -> ProjectStore:
        return self._projects

    @property
    def cache(self) -> CacheStore:
        return self._cache

    def make_client(self, base_url: str, api_key: str) -> RedmineClient:
        """Build a tracker client honouring the timeout and page-size settings."""
        return self._client_factory(
            base_url,
            api_key,
            timeout=self._config.request_timeout(),
            page_size=self._config.page_size(),
        )

    # -- issues ---------------------------------------------------------------

    def load_issues(
        self, force_refresh: bool = False, cancel: threading.Event | None = None
    ) -> AggregateFetch:
        """Return issues from a fresh cache, or fetch every configured project.

        The cache is rewritten only when at least one project was fetched
        and none failed or was cancelled, so a partial result is never
        served later as a fresh one.
        """
        self._cache.ttl = self._config.cache_ttl()
        if not force_refresh:
            cached = self._cache.load_issues()
            if cached is not None:
                logger.info("Using %d cached issue(s)", len(cached))
                return AggregateFetch(issues=tuple(cached), from_cache=True)

        projects = self._projects.list_projects()
        result = fetch_all_projects(
            projects,
            self._config.issue_query(),
            max_workers=self._config.max_workers(),
            cancel=cancel,
            client_factory=self.make_client,
        )
        if result.failed:
            logger.warning(
                "Not caching issues: %d project(s) failed: %s",
                len(result.failed), ", ".join(r.project_id for r in result.failed),
            )
        elif result.any_succeeded:
            try:
                self._cache.save_issues(result.issues)
            except PersistenceError:
                logger.error("Could not save issue cache", exc_info=True)
                raise
        return result

    # -- schedules ------------------------------------------------------------

    def schedule_file(self, project: ProjectConfig) -> Path:
        name = project.schedule_file_name or str(self._config.get("schedule_file_name", ""))
        if not project.schedule_path or not name:
            raise InvalidFormatError(f"No schedule file configured for {project.project_id}")
        return Path(project.schedule_path) / name

    def import_schedule(self, project: ProjectConfig) -> list[Program]:
        """Read *project*'s schedule workbook.

        Counts are restored from the last snapshot's issues so a re-import
        does not reset them to zero.
        """
        path = self.schedule_file(project)
        if not path.exists():
            raise InvalidFormatError(f"Schedule file not found: {path}")
        programs = import_schedule(path)
        known = _snapshot_issues(self._cache.load_programs(project.project_id))
        if known:
            programs = reconcile_programs(programs, known, self._config.reconcile_rules())
        logger.info("Imported %d program(s) for %s", len(programs), project.project_id)
        return programs

    def refresh_schedule(
        self,
        project: ProjectConfig,
        programs: list[Program],
        cancel: threading.Event | None = None,
    ) -> ReconcileResult:
        """Reconcile *programs* against the tracking system and snapshot them."""
        client = self.make_client(project.tracking_url, project.tracking_api_key)
        try:
            result = refresh_programs(
                programs,
                project,
                client,
                self._config.reconcile_rules(),
                cancel=cancel,
            )
        finally:
            client.close()
        if result.ok:
            self._cache.save_programs(project.project_id, result.programs)
        return result

    def load_schedule_snapshot(self, project: ProjectConfig) -> list[Program]:
        return self._cache.load_programs(project.project_id)


def _snapshot_issues(programs: list[Program]) -> list[TrackingIssue]:
    seen: dict[int, TrackingIssue] = {}
    for program in programs:
        for issue in program.tracking_issues:
            seen[issue.issue_id] = issue
    return list(seen.values())
