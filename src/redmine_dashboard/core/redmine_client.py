"""Redmine REST API client built on ``requests``."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable, Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests

from redmine_dashboard.core.data_models import (
    STATUS_CANCELLED,
    STATUS_FAILED,
    STATUS_NOT_FOUND,
    STATUS_OK,
    AggregateFetch,
    IssueQuery,
    ProjectConfig,
    ProjectFetchResult,
    RedmineProject,
    TrackingIssue,
)
from redmine_dashboard.core.errors import DownstreamUnavailableError, FetchCancelledError
from redmine_dashboard.core.normalizer import normalize_issues

logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Redmine-API-Key"

_PAGE_SIZE = 100
_PROJECT_LIMIT = 1000
_TIMEOUT = 10.0  # seconds
_MAX_RETRIES = 4
_BACKOFF_BASE = 1.0  # seconds
_RETRY_STATUSES = frozenset({429, 502, 503, 504})
_MAX_WORKERS = 8


class RedmineClient:
    """Thin wrapper around the Redmine JSON API for one server and API key."""

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout: float = _TIMEOUT,
        page_size: int = _PAGE_SIZE,
        project_limit: int = _PROJECT_LIMIT,
        session: requests.Session | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._page_size = max(1, int(page_size))
        self._project_limit = project_limit
        self._session = session or requests.Session()
        self._session.headers.update({API_KEY_HEADER: api_key, "Accept": "application/json"})

    @property
    def base_url(self) -> str:
        return self._base_url

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        self._session.close()

    # -- projects -------------------------------------------------------------

    def resolve_project(self, name: str) -> RedmineProject | None:
        """Find the project whose name equals *name* (whitespace-trimmed).

        Returns ``None`` when no project matches. Entries without an
        integer id are skipped.
        """
        wanted = name.strip()
        logger.debug("Resolving project %r on %s", wanted, self._base_url)
        data = self._get("/projects.json", {"limit": self._project_limit})
        for raw in data.get("projects") or []:
            if not isinstance(raw, dict):
                continue
            if str(raw.get("name", "")).strip() != wanted:
                continue
            project_id = _project_id(raw.get("id"))
            if project_id is None:
                logger.warning("Project %r on %s has no usable id: %r", wanted, self._base_url, raw.get("id"))
                continue
            project = RedmineProject(
                id=project_id,
                name=str(raw.get("name", "")),
                identifier=str(raw.get("identifier", "")),
            )
            logger.debug("Project %r → id=%d", wanted, project.id)
            return project
        logger.warning("Project %r not found on %s", wanted, self._base_url)
        return None

    # -- issues ---------------------------------------------------------------

    def fetch_issues(
        self,
        project_id: int | str,
        query: IssueQuery | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch every issue of *project_id* matching *query*.

        Pages are requested until one comes back shorter than the page
        size; ``total_count`` is only used for a consistency log line.
        Raises :class:`FetchCancelledError` when *cancel* is set between
        pages.
        """
        base_params = self._issue_params(project_id, query or IssueQuery())
        logger.info("Fetching issues for project %s from %s", project_id, self._base_url)
        issues: list[dict[str, Any]] = []
        offset = 0
        pages = 0
        total_count: Any = None

        while True:
            if cancel is not None and cancel.is_set():
                logger.info("Fetch for project %s cancelled after %d page(s)", project_id, pages)
                raise FetchCancelledError(
                    f"Fetch for project {project_id} cancelled", url=self._base_url,
                )
            params = {**base_params, "offset": offset}
            data = self._get("/issues.json", params, cancel=cancel)
            page = data.get("issues")
            if not isinstance(page, list):
                page = []
            issues.extend(page)
            pages += 1
            total_count = data.get("total_count", total_count)
            logger.debug("Page %d (offset=%d): %d issue(s)", pages, offset, len(page))
            if len(page) < self._page_size:
                break
            offset += len(page)

        if isinstance(total_count, int) and total_count != len(issues):
            logger.debug(
                "total_count=%d disagrees with %d fetched issue(s) for project %s",
                total_count, len(issues), project_id,
            )
        logger.info("Fetched %d issue(s) in %d page(s) for project %s", len(issues), pages, project_id)
        return issues

    # -- internals ------------------------------------------------------------

    def _issue_params(self, project_id: int | str, query: IssueQuery) -> dict[str, Any]:
        params: dict[str, Any] = {
            "project_id": project_id,
            "status_id": query.status_id or "*",
            "limit": self._page_size,
        }
        if query.include_attachments:
            params["include"] = "attachments"
        if query.assigned_to_id:
            params["assigned_to_id"] = query.assigned_to_id
        created_on = _created_on_filter(query.created_from, query.created_to)
        if created_on:
            params["created_on"] = created_on
        return params

    def _get(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        cancel: threading.Event | None = None,
    ) -> dict[str, Any]:
        """GET *path* as JSON with exponential backoff on throttling responses.

        A set *cancel* event interrupts the backoff wait with
        :class:`FetchCancelledError`.
        """
        url = f"{self._base_url}{path}"
        for attempt in range(_MAX_RETRIES):
            try:
                resp = self._session.get(url, params=params, timeout=self._timeout)
            except requests.Timeout as exc:
                logger.error("GET %s timed out after %.0fs", url, self._timeout)
                raise DownstreamUnavailableError(
                    f"Request to {url} timed out after {self._timeout:g}s", url=url,
                ) from exc
            except requests.RequestException as exc:
                logger.error("GET %s failed: %s", url, exc)
                raise DownstreamUnavailableError(f"Request to {url} failed: {exc}", url=url) from exc

            status = resp.status_code
            if status in _RETRY_STATUSES and attempt < _MAX_RETRIES - 1:
                delay = _BACKOFF_BASE * (2**attempt)
                logger.warning("HTTP %d from %s, retrying in %.1fs", status, url, delay)
                if cancel is None:
                    time.sleep(delay)
                elif cancel.wait(delay):
                    logger.info("GET %s cancelled during backoff", url)
                    raise FetchCancelledError(f"Request to {url} cancelled", url=url)
                continue
            if status >= 400:
                logger.error("GET %s returned HTTP %d", url, status)
                raise DownstreamUnavailableError(
                    f"GET {url} returned HTTP {status}", url=url, status_code=status,
                )
            try:
                data = resp.json()
            except ValueError as exc:
                raise DownstreamUnavailableError(
                    f"GET {url} returned invalid JSON", url=url, status_code=status,
                ) from exc
            if not isinstance(data, dict):
                raise DownstreamUnavailableError(
                    f"GET {url} returned unexpected payload", url=url, status_code=status,
                )
            return data

        raise DownstreamUnavailableError(f"GET {url} failed after retries", url=url)  # unreachable


def _created_on_filter(created_from: str, created_to: str) -> str:
    if created_from and created_to:
        return f"><{created_from}|{created_to}"
    if created_from:
        return f">={created_from}"
    if created_to:
        return f"<={created_to}"
    return ""


def _project_id(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


# -- multi-project fetching -----------------------------------------------------

ClientFactory = Callable[[str, str], RedmineClient]


def dedupe_issues(issues: Iterable[TrackingIssue]) -> list[TrackingIssue]:
    """Keep one issue per id; the last one seen wins, at the first one's position."""
    by_id: dict[Any, TrackingIssue] = {}
    for index, issue in enumerate(issues):
        key: Any = issue.issue_id if issue.issue_id else ("no-id", index)
        by_id[key] = issue
    return list(by_id.values())


def fetch_project(
    project: ProjectConfig,
    query: IssueQuery | None = None,
    *,
    cancel: threading.Event | None = None,
    client_factory: ClientFactory = RedmineClient,
) -> ProjectFetchResult:
    """Resolve and fetch one configured project.

    Never raises; failures are reported through the result's ``status``.
    """
    if not project.redmine_url or not project.redmine_name:
        logger.warning("Project %s has no Redmine URL or name configured", project.project_id)
        return ProjectFetchResult(
            project_id=project.project_id,
            status=STATUS_NOT_FOUND,
            error="Redmine URL or project name not configured",
        )

    client = client_factory(project.redmine_url, project.redmine_api_key)
    try:
        ref = client.resolve_project(project.redmine_name)
        if ref is None:
            return ProjectFetchResult(
                project_id=project.project_id,
                status=STATUS_NOT_FOUND,
                error=f"Project {project.redmine_name!r} not found",
            )
        raw = client.fetch_issues(ref.id, query, cancel=cancel)
    except FetchCancelledError as exc:
        return ProjectFetchResult(project_id=project.project_id, status=STATUS_CANCELLED, error=str(exc))
    except DownstreamUnavailableError as exc:
        logger.error("Fetching project %s failed: %s", project.project_id, exc)
        return ProjectFetchResult(project_id=project.project_id, status=STATUS_FAILED, error=str(exc))
    finally:
        client.close()

    issues = normalize_issues(raw, project.redmine_url)
    return ProjectFetchResult(project_id=project.project_id, status=STATUS_OK, issues=tuple(issues))


def fetch_all_projects(
    projects: Sequence[ProjectConfig],
    query: IssueQuery | None = None,
    *,
    max_workers: int = 4,
    cancel: threading.Event | None = None,
    client_factory: ClientFactory = RedmineClient,
) -> AggregateFetch:
    """Fetch every project in parallel and merge the results.

    One failing project never aborts the others and nothing is raised;
    results keep the order of *projects*.
    """
    if not projects:
        return AggregateFetch()

    workers = max(1, min(int(max_workers), _MAX_WORKERS, len(projects)))
    logger.info("Fetching %d project(s) with %d worker(s)", len(projects), workers)
    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="redmine-fetch") as pool:
        futures = [
            pool.submit(fetch_project, p, query, cancel=cancel, client_factory=client_factory)
            for p in projects
        ]
        results: list[ProjectFetchResult] = []
        for project, future in zip(projects, futures):
            try:
                results.append(future.result())
            except Exception as exc:
                logger.exception("Unexpected error fetching project %s", project.project_id)
                results.append(
                    ProjectFetchResult(project_id=project.project_id, status=STATUS_FAILED, error=str(exc))
                )

    merged = dedupe_issues(issue for r in results for issue in r.issues)
    failed = [r.project_id for r in results if r.status in (STATUS_FAILED, STATUS_CANCELLED)]
    if failed:
        logger.warning("Failed to fetch project(s): %s", ", ".join(failed))
    logger.info("Fetched %d unique issue(s) from %d project(s)", len(merged), len(results))
    return AggregateFetch(issues=tuple(merged), results=tuple(results))
