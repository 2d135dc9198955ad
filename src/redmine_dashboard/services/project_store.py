"""Per-project configuration records with API keys kept in the OS keyring."""

from __future__ import annotations

import dataclasses
import json
import logging
import threading
from pathlib import Path
from typing import Any

import keyring
import keyring.errors
from platformdirs import user_config_dir

from redmine_dashboard.core.data_models import ProjectConfig
from redmine_dashboard.core.errors import NotFoundError, PersistenceError
from redmine_dashboard.core.serialization import project_from_dict, project_to_dict

logger = logging.getLogger(__name__)

APP_NAME = "redmine-dashboard"
KEYRING_SERVICE = "redmine-dashboard"
PROJECTS_FILENAME = "projects.json"

DESIGN_DIR = "Design"
TESTING_DIR = "Testing"
SCHEDULE_DIR = "Schedule"


def compute_project_paths(root_path: str, schedule_file_name: str) -> dict[str, str]:
    """Derive the standard folder layout under a project root."""
    root = Path(root_path) if root_path else None
    if root is None:
        return {
            "design_path": "",
            "testing_path": "",
            "schedule_path": "",
            "schedule_file_name": schedule_file_name,
        }
    return {
        "design_path": str(root / DESIGN_DIR),
        "testing_path": str(root / TESTING_DIR),
        "schedule_path": str(root / SCHEDULE_DIR),
        "schedule_file_name": schedule_file_name,
    }


class ProjectStore:
    """CRUD over ``projects.json``.

    Records are written without secrets; ``tracking_api_key`` and
    ``redmine_api_key`` live in the keyring under
    ``<project_id>:tracking`` and ``<project_id>:redmine``.
    """

    def __init__(self, config_dir: str | Path | None = None) -> None:
        self._dir = Path(config_dir) if config_dir else Path(user_config_dir(APP_NAME, appauthor=False))
        self._path = self._dir / PROJECTS_FILENAME
        self._lock = threading.Lock()

    # -- public API -----------------------------------------------------------

    def list_projects(self) -> list[ProjectConfig]:
        """Return every project, secrets included, in stored order."""
        return [self._with_secrets(p) for p in self._read()]

    def get(self, project_id: str) -> ProjectConfig:
        for project in self._read():
            if project.project_id == project_id:
                return self._with_secrets(project)
        raise NotFoundError(f"Unknown project {project_id!r}")

    def add(self, project: ProjectConfig) -> ProjectConfig:
        """Store a new project.

        Raises ``ValueError`` for an empty or duplicate ``project_id``.
        """
        project = _clean(project)
        if not project.project_id:
            raise ValueError("project_id must not be empty")
        with self._lock:
            records = self._read()
            if any(p.project_id == project.project_id for p in records):
                raise ValueError(f"Project {project.project_id!r} already exists")
            self._store_secrets(project)
            records.append(project)
            self._write(records)
        logger.info("Added project %s", project.project_id)
        return project

    def update(self, project: ProjectConfig) -> ProjectConfig:
        project = _clean(project)
        with self._lock:
            records = self._read()
            for i, existing in enumerate(records):
                if existing.project_id == project.project_id:
                    records[i] = project
                    break
            else:
                raise NotFoundError(f"Unknown project {project.project_id!r}")
            self._store_secrets(project)
            self._write(records)
        logger.info("Updated project %s", project.project_id)
        return project

    def delete(self, project_id: str) -> None:
        """Remove a project and its stored API keys."""
        with self._lock:
            records = self._read()
            remaining = [p for p in records if p.project_id != project_id]
            if len(remaining) == len(records):
                raise NotFoundError(f"Unknown project {project_id!r}")
            self._write(remaining)
        for kind in ("tracking", "redmine"):
            try:
                keyring.delete_password(KEYRING_SERVICE, _key_user(project_id, kind))
            except keyring.errors.PasswordDeleteError:
                pass
        logger.info("Deleted project %s", project_id)

    # -- secrets --------------------------------------------------------------

    def _with_secrets(self, project: ProjectConfig) -> ProjectConfig:
        return dataclasses.replace(
            project,
            tracking_api_key=self._get_secret(project.project_id, "tracking"),
            redmine_api_key=self._get_secret(project.project_id, "redmine"),
        )

    def _get_secret(self, project_id: str, kind: str) -> str:
        try:
            return keyring.get_password(KEYRING_SERVICE, _key_user(project_id, kind)) or ""
        except keyring.errors.KeyringError as exc:
            logger.warning("Could not read %s key for %s from keyring: %s", kind, project_id, exc)
            return ""

    def _store_secrets(self, project: ProjectConfig) -> None:
        secrets = {"tracking": project.tracking_api_key, "redmine": project.redmine_api_key}
        try:
            for kind, value in secrets.items():
                if value:
                    keyring.set_password(KEYRING_SERVICE, _key_user(project.project_id, kind), value)
        except keyring.errors.KeyringError as exc:
            raise PersistenceError(f"Could not store API key for {project.project_id}: {exc}") from exc

    # -- file I/O -------------------------------------------------------------

    def _read(self) -> list[ProjectConfig]:
        if not self._path.exists():
            return []
        try:
            with open(self._path, encoding="utf-8") as fh:
                stored: Any = json.load(fh)
        except (json.JSONDecodeError, OSError) as exc:
            raise PersistenceError(f"Failed to read {self._path}: {exc}") from exc
        if not isinstance(stored, list):
            logger.warning("Ignoring malformed %s", self._path)
            return []
        return [project_from_dict(r) for r in stored if isinstance(r, dict) and r.get("project_id")]

    def _write(self, records: list[ProjectConfig]) -> None:
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with open(self._path, "w", encoding="utf-8") as fh:
                json.dump([project_to_dict(p) for p in records], fh, indent=2, ensure_ascii=False)
        except OSError as exc:
            raise PersistenceError(f"Failed to write {self._path}: {exc}") from exc


def _key_user(project_id: str, kind: str) -> str:
    return f"{project_id}:{kind}"


def _clean(project: ProjectConfig) -> ProjectConfig:
    return dataclasses.replace(project, project_id=project.project_id.strip())
