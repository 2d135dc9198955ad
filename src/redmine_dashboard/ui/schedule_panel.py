"""Schedule panel: import a project's workbook and reconcile it with its issues."""

from __future__ import annotations

import logging
import threading

from PySide6.QtCore import QObject, QThread, Signal
from PySide6.QtWidgets import (
    QAbstractItemView,
    QComboBox,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QTableWidget,
    QVBoxLayout,
    QWidget,
)

from redmine_dashboard.core.data_models import PHASE_NAMES, Program, ProjectConfig, ReconcileResult
from redmine_dashboard.core.errors import DashboardError
from redmine_dashboard.core.metrics import summarize_programs
from redmine_dashboard.services.config_manager import ConfigManager
from redmine_dashboard.services.dashboard_service import DashboardService
from redmine_dashboard.ui.widgets import StatusIndicator, fill_table

logger = logging.getLogger(__name__)

_HEADERS = (
    ["PGID", "PG名称", "フレーム"]
    + [f"{name} %" for name in PHASE_NAMES]
    + ["Bugs", "Bugs resolved", "Q&A", "Q&A resolved"]
)


class _RefreshWorker(QObject):
    """Reconcile programs against the tracking system on a background thread."""

    finished = Signal(object)  # ReconcileResult
    failed = Signal(str)

    def __init__(
        self,
        service: DashboardService,
        project: ProjectConfig,
        programs: list[Program],
        cancel: threading.Event,
    ) -> None:
        super().__init__()
        self._service = service
        self._project = project
        self._programs = programs
        self._cancel = cancel

    def run(self) -> None:
        try:
            result = self._service.refresh_schedule(self._project, self._programs, self._cancel)
        except DashboardError as exc:
            self.failed.emit(str(exc))
            return
        self.finished.emit(result)


class SchedulePanel(QWidget):
    """Per-project program table with import and refresh actions."""

    def __init__(
        self,
        service: DashboardService,
        config: ConfigManager,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._service = service
        self._config = config
        self._projects: list[ProjectConfig] = []
        self._programs: list[Program] = []
        self._thread: QThread | None = None
        self._worker: _RefreshWorker | None = None
        self._cancel: threading.Event | None = None
        self._build_ui()
        self.reload_projects()

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(24, 24, 24, 24)
        root.setSpacing(10)

        header = QHBoxLayout()
        title = QLabel("Schedule")
        title.setProperty("heading", "true")
        header.addWidget(title)
        header.addStretch()

        self._project_combo = QComboBox()
        self._project_combo.setMinimumWidth(180)
        self._project_combo.currentIndexChanged.connect(self._on_project_changed)
        header.addWidget(self._project_combo)

        self._import_btn = QPushButton("Import")
        self._import_btn.setToolTip("Read the project's schedule workbook")
        self._import_btn.clicked.connect(self._import)
        header.addWidget(self._import_btn)

        self._refresh_btn = QPushButton("Refresh issues")
        self._refresh_btn.setProperty("secondary", "true")
        self._refresh_btn.clicked.connect(self._refresh)
        header.addWidget(self._refresh_btn)

        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.setProperty("danger", "true")
        self._cancel_btn.setEnabled(False)
        self._cancel_btn.clicked.connect(self._cancel_refresh)
        header.addWidget(self._cancel_btn)
        root.addLayout(header)

        self._progress = QProgressBar()
        self._progress.setRange(0, 0)
        self._progress.hide()
        root.addWidget(self._progress)

        self._status = StatusIndicator()
        root.addWidget(self._status)
        self._summary = QLabel("")
        self._summary.setProperty("subheading", "true")
        root.addWidget(self._summary)

        self._table = QTableWidget(0, len(_HEADERS))
        self._table.setHorizontalHeaderLabels(_HEADERS)
        self._table.setAlternatingRowColors(True)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.verticalHeader().setVisible(False)
        root.addWidget(self._table, 1)

    # -- public API -----------------------------------------------------------

    def reload_projects(self) -> None:
        """Re-read the project list, keeping the last selection when possible."""
        try:
            self._projects = self._service.projects.list_projects()
        except DashboardError as exc:
            logger.error("Could not load projects: %s", exc)
            self._projects = []
        last = str(self._config.get("last_project_id", ""))
        self._project_combo.blockSignals(True)
        self._project_combo.clear()
        for p in self._projects:
            self._project_combo.addItem(p.project_id, p.project_id)
        index = self._project_combo.findData(last)
        self._project_combo.setCurrentIndex(max(index, 0))
        self._project_combo.blockSignals(False)
        self._on_project_changed(self._project_combo.currentIndex())

    # -- slots ----------------------------------------------------------------

    def _current_project(self) -> ProjectConfig | None:
        index = self._project_combo.currentIndex()
        if 0 <= index < len(self._projects):
            return self._projects[index]
        return None

    def _on_project_changed(self, _index: int) -> None:
        project = self._current_project()
        enabled = project is not None
        self._import_btn.setEnabled(enabled)
        self._refresh_btn.setEnabled(enabled)
        if project is None:
            self._show_programs([])
            return
        self._config.set("last_project_id", project.project_id)
        try:
            programs = self._service.load_schedule_snapshot(project)
        except DashboardError as exc:
            logger.error("Could not load schedule snapshot for %s: %s", project.project_id, exc)
            programs = []
        self._show_programs(programs)
        self._status.set_state(True, "Snapshot" if programs else "No snapshot; import the schedule")

    def _import(self) -> None:
        project = self._current_project()
        if project is None:
            return
        try:
            programs = self._service.import_schedule(project)
        except DashboardError as exc:
            logger.error("Schedule import failed for %s: %s", project.project_id, exc)
            QMessageBox.warning(self, "Import Failed", str(exc))
            return
        self._show_programs(programs)
        self._status.set_state(True, f"Imported {len(programs)} program(s)")

    def _refresh(self) -> None:
        project = self._current_project()
        if project is None or self._thread is not None:
            return
        if not self._programs:
            QMessageBox.information(self, "Nothing to Refresh", "Import the schedule first.")
            return
        self._set_busy(True)
        self._cancel = threading.Event()
        self._thread = QThread()
        self._worker = _RefreshWorker(self._service, project, self._programs, self._cancel)
        self._worker.moveToThread(self._thread)
        self._thread.started.connect(self._worker.run)
        self._worker.finished.connect(self._on_refreshed)
        self._worker.failed.connect(self._on_failed)
        for signal in (self._worker.finished, self._worker.failed):
            signal.connect(self._thread.quit)
            signal.connect(self._cleanup_worker)
        self._thread.finished.connect(self._thread.deleteLater)
        self._thread.start()

    def _cancel_refresh(self) -> None:
        if self._cancel is not None:
            self._cancel.set()
            self._cancel_btn.setEnabled(False)

    def _cleanup_worker(self) -> None:
        if self._worker is not None:
            self._worker.deleteLater()
            self._worker = None
        self._thread = None
        self._cancel = None
        self._set_busy(False)

    def _on_refreshed(self, result: ReconcileResult) -> None:
        self._show_programs(result.programs)
        if result.ok:
            self._status.set_state(True, f"Reconciled with {result.issue_count} issue(s)")
        else:
            self._status.set_state(False, f"Refresh failed: {result.error}")

    def _on_failed(self, message: str) -> None:
        self._status.set_state(False, "Refresh failed")
        QMessageBox.warning(self, "Refresh Failed", message)

    def _set_busy(self, busy: bool) -> None:
        self._progress.setVisible(busy)
        self._import_btn.setEnabled(not busy)
        self._refresh_btn.setEnabled(not busy)
        self._project_combo.setEnabled(not busy)
        self._cancel_btn.setEnabled(busy)

    # -- rendering ------------------------------------------------------------

    def _show_programs(self, programs: list[Program]) -> None:
        self._programs = programs
        rows = []
        for p in programs:
            progress = [f"{ph.progress_percent:.0f}" if (ph := p.phase(n)) else "" for n in PHASE_NAMES]
            rows.append(
                [p.prgid, p.prgname, p.frame, *progress,
                 p.bug_count, p.bug_resolved_count, p.qa_count, p.qa_resolved_count]
            )
        fill_table(self._table, rows)

        s = summarize_programs(programs)
        self._summary.setText(
            f"{s.programs} program(s) · bugs {s.bugs_resolved}/{s.bugs} resolved · "
            f"Q&A {s.qas_resolved}/{s.qas} resolved"
        )
