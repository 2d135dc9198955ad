"""Issues panel: filterable, sortable issue table with a chart strip."""

from __future__ import annotations

import dataclasses
import logging
import threading

from PySide6.QtCore import QObject, QThread, QUrl, Signal
from PySide6.QtGui import QDesktopServices
from PySide6.QtWidgets import (
    QAbstractItemView,
    QGridLayout,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QMessageBox,
    QProgressBar,
    QPushButton,
    QTableWidget,
    QVBoxLayout,
    QWidget,
)

from redmine_dashboard.core.chart_generator import generate_bar_chart, generate_stacked_chart
from redmine_dashboard.core.data_models import AggregateFetch, IssueFilter, SortSpec, TrackingIssue
from redmine_dashboard.core.errors import DashboardError
from redmine_dashboard.core.issue_filter import apply_filters_and_sort, column_value, select_issues, toggle_sort
from redmine_dashboard.core.metrics import calculate_issue_metrics
from redmine_dashboard.services.dashboard_service import DashboardService
from redmine_dashboard.ui.widgets import ChartCard, StatusIndicator, fill_table

logger = logging.getLogger(__name__)

# (filter/sort key, header label); keys match IssueFilter fields
_FILTER_COLUMNS: list[tuple[str, str]] = [
    ("stt", "STT"),
    ("ticket_no", "Ticket No"),
    ("generated_pg_id", "発生PGID"),
    ("project_name", "Project"),
    ("author", "Author"),
    ("desired_delivery_date", "希望納期"),
    ("response_delivery_date", "回答納期"),
    ("fjn_error_type", "FJN側障害種別"),
    ("ucd_error_type", "UCD側障害種別"),
    ("unit_id", "部品ID"),
    ("edit_pg_id", "修正PGID"),
]
_EXTRA_COLUMNS = ["Subject", "Status", "Priority", "Assignee"]


class _FetchWorker(QObject):
    """Load issues on a background thread."""

    finished = Signal(object)  # AggregateFetch
    failed = Signal(str)

    def __init__(self, service: DashboardService, force: bool, cancel: threading.Event) -> None:
        super().__init__()
        self._service = service
        self._force = force
        self._cancel = cancel

    def run(self) -> None:
        logger.info("Issue worker started (force_refresh=%s)", self._force)
        try:
            result = self._service.load_issues(force_refresh=self._force, cancel=self._cancel)
        except DashboardError as exc:
            self.failed.emit(str(exc))
            return
        self.finished.emit(result)


class IssuePanel(QWidget):
    """Issue dashboard: refresh/cancel, filter row, table, charts."""

    def __init__(self, service: DashboardService, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._service = service
        self._issues: list[TrackingIssue] = []
        self._visible: list[TrackingIssue] = []
        self._sort = SortSpec()
        self._drill: dict[str, str] = {}
        self._dark = False
        self._thread: QThread | None = None
        self._worker: _FetchWorker | None = None
        self._cancel: threading.Event | None = None
        self._build_ui()

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(24, 24, 24, 24)
        root.setSpacing(10)

        header = QHBoxLayout()
        title = QLabel("Issues")
        title.setProperty("heading", "true")
        header.addWidget(title)
        header.addStretch()
        self._status = StatusIndicator()
        header.addWidget(self._status, 1)
        self._refresh_btn = QPushButton("Refresh")
        self._refresh_btn.setToolTip("Fetch issues from every configured project (Ctrl+R)")
        self._refresh_btn.clicked.connect(lambda: self.load(force=True))
        header.addWidget(self._refresh_btn)
        self._cancel_btn = QPushButton("Cancel")
        self._cancel_btn.setProperty("danger", "true")
        self._cancel_btn.setEnabled(False)
        self._cancel_btn.clicked.connect(self.cancel)
        header.addWidget(self._cancel_btn)
        root.addLayout(header)

        self._progress = QProgressBar()
        self._progress.setRange(0, 0)
        self._progress.hide()
        root.addWidget(self._progress)

        self._warning = QLabel("")
        self._warning.setProperty("warning", "true")
        self._warning.setWordWrap(True)
        self._warning.hide()
        root.addWidget(self._warning)

        # Charts
        charts = QGridLayout()
        self._charts = {
            "project": ChartCard("Issues per project"),
            "priority": ChartCard("Issues per priority"),
            "response_due_date": ChartCard("回答納期 (top 7)"),
            "fjn_error_type": ChartCard("FJN側障害種別 per project"),
        }
        for i, (key, card) in enumerate(self._charts.items()):
            card.selected.connect(lambda value, k=key: self._on_drill(k, value))
            charts.addWidget(card, 0, i)
        root.addLayout(charts)

        # Filter row
        filters = QHBoxLayout()
        self._filter_edits: dict[str, QLineEdit] = {}
        for key, label in _FILTER_COLUMNS:
            edit = QLineEdit()
            edit.setPlaceholderText(label)
            edit.setClearButtonEnabled(True)
            edit.textChanged.connect(self._render_table)
            self._filter_edits[key] = edit
            filters.addWidget(edit)
        clear_btn = QPushButton("Clear filters")
        clear_btn.setProperty("secondary", "true")
        clear_btn.clicked.connect(self._clear_filters)
        filters.addWidget(clear_btn)
        root.addLayout(filters)

        # Table
        self._table = QTableWidget(0, len(_FILTER_COLUMNS) + len(_EXTRA_COLUMNS))
        self._table.setHorizontalHeaderLabels([label for _, label in _FILTER_COLUMNS] + _EXTRA_COLUMNS)
        self._table.setAlternatingRowColors(True)
        self._table.setSelectionBehavior(QAbstractItemView.SelectionBehavior.SelectRows)
        self._table.verticalHeader().setVisible(False)
        self._table.horizontalHeader().sectionClicked.connect(self._on_header_clicked)
        self._table.cellDoubleClicked.connect(self._open_issue)
        root.addWidget(self._table, 1)

    # -- public API -----------------------------------------------------------

    def set_dark(self, dark: bool) -> None:
        self._dark = dark
        self._render_charts()

    def load(self, force: bool = False) -> None:
        """Start loading issues in the background."""
        if self._thread is not None:
            logger.debug("Issue load already running")
            return
        self._refresh_btn.setEnabled(False)
        self._cancel_btn.setEnabled(True)
        self._progress.show()
        self._warning.hide()
        self._status.set_state(True, "Loading…")

        self._cancel = threading.Event()
        self._thread = QThread()
        self._worker = _FetchWorker(self._service, force, self._cancel)
        self._worker.moveToThread(self._thread)
        self._thread.started.connect(self._worker.run)
        self._worker.finished.connect(self._on_loaded)
        self._worker.failed.connect(self._on_failed)
        for signal in (self._worker.finished, self._worker.failed):
            signal.connect(self._thread.quit)
            signal.connect(self._cleanup_worker)
        self._thread.finished.connect(self._thread.deleteLater)
        self._thread.start()

    def cancel(self) -> None:
        if self._cancel is not None:
            logger.info("Cancelling issue fetch")
            self._cancel.set()
            self._cancel_btn.setEnabled(False)

    # -- slots ----------------------------------------------------------------

    def _cleanup_worker(self) -> None:
        if self._worker is not None:
            self._worker.deleteLater()
            self._worker = None
        self._thread = None
        self._cancel = None
        self._progress.hide()
        self._refresh_btn.setEnabled(True)
        self._cancel_btn.setEnabled(False)

    def _on_loaded(self, result: AggregateFetch) -> None:
        self._issues = list(result.issues)
        source = "cache" if result.from_cache else "Redmine"
        problems = [f"{r.project_id} ({r.status}: {r.error})" for r in (*result.failed, *result.not_found)]
        if problems:
            self._warning.setText("Some projects could not be loaded: " + "; ".join(problems))
            self._warning.show()
        self._status.set_state(not problems, f"{len(self._issues)} issue(s) from {source}")
        self._render_charts()
        self._render_table()

    def _on_failed(self, message: str) -> None:
        self._status.set_state(False, "Load failed")
        QMessageBox.warning(self, "Load Failed", message)

    def _on_header_clicked(self, section: int) -> None:
        if section >= len(_FILTER_COLUMNS):
            return
        self._sort = toggle_sort(self._sort, _FILTER_COLUMNS[section][0])
        self._render_table()

    def _on_drill(self, key: str, value: str) -> None:
        if value:
            self._drill[key] = value
        else:
            self._drill.pop(key, None)
        self._render_table()

    def _clear_filters(self) -> None:
        for edit in self._filter_edits.values():
            edit.blockSignals(True)
            edit.clear()
            edit.blockSignals(False)
        self._drill.clear()
        for card in self._charts.values():
            card.blockSignals(True)
            card.reset()
            card.blockSignals(False)
        self._sort = SortSpec()
        self._render_table()

    def _open_issue(self, row: int, _column: int) -> None:
        if 0 <= row < len(self._visible) and self._visible[row].url:
            QDesktopServices.openUrl(QUrl(self._visible[row].url))

    # -- rendering ------------------------------------------------------------

    def _current_filter(self) -> IssueFilter:
        return dataclasses.replace(
            IssueFilter(), **{key: edit.text().strip() for key, edit in self._filter_edits.items()}
        )

    def _render_table(self) -> None:
        selected = select_issues(self._issues, **self._drill)
        self._visible = apply_filters_and_sort(selected, self._current_filter(), self._sort)
        positions = {id(issue): i for i, issue in enumerate(selected, start=1)}
        rows = []
        for issue in self._visible:
            pos = positions.get(id(issue), 0)
            rows.append(
                [column_value(issue, key, pos) for key, _ in _FILTER_COLUMNS]
                + [issue.subject, issue.status, issue.priority, issue.assignee or "Unassigned"]
            )
        fill_table(self._table, rows)

    def _render_charts(self) -> None:
        m = calculate_issue_metrics(self._issues)
        self._charts["project"].set_chart(
            generate_bar_chart(list(m.by_project), list(m.by_project.values()), dark=self._dark),
            list(m.by_project),
        )
        self._charts["priority"].set_chart(
            generate_bar_chart(list(m.by_priority), list(m.by_priority.values()), dark=self._dark),
            list(m.by_priority),
        )
        self._charts["response_due_date"].set_chart(
            generate_bar_chart(
                list(m.by_response_due_date), list(m.by_response_due_date.values()), dark=self._dark,
            ),
            list(m.by_response_due_date),
        )
        error_types = sorted({t for per in m.fjn_error_by_project.values() for t in per})
        self._charts["fjn_error_type"].set_chart(
            generate_stacked_chart(m.fjn_error_by_project, dark=self._dark),
            error_types,
        )
