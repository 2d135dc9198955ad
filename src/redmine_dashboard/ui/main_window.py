"""Main window with sidebar navigation and stacked panels."""

from __future__ import annotations

import logging

from PySide6.QtCore import QTimer
from PySide6.QtGui import QCloseEvent, QKeySequence, QShortcut
from PySide6.QtWidgets import (
    QButtonGroup,
    QHBoxLayout,
    QMainWindow,
    QPushButton,
    QStackedWidget,
    QVBoxLayout,
    QWidget,
)

from redmine_dashboard.services.config_manager import ConfigManager
from redmine_dashboard.services.dashboard_service import DashboardService
from redmine_dashboard.ui.issue_panel import IssuePanel
from redmine_dashboard.ui.log_panel import LogPanel
from redmine_dashboard.ui.projects_panel import ProjectsPanel
from redmine_dashboard.ui.schedule_panel import SchedulePanel
from redmine_dashboard.ui.settings_panel import SettingsPanel
from redmine_dashboard.ui.styles import DARK_THEME, LIGHT_THEME

logger = logging.getLogger(__name__)

_ISSUES, _SCHEDULE, _PROJECTS, _SETTINGS, _LOGS = range(5)


class MainWindow(QMainWindow):
    """Single-window application with sidebar navigation."""

    def __init__(self, config: ConfigManager, service: DashboardService) -> None:
        super().__init__()
        self._config = config
        self._service = service

        self.setWindowTitle("Redmine Dashboard")
        self.setMinimumSize(1024, 640)
        self.resize(1400, 860)

        self._build_ui()
        self._setup_shortcuts()
        self._apply_theme(self._config.get("theme", "light"))
        # Load after the event loop starts so the window paints first
        QTimer.singleShot(0, self._issue_panel.load)

    def _build_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        layout = QHBoxLayout(central)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(0)

        sidebar = QWidget()
        sidebar.setObjectName("sidebar")
        sidebar.setFixedWidth(180)
        sidebar_layout = QVBoxLayout(sidebar)
        sidebar_layout.setContentsMargins(8, 16, 8, 16)
        sidebar_layout.setSpacing(4)

        self._btn_group = QButtonGroup(self)
        self._btn_group.setExclusive(True)
        for idx, label in enumerate(["Issues", "Schedule", "Projects", "Settings", "Logs"]):
            btn = QPushButton(label)
            btn.setCheckable(True)
            self._btn_group.addButton(btn, idx)
            sidebar_layout.addWidget(btn)
        sidebar_layout.addStretch()
        layout.addWidget(sidebar)

        # The log panel is built first so it captures records from the others
        self._log_panel = LogPanel()
        self._issue_panel = IssuePanel(self._service)
        self._schedule_panel = SchedulePanel(self._service, self._config)
        self._projects_panel = ProjectsPanel(self._service.projects, self._config)
        self._settings_panel = SettingsPanel(self._config, self._service.cache)

        self._stack = QStackedWidget()
        for panel in (
            self._issue_panel,
            self._schedule_panel,
            self._projects_panel,
            self._settings_panel,
            self._log_panel,
        ):
            self._stack.addWidget(panel)
        layout.addWidget(self._stack, 1)

        self._btn_group.idClicked.connect(self._stack.setCurrentIndex)
        self._btn_group.button(_ISSUES).setChecked(True)

        self._settings_panel.theme_changed.connect(self._apply_theme)
        self._projects_panel.projects_changed.connect(self._schedule_panel.reload_projects)

    # -- shortcuts ------------------------------------------------------------

    def _setup_shortcuts(self) -> None:
        QShortcut(QKeySequence("Ctrl+R"), self, self._shortcut_refresh)
        QShortcut(QKeySequence("Ctrl+,"), self, lambda: self._go_to_panel(_SETTINGS))
        QShortcut(QKeySequence("Ctrl+L"), self, lambda: self._go_to_panel(_LOGS))

    def _shortcut_refresh(self) -> None:
        self._go_to_panel(_ISSUES)
        self._issue_panel.load(force=True)

    def _go_to_panel(self, index: int) -> None:
        self._stack.setCurrentIndex(index)
        btn = self._btn_group.button(index)
        if btn:
            btn.setChecked(True)

    # -- theming --------------------------------------------------------------

    def _apply_theme(self, theme: str) -> None:
        logger.info("Applying theme: %s", theme)
        is_dark = theme == "dark"
        self.setStyleSheet(DARK_THEME if is_dark else LIGHT_THEME)
        self._log_panel.set_dark(is_dark)
        self._issue_panel.set_dark(is_dark)

    def closeEvent(self, event: QCloseEvent) -> None:  # noqa: N802
        self._issue_panel.cancel()
        self._log_panel.detach()
        super().closeEvent(event)
