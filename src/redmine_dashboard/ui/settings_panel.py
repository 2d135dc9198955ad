"""Application settings panel."""

from __future__ import annotations

import logging

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QComboBox,
    QFormLayout,
    QGroupBox,
    QLabel,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QSpinBox,
    QVBoxLayout,
    QWidget,
)

from redmine_dashboard.core.errors import PersistenceError
from redmine_dashboard.services.cache_store import CacheStore
from redmine_dashboard.services.config_manager import ConfigManager
from redmine_dashboard.ui.widgets import LabelledField

logger = logging.getLogger(__name__)


class SettingsPanel(QWidget):
    """Theme, fetch, cache and reconciliation settings."""

    theme_changed = Signal(str)  # "light" or "dark"

    def __init__(
        self,
        config: ConfigManager,
        cache: CacheStore,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._config = config
        self._cache = cache
        self._build_ui()
        self._load_values()

    def _build_ui(self) -> None:
        outer = QVBoxLayout(self)
        outer.setContentsMargins(0, 0, 0, 0)
        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QScrollArea.Shape.NoFrame)
        outer.addWidget(scroll)

        content = QWidget()
        scroll.setWidget(content)
        root = QVBoxLayout(content)
        root.setContentsMargins(32, 32, 32, 32)
        root.setSpacing(12)

        title = QLabel("Settings")
        title.setProperty("heading", "true")
        root.addWidget(title)

        # Appearance
        appearance = QGroupBox("Appearance")
        appearance_layout = QFormLayout(appearance)
        self._theme_combo = QComboBox()
        self._theme_combo.addItems(["Light", "Dark"])
        self._theme_combo.currentTextChanged.connect(self._on_theme_changed)
        appearance_layout.addRow("Theme", self._theme_combo)
        root.addWidget(appearance)

        # Fetching
        fetching = QGroupBox("Fetching")
        fetch_layout = QFormLayout(fetching)
        self._timeout = _spin(1, 300, " s")
        fetch_layout.addRow("Request timeout", self._timeout)
        self._page_size = _spin(1, 100)
        fetch_layout.addRow("Page size", self._page_size)
        self._workers = _spin(1, 8)
        fetch_layout.addRow("Parallel projects", self._workers)
        self._cache_ttl = _spin(0, 24 * 30, " h")
        fetch_layout.addRow("Cache lifetime", self._cache_ttl)
        self._status_filter = LabelledField("Status filter", placeholder="*", tooltip="Redmine status_id; * = all")
        fetch_layout.addRow(self._status_filter)
        self._assignee_filter = LabelledField(
            "Assignee filter", placeholder="(anyone)", tooltip="Redmine assigned_to_id, e.g. 'me'"
        )
        fetch_layout.addRow(self._assignee_filter)
        root.addWidget(fetching)

        # Reconciliation
        reconcile = QGroupBox("Schedule reconciliation")
        reconcile_layout = QFormLayout(reconcile)
        self._bug_label = LabelledField("Bug tracker name")
        reconcile_layout.addRow(self._bug_label)
        self._qa_label = LabelledField("Q&A tracker name")
        reconcile_layout.addRow(self._qa_label)
        self._resolved = LabelledField("Resolved statuses", tooltip="Comma-separated status names")
        reconcile_layout.addRow(self._resolved)
        self._module_match = QComboBox()
        self._module_match.addItem("Module contains PGID", "substring")
        self._module_match.addItem("Module equals PGID", "exact")
        reconcile_layout.addRow("Join rule", self._module_match)
        self._schedule_file = LabelledField("Default schedule file name", placeholder="schedule.xlsx")
        reconcile_layout.addRow(self._schedule_file)
        root.addWidget(reconcile)

        save_btn = QPushButton("Save Settings")
        save_btn.clicked.connect(self._save)
        root.addWidget(save_btn)

        clear_btn = QPushButton("Clear Cache")
        clear_btn.setProperty("danger", "true")
        clear_btn.setToolTip("Delete cached issues and schedule snapshots")
        clear_btn.clicked.connect(self._clear_cache)
        root.addWidget(clear_btn)
        root.addStretch()

    def _load_values(self) -> None:
        c = self._config
        self._theme_combo.blockSignals(True)
        self._theme_combo.setCurrentText("Dark" if c.get("theme") == "dark" else "Light")
        self._theme_combo.blockSignals(False)
        self._timeout.setValue(int(c.request_timeout()))
        self._page_size.setValue(c.page_size())
        self._workers.setValue(c.max_workers())
        self._cache_ttl.setValue(int(c.cache_ttl().total_seconds() // 3600))
        self._status_filter.text = str(c.get("status_filter", "*"))
        self._assignee_filter.text = str(c.get("assignee_filter", ""))
        rules = c.reconcile_rules()
        self._bug_label.text = rules.bug_tracker
        self._qa_label.text = rules.qa_tracker
        self._resolved.text = ", ".join(rules.resolved_statuses)
        self._module_match.setCurrentIndex(max(self._module_match.findData(rules.module_match), 0))
        self._schedule_file.text = str(c.get("schedule_file_name", ""))

    def _save(self) -> None:
        resolved = [s.strip() for s in self._resolved.text.split(",") if s.strip()]
        self._config.update({
            "request_timeout": self._timeout.value(),
            "page_size": self._page_size.value(),
            "max_workers": self._workers.value(),
            "cache_ttl_hours": self._cache_ttl.value(),
            "status_filter": self._status_filter.text or "*",
            "assignee_filter": self._assignee_filter.text,
            "bug_tracker_label": self._bug_label.text or "Bug",
            "qa_tracker_label": self._qa_label.text or "Q&A",
            "resolved_status_labels": resolved or ["Resolved"],
            "module_match": self._module_match.currentData(),
            "schedule_file_name": self._schedule_file.text or "schedule.xlsx",
        })
        logger.info("Settings saved")
        QMessageBox.information(self, "Settings", "Settings saved.")

    def _on_theme_changed(self, text: str) -> None:
        theme = text.lower()
        self._config.set("theme", theme)
        self.theme_changed.emit(theme)

    def _clear_cache(self) -> None:
        try:
            self._cache.clear()
        except PersistenceError as exc:
            QMessageBox.warning(self, "Clear Cache", str(exc))
            return
        QMessageBox.information(self, "Clear Cache", "Cache cleared.")


def _spin(minimum: int, maximum: int, suffix: str = "") -> QSpinBox:
    box = QSpinBox()
    box.setRange(minimum, maximum)
    if suffix:
        box.setSuffix(suffix)
    return box
