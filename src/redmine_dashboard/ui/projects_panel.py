"""Projects panel: create, edit and delete project configurations."""

from __future__ import annotations

import logging

from PySide6.QtCore import Signal
from PySide6.QtWidgets import (
    QGroupBox,
    QHBoxLayout,
    QLabel,
    QListWidget,
    QMessageBox,
    QPushButton,
    QScrollArea,
    QVBoxLayout,
    QWidget,
)

from redmine_dashboard.core.data_models import ProjectConfig
from redmine_dashboard.core.errors import DashboardError
from redmine_dashboard.services.config_manager import ConfigManager
from redmine_dashboard.services.project_store import ProjectStore, compute_project_paths
from redmine_dashboard.ui.widgets import LabelledField

logger = logging.getLogger(__name__)

# (ProjectConfig field, label, is_secret)
_FIELDS: list[tuple[str, str, bool]] = [
    ("project_id", "Project ID", False),
    ("root_path", "Root path", False),
    ("design_path", "Design path", False),
    ("testing_path", "Testing path", False),
    ("schedule_path", "Schedule path", False),
    ("schedule_file_name", "Schedule file name", False),
    ("tracking_url", "Tracking system URL", False),
    ("tracking_api_key", "Tracking system API key", True),
    ("redmine_name", "Redmine project name", False),
    ("redmine_url", "Redmine URL", False),
    ("redmine_api_key", "Redmine API key", True),
]


class ProjectsPanel(QWidget):
    """List of configured projects with an edit form."""

    projects_changed = Signal()

    def __init__(
        self,
        store: ProjectStore,
        config: ConfigManager,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        self._store = store
        self._config = config
        self._projects: list[ProjectConfig] = []
        self._build_ui()
        self._reload()

    def _build_ui(self) -> None:
        root = QHBoxLayout(self)
        root.setContentsMargins(24, 24, 24, 24)
        root.setSpacing(16)

        left = QVBoxLayout()
        title = QLabel("Projects")
        title.setProperty("heading", "true")
        left.addWidget(title)
        self._list = QListWidget()
        self._list.currentRowChanged.connect(self._on_selected)
        left.addWidget(self._list, 1)
        new_btn = QPushButton("New project")
        new_btn.setProperty("secondary", "true")
        new_btn.clicked.connect(self._new)
        left.addWidget(new_btn)
        root.addLayout(left, 1)

        scroll = QScrollArea()
        scroll.setWidgetResizable(True)
        scroll.setFrameShape(QScrollArea.Shape.NoFrame)
        form = QGroupBox("Project details")
        form_layout = QVBoxLayout(form)
        self._fields: dict[str, LabelledField] = {}
        for name, label, secret in _FIELDS:
            field = LabelledField(label, password=secret)
            self._fields[name] = field
            form_layout.addWidget(field)

        buttons = QHBoxLayout()
        derive_btn = QPushButton("Derive paths")
        derive_btn.setProperty("secondary", "true")
        derive_btn.setToolTip("Fill Design/Testing/Schedule paths from the root path")
        derive_btn.clicked.connect(self._derive_paths)
        buttons.addWidget(derive_btn)
        buttons.addStretch()
        save_btn = QPushButton("Save")
        save_btn.clicked.connect(self._save)
        buttons.addWidget(save_btn)
        self._delete_btn = QPushButton("Delete")
        self._delete_btn.setProperty("danger", "true")
        self._delete_btn.clicked.connect(self._delete)
        buttons.addWidget(self._delete_btn)
        form_layout.addLayout(buttons)
        form_layout.addStretch()
        scroll.setWidget(form)
        root.addWidget(scroll, 2)

    # -- data -----------------------------------------------------------------

    def _reload(self, select: str = "") -> None:
        try:
            self._projects = self._store.list_projects()
        except DashboardError as exc:
            logger.error("Could not load projects: %s", exc)
            QMessageBox.warning(self, "Projects", str(exc))
            self._projects = []
        self._list.blockSignals(True)
        self._list.clear()
        self._list.addItems([p.project_id for p in self._projects])
        self._list.blockSignals(False)
        ids = [p.project_id for p in self._projects]
        if select in ids:
            self._list.setCurrentRow(ids.index(select))
        elif self._projects:
            self._list.setCurrentRow(0)
        else:
            self._new()

    def _form_project(self) -> ProjectConfig:
        return ProjectConfig(**{name: field.text for name, field in self._fields.items()})

    def _fill_form(self, project: ProjectConfig) -> None:
        for name, field in self._fields.items():
            field.text = str(getattr(project, name))
        self._fields["project_id"].field.setReadOnly(bool(project.project_id))
        self._delete_btn.setEnabled(bool(project.project_id))

    # -- slots ----------------------------------------------------------------

    def _on_selected(self, row: int) -> None:
        if 0 <= row < len(self._projects):
            self._fill_form(self._projects[row])

    def _new(self) -> None:
        self._list.clearSelection()
        self._fill_form(
            ProjectConfig(project_id="", schedule_file_name=str(self._config.get("schedule_file_name", "")))
        )

    def _derive_paths(self) -> None:
        paths = compute_project_paths(
            self._fields["root_path"].text,
            self._fields["schedule_file_name"].text or str(self._config.get("schedule_file_name", "")),
        )
        for name, value in paths.items():
            self._fields[name].text = value

    def _save(self) -> None:
        project = self._form_project()
        existing = {p.project_id for p in self._projects}
        try:
            if project.project_id in existing:
                self._store.update(project)
            else:
                self._store.add(project)
        except (ValueError, DashboardError) as exc:
            QMessageBox.warning(self, "Save Failed", str(exc))
            return
        self._reload(select=project.project_id)
        self.projects_changed.emit()

    def _delete(self) -> None:
        project_id = self._fields["project_id"].text
        if not project_id:
            return
        reply = QMessageBox.question(
            self,
            "Delete Project",
            f"Delete project {project_id} and its stored API keys?",
            QMessageBox.StandardButton.Yes | QMessageBox.StandardButton.No,
        )
        if reply != QMessageBox.StandardButton.Yes:
            return
        try:
            self._store.delete(project_id)
        except DashboardError as exc:
            QMessageBox.warning(self, "Delete Failed", str(exc))
            return
        self._reload()
        self.projects_changed.emit()
