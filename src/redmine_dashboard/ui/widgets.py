"""Reusable widgets: labelled fields, status line, chart cards, table helpers."""

from __future__ import annotations

from collections.abc import Sequence

from PySide6.QtCore import Qt, Signal
from PySide6.QtGui import QPixmap
from PySide6.QtWidgets import (
    QComboBox,
    QHBoxLayout,
    QLabel,
    QLineEdit,
    QTableWidget,
    QTableWidgetItem,
    QVBoxLayout,
    QWidget,
)

ALL_ITEMS = "(all)"


class StatusIndicator(QWidget):
    """Coloured dot with a text label: green for OK, amber for warnings."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)

        self._dot = QLabel("●")
        self._dot.setFixedWidth(16)
        self._label = QLabel("")
        layout.addWidget(self._dot)
        layout.addWidget(self._label)
        layout.addStretch()
        self.set_state(True)

    def set_state(self, ok: bool, text: str = "") -> None:
        colour = "#36B37E" if ok else "#FF8B00"
        self._dot.setStyleSheet(f"color: {colour}; font-size: 16px;")
        self._label.setText(text)


class LabelledField(QWidget):
    """A label + line-edit pair with optional tooltip."""

    def __init__(
        self,
        label: str,
        *,
        placeholder: str = "",
        tooltip: str = "",
        password: bool = False,
        parent: QWidget | None = None,
    ) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 8)
        layout.setSpacing(4)

        lbl = QLabel(label)
        lbl.setProperty("subheading", "true")
        layout.addWidget(lbl)

        self.field = QLineEdit()
        if placeholder:
            self.field.setPlaceholderText(placeholder)
        if tooltip:
            self.field.setToolTip(tooltip)
            lbl.setToolTip(tooltip)
        if password:
            self.field.setEchoMode(QLineEdit.EchoMode.Password)
        layout.addWidget(self.field)

    @property
    def text(self) -> str:
        return self.field.text().strip()

    @text.setter
    def text(self, value: str) -> None:
        self.field.setText(value)


class ChartCard(QWidget):
    """A rendered chart image with a category picker used for drill-down.

    ``selected`` carries the chosen category, or ``""`` for all.
    """

    selected = Signal(str)

    def __init__(self, title: str, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        layout = QVBoxLayout(self)
        layout.setContentsMargins(0, 0, 0, 0)
        layout.setSpacing(4)

        heading = QLabel(title)
        heading.setProperty("subheading", "true")
        layout.addWidget(heading)

        self._image = QLabel()
        self._image.setAlignment(Qt.AlignmentFlag.AlignCenter)
        self._image.setMinimumSize(320, 200)
        layout.addWidget(self._image, 1)

        self._picker = QComboBox()
        self._picker.currentTextChanged.connect(self._on_picked)
        layout.addWidget(self._picker)

    def set_chart(self, png: bytes | None, categories: Sequence[str]) -> None:
        if png:
            pixmap = QPixmap()
            pixmap.loadFromData(png, "PNG")
            self._image.setPixmap(pixmap)
        else:
            self._image.clear()
            self._image.setText("No data")

        self._picker.blockSignals(True)
        self._picker.clear()
        self._picker.addItem(ALL_ITEMS)
        self._picker.addItems(list(categories))
        self._picker.blockSignals(False)

    def reset(self) -> None:
        self._picker.setCurrentIndex(0)

    def _on_picked(self, text: str) -> None:
        self.selected.emit("" if text == ALL_ITEMS else text)


def fill_table(table: QTableWidget, rows: Sequence[Sequence[object]]) -> None:
    """Replace the table contents with *rows* of display values."""
    table.setSortingEnabled(False)
    table.clearContents()
    table.setRowCount(len(rows))
    for r, row in enumerate(rows):
        for c, value in enumerate(row):
            item = QTableWidgetItem("" if value is None else str(value))
            item.setFlags(item.flags() & ~Qt.ItemFlag.ItemIsEditable)
            table.setItem(r, c, item)
    table.resizeColumnsToContents()
