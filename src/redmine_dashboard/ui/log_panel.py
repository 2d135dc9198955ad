"""Log panel: live application log output."""

from __future__ import annotations

import logging
import sys
from collections import deque

from PySide6.QtCore import QObject, Signal
from PySide6.QtGui import QColor, QFont, QTextCharFormat
from PySide6.QtWidgets import (
    QComboBox,
    QFileDialog,
    QHBoxLayout,
    QLabel,
    QMessageBox,
    QPlainTextEdit,
    QPushButton,
    QVBoxLayout,
    QWidget,
)

logger = logging.getLogger(__name__)


class _QtLogHandler(logging.Handler, QObject):
    """Logging handler that re-emits each record as a Qt signal.

    Records logged from fetch worker threads reach the panel through a
    queued signal connection.
    """

    message_logged = Signal(str, int)  # formatted message, level

    def __init__(self) -> None:
        logging.Handler.__init__(self)
        QObject.__init__(self)
        self.setFormatter(
            logging.Formatter("%(asctime)s [%(levelname)s] %(name)s: %(message)s", datefmt="%H:%M:%S")
        )

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.message_logged.emit(self.format(record), record.levelno)
        except Exception:
            self.handleError(record)


_LEVEL_COLORS: dict[int, str] = {
    logging.DEBUG: "#8C9CB8",
    logging.INFO: "#172B4D",
    logging.WARNING: "#FF8B00",
    logging.ERROR: "#DE350B",
}

_LEVEL_COLORS_DARK: dict[int, str] = {
    logging.DEBUG: "#6B778C",
    logging.INFO: "#B8C7E0",
    logging.WARNING: "#FFAB00",
    logging.ERROR: "#FF5630",
}

_LEVELS = [("Debug", logging.DEBUG), ("Info", logging.INFO), ("Warning", logging.WARNING), ("Error", logging.ERROR)]

_MAX_BUFFER = 5000


class LogPanel(QWidget):
    """Shows buffered log lines at or above a chosen minimum level."""

    def __init__(self, parent: QWidget | None = None) -> None:
        super().__init__(parent)
        self._dark = False
        self._min_level = logging.DEBUG
        self._buffer: deque[tuple[str, int]] = deque(maxlen=_MAX_BUFFER)
        self._build_ui()

        self._handler = _QtLogHandler()
        self._handler.setLevel(logging.DEBUG)
        self._handler.message_logged.connect(self._on_message)
        logging.getLogger().addHandler(self._handler)

    def _build_ui(self) -> None:
        root = QVBoxLayout(self)
        root.setContentsMargins(32, 32, 32, 32)
        root.setSpacing(12)

        header = QHBoxLayout()
        title = QLabel("Logs")
        title.setProperty("heading", "true")
        header.addWidget(title)
        header.addStretch()

        level_lbl = QLabel("Minimum level:")
        level_lbl.setProperty("subheading", "true")
        header.addWidget(level_lbl)
        self._level_combo = QComboBox()
        for label, level in _LEVELS:
            self._level_combo.addItem(label, level)
        self._level_combo.currentIndexChanged.connect(self._on_level_changed)
        header.addWidget(self._level_combo)

        save_btn = QPushButton("Save…")
        save_btn.setProperty("secondary", "true")
        save_btn.clicked.connect(self._save)
        header.addWidget(save_btn)

        clear_btn = QPushButton("Clear")
        clear_btn.setProperty("secondary", "true")
        clear_btn.clicked.connect(self._clear)
        header.addWidget(clear_btn)
        root.addLayout(header)

        self._view = QPlainTextEdit()
        self._view.setReadOnly(True)
        self._view.setMaximumBlockCount(_MAX_BUFFER)
        self._view.setFont(QFont("Consolas" if sys.platform == "win32" else "Monospace", 10))
        self._view.setLineWrapMode(QPlainTextEdit.LineWrapMode.NoWrap)
        root.addWidget(self._view)

    def set_dark(self, dark: bool) -> None:
        self._dark = dark
        self._rebuild_view()

    def detach(self) -> None:
        """Remove the Qt handler from the root logger."""
        logging.getLogger().removeHandler(self._handler)

    # -- slots ----------------------------------------------------------------

    def _on_message(self, text: str, level: int) -> None:
        self._buffer.append((text, level))
        if level >= self._min_level:
            self._append_line(text, level)

    def _on_level_changed(self, _index: int) -> None:
        self._min_level = int(self._level_combo.currentData())
        self._rebuild_view()

    def _rebuild_view(self) -> None:
        self._view.clear()
        for text, level in self._buffer:
            if level >= self._min_level:
                self._append_line(text, level)

    def _append_line(self, text: str, level: int) -> None:
        palette = _LEVEL_COLORS_DARK if self._dark else _LEVEL_COLORS
        fmt = QTextCharFormat()
        fmt.setForeground(QColor(palette.get(min(level, logging.ERROR), palette[logging.INFO])))
        if level >= logging.WARNING:
            fmt.setFontWeight(QFont.Weight.Bold)

        cursor = self._view.textCursor()
        cursor.movePosition(cursor.MoveOperation.End)
        cursor.insertText(text + "\n", fmt)
        self._view.setTextCursor(cursor)
        self._view.ensureCursorVisible()

    def _save(self) -> None:
        path, _ = QFileDialog.getSaveFileName(self, "Save Log", "redmine-dashboard.log", "Log files (*.log *.txt)")
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as fh:
                fh.writelines(f"{text}\n" for text, _ in self._buffer)
        except OSError as exc:
            logger.error("Failed to save log to %s: %s", path, exc)
            QMessageBox.warning(self, "Save Failed", str(exc))
            return
        logger.info("Log saved to %s", path)

    def _clear(self) -> None:
        self._buffer.clear()
        self._view.clear()
