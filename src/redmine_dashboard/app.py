"""Logging setup, service wiring and QApplication launch."""

from __future__ import annotations

import logging
import signal
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

from platformdirs import user_log_dir
from PySide6.QtCore import QTimer
from PySide6.QtWidgets import QApplication

from redmine_dashboard.core.errors import PersistenceError
from redmine_dashboard.services.cache_store import CacheStore
from redmine_dashboard.services.config_manager import APP_NAME, ConfigManager
from redmine_dashboard.services.dashboard_service import DashboardService
from redmine_dashboard.services.project_store import ProjectStore
from redmine_dashboard.ui.main_window import MainWindow

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_FILENAME = "redmine-dashboard.log"


def configure_logging(debug: bool = False, log_dir: str | Path | None = None) -> Path | None:
    """Log to stderr and to a rotating file in the platform log directory.

    Returns the log file path, or ``None`` when the file could not be opened.
    """
    logging.basicConfig(level=logging.DEBUG if debug else logging.INFO, format=LOG_FORMAT)
    # Third-party request chatter stays out of the log panel
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("matplotlib").setLevel(logging.WARNING)

    directory = Path(log_dir) if log_dir else Path(user_log_dir(APP_NAME, appauthor=False))
    path = directory / LOG_FILENAME
    try:
        directory.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(path, maxBytes=1_000_000, backupCount=3, encoding="utf-8")
    except OSError as exc:
        logger.warning("File logging disabled, cannot open %s: %s", path, exc)
        return None
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return path


def build_service(config: ConfigManager) -> DashboardService:
    """Create the stores and the service from *config*."""
    return DashboardService(
        config,
        ProjectStore(),
        CacheStore(ttl=config.cache_ttl()),
    )


def run_app(argv: list[str] | None = None, *, debug: bool = False, clear_cache: bool = False) -> int:
    """Create and run the application, returning the exit code."""
    log_path = configure_logging(debug)
    logger.info("Starting Redmine Dashboard (log file: %s)", log_path)

    config = ConfigManager()
    service = build_service(config)
    if clear_cache:
        try:
            service.cache.clear(include_snapshots=False)
        except PersistenceError as exc:
            logger.error("Could not clear cache: %s", exc)

    app = QApplication(argv or sys.argv)
    app.setApplicationName("Redmine Dashboard")
    app.setOrganizationName("RedmineDashboard")
    _install_signal_handlers(app)

    logger.debug("Services initialised, launching main window")
    window = MainWindow(config, service)
    window.show()

    return app.exec()


def _install_signal_handlers(app: QApplication) -> None:
    """Let SIGINT/SIGTERM quit the Qt event loop.

    A periodic no-op timer hands control back to Python so the handlers
    get a chance to run.
    """
    def _shutdown(signum: int, _frame: object) -> None:
        logger.info("Received %s, shutting down…", signal.Signals(signum).name)
        app.closeAllWindows()
        app.quit()

    signal.signal(signal.SIGINT, _shutdown)
    signal.signal(signal.SIGTERM, _shutdown)

    timer = QTimer(app)
    timer.setInterval(200)
    timer.timeout.connect(lambda: None)
    timer.start()
