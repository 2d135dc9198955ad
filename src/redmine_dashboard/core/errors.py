"""Exception types shared by the tracker client, importer and stores."""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for every error raised by Redmine Dashboard."""


class NotFoundError(DashboardError):
    """A named record (project, snapshot) does not exist."""


class InvalidFormatError(DashboardError):
    """A schedule workbook is missing its sheet, data region or headers."""

    def __init__(self, message: str, missing_headers: tuple[str, ...] | list[str] = ()) -> None:
        self.missing_headers = tuple(missing_headers)
        if self.missing_headers:
            message = f"{message}: {', '.join(self.missing_headers)}"
        super().__init__(message)


class DownstreamUnavailableError(DashboardError):
    """The tracker API timed out, refused the connection or returned non-2xx."""

    def __init__(self, message: str, *, url: str = "", status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class FetchCancelledError(DownstreamUnavailableError):
    """A paginated fetch was aborted through its cancellation event."""


class PersistenceError(DashboardError):
    """Reading or writing local JSON state failed."""
