"""
Portal Errors

Request errors carry an ErrorKind that decides the status code and whether
the error page is rendered inside the localized site shell ("fancy") or as a
bare, untranslated page.
"""

from enum import Enum


class ErrorKind(Enum):
    """HTTP error kinds the site knows how to render."""

    BAD_REQUEST = (400, "Bad Request", False, "The requested URL is invalid.")
    NOT_FOUND = (404, "Not Found", True, "The requested URL does not exist.")
    INTERNAL = (500, "Internal Server Error", False, "The server encountered an error while handling the request.")

    def __init__(self, status: int, reason: str, fancy: bool, description: str):
        self.status = status
        self.reason = reason
        self.fancy = fancy
        self.description = description

    @property
    def heading(self) -> str:
        return f"{self.status} {self.reason}"


class SiteError(Exception):
    """An error that ends the current request but not the process."""

    kind: ErrorKind = ErrorKind.INTERNAL

    def __init__(self, message: str = "", url=None, lang: str | None = None):
        super().__init__(message or self.kind.heading)
        self.url = url
        self.lang = lang

    @property
    def status(self) -> int:
        return self.kind.status

    @property
    def fancy(self) -> bool:
        return self.kind.fancy


class BadRequestError(SiteError):
    """Malformed request URL or disallowed host."""

    kind = ErrorKind.BAD_REQUEST


class NotFoundError(SiteError):
    """No endpoint, page, asset or catalog record for the request."""

    kind = ErrorKind.NOT_FOUND


class InternalError(SiteError):
    """Failure while handling an otherwise valid request."""

    kind = ErrorKind.INTERNAL


class SiteConfigError(Exception):
    """The site data on disk is incomplete; fatal at startup."""
