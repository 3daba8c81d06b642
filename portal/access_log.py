"""
Portal Access Log

Request-level log of everything the site serves, kept apart from the
module loggers so it can go to its own file:

- REQUEST: Accepted requests
- BLOCKED: Requests rejected by the IP/user-agent blocklists
- ERROR:   Internal errors while handling a request
- SYNC:    Catalog synchronization progress
- START/STOP: Server lifecycle
"""

import logging
import sys
from datetime import datetime
from enum import Enum
from pathlib import Path


class Event(Enum):
    """Event types for the access log."""
    REQUEST = "REQ"
    BLOCKED = "BLOCKED"
    ERROR = "ERROR"
    SYNC = "SYNC"
    SYSTEM_START = "START"
    SYSTEM_STOP = "STOP"


class AccessFormatter(logging.Formatter):
    """Formats records as `[date time] EVENT message`."""

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")

        event = getattr(record, "event", None)
        if event:
            prefix = event.value
        else:
            prefix = record.levelname

        return f"[{timestamp}] {prefix} {record.getMessage()}"


class AccessLog:
    """
    Central request logger for the portal.

    Usage:
        from portal.access_log import access_log

        access_log.request("203.0.113.7", "Mozilla/5.0", "http://example.org/search")
        access_log.sync("applying 120 tags...")
    """

    def __init__(self, name: str = "portal.access"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)
        self.log_blocked = True
        self._configured = False

    def configure(
        self,
        log_file: Path | None = None,
        console: bool = True,
        log_blocked: bool = True,
    ) -> None:
        """Configure access log outputs."""
        self.log_blocked = log_blocked
        if self._configured:
            return

        formatter = AccessFormatter()

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setFormatter(formatter)
            self.logger.addHandler(console_handler)

        if log_file:
            log_file.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(log_file)
            file_handler.setFormatter(formatter)
            self.logger.addHandler(file_handler)

        # Don't propagate to root logger (avoid duplicate output)
        self.logger.propagate = False
        self._configured = True

    def _log(self, event: Event, message: str, level: int = logging.INFO) -> None:
        if not self._configured:
            self.configure()
        self.logger.log(level, message, extra={"event": event})

    # === Request events ===

    def request(self, address: str, user_agent: str, url: str) -> None:
        """Log an accepted request."""
        self._log(Event.REQUEST, f"{address} ({user_agent}): {url}")

    def blocked(self, address: str, user_agent: str, url: str) -> None:
        """Log a blocked request, if blocked requests are being logged."""
        if self.log_blocked:
            self._log(Event.BLOCKED, f"{address} ({user_agent}): {url}")

    def error(self, message: str) -> None:
        """Log an internal error (message should include the traceback)."""
        self._log(Event.ERROR, message, logging.ERROR)

    # === Catalog events ===

    def sync(self, message: str) -> None:
        """Log catalog synchronization progress."""
        self._log(Event.SYNC, message)

    # === System events ===

    def start(self, component: str) -> None:
        """Log component started."""
        self._log(Event.SYSTEM_START, component)

    def stop(self, component: str) -> None:
        """Log component stopped."""
        self._log(Event.SYSTEM_STOP, component)


# Global access log instance
access_log = AccessLog()
