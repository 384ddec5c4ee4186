"""
Notification / navigation gateway.

The buy screen never talks to Flask directly. It reports what the user
should see through two calls:

    notify(message, severity, duration=None)
    navigate_to(destination)

GatewayOutbox is the implementation used by the app: it records both kinds
of call so the next HTTP request for the screen can turn them into
flash() messages and a redirect(). Booking outcomes arrive on a worker
thread, so the outbox is locked.

Usage:
    outbox = GatewayOutbox()
    machine = SelectionStateMachine(outbox, submitter)

    # In a route (request thread)
    for note in outbox.drain_notifications():
        flash(note.message, note.severity.value)
    destination = outbox.pop_destination()
    if destination:
        return redirect(url_for(DESTINATION_ENDPOINTS[destination]))
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any, List, Optional, Protocol


class Severity(Enum):
    """Notification severity. Values double as Flask flash categories."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"


class Destination(Enum):
    """Screens the buy screen can send the user to."""

    HOME = "home"
    LOGIN = "login"
    TICKETS = "tickets"


@dataclass(frozen=True)
class Notification:
    """One user-facing message."""

    message: str
    severity: Severity
    duration: Optional[int] = None
    """Display time in milliseconds (None = UI default)."""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "message": self.message,
            "severity": self.severity.value,
            "duration": self.duration,
        }


class NotificationGateway(Protocol):
    """Call contract the state machine needs from the UI shell."""

    def notify(
        self,
        message: str,
        severity: Severity,
        duration: Optional[int] = None
    ) -> None:
        ...

    def navigate_to(self, destination: Destination) -> None:
        ...


class GatewayOutbox:
    """
    Thread-safe record of notifications and navigation requests.

    Notifications queue up in order. Only the latest navigation request is
    kept; a screen navigates at most once before it ends.
    """

    def __init__(self):
        self._notifications: List[Notification] = []
        self._destination: Optional[Destination] = None
        self._lock = threading.Lock()

    def notify(
        self,
        message: str,
        severity: Severity,
        duration: Optional[int] = None
    ) -> None:
        with self._lock:
            self._notifications.append(Notification(message, severity, duration))

    def navigate_to(self, destination: Destination) -> None:
        with self._lock:
            self._destination = destination

    def drain_notifications(self) -> List[Notification]:
        """Return and remove all pending notifications (consume-once)."""
        with self._lock:
            pending = self._notifications
            self._notifications = []
            return pending

    def pop_destination(self) -> Optional[Destination]:
        """Return and clear the pending navigation request, if any."""
        with self._lock:
            destination = self._destination
            self._destination = None
            return destination

    @property
    def has_pending(self) -> bool:
        with self._lock:
            return bool(self._notifications) or self._destination is not None
