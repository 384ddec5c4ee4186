"""
Core module for TicketBookingWeb.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- api_client: Per-thread HTTP client for the remote booking service
- gateway: Notification / navigation contract and its outbox
"""

from .exceptions import (
    TicketBookingError,
    SnapshotLoadError,
    ScreenNotFoundError,
    InvalidStateTransitionError,
    SubmissionInProgressError,
    BookingAPIError,
    SessionExpiredError,
    BookingRejectedError,
)
from .api_client import BookingAPIClient, BookingAPIClientFactory
from .gateway import (
    Destination,
    GatewayOutbox,
    Notification,
    NotificationGateway,
    Severity,
)

__all__ = [
    "TicketBookingError",
    "SnapshotLoadError",
    "ScreenNotFoundError",
    "InvalidStateTransitionError",
    "SubmissionInProgressError",
    "BookingAPIError",
    "SessionExpiredError",
    "BookingRejectedError",
    "BookingAPIClient",
    "BookingAPIClientFactory",
    "Destination",
    "GatewayOutbox",
    "Notification",
    "NotificationGateway",
    "Severity",
]
