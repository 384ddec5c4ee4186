"""
Services layer for TicketBookingWeb.

This module contains the services behind the buy-ticket screen:
- SnapshotLoader: Concurrent event + ticket list fetch (fail fast)
- BookingSubmitter: Single-flight booking call in a worker thread
- BookingScreen / ScreenRegistry: Open screens and late-result routing

Thread Model:
    Flask request thread
    ├── Loader threads (two per load, joined before the request returns)
    └── Booking thread (one per submission, reports back via the registry)

Each worker thread creates its own BookingAPIClient.
"""

from .snapshot_loader import SnapshotLoader
from .booking_service import BookingSubmitter
from .screen_registry import BookingScreen, ScreenRegistry

__all__ = [
    "SnapshotLoader",
    "BookingSubmitter",
    "BookingScreen",
    "ScreenRegistry",
]
