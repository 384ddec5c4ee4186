"""
Data models for TicketBookingWeb.

This module contains dataclasses for:
- EventSnapshot / TicketOffer / InventorySnapshot: what the screen loaded
- SelectionState / ScreenState: what the user has chosen and where the screen is
- BookingRequest / BookingOutcome: one submission and its result

Snapshot and booking models are frozen (immutable) for safe passing to
worker threads. SelectionState is mutable and owned by one state machine.
"""

from .event import EventSnapshot, TicketOffer, InventorySnapshot, format_vnd
from .booking import PaymentMethod, BookingRequest, BookingOutcome, OutcomeKind
from .selection import SelectionState, ScreenState, MAX_TICKETS_PER_ORDER

__all__ = [
    # Inventory models
    "EventSnapshot",
    "TicketOffer",
    "InventorySnapshot",
    "format_vnd",
    # Booking models
    "PaymentMethod",
    "BookingRequest",
    "BookingOutcome",
    "OutcomeKind",
    # Selection models
    "SelectionState",
    "ScreenState",
    "MAX_TICKETS_PER_ORDER",
]
