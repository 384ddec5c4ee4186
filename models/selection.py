"""
Selection state models for the buy-ticket screen.

The screen is always in exactly one ScreenState. Whether the confirmation
sheet is visible, or a booking is in flight, is read off that state rather
than kept in separate flags, so "submitting with the sheet open" or
"confirming with nothing selected" cannot be represented.

Lifecycle:
    LOADING -> READY <-> CONFIRMING -> SUBMITTING -> (READY | NAVIGATED)
    LOADING -> LOAD_FAILED
    any     -> CLOSED
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, Optional

from models.booking import PaymentMethod
from models.event import TicketOffer, format_vnd


# Per-order ticket cap. Policy constant, not configurable.
MAX_TICKETS_PER_ORDER = 8


class ScreenState(Enum):
    """
    State of one buy-ticket screen.

    LOADING     - waiting for event + ticket list
    LOAD_FAILED - load failed, empty/error display (terminal)
    READY       - interactive, sheet hidden
    CONFIRMING  - READY plus the read-only summary sheet
    SUBMITTING  - booking in flight, all input disabled
    NAVIGATED   - user sent to another screen (terminal)
    CLOSED      - screen discarded; late results are dropped (terminal)
    """

    LOADING = "loading"
    LOAD_FAILED = "load_failed"
    READY = "ready"
    CONFIRMING = "confirming"
    SUBMITTING = "submitting"
    NAVIGATED = "navigated"
    CLOSED = "closed"


@dataclass
class SelectionState:
    """
    The user's current choice on the screen.

    Owned exclusively by one SelectionStateMachine. Mutable; the machine
    freezes it into a BookingRequest on submission.
    """

    selected_offer: Optional[TicketOffer] = None
    """Selected ticket type (an object from the current snapshot), or None."""

    quantity: int = 1
    """Requested ticket count. Ignored while nothing is selected."""

    payment_method: PaymentMethod = field(default_factory=PaymentMethod.default)
    """Chosen payment method."""

    @property
    def has_offer(self) -> bool:
        return self.selected_offer is not None

    @property
    def quantity_upper_bound(self) -> int:
        """min(remaining, per-order cap); 0 when nothing is selected."""
        if self.selected_offer is None:
            return 0
        return min(self.selected_offer.remaining_quantity, MAX_TICKETS_PER_ORDER)

    @property
    def total_price(self) -> int:
        """Unit price x quantity (0 when nothing is selected)."""
        if self.selected_offer is None:
            return 0
        return self.selected_offer.price * self.quantity

    @property
    def exceeds_remaining(self) -> bool:
        """Whether the quantity is more than the offer had left at fetch time."""
        return (
            self.selected_offer is not None
            and self.quantity > self.selected_offer.remaining_quantity
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the screen view."""
        return {
            "ticket_id": self.selected_offer.ticket_id if self.selected_offer else None,
            "quantity": self.quantity,
            "quantity_upper_bound": self.quantity_upper_bound,
            "payment_method": self.payment_method.value,
            "payment_label": self.payment_method.label,
            "total_price": self.total_price,
            "display_total": format_vnd(self.total_price),
        }
