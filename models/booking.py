"""
Booking request and outcome models.

A BookingRequest is built fresh from the current selection at the moment
the user confirms, then handed to the submission thread. A BookingOutcome
is produced once per submission and consumed immediately by the screen.
Neither is stored after use.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Dict, Any, Optional, Union, TYPE_CHECKING

if TYPE_CHECKING:
    from models.selection import SelectionState


class PaymentMethod(Enum):
    """
    Payment methods offered on the buy screen.

    The set is closed: the screen only ever offers these, and the value is
    passed through to the booking service untouched.
    """

    ZALOPAY = "zalopay"
    ONLINE_BANKING = "online-banking"

    @property
    def label(self) -> str:
        """Human-readable name for the confirmation summary."""
        return _PAYMENT_LABELS[self]

    @classmethod
    def default(cls) -> "PaymentMethod":
        return cls.ZALOPAY


_PAYMENT_LABELS = {
    PaymentMethod.ZALOPAY: "ZaloPay",
    PaymentMethod.ONLINE_BANKING: "Online banking",
}


@dataclass(frozen=True)
class BookingRequest:
    """
    Immutable payload for POST /api/bookings.

    This is a FROZEN dataclass. The submission thread owns it exclusively;
    later changes to the selection cannot reach an in-flight request.
    """

    ticket_id: Union[str, int]
    """Sent exactly as the ticket list returned it (string or number)."""

    quantity: int
    booking_date: str
    """Calendar date of submission, ISO format (YYYY-MM-DD)."""

    payment_method: PaymentMethod

    @classmethod
    def from_selection(
        cls,
        selection: "SelectionState",
        today: Optional[date] = None
    ) -> "BookingRequest":
        """
        Freeze a selection into a request.

        Args:
            selection: Current selection (must have an offer selected)
            today: Booking date override (defaults to today's date)

        Raises:
            ValueError: If no offer is selected
        """
        if selection.selected_offer is None:
            raise ValueError("Cannot build a booking request without a selected ticket")

        booking_day = today or date.today()
        return cls(
            ticket_id=selection.selected_offer.ticket_id,
            quantity=selection.quantity,
            booking_date=booking_day.isoformat(),
            payment_method=selection.payment_method,
        )

    def to_payload(self) -> Dict[str, Any]:
        """JSON body expected by the booking service."""
        return {
            "ticket_id": self.ticket_id,
            "quantity": self.quantity,
            "booking_date": self.booking_date,
            "payment_method": self.payment_method.value,
        }


class OutcomeKind(Enum):
    """
    Classification of one submission attempt.

    ACCEPTED          - booking created
    REJECTED          - service refused it (4xx other than 401)
    SESSION_EXPIRED   - authorization failure (401)
    TRANSIENT_FAILURE - anything else (network, 5xx, bad response)
    """

    ACCEPTED = "accepted"
    REJECTED = "rejected"
    SESSION_EXPIRED = "session_expired"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class BookingOutcome:
    """Result of one booking submission."""

    kind: OutcomeKind
    reason: str = ""

    @property
    def is_accepted(self) -> bool:
        return self.kind is OutcomeKind.ACCEPTED

    @classmethod
    def accepted(cls) -> "BookingOutcome":
        return cls(OutcomeKind.ACCEPTED)

    @classmethod
    def rejected(cls, reason: str) -> "BookingOutcome":
        return cls(OutcomeKind.REJECTED, reason)

    @classmethod
    def session_expired(cls) -> "BookingOutcome":
        return cls(OutcomeKind.SESSION_EXPIRED)

    @classmethod
    def transient_failure(cls, reason: str = "") -> "BookingOutcome":
        return cls(OutcomeKind.TRANSIENT_FAILURE, reason)
