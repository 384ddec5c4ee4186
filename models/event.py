"""
Event and ticket inventory data models.

These models represent a point-in-time view of one event and its ticket
types, as returned by the booking service when the buy screen loads.

Thread Safety:
    - All models are frozen dataclasses (immutable)
    - Safe to read from any thread without locks
    - A reload builds a new InventorySnapshot; nothing is patched in place

Staleness:
    remaining_quantity is whatever the service reported at fetch time.
    It is never decremented locally and never refreshed mid-session -
    the booking service is the only authority on inventory.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, Any, List, Optional, Union


def format_vnd(amount: int) -> str:
    """Format an integer VND amount for display (e.g., 100000 -> '100.000 VND')."""
    return f"{amount:,}".replace(",", ".") + " VND"


def _parse_non_negative_int(value: Any, field_name: str) -> int:
    """
    Parse a wire value as a non-negative integer.

    Raises:
        ValueError: If the value is missing, fractional, boolean or negative
    """
    if value is None or isinstance(value, bool):
        raise ValueError(f"{field_name} is required")
    if isinstance(value, float) and not value.is_integer():
        raise ValueError(f"{field_name} must be a whole number, got {value}")
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field_name} must be an integer, got {value!r}")
    if number < 0:
        raise ValueError(f"{field_name} cannot be negative, got {number}")
    return number


@dataclass(frozen=True)
class EventSnapshot:
    """
    The event a user is buying tickets for.

    Immutable once loaded; replaced wholesale if the screen is reopened.
    """

    event_id: str
    """Service-side event identifier."""

    name: str
    """Display name of the event."""

    date: str
    """Event date as sent by the service (ISO 8601 date or datetime)."""

    location: str
    """Venue / location text."""

    @property
    def display_date(self) -> str:
        """Formatted date for UI display (e.g., '20/11/2026')."""
        try:
            dt = datetime.fromisoformat(self.date.replace("Z", "+00:00"))
            return dt.strftime("%d/%m/%Y")
        except (ValueError, AttributeError):
            return self.date

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the screen view."""
        return {
            "event_id": self.event_id,
            "name": self.name,
            "date": self.date,
            "display_date": self.display_date,
            "location": self.location,
        }

    @classmethod
    def from_api_data(cls, data: Dict[str, Any], event_id: str = "") -> "EventSnapshot":
        """
        Create EventSnapshot from the service's event record.

        Args:
            data: JSON object from GET /api/events/{id}
            event_id: Requested id, used when the record omits its own

        Raises:
            ValueError: If the record is not an object or has no name
        """
        if not isinstance(data, dict):
            raise ValueError(f"Event record must be an object, got {type(data).__name__}")

        name = data.get("event_name")
        if not name:
            raise ValueError("Event record has no event_name")

        return cls(
            event_id=str(data.get("event_id") or event_id),
            name=str(name),
            date=str(data.get("event_date") or ""),
            location=str(data.get("event_location") or ""),
        )


@dataclass(frozen=True)
class TicketOffer:
    """
    A purchasable ticket type for an event.

    Offers are compared by identity inside the state machine: the selected
    offer is always one of the objects held by the current snapshot.
    """

    ticket_id: Union[str, int]
    """Service-side ticket type identifier, kept exactly as the service sent it."""

    ticket_type: str
    """Type label (e.g., 'VIP', 'Standard')."""

    price: int
    """Unit price in VND (non-negative integer)."""

    remaining_quantity: int
    """Tickets left at fetch time (non-negative integer, may be stale)."""

    @property
    def is_sold_out(self) -> bool:
        """Whether no tickets of this type were left at fetch time."""
        return self.remaining_quantity == 0

    @property
    def display_price(self) -> str:
        """Formatted unit price."""
        return format_vnd(self.price)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the screen view."""
        return {
            "ticket_id": self.ticket_id,
            "ticket_type": self.ticket_type,
            "price": self.price,
            "display_price": self.display_price,
            "remaining_quantity": self.remaining_quantity,
            "sold_out": self.is_sold_out,
        }

    @classmethod
    def from_api_data(cls, data: Dict[str, Any]) -> "TicketOffer":
        """
        Create TicketOffer from one element of GET /api/tickets.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        if not isinstance(data, dict):
            raise ValueError(f"Ticket record must be an object, got {type(data).__name__}")

        ticket_id = data.get("ticket_id")
        if ticket_id is None or ticket_id == "":
            raise ValueError("Ticket record has no ticket_id")
        if isinstance(ticket_id, bool) or not isinstance(ticket_id, (str, int)):
            raise ValueError(f"ticket_id must be a string or integer, got {ticket_id!r}")

        return cls(
            ticket_id=ticket_id,
            ticket_type=str(data.get("ticket_type") or ""),
            price=_parse_non_negative_int(data.get("price_vnd"), "price_vnd"),
            remaining_quantity=_parse_non_negative_int(
                data.get("remaining_quantity"), "remaining_quantity"
            ),
        )


@dataclass(frozen=True)
class InventorySnapshot:
    """
    One event plus its ordered ticket offers, fetched together.

    This is a FROZEN dataclass - completely immutable after creation.
    The loader only builds one after BOTH fetches succeeded; a partial
    snapshot never exists.

    Usage:
        snapshot = InventorySnapshot.from_api_data(event_record, ticket_records)
        for offer in snapshot.offers:
            print(f"{offer.ticket_type}: {offer.remaining_quantity} left")
    """

    event: EventSnapshot
    """The event record."""

    offers: tuple[TicketOffer, ...]
    """Ticket offers in display order (as returned by the service)."""

    fetched_at: datetime
    """When this snapshot was fetched."""

    @property
    def age_seconds(self) -> float:
        """How old this snapshot is in seconds."""
        now = datetime.now(timezone.utc)
        return (now - self.fetched_at).total_seconds()

    @property
    def has_offers(self) -> bool:
        """Whether the event has any ticket types at all."""
        return len(self.offers) > 0

    def get_offer(self, ticket_id: Union[str, int]) -> Optional[TicketOffer]:
        """
        Find an offer by ticket id.

        Ids are compared as text, so a form value "7" finds the offer the
        service sent as 7. Returns the snapshot's own object so identity
        comparisons hold.
        """
        wanted = str(ticket_id)
        for offer in self.offers:
            if str(offer.ticket_id) == wanted:
                return offer
        return None

    def contains(self, offer: TicketOffer) -> bool:
        """Whether this exact offer object belongs to the snapshot."""
        return any(o is offer for o in self.offers)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for the screen view."""
        return {
            "event": self.event.to_dict(),
            "offers": [o.to_dict() for o in self.offers],
            "fetched_at": self.fetched_at.isoformat(),
            "age_seconds": self.age_seconds,
        }

    @classmethod
    def from_api_data(
        cls,
        event_data: Dict[str, Any],
        offers_data: Optional[List[Dict[str, Any]]],
        event_id: str = "",
    ) -> "InventorySnapshot":
        """
        Build a snapshot from the two service responses.

        Args:
            event_data: Event record
            offers_data: Ticket list (None is treated as an empty list)
            event_id: Requested event id

        Raises:
            ValueError: If either response cannot be parsed
        """
        if offers_data is None:
            offers_data = []
        if not isinstance(offers_data, list):
            raise ValueError(
                f"Ticket list must be an array, got {type(offers_data).__name__}"
            )

        return cls(
            event=EventSnapshot.from_api_data(event_data, event_id=event_id),
            offers=tuple(TicketOffer.from_api_data(o) for o in offers_data),
            fetched_at=datetime.now(timezone.utc),
        )
