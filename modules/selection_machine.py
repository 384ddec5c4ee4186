"""
Selection state machine for the buy-ticket screen.

Owns the user's SelectionState for the lifetime of one screen and decides
which inputs are allowed in which ScreenState:

    LOADING ──apply_snapshot──> READY ──open_confirmation──> CONFIRMING
       │                          ^  <──close_confirmation──    │
       └─fail_load─> LOAD_FAILED  │                    confirm_and_submit
                                  │                             v
                                  └──failure──────────── SUBMITTING
                                                               │ success /
                                                               v session expiry
                                                           NAVIGATED
    any state ──close──> CLOSED

Selection mistakes (sold-out ticket, nothing selected, too many tickets)
are reported through the gateway and leave the state untouched. Nothing
here raises for user input.

Thread Safety:
    Request threads call the input operations, a booking worker thread
    calls resolve_submission(). All of them take the machine's lock.
    The submitter is invoked outside the lock; SUBMITTING already blocks
    every other mutation.
"""

from __future__ import annotations

import threading
from typing import Callable, Dict, Any, Optional, Protocol, Set, Union

from core.exceptions import InvalidStateTransitionError
from core.gateway import Destination, NotificationGateway, Severity
from models.booking import BookingOutcome, BookingRequest, OutcomeKind, PaymentMethod
from models.event import InventorySnapshot, TicketOffer, format_vnd
from models.selection import MAX_TICKETS_PER_ORDER, ScreenState, SelectionState
from modules.i18n import DEFAULT_LANGUAGE, translate
from logging_config import ScreenLogger, get_logger


# Module logger
logger = get_logger(__name__)

# Display time for booking result notifications (milliseconds)
RESULT_NOTIFICATION_MS = 3000


class Submitter(Protocol):
    """What the machine needs from the booking submitter."""

    def submit(
        self,
        request: BookingRequest,
        on_outcome: Callable[[BookingOutcome], None]
    ) -> None:
        ...


class SelectionStateMachine:
    """
    Ticket selection, confirmation and submission for one screen.

    Every input operation returns True when it changed (or accepted) state
    and False when it was a no-op or was rejected.
    """

    _ALLOWED_TRANSITIONS: Dict[ScreenState, Set[ScreenState]] = {
        ScreenState.LOADING: {ScreenState.READY, ScreenState.LOAD_FAILED},
        ScreenState.READY: {ScreenState.CONFIRMING},
        ScreenState.CONFIRMING: {ScreenState.READY, ScreenState.SUBMITTING},
        ScreenState.SUBMITTING: {ScreenState.READY, ScreenState.NAVIGATED},
        ScreenState.LOAD_FAILED: set(),
        ScreenState.NAVIGATED: set(),
        ScreenState.CLOSED: set(),
    }

    def __init__(
        self,
        gateway: NotificationGateway,
        submitter: Optional[Submitter] = None,
        lang: str = DEFAULT_LANGUAGE,
        screen_logger: Optional[ScreenLogger] = None
    ):
        """
        Initialize in LOADING state.

        Args:
            gateway: Receives notifications and navigation requests
            submitter: Performs the booking call (required before submitting)
            lang: Language for notification texts
            screen_logger: Logger for this screen (module logger if omitted)
        """
        self._gateway = gateway
        self._submitter = submitter
        self._lang = lang
        self._logger = screen_logger or logger

        self._state = ScreenState.LOADING
        self._snapshot: Optional[InventorySnapshot] = None
        self._selection = SelectionState()
        self._lock = threading.RLock()

    # =========================================================================
    # READ-ONLY VIEW
    # =========================================================================

    @property
    def state(self) -> ScreenState:
        return self._state

    @property
    def snapshot(self) -> Optional[InventorySnapshot]:
        return self._snapshot

    @property
    def selection(self) -> SelectionState:
        """The live selection. Callers must treat it as read-only."""
        return self._selection

    @property
    def lang(self) -> str:
        return self._lang

    @lang.setter
    def lang(self, value: str) -> None:
        self._lang = value

    @property
    def confirmation_visible(self) -> bool:
        return self._state is ScreenState.CONFIRMING

    @property
    def submission_in_flight(self) -> bool:
        return self._state is ScreenState.SUBMITTING

    @property
    def is_finished(self) -> bool:
        """Whether the screen can no longer change (terminal state)."""
        return not self._ALLOWED_TRANSITIONS[self._state]

    @property
    def total_price(self) -> int:
        return self._selection.total_price

    @property
    def quantity_upper_bound(self) -> int:
        return self._selection.quantity_upper_bound

    @property
    def can_increase(self) -> bool:
        return (
            self._state is ScreenState.READY
            and self._selection.has_offer
            and self._selection.quantity < self._selection.quantity_upper_bound
        )

    @property
    def can_decrease(self) -> bool:
        return self._state is ScreenState.READY and self._selection.quantity > 1

    # =========================================================================
    # LOADING
    # =========================================================================

    def apply_snapshot(
        self,
        snapshot: InventorySnapshot,
        selection: Optional[SelectionState] = None
    ) -> bool:
        """
        Leave LOADING with a freshly loaded snapshot.

        Without a selection, the first offer is pre-selected with quantity 1
        (nothing if the list is empty). A sold-out first offer is still
        pre-selected; open_confirmation() refuses it.

        A supplied selection is resumed as-is; its offer must be one of the
        snapshot's own objects.

        Raises:
            ValueError: If the supplied selection points outside the snapshot
        """
        with self._lock:
            if self._state is not ScreenState.LOADING:
                self._logger.debug(f"Ignoring snapshot in state {self._state.value}")
                return False

            if selection is None:
                first_offer = snapshot.offers[0] if snapshot.offers else None
                selection = SelectionState(selected_offer=first_offer, quantity=1)
            elif selection.selected_offer is not None and not snapshot.contains(
                selection.selected_offer
            ):
                raise ValueError("Resumed selection refers to an offer outside the snapshot")

            self._snapshot = snapshot
            self._selection = selection
            self._transition(ScreenState.READY)

            self._logger.info(
                f"Snapshot applied: event={snapshot.event.event_id}, "
                f"{len(snapshot.offers)} offers, "
                f"selected={self._selected_id()}"
            )
            return True

    def fail_load(self, error: Exception) -> bool:
        """Leave LOADING after a failed load; reports one error."""
        with self._lock:
            if self._state is not ScreenState.LOADING:
                self._logger.debug(f"Ignoring load failure in state {self._state.value}")
                return False

            self._transition(ScreenState.LOAD_FAILED)
            self._logger.error(f"Snapshot load failed: {error}")
            self._notify("load.failed", Severity.ERROR)
            return True

    # =========================================================================
    # SELECTION INPUTS (READY only)
    # =========================================================================

    def select_offer(self, offer: TicketOffer) -> bool:
        """
        Select a ticket type and reset quantity to 1.

        Sold-out offers are rejected with a warning. Re-selecting the
        current offer keeps the quantity.
        """
        with self._lock:
            if not self._require_ready("select_offer"):
                return False

            if self._snapshot is None or not self._snapshot.contains(offer):
                self._logger.warning(f"Offer not in snapshot: {getattr(offer, 'ticket_id', offer)}")
                self._notify("selection.unknown_ticket", Severity.WARNING)
                return False

            if offer.is_sold_out:
                self._logger.info(f"Rejected sold-out offer {offer.ticket_id}")
                self._notify("selection.sold_out", Severity.WARNING)
                return False

            if self._selection.selected_offer is offer:
                return True

            self._selection.selected_offer = offer
            self._selection.quantity = 1
            self._logger.debug(f"Selected offer {offer.ticket_id}")
            return True

    def increase_quantity(self) -> bool:
        """Add one ticket, up to min(remaining, per-order cap)."""
        with self._lock:
            if not self._require_ready("increase_quantity"):
                return False
            if not self.can_increase:
                return False
            self._selection.quantity += 1
            return True

    def decrease_quantity(self) -> bool:
        """Remove one ticket, never below 1."""
        with self._lock:
            if not self._require_ready("decrease_quantity"):
                return False
            if self._selection.quantity <= 1:
                return False
            self._selection.quantity -= 1
            return True

    def set_payment_method(self, method: Union[PaymentMethod, str]) -> bool:
        """
        Choose the payment method.

        Raises:
            ValueError: If a string is not one of PaymentMethod's values
        """
        method = PaymentMethod(method)
        with self._lock:
            if not self._require_ready("set_payment_method"):
                return False
            self._selection.payment_method = method
            return True

    # =========================================================================
    # CONFIRMATION SHEET
    # =========================================================================

    def open_confirmation(self) -> bool:
        """
        Show the summary sheet.

        Rejected with an error when nothing is selected, or a warning when
        the quantity is above what the offer had left at fetch time.
        """
        with self._lock:
            if not self._require_ready("open_confirmation"):
                return False

            if not self._selection.has_offer:
                self._notify("confirmation.no_ticket", Severity.ERROR)
                return False

            if self._selection.exceeds_remaining:
                self._logger.info(
                    f"Quantity {self._selection.quantity} exceeds remaining "
                    f"{self._selection.selected_offer.remaining_quantity}"
                )
                self._notify("confirmation.quantity_exceeds_remaining", Severity.WARNING)
                return False

            self._transition(ScreenState.CONFIRMING)
            return True

    def close_confirmation(self) -> bool:
        """Hide the summary sheet (cancel)."""
        with self._lock:
            if self._state is not ScreenState.CONFIRMING:
                return False
            self._transition(ScreenState.READY)
            return True

    # =========================================================================
    # SUBMISSION
    # =========================================================================

    def confirm_and_submit(self) -> bool:
        """
        Close the sheet and send the booking.

        Only valid while CONFIRMING. The request is frozen from the
        selection inside the lock, so nothing the user does afterwards can
        reach it. Calling this in any other state has no effect.
        """
        with self._lock:
            if self._state is not ScreenState.CONFIRMING:
                self._logger.debug(f"confirm_and_submit ignored in state {self._state.value}")
                return False
            if self._submitter is None:
                raise RuntimeError("No submitter configured for this screen")

            request = BookingRequest.from_selection(self._selection)
            self._transition(ScreenState.SUBMITTING)

        self._logger.info(
            f"Submitting booking: ticket={request.ticket_id}, "
            f"quantity={request.quantity}, payment={request.payment_method.value}"
        )

        try:
            self._submitter.submit(request, self.resolve_submission)
        except Exception as e:
            self._logger.error(f"Could not start booking submission: {e}", exc_info=True)
            self.resolve_submission(BookingOutcome.transient_failure(str(e)))

        return True

    def resolve_submission(self, outcome: BookingOutcome) -> bool:
        """
        Apply the result of the in-flight booking.

        Outcomes that arrive when nothing is in flight (screen closed,
        already resolved) are dropped.
        """
        with self._lock:
            if self._state is not ScreenState.SUBMITTING:
                self._logger.warning(
                    f"Discarding {outcome.kind.value} outcome in state {self._state.value}"
                )
                return False

            if outcome.is_accepted:
                self._transition(ScreenState.NAVIGATED)
                self._logger.info("Booking accepted")
                self._notify("booking.success", Severity.SUCCESS, RESULT_NOTIFICATION_MS)
                self._gateway.navigate_to(Destination.TICKETS)

            elif outcome.kind is OutcomeKind.SESSION_EXPIRED:
                self._transition(ScreenState.NAVIGATED)
                self._logger.warning("Booking failed: session expired")
                self._notify("booking.session_expired", Severity.WARNING, RESULT_NOTIFICATION_MS)
                self._gateway.navigate_to(Destination.LOGIN)

            else:
                # Rejections and transient failures keep the selection for a manual retry
                self._transition(ScreenState.READY)
                self._logger.warning(
                    f"Booking failed ({outcome.kind.value}): {outcome.reason or 'no reason given'}"
                )
                self._notify("booking.failed", Severity.ERROR, RESULT_NOTIFICATION_MS)

            return True

    def close(self) -> None:
        """Discard the screen. Any later outcome is ignored."""
        with self._lock:
            if self._state is not ScreenState.CLOSED:
                self._logger.debug(f"Screen closed in state {self._state.value}")
            self._state = ScreenState.CLOSED

    # =========================================================================
    # DISPLAY
    # =========================================================================

    def summary(self) -> Optional[Dict[str, Any]]:
        """Contents of the confirmation sheet, or None without a selection."""
        with self._lock:
            offer = self._selection.selected_offer
            if offer is None or self._snapshot is None:
                return None
            return {
                "event_name": self._snapshot.event.name,
                "ticket_type": offer.ticket_type,
                "quantity": self._selection.quantity,
                "payment_method": self._selection.payment_method.value,
                "payment_label": self._selection.payment_method.label,
                "total_price": self._selection.total_price,
                "display_total": format_vnd(self._selection.total_price),
            }

    def to_view(self) -> Dict[str, Any]:
        """JSON-serialisable view of the whole screen."""
        with self._lock:
            view: Dict[str, Any] = {
                "state": self._state.value,
                "confirmation_visible": self.confirmation_visible,
                "submission_in_flight": self.submission_in_flight,
                "max_tickets_per_order": MAX_TICKETS_PER_ORDER,
                "payment_methods": [
                    {"value": m.value, "label": m.label} for m in PaymentMethod
                ],
            }

            if self._snapshot is None or not self._snapshot.has_offers:
                view["event"] = self._snapshot.event.to_dict() if self._snapshot else None
                view["offers"] = []
                view["selection"] = None
                if self._state is not ScreenState.LOADING:
                    view["message"] = translate("load.empty", lang=self._lang)
                return view

            snapshot_data = self._snapshot.to_dict()
            selected = self._selection.selected_offer
            for offer, entry in zip(self._snapshot.offers, snapshot_data["offers"]):
                entry["selected"] = offer is selected

            view["event"] = snapshot_data["event"]
            view["offers"] = snapshot_data["offers"]
            view["fetched_at"] = snapshot_data["fetched_at"]
            view["snapshot_age_seconds"] = snapshot_data["age_seconds"]
            view["selection"] = self._selection.to_dict()
            view["can_increase"] = self.can_increase
            view["can_decrease"] = self.can_decrease
            view["summary"] = self.summary() if self.confirmation_visible else None
            return view

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_ready(self, operation: str) -> bool:
        if self._state is ScreenState.READY:
            return True
        self._logger.debug(f"{operation} ignored in state {self._state.value}")
        return False

    def _transition(self, to_state: ScreenState) -> None:
        if to_state not in self._ALLOWED_TRANSITIONS[self._state]:
            raise InvalidStateTransitionError(
                from_state=self._state.value,
                to_state=to_state.value,
            )
        self._state = to_state

    def _notify(self, key: str, severity: Severity, duration: Optional[int] = None) -> None:
        self._gateway.notify(translate(key, lang=self._lang), severity, duration)

    def _selected_id(self) -> Optional[Union[str, int]]:
        offer = self._selection.selected_offer
        return offer.ticket_id if offer else None
