"""
Buy-ticket screen routes.

Opens a screen for an event, forwards user input to its state machine and
turns the screen's gateway outbox into Flask flash() messages and
redirect()s.

Flow:
    GET  /buy?event_id=42          open + load screen, return view
    POST /buy/select               choose ticket type
    POST /buy/quantity/increase    +1 ticket
    POST /buy/quantity/decrease    -1 ticket
    POST /buy/payment-method       choose payment method
    POST /buy/confirmation/open    show summary sheet
    POST /buy/confirmation/close   hide summary sheet
    POST /buy/submit               confirm and book
    GET  /buy/screen               current view (poll while submitting)
    POST /buy/close                leave the screen

Every POST redirects to /buy/screen (post/redirect/get) unless the screen
asked to navigate elsewhere.
"""

from typing import Any, Callable, Dict, Optional

import bleach
from flask import (
    Blueprint,
    current_app,
    flash,
    get_flashed_messages,
    redirect,
    request,
    session,
    url_for,
)

from core.exceptions import ScreenNotFoundError
from core.gateway import Destination
from models.selection import ScreenState
from modules.i18n import resolve_language, translate
from services.screen_registry import BookingScreen, ScreenRegistry
from logging_config import get_logger


# Module logger
logger = get_logger(__name__)

buy_bp = Blueprint("buy", __name__)

# Where each gateway destination lives in this app
DESTINATION_ENDPOINTS = {
    Destination.HOME: "main.index",
    Destination.LOGIN: "main.login",
    Destination.TICKETS: "main.tickets",
}

MAX_ID_LENGTH = 64


def _sanitize_id(value: Optional[str]) -> str:
    """Strip markup and whitespace from an identifier taken from user input."""
    if not value:
        return ""
    value = bleach.clean(str(value), tags=[], strip=True).strip()
    return value[:MAX_ID_LENGTH]


def _registry() -> ScreenRegistry:
    return current_app.config["SCREEN_REGISTRY"]


def _language() -> str:
    return resolve_language(
        session.get("language", current_app.config.get("DEFAULT_LANGUAGE"))
    )


def _auth_cookies() -> Dict[str, str]:
    """The user's login cookies, forwarded to the booking service."""
    names = current_app.config.get("BOOKING_API_AUTH_COOKIES", ())
    return {name: request.cookies[name] for name in names if name in request.cookies}


def _flush_outbox(screen: BookingScreen):
    """
    Move pending notifications into flash() and follow pending navigation.

    Returns:
        A redirect response if the screen navigated away, else None
    """
    for note in screen.outbox.drain_notifications():
        flash(note.message, note.severity.value)

    destination = screen.outbox.pop_destination()
    if destination is None:
        return None

    # The screen is finished once it navigates
    _registry().close(screen.screen_id)
    session.pop("screen_id", None)
    logger.info(f"Screen {screen.screen_id[:8]} navigating to {destination.value}")
    return redirect(url_for(DESTINATION_ENDPOINTS[destination]))


def _render(screen: BookingScreen):
    """JSON view of the screen plus any flashed messages."""
    navigation = _flush_outbox(screen)
    if navigation is not None:
        return navigation

    view: Dict[str, Any] = screen.machine.to_view()
    view["screen_id"] = screen.screen_id
    view["notifications"] = [
        {"category": category, "message": message}
        for category, message in get_flashed_messages(with_categories=True)
    ]
    return view


def _screen_not_found():
    flash(translate("screen.not_found", lang=_language()), "warning")
    return redirect(url_for("main.index"))


def _apply(action: Callable[[BookingScreen], Any]):
    """Run one user action on the current screen, then post/redirect/get."""
    try:
        screen = _registry().get_or_raise(session.get("screen_id"))
    except ScreenNotFoundError:
        return _screen_not_found()

    action(screen)

    navigation = _flush_outbox(screen)
    if navigation is not None:
        return navigation
    return redirect(url_for("buy.screen"))


@buy_bp.route("/buy", methods=["GET"])
def open_screen():
    """
    Open a buy screen for ?event_id=...

    Without an event id the user goes straight home and nothing is fetched.
    """
    event_id = _sanitize_id(request.args.get("event_id"))
    if not event_id:
        logger.info("Buy screen opened without event id, redirecting home")
        return redirect(url_for("main.index"))

    registry = _registry()

    # Only one buy screen per browser session
    registry.close(session.get("screen_id"))

    factory = current_app.config["API_CLIENT_FACTORY"].with_cookies(_auth_cookies())
    screen = BookingScreen.create(
        event_id,
        factory,
        lang=_language(),
        run_async=current_app.config.get("SUBMIT_ASYNC", True),
    )
    registry.open(screen)
    session["screen_id"] = screen.screen_id

    logger.info(f"Opened buy screen {screen.screen_id[:8]} for event {event_id}")
    screen.load()
    return _render(screen)


@buy_bp.route("/buy/screen", methods=["GET"])
def screen():
    """Current state of the open screen."""
    try:
        current = _registry().get_or_raise(session.get("screen_id"))
    except ScreenNotFoundError:
        return _screen_not_found()
    return _render(current)


@buy_bp.route("/buy/select", methods=["POST"])
def select():
    """Choose a ticket type by ticket_id."""
    ticket_id = _sanitize_id(request.form.get("ticket_id"))

    def action(screen: BookingScreen) -> None:
        if screen.state is not ScreenState.READY:
            # The machine ignores selection changes outside READY
            return
        snapshot = screen.machine.snapshot
        offer = snapshot.get_offer(ticket_id) if snapshot else None
        if offer is None:
            logger.warning(f"Unknown ticket id posted: {ticket_id!r}")
            flash(translate("selection.unknown_ticket", lang=_language()), "warning")
            return
        screen.machine.select_offer(offer)

    return _apply(action)


@buy_bp.route("/buy/quantity/increase", methods=["POST"])
def increase_quantity():
    return _apply(lambda screen: screen.machine.increase_quantity())


@buy_bp.route("/buy/quantity/decrease", methods=["POST"])
def decrease_quantity():
    return _apply(lambda screen: screen.machine.decrease_quantity())


@buy_bp.route("/buy/payment-method", methods=["POST"])
def payment_method():
    """Choose the payment method by its value (e.g. 'zalopay')."""
    method = _sanitize_id(request.form.get("method"))

    def action(screen: BookingScreen) -> None:
        if screen.state is not ScreenState.READY:
            return
        try:
            screen.machine.set_payment_method(method)
        except ValueError:
            logger.warning(f"Invalid payment method posted: {method!r}")
            flash(translate("selection.invalid_payment_method", lang=_language()), "error")

    return _apply(action)


@buy_bp.route("/buy/confirmation/open", methods=["POST"])
def open_confirmation():
    return _apply(lambda screen: screen.machine.open_confirmation())


@buy_bp.route("/buy/confirmation/close", methods=["POST"])
def close_confirmation():
    return _apply(lambda screen: screen.machine.close_confirmation())


@buy_bp.route("/buy/submit", methods=["POST"])
def submit():
    """
    Confirm the summary and send the booking.

    The booking runs in its own thread; poll /buy/screen until the screen
    leaves the submitting state or navigates away.
    """
    return _apply(lambda screen: screen.machine.confirm_and_submit())


@buy_bp.route("/buy/close", methods=["POST"])
def close_screen():
    """Leave the screen. A booking still in flight is left to finish unseen."""
    _registry().close(session.pop("screen_id", None))
    return redirect(url_for("main.index"))
