"""
Custom exceptions for TicketBookingWeb.

Exception Hierarchy:
    TicketBookingError (base)
    ├── SnapshotLoadError            - Event or ticket list could not be loaded
    ├── ScreenNotFoundError          - No open buy screen for this browser session
    ├── InvalidStateTransitionError  - Illegal screen state transition (programming error)
    ├── SubmissionInProgressError    - Second booking submitted while one is in flight
    └── BookingAPIError              - Remote booking service call failed
        ├── SessionExpiredError      - Login session no longer valid (HTTP 401)
        └── BookingRejectedError     - Service refused the request (other 4xx)

Usage:
    Load and submission errors are converted into user notifications by the
    screen. Selection violations (sold out, no ticket, too many tickets) are
    NOT exceptions - they are reported as notifications and leave state as-is.
"""

from typing import Optional, Dict, Any


class TicketBookingError(Exception):
    """
    Base exception for all TicketBookingWeb errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# SCREEN ERRORS
# =============================================================================

class SnapshotLoadError(TicketBookingError):
    """
    The event record or its ticket list could not be loaded.

    Both fetches must succeed for a snapshot to exist. Any network, HTTP or
    parse failure on either side collapses into this single error.
    The screen shows its empty/error state and does not retry.
    """

    def __init__(self, event_id: str, reason: str = ""):
        message = f"Failed to load event {event_id}"
        if reason:
            message = f"{message}: {reason}"
        details = {
            "event_id": event_id,
            "resolution": "Leave the screen and open it again to retry",
        }
        super().__init__(message, details)
        self.event_id = event_id
        self.reason = reason


class ScreenNotFoundError(TicketBookingError):
    """No buy screen is open for the current browser session."""

    def __init__(self, screen_id: Optional[str] = None):
        details = {"screen_id": screen_id} if screen_id else {}
        super().__init__("No open booking screen", details)
        self.screen_id = screen_id


class InvalidStateTransitionError(TicketBookingError):
    """
    Raised when an illegal screen state transition is attempted.

    Public operations check the state before transitioning, so this only
    surfaces when the transition table and an operation disagree.
    """

    def __init__(self, from_state: str, to_state: str):
        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message, {"from_state": from_state, "to_state": to_state})
        self.from_state = from_state
        self.to_state = to_state


class SubmissionInProgressError(TicketBookingError):
    """A booking is already in flight for this screen."""

    def __init__(self, ticket_id: Any = ""):
        details = {"ticket_id": ticket_id} if ticket_id != "" else {}
        super().__init__("A booking submission is already in progress", details)


# =============================================================================
# REMOTE SERVICE ERRORS
# =============================================================================

class BookingAPIError(TicketBookingError):
    """
    Base class for failures talking to the remote booking service.

    Covers connection errors, timeouts, 5xx responses and malformed bodies.
    Subclasses carry the classifications the screen branches on.
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        error_details = details or {}
        if status_code is not None:
            error_details["status_code"] = status_code
        super().__init__(message, error_details)
        self.status_code = status_code


class SessionExpiredError(BookingAPIError):
    """
    The user's login session is no longer valid (HTTP 401).

    Always routes the user to the login screen.
    """

    def __init__(self, message: str = "Login session has expired"):
        super().__init__(
            message,
            status_code=401,
            details={"resolution": "Log in again and retry the booking"},
        )


class BookingRejectedError(BookingAPIError):
    """
    The booking service refused the request (4xx other than 401).

    Raised for any endpoint; for GET requests this usually means not found.

    Typical causes:
    - Inventory sold out since the ticket list was fetched
    - Quantity over the service's own limits
    - Malformed or stale ticket identifier
    """

    def __init__(self, reason: str, status_code: int):
        super().__init__(f"Request rejected: {reason}", status_code=status_code)
        self.reason = reason
