"""
Booking submission service.

Turns one frozen BookingRequest into exactly one POST /api/bookings call
and classifies the result into a BookingOutcome.

THREAD MODEL:
    - One BookingSubmitter per buy screen
    - Each submission runs in its own worker thread ("Booking-<screen>")
    - The worker creates its OWN BookingAPIClient
    - The outcome is handed to the on_outcome callback from the worker thread

GUARANTEES:
    - At most one request in flight per submitter; a second submit() while
      one is running raises SubmissionInProgressError
    - No automatic retry
    - Never touches local inventory numbers; the service decides

Classification:
    2xx                      -> ACCEPTED
    401                      -> SESSION_EXPIRED
    other 4xx                -> REJECTED(reason)
    5xx / network / anything -> TRANSIENT_FAILURE

Usage:
    submitter = BookingSubmitter(client_factory, name=screen_id)
    submitter.submit(request, on_outcome=machine.resolve_submission)
"""

from __future__ import annotations

import threading
from typing import Callable, Optional

from core.api_client import BookingAPIClientFactory
from core.exceptions import (
    BookingAPIError,
    BookingRejectedError,
    SessionExpiredError,
    SubmissionInProgressError,
)
from models.booking import BookingOutcome, BookingRequest
from logging_config import ScreenLogger, get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


OutcomeCallback = Callable[[BookingOutcome], None]


class BookingSubmitter:
    """
    Single-flight booking submitter for one screen.

    Attributes:
        is_in_flight: Whether a request is currently outstanding
    """

    def __init__(
        self,
        client_factory: BookingAPIClientFactory,
        name: str = "",
        run_async: bool = True,
        screen_logger: Optional[ScreenLogger] = None
    ):
        """
        Initialize submitter.

        Args:
            client_factory: Builds the worker thread's API client
            name: Short identifier used in the worker thread name
            run_async: Run the call in a worker thread (False = inline,
                used by tests and CLI tools)
            screen_logger: Logger for the owning screen
        """
        self._client_factory = client_factory
        self._name = name[:8]
        self._run_async = run_async
        self._logger = screen_logger or logger

        self._in_flight = False
        self._lock = threading.Lock()
        self._thread: Optional[threading.Thread] = None

    @property
    def is_in_flight(self) -> bool:
        with self._lock:
            return self._in_flight

    def submit(self, request: BookingRequest, on_outcome: OutcomeCallback) -> None:
        """
        Send one booking.

        Returns immediately in async mode; on_outcome is called exactly
        once, from the worker thread, when the call resolves.

        Raises:
            SubmissionInProgressError: If a request is already in flight
        """
        with self._lock:
            if self._in_flight:
                raise SubmissionInProgressError(request.ticket_id)
            self._in_flight = True

        if not self._run_async:
            self._submission_main(request, on_outcome)
            return

        thread = threading.Thread(
            target=self._submission_main,
            args=(request, on_outcome),
            name=f"Booking-{self._name or 'screen'}",
            daemon=True
        )
        self._thread = thread
        try:
            thread.start()
        except RuntimeError:
            with self._lock:
                self._in_flight = False
            raise

    def shutdown(self, timeout: float = 5.0) -> None:
        """Wait for an outstanding submission thread to finish."""
        thread = self._thread
        if thread is not None and thread.is_alive():
            thread.join(timeout=timeout)
            if thread.is_alive():
                self._logger.warning("Booking thread did not complete in time")

    def _submission_main(self, request: BookingRequest, on_outcome: OutcomeCallback) -> None:
        """
        Worker body: call the service, classify, report.

        Every exception becomes an outcome; nothing escapes the thread.
        """
        if self._run_async:
            set_thread_name(f"Booking-{self._name or 'screen'}")

        try:
            outcome = self.send(request)
        finally:
            with self._lock:
                self._in_flight = False

        try:
            on_outcome(outcome)
        except Exception as e:
            self._logger.error(f"Outcome handler failed: {e}", exc_info=True)

    def send(self, request: BookingRequest) -> BookingOutcome:
        """Perform the POST on a fresh client and classify the result."""
        self._logger.info(
            f"POST booking: ticket={request.ticket_id}, quantity={request.quantity}, "
            f"date={request.booking_date}"
        )

        try:
            with self._client_factory.create(logger=self._logger) as api_client:
                api_client.create_booking(request.to_payload())

        except SessionExpiredError:
            self._logger.warning("Booking refused: session expired")
            return BookingOutcome.session_expired()

        except BookingRejectedError as e:
            self._logger.warning(f"Booking rejected (HTTP {e.status_code}): {e.reason}")
            return BookingOutcome.rejected(e.reason)

        except BookingAPIError as e:
            self._logger.error(f"Booking call failed: {e.message}")
            return BookingOutcome.transient_failure(e.message)

        except Exception as e:
            self._logger.error(f"Unexpected booking failure: {e}", exc_info=True)
            return BookingOutcome.transient_failure(str(e))

        self._logger.info("Booking accepted by service")
        return BookingOutcome.accepted()
