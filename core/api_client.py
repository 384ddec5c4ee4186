"""
HTTP client for the remote booking service.

Wraps the three endpoints the buy screen needs:

    GET  {base}/api/events/{eventId}        -> event record
    GET  {base}/api/tickets?eventId={id}    -> list of ticket types
    POST {base}/api/bookings                -> create booking

THREAD SAFETY:
    - requests.Session is not safe to share between threads
    - Each worker thread creates its OWN BookingAPIClient instance
    - Use BookingAPIClientFactory to hand threads a ready-configured client

FAILURE CLASSIFICATION:
    - HTTP 401                -> SessionExpiredError
    - Other HTTP 4xx          -> BookingRejectedError (reason from body)
    - 5xx / network / timeout -> BookingAPIError
    - Undecodable JSON        -> BookingAPIError

Usage:
    factory = BookingAPIClientFactory("http://localhost:3001", timeout=10.0,
                                      cookies={"token": "..."})

    # Worker thread creates its own client
    with factory.create() as api_client:
        event = api_client.get_event("42")
        offers = api_client.list_offers("42")
        api_client.create_booking(request.to_payload())
"""

from __future__ import annotations

import logging
import threading
from typing import Dict, Any, List, Optional

import requests

from .exceptions import BookingAPIError, BookingRejectedError, SessionExpiredError


class BookingAPIClient:
    """
    Thin wrapper around one requests.Session.

    Each thread should create its own instance of this class.
    The user's auth cookies are attached to every request, mirroring a
    browser request made with credentials.

    Attributes:
        base_url: Service root (no trailing slash)
        timeout: Per-request timeout in seconds
        thread_id: ID of the thread that created this client
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        cookies: Optional[Dict[str, str]] = None,
        session: Optional[requests.Session] = None,
        logger: Optional[logging.Logger] = None
    ):
        """
        Initialize API client.

        Args:
            base_url: Booking service root URL
            timeout: Request timeout in seconds
            cookies: Auth cookies forwarded from the user's browser request
            session: Pre-built session (tests inject a mock here)
            logger: Logger instance (creates default if not provided)

        Raises:
            ValueError: If base_url is empty
        """
        if not base_url:
            raise ValueError("base_url is required for BookingAPIClient")

        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        if cookies:
            self._session.cookies.update(cookies)
        self._logger = logger or logging.getLogger("core.api_client")
        self._thread_id = threading.get_ident()

    @property
    def thread_id(self) -> int:
        """ID of the thread that owns this client."""
        return self._thread_id

    def __enter__(self) -> "BookingAPIClient":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """Release pooled connections."""
        self._session.close()

    # -------------------------------------------------------------------------
    # Endpoints
    # -------------------------------------------------------------------------

    def get_event(self, event_id: str) -> Dict[str, Any]:
        """
        Fetch one event record.

        Raises:
            BookingAPIError: On not-found, network or decode failure
        """
        data = self._request("GET", f"/api/events/{event_id}")
        if not isinstance(data, dict):
            raise BookingAPIError(f"Unexpected event response for {event_id}")
        return data

    def list_offers(self, event_id: str) -> List[Dict[str, Any]]:
        """
        Fetch the ticket types for an event, in display order.

        An empty (or null) list is a valid "no tickets" answer.

        Raises:
            BookingAPIError: On network or decode failure
        """
        data = self._request("GET", "/api/tickets", params={"eventId": event_id})
        if data is None:
            return []
        if not isinstance(data, list):
            raise BookingAPIError(f"Unexpected ticket list response for {event_id}")
        return data

    def create_booking(self, payload: Dict[str, Any]) -> Any:
        """
        Submit one booking.

        Args:
            payload: BookingRequest.to_payload()

        Returns:
            Decoded response body (may be None)

        Raises:
            SessionExpiredError: Service answered 401
            BookingRejectedError: Service answered another 4xx
            BookingAPIError: Network failure or 5xx
        """
        return self._request("POST", "/api/bookings", json=payload)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _request(self, method: str, path: str, **kwargs) -> Any:
        url = f"{self.base_url}{path}"
        self._logger.debug(f"[Thread {self._thread_id}] {method} {url}")

        try:
            response = self._session.request(method, url, timeout=self.timeout, **kwargs)
        except requests.Timeout as e:
            self._logger.warning(f"[Thread {self._thread_id}] {method} {url} timed out: {e}")
            raise BookingAPIError(
                f"{method} {path} timed out after {self.timeout:.1f}s"
            ) from e
        except requests.RequestException as e:
            self._logger.warning(f"[Thread {self._thread_id}] {method} {url} failed: {e}")
            raise BookingAPIError(f"{method} {path} failed: {e}") from e

        self._raise_for_status(response, method, path)

        if not response.content:
            return None

        try:
            return response.json()
        except ValueError as e:
            self._logger.error(f"[Thread {self._thread_id}] Invalid JSON from {url}: {e}")
            raise BookingAPIError(
                f"Invalid JSON in {method} {path} response",
                status_code=response.status_code,
            ) from e

    def _raise_for_status(self, response: requests.Response, method: str, path: str) -> None:
        status = response.status_code
        if status < 400:
            return

        if status == 401:
            raise SessionExpiredError()

        reason = self._error_reason(response)
        if 400 <= status < 500:
            raise BookingRejectedError(reason, status_code=status)

        raise BookingAPIError(
            f"{method} {path} returned HTTP {status}: {reason}",
            status_code=status,
        )

    @staticmethod
    def _error_reason(response: requests.Response) -> str:
        """Pull a human-readable reason out of an error response."""
        try:
            body = response.json()
        except ValueError:
            body = None

        if isinstance(body, dict):
            for key in ("message", "error", "detail"):
                if body.get(key):
                    return str(body[key])

        return response.reason or f"HTTP {response.status_code}"


class BookingAPIClientFactory:
    """
    Builds per-thread BookingAPIClient instances with shared settings.

    Holds only immutable configuration, so one factory can be shared by
    all threads of a screen.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        cookies: Optional[Dict[str, str]] = None
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.cookies = dict(cookies or {})

    def create(self, logger: Optional[logging.Logger] = None) -> BookingAPIClient:
        """Create a new client for the calling thread."""
        return BookingAPIClient(
            base_url=self.base_url,
            timeout=self.timeout,
            cookies=self.cookies,
            logger=logger,
        )

    def with_cookies(self, cookies: Dict[str, str]) -> "BookingAPIClientFactory":
        """Copy of this factory carrying a specific user's auth cookies."""
        return BookingAPIClientFactory(self.base_url, self.timeout, cookies)
