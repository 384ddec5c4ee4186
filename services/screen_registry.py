"""
Buy screen lifetime management.

A BookingScreen bundles everything one open buy-ticket screen owns: its
state machine, its gateway outbox and its single-flight submitter. The
ScreenRegistry keeps the screens that are currently open, one per browser
session, keyed by a random screen id stored in the Flask session.

LATE RESULTS:
    Booking calls cannot be cancelled. When the user leaves the screen
    (opens another event, navigates away) the screen is closed and removed
    from the registry. A booking outcome that arrives afterwards is routed
    through ScreenRegistry.deliver(), finds no screen, and is dropped.

IDLE SCREENS:
    A session that never comes back leaves its screen behind. Every
    get() refreshes the screen's last-touched time; open() first closes
    screens idle past the timeout unless a booking is in flight.

Thread Safety:
    - Registry operations take the registry lock
    - Screen state changes take the screen's own machine lock
    - deliver() looks the screen up under the registry lock and applies the
      outcome outside it

Usage:
    registry = ScreenRegistry()
    screen = BookingScreen.create(event_id, client_factory, lang="vi")
    registry.open(screen)
    screen.load()
    ...
    registry.close(screen.screen_id)
"""

from __future__ import annotations

import threading
import time
import uuid
from typing import Dict, List, Optional

from core.api_client import BookingAPIClientFactory
from core.exceptions import ScreenNotFoundError, SnapshotLoadError
from core.gateway import GatewayOutbox
from models.booking import BookingOutcome, BookingRequest
from models.selection import ScreenState
from modules.i18n import DEFAULT_LANGUAGE
from modules.selection_machine import SelectionStateMachine
from services.booking_service import BookingSubmitter, OutcomeCallback
from services.snapshot_loader import SnapshotLoader
from logging_config import get_logger, get_screen_logger


# Module logger
logger = get_logger(__name__)

# Seconds a screen may go unused before open() reclaims it
DEFAULT_IDLE_TIMEOUT = 1800.0


class BookingScreen:
    """
    One open buy-ticket screen.

    Acts as the state machine's submitter: requests go to the
    BookingSubmitter, outcomes come back through the registry (when
    registered) so a closed screen never sees them.
    """

    def __init__(
        self,
        screen_id: str,
        event_id: str,
        client_factory: BookingAPIClientFactory,
        lang: str = DEFAULT_LANGUAGE,
        run_async: bool = True
    ):
        self.screen_id = screen_id
        self.event_id = event_id
        self.logger = get_screen_logger(screen_id)
        self.last_touched = time.monotonic()

        self._client_factory = client_factory
        self._registry: Optional["ScreenRegistry"] = None

        self.outbox = GatewayOutbox()
        self.submitter = BookingSubmitter(
            client_factory,
            name=screen_id,
            run_async=run_async,
            screen_logger=self.logger,
        )
        self.machine = SelectionStateMachine(
            self.outbox,
            submitter=self,
            lang=lang,
            screen_logger=self.logger,
        )

    @classmethod
    def create(
        cls,
        event_id: str,
        client_factory: BookingAPIClientFactory,
        lang: str = DEFAULT_LANGUAGE,
        run_async: bool = True
    ) -> "BookingScreen":
        """Create a screen with a fresh random id."""
        return cls(str(uuid.uuid4()), event_id, client_factory, lang, run_async)

    def load(self, loader: Optional[SnapshotLoader] = None) -> bool:
        """
        Load the event + tickets and leave LOADING.

        Returns:
            True if the snapshot was applied, False if the load failed
        """
        loader = loader or SnapshotLoader(self._client_factory)
        try:
            snapshot = loader.load(self.event_id)
        except SnapshotLoadError as e:
            self.machine.fail_load(e)
            return False
        return self.machine.apply_snapshot(snapshot)

    def submit(self, request: BookingRequest, on_outcome: OutcomeCallback) -> None:
        """Submitter contract used by the state machine."""
        registry = self._registry

        def route_outcome(outcome: BookingOutcome) -> None:
            if registry is None:
                on_outcome(outcome)
            else:
                registry.deliver(self.screen_id, outcome)

        self.submitter.submit(request, route_outcome)

    def close(self) -> None:
        """End the screen; later outcomes are ignored."""
        self.machine.close()

    @property
    def state(self) -> ScreenState:
        return self.machine.state

    def touch(self) -> None:
        """Mark the screen as used by its browser session."""
        self.last_touched = time.monotonic()

    def idle_seconds(self) -> float:
        return time.monotonic() - self.last_touched

    def attach(self, registry: "ScreenRegistry") -> None:
        self._registry = registry


class ScreenRegistry:
    """
    Thread-safe map of open screens.

    Closing a screen removes it; there is no way back. A closed screen id
    stays unknown for the rest of the process.

    Screens whose session stopped coming back are evicted on the next
    open() once idle longer than idle_timeout_seconds. A screen with a
    booking in flight is never evicted. None disables eviction.
    """

    def __init__(self, idle_timeout_seconds: Optional[float] = DEFAULT_IDLE_TIMEOUT):
        self._screens: Dict[str, BookingScreen] = {}
        self._lock = threading.Lock()
        self.idle_timeout_seconds = idle_timeout_seconds

    def __len__(self) -> int:
        with self._lock:
            return len(self._screens)

    def open(self, screen: BookingScreen) -> None:
        """Register a new screen, evicting idle ones first."""
        self.evict_idle()
        screen.attach(self)
        with self._lock:
            self._screens[screen.screen_id] = screen
        logger.debug(f"Opened screen {screen.screen_id[:8]} for event {screen.event_id}")

    def get(self, screen_id: Optional[str]) -> Optional[BookingScreen]:
        """Return the open screen with this id, or None. Counts as a use."""
        if not screen_id:
            return None
        with self._lock:
            screen = self._screens.get(screen_id)
        if screen is not None:
            screen.touch()
        return screen

    def get_or_raise(self, screen_id: Optional[str]) -> BookingScreen:
        """
        Return the open screen with this id.

        Raises:
            ScreenNotFoundError: If no such screen is open
        """
        screen = self.get(screen_id)
        if screen is None:
            raise ScreenNotFoundError(screen_id)
        return screen

    def close(self, screen_id: Optional[str]) -> bool:
        """
        Close and forget a screen.

        Returns:
            True if a screen was closed
        """
        if not screen_id:
            return False
        with self._lock:
            screen = self._screens.pop(screen_id, None)
        if screen is None:
            return False
        screen.close()
        logger.debug(f"Closed screen {screen_id[:8]}")
        return True

    def deliver(self, screen_id: str, outcome: BookingOutcome) -> bool:
        """
        Route a booking outcome to its screen.

        Returns:
            True if the screen was still open and applied the outcome
        """
        with self._lock:
            screen = self._screens.get(screen_id)
        if screen is None:
            logger.info(
                f"Discarding {outcome.kind.value} outcome for closed screen {screen_id[:8]}"
            )
            return False
        return screen.machine.resolve_submission(outcome)

    def evict_idle(self) -> int:
        """
        Close screens idle longer than the timeout.

        Returns:
            Number of screens evicted
        """
        if self.idle_timeout_seconds is None:
            return 0

        with self._lock:
            screens = list(self._screens.values())
        stale = [
            screen for screen in screens
            if screen.idle_seconds() > self.idle_timeout_seconds
            and screen.state is not ScreenState.SUBMITTING
        ]
        with self._lock:
            evicted = [
                screen for screen in stale
                if self._screens.pop(screen.screen_id, None) is screen
            ]

        for screen in evicted:
            screen.close()
        if evicted:
            logger.info(f"Evicted {len(evicted)} idle screens")
        return len(evicted)

    def clear(self) -> int:
        """
        Close every screen.

        Returns:
            Number of screens closed
        """
        with self._lock:
            screens: List[BookingScreen] = list(self._screens.values())
            self._screens.clear()
        for screen in screens:
            screen.close()
        logger.info(f"Closed {len(screens)} open screens")
        return len(screens)

    def shutdown(self, timeout_per_screen: float = 5.0) -> None:
        """Wait for in-flight bookings, then close everything."""
        with self._lock:
            screens = list(self._screens.values())
        for screen in screens:
            screen.submitter.shutdown(timeout=timeout_per_screen)
        self.clear()
