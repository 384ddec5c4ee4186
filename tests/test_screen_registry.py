"""
Unit tests for BookingScreen and ScreenRegistry.

Bookings run inline (run_async=False) unless a test needs a late result.
"""

import logging
import threading
from unittest.mock import MagicMock

import pytest

from core.exceptions import BookingAPIError, ScreenNotFoundError, SessionExpiredError
from core.gateway import Destination, Severity
from models.selection import ScreenState
from logging_config import get_screen_logger
from services.screen_registry import BookingScreen, ScreenRegistry


# Fixtures

@pytest.fixture
def api_client(event_record, ticket_records):
    client = MagicMock()
    client.get_event.return_value = event_record
    client.list_offers.return_value = ticket_records
    client.create_booking.return_value = {"booking_id": 1}
    return client


@pytest.fixture
def client_factory(api_client):
    factory = MagicMock()
    factory.create.return_value.__enter__.return_value = api_client
    factory.create.return_value.__exit__.return_value = False
    return factory


@pytest.fixture
def registry():
    return ScreenRegistry()


@pytest.fixture
def screen(registry, client_factory):
    """Open, loaded screen with inline submission."""
    screen = BookingScreen.create("42", client_factory, lang="en", run_async=False)
    registry.open(screen)
    screen.load()
    return screen


def _book(screen):
    assert screen.machine.open_confirmation()
    assert screen.machine.confirm_and_submit()


class TestBookingScreen:
    def test_load_success(self, screen):
        assert screen.state is ScreenState.READY
        assert screen.machine.snapshot.event.event_id == "42"

    def test_load_failure(self, client_factory, api_client):
        api_client.get_event.side_effect = BookingAPIError("HTTP 500")
        screen = BookingScreen.create("42", client_factory, lang="en")

        assert screen.load() is False
        assert screen.state is ScreenState.LOAD_FAILED
        notes = screen.outbox.drain_notifications()
        assert [(n.message, n.severity) for n in notes] == [
            ("Failed to load event data", Severity.ERROR)
        ]

    def test_booking_success_end_to_end(self, screen, api_client):
        _book(screen)

        assert screen.state is ScreenState.NAVIGATED
        assert screen.outbox.pop_destination() is Destination.TICKETS
        payload = api_client.create_booking.call_args[0][0]
        assert payload["ticket_id"] == "T1"
        assert payload["quantity"] == 1

    def test_booking_session_expired_end_to_end(self, screen, api_client):
        api_client.create_booking.side_effect = SessionExpiredError()
        _book(screen)

        assert screen.state is ScreenState.NAVIGATED
        assert screen.outbox.pop_destination() is Destination.LOGIN

    def test_unregistered_screen_delivers_directly(self, client_factory):
        screen = BookingScreen.create("42", client_factory, lang="en", run_async=False)
        screen.load()
        _book(screen)
        assert screen.state is ScreenState.NAVIGATED

    def test_screen_ids_are_unique(self, client_factory):
        first = BookingScreen.create("42", client_factory)
        second = BookingScreen.create("42", client_factory)
        assert first.screen_id != second.screen_id


class TestScreenRegistry:
    def test_get(self, registry, screen):
        assert registry.get(screen.screen_id) is screen
        assert registry.get(None) is None
        assert registry.get("unknown") is None
        assert len(registry) == 1

    def test_get_or_raise(self, registry):
        with pytest.raises(ScreenNotFoundError):
            registry.get_or_raise("unknown")

    def test_close(self, registry, screen):
        assert registry.close(screen.screen_id) is True

        assert screen.state is ScreenState.CLOSED
        assert registry.get(screen.screen_id) is None
        assert registry.close(screen.screen_id) is False

    def test_late_outcome_for_closed_screen_discarded(
        self, registry, client_factory, api_client
    ):
        release = threading.Event()
        delivered = threading.Event()

        def slow_booking(payload):
            release.wait(5.0)
            return {}

        api_client.create_booking.side_effect = slow_booking
        screen = BookingScreen.create("42", client_factory, lang="en", run_async=True)
        registry.open(screen)
        screen.load()

        real_deliver = registry.deliver
        results = []

        def tracking_deliver(screen_id, outcome):
            results.append(real_deliver(screen_id, outcome))
            delivered.set()

        registry.deliver = tracking_deliver

        _book(screen)
        assert screen.state is ScreenState.SUBMITTING

        registry.close(screen.screen_id)
        release.set()

        assert delivered.wait(5.0)
        assert results == [False]
        assert screen.state is ScreenState.CLOSED
        assert screen.outbox.has_pending is False

    def test_clear(self, registry, screen, client_factory):
        other = BookingScreen.create("7", client_factory)
        registry.open(other)

        assert registry.clear() == 2
        assert len(registry) == 0
        assert other.state is ScreenState.CLOSED

    def test_shutdown_closes_everything(self, registry, screen):
        registry.shutdown(timeout_per_screen=0.1)
        assert len(registry) == 0
        assert screen.state is ScreenState.CLOSED

    def test_get_refreshes_last_touched(self, registry, screen):
        screen.last_touched -= 100
        registry.get(screen.screen_id)
        assert screen.idle_seconds() < 100


class TestIdleEviction:
    """Abandoned screens are reclaimed on the next open()."""

    def test_idle_screens_evicted_on_open(self, client_factory):
        registry = ScreenRegistry(idle_timeout_seconds=60)
        abandoned = [BookingScreen.create("42", client_factory) for _ in range(50)]
        for old in abandoned:
            registry.open(old)
            old.last_touched -= 3600

        fresh = BookingScreen.create("42", client_factory)
        registry.open(fresh)

        assert len(registry) == 1
        assert registry.get(fresh.screen_id) is fresh
        assert all(old.state is ScreenState.CLOSED for old in abandoned)

    def test_recently_used_screen_kept(self, client_factory):
        registry = ScreenRegistry(idle_timeout_seconds=60)
        active = BookingScreen.create("42", client_factory)
        registry.open(active)

        registry.open(BookingScreen.create("7", client_factory))

        assert len(registry) == 2
        assert active.state is ScreenState.LOADING

    def test_screen_with_booking_in_flight_kept(self, client_factory, api_client):
        release = threading.Event()

        def slow_booking(payload):
            release.wait(5.0)
            return {}

        api_client.create_booking.side_effect = slow_booking

        registry = ScreenRegistry(idle_timeout_seconds=60)
        busy = BookingScreen.create("42", client_factory, lang="en", run_async=True)
        registry.open(busy)
        busy.load()
        _book(busy)
        busy.last_touched -= 3600

        try:
            assert registry.evict_idle() == 0
            assert registry.get(busy.screen_id) is busy
            assert busy.state is ScreenState.SUBMITTING
        finally:
            release.set()
            busy.submitter.shutdown(timeout=5.0)

    def test_eviction_disabled(self, client_factory):
        registry = ScreenRegistry(idle_timeout_seconds=None)
        old = BookingScreen.create("42", client_factory)
        registry.open(old)
        old.last_touched -= 3600

        assert registry.evict_idle() == 0
        assert len(registry) == 1


class TestScreenLogger:
    def test_screens_share_one_logger(self, client_factory):
        first = BookingScreen.create("42", client_factory)
        second = BookingScreen.create("42", client_factory)

        assert isinstance(first.logger, logging.LoggerAdapter)
        assert first.logger.logger is second.logger.logger
        assert first.logger.extra == {"screen_id": first.screen_id[:8]}

    def test_messages_tagged_with_screen_id(self):
        adapter = get_screen_logger("abcdef0123456789")
        msg, _ = adapter.process("Loaded", {})
        assert msg == "[screen abcdef01] Loaded"
