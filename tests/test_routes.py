"""
Route tests for the buy-ticket screen.

Uses the Flask test client with TestingConfig (English messages, inline
booking submission) and a mocked booking API client factory.
"""

from unittest.mock import MagicMock

import pytest

from app import create_app
from core.exceptions import BookingAPIError, BookingRejectedError, SessionExpiredError


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
    factory.base_url = "http://booking.test"
    factory.with_cookies.return_value = factory
    factory.create.return_value.__enter__.return_value = api_client
    factory.create.return_value.__exit__.return_value = False
    return factory


@pytest.fixture
def app(client_factory):
    app = create_app("config.TestingConfig", client_factory=client_factory)
    yield app
    app.config["SCREEN_REGISTRY"].clear()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def opened(client):
    """Test client with a loaded buy screen for event 42."""
    response = client.get("/buy?event_id=42")
    assert response.status_code == 200
    return client


def _notes(response):
    return [(n["category"], n["message"]) for n in response.get_json()["notifications"]]


class TestOpenScreen:
    def test_missing_event_id_goes_home_without_fetching(self, client, client_factory):
        response = client.get("/buy")

        assert response.status_code == 302
        assert response.headers["Location"].endswith("/")
        client_factory.create.assert_not_called()

    def test_blank_event_id_goes_home(self, client, client_factory):
        response = client.get("/buy?event_id=%20%20")
        assert response.status_code == 302
        client_factory.create.assert_not_called()

    def test_open_returns_view(self, client):
        data = client.get("/buy?event_id=42").get_json()

        assert data["state"] == "ready"
        assert data["event"]["name"] == "Hanoi Jazz Night"
        assert [o["ticket_id"] for o in data["offers"]] == ["T1", "T2", "T3"]
        assert data["offers"][0]["selected"] is True
        assert data["selection"]["quantity"] == 1
        assert data["selection"]["payment_method"] == "zalopay"
        assert data["max_tickets_per_order"] == 8
        assert data["notifications"] == []
        assert data["fetched_at"]
        assert data["snapshot_age_seconds"] >= 0

    def test_event_id_is_sanitized(self, client, api_client):
        client.get("/buy", query_string={"event_id": "<b>42</b>"})
        api_client.get_event.assert_called_once_with("42")

    def test_auth_cookie_forwarded(self, client, client_factory):
        client.set_cookie("token", "abc")
        client.get("/buy?event_id=42")
        client_factory.with_cookies.assert_called_once_with({"token": "abc"})

    def test_load_failure_shows_error_and_empty_state(self, client, api_client):
        api_client.list_offers.side_effect = BookingAPIError("HTTP 500", status_code=500)

        response = client.get("/buy?event_id=42")
        data = response.get_json()

        assert data["state"] == "load_failed"
        assert data["offers"] == []
        assert data["message"] == "No event or tickets found"
        assert _notes(response) == [("error", "Failed to load event data")]

    def test_reopening_replaces_previous_screen(self, client, app):
        first = client.get("/buy?event_id=42").get_json()["screen_id"]
        second = client.get("/buy?event_id=42").get_json()["screen_id"]

        registry = app.config["SCREEN_REGISTRY"]
        assert first != second
        assert registry.get(first) is None
        assert registry.get(second) is not None


class TestSelectionRoutes:
    def test_sold_out_ticket(self, opened):
        response = opened.post("/buy/select", data={"ticket_id": "T2"}, follow_redirects=True)

        assert response.get_json()["selection"]["ticket_id"] == "T1"
        assert _notes(response) == [("warning", "This ticket type is sold out!")]

    def test_unknown_ticket(self, opened):
        response = opened.post("/buy/select", data={"ticket_id": "T99"}, follow_redirects=True)
        assert _notes(response) == [("warning", "Unknown ticket type")]

    def test_select_other_ticket(self, opened):
        response = opened.post("/buy/select", data={"ticket_id": "T3"}, follow_redirects=True)
        assert response.get_json()["selection"]["ticket_id"] == "T3"

    def test_post_redirects_to_screen(self, opened):
        response = opened.post("/buy/quantity/increase")
        assert response.status_code == 302
        assert response.headers["Location"].endswith("/buy/screen")

    def test_quantity_capped_by_remaining(self, opened):
        for _ in range(4):
            opened.post("/buy/quantity/increase")
        data = opened.get("/buy/screen").get_json()

        assert data["selection"]["quantity"] == 3
        assert data["selection"]["total_price"] == 300000
        assert data["selection"]["display_total"] == "300.000 VND"
        assert data["can_increase"] is False

    def test_decrease(self, opened):
        opened.post("/buy/quantity/increase")
        response = opened.post("/buy/quantity/decrease", follow_redirects=True)
        assert response.get_json()["selection"]["quantity"] == 1

    def test_payment_method(self, opened):
        response = opened.post(
            "/buy/payment-method", data={"method": "online-banking"}, follow_redirects=True
        )
        assert response.get_json()["selection"]["payment_method"] == "online-banking"

    def test_invalid_payment_method(self, opened):
        response = opened.post("/buy/payment-method", data={"method": "cash"}, follow_redirects=True)

        assert response.get_json()["selection"]["payment_method"] == "zalopay"
        assert _notes(response) == [("error", "Invalid payment method")]

    def test_unknown_ticket_while_confirming_is_ignored(self, opened):
        opened.post("/buy/confirmation/open")
        response = opened.post("/buy/select", data={"ticket_id": "T99"}, follow_redirects=True)
        data = response.get_json()

        assert data["state"] == "confirming"
        assert data["selection"]["ticket_id"] == "T1"
        assert data["notifications"] == []

    def test_invalid_payment_method_while_confirming_is_ignored(self, opened):
        opened.post("/buy/confirmation/open")
        response = opened.post("/buy/payment-method", data={"method": "cash"}, follow_redirects=True)

        assert response.get_json()["state"] == "confirming"
        assert response.get_json()["notifications"] == []

    def test_numeric_ticket_id_selected_and_booked_as_number(self, client, api_client):
        api_client.list_offers.return_value = [
            {"ticket_id": 7, "ticket_type": "A", "price_vnd": 1000, "remaining_quantity": 5},
            {"ticket_id": 8, "ticket_type": "B", "price_vnd": 2000, "remaining_quantity": 5},
        ]
        client.get("/buy?event_id=42")

        data = client.post("/buy/select", data={"ticket_id": "8"}, follow_redirects=True).get_json()
        assert data["selection"]["ticket_id"] == 8

        client.post("/buy/confirmation/open")
        client.post("/buy/submit")
        assert api_client.create_booking.call_args[0][0]["ticket_id"] == 8


class TestConfirmationAndSubmit:
    def test_open_and_close_confirmation(self, opened):
        data = opened.post("/buy/confirmation/open", follow_redirects=True).get_json()
        assert data["state"] == "confirming"
        assert data["summary"]["display_total"] == "100.000 VND"

        data = opened.post("/buy/confirmation/close", follow_redirects=True).get_json()
        assert data["state"] == "ready"
        assert data["summary"] is None

    def test_successful_booking_lands_on_tickets(self, opened, api_client, app):
        opened.post("/buy/quantity/increase")
        opened.post("/buy/confirmation/open")

        response = opened.post("/buy/submit", follow_redirects=True)

        assert response.get_json()["page"] == "tickets"
        assert _notes(response) == [("success", "Booking successful!")]
        assert api_client.create_booking.call_args[0][0]["quantity"] == 2
        assert len(app.config["SCREEN_REGISTRY"]) == 0

    def test_session_expired_lands_on_login(self, opened, api_client):
        api_client.create_booking.side_effect = SessionExpiredError()
        opened.post("/buy/confirmation/open")

        response = opened.post("/buy/submit", follow_redirects=True)

        assert response.get_json()["page"] == "login"
        assert _notes(response) == [
            ("warning", "Your session has expired, please log in again")
        ]

    def test_rejected_booking_stays_on_screen(self, opened, api_client):
        api_client.create_booking.side_effect = BookingRejectedError("Sold out", 409)
        opened.post("/buy/confirmation/open")

        response = opened.post("/buy/submit", follow_redirects=True)
        data = response.get_json()

        assert data["state"] == "ready"
        assert data["selection"]["ticket_id"] == "T1"
        assert _notes(response) == [("error", "Could not book tickets, please try again")]

    def test_submit_without_confirmation_does_nothing(self, opened, api_client):
        response = opened.post("/buy/submit", follow_redirects=True)

        assert response.get_json()["state"] == "ready"
        api_client.create_booking.assert_not_called()


class TestScreenLifecycle:
    def test_actions_without_screen_go_home(self, client):
        response = client.post("/buy/quantity/increase", follow_redirects=True)

        assert response.get_json()["page"] == "home"
        assert _notes(response)[0][0] == "warning"

    def test_close_screen(self, opened, app):
        response = opened.post("/buy/close")

        assert response.status_code == 302
        assert len(app.config["SCREEN_REGISTRY"]) == 0
        assert opened.get("/buy/screen", follow_redirects=True).get_json()["page"] == "home"


class TestAppRoutes:
    def test_health(self, opened):
        data = opened.get("/health").get_json()
        assert data["status"] == "ok"
        assert data["open_screens"] == 1

    def test_unknown_page_redirects_home(self, client):
        response = client.get("/no/such/page", follow_redirects=True)

        assert response.get_json()["page"] == "home"
        assert _notes(response) == [("warning", "Page not found")]

    def test_language_switch_applies_to_open_screen(self, opened):
        opened.get("/set_language/vi")
        response = opened.post("/buy/select", data={"ticket_id": "T2"}, follow_redirects=True)

        categories_and_messages = _notes(response)
        assert categories_and_messages[-1][0] == "warning"
        assert categories_and_messages[-1][1] != "This ticket type is sold out!"

    def test_unsupported_language(self, client):
        response = client.get("/set_language/xx", follow_redirects=True)
        assert _notes(response) == [("error", "Unsupported language: xx")]
