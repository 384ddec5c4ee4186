"""Shared fixtures: event records, ticket lists and snapshots."""

import pytest

from models.event import InventorySnapshot


EVENT_RECORD = {
    "event_id": "42",
    "event_name": "Hanoi Jazz Night",
    "event_date": "2026-11-20T19:30:00Z",
    "event_location": "Hanoi Opera House",
}

TICKET_RECORDS = [
    {"ticket_id": "T1", "ticket_type": "Standard", "price_vnd": 100000, "remaining_quantity": 3},
    {"ticket_id": "T2", "ticket_type": "VIP", "price_vnd": 250000, "remaining_quantity": 0},
    {"ticket_id": "T3", "ticket_type": "Early bird", "price_vnd": 80000, "remaining_quantity": 20},
]


def make_snapshot(tickets=None, event=None):
    """Build a snapshot from (copies of) the sample records."""
    return InventorySnapshot.from_api_data(
        dict(event or EVENT_RECORD),
        [dict(t) for t in (TICKET_RECORDS if tickets is None else tickets)],
        event_id="42",
    )


@pytest.fixture
def snapshot():
    """Snapshot with T1 (3 left), T2 (sold out) and T3 (20 left)."""
    return make_snapshot()


@pytest.fixture
def event_record():
    return dict(EVENT_RECORD)


@pytest.fixture
def ticket_records():
    return [dict(t) for t in TICKET_RECORDS]
