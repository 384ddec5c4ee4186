"""
Inventory snapshot loader.

Fetches the event record and its ticket list for one event id and builds
an immutable InventorySnapshot.

CONCURRENT JOIN, FAIL FAST:
    - Both fetches run at the same time, each in its own worker thread
    - Each worker creates its OWN BookingAPIClient (sessions are per-thread)
    - The snapshot exists only if BOTH succeed
    - The first failure fails the whole load; the other call is not awaited
      and its result is discarded when it eventually arrives
    - No automatic retry

Usage:
    loader = SnapshotLoader(client_factory)
    try:
        snapshot = loader.load(event_id)
    except SnapshotLoadError as e:
        machine.fail_load(e)
    else:
        machine.apply_snapshot(snapshot)
"""

from __future__ import annotations

from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Optional

from core.api_client import BookingAPIClientFactory
from core.exceptions import SnapshotLoadError
from models.event import InventorySnapshot
from logging_config import get_logger, set_thread_name


# Module logger
logger = get_logger(__name__)


class SnapshotLoader:
    """
    Loads one event + ticket list pair.

    Attributes:
        timeout_seconds: Upper bound on the whole join (None = rely on the
            client's per-request timeout)
    """

    def __init__(
        self,
        client_factory: BookingAPIClientFactory,
        timeout_seconds: Optional[float] = None
    ):
        self._client_factory = client_factory
        self.timeout_seconds = timeout_seconds

    def load(self, event_id: str) -> InventorySnapshot:
        """
        Fetch event and offers concurrently and join them.

        Args:
            event_id: Event identifier (required)

        Returns:
            InventorySnapshot with offers in service order

        Raises:
            ValueError: If event_id is blank (caller precondition)
            SnapshotLoadError: If either fetch or parsing fails
        """
        if not event_id or not str(event_id).strip():
            raise ValueError("event_id is required to load a snapshot")

        logger.info(f"Loading snapshot for event {event_id}")

        executor = ThreadPoolExecutor(max_workers=2, thread_name_prefix="Loader")
        try:
            event_future = executor.submit(self._fetch, "event", event_id)
            offers_future = executor.submit(self._fetch, "tickets", event_id)

            done, not_done = wait(
                [event_future, offers_future],
                timeout=self.timeout_seconds,
                return_when=FIRST_EXCEPTION,
            )

            for future in done:
                error = future.exception()
                if error is not None:
                    logger.warning(f"Snapshot load for event {event_id} failed: {error}")
                    raise SnapshotLoadError(event_id, str(error)) from error

            if not_done:
                logger.warning(f"Snapshot load for event {event_id} timed out")
                raise SnapshotLoadError(event_id, "timed out")

            event_data = event_future.result()
            offers_data = offers_future.result()
        finally:
            # Do not block on a sibling call that is still running
            executor.shutdown(wait=False, cancel_futures=True)

        try:
            snapshot = InventorySnapshot.from_api_data(event_data, offers_data, event_id=event_id)
        except ValueError as e:
            logger.error(f"Invalid data for event {event_id}: {e}")
            raise SnapshotLoadError(event_id, str(e)) from e

        logger.info(
            f"Snapshot loaded for event {event_id}: {len(snapshot.offers)} ticket types"
        )
        return snapshot

    def _fetch(self, what: str, event_id: str) -> Any:
        """Worker: one call on a client owned by this thread."""
        set_thread_name(f"Loader-{what}")
        with self._client_factory.create(logger=logger) as api_client:
            if what == "event":
                return api_client.get_event(event_id)
            return api_client.list_offers(event_id)
