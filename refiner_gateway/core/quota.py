"""
Free-tier quota enforcement.

Callers without their own API key get a fixed number of successful requests
per device per calendar day.

Sequence per request:
1. check_and_reserve - rollover + compare, before any outbound call
2. commit            - +1, only after a successful generation

The check and the commit are separate critical sections, so a burst of
concurrent requests from one device can each pass the check before any of
them commits. The limit is therefore soft by at most the number of in-flight
requests for that device.
"""

import threading
from datetime import date
from typing import Callable, Optional

from ..log import get_logger
from ..storage.models import QuotaRecord
from ..storage.repository import QuotaStore

logger = get_logger(__name__)


def _today() -> str:
    return date.today().isoformat()


class QuotaTracker:
    """Per-device daily request counter over an injected store."""

    def __init__(
        self,
        store: QuotaStore,
        daily_limit: int,
        today: Optional[Callable[[], str]] = None
    ):
        """Initialize the tracker.

        Args:
            store: Key-value store holding QuotaRecords by device id
            daily_limit: Successful free-tier requests allowed per device per day
            today: Clock returning the current day as YYYY-MM-DD

        Raises:
            ValueError: If daily_limit is not positive
        """
        if daily_limit <= 0:
            raise ValueError("daily_limit must be > 0")

        self.store = store
        self.daily_limit = daily_limit
        self._today = today or _today
        self._lock = threading.Lock()

    def _todays_record(self, device_id: str) -> QuotaRecord:
        """Stored record if it is from today, else a zero count for today. Never writes."""
        today = self._today()
        record = self.store.get(device_id)
        if record is None or record.day != today:
            return QuotaRecord(device_id=device_id, count=0, day=today)
        return record

    def _current_record(self, device_id: str) -> QuotaRecord:
        """Read the record, storing the reset one when it belongs to an earlier day.

        Must be called with the lock held.
        """
        today = self._today()
        record = self.store.get(device_id)
        if record is None or record.day != today:
            record = QuotaRecord(device_id=device_id, count=0, day=today)
            self.store.set(record)
        return record

    def check_and_reserve(self, device_id: Optional[str]) -> bool:
        """Return whether the device may make one more free-tier request today.

        Args:
            device_id: Identifier sent by the client; blank or missing is denied

        Returns:
            True if count < daily_limit after any day rollover
        """
        if not device_id or not device_id.strip():
            return False

        with self._lock:
            record = self._current_record(device_id)
            allowed = record.count < self.daily_limit

        if not allowed:
            logger.info(
                "event=quota.denied | device=%s count=%d limit=%d",
                device_id, record.count, self.daily_limit
            )
        return allowed

    def commit(self, device_id: str) -> QuotaRecord:
        """Charge one successful request to the device.

        Args:
            device_id: Device that was served

        Returns:
            The stored record after the increment
        """
        with self._lock:
            record = self._current_record(device_id)
            updated = QuotaRecord(device_id=device_id, count=record.count + 1, day=record.day)
            self.store.set(updated)

        logger.debug(
            "event=quota.commit | device=%s count=%d limit=%d",
            device_id, updated.count, self.daily_limit
        )
        return updated

    def usage(self, device_id: str) -> QuotaRecord:
        """Today's record for a device. Read-only: the store is never written."""
        with self._lock:
            return self._todays_record(device_id)
