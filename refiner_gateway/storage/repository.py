"""
Repository pattern for quota state.

The quota tracker talks to a key-value store keyed by device id. The default
store keeps records in process memory; state is lost on restart.
"""

from typing import Dict, Optional, Protocol

from .models import QuotaRecord


class QuotaStore(Protocol):
    """Key-value access to quota records by device id."""

    def get(self, device_id: str) -> Optional[QuotaRecord]:
        ...

    def set(self, record: QuotaRecord) -> None:
        ...


class InMemoryQuotaStore:
    """Process-local quota store.

    One record per device, never evicted. Callers are responsible for
    serialising read-modify-write sequences; the store itself only offers
    single get and set operations.
    """

    def __init__(self):
        self._records: Dict[str, QuotaRecord] = {}

    def get(self, device_id: str) -> Optional[QuotaRecord]:
        """Return the stored record for a device, if any."""
        return self._records.get(device_id)

    def set(self, record: QuotaRecord) -> None:
        """Store (or replace) the record for its device."""
        self._records[record.device_id] = record

    def clear(self) -> None:
        self._records.clear()

    def __len__(self) -> int:
        return len(self._records)


# Global store instance
_default_store: Optional[InMemoryQuotaStore] = None


def get_store() -> InMemoryQuotaStore:
    """Get the process-wide quota store.

    This function provides a singleton instance of the InMemoryQuotaStore.

    Returns:
        The shared InMemoryQuotaStore
    """
    global _default_store
    if _default_store is None:
        _default_store = InMemoryQuotaStore()
    return _default_store
