"""
Unit tests for storage layer.

Tests quota record validation and the in-memory store.
"""

import pytest

from refiner_gateway.storage.models import QuotaRecord
from refiner_gateway.storage.repository import InMemoryQuotaStore, get_store


class TestQuotaRecord:
    """Test quota record validation."""

    def test_valid_record(self):
        """Test that a valid record is created."""
        record = QuotaRecord(device_id="device-1", count=2, day="2026-01-15")

        assert record.device_id == "device-1"
        assert record.count == 2
        assert record.day == "2026-01-15"

    def test_negative_count_raises_error(self):
        """Test that a negative count is rejected."""
        with pytest.raises(ValueError):
            QuotaRecord(device_id="device-1", count=-1, day="2026-01-15")


class TestInMemoryQuotaStore:
    """Test in-memory store operations."""

    def test_get_unknown_device_returns_none(self):
        """Test that an unknown device has no record."""
        store = InMemoryQuotaStore()
        assert store.get("missing") is None

    def test_set_then_get(self):
        """Test that a stored record is returned."""
        store = InMemoryQuotaStore()
        record = QuotaRecord(device_id="device-1", count=1, day="2026-01-15")

        store.set(record)

        assert store.get("device-1") == record
        assert len(store) == 1

    def test_set_replaces_existing_record(self):
        """Test that set overwrites the device's previous record."""
        store = InMemoryQuotaStore()
        store.set(QuotaRecord(device_id="device-1", count=1, day="2026-01-15"))
        store.set(QuotaRecord(device_id="device-1", count=2, day="2026-01-15"))

        assert store.get("device-1").count == 2
        assert len(store) == 1

    def test_devices_are_isolated(self):
        """Test that records are kept per device."""
        store = InMemoryQuotaStore()
        store.set(QuotaRecord(device_id="a", count=3, day="2026-01-15"))
        store.set(QuotaRecord(device_id="b", count=1, day="2026-01-15"))

        assert store.get("a").count == 3
        assert store.get("b").count == 1

    def test_clear(self):
        """Test that clear drops every record."""
        store = InMemoryQuotaStore()
        store.set(QuotaRecord(device_id="a", count=1, day="2026-01-15"))

        store.clear()

        assert len(store) == 0
        assert store.get("a") is None

    def test_get_store_is_singleton(self):
        """Test that get_store returns the same instance."""
        assert get_store() is get_store()
