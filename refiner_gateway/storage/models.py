"""
Data models for storage layer.

Defines the records kept by the quota store.
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class QuotaRecord:
    """Free-tier usage of one device on one calendar day.

    Records are replaced, never mutated: a rollover or a commit stores a new
    record under the same device id.
    """
    device_id: str
    count: int
    day: str  # YYYY-MM-DD

    def __post_init__(self):
        """Validate the counter is non-negative."""
        if self.count < 0:
            raise ValueError("count cannot be negative")
