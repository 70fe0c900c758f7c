"""
Storage layer for quota state.
"""

from .models import QuotaRecord
from .repository import InMemoryQuotaStore, QuotaStore, get_store

__all__ = ["QuotaRecord", "QuotaStore", "InMemoryQuotaStore", "get_store"]
