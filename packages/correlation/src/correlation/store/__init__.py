"""
Record Stores

Get/set-with-expiry access to correlation records.
"""

from correlation.store.base import DEFAULT_KEY_PREFIX, RecordStore
from correlation.store.memory import MemoryRecordStore
from correlation.store.redis_store import RedisRecordStore

__all__ = [
    "DEFAULT_KEY_PREFIX",
    "RecordStore",
    "MemoryRecordStore",
    "RedisRecordStore",
]
