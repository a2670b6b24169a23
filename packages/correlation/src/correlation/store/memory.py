"""In-memory record store for local dev and tests. Single process only."""

import logging
import math
import threading
import time
from typing import Callable

from correlation.contracts.record import CorrelationRecord
from correlation.exceptions import RecordNotFoundError
from correlation.store.base import RecordStore

logger = logging.getLogger(__name__)


class MemoryRecordStore(RecordStore):
    """
    Records kept as JSON strings in a dict, with expiry on a monotonic clock.

    Values go through the same encode/decode path as the Redis store.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._clock = clock
        self._entries: dict[str, tuple[str, float]] = {}
        self._lock = threading.Lock()

    def put(
        self,
        request_id: str,
        record: CorrelationRecord,
        ttl_seconds: int,
        *,
        must_exist: bool = False,
    ) -> None:
        self._check_write(request_id, record, ttl_seconds)
        data = record.to_json()

        with self._lock:
            if must_exist and self._live_entry(request_id) is None:
                raise RecordNotFoundError(
                    f"Record {request_id} no longer exists", request_id=request_id
                )
            self._entries[request_id] = (data, self._clock() + ttl_seconds)

    def get(self, request_id: str) -> CorrelationRecord:
        with self._lock:
            entry = self._live_entry(request_id)

        if entry is None:
            raise RecordNotFoundError(f"Record {request_id} not found", request_id=request_id)

        return CorrelationRecord.from_json(entry[0], request_id=request_id)

    def ping(self) -> bool:
        return True

    def remaining_ttl(self, request_id: str) -> int | None:
        with self._lock:
            entry = self._live_entry(request_id)
        if entry is None:
            return None
        return math.ceil(entry[1] - self._clock())

    def put_raw(self, request_id: str, data: str, ttl_seconds: int) -> None:
        """Store an arbitrary string under the id, bypassing encoding."""
        with self._lock:
            self._entries[request_id] = (data, self._clock() + ttl_seconds)

    def _live_entry(self, request_id: str) -> tuple[str, float] | None:
        # Caller holds the lock
        entry = self._entries.get(request_id)
        if entry is None:
            return None
        if entry[1] <= self._clock():
            del self._entries[request_id]
            return None
        return entry
