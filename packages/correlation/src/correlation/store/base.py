"""
Record Store Base

Abstract interface for the shared store holding correlation records.
Implementations: Redis (production), Memory (single process, tests).

Every write replaces the whole record and resets its TTL. There is no
partial-field update; callers that must keep fields written by someone else
read, merge and write back.
"""

from abc import ABC, abstractmethod

from correlation.contracts.record import CorrelationRecord

DEFAULT_KEY_PREFIX = "correlation:record:"


class RecordStore(ABC):
    """
    Abstract record store.

    get() and put() raise correlation.exceptions.StoreError subclasses:
    - RecordNotFoundError: no live record under the id
    - StoreTransportError: the store failed
    - RecordSerializationError: the record could not be encoded or decoded
    """

    @abstractmethod
    def put(
        self,
        request_id: str,
        record: CorrelationRecord,
        ttl_seconds: int,
        *,
        must_exist: bool = False,
    ) -> None:
        """
        Write a record, replacing any previous value.

        Args:
            request_id: Key of the record
            record: Record to store; its request_id must match
            ttl_seconds: Expiry applied to this write
            must_exist: Only write if a live record already exists under the id

        Raises:
            RecordNotFoundError: must_exist was set and no live record exists
        """
        ...

    @abstractmethod
    def get(self, request_id: str) -> CorrelationRecord:
        """
        Read a record.

        Args:
            request_id: Key of the record

        Returns:
            The decoded record
        """
        ...

    @abstractmethod
    def ping(self) -> bool:
        """Return True if the store is reachable."""
        ...

    def remaining_ttl(self, request_id: str) -> int | None:
        """Seconds until the record expires, or None if unknown."""
        return None

    @staticmethod
    def _check_write(request_id: str, record: CorrelationRecord, ttl_seconds: int) -> None:
        if record.request_id != request_id:
            raise ValueError(
                f"Record id {record.request_id!r} does not match key {request_id!r}"
            )
        if ttl_seconds <= 0:
            raise ValueError(f"ttl_seconds must be positive, got {ttl_seconds}")
