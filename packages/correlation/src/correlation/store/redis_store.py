"""
Redis Record Store

Records live as JSON strings under "<prefix><request_id>", written with
SET ... EX so that Redis expires them. Redis errors are translated into
StoreTransportError at this boundary.
"""

import logging

import redis

from correlation.contracts.record import CorrelationRecord
from correlation.exceptions import RecordNotFoundError, StoreTransportError
from correlation.store.base import DEFAULT_KEY_PREFIX, RecordStore

logger = logging.getLogger(__name__)


class RedisRecordStore(RecordStore):
    """
    Record store backed by Redis string keys.

    The client must be created with decode_responses=True.
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        key_prefix: str = DEFAULT_KEY_PREFIX,
    ):
        self.redis = redis_client
        self.key_prefix = key_prefix

    def key_for(self, request_id: str) -> str:
        return f"{self.key_prefix}{request_id}"

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
        key = self.key_for(request_id)

        try:
            written = self.redis.set(key, data, ex=ttl_seconds, xx=must_exist)
        except redis.RedisError as e:
            raise StoreTransportError(
                f"Failed to write record {request_id}: {e}", request_id=request_id
            ) from e

        if must_exist and not written:
            raise RecordNotFoundError(
                f"Record {request_id} no longer exists", request_id=request_id
            )

        logger.debug(
            f"Stored record {request_id}",
            extra={"request_id": request_id, "state": str(record.state), "ttl": ttl_seconds},
        )

    def get(self, request_id: str) -> CorrelationRecord:
        key = self.key_for(request_id)

        try:
            raw = self.redis.get(key)
        except redis.RedisError as e:
            raise StoreTransportError(
                f"Failed to read record {request_id}: {e}", request_id=request_id
            ) from e

        if raw is None:
            raise RecordNotFoundError(f"Record {request_id} not found", request_id=request_id)

        return CorrelationRecord.from_json(raw, request_id=request_id)

    def ping(self) -> bool:
        try:
            return bool(self.redis.ping())
        except redis.RedisError:
            return False

    def remaining_ttl(self, request_id: str) -> int | None:
        try:
            ttl = self.redis.ttl(self.key_for(request_id))
        except redis.RedisError as e:
            raise StoreTransportError(
                f"Failed to read TTL of {request_id}: {e}", request_id=request_id
            ) from e
        # -2: no such key, -1: no expiry
        return ttl if ttl is not None and ttl >= 0 else None
