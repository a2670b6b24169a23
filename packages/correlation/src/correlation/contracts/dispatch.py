"""
Dispatch Message

What a submitter hands to processing: the request id plus the request
payload. Carried as JSON on a pub/sub channel, or as flat string fields on a
Redis Stream.

The record store stays the source of truth; a dispatch message is only a
notification that a Pending record is waiting.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from correlation.contracts.record import CorrelationRecord
from correlation.exceptions import DispatchDecodeError

DISPATCH_VERSION = 1


@dataclass
class DispatchMessage:
    """
    Envelope for a dispatched request.

    Attributes:
        request_id: Correlation identifier of the Pending record
        payload: Request payload copied from the record
        created_at: Record creation time (millisecond epoch)
        dispatched_at: When the message was built (UTC)
        version: Message contract version
        metadata: Transport details (stream message id, delivery count)
    """

    request_id: str
    payload: str
    created_at: int
    dispatched_at: datetime
    version: int = DISPATCH_VERSION
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_record(cls, record: CorrelationRecord) -> "DispatchMessage":
        """Create the message announcing a Pending record."""
        return cls(
            request_id=record.request_id,
            payload=record.request_payload,
            created_at=record.created_at,
            dispatched_at=datetime.now(timezone.utc),
        )

    @classmethod
    def from_dict(cls, data: Any) -> "DispatchMessage":
        """
        Create a message from a decoded dictionary.

        Raises:
            DispatchDecodeError: If required fields are missing or malformed
        """
        if not isinstance(data, dict):
            raise DispatchDecodeError(f"Dispatch message must be an object, got {type(data).__name__}")

        try:
            request_id = data["request_id"]
            payload = data["payload"]
            if not isinstance(request_id, str) or not request_id:
                raise DispatchDecodeError("Dispatch message has no request_id")
            if not isinstance(payload, str):
                raise DispatchDecodeError("Dispatch message payload must be a string")

            dispatched_at = data.get("dispatched_at")
            return cls(
                request_id=request_id,
                payload=payload,
                created_at=int(data.get("created_at") or 0),
                dispatched_at=(
                    datetime.fromisoformat(dispatched_at)
                    if isinstance(dispatched_at, str) and dispatched_at
                    else datetime.now(timezone.utc)
                ),
                version=int(data.get("version") or DISPATCH_VERSION),
                metadata=dict(data.get("metadata") or {}),
            )
        except KeyError as e:
            raise DispatchDecodeError(f"Dispatch message is missing field {e}") from e
        except (TypeError, ValueError) as e:
            raise DispatchDecodeError(f"Invalid dispatch message: {e}") from e

    @classmethod
    def from_json(cls, raw: str | bytes) -> "DispatchMessage":
        """Parse a pub/sub message body."""
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise DispatchDecodeError(f"Dispatch message is not valid JSON: {e}") from e
        return cls.from_dict(data)

    @classmethod
    def from_stream_message(cls, msg_id: str, data: dict[str, str]) -> "DispatchMessage":
        """Parse a Redis Stream entry into a message."""
        try:
            metadata = json.loads(data.get("metadata") or "{}")
        except ValueError as e:
            raise DispatchDecodeError(f"Invalid metadata in stream message {msg_id}: {e}") from e
        if not isinstance(metadata, dict):
            raise DispatchDecodeError(f"Invalid metadata in stream message {msg_id}")
        metadata["stream_msg_id"] = msg_id

        return cls.from_dict({**data, "metadata": metadata})

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "request_id": self.request_id,
            "payload": self.payload,
            "created_at": self.created_at,
            "dispatched_at": self.dispatched_at.isoformat(),
            "version": self.version,
            "metadata": self.metadata,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    def to_stream_data(self) -> dict[str, str]:
        """Convert to dictionary suitable for Redis Stream (all string values)."""
        return {
            "request_id": self.request_id,
            "payload": self.payload,
            "created_at": str(self.created_at),
            "dispatched_at": self.dispatched_at.isoformat(),
            "version": str(self.version),
            "metadata": json.dumps(self.metadata),
        }
