"""
Correlation Record

The single persisted entity of the protocol. One record per submitted
request, stored as a JSON object under the request id.

A record is either Pending (not finished, empty response) or Finished
(response populated, error flag meaningful). It moves from Pending to
Finished exactly once; request_payload and created_at never change.
"""

import json
import time
from dataclasses import asdict, dataclass, fields
from enum import Enum
from typing import Any

from correlation.exceptions import RecordSerializationError


def now_ms() -> int:
    """Current time as a millisecond epoch."""
    return time.time_ns() // 1_000_000


class RecordState(str, Enum):
    """Lifecycle state of a correlation record."""

    PENDING = "pending"
    FINISHED = "finished"

    def __str__(self) -> str:
        return self.value


_FIELD_TYPES: dict[str, type] = {
    "request_id": str,
    "request_payload": str,
    "response_payload": str,
    "created_at": int,
    "is_response_finished": bool,
    "is_response_error": bool,
}


def _check_field(name: str, value: Any, request_id: str | None) -> None:
    expected = _FIELD_TYPES[name]
    # bool is a subclass of int; created_at must be a real integer
    if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
        raise RecordSerializationError(
            f"Record field '{name}' must be {expected.__name__}, got {type(value).__name__}",
            request_id=request_id,
        )


@dataclass(frozen=True)
class CorrelationRecord:
    """
    Stored state of one asynchronous request.

    Attributes:
        request_id: Correlation identifier handed to the caller
        request_payload: Opaque request body, immutable
        created_at: Submission time (millisecond epoch), immutable
        response_payload: Processing result, empty while pending
        is_response_finished: True once processing reached a terminal outcome
        is_response_error: True if that outcome was an error
    """

    request_id: str
    request_payload: str
    created_at: int
    response_payload: str = ""
    is_response_finished: bool = False
    is_response_error: bool = False

    @classmethod
    def pending(
        cls,
        request_id: str,
        request_payload: str,
        created_at: int | None = None,
    ) -> "CorrelationRecord":
        """Create a new Pending record."""
        return cls(
            request_id=request_id,
            request_payload=request_payload,
            created_at=now_ms() if created_at is None else created_at,
        )

    @property
    def state(self) -> RecordState:
        return RecordState.FINISHED if self.is_response_finished else RecordState.PENDING

    def finish(self, response_payload: str, is_error: bool = False) -> "CorrelationRecord":
        """
        Build the Finished copy of this record.

        Identity and request fields are carried over verbatim.

        Raises:
            ValueError: If the record is already finished
        """
        if self.is_response_finished:
            raise ValueError(f"Record {self.request_id} is already finished")

        return CorrelationRecord(
            request_id=self.request_id,
            request_payload=self.request_payload,
            created_at=self.created_at,
            response_payload=response_payload,
            is_response_finished=True,
            is_response_error=is_error,
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    def to_json(self) -> str:
        """
        Encode the record for storage.

        Field types are checked as strictly as from_dict() checks them, so
        nothing is written that could not be read back.

        Raises:
            RecordSerializationError: If a field has the wrong type
        """
        data = self.to_dict()
        for name, value in data.items():
            _check_field(name, value, self.request_id)
        try:
            return json.dumps(data, separators=(",", ":"))
        except (TypeError, ValueError) as e:
            raise RecordSerializationError(
                f"Cannot encode record: {e}", request_id=self.request_id
            ) from e

    @classmethod
    def from_dict(cls, data: Any, request_id: str | None = None) -> "CorrelationRecord":
        """
        Create a record from a decoded JSON object.

        Every field must be present with its exact JSON type. Booleans are
        not accepted where an integer is expected, and vice versa.

        Raises:
            RecordSerializationError: If the object does not describe a record
        """
        if not isinstance(data, dict):
            raise RecordSerializationError(
                f"Record must be a JSON object, got {type(data).__name__}",
                request_id=request_id,
            )

        values = {}
        for f in fields(cls):
            if f.name not in data:
                raise RecordSerializationError(
                    f"Record is missing field '{f.name}'", request_id=request_id
                )
            _check_field(f.name, data[f.name], request_id)
            values[f.name] = data[f.name]

        return cls(**values)

    @classmethod
    def from_json(cls, raw: str | bytes, request_id: str | None = None) -> "CorrelationRecord":
        """
        Decode a record from its stored JSON form.

        Raises:
            RecordSerializationError: On invalid JSON or an invalid record shape
        """
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise RecordSerializationError(
                f"Record is not valid JSON: {e}", request_id=request_id
            ) from e
        return cls.from_dict(data, request_id=request_id)
