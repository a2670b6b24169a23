"""
Correlation

Asynchronous request/response correlation over a shared TTL store: submit a
request, get an id back immediately, poll the id until the result is ready.
"""

from correlation.contracts import (
    CorrelationRecord,
    PollResult,
    RecordState,
    SubmissionResult,
    SubmitRequest,
)
from correlation.exceptions import (
    CorrelationError,
    RecordNotFoundError,
    RecordSerializationError,
    StoreError,
    StoreTransportError,
)

__version__ = "0.1.0"

__all__ = [
    "CorrelationError",
    "CorrelationRecord",
    "PollResult",
    "RecordNotFoundError",
    "RecordSerializationError",
    "RecordState",
    "StoreError",
    "StoreTransportError",
    "SubmissionResult",
    "SubmitRequest",
]
