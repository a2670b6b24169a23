"""
Correlation Contracts

Record, dispatch message and caller-facing request/response models.
"""

from correlation.contracts.api import PollRequest, PollResult, SubmissionResult, SubmitRequest
from correlation.contracts.dispatch import DispatchMessage
from correlation.contracts.record import CorrelationRecord, RecordState, now_ms

__all__ = [
    "CorrelationRecord",
    "RecordState",
    "now_ms",
    "DispatchMessage",
    "SubmitRequest",
    "SubmissionResult",
    "PollRequest",
    "PollResult",
]
