"""
Correlation Service Layer

Submission, dispatch, worker and poll handlers.
"""

from correlation.service.dispatch import ChannelDispatcher, Dispatcher, InlineDispatcher
from correlation.service.observer import (
    FailureStage,
    LoggingObserver,
    OperationalObserver,
    RecordingObserver,
)
from correlation.service.poll import PollHandler
from correlation.service.submission import SubmissionHandler
from correlation.service.worker import Finalizer, RequestExecutor, RequestWorker

__all__ = [
    "ChannelDispatcher",
    "Dispatcher",
    "FailureStage",
    "Finalizer",
    "InlineDispatcher",
    "LoggingObserver",
    "OperationalObserver",
    "PollHandler",
    "RecordingObserver",
    "RequestExecutor",
    "RequestWorker",
    "SubmissionHandler",
]
