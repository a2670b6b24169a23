"""
Operational Observer

Sink for outcomes that happen away from any caller: worker-side failures
are reported here instead of being raised. The default observer logs.
"""

import logging
from enum import Enum

from correlation.contracts.record import CorrelationRecord

logger = logging.getLogger(__name__)


class FailureStage(str, Enum):
    """Where in the request lifecycle a failure happened."""

    SUBMIT = "submit"
    DISPATCH = "dispatch"
    DECODE = "decode"
    PROCESS = "process"
    READ_BACK = "read_back"
    FINALIZE = "finalize"

    def __str__(self) -> str:
        return self.value


class OperationalObserver:
    """
    Receives lifecycle events. All hooks are no-ops by default.

    Hooks must not raise; they run on submission and worker threads.
    """

    def on_submitted(self, request_id: str) -> None:
        pass

    def on_finalized(self, record: CorrelationRecord) -> None:
        pass

    def on_error(self, stage: FailureStage, request_id: str | None, error: BaseException) -> None:
        pass


class LoggingObserver(OperationalObserver):
    """Observer that writes every event to the log."""

    def __init__(self, logger_: logging.Logger | None = None):
        self.logger = logger_ or logger

    def on_submitted(self, request_id: str) -> None:
        self.logger.debug(f"Submitted {request_id}", extra={"request_id": request_id})

    def on_finalized(self, record: CorrelationRecord) -> None:
        self.logger.info(
            f"Finalized {record.request_id}",
            extra={
                "request_id": record.request_id,
                "is_response_error": record.is_response_error,
            },
        )

    def on_error(self, stage: FailureStage, request_id: str | None, error: BaseException) -> None:
        extra = {"stage": str(stage), "request_id": request_id, "error_type": type(error).__name__}
        if stage == FailureStage.READ_BACK:
            # Expired or already finished: a degraded outcome, not a crash
            self.logger.warning(f"Read-back failed for {request_id}: {error}", extra=extra)
            return
        self.logger.error(
            f"{stage} failed for {request_id}: {error}",
            extra=extra,
            exc_info=(type(error), error, error.__traceback__),
        )


class RecordingObserver(OperationalObserver):
    """Observer that keeps every event in memory. Useful for tests and diagnostics."""

    def __init__(self):
        self.submitted: list[str] = []
        self.finalized: list[CorrelationRecord] = []
        self.errors: list[tuple[FailureStage, str | None, BaseException]] = []

    def on_submitted(self, request_id: str) -> None:
        self.submitted.append(request_id)

    def on_finalized(self, record: CorrelationRecord) -> None:
        self.finalized.append(record)

    def on_error(self, stage: FailureStage, request_id: str | None, error: BaseException) -> None:
        self.errors.append((stage, request_id, error))

    def stages(self) -> list[FailureStage]:
        return [stage for stage, _, _ in self.errors]
