"""Approval saga state machine over a single leave request.

STARTED -> AWAITING_DECISION -> RESOLVED

The saga state is derived from the stored record rather than kept separately:
a pending record without a continuation token is STARTED, a pending record
holding one is AWAITING_DECISION, and any terminal status is RESOLVED.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Any

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger
from leave_approvals.core.time import isoformat_millis
from leave_approvals.services.execution.engine import (
    ExecutionEngineError,
    TokenNotOutstandingError,
)

if TYPE_CHECKING:
    from leave_approvals.models.leave_requests import LeaveRequest
    from leave_approvals.services.execution.engine import ExecutionEngine

logger = get_logger(__name__)


class SagaState(str, Enum):
    STARTED = "STARTED"
    AWAITING_DECISION = "AWAITING_DECISION"
    RESOLVED = "RESOLVED"


class Outcome(str, Enum):
    ACCEPT = "ACCEPT"
    REJECT = "REJECT"

    @classmethod
    def parse(cls, action: str) -> Outcome | None:
        try:
            return cls(action.upper())
        except ValueError:
            return None


def event_payload(record: LeaveRequest, event_type: str) -> dict[str, Any]:
    """Event body describing `record`, shared by start and resume."""
    return {
        "type": event_type,
        "applicantId": record.applicant_id,
        "applicantName": record.applicant_name,
        "fromDate": isoformat_millis(record.from_instant),
        "toDate": isoformat_millis(record.to_instant),
    }


class SagaOrchestrator:
    """Starts, resumes and aborts saga executions through the engine."""

    def __init__(self, engine: ExecutionEngine) -> None:
        self.engine = engine

    @staticmethod
    def state_of(record: LeaveRequest) -> SagaState:
        if record.leave_status.is_terminal:
            return SagaState.RESOLVED
        if record.continuation_token:
            return SagaState.AWAITING_DECISION
        return SagaState.STARTED

    async def start(self, record: LeaveRequest, timeout_seconds: int) -> None:
        """Begin the execution; the engine answers with a REQUEST event."""
        timeout = max(0, int(timeout_seconds))
        try:
            await self.engine.start(
                timeout_seconds=timeout,
                payload=event_payload(record, "REQUEST"),
            )
        except ExecutionEngineError as exc:
            raise LeaveError(
                ErrorKind.EXECUTION_ENGINE_ERROR,
                "Failed to start the approval workflow",
            ) from exc
        logger.info(
            "saga.started",
            extra={"identity": record.identity, "timeout_seconds": timeout},
        )

    def _token_for(self, record: LeaveRequest) -> str:
        state = self.state_of(record)
        if state is SagaState.RESOLVED:
            raise LeaveError(
                ErrorKind.ALREADY_PROCESSED,
                f"Leave with ID {record.identity} has been already processed "
                f"with status {record.status}",
                status=record.status,
            )
        if state is SagaState.STARTED or record.continuation_token is None:
            raise LeaveError(
                ErrorKind.MISSING_TOKEN,
                f"Leave with ID {record.identity} is not awaiting a decision yet",
            )
        return record.continuation_token

    def _not_outstanding(self, record: LeaveRequest) -> LeaveError:
        logger.info("saga.resume.token_not_outstanding", extra={"identity": record.identity})
        return LeaveError(
            ErrorKind.ALREADY_PROCESSED,
            f"Leave with ID {record.identity} is no longer awaiting a decision",
            status=record.status,
        )

    async def resume(self, record: LeaveRequest, outcome: Outcome) -> None:
        """Forward a decision to the engine, which emits the ACCEPT/REJECT event."""
        token = self._token_for(record)
        try:
            await self.engine.report_success(token, event_payload(record, outcome.value))
        except TokenNotOutstandingError as exc:
            raise self._not_outstanding(record) from exc
        except ExecutionEngineError as exc:
            raise LeaveError(
                ErrorKind.EXECUTION_ENGINE_ERROR,
                "Failed to resume the approval workflow",
            ) from exc
        logger.info("saga.resumed", extra={"identity": record.identity, "outcome": outcome.value})

    async def abort(self, record: LeaveRequest, *, error: str, cause: str) -> None:
        """End the execution with a failure report instead of a decision."""
        token = self._token_for(record)
        try:
            await self.engine.report_failure(token, error=error, cause=cause)
        except TokenNotOutstandingError as exc:
            raise self._not_outstanding(record) from exc
        except ExecutionEngineError as exc:
            raise LeaveError(
                ErrorKind.EXECUTION_ENGINE_ERROR,
                "Failed to report the workflow failure",
            ) from exc
        logger.info("saga.aborted", extra={"identity": record.identity, "error": error})
