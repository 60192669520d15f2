"""Apply an external accept/reject action to a paused approval saga."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger
from leave_approvals.models.leave_requests import LeaveStatus
from leave_approvals.services import leave_store
from leave_approvals.services.saga_orchestrator import Outcome

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from leave_approvals.services.saga_orchestrator import SagaOrchestrator

logger = get_logger(__name__)

_OUTCOME_STATUS = {
    Outcome.ACCEPT: LeaveStatus.ACCEPTED,
    Outcome.REJECT: LeaveStatus.REJECTED,
}
_OUTCOME_VERB = {
    Outcome.ACCEPT: "accepted",
    Outcome.REJECT: "rejected",
}


@dataclass(frozen=True)
class DecisionResult:
    """What the caller is told after a decision was handed to the engine.

    `status` is the status the request will reach once the terminal event is
    processed; the record itself is updated asynchronously.
    """

    identity: str
    outcome: Outcome
    status: LeaveStatus

    @property
    def message(self) -> str:
        return f"Leave {_OUTCOME_VERB[self.outcome]} successfully"


async def resolve(
    session: AsyncSession,
    *,
    identity: str,
    action: str,
    orchestrator: SagaOrchestrator,
) -> DecisionResult:
    """Validate `action` against the stored request and resume its saga.

    The resolver never writes the record; the terminal transition happens in
    the notification handler once the engine delivers the ACCEPT/REJECT event.
    """
    record = await leave_store.get_leave(session, identity)
    if record is None:
        raise LeaveError(ErrorKind.NOT_FOUND, f"Leave with ID {identity} not found")

    if record.leave_status is not LeaveStatus.PENDING:
        logger.info(
            "leave.decision.already_processed",
            extra={"identity": identity, "status": record.status},
        )
        raise LeaveError(
            ErrorKind.ALREADY_PROCESSED,
            f"Leave with ID {identity} has been already processed with status {record.status}",
            status=record.status,
        )

    outcome = Outcome.parse(action)
    if outcome is None:
        await orchestrator.abort(
            record,
            error=ErrorKind.INVALID_ACTION.value,
            cause=f"The action {action} is not valid. Expected ACCEPT or REJECT.",
        )
        logger.info("leave.decision.invalid_action", extra={"identity": identity, "action": action})
        raise LeaveError(
            ErrorKind.INVALID_ACTION,
            f"Invalid action: {action}. Expected ACCEPT or REJECT.",
        )

    await orchestrator.resume(record, outcome)
    logger.info(
        "leave.decision.forwarded",
        extra={"identity": identity, "outcome": outcome.value},
    )
    return DecisionResult(identity=identity, outcome=outcome, status=_OUTCOME_STATUS[outcome])
