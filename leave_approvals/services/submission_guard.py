"""Duplicate-aware creation of leave requests."""

from __future__ import annotations

from typing import TYPE_CHECKING

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger
from leave_approvals.core.time import to_naive_utc, utcnow
from leave_approvals.models.leave_requests import LeaveRequest, LeaveStatus
from leave_approvals.services import leave_store
from leave_approvals.services.identity import fingerprint

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from leave_approvals.services.date_range import LeaveInterval
    from leave_approvals.services.saga_orchestrator import SagaOrchestrator

logger = get_logger(__name__)

DUPLICATE_MESSAGE = "There is already a leave application for the given dates"


async def submit(
    session: AsyncSession,
    *,
    applicant_id: str,
    applicant_name: str,
    interval: LeaveInterval,
    reason: str = "",
    orchestrator: SagaOrchestrator,
) -> LeaveRequest:
    """Create a pending leave request and start its approval saga.

    The lookup is only a fast path; the INSERT in `create_if_absent` is what
    rejects a concurrent duplicate.
    """
    identity = fingerprint(applicant_id, interval.from_instant, interval.to_instant)

    existing = await leave_store.get_leave(session, identity)
    if existing is not None and existing.leave_status is LeaveStatus.PENDING:
        logger.info("leave.submit.duplicate_pending", extra={"identity": identity})
        raise LeaveError(ErrorKind.CONFLICT, DUPLICATE_MESSAGE)

    now = utcnow()
    record = LeaveRequest(
        identity=identity,
        applicant_id=applicant_id,
        applicant_name=applicant_name,
        from_instant=to_naive_utc(interval.from_instant),
        to_instant=to_naive_utc(interval.to_instant),
        reason=reason or "",
        status=LeaveStatus.PENDING.value,
        applied_on=now,
        created_at=now,
        updated_at=now,
    )
    await leave_store.create_if_absent(session, record)
    logger.info(
        "leave.submit.created",
        extra={"identity": identity, "applicant_id": applicant_id},
    )

    await orchestrator.start(record, interval.duration_seconds)
    return record
