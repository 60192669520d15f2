"""Leave application and decision endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, status

from leave_approvals.api.deps import AUTH_DEP, ORCHESTRATOR_DEP, SESSION_DEP
from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.schemas.errors import ErrorResponse
from leave_approvals.schemas.leave_requests import (
    LeaveDecisionResponse,
    LeaveRequestCreate,
    LeaveRequestRead,
    LeaveSubmitResponse,
)
from leave_approvals.services import decision_resolver, leave_store, submission_guard
from leave_approvals.services.date_range import validate_range

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from leave_approvals.core.auth import AuthContext
    from leave_approvals.services.saga_orchestrator import SagaOrchestrator

router = APIRouter(prefix="/leave", tags=["leave"])

_ERROR_RESPONSES = {
    status.HTTP_400_BAD_REQUEST: {"model": ErrorResponse},
    status.HTTP_401_UNAUTHORIZED: {"model": ErrorResponse},
    status.HTTP_409_CONFLICT: {"model": ErrorResponse},
    status.HTTP_503_SERVICE_UNAVAILABLE: {"model": ErrorResponse},
}


@router.post(
    "",
    response_model=LeaveSubmitResponse,
    status_code=status.HTTP_201_CREATED,
    responses=_ERROR_RESPONSES,
)
async def apply_for_leave(
    payload: LeaveRequestCreate,
    auth: AuthContext = AUTH_DEP,
    session: AsyncSession = SESSION_DEP,
    orchestrator: SagaOrchestrator = ORCHESTRATOR_DEP,
) -> LeaveSubmitResponse:
    """Validate the requested interval, create the request and start its approval."""
    if not payload.from_date or not payload.to_date:
        raise LeaveError(ErrorKind.INVALID_INPUT, "from and to are required")
    interval = validate_range(
        payload.from_date,
        payload.to_date,
        payload.from_time,
        payload.to_time,
    )
    record = await submission_guard.submit(
        session,
        applicant_id=auth.applicant_id,
        applicant_name=auth.applicant_name,
        interval=interval,
        reason=payload.reason,
        orchestrator=orchestrator,
    )
    return LeaveSubmitResponse(
        message="Leave application submitted",
        leave=LeaveRequestRead.from_record(record),
    )


@router.get(
    "/{identity}",
    response_model=LeaveRequestRead,
    responses={status.HTTP_404_NOT_FOUND: {"model": ErrorResponse}},
)
async def get_leave(
    identity: str,
    auth: AuthContext = AUTH_DEP,
    session: AsyncSession = SESSION_DEP,
) -> LeaveRequestRead:
    """Return one of the caller's own leave requests."""
    record = await leave_store.get_leave(session, identity)
    if record is None or record.applicant_id != auth.applicant_id:
        raise LeaveError(ErrorKind.NOT_FOUND, f"Leave with ID {identity} not found")
    return LeaveRequestRead.from_record(record)


@router.api_route(
    "/{action}/{identity}",
    methods=["GET", "POST"],
    response_model=LeaveDecisionResponse,
    responses={
        status.HTTP_404_NOT_FOUND: {"model": ErrorResponse},
        **_ERROR_RESPONSES,
    },
)
async def decide_leave(
    action: str,
    identity: str,
    session: AsyncSession = SESSION_DEP,
    orchestrator: SagaOrchestrator = ORCHESTRATOR_DEP,
) -> LeaveDecisionResponse:
    """Accept or reject a pending request; the target of the emailed action links."""
    result = await decision_resolver.resolve(
        session,
        identity=identity,
        action=action,
        orchestrator=orchestrator,
    )
    return LeaveDecisionResponse(
        message=result.message,
        identity=result.identity,
        status=result.status.value,
    )
