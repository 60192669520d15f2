"""Record-store operations for leave requests.

Uniqueness and status transitions are enforced by single SQL statements, not
by read-then-write sequences:

- ``create_if_absent`` is one INSERT keyed on the primary key; the database
  rejects a second row for the same identity whatever its status.
- ``attach_token`` and ``complete`` are one conditional UPDATE each,
  ``WHERE identity = ? AND status = 'PENDING'``. Zero affected rows means the
  condition failed (unknown identity or already terminal).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import insert, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import col

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger
from leave_approvals.core.time import utcnow
from leave_approvals.models.leave_requests import LeaveRequest, LeaveStatus

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


def _store_unavailable(action: str, exc: SQLAlchemyError) -> LeaveError:
    logger.warning("leave.store.unavailable", extra={"action": action, "error": str(exc)})
    return LeaveError(ErrorKind.STORE_UNAVAILABLE, f"Leave store unavailable during {action}")


async def get_leave(session: AsyncSession, identity: str) -> LeaveRequest | None:
    """Fetch a leave request by identity, bypassing stale identity-map state."""
    try:
        return await session.get(LeaveRequest, identity, populate_existing=True)
    except SQLAlchemyError as exc:
        raise _store_unavailable("get", exc) from exc


async def create_if_absent(session: AsyncSession, leave: LeaveRequest) -> LeaveRequest:
    """Insert a new leave request; any existing row with the identity is a conflict."""
    values = leave.model_dump()
    try:
        await session.execute(insert(LeaveRequest).values(**values))
        await session.commit()
    except IntegrityError as exc:
        await session.rollback()
        logger.info("leave.store.create_conflict", extra={"identity": leave.identity})
        raise LeaveError(
            ErrorKind.CONFLICT,
            "There is already a leave application for the given dates",
        ) from exc
    except SQLAlchemyError as exc:
        await session.rollback()
        raise _store_unavailable("create", exc) from exc
    return leave


async def _update_pending(session: AsyncSession, identity: str, action: str, **values: object) -> bool:
    statement = (
        update(LeaveRequest)
        .where(col(LeaveRequest.identity) == identity)
        .where(col(LeaveRequest.status) == LeaveStatus.PENDING.value)
        .values(updated_at=utcnow(), **values)
    )
    try:
        result = await session.execute(statement)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        raise _store_unavailable(action, exc) from exc
    return bool(result.rowcount)


async def attach_token(session: AsyncSession, identity: str, token: str) -> bool:
    """Record the continuation token on a pending request."""
    return await _update_pending(
        session,
        identity,
        "attach_token",
        continuation_token=token,
    )


async def complete(session: AsyncSession, identity: str, outcome: LeaveStatus) -> bool:
    """Move a pending request to a terminal status and clear its token."""
    if not outcome.is_terminal:
        msg = f"{outcome.value} is not a terminal status"
        raise ValueError(msg)
    return await _update_pending(
        session,
        identity,
        "complete",
        status=outcome.value,
        continuation_token=None,
    )
