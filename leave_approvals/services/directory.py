"""Directory lookups over the users table."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy.exc import SQLAlchemyError

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger
from leave_approvals.models.users import User

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

logger = get_logger(__name__)


async def query_by_role(session: AsyncSession, role: str) -> list[User]:
    try:
        return await User.objects.filter_by(role=role).all(session)
    except SQLAlchemyError as exc:
        raise LeaveError(ErrorKind.STORE_UNAVAILABLE, "Directory lookup failed") from exc


async def upsert_user(
    session: AsyncSession,
    *,
    email: str,
    name: str = "",
    role: str = "EMPLOYEE",
) -> tuple[User, bool]:
    """Create the account for `email` or update its name and role.

    Returns the user and whether it was created.
    """
    email = email.strip()
    if not email:
        raise LeaveError(ErrorKind.INVALID_INPUT, "email is required")
    role = role.strip().upper() or "EMPLOYEE"
    try:
        user = await User.objects.filter_by(email=email).first(session)
        created = user is None
        if user is None:
            user = User(email=email, name=name, role=role)
        else:
            user.role = role
            if name:
                user.name = name
        session.add(user)
        await session.commit()
        await session.refresh(user)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise LeaveError(ErrorKind.STORE_UNAVAILABLE, "Directory update failed") from exc
    logger.info(
        "directory.user.upserted",
        extra={"email": email, "role": role, "was_created": created},
    )
    return user, created
