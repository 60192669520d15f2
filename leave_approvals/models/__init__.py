"""Model exports for SQLAlchemy/SQLModel metadata discovery."""

from leave_approvals.models.leave_requests import LeaveRequest, LeaveStatus
from leave_approvals.models.users import User

__all__ = [
    "LeaveRequest",
    "LeaveStatus",
    "User",
]
