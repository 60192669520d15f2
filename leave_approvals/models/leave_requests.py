"""Leave request model, the single persistent entity of the approval saga."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from sqlmodel import Field

from leave_approvals.core.time import utcnow
from leave_approvals.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class LeaveStatus(str, Enum):
    """Monotonic request status: PENDING -> ACCEPTED | REJECTED."""

    PENDING = "PENDING"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"

    @property
    def is_terminal(self) -> bool:
        return self is not LeaveStatus.PENDING


class LeaveRequest(QueryModel, table=True):
    """Time-off request keyed by a fingerprint of applicant and interval."""

    __tablename__ = "leave_requests"  # pyright: ignore[reportAssignmentType]

    identity: str = Field(primary_key=True, max_length=64)
    applicant_id: str = Field(index=True)
    applicant_name: str
    from_instant: datetime
    to_instant: datetime
    reason: str = Field(default="")
    status: str = Field(default=LeaveStatus.PENDING.value, index=True)
    applied_on: datetime = Field(default_factory=utcnow)
    # Reserved for reviewer attribution; the decision links do not populate them.
    reviewed_on: datetime | None = None
    reviewer_id: str | None = None
    reviewer_name: str | None = None
    continuation_token: str | None = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @property
    def leave_status(self) -> LeaveStatus:
        return LeaveStatus(self.status)
