"""Directory accounts used to resolve notification audiences."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID, uuid4

from sqlmodel import Field

from leave_approvals.core.time import utcnow
from leave_approvals.models.base import QueryModel

RUNTIME_ANNOTATION_TYPES = (datetime,)


class User(QueryModel, table=True):
    """Account with an email address and a directory role (e.g. ADMIN)."""

    __tablename__ = "users"  # pyright: ignore[reportAssignmentType]

    id: UUID = Field(default_factory=uuid4, primary_key=True)
    email: str = Field(unique=True, index=True)
    name: str = Field(default="")
    role: str = Field(default="EMPLOYEE", index=True)
    created_at: datetime = Field(default_factory=utcnow)
