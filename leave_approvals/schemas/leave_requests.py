"""Leave request API schemas for submission, reads and decisions."""

from __future__ import annotations

from datetime import datetime

from pydantic import Field
from sqlmodel import SQLModel
from sqlmodel._compat import SQLModelConfig

from leave_approvals.core.time import as_utc
from leave_approvals.models.leave_requests import LeaveRequest

RUNTIME_ANNOTATION_TYPES = (datetime,)


class LeaveRequestCreate(SQLModel):
    """Payload used to apply for leave.

    `from` and `to` are checked by the endpoint so a missing bound is reported
    as a 400 with a fixed message rather than a schema error.
    """

    model_config = SQLModelConfig(populate_by_name=True)

    from_date: str | None = Field(
        default=None,
        alias="from",
        description="First day of leave (YYYY-MM-DD).",
        examples=["2026-01-10"],
    )
    to_date: str | None = Field(
        default=None,
        alias="to",
        description="Last day of leave (YYYY-MM-DD).",
        examples=["2026-01-12"],
    )
    reason: str = Field(default="", examples=["Family trip"])
    from_time: str | None = Field(
        default=None,
        alias="fromTime",
        description="Optional start time on the first day, 24-hour HH:MM.",
        examples=["09:00"],
    )
    to_time: str | None = Field(
        default=None,
        alias="toTime",
        description="Optional end time on the last day, 24-hour HH:MM.",
        examples=["17:30"],
    )


class LeaveRequestRead(SQLModel):
    """Leave request as returned to its applicant."""

    identity: str = Field(description="Fingerprint of applicant and interval; used in decision links.")
    applicant_id: str
    applicant_name: str
    from_instant: datetime
    to_instant: datetime
    reason: str
    status: str = Field(examples=["PENDING", "ACCEPTED", "REJECTED"])
    applied_on: datetime
    reviewed_on: datetime | None = None
    reviewer_id: str | None = None
    reviewer_name: str | None = None
    awaiting_decision: bool = Field(
        default=False,
        description="True once administrators were notified and a decision can be recorded.",
    )

    @classmethod
    def from_record(cls, record: LeaveRequest) -> LeaveRequestRead:
        return cls(
            identity=record.identity,
            applicant_id=record.applicant_id,
            applicant_name=record.applicant_name,
            from_instant=as_utc(record.from_instant),
            to_instant=as_utc(record.to_instant),
            reason=record.reason,
            status=record.status,
            applied_on=as_utc(record.applied_on),
            reviewed_on=as_utc(record.reviewed_on) if record.reviewed_on else None,
            reviewer_id=record.reviewer_id,
            reviewer_name=record.reviewer_name,
            awaiting_decision=record.continuation_token is not None,
        )


class LeaveSubmitResponse(SQLModel):
    message: str = Field(examples=["Leave application submitted"])
    leave: LeaveRequestRead


class LeaveDecisionResponse(SQLModel):
    """Acknowledgement that a decision was handed to the approval workflow."""

    message: str = Field(examples=["Leave accepted successfully"])
    identity: str
    status: str = Field(
        description="Status the request moves to once the decision is processed.",
        examples=["ACCEPTED"],
    )
