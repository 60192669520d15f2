"""Saga event envelope delivered by the execution engine to the notification handler."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel
from sqlmodel._compat import SQLModelConfig


class SagaEventInput(SQLModel):
    """Event body. Fields are optional here; the handler decides what is required."""

    model_config = SQLModelConfig(populate_by_name=True)

    type: str | None = Field(
        default=None,
        description="Event type: REQUEST, ACCEPT or REJECT (case-insensitive).",
        examples=["REQUEST"],
    )
    applicant_id: str | None = Field(
        default=None,
        alias="applicantId",
        description="Stable applicant identifier (email address).",
        examples=["alex@example.com"],
    )
    applicant_name: str | None = Field(
        default=None,
        alias="applicantName",
        examples=["Alex Chen"],
    )
    from_date: str | None = Field(
        default=None,
        alias="fromDate",
        description="Normalized start instant, ISO-8601 UTC with milliseconds.",
        examples=["2026-01-10T00:00:00.000+00:00"],
    )
    to_date: str | None = Field(
        default=None,
        alias="toDate",
        description="Normalized end instant, ISO-8601 UTC with milliseconds.",
        examples=["2026-01-12T23:59:59.999+00:00"],
    )


class SagaEvent(SQLModel):
    """Envelope carrying the event body and, for REQUEST, the continuation token."""

    input: SagaEventInput
    task_token: str | None = Field(
        default=None,
        description="Opaque continuation token; required for REQUEST events.",
    )
