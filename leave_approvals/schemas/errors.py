"""Structured error payload schemas used by API responses."""

from __future__ import annotations

from pydantic import Field
from sqlmodel import SQLModel


class ErrorResponse(SQLModel):
    """Error body returned for every failed request."""

    detail: str | dict[str, object] | list[object] = Field(
        description="Human-readable error message, or validation details for 422 responses.",
        examples=["There is already a leave application for the given dates"],
    )
    code: str | None = Field(
        default=None,
        description="Machine-readable error kind.",
        examples=["Conflict", "AlreadyProcessed", "PastDate"],
    )
    retryable: bool | None = Field(
        default=None,
        description="Whether the same call may succeed later without changes.",
    )
    status: str | None = Field(
        default=None,
        description="Current leave status when the request was already processed.",
        examples=["ACCEPTED"],
    )
    request_id: str | None = Field(
        default=None,
        description="Request correlation identifier injected by middleware.",
    )
