"""Closed error-kind enumeration shared by every leave saga component."""

from __future__ import annotations

from enum import Enum

from fastapi import status


class ErrorKind(str, Enum):
    """Every failure a saga component can report."""

    INVALID_INPUT = "InvalidInput"
    INVALID_DATE_FORMAT = "InvalidDateFormat"
    INVALID_TIME_FORMAT = "InvalidTimeFormat"
    RANGE_INVERTED = "RangeInverted"
    PAST_DATE = "PastDate"
    UNAUTHORIZED = "Unauthorized"
    CONFLICT = "Conflict"
    NOT_FOUND = "NotFound"
    ALREADY_PROCESSED = "AlreadyProcessed"
    INVALID_ACTION = "InvalidAction"
    INVALID_EVENT = "InvalidEvent"
    MISSING_TOKEN = "MissingToken"
    NO_RECIPIENTS = "NoRecipients"
    NOTIFICATION_ERROR = "NotificationError"
    STORE_UNAVAILABLE = "StoreUnavailable"
    EXECUTION_ENGINE_ERROR = "ExecutionEngineError"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]

    @property
    def retryable(self) -> bool:
        return self in _RETRYABLE


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_DATE_FORMAT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_TIME_FORMAT: status.HTTP_400_BAD_REQUEST,
    ErrorKind.RANGE_INVERTED: status.HTTP_400_BAD_REQUEST,
    ErrorKind.PAST_DATE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_ACTION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.ALREADY_PROCESSED: status.HTTP_409_CONFLICT,
    ErrorKind.MISSING_TOKEN: status.HTTP_409_CONFLICT,
    # Malformed internal event contracts are integration defects.
    ErrorKind.INVALID_EVENT: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.NO_RECIPIENTS: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ErrorKind.NOTIFICATION_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.STORE_UNAVAILABLE: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.EXECUTION_ENGINE_ERROR: status.HTTP_503_SERVICE_UNAVAILABLE,
}

_RETRYABLE = frozenset(
    {
        ErrorKind.NOTIFICATION_ERROR,
        ErrorKind.STORE_UNAVAILABLE,
        ErrorKind.EXECUTION_ENGINE_ERROR,
    },
)

VALIDATION_KINDS = frozenset(
    {
        ErrorKind.INVALID_INPUT,
        ErrorKind.INVALID_DATE_FORMAT,
        ErrorKind.INVALID_TIME_FORMAT,
        ErrorKind.RANGE_INVERTED,
        ErrorKind.PAST_DATE,
    },
)


class LeaveError(Exception):
    """A saga failure tagged with its `ErrorKind`.

    `status` carries the current record status for `AlreadyProcessed` so the
    caller can report what the request was resolved to.
    """

    def __init__(self, kind: ErrorKind, message: str, *, status: str | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.status = status

    @property
    def http_status(self) -> int:
        return self.kind.http_status

    @property
    def retryable(self) -> bool:
        return self.kind.retryable

    def __repr__(self) -> str:
        return f"LeaveError({self.kind.value!r}, {self.message!r})"
