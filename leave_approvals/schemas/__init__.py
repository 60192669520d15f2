"""Public schema exports shared across API route modules."""

from leave_approvals.schemas.errors import ErrorResponse
from leave_approvals.schemas.health import HealthStatusResponse
from leave_approvals.schemas.leave_requests import (
    LeaveDecisionResponse,
    LeaveRequestCreate,
    LeaveRequestRead,
    LeaveSubmitResponse,
)
from leave_approvals.schemas.saga_events import SagaEvent, SagaEventInput

__all__ = [
    "ErrorResponse",
    "HealthStatusResponse",
    "LeaveDecisionResponse",
    "LeaveRequestCreate",
    "LeaveRequestRead",
    "LeaveSubmitResponse",
    "SagaEvent",
    "SagaEventInput",
]
