"""Durable-execution engine contract and the queue-backed implementation.

Prefer importing from this package when used by other modules.
"""

from leave_approvals.services.execution.engine import (
    ExecutionEngine,
    ExecutionEngineError,
    QueueExecutionEngine,
    TokenNotOutstandingError,
)
from leave_approvals.services.execution.tasks import (
    EVENT_TASK_TYPE,
    TIMEOUT_TASK_TYPE,
    decode_event_task,
    decode_timeout_task,
    event_task,
    timeout_task,
)

__all__ = [
    "EVENT_TASK_TYPE",
    "TIMEOUT_TASK_TYPE",
    "ExecutionEngine",
    "ExecutionEngineError",
    "QueueExecutionEngine",
    "TokenNotOutstandingError",
    "decode_event_task",
    "decode_timeout_task",
    "event_task",
    "timeout_task",
]
