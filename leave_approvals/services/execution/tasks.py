"""Queue task encoding for saga events and timeouts."""

from __future__ import annotations

from leave_approvals.schemas.saga_events import SagaEvent
from leave_approvals.services.queue import QueuedTask, new_task

EVENT_TASK_TYPE = "leave_saga_event"
TIMEOUT_TASK_TYPE = "leave_saga_timeout"


def event_task(event: SagaEvent) -> QueuedTask:
    return new_task(EVENT_TASK_TYPE, event.model_dump(by_alias=True))


def timeout_task(token: str) -> QueuedTask:
    return new_task(TIMEOUT_TASK_TYPE, {"task_token": token})


def _expect_type(task: QueuedTask, task_type: str) -> None:
    if task.task_type != task_type:
        msg = f"Unexpected task_type={task.task_type!r}; expected {task_type!r}"
        raise ValueError(msg)


def decode_event_task(task: QueuedTask) -> SagaEvent:
    _expect_type(task, EVENT_TASK_TYPE)
    return SagaEvent.model_validate(task.payload)


def decode_timeout_task(task: QueuedTask) -> str:
    _expect_type(task, TIMEOUT_TASK_TYPE)
    token = task.payload.get("task_token")
    if not isinstance(token, str) or not token:
        msg = "Timeout task is missing task_token"
        raise ValueError(msg)
    return token
