"""Worker routines that deliver queued saga events and timeouts."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from leave_approvals.core.logging import get_logger
from leave_approvals.services.execution.tasks import decode_event_task, decode_timeout_task
from leave_approvals.services.notifications.handler import handle_saga_event

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlmodel.ext.asyncio.session import AsyncSession

    from leave_approvals.services.execution.engine import QueueExecutionEngine
    from leave_approvals.services.notifications.handler import NotificationConfig
    from leave_approvals.services.notifications.mailer import MessageDispatcher
    from leave_approvals.services.queue import QueuedTask

logger = get_logger(__name__)


@dataclass(frozen=True)
class SagaRuntime:
    """Collaborators a worker process needs to run saga tasks."""

    session_maker: Callable[[], AsyncSession]
    engine: QueueExecutionEngine
    dispatcher: MessageDispatcher
    notification_config: NotificationConfig


async def process_saga_event_task(task: QueuedTask, runtime: SagaRuntime) -> None:
    event = decode_event_task(task)
    async with runtime.session_maker() as session:
        result = await handle_saga_event(
            session,
            event,
            dispatcher=runtime.dispatcher,
            config=runtime.notification_config,
        )
    logger.info(
        "saga.event.processed",
        extra={"result": result.message, "identity": result.details.get("identity")},
    )


async def process_saga_timeout_task(task: QueuedTask, runtime: SagaRuntime) -> None:
    token = decode_timeout_task(task)
    await runtime.engine.expire(token)
