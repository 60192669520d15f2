"""Saga queue worker with task-type dispatch."""

from __future__ import annotations

import asyncio
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from leave_approvals.core.config import Settings, settings
from leave_approvals.core.errors import LeaveError
from leave_approvals.core.logging import configure_logging, get_logger
from leave_approvals.db.session import async_session_maker
from leave_approvals.services.execution.dispatch import (
    SagaRuntime,
    process_saga_event_task,
    process_saga_timeout_task,
)
from leave_approvals.services.execution.engine import QueueExecutionEngine
from leave_approvals.services.execution.tasks import EVENT_TASK_TYPE, TIMEOUT_TASK_TYPE
from leave_approvals.services.notifications.handler import NotificationConfig
from leave_approvals.services.notifications.mailer import build_dispatcher
from leave_approvals.services.queue import QueuedTask, RedisTaskQueue, redis_client

logger = get_logger(__name__)
_WORKER_BLOCK_TIMEOUT_SECONDS = 5.0

TaskHandler = Callable[[QueuedTask, SagaRuntime], Awaitable[None]]

_TASK_HANDLERS: dict[str, TaskHandler] = {
    EVENT_TASK_TYPE: process_saga_event_task,
    TIMEOUT_TASK_TYPE: process_saga_timeout_task,
}


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int
    base_seconds: float
    max_seconds: float

    @classmethod
    def from_settings(cls, config: Settings) -> RetryPolicy:
        return cls(
            max_retries=config.rq_dispatch_max_retries,
            base_seconds=config.rq_dispatch_retry_base_seconds,
            max_seconds=config.rq_dispatch_retry_max_seconds,
        )

    def delay_for(self, attempts: int) -> float:
        base_delay = min(self.base_seconds * (2 ** max(0, attempts)), self.max_seconds)
        jitter = random.uniform(0, min(self.max_seconds / 10, base_delay * 0.1))
        return base_delay + jitter


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, LeaveError):
        return exc.retryable
    # Malformed task payloads fail the same way on every attempt.
    return not isinstance(exc, ValueError)


def build_runtime(config: Settings, queue: RedisTaskQueue) -> SagaRuntime:
    return SagaRuntime(
        session_maker=async_session_maker,
        engine=QueueExecutionEngine(
            queue,
            key_prefix=config.saga_execution_key_prefix,
            timeout_policy=config.saga_timeout_policy,
        ),
        dispatcher=build_dispatcher(config),
        notification_config=NotificationConfig.from_settings(config),
    )


async def _run_task(
    task: QueuedTask,
    *,
    queue: RedisTaskQueue,
    runtime: SagaRuntime,
    retry: RetryPolicy,
) -> bool:
    handler = _TASK_HANDLERS.get(task.task_type)
    if handler is None:
        logger.warning(
            "queue.worker.task_unhandled",
            extra={"task_type": task.task_type, "queue_name": queue.queue_name},
        )
        return False

    try:
        await handler(task, runtime)
    except Exception as exc:
        if not _is_retryable(exc):
            logger.error(
                "queue.worker.task_rejected",
                extra={
                    "task_type": task.task_type,
                    "attempt": task.attempts,
                    "error_kind": exc.kind.value if isinstance(exc, LeaveError) else type(exc).__name__,
                    "error": str(exc),
                },
            )
            return False
        logger.exception(
            "queue.worker.failed",
            extra={"task_type": task.task_type, "attempt": task.attempts, "error": str(exc)},
        )
        if not queue.requeue_if_failed(
            task,
            max_retries=retry.max_retries,
            delay_seconds=retry.delay_for(task.attempts),
        ):
            logger.warning(
                "queue.worker.drop_task",
                extra={"task_type": task.task_type, "attempt": task.attempts},
            )
        return False

    logger.info(
        "queue.worker.success",
        extra={"task_type": task.task_type, "attempt": task.attempts},
    )
    return True


async def flush_queue(
    queue: RedisTaskQueue,
    runtime: SagaRuntime,
    *,
    retry: RetryPolicy,
    throttle_seconds: float = 0,
    block: bool = False,
    block_timeout: float = 0,
) -> int:
    """Consume one queue batch and dispatch by task type."""
    processed = 0
    while True:
        try:
            task = queue.dequeue(block=block, block_timeout=block_timeout)
        except (ValueError, KeyError, TypeError):
            # Undecodable payloads are logged by the queue and skipped.
            continue

        if task is None:
            break

        if await _run_task(task, queue=queue, runtime=runtime, retry=retry):
            processed += 1
        await asyncio.sleep(throttle_seconds)

    if processed > 0:
        logger.info("queue.worker.batch_complete", extra={"count": processed})
    return processed


async def _run_worker_loop(config: Settings) -> None:
    queue = RedisTaskQueue(redis_client(config.rq_redis_url), config.rq_queue_name)
    runtime = build_runtime(config, queue)
    retry = RetryPolicy.from_settings(config)
    while True:
        try:
            await flush_queue(
                queue,
                runtime,
                retry=retry,
                throttle_seconds=config.rq_dispatch_throttle_seconds,
                block=True,
                # Keep a finite timeout so scheduled tasks are periodically drained.
                block_timeout=_WORKER_BLOCK_TIMEOUT_SECONDS,
            )
        except Exception:
            logger.exception(
                "queue.worker.loop_failed",
                extra={"queue_name": config.rq_queue_name},
            )
            await asyncio.sleep(1)


def run_worker() -> None:
    """Console entrypoint for continuous saga queue processing."""
    configure_logging()
    logger.info(
        "queue.worker.started",
        extra={"queue_name": settings.rq_queue_name, "throttle_seconds": settings.rq_dispatch_throttle_seconds},
    )
    try:
        asyncio.run(_run_worker_loop(settings))
    finally:
        logger.info("queue.worker.stopped", extra={"queue_name": settings.rq_queue_name})
