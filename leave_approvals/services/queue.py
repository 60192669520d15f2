"""Redis-backed task queue with delayed delivery.

Ready tasks live in a Redis list; delayed tasks wait in a sorted set scored by
their due time and are moved onto the list when a consumer polls.
"""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from typing import Any, cast

import redis

from leave_approvals.core.logging import get_logger

logger = get_logger(__name__)

_SCHEDULED_SUFFIX = ":scheduled"
_DRAIN_BATCH_SIZE = 100


@dataclass(frozen=True)
class QueuedTask:
    """Task envelope stored on the queue."""

    task_type: str
    payload: dict[str, Any]
    created_at: datetime
    attempts: int = 0

    def to_json(self) -> str:
        return json.dumps(
            {
                "task_type": self.task_type,
                "payload": self.payload,
                "created_at": self.created_at.isoformat(),
                "attempts": self.attempts,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str | bytes) -> QueuedTask:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        data: dict[str, Any] = json.loads(raw)
        return cls(
            task_type=str(data["task_type"]),
            payload=dict(data.get("payload") or {}),
            created_at=datetime.fromisoformat(data["created_at"]),
            attempts=int(data.get("attempts", 0)),
        )


def new_task(task_type: str, payload: dict[str, Any]) -> QueuedTask:
    return QueuedTask(task_type=task_type, payload=payload, created_at=datetime.now(UTC))


def redis_client(redis_url: str) -> redis.Redis:
    return redis.Redis.from_url(redis_url)


def _now_seconds() -> float:
    return time.time()


class RedisTaskQueue:
    """Producer/consumer handle for one named queue."""

    def __init__(self, client: redis.Redis, queue_name: str) -> None:
        self.client = client
        self.queue_name = queue_name

    @property
    def scheduled_key(self) -> str:
        return f"{self.queue_name}{_SCHEDULED_SUFFIX}"

    def enqueue(self, task: QueuedTask) -> None:
        """Push a task for immediate processing; Redis errors propagate."""
        self.client.lpush(self.queue_name, task.to_json())
        logger.info(
            "queue.enqueued",
            extra={
                "task_type": task.task_type,
                "queue_name": self.queue_name,
                "attempt": task.attempts,
            },
        )

    def enqueue_with_delay(self, task: QueuedTask, *, delay_seconds: float) -> None:
        """Enqueue now, or park the task until `delay_seconds` have passed."""
        delay = max(0.0, float(delay_seconds))
        if delay == 0:
            self.enqueue(task)
            return
        self.client.zadd(self.scheduled_key, {task.to_json(): _now_seconds() + delay})
        logger.info(
            "queue.scheduled",
            extra={
                "task_type": task.task_type,
                "queue_name": self.queue_name,
                "delay_seconds": delay,
            },
        )

    def _drain_ready_scheduled(self) -> float | None:
        """Move due tasks onto the list; return seconds until the next one."""
        now = _now_seconds()
        ready_items = cast(
            list[str | bytes],
            self.client.zrangebyscore(self.scheduled_key, "-inf", now, start=0, num=_DRAIN_BATCH_SIZE),
        )
        if ready_items:
            # Only the caller that removes an item may deliver it.
            for item in ready_items:
                if self.client.zrem(self.scheduled_key, item):
                    self.client.lpush(self.queue_name, item)
            logger.debug(
                "queue.drain_ready_scheduled",
                extra={"queue_name": self.queue_name, "count": len(ready_items)},
            )

        next_item = cast(
            list[tuple[str | bytes, float]],
            self.client.zrangebyscore(
                self.scheduled_key,
                now,
                "+inf",
                start=0,
                num=1,
                withscores=True,
            ),
        )
        if not next_item:
            return None
        return max(0.0, float(next_item[0][1]) - now)

    def dequeue(self, *, block: bool = False, block_timeout: float = 0) -> QueuedTask | None:
        """Pop one task, optionally blocking until one is ready."""
        next_delay = self._drain_ready_scheduled()
        raw: str | bytes | None
        if block:
            timeout = max(0.0, float(block_timeout))
            if next_delay is not None:
                timeout = min(timeout, next_delay) if timeout else next_delay
            result = cast(
                tuple[bytes | str, bytes | str] | None,
                self.client.brpop([self.queue_name], timeout=timeout),
            )
            raw = result[1] if result is not None else None
        else:
            raw = cast(str | bytes | None, self.client.rpop(self.queue_name))
        if raw is None:
            return None
        try:
            return QueuedTask.from_json(raw)
        except (ValueError, KeyError, TypeError) as exc:
            logger.error(
                "queue.dequeue_failed",
                extra={"queue_name": self.queue_name, "raw_payload": str(raw), "error": str(exc)},
            )
            raise

    def requeue_if_failed(
        self,
        task: QueuedTask,
        *,
        max_retries: int,
        delay_seconds: float = 0,
    ) -> bool:
        """Requeue a failed task with capped retries. Returns True if requeued."""
        retried = replace(task, attempts=task.attempts + 1)
        if retried.attempts > max_retries:
            logger.warning(
                "queue.drop_failed_task",
                extra={
                    "task_type": task.task_type,
                    "queue_name": self.queue_name,
                    "attempts": retried.attempts,
                },
            )
            return False
        self.enqueue_with_delay(retried, delay_seconds=delay_seconds)
        return True
