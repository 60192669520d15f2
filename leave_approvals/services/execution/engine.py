"""Durable-execution engine contract and its Redis queue-backed implementation.

An execution is represented by one Redis key per outstanding continuation
token. Whoever deletes the key owns the execution's next step, so a decision,
a failure report and a timeout can race safely: exactly one of them claims
the token and the rest observe ``TokenNotOutstandingError`` (or a no-op for
timeouts).
"""

from __future__ import annotations

import json
import secrets
from typing import TYPE_CHECKING, Any, Literal, Protocol

import redis

from leave_approvals.core.logging import get_logger
from leave_approvals.schemas.saga_events import SagaEvent, SagaEventInput
from leave_approvals.services.execution.tasks import event_task, timeout_task

if TYPE_CHECKING:
    from leave_approvals.services.queue import RedisTaskQueue

logger = get_logger(__name__)

TimeoutPolicy = Literal["reject", "ignore"]


class ExecutionEngineError(Exception):
    """The engine could not accept the request."""


class TokenNotOutstandingError(ExecutionEngineError):
    """The continuation token was already consumed or never issued."""

    def __init__(self, token: str) -> None:
        super().__init__(f"Continuation token {token_preview(token)} is not outstanding")
        self.token = token


def token_preview(token: str) -> str:
    return f"{token[:8]}..."


class ExecutionEngine(Protocol):
    """Operations the saga needs from a durable-execution engine."""

    async def start(self, *, timeout_seconds: int, payload: dict[str, Any]) -> str:
        """Begin an execution; the REQUEST event is delivered asynchronously."""
        ...

    async def report_success(self, token: str, output: dict[str, Any]) -> None: ...

    async def report_failure(self, token: str, *, error: str, cause: str) -> None: ...


class QueueExecutionEngine:
    """Execution engine driving saga events through the Redis task queue."""

    def __init__(
        self,
        queue: RedisTaskQueue,
        *,
        key_prefix: str,
        timeout_policy: TimeoutPolicy = "reject",
    ) -> None:
        self.queue = queue
        self.key_prefix = key_prefix
        self.timeout_policy = timeout_policy

    def _key(self, token: str) -> str:
        return f"{self.key_prefix}:{token}"

    @staticmethod
    def _mint_token() -> str:
        return secrets.token_urlsafe(32)

    def _claim(self, token: str) -> dict[str, Any] | None:
        raw = self.queue.client.getdel(self._key(token))
        if raw is None:
            return None
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return dict(json.loads(raw))

    def _deliver(self, payload: dict[str, Any], *, token: str | None = None) -> None:
        event = SagaEvent(input=SagaEventInput.model_validate(payload), task_token=token)
        self.queue.enqueue(event_task(event))

    def _deliver_claimed(self, token: str, registered: dict[str, Any], payload: dict[str, Any]) -> None:
        try:
            self._deliver(payload)
        except redis.RedisError:
            # Give the token back so the step can be retried.
            self.queue.client.set(self._key(token), json.dumps(registered, sort_keys=True))
            raise

    async def start(self, *, timeout_seconds: int, payload: dict[str, Any]) -> str:
        token = self._mint_token()
        timeout = max(0, int(timeout_seconds))
        try:
            self.queue.client.set(self._key(token), json.dumps(payload, sort_keys=True))
            self._deliver(payload, token=token)
            # A point interval has no decision window to enforce.
            if timeout > 0:
                self.queue.enqueue_with_delay(timeout_task(token), delay_seconds=timeout)
        except redis.RedisError as exc:
            logger.warning("saga.execution.start_failed", extra={"error": str(exc)})
            raise ExecutionEngineError("Execution engine unavailable") from exc
        logger.info(
            "saga.execution.started",
            extra={"token": token_preview(token), "timeout_seconds": timeout},
        )
        return token

    async def report_success(self, token: str, output: dict[str, Any]) -> None:
        try:
            registered = self._claim(token)
            if registered is None:
                raise TokenNotOutstandingError(token)
            self._deliver_claimed(token, registered, output)
        except redis.RedisError as exc:
            logger.warning(
                "saga.execution.report_success_failed",
                extra={"token": token_preview(token), "error": str(exc)},
            )
            raise ExecutionEngineError("Execution engine unavailable") from exc
        logger.info(
            "saga.execution.resumed",
            extra={"token": token_preview(token), "event_type": output.get("type")},
        )

    async def report_failure(self, token: str, *, error: str, cause: str) -> None:
        try:
            registered = self._claim(token)
        except redis.RedisError as exc:
            raise ExecutionEngineError("Execution engine unavailable") from exc
        if registered is None:
            raise TokenNotOutstandingError(token)
        logger.warning(
            "saga.execution.failed",
            extra={"token": token_preview(token), "error": error, "cause": cause},
        )

    async def expire(self, token: str) -> bool:
        """Fire a timeout. Returns False when the execution already moved on."""
        try:
            registered = self._claim(token)
            if registered is None:
                logger.debug("saga.timeout.stale", extra={"token": token_preview(token)})
                return False
            if self.timeout_policy == "reject":
                self._deliver_claimed(token, registered, {**registered, "type": "REJECT"})
                logger.info("saga.timeout.auto_reject", extra={"token": token_preview(token)})
            else:
                logger.info("saga.timeout.expired", extra={"token": token_preview(token)})
        except redis.RedisError as exc:
            raise ExecutionEngineError("Execution engine unavailable") from exc
        return True
