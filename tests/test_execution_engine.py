# ruff: noqa: INP001
"""Queue-backed execution engine tests."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest
import redis

from leave_approvals.services.execution import (
    EVENT_TASK_TYPE,
    TIMEOUT_TASK_TYPE,
    ExecutionEngineError,
    QueueExecutionEngine,
    TokenNotOutstandingError,
    decode_event_task,
)
from leave_approvals.services.queue import RedisTaskQueue

if TYPE_CHECKING:
    from conftest import FakeRedis

PAYLOAD = {
    "type": "REQUEST",
    "applicantId": "alex@example.com",
    "applicantName": "Alex Chen",
    "fromDate": "2026-01-10T00:00:00.000+00:00",
    "toDate": "2026-01-12T23:59:59.999+00:00",
}


def _engine(fake_redis: FakeRedis, policy: str = "reject") -> QueueExecutionEngine:
    queue = RedisTaskQueue(fake_redis, "saga")  # type: ignore[arg-type]
    return QueueExecutionEngine(queue, key_prefix="saga:execution", timeout_policy=policy)  # type: ignore[arg-type]


def _drain(engine: QueueExecutionEngine) -> list:
    tasks = []
    while (task := engine.queue.dequeue()) is not None:
        tasks.append(task)
    return tasks


@pytest.mark.asyncio
async def test_start_registers_token_and_delivers_request(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis)

    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)

    assert json.loads(fake_redis.values[f"saga:execution:{token}"]) == PAYLOAD
    [task] = _drain(engine)
    assert task.task_type == EVENT_TASK_TYPE
    event = decode_event_task(task)
    assert event.task_token == token
    assert event.input.type == "REQUEST"
    assert event.input.applicant_id == "alex@example.com"

    [(scheduled, _score)] = fake_redis.zrangebyscore("saga:scheduled", "-inf", "+inf", withscores=True)
    assert json.loads(scheduled)["task_type"] == TIMEOUT_TASK_TYPE


@pytest.mark.asyncio
async def test_zero_timeout_schedules_no_deadline(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis)

    token = await engine.start(timeout_seconds=0, payload=PAYLOAD)

    [task] = _drain(engine)
    assert task.task_type == EVENT_TASK_TYPE
    assert fake_redis.zsets.get("saga:scheduled", {}) == {}

    await engine.report_success(token, {**PAYLOAD, "type": "ACCEPT"})

    [decision] = _drain(engine)
    assert decode_event_task(decision).input.type == "ACCEPT"


@pytest.mark.asyncio
async def test_report_success_consumes_token_once(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis)
    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)
    _drain(engine)

    await engine.report_success(token, {**PAYLOAD, "type": "ACCEPT"})

    [task] = _drain(engine)
    event = decode_event_task(task)
    assert event.input.type == "ACCEPT"
    assert event.task_token is None
    assert f"saga:execution:{token}" not in fake_redis.values

    with pytest.raises(TokenNotOutstandingError):
        await engine.report_success(token, {**PAYLOAD, "type": "REJECT"})
    assert _drain(engine) == []


@pytest.mark.asyncio
async def test_report_failure_ends_execution_without_event(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis)
    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)
    _drain(engine)

    await engine.report_failure(token, error="InvalidAction", cause="bad action")

    assert _drain(engine) == []
    with pytest.raises(TokenNotOutstandingError):
        await engine.report_success(token, {**PAYLOAD, "type": "ACCEPT"})


@pytest.mark.asyncio
async def test_unknown_token_is_not_outstanding(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis)

    with pytest.raises(TokenNotOutstandingError) as exc_info:
        await engine.report_failure("never-issued-token", error="x", cause="y")

    assert "never-is..." in str(exc_info.value)


@pytest.mark.asyncio
async def test_expire_with_reject_policy_delivers_reject(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis, policy="reject")
    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)
    _drain(engine)

    assert await engine.expire(token) is True

    [task] = _drain(engine)
    event = decode_event_task(task)
    assert event.input.type == "REJECT"
    assert event.input.from_date == PAYLOAD["fromDate"]


@pytest.mark.asyncio
async def test_expire_with_ignore_policy_only_consumes_token(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis, policy="ignore")
    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)
    _drain(engine)

    assert await engine.expire(token) is True

    assert _drain(engine) == []
    with pytest.raises(TokenNotOutstandingError):
        await engine.report_success(token, {**PAYLOAD, "type": "ACCEPT"})


@pytest.mark.asyncio
async def test_expire_after_decision_is_stale(fake_redis: FakeRedis) -> None:
    engine = _engine(fake_redis)
    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)
    await engine.report_success(token, {**PAYLOAD, "type": "ACCEPT"})
    _drain(engine)

    assert await engine.expire(token) is False
    assert _drain(engine) == []


@pytest.mark.asyncio
async def test_redis_failure_on_start_is_engine_error(
    fake_redis: FakeRedis,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    engine = _engine(fake_redis)

    def _boom(*_args: object, **_kwargs: object) -> None:
        raise redis.ConnectionError("redis down")

    monkeypatch.setattr(fake_redis, "set", _boom)

    with pytest.raises(ExecutionEngineError):
        await engine.start(timeout_seconds=60, payload=PAYLOAD)


@pytest.mark.asyncio
async def test_delivery_failure_restores_claimed_token(
    fake_redis: FakeRedis,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    engine = _engine(fake_redis)
    token = await engine.start(timeout_seconds=3600, payload=PAYLOAD)
    _drain(engine)

    def _boom(*_args: object, **_kwargs: object) -> int:
        raise redis.ConnectionError("redis down")

    monkeypatch.setattr(fake_redis, "lpush", _boom)

    with pytest.raises(ExecutionEngineError) as exc_info:
        await engine.report_success(token, {**PAYLOAD, "type": "ACCEPT"})

    assert not isinstance(exc_info.value, TokenNotOutstandingError)
    assert json.loads(fake_redis.values[f"saga:execution:{token}"]) == PAYLOAD
