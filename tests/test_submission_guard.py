# ruff: noqa: INP001
"""Submission guard tests: duplicate detection and saga start."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.models.leave_requests import LeaveRequest, LeaveStatus
from leave_approvals.services import leave_store
from leave_approvals.services.date_range import LeaveInterval
from leave_approvals.services.execution.engine import ExecutionEngineError
from leave_approvals.services.identity import fingerprint
from leave_approvals.services.saga_orchestrator import SagaOrchestrator
from leave_approvals.services.submission_guard import DUPLICATE_MESSAGE, submit

INTERVAL = LeaveInterval(
    from_instant=datetime(2026, 1, 10, tzinfo=UTC),
    to_instant=datetime(2026, 1, 12, 23, 59, 59, 999_000, tzinfo=UTC),
)


@dataclass
class _RecordingEngine:
    starts: list[dict[str, Any]] = field(default_factory=list)
    fail: bool = False

    async def start(self, *, timeout_seconds: int, payload: dict[str, Any]) -> str:
        if self.fail:
            raise ExecutionEngineError("down")
        self.starts.append({"timeout_seconds": timeout_seconds, "payload": payload})
        return "token"

    async def report_success(self, token: str, output: dict[str, Any]) -> None:
        raise AssertionError("not expected")

    async def report_failure(self, token: str, *, error: str, cause: str) -> None:
        raise AssertionError("not expected")


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


async def _submit(session: AsyncSession, engine: _RecordingEngine, **overrides: Any) -> LeaveRequest:
    kwargs: dict[str, Any] = {
        "applicant_id": "alex@example.com",
        "applicant_name": "Alex Chen",
        "interval": INTERVAL,
        "reason": "family trip",
        "orchestrator": SagaOrchestrator(engine),
    }
    kwargs.update(overrides)
    return await submit(session, **kwargs)


@pytest.mark.asyncio
async def test_submit_creates_pending_request_and_starts_saga() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            record = await _submit(session, engine)
            stored = await leave_store.get_leave(session, record.identity)

        assert record.identity == fingerprint("alex@example.com", INTERVAL.from_instant, INTERVAL.to_instant)
        assert stored is not None
        assert stored.leave_status is LeaveStatus.PENDING
        assert stored.continuation_token is None
        assert stored.reason == "family trip"
        assert stored.from_instant == datetime(2026, 1, 10)

        assert len(engine.starts) == 1
        started = engine.starts[0]
        assert started["timeout_seconds"] == INTERVAL.duration_seconds
        assert started["payload"] == {
            "type": "REQUEST",
            "applicantId": "alex@example.com",
            "applicantName": "Alex Chen",
            "fromDate": "2026-01-10T00:00:00.000+00:00",
            "toDate": "2026-01-12T23:59:59.999+00:00",
        }
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_pending_duplicate_is_rejected_without_new_saga() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            await _submit(session, engine)
            with pytest.raises(LeaveError) as exc_info:
                await _submit(session, engine, applicant_name="Someone Else")

        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert exc_info.value.message == DUPLICATE_MESSAGE
        assert len(engine.starts) == 1
    finally:
        await db.dispose()


@pytest.mark.asyncio
@pytest.mark.parametrize("terminal", [LeaveStatus.ACCEPTED, LeaveStatus.REJECTED])
async def test_resolved_request_blocks_resubmission(terminal: LeaveStatus) -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            record = await _submit(session, engine)
            assert await leave_store.complete(session, record.identity, terminal) is True

            with pytest.raises(LeaveError) as exc_info:
                await _submit(session, engine)
            stored = await leave_store.get_leave(session, record.identity)

        assert exc_info.value.kind is ErrorKind.CONFLICT
        assert stored is not None and stored.leave_status is terminal
        assert len(engine.starts) == 1
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_same_dates_for_another_applicant_are_independent() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            first = await _submit(session, engine)
            second = await _submit(session, engine, applicant_id="sam@example.com")

        assert first.identity != second.identity
        assert len(engine.starts) == 2
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_point_interval_starts_with_zero_timeout() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    point = datetime(2026, 1, 10, 9, 0, tzinfo=UTC)
    try:
        async with session_maker() as session:
            await _submit(session, engine, interval=LeaveInterval(from_instant=point, to_instant=point))

        assert engine.starts[0]["timeout_seconds"] == 0
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_engine_failure_surfaces_as_execution_engine_error() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine(fail=True)
    try:
        async with session_maker() as session:
            with pytest.raises(LeaveError) as exc_info:
                await _submit(session, engine)

        assert exc_info.value.kind is ErrorKind.EXECUTION_ENGINE_ERROR
        assert exc_info.value.retryable is True
    finally:
        await db.dispose()
