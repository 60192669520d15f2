# ruff: noqa: INP001
"""Decision resolver tests."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlmodel import SQLModel
from sqlmodel.ext.asyncio.session import AsyncSession

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.models.leave_requests import LeaveRequest, LeaveStatus
from leave_approvals.services import leave_store
from leave_approvals.services.decision_resolver import resolve
from leave_approvals.services.execution.engine import TokenNotOutstandingError
from leave_approvals.services.saga_orchestrator import SagaOrchestrator


@dataclass
class _RecordingEngine:
    successes: list[tuple[str, dict[str, Any]]] = field(default_factory=list)
    failures: list[tuple[str, str, str]] = field(default_factory=list)
    consumed: set[str] = field(default_factory=set)

    async def start(self, *, timeout_seconds: int, payload: dict[str, Any]) -> str:
        raise AssertionError("not expected")

    async def report_success(self, token: str, output: dict[str, Any]) -> None:
        if token in self.consumed:
            raise TokenNotOutstandingError(token)
        self.consumed.add(token)
        self.successes.append((token, output))

    async def report_failure(self, token: str, *, error: str, cause: str) -> None:
        if token in self.consumed:
            raise TokenNotOutstandingError(token)
        self.consumed.add(token)
        self.failures.append((token, error, cause))


async def _make_engine() -> AsyncEngine:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.connect() as conn, conn.begin():
        await conn.run_sync(SQLModel.metadata.create_all)
    return engine


async def _seed(
    session: AsyncSession,
    *,
    status: LeaveStatus = LeaveStatus.PENDING,
    token: str | None = "tok-1",
) -> None:
    await leave_store.create_if_absent(
        session,
        LeaveRequest(
            identity="leave-1",
            applicant_id="alex@example.com",
            applicant_name="Alex Chen",
            from_instant=datetime(2026, 1, 10),
            to_instant=datetime(2026, 1, 12, 23, 59, 59, 999_000),
            status=status.value,
            continuation_token=token,
        ),
    )


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("action", "event_type", "status", "message"),
    [
        ("accept", "ACCEPT", LeaveStatus.ACCEPTED, "Leave accepted successfully"),
        ("REJECT", "REJECT", LeaveStatus.REJECTED, "Leave rejected successfully"),
    ],
)
async def test_resolve_forwards_decision_without_writing(
    action: str,
    event_type: str,
    status: LeaveStatus,
    message: str,
) -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            await _seed(session)
            result = await resolve(
                session,
                identity="leave-1",
                action=action,
                orchestrator=SagaOrchestrator(engine),
            )
            stored = await leave_store.get_leave(session, "leave-1")

        assert result.status is status
        assert result.message == message
        [(token, output)] = engine.successes
        assert token == "tok-1"
        assert output["type"] == event_type
        assert stored is not None
        assert stored.leave_status is LeaveStatus.PENDING
        assert stored.continuation_token == "tok-1"
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_unknown_identity_is_not_found() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            with pytest.raises(LeaveError) as exc_info:
                await resolve(
                    session,
                    identity="missing",
                    action="accept",
                    orchestrator=SagaOrchestrator(_RecordingEngine()),
                )

        assert exc_info.value.kind is ErrorKind.NOT_FOUND
        assert exc_info.value.message == "Leave with ID missing not found"
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_resolved_request_is_already_processed_for_any_action() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            await _seed(session, status=LeaveStatus.ACCEPTED, token=None)
            for action in ("accept", "reject", "bogus"):
                with pytest.raises(LeaveError) as exc_info:
                    await resolve(
                        session,
                        identity="leave-1",
                        action=action,
                        orchestrator=SagaOrchestrator(engine),
                    )
                assert exc_info.value.kind is ErrorKind.ALREADY_PROCESSED
                assert exc_info.value.status == "ACCEPTED"

        assert engine.successes == []
        assert engine.failures == []
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_invalid_action_reports_failure_then_raises() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            await _seed(session)
            with pytest.raises(LeaveError) as exc_info:
                await resolve(
                    session,
                    identity="leave-1",
                    action="approve",
                    orchestrator=SagaOrchestrator(engine),
                )

        assert exc_info.value.kind is ErrorKind.INVALID_ACTION
        assert exc_info.value.message == "Invalid action: approve. Expected ACCEPT or REJECT."
        assert engine.failures == [
            ("tok-1", "InvalidAction", "The action approve is not valid. Expected ACCEPT or REJECT."),
        ]
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_pending_request_without_token_is_missing_token() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    try:
        async with session_maker() as session:
            await _seed(session, token=None)
            with pytest.raises(LeaveError) as exc_info:
                await resolve(
                    session,
                    identity="leave-1",
                    action="accept",
                    orchestrator=SagaOrchestrator(_RecordingEngine()),
                )

        assert exc_info.value.kind is ErrorKind.MISSING_TOKEN
    finally:
        await db.dispose()


@pytest.mark.asyncio
async def test_concurrent_second_decision_is_already_processed() -> None:
    db = await _make_engine()
    session_maker = async_sessionmaker(db, class_=AsyncSession, expire_on_commit=False)
    engine = _RecordingEngine()
    try:
        async with session_maker() as session:
            await _seed(session)
            orchestrator = SagaOrchestrator(engine)
            await resolve(session, identity="leave-1", action="accept", orchestrator=orchestrator)
            with pytest.raises(LeaveError) as exc_info:
                await resolve(session, identity="leave-1", action="reject", orchestrator=orchestrator)

        assert exc_info.value.kind is ErrorKind.ALREADY_PROCESSED
        assert len(engine.successes) == 1
    finally:
        await db.dispose()
