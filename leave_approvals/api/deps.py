"""Reusable FastAPI dependencies wiring the saga components into routes.

The execution engine is built once by the application lifespan and kept on
`app.state`; routes receive it (and the orchestrator wrapping it) through
these providers so tests can swap them with `app.dependency_overrides`.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import Depends, Request

from leave_approvals.core.auth import get_auth_context
from leave_approvals.db.session import get_session
from leave_approvals.services.saga_orchestrator import SagaOrchestrator

if TYPE_CHECKING:
    from leave_approvals.services.execution.engine import ExecutionEngine

AUTH_DEP = Depends(get_auth_context)
SESSION_DEP = Depends(get_session)


def get_execution_engine(request: Request) -> ExecutionEngine:
    """Return the engine created by the application lifespan."""
    return request.app.state.execution_engine


ENGINE_DEP = Depends(get_execution_engine)


def get_orchestrator(engine: ExecutionEngine = ENGINE_DEP) -> SagaOrchestrator:
    return SagaOrchestrator(engine)


ORCHESTRATOR_DEP = Depends(get_orchestrator)
