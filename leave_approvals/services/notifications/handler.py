"""Notification and state-transition handling for saga events.

Each event performs at most one write to the leave request:

- REQUEST notifies the administrators and attaches the continuation token.
- ACCEPT / REJECT notify the applicant and move the request to its terminal
  status, clearing the token.

Writes are conditional on the request still being PENDING, so a duplicate or
late event fails with ``AlreadyProcessed`` instead of repeating a transition.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger
from leave_approvals.models.leave_requests import LeaveRequest, LeaveStatus
from leave_approvals.services import leave_store
from leave_approvals.services.directory import query_by_role
from leave_approvals.services.execution.engine import token_preview
from leave_approvals.services.identity import fingerprint
from leave_approvals.services.notifications.mailer import MessageDispatchError
from leave_approvals.services.notifications.messages import (
    RenderedMessage,
    decision_message,
    request_message,
)

if TYPE_CHECKING:
    from sqlmodel.ext.asyncio.session import AsyncSession

    from leave_approvals.core.config import Settings
    from leave_approvals.schemas.saga_events import SagaEvent
    from leave_approvals.services.notifications.mailer import MessageDispatcher

logger = get_logger(__name__)

EVENT_TYPES = frozenset({"REQUEST", "ACCEPT", "REJECT"})


@dataclass(frozen=True)
class NotificationConfig:
    sender: str
    base_url: str
    admin_role: str = "ADMIN"

    @classmethod
    def from_settings(cls, settings: Settings) -> NotificationConfig:
        return cls(
            sender=settings.sender_email,
            base_url=settings.base_url,
            admin_role=settings.admin_role,
        )


@dataclass(frozen=True)
class NotificationResult:
    success: bool
    message: str
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class _EventFields:
    event_type: str
    applicant_id: str
    applicant_name: str
    from_date: str
    to_date: str
    identity: str

    def details(self) -> dict[str, Any]:
        return {
            "identity": self.identity,
            "applicant_id": self.applicant_id,
            "applicant_name": self.applicant_name,
            "from_date": self.from_date,
            "to_date": self.to_date,
        }


def _invalid(message: str) -> LeaveError:
    return LeaveError(ErrorKind.INVALID_EVENT, message)


def _parse_instant(raw: str) -> datetime:
    try:
        return datetime.fromisoformat(raw)
    except ValueError as exc:
        raise _invalid(f"Invalid instant in event: {raw!r}") from exc


def _event_fields(event: SagaEvent) -> _EventFields:
    body = event.input
    if not body.type:
        raise _invalid("Event type is required")
    event_type = body.type.upper()
    if event_type not in EVENT_TYPES:
        raise _invalid(f"Unknown event type: {body.type}")
    if not (body.applicant_id and body.applicant_name and body.from_date and body.to_date):
        raise _invalid("Missing required fields for leave request")
    identity = fingerprint(
        body.applicant_id,
        _parse_instant(body.from_date),
        _parse_instant(body.to_date),
    )
    return _EventFields(
        event_type=event_type,
        applicant_id=body.applicant_id,
        applicant_name=body.applicant_name,
        from_date=body.from_date,
        to_date=body.to_date,
        identity=identity,
    )


def _notification_error(fields: _EventFields, exc: Exception) -> LeaveError:
    logger.warning(
        "saga.event.notification_failed",
        extra={"identity": fields.identity, "event_type": fields.event_type, "error": str(exc)},
    )
    return LeaveError(ErrorKind.NOTIFICATION_ERROR, "Failed to send notifications")


async def _load_pending(session: AsyncSession, fields: _EventFields) -> LeaveRequest:
    try:
        record = await leave_store.get_leave(session, fields.identity)
    except LeaveError as exc:
        raise _notification_error(fields, exc) from exc
    if record is None:
        raise _invalid(f"Leave with ID {fields.identity} not found")
    if record.leave_status.is_terminal:
        raise _already_processed(record)
    return record


def _already_processed(record: LeaveRequest) -> LeaveError:
    return LeaveError(
        ErrorKind.ALREADY_PROCESSED,
        f"Leave with ID {record.identity} has been already processed with status {record.status}",
        status=record.status,
    )


async def _send(
    dispatcher: MessageDispatcher,
    config: NotificationConfig,
    fields: _EventFields,
    recipients: list[str],
    message: RenderedMessage,
) -> None:
    try:
        await dispatcher.send(
            config.sender,
            recipients,
            message.subject,
            message.text_body,
            message.html_body,
        )
    except (MessageDispatchError, OSError) as exc:
        raise _notification_error(fields, exc) from exc


async def _audience(
    session: AsyncSession,
    config: NotificationConfig,
    fields: _EventFields,
) -> list[str]:
    try:
        admins = await query_by_role(session, config.admin_role)
    except LeaveError as exc:
        raise _notification_error(fields, exc) from exc
    return [admin.email for admin in admins if admin.email and admin.email != fields.applicant_id]


async def _handle_request(
    session: AsyncSession,
    fields: _EventFields,
    token: str,
    *,
    dispatcher: MessageDispatcher,
    config: NotificationConfig,
) -> NotificationResult:
    record = await _load_pending(session, fields)
    recipients = await _audience(session, config, fields)
    if not recipients:
        raise LeaveError(ErrorKind.NO_RECIPIENTS, "No administrators found")

    message = request_message(
        base_url=config.base_url,
        identity=fields.identity,
        applicant_id=fields.applicant_id,
        applicant_name=fields.applicant_name,
        from_date=fields.from_date,
        to_date=fields.to_date,
    )
    await _send(dispatcher, config, fields, recipients, message)

    try:
        attached = await leave_store.attach_token(session, fields.identity, token)
    except LeaveError as exc:
        raise _notification_error(fields, exc) from exc
    if not attached:
        raise _already_processed(record)

    logger.info(
        "saga.event.token_attached",
        extra={
            "identity": fields.identity,
            "token": token_preview(token),
            "admins_notified": len(recipients),
        },
    )
    return NotificationResult(
        success=True,
        message="Admin notifications sent",
        details={"admins_notified": len(recipients), "admins": recipients, **fields.details()},
    )


async def _handle_decision(
    session: AsyncSession,
    fields: _EventFields,
    *,
    dispatcher: MessageDispatcher,
    config: NotificationConfig,
) -> NotificationResult:
    accepted = fields.event_type == "ACCEPT"
    outcome = LeaveStatus.ACCEPTED if accepted else LeaveStatus.REJECTED
    record = await _load_pending(session, fields)

    message = decision_message(
        accepted=accepted,
        applicant_id=fields.applicant_id,
        applicant_name=fields.applicant_name,
        from_date=fields.from_date,
        to_date=fields.to_date,
    )
    await _send(dispatcher, config, fields, [fields.applicant_id], message)

    try:
        completed = await leave_store.complete(session, fields.identity, outcome)
    except LeaveError as exc:
        raise _notification_error(fields, exc) from exc
    if not completed:
        raise _already_processed(record)

    logger.info(
        "saga.event.resolved",
        extra={"identity": fields.identity, "status": outcome.value},
    )
    verdict = "acceptance" if accepted else "rejection"
    return NotificationResult(
        success=True,
        message=f"Applicant notified of {verdict}",
        details=fields.details(),
    )


async def handle_saga_event(
    session: AsyncSession,
    event: SagaEvent,
    *,
    dispatcher: MessageDispatcher,
    config: NotificationConfig,
) -> NotificationResult:
    """Notify the audience for `event` and apply its state transition."""
    fields = _event_fields(event)
    logger.info(
        "saga.event.received",
        extra={"identity": fields.identity, "event_type": fields.event_type},
    )
    if fields.event_type == "REQUEST":
        if not event.task_token:
            raise LeaveError(ErrorKind.MISSING_TOKEN, "Task token is required for REQUEST type")
        return await _handle_request(
            session,
            fields,
            event.task_token,
            dispatcher=dispatcher,
            config=config,
        )
    return await _handle_decision(session, fields, dispatcher=dispatcher, config=config)
