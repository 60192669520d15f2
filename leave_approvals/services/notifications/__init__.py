"""Saga event notifications: templates, dispatch backends and the event handler."""

from leave_approvals.services.notifications.handler import (
    NotificationConfig,
    NotificationResult,
    handle_saga_event,
)
from leave_approvals.services.notifications.mailer import (
    LogMessageDispatcher,
    MessageDispatcher,
    MessageDispatchError,
    SmtpMessageDispatcher,
    build_dispatcher,
)
from leave_approvals.services.notifications.messages import (
    ACCEPT_SUBJECT,
    REJECT_SUBJECT,
    REQUEST_SUBJECT,
)

__all__ = [
    "ACCEPT_SUBJECT",
    "REJECT_SUBJECT",
    "REQUEST_SUBJECT",
    "LogMessageDispatcher",
    "MessageDispatchError",
    "MessageDispatcher",
    "NotificationConfig",
    "NotificationResult",
    "SmtpMessageDispatcher",
    "build_dispatcher",
    "handle_saga_event",
]
