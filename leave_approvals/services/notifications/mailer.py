"""Outbound message dispatch backends."""

from __future__ import annotations

from email.message import EmailMessage
from typing import TYPE_CHECKING, Protocol

import aiosmtplib

from leave_approvals.core.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from leave_approvals.core.config import Settings

logger = get_logger(__name__)
_IMPLICIT_TLS_PORT = 465


class MessageDispatchError(Exception):
    """A message could not be handed to the transport."""


class MessageDispatcher(Protocol):
    async def send(
        self,
        sender: str,
        recipients: Sequence[str],
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None: ...


def build_message(
    sender: str,
    recipients: Sequence[str],
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = ", ".join(recipients)
    message["Subject"] = subject
    message.set_content(text_body)
    if html_body:
        message.add_alternative(html_body, subtype="html")
    return message


class SmtpMessageDispatcher:
    """Send messages through an SMTP relay with aiosmtplib."""

    def __init__(
        self,
        *,
        hostname: str,
        port: int,
        username: str = "",
        password: str = "",
        use_tls: bool = True,
        timeout: float = 30.0,
    ) -> None:
        self.hostname = hostname
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.timeout = timeout

    async def send(
        self,
        sender: str,
        recipients: Sequence[str],
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        message = build_message(sender, recipients, subject, text_body, html_body)
        implicit_tls = self.use_tls and self.port == _IMPLICIT_TLS_PORT
        try:
            await aiosmtplib.send(
                message,
                hostname=self.hostname,
                port=self.port,
                username=self.username or None,
                password=self.password or None,
                use_tls=implicit_tls,
                start_tls=self.use_tls and not implicit_tls,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as exc:
            logger.warning(
                "mail.smtp.send_failed",
                extra={"subject": subject, "recipient_count": len(recipients), "error": str(exc)},
            )
            raise MessageDispatchError(str(exc)) from exc
        logger.info(
            "mail.smtp.sent",
            extra={"subject": subject, "recipient_count": len(recipients)},
        )


class LogMessageDispatcher:
    """Development backend: record message metadata in the log, send nothing."""

    async def send(
        self,
        sender: str,
        recipients: Sequence[str],
        subject: str,
        text_body: str,
        html_body: str | None = None,
    ) -> None:
        logger.info(
            "mail.log.dispatch",
            extra={
                "sender": sender,
                "recipients": list(recipients),
                "subject": subject,
                "has_html": html_body is not None,
                "text_length": len(text_body),
            },
        )


def build_dispatcher(settings: Settings) -> MessageDispatcher:
    if settings.mail_backend == "smtp":
        return SmtpMessageDispatcher(
            hostname=settings.smtp_host,
            port=settings.smtp_port,
            username=settings.smtp_user,
            password=settings.smtp_password,
            use_tls=settings.smtp_use_tls,
        )
    return LogMessageDispatcher()
