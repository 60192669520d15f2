# ruff: noqa: INP001
"""Message template and dispatch backend tests."""

from __future__ import annotations

import logging
from email.message import EmailMessage
from typing import Any

import aiosmtplib
import pytest

from leave_approvals.core.auth_mode import AuthMode
from leave_approvals.core.config import Settings
from leave_approvals.services.notifications import mailer
from leave_approvals.services.notifications.mailer import (
    LogMessageDispatcher,
    MessageDispatchError,
    SmtpMessageDispatcher,
    build_dispatcher,
    build_message,
)
from leave_approvals.services.notifications.messages import (
    ACCEPT_SUBJECT,
    REJECT_SUBJECT,
    REQUEST_SUBJECT,
    action_url,
    decision_message,
    request_message,
)


def test_action_url_trims_trailing_slash() -> None:
    assert action_url("https://leave.example.com/", "accept", "abc_-1") == (
        "https://leave.example.com/leave/accept/abc_-1"
    )


def test_request_message_links_and_escapes() -> None:
    message = request_message(
        base_url="https://leave.example.com",
        identity="id-1",
        applicant_id="alex@example.com",
        applicant_name="Alex <Chen>",
        from_date="2026-01-10T00:00:00.000+00:00",
        to_date="2026-01-12T23:59:59.999+00:00",
    )

    assert message.subject == REQUEST_SUBJECT
    assert "Accept: https://leave.example.com/leave/accept/id-1" in message.text_body
    assert "Reject: https://leave.example.com/leave/reject/id-1" in message.text_body
    assert "Alex <Chen>" in message.text_body
    assert message.html_body is not None
    assert "Alex &lt;Chen&gt;" in message.html_body
    assert 'href="https://leave.example.com/leave/reject/id-1"' in message.html_body


@pytest.mark.parametrize(
    ("accepted", "subject", "verdict"),
    [(True, ACCEPT_SUBJECT, "accepted"), (False, REJECT_SUBJECT, "rejected")],
)
def test_decision_message(accepted: bool, subject: str, verdict: str) -> None:
    message = decision_message(
        accepted=accepted,
        applicant_id="alex@example.com",
        applicant_name="Alex Chen",
        from_date="2026-01-10T00:00:00.000+00:00",
        to_date="2026-01-12T23:59:59.999+00:00",
    )

    assert message.subject == subject
    assert message.text_body.endswith(f"has been {verdict}.")
    assert message.html_body is None


def test_build_message_adds_html_alternative() -> None:
    message = build_message("from@example.com", ["a@example.com", "b@example.com"], "Hi", "text", "<p>html</p>")

    assert message["To"] == "a@example.com, b@example.com"
    assert message.is_multipart()
    assert message.get_body(preferencelist=("html",)) is not None


@pytest.mark.asyncio
async def test_smtp_dispatcher_uses_starttls_on_submission_port(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    async def _fake_send(message: EmailMessage, **kwargs: Any) -> None:
        captured["message"] = message
        captured.update(kwargs)

    monkeypatch.setattr(mailer.aiosmtplib, "send", _fake_send)
    dispatcher = SmtpMessageDispatcher(hostname="smtp.example.com", port=587, username="u", password="p")

    await dispatcher.send("leave@example.com", ["boss@example.com"], "Subject", "body")

    assert captured["hostname"] == "smtp.example.com"
    assert captured["start_tls"] is True
    assert captured["use_tls"] is False
    assert captured["username"] == "u"
    assert captured["message"]["Subject"] == "Subject"


@pytest.mark.asyncio
async def test_smtp_dispatcher_uses_implicit_tls_on_465(monkeypatch: pytest.MonkeyPatch) -> None:
    captured: dict[str, Any] = {}

    async def _fake_send(message: EmailMessage, **kwargs: Any) -> None:
        del message
        captured.update(kwargs)

    monkeypatch.setattr(mailer.aiosmtplib, "send", _fake_send)
    dispatcher = SmtpMessageDispatcher(hostname="smtp.example.com", port=465)

    await dispatcher.send("leave@example.com", ["boss@example.com"], "Subject", "body")

    assert captured["use_tls"] is True
    assert captured["start_tls"] is False
    assert captured["username"] is None


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "exc",
    [aiosmtplib.SMTPConnectError("refused"), ConnectionRefusedError("refused")],
)
async def test_smtp_failures_become_dispatch_errors(
    monkeypatch: pytest.MonkeyPatch,
    exc: Exception,
) -> None:
    async def _fake_send(message: EmailMessage, **kwargs: Any) -> None:
        del message, kwargs
        raise exc

    monkeypatch.setattr(mailer.aiosmtplib, "send", _fake_send)
    dispatcher = SmtpMessageDispatcher(hostname="smtp.example.com", port=587)

    with pytest.raises(MessageDispatchError):
        await dispatcher.send("leave@example.com", ["boss@example.com"], "Subject", "body")


@pytest.mark.asyncio
async def test_log_dispatcher_records_metadata(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger=mailer.__name__)

    await LogMessageDispatcher().send("leave@example.com", ["boss@example.com"], "Subject", "body", "<p>x</p>")

    [record] = [r for r in caplog.records if r.getMessage() == "mail.log.dispatch"]
    assert record.recipients == ["boss@example.com"]
    assert record.has_html is True


def test_build_dispatcher_follows_mail_backend() -> None:
    smtp = Settings(
        _env_file=None,
        auth_mode=AuthMode.GATEWAY,
        mail_backend="smtp",
        smtp_host="smtp.example.com",
        sender_email="leave@example.com",
    )
    log = Settings(_env_file=None, auth_mode=AuthMode.GATEWAY)

    assert isinstance(build_dispatcher(smtp), SmtpMessageDispatcher)
    assert isinstance(build_dispatcher(log), LogMessageDispatcher)
