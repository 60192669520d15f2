"""Message templates for leave saga notifications."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape

REQUEST_SUBJECT = "New Leave Application Submitted"
ACCEPT_SUBJECT = "Leave Application Accepted"
REJECT_SUBJECT = "Leave Application Rejected"

_REQUEST_HTML = """\
<!DOCTYPE html>
<html>
  <body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px; border: 1px solid #ddd;">
      <h2>New Leave Application Submitted</h2>
      <p>A new leave application has been submitted by <strong>{name}</strong> ({applicant}).</p>
      <p><strong>Leave Details:</strong></p>
      <ul>
        <li>From: {from_date}</li>
        <li>To: {to_date}</li>
      </ul>
      <p>Please review the application and take action below:</p>
      <p>
        <a href="{accept_url}" style="padding: 12px 30px; background: #28a745; color: #fff;">Accept</a>
        <a href="{reject_url}" style="padding: 12px 30px; background: #dc3545; color: #fff;">Reject</a>
      </p>
      <p style="font-size: 12px; color: #666;">
        This is an automated message. Please do not reply to this email.
      </p>
    </div>
  </body>
</html>
"""


@dataclass(frozen=True)
class RenderedMessage:
    subject: str
    text_body: str
    html_body: str | None = None


def action_url(base_url: str, action: str, identity: str) -> str:
    """Decision link for `identity`; identities are already URL-safe."""
    return f"{base_url.rstrip('/')}/leave/{action}/{identity}"


def request_message(
    *,
    base_url: str,
    identity: str,
    applicant_id: str,
    applicant_name: str,
    from_date: str,
    to_date: str,
) -> RenderedMessage:
    accept_url = action_url(base_url, "accept", identity)
    reject_url = action_url(base_url, "reject", identity)
    text_body = (
        f"A new leave application has been submitted by {applicant_name} ({applicant_id}) "
        f"for the period from {from_date} to {to_date}. "
        "Please review the application at your earliest convenience.\n\n"
        f"Accept: {accept_url}\n"
        f"Reject: {reject_url}\n"
    )
    html_body = _REQUEST_HTML.format(
        name=escape(applicant_name),
        applicant=escape(applicant_id),
        from_date=escape(from_date),
        to_date=escape(to_date),
        accept_url=escape(accept_url, quote=True),
        reject_url=escape(reject_url, quote=True),
    )
    return RenderedMessage(subject=REQUEST_SUBJECT, text_body=text_body, html_body=html_body)


def decision_message(
    *,
    accepted: bool,
    applicant_id: str,
    applicant_name: str,
    from_date: str,
    to_date: str,
) -> RenderedMessage:
    verdict = "accepted" if accepted else "rejected"
    return RenderedMessage(
        subject=ACCEPT_SUBJECT if accepted else REJECT_SUBJECT,
        text_body=(
            f"Your leave application submitted by {applicant_name} ({applicant_id}) "
            f"for the period from {from_date} to {to_date} has been {verdict}."
        ),
    )
