"""Deterministic request identity derived from applicant and interval."""

from __future__ import annotations

import base64
import hashlib
from typing import TYPE_CHECKING

from leave_approvals.core.time import epoch_millis

if TYPE_CHECKING:
    from datetime import datetime


def fingerprint(applicant_id: str, from_instant: datetime, to_instant: datetime) -> str:
    """SHA-256 over ``applicant-fromMillis-toMillis``, base64url without padding.

    The result is safe to embed in a URL path segment as-is.
    """
    material = f"{applicant_id}-{epoch_millis(from_instant)}-{epoch_millis(to_instant)}"
    digest = hashlib.sha256(material.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest).rstrip(b"=").decode("ascii")
