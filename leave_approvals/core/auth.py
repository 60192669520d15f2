"""Caller identity resolution for local-token and gateway-header auth modes.

Token verification itself happens upstream (an API gateway authorizer, or the
shared local token for single-user setups). This module only turns the
already-verified request into an `AuthContext` naming the applicant.
"""

from __future__ import annotations

from dataclasses import dataclass
from hmac import compare_digest

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from leave_approvals.core.auth_mode import AuthMode
from leave_approvals.core.config import settings
from leave_approvals.core.errors import ErrorKind, LeaveError
from leave_approvals.core.logging import get_logger

logger = get_logger(__name__)
security = HTTPBearer(auto_error=False)
SECURITY_DEP = Depends(security)


@dataclass(frozen=True)
class AuthContext:
    """Verified applicant identity attached to a request."""

    applicant_id: str
    applicant_name: str


def _non_empty_str(value: object) -> str | None:
    if not isinstance(value, str):
        return None
    cleaned = value.strip()
    return cleaned or None


def _unauthorized(message: str = "Unauthorized entity") -> LeaveError:
    return LeaveError(ErrorKind.UNAUTHORIZED, message)


def _local_context(credentials: HTTPAuthorizationCredentials | None) -> AuthContext:
    token = _non_empty_str(credentials.credentials) if credentials is not None else None
    if token is None:
        raise _unauthorized("Missing bearer token")
    if not compare_digest(token, settings.local_auth_token.strip()):
        logger.info("auth.local.invalid_token")
        raise _unauthorized("Invalid bearer token")
    applicant_id = _non_empty_str(settings.local_auth_user_id)
    applicant_name = _non_empty_str(settings.local_auth_user_name)
    if applicant_id is None or applicant_name is None:
        raise _unauthorized()
    return AuthContext(applicant_id=applicant_id, applicant_name=applicant_name)


def _gateway_context(request: Request) -> AuthContext:
    applicant_id = _non_empty_str(request.headers.get(settings.gateway_user_id_header))
    applicant_name = _non_empty_str(request.headers.get(settings.gateway_user_name_header))
    if applicant_id is None or applicant_name is None:
        raise _unauthorized()
    return AuthContext(applicant_id=applicant_id, applicant_name=applicant_name)


async def get_auth_context(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = SECURITY_DEP,
) -> AuthContext:
    """Resolve the verified applicant or fail with `Unauthorized`."""
    if settings.auth_mode == AuthMode.LOCAL:
        return _local_context(credentials)
    return _gateway_context(request)
