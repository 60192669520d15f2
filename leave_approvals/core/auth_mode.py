"""Shared auth-mode enum values."""

from __future__ import annotations

from enum import Enum


class AuthMode(str, Enum):
    """Supported ways of resolving the calling applicant."""

    LOCAL = "local"
    GATEWAY = "gateway"
