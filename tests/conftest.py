# ruff: noqa: INP001
"""Pytest configuration shared across leave approval tests."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Import-time settings must be deterministic regardless of shell env.
os.environ["AUTH_MODE"] = "local"
os.environ["LOCAL_AUTH_TOKEN"] = "test-local-token-0123456789-0123456789-0123456789x"
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["DB_AUTO_MIGRATE"] = "false"
os.environ["MAIL_BACKEND"] = "log"
os.environ["BASE_URL"] = "http://testserver"


class FakeRedis:
    """In-memory stand-in for the Redis commands the task queue and engine use."""

    def __init__(self) -> None:
        self.lists: dict[str, list[str]] = {}
        self.zsets: dict[str, dict[str, float]] = {}
        self.values: dict[str, str] = {}

    def lpush(self, key: str, value: str) -> int:
        items = self.lists.setdefault(key, [])
        items.insert(0, value)
        return len(items)

    def rpop(self, key: str) -> str | None:
        items = self.lists.get(key)
        if not items:
            return None
        return items.pop()

    def brpop(self, keys: list[str], timeout: float = 0) -> tuple[str, str] | None:
        del timeout
        for key in keys:
            value = self.rpop(key)
            if value is not None:
                return key, value
        return None

    def zadd(self, key: str, mapping: dict[str, float]) -> int:
        self.zsets.setdefault(key, {}).update(mapping)
        return len(mapping)

    def zrangebyscore(
        self,
        key: str,
        min: float | str,  # noqa: A002
        max: float | str,  # noqa: A002
        start: int | None = None,
        num: int | None = None,
        withscores: bool = False,
    ) -> list[Any]:
        low, high = float(min), float(max)
        members = sorted(
            ((member, score) for member, score in self.zsets.get(key, {}).items() if low <= score <= high),
            key=lambda item: item[1],
        )
        if start is not None and num is not None:
            members = members[start : start + num]
        if withscores:
            return members
        return [member for member, _ in members]

    def zrem(self, key: str, member: str) -> int:
        return 1 if self.zsets.get(key, {}).pop(member, None) is not None else 0

    def set(self, key: str, value: str) -> bool:
        self.values[key] = value
        return True

    def getdel(self, key: str) -> str | None:
        return self.values.pop(key, None)

    def close(self) -> None:
        return None


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()
