"""CLI script to add or update a directory account (e.g. an ADMIN approver)."""

from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(PROJECT_ROOT))


def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Create or update a user in the leave approval directory.",
    )
    parser.add_argument("--email", type=str, required=True, help="Account email (unique)")
    parser.add_argument("--name", type=str, default="", help="Display name")
    parser.add_argument(
        "--role",
        type=str,
        default="EMPLOYEE",
        help="Directory role; ADMIN accounts receive new leave applications",
    )
    return parser.parse_args()


async def _run() -> int:
    from leave_approvals.db.session import async_session_maker, dispose_db, init_db
    from leave_approvals.services.directory import upsert_user

    args = _parse_args()
    await init_db()
    try:
        async with async_session_maker() as session:
            user, created = await upsert_user(
                session,
                email=args.email,
                name=args.name,
                role=args.role,
            )
    finally:
        await dispose_db()

    action = "created" if created else "updated"
    sys.stdout.write(f"{action} user id={user.id} email={user.email} role={user.role}\n")
    return 0


def main() -> None:
    """Run the async CLI workflow and exit with its return code."""
    raise SystemExit(asyncio.run(_run()))


if __name__ == "__main__":
    main()
