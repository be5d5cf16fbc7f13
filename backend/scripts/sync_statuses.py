from __future__ import annotations

import argparse
import asyncio
import logging
import pathlib
import sys

ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from app.models.user_settings import UserSettings
from app.repositories.user_settings import get_settings_for_users, list_authorized_settings
from app.services.status_sync import sync_user_status

logger = logging.getLogger(__name__)


def _describe(status) -> str:
    if status is None:
        return "(cleared)"
    return f"{status.emoji} {status.text}".strip()


async def _sync_all(users: list[UserSettings], dry_run: bool) -> tuple[list[str], list[str]]:
    lines: list[str] = []
    failed: list[str] = []
    for user in users:
        if not user.is_authorized or not user.calendar_token:
            lines.append(f"- {user.email}: skipped (missing credentials)")
            continue
        try:
            status = await sync_user_status(user, dry_run=dry_run)
        except Exception as exc:
            logger.exception("status sync failed email=%s", user.email)
            failed.append(user.email)
            lines.append(f"- {user.email}: FAIL ({type(exc).__name__})")
            continue
        lines.append(f"- {user.email}: {_describe(status)}")
    return lines, failed


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply calendar-driven Slack statuses for authorized users")
    parser.add_argument("--email", action="append", default=[], help="Only sync this user (repeatable)")
    parser.add_argument("--dry-run", action="store_true", help="Resolve statuses without calling Slack")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    users = get_settings_for_users(args.email) if args.email else list_authorized_settings()

    lines, failed = asyncio.run(_sync_all(users, args.dry_run))
    print("[status-sync]")
    print(f"- users: {len(users)}")
    for line in lines:
        print(line)
    print(f"- verdict: {'FAIL' if failed else 'PASS'}")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
