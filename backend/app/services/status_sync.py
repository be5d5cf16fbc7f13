from __future__ import annotations

import logging
from collections.abc import Iterable

from app.integrations.outlook_calendar import CalendarEvent, ShowAs, get_events_for_user
from app.integrations.slack import set_user_status
from app.models.user_settings import SlackStatus, UserSettings

logger = logging.getLogger(__name__)


def resolve_status(events: Iterable[CalendarEvent], settings: UserSettings) -> SlackStatus | None:
    # Mapping order is the user's priority order, so it drives the scan.
    names = [event.name.casefold() for event in events if event.show_as != ShowAs.FREE and event.name]
    for mapping in settings.status_mappings:
        needle = mapping.calendar_text.casefold()
        if any(needle in name for name in names):
            return mapping.slack_status
    return settings.default_status


async def sync_user_status(settings: UserSettings, *, dry_run: bool = False) -> SlackStatus | None:
    if not settings.is_authorized or not settings.calendar_token:
        logger.info("status sync skipped email=%s reason=missing_credentials", settings.email)
        return None

    events = await get_events_for_user(settings.email, settings.calendar_token)
    status = resolve_status(events or [], settings)
    logger.info(
        "status sync resolved email=%s events=%s text=%s emoji=%s",
        settings.email,
        len(events or []),
        status.text if status else "",
        status.emoji if status else "",
    )
    if not dry_run:
        await set_user_status(settings.slack_token or "", status)
    return status
