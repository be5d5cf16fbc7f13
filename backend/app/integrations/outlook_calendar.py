from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import httpx

from app.core.config import get_settings

logger = logging.getLogger(__name__)

PRIVATE_EVENT_TITLE = "Private event"


class ShowAs(enum.IntEnum):
    FREE = 1
    TENTATIVE = 2
    BUSY = 3
    OUT_OF_OFFICE = 4


def to_show_as(value: str | None) -> ShowAs:
    normalized = (value or "").strip().lower()
    if normalized in {"oof", "workingelsewhere"}:
        return ShowAs.OUT_OF_OFFICE
    if normalized == "busy":
        return ShowAs.BUSY
    if normalized == "tentative":
        return ShowAs.TENTATIVE
    return ShowAs.FREE


@dataclass(frozen=True)
class CalendarEvent:
    name: str
    start_time: datetime
    end_time: datetime
    location: str
    show_as: ShowAs
    title: str = ""


def _parse_graph_datetime(value: dict | None) -> datetime:
    # Graph returns naive ISO strings with 7 fractional digits plus a separate timeZone.
    raw = str((value or {}).get("dateTime") or "")
    head, _, fraction = raw.partition(".")
    parsed = datetime.fromisoformat(f"{head}.{fraction[:6]}" if fraction else head)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_event(item: dict) -> CalendarEvent:
    subject = str(item.get("subject") or "")
    return CalendarEvent(
        name=subject,
        start_time=_parse_graph_datetime(item.get("start")),
        end_time=_parse_graph_datetime(item.get("end")),
        location=str((item.get("location") or {}).get("displayName") or ""),
        show_as=to_show_as(item.get("showAs")),
        title=subject if item.get("sensitivity") == "normal" else PRIVATE_EVENT_TITLE,
    )


def _graph_time(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.000Z")


async def get_events_for_user(email: str, token: str | None, now: datetime | None = None) -> list[CalendarEvent] | None:
    """Events overlapping the next few seconds, or None when the user has no calendar token."""
    if not token:
        return None

    settings = get_settings()
    start = now or datetime.now(timezone.utc)
    until = start + timedelta(seconds=settings.calendar_lookahead_sec)
    url = f"{settings.graph_api_base_url.rstrip('/')}/users/{quote(email)}/events"
    params = {
        "$filter": f"start/dateTime le '{_graph_time(until)}' and end/dateTime ge '{_graph_time(start)}'",
        "$select": "start,end,subject,showAs,location,sensitivity",
    }

    try:
        async with httpx.AsyncClient(timeout=20) as client:
            response = await client.get(url, params=params, headers={"Authorization": f"Bearer {token}"})
        if response.status_code >= 400:
            logger.warning("graph events failed email=%s status=%s", email, response.status_code)
            return []
        items = response.json().get("value") or []
        return [_to_event(item) for item in items if isinstance(item, dict)]
    except (httpx.HTTPError, ValueError):
        logger.exception("graph events lookup failed email=%s", email)
        return []
