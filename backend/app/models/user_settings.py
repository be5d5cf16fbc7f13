from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class SlackStatus:
    text: str = ""
    emoji: str = ""

    @property
    def is_empty(self) -> bool:
        return not self.text and not self.emoji

    def to_dict(self) -> dict[str, str]:
        return {"text": self.text, "emoji": self.emoji}

    @classmethod
    def from_dict(cls, data: Any) -> SlackStatus | None:
        if not isinstance(data, dict):
            return None
        status = cls(text=str(data.get("text") or ""), emoji=str(data.get("emoji") or ""))
        return None if status.is_empty else status


@dataclass
class StatusMapping:
    calendar_text: str
    slack_status: SlackStatus

    def matches(self, calendar_text: str) -> bool:
        return self.calendar_text.casefold() == calendar_text.casefold()


@dataclass
class UserSettings:
    """One user's status configuration, keyed by the email Slack reports for them."""

    email: str
    slack_token: str | None = None
    status_mappings: list[StatusMapping] = field(default_factory=list)
    default_status: SlackStatus | None = None
    calendar_token: str | None = None
    slack_user_id: str | None = None
    version: int = 0

    @property
    def is_authorized(self) -> bool:
        return bool(self.slack_token)

    def find_mapping(self, calendar_text: str) -> StatusMapping | None:
        for mapping in self.status_mappings:
            if mapping.matches(calendar_text):
                return mapping
        return None

    def upsert_mapping(self, calendar_text: str, status: SlackStatus) -> StatusMapping:
        # The first spelling of a meeting name wins; later edits only replace the status.
        existing = self.find_mapping(calendar_text)
        if existing is not None:
            existing.slack_status = status
            return existing
        mapping = StatusMapping(calendar_text=calendar_text, slack_status=status)
        self.status_mappings.append(mapping)
        return mapping

    def remove_mapping(self, calendar_text: str) -> bool:
        remaining = [mapping for mapping in self.status_mappings if not mapping.matches(calendar_text)]
        removed = len(remaining) != len(self.status_mappings)
        self.status_mappings = remaining
        return removed

    def set_default_status(self, status: SlackStatus) -> None:
        if status.is_empty:
            raise ValueError("default status needs a message or an emoji")
        self.default_status = status

    def clear_default_status(self) -> None:
        self.default_status = None

    @classmethod
    def from_row(cls, row: dict[str, Any], decrypt: Callable[[str | None], str | None] = lambda v: v) -> UserSettings:
        mappings = []
        for item in row.get("status_mappings") or []:
            if not isinstance(item, dict):
                continue
            calendar_text = str(item.get("calendar_text") or "").strip()
            status = SlackStatus.from_dict(item.get("slack_status"))
            if calendar_text and status is not None:
                mappings.append(StatusMapping(calendar_text=calendar_text, slack_status=status))
        return cls(
            email=str(row.get("email") or ""),
            slack_token=decrypt(row.get("slack_token_encrypted")),
            status_mappings=mappings,
            default_status=SlackStatus.from_dict(row.get("default_status")),
            calendar_token=decrypt(row.get("calendar_token_encrypted")),
            slack_user_id=row.get("slack_user_id"),
            version=int(row.get("version") or 0),
        )

    def mappings_to_json(self) -> list[dict[str, Any]]:
        return [
            {"calendar_text": mapping.calendar_text, "slack_status": mapping.slack_status.to_dict()}
            for mapping in self.status_mappings
        ]

    def default_status_to_json(self) -> dict[str, str] | None:
        return self.default_status.to_dict() if self.default_status is not None else None
