from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from supabase import create_client

from app.core.config import get_settings
from app.models.user_settings import UserSettings
from app.security.token_vault import TokenVault

logger = logging.getLogger(__name__)

SETTINGS_COLUMNS = (
    "email, slack_user_id, slack_token_encrypted, calendar_token_encrypted, "
    "status_mappings, default_status, version"
)


class SettingsConflictError(Exception):
    """Another writer updated the row between our read and our write."""


def _client():
    settings = get_settings()
    return create_client(settings.supabase_url, settings.supabase_service_role_key)


def _table_name() -> str:
    return (get_settings().user_settings_table or "user_settings").strip() or "user_settings"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_settings_for_users(emails: list[str]) -> list[UserSettings]:
    normalized = [email.strip().lower() for email in emails if email and email.strip()]
    if not normalized:
        return []
    result = _client().table(_table_name()).select(SETTINGS_COLUMNS).in_("email", normalized).execute()
    vault = TokenVault.from_settings()
    return [UserSettings.from_row(row, vault.decrypt) for row in (result.data or [])]


def list_authorized_settings() -> list[UserSettings]:
    result = (
        _client()
        .table(_table_name())
        .select(SETTINGS_COLUMNS)
        .not_.is_("slack_token_encrypted", "null")
        .execute()
    )
    vault = TokenVault.from_settings()
    return [UserSettings.from_row(row, vault.decrypt) for row in (result.data or [])]


def _conditional_update(settings: UserSettings, fields: dict[str, Any]) -> UserSettings:
    # Compare-and-swap on `version` keeps concurrent deliveries for one user from
    # silently overwriting each other's mappings.
    next_version = settings.version + 1
    result = (
        _client()
        .table(_table_name())
        .update({**fields, "version": next_version, "updated_at": _now_iso()})
        .eq("email", settings.email)
        .eq("version", settings.version)
        .execute()
    )
    rows = result.data or []
    if not rows:
        logger.warning("user settings write conflict email=%s version=%s", settings.email, settings.version)
        raise SettingsConflictError(settings.email)
    return UserSettings.from_row(rows[0], TokenVault.from_settings().decrypt)


def upsert_status_mappings(settings: UserSettings) -> UserSettings:
    persisted = _conditional_update(settings, {"status_mappings": settings.mappings_to_json()})
    logger.info("status mappings saved email=%s count=%s", persisted.email, len(persisted.status_mappings))
    return persisted


def upsert_default_status(settings: UserSettings) -> UserSettings:
    persisted = _conditional_update(settings, {"default_status": settings.default_status_to_json()})
    logger.info("default status saved email=%s cleared=%s", persisted.email, persisted.default_status is None)
    return persisted


def save_slack_authorization(email: str, slack_user_id: str, token: str) -> None:
    # Only the credential columns are written so existing mappings survive a re-install.
    vault = TokenVault.from_settings()
    _client().table(_table_name()).upsert(
        {
            "email": email.strip().lower(),
            "slack_user_id": slack_user_id,
            "slack_token_encrypted": vault.encrypt(token),
            "updated_at": _now_iso(),
        },
        on_conflict="email",
    ).execute()
    logger.info("slack authorization saved email=%s slack_user_id=%s", email, slack_user_id)
