from __future__ import annotations

import json
import logging

from app.core.config import get_settings

logger = logging.getLogger(__name__)

SIGNING_SECRET_PROPERTY = "signing-secret"


class SigningSecretError(Exception):
    pass


async def get_signing_secret() -> str:
    settings = get_settings()
    secret = (settings.slack_signing_secret or "").strip()
    if secret:
        return secret

    raw = (settings.slack_secrets_json or "").strip()
    if not raw:
        raise SigningSecretError("Slack signing secret not configured properly")

    try:
        secrets = json.loads(raw)
    except json.JSONDecodeError as exc:
        logger.error("slack secrets payload is not valid json")
        raise SigningSecretError("Slack secrets payload is not valid JSON") from exc

    value = secrets.get(SIGNING_SECRET_PROPERTY) if isinstance(secrets, dict) else None
    if not isinstance(value, str) or not value.strip():
        raise SigningSecretError(f"Property `{SIGNING_SECRET_PROPERTY}` is empty or does not exist")
    return value.strip()
