from __future__ import annotations

import logging
from typing import Any

import httpx

from app.core.config import get_settings
from app.models.user_settings import SlackStatus

logger = logging.getLogger(__name__)


class SlackApiError(Exception):
    def __init__(self, method: str, error: str):
        super().__init__(f"{method}: {error}")
        self.method = method
        self.error = error


async def slack_api(method: str, token: str | None, payload: dict[str, Any], *, form: bool = False) -> dict:
    settings = get_settings()
    url = f"{settings.slack_api_base_url.rstrip('/')}/{method}"
    headers = {"Authorization": f"Bearer {token}"} if token else {}
    async with httpx.AsyncClient(timeout=20) as client:
        if form:
            response = await client.post(url, headers=headers, data=payload)
        else:
            response = await client.post(url, headers=headers, json=payload)
    if response.status_code >= 400:
        logger.warning("slack api failed method=%s status=%s", method, response.status_code)
        raise SlackApiError(method, f"http_{response.status_code}")
    data = response.json()
    if not data.get("ok"):
        logger.warning("slack api response not ok method=%s error=%s", method, data.get("error"))
        raise SlackApiError(method, str(data.get("error") or "unknown_error"))
    return data


async def get_user_profile(token: str | None, user_id: str) -> dict | None:
    try:
        data = await slack_api("users.info", token, {"user": user_id}, form=True)
    except SlackApiError:
        return None
    profile = (data.get("user") or {}).get("profile") or {}
    if not profile.get("email"):
        logger.info("slack profile has no email user_id=%s", user_id)
        return None
    return profile


async def post_message(token: str | None, *, text: str, channel: str) -> dict:
    return await slack_api("chat.postMessage", token, {"text": text, "channel": channel})


async def set_user_status(token: str, status: SlackStatus | None) -> dict:
    status = status or SlackStatus()
    profile = {"status_text": status.text, "status_emoji": status.emoji, "status_expiration": 0}
    return await slack_api("users.profile.set", token, {"profile": profile})


async def exchange_oauth_code(code: str) -> dict:
    settings = get_settings()
    return await slack_api(
        "oauth.v2.access",
        None,
        {
            "code": code,
            "client_id": settings.slack_client_id,
            "client_secret": settings.slack_client_secret,
            "redirect_uri": settings.slack_redirect_uri,
        },
        form=True,
    )
