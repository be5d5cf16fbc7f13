from __future__ import annotations

import logging
import uuid
from urllib.parse import urlencode

from fastapi import APIRouter, HTTPException
from fastapi.responses import RedirectResponse

from app.core.config import get_settings
from app.core.state import build_state, verify_state
from app.integrations.slack import SlackApiError, exchange_oauth_code, get_user_profile
from app.repositories.user_settings import save_slack_authorization

router = APIRouter(prefix="/api/oauth/slack", tags=["slack-oauth"])
logger = logging.getLogger(__name__)

# Reading the user's email plus writing their own status is all the bot needs.
SLACK_USER_SCOPE = "users.profile:write,users:read,users:read.email"


def _validate_slack_oauth_settings() -> None:
    settings = get_settings()
    if not settings.slack_client_id or not settings.slack_client_secret or not settings.slack_redirect_uri:
        raise HTTPException(status_code=500, detail="Slack OAuth settings are missing.")
    if not settings.slack_state_secret:
        raise HTTPException(status_code=500, detail="SLACK_STATE_SECRET must be configured.")


@router.get("/start")
async def slack_oauth_start():
    _validate_slack_oauth_settings()
    settings = get_settings()
    state = build_state(nonce=uuid.uuid4().hex, secret=settings.slack_state_secret or "")
    query = urlencode(
        {
            "client_id": settings.slack_client_id,
            "user_scope": SLACK_USER_SCOPE,
            "redirect_uri": settings.slack_redirect_uri,
            "state": state,
        }
    )
    return RedirectResponse(url=f"https://slack.com/oauth/v2/authorize?{query}", status_code=302)


@router.get("/callback")
async def slack_oauth_callback(code: str, state: str):
    _validate_slack_oauth_settings()
    settings = get_settings()

    if not verify_state(state=state, secret=settings.slack_state_secret or ""):
        raise HTTPException(status_code=400, detail="Invalid or expired state")

    try:
        payload = await exchange_oauth_code(code)
    except SlackApiError as exc:
        raise HTTPException(status_code=400, detail=f"Slack token exchange failed: {exc.error}") from exc

    authed_user = payload.get("authed_user") or {}
    access_token = authed_user.get("access_token")
    slack_user_id = authed_user.get("id")
    if not access_token or not slack_user_id:
        raise HTTPException(status_code=400, detail="Missing user access_token from Slack")

    profile = await get_user_profile(access_token, slack_user_id)
    if not profile:
        raise HTTPException(status_code=400, detail="Could not read the Slack profile email")

    save_slack_authorization(profile["email"], slack_user_id, access_token)
    logger.info("slack oauth connected slack_user_id=%s", slack_user_id)
    return {"ok": True, "connected": True}
