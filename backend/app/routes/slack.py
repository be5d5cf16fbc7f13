import html
import json
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from app.commands.interpreter import run_command
from app.core.config import get_settings
from app.integrations.slack import get_user_profile, post_message
from app.repositories import user_settings as settings_store
from app.security.request_signature import verify_slack_request

router = APIRouter(prefix="/api/slack", tags=["slack"])
logger = logging.getLogger(__name__)

EMPTY_RESPONSE_BODY: dict = {}
INVALID_REQUEST_BODY = {"error": "Request was invalid"}
PROFILE_LOOKUP_FAILED_MESSAGE = "Sorry, I couldn't look up your Slack profile. Please try again in a moment."


def _unauthorized_message(install_url: str) -> str:
    return f"Before I can manage your status, you need to authorize me: {install_url}"


def _is_user_direct_message(event: dict) -> bool:
    if event.get("type") != "message" or event.get("channel_type") != "im":
        logger.info(
            "slack event ignored type=%s channel_type=%s",
            event.get("type"),
            event.get("channel_type"),
        )
        return False
    # Our own replies arrive as bot messages; answering them would loop forever.
    if event.get("subtype") == "bot_message" or event.get("bot_id") or not event.get("user"):
        return False
    return True


async def handle_event_callback(payload: dict) -> dict:
    event = payload.get("event") or {}
    if not isinstance(event, dict) or not _is_user_direct_message(event):
        return EMPTY_RESPONSE_BODY

    settings = get_settings()
    user_id = event["user"]
    channel = event.get("channel")
    bot_token = settings.slack_bot_token

    profile = await get_user_profile(bot_token, user_id)
    if not profile:
        logger.warning("slack profile lookup failed user_id=%s", user_id)
        await post_message(bot_token, text=PROFILE_LOOKUP_FAILED_MESSAGE, channel=channel)
        return EMPTY_RESPONSE_BODY

    found = settings_store.get_settings_for_users([profile["email"]])
    user_settings = found[0] if found else None
    if user_settings is None or not user_settings.is_authorized:
        logger.info("slack command from unauthorized user user_id=%s", user_id)
        await post_message(bot_token, text=_unauthorized_message(settings.slack_install_url), channel=channel)
        return EMPTY_RESPONSE_BODY

    text = html.unescape(str(event.get("text") or ""))
    reply = run_command(text, user_settings, settings_store)
    await post_message(bot_token, text=reply, channel=channel)
    return EMPTY_RESPONSE_BODY


@router.post("/events")
async def slack_events(request: Request):
    raw_body = await request.body()
    if not await verify_slack_request(request.headers, raw_body):
        return JSONResponse(status_code=400, content=INVALID_REQUEST_BODY)

    try:
        payload = json.loads(raw_body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("slack payload is not valid json")
        return EMPTY_RESPONSE_BODY
    if not isinstance(payload, dict):
        return EMPTY_RESPONSE_BODY

    payload_type = payload.get("type")
    if payload_type == "url_verification":
        return {"challenge": payload.get("challenge")}

    if payload_type == "event_callback":
        try:
            return await handle_event_callback(payload)
        except Exception:
            # Slack redelivers on non-2xx, which would replay the command and its reply.
            logger.exception("slack event processing failed event_id=%s", payload.get("event_id"))
            return EMPTY_RESPONSE_BODY

    logger.info("slack payload type not recognized type=%s", payload_type)
    return EMPTY_RESPONSE_BODY
