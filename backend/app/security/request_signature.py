"""Authenticity check for inbound Slack webhook requests.

Slack signs every delivery with ``HMAC-SHA256(signing_secret, "v0:{ts}:{body}")``
and sends the hex digest as ``v0=<digest>`` next to the timestamp it used. A
request is accepted only when the timestamp is within the replay window and the
digest matches under a constant-time comparison.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
import time
from collections.abc import Awaitable, Callable, Mapping

from app.security.signing_secret import get_signing_secret

logger = logging.getLogger(__name__)

MAX_REQUEST_AGE_SEC = 300
# Epoch seconds stay at 10 digits for centuries; longer values are never fresh.
MAX_TIMESTAMP_DIGITS = 12
TIMESTAMP_HEADERS = ("X-Request-Timestamp", "X-Slack-Request-Timestamp")
SIGNATURE_HEADERS = ("X-Request-Signature", "X-Slack-Signature")


def _header(headers: Mapping[str, str], names: tuple[str, ...]) -> str | None:
    # Starlette headers are case-insensitive, plain dicts (tests, lambdas) are not.
    lowered = {str(key).lower(): value for key, value in headers.items()}
    for name in names:
        value = lowered.get(name.lower())
        if value is not None:
            return value
    return None


def is_fresh(timestamp: int, now: float | None = None) -> bool:
    current = int(time.time() if now is None else now)
    return abs(current - timestamp) < MAX_REQUEST_AGE_SEC


def compute_signature(secret: str, version: str, timestamp: str, raw_body: bytes) -> str:
    base = f"{version}:{timestamp}:".encode("utf-8") + raw_body
    return hmac.new(secret.encode("utf-8"), base, hashlib.sha256).hexdigest()


async def verify_slack_request(
    headers: Mapping[str, str],
    raw_body: bytes,
    *,
    secret_loader: Callable[[], Awaitable[str]] = get_signing_secret,
    now: float | None = None,
) -> bool:
    raw_timestamp = _header(headers, TIMESTAMP_HEADERS)
    if (
        not raw_timestamp
        or len(raw_timestamp) > MAX_TIMESTAMP_DIGITS
        or not (raw_timestamp.isascii() and raw_timestamp.isdigit())
    ):
        logger.warning("slack request rejected reason=invalid_timestamp")
        return False
    if not is_fresh(int(raw_timestamp), now=now):
        logger.warning("slack request rejected reason=stale_timestamp timestamp=%s", raw_timestamp)
        return False

    raw_signature = _header(headers, SIGNATURE_HEADERS) or ""
    version, separator, provided = raw_signature.partition("=")
    if not separator or not version or not provided:
        logger.warning("slack request rejected reason=malformed_signature")
        return False

    try:
        secret = await secret_loader()
    except Exception:
        logger.exception("slack request rejected reason=signing_secret_unavailable")
        return False

    expected = compute_signature(secret, version, raw_timestamp, raw_body)
    if not hmac.compare_digest(expected.encode("utf-8"), provided.encode("utf-8")):
        logger.warning("slack request rejected reason=signature_mismatch")
        return False
    return True
