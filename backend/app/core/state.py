import base64
import hashlib
import hmac
import time


def _sign(payload: str, secret: str) -> str:
    return hmac.new(secret.encode("utf-8"), payload.encode("utf-8"), hashlib.sha256).hexdigest()


def build_state(nonce: str, secret: str, ttl_seconds: int = 600) -> str:
    """Signed, expiring OAuth `state` for the Slack install round trip."""
    expires_at = int(time.time()) + ttl_seconds
    payload = f"{nonce}:{expires_at}"
    sig = _sign(payload, secret)
    blob = f"{payload}:{sig}"
    return base64.urlsafe_b64encode(blob.encode("utf-8")).decode("utf-8")


def verify_state(state: str, secret: str) -> str | None:
    try:
        decoded = base64.urlsafe_b64decode(state.encode("utf-8")).decode("utf-8")
        nonce, expires_at, sig = decoded.split(":", 2)
        expires_at_value = int(expires_at)
    except Exception:
        return None

    expected = _sign(f"{nonce}:{expires_at}", secret)
    if not hmac.compare_digest(sig.encode("utf-8"), expected.encode("utf-8")):
        return None

    if expires_at_value < int(time.time()):
        return None

    return nonce
