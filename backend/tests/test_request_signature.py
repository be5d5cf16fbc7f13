import asyncio
import time

from app.security.request_signature import compute_signature, is_fresh, verify_slack_request

SECRET = "8f742231b10e8888abcd99yyyzzz85a5"
BODY = b'{"type":"event_callback","event":{"type":"message","text":"show"}}'


async def _secret() -> str:
    return SECRET


def _headers(timestamp: str, body: bytes = BODY, version: str = "v0") -> dict:
    return {
        "X-Request-Timestamp": timestamp,
        "X-Request-Signature": f"{version}={compute_signature(SECRET, version, timestamp, body)}",
    }


def _verify(headers: dict, body: bytes = BODY, now: float | None = None, loader=_secret) -> bool:
    return asyncio.run(verify_slack_request(headers, body, secret_loader=loader, now=now))


def test_accepts_valid_signature():
    now = int(time.time())
    assert _verify(_headers(str(now)), now=now) is True


def test_accepts_slack_header_names_case_insensitively():
    now = 1_700_000_000
    headers = _headers(str(now))
    slack_headers = {
        "x-slack-request-timestamp": headers["X-Request-Timestamp"],
        "x-slack-signature": headers["X-Request-Signature"],
    }
    assert _verify(slack_headers, now=now) is True


def test_rejects_any_flipped_signature_byte():
    now = 1_700_000_000
    headers = _headers(str(now))
    signature = headers["X-Request-Signature"]
    for index in range(len(signature)):
        flipped = chr(ord(signature[index]) ^ 0x01)
        tampered = {**headers, "X-Request-Signature": signature[:index] + flipped + signature[index + 1 :]}
        assert _verify(tampered, now=now) is False, index


def test_rejects_any_flipped_body_byte():
    now = 1_700_000_000
    headers = _headers(str(now))
    for index in range(len(BODY)):
        tampered = bytearray(BODY)
        tampered[index] ^= 0x01
        assert _verify(headers, body=bytes(tampered), now=now) is False, index


def test_rejects_any_flipped_timestamp_byte():
    now = 1_700_000_000
    headers = _headers(str(now))
    timestamp = headers["X-Request-Timestamp"]
    for index in range(len(timestamp)):
        flipped = chr(ord(timestamp[index]) ^ 0x01)
        tampered = {**headers, "X-Request-Timestamp": timestamp[:index] + flipped + timestamp[index + 1 :]}
        assert _verify(tampered, now=now) is False, index


def test_rejects_stale_request_even_with_correct_signature():
    now = 1_700_000_000
    assert _verify(_headers(str(now - 300)), now=now) is False
    assert _verify(_headers(str(now + 300)), now=now) is False
    assert _verify(_headers(str(now - 299)), now=now) is True


def test_stale_request_does_not_fetch_secret():
    calls = []

    async def _loader() -> str:
        calls.append(1)
        return SECRET

    now = 1_700_000_000
    assert _verify(_headers(str(now - 3600)), now=now, loader=_loader) is False
    assert calls == []


def test_missing_or_non_numeric_timestamp_fails_closed():
    now = 1_700_000_000
    headers = _headers(str(now))
    assert _verify({"X-Request-Signature": headers["X-Request-Signature"]}, now=now) is False
    assert _verify({**headers, "X-Request-Timestamp": "NaN"}, now=now) is False
    assert _verify({**headers, "X-Request-Timestamp": ""}, now=now) is False
    assert _verify({**headers, "X-Request-Timestamp": "-1700000000"}, now=now) is False
    assert _verify({**headers, "X-Request-Timestamp": "1" * 5000}, now=now) is False
    assert _verify({**headers, "X-Request-Timestamp": "0" * 13}, now=now) is False


def test_malformed_signature_header_is_a_mismatch():
    now = 1_700_000_000
    headers = _headers(str(now))
    digest = headers["X-Request-Signature"].split("=", 1)[1]
    assert _verify({**headers, "X-Request-Signature": digest}, now=now) is False
    assert _verify({**headers, "X-Request-Signature": "v0="}, now=now) is False
    assert _verify({"X-Request-Timestamp": headers["X-Request-Timestamp"]}, now=now) is False


def test_secret_failure_rejects_request():
    async def _broken() -> str:
        raise RuntimeError("secret store unavailable")

    now = 1_700_000_000
    assert _verify(_headers(str(now)), now=now, loader=_broken) is False


def test_signature_uses_sender_version_tag():
    now = 1_700_000_000
    assert _verify(_headers(str(now), version="v1"), now=now) is True
    assert compute_signature(SECRET, "v0", "1", b"x") != compute_signature(SECRET, "v1", "1", b"x")


def test_compute_signature_matches_slack_reference():
    # Example from Slack's "Verifying requests from Slack" guide.
    body = (
        b"token=xyzz0WbapA4vBCDEFasx0q6G&team_id=T1DC2JH3J&team_domain=testteamnow&channel_id=G8PSS9T3V"
        b"&channel_name=foobar&user_id=U2CERLKJA&user_name=roadrunner&command=%2Fwebhook-collect"
        b"&text=&response_url=https%3A%2F%2Fhooks.slack.com%2Fcommands%2FT1DC2JH3J%2F397700885554"
        b"%2F96rGlfmibIGlgcZRskXaIFfN&trigger_id=398738663015.47445629121.803a0bc887a14d10d2c447fce8b6703c"
    )
    assert (
        compute_signature(SECRET, "v0", "1531420618", body)
        == "a2114d57b48eac39b9ad189dd8316235a7b4a8d21a10bd27519666489c69b503"
    )


def test_is_fresh_window():
    assert is_fresh(1000, now=1299) is True
    assert is_fresh(1000, now=1300) is False
    assert is_fresh(1300, now=1000) is False
