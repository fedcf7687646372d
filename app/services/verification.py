import hmac
from typing import Optional

SUBSCRIBE_MODE = "subscribe"


class WebhookVerificationError(Exception):
    """Handshake rejected: wrong mode or verify token."""


def verify_subscription(
    mode: Optional[str],
    token: Optional[str],
    challenge: Optional[str],
    expected_token: Optional[str],
) -> str:
    """Meta-style webhook handshake. Returns the challenge to echo back.

    Raises WebhookVerificationError unless mode is "subscribe" and the token
    matches the stored verify token.
    """
    if mode != SUBSCRIBE_MODE:
        raise WebhookVerificationError(f"Unexpected hub mode: {mode!r}")
    if not token or not expected_token:
        raise WebhookVerificationError("Missing verify token")
    if not hmac.compare_digest(token.encode("utf-8"), expected_token.encode("utf-8")):
        raise WebhookVerificationError("Verify token mismatch")
    return challenge if challenge is not None else ""
