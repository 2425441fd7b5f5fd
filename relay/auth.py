"""LINE webhook signature verification."""

from __future__ import annotations

import base64
import hashlib
import hmac

from errors import SignatureError


def compute_signature(channel_secret: str, body: bytes) -> str:
    digest = hmac.new(channel_secret.encode("utf-8"), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def verify_signature(channel_secret: str, body: bytes, signature: str | None) -> None:
    """Raise SignatureError unless *signature* is the body's HMAC-SHA256 under the channel secret."""
    if not signature:
        raise SignatureError("Missing X-Line-Signature header.")
    expected = compute_signature(channel_secret, body)
    if not hmac.compare_digest(expected, signature):
        raise SignatureError("Invalid X-Line-Signature.")
