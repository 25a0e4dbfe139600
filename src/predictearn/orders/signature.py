"""WooCommerce webhook signatures: base64(HMAC-SHA256(secret, raw body))."""

from __future__ import annotations

import base64
import hashlib
import hmac

SIGNATURE_HEADER = "X-WC-Webhook-Signature"


def sign(body: bytes, secret: str) -> str:
    digest = hmac.new(secret.encode(), body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode()


def verify_signature(body: bytes, signature: str | None, secret: str) -> bool:
    """True when ``secret`` is unset (check disabled) or the signature matches."""
    if not secret:
        return True
    if not signature:
        return False
    return hmac.compare_digest(sign(body, secret), signature.strip())
