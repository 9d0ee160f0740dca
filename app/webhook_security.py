"""
Webhook Security Module

Signature verification for every inbound webhook:
- Stripe: verified by the stripe library (see services/stripe_service.py)
- Square: 'x-square-hmacsha256-signature' (base64 hmac-sha256 of url + body)
- Twilio: 'X-Twilio-Signature' (base64 hmac-sha1 of url + sorted form params)
- Internal email pipeline: shared bearer secret
"""

import base64
import hashlib
import hmac
import logging
from typing import Optional

from fastapi import HTTPException, Request

logger = logging.getLogger(__name__)


def constant_time_compare(a: str, b: str) -> bool:
    if not a or not b:
        return False
    return hmac.compare_digest(a, b)


def compute_hmac_sha256_base64(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload and return base64 encoded"""
    signature = hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).digest()
    return base64.b64encode(signature).decode("utf-8")


def verify_square_signature(
    signature_key: str, raw_body: bytes, signature: str, notification_url: str
) -> bool:
    """Square signs notification_url + body with HMAC-SHA256, base64 encoded"""
    if not signature:
        return False
    payload = notification_url.encode("utf-8") + raw_body
    expected = compute_hmac_sha256_base64(signature_key, payload)
    return constant_time_compare(expected, signature)


def compute_twilio_signature(auth_token: str, url: str, params: dict) -> str:
    """Twilio: url followed by each POST param name+value sorted by name, HMAC-SHA1, base64"""
    data = url + "".join(f"{key}{params[key]}" for key in sorted(params))
    digest = hmac.new(auth_token.encode("utf-8"), data.encode("utf-8"), hashlib.sha1).digest()
    return base64.b64encode(digest).decode("utf-8")


def verify_twilio_signature(auth_token: str, url: str, params: dict, signature: str) -> bool:
    if not signature:
        return False
    return constant_time_compare(compute_twilio_signature(auth_token, url, params), signature)


def require_bearer_secret(request: Request, secret: Optional[str]) -> None:
    """Internal pipelines authenticate with `Authorization: Bearer <WEBHOOK_SECRET>`"""
    if not secret:
        logger.error("❌ WEBHOOK_SECRET not configured")
        raise HTTPException(status_code=401, detail="Unauthorized")

    header = request.headers.get("Authorization", "")
    token = header[7:] if header.startswith("Bearer ") else ""
    if not constant_time_compare(token, secret):
        logger.warning(f"🚫 Invalid webhook bearer secret for {request.url.path}")
        raise HTTPException(status_code=401, detail="Unauthorized")
