"""
Webhook Security Module

Stripe webhook signature verification:
- Signed payload is "{timestamp}.{raw body}", HMAC-SHA256 with the endpoint secret
- Constant-time comparison against every v1 signature in the header
- Timestamp tolerance against replayed events
"""

import hashlib
import hmac
import json
import logging
import time
from typing import Optional

from fastapi import Request

from .security_utils import constant_time_compare

logger = logging.getLogger(__name__)

# Maximum age of webhook in seconds (5 minutes)
MAX_WEBHOOK_AGE_SECONDS = 300

STRIPE_SIGNATURE_HEADER = "stripe-signature"


class WebhookSignatureError(Exception):
    """Raised when webhook signature verification fails"""

    pass


def compute_hmac_sha256(secret: str, payload: bytes) -> str:
    """Compute HMAC-SHA256 signature of payload"""
    return hmac.new(secret.encode("utf-8"), payload, hashlib.sha256).hexdigest()


def parse_stripe_signature(header: str) -> tuple[Optional[str], list[str]]:
    """
    Split a Stripe-Signature header into (timestamp, [v1 signatures]).

    Example header: "t=1492774577,v1=5257a869...,v0=6ffbb59b..."
    """
    timestamp = None
    signatures = []
    for item in header.split(","):
        key, _, value = item.strip().partition("=")
        if key == "t":
            timestamp = value
        elif key == "v1" and value:
            signatures.append(value)
    return timestamp, signatures


def verify_timestamp(timestamp: Optional[str], max_age: int = MAX_WEBHOOK_AGE_SECONDS) -> bool:
    """
    Verify webhook timestamp is within acceptable range.
    Prevents replay attacks by rejecting old webhooks.
    """
    if not timestamp:
        return False

    try:
        age = abs(int(time.time()) - int(timestamp))
    except (ValueError, TypeError):
        logger.warning(f"🚫 Invalid webhook timestamp format: {timestamp}")
        return False

    if age > max_age:
        logger.warning(f"🚫 Webhook timestamp too old: {age}s (max: {max_age}s)")
        return False
    return True


def sign_stripe_payload(payload: bytes, secret: str, timestamp: Optional[int] = None) -> str:
    """Build a Stripe-Signature header value for ``payload``"""
    timestamp = int(time.time()) if timestamp is None else timestamp
    signed = f"{timestamp}.".encode("utf-8") + payload
    return f"t={timestamp},v1={compute_hmac_sha256(secret, signed)}"


def verify_stripe_signature(
    payload: bytes,
    signature_header: Optional[str],
    secret: str,
    tolerance: int = MAX_WEBHOOK_AGE_SECONDS,
) -> dict:
    """
    Verify a Stripe webhook and return the decoded event.

    Raises:
        WebhookSignatureError: missing/malformed header, stale timestamp, no matching
            signature, or a body that is not JSON
    """
    if not signature_header:
        raise WebhookSignatureError("Missing Stripe-Signature header")

    timestamp, signatures = parse_stripe_signature(signature_header)
    if not timestamp or not signatures:
        raise WebhookSignatureError("Unable to extract timestamp and signatures from header")

    if not verify_timestamp(timestamp, tolerance):
        raise WebhookSignatureError("Timestamp outside the tolerance zone")

    signed = f"{timestamp}.".encode("utf-8") + payload
    expected = compute_hmac_sha256(secret, signed)
    if not any(constant_time_compare(expected, candidate) for candidate in signatures):
        raise WebhookSignatureError("No signatures found matching the expected signature for payload")

    try:
        return json.loads(payload)
    except ValueError as e:
        raise WebhookSignatureError(f"Invalid payload: {e}") from e


async def verify_stripe_webhook(request: Request, secret: str) -> dict:
    """Read the raw request body and verify it as a Stripe event"""
    # Raw body BEFORE any parsing, the signature covers the exact bytes
    raw_body = await request.body()
    event = verify_stripe_signature(
        raw_body, request.headers.get(STRIPE_SIGNATURE_HEADER), secret
    )
    logger.info(f"✅ Stripe webhook signature verified: {event.get('id')}")
    return event
