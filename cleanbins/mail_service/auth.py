"""API key authentication for the mail service"""

import logging
from typing import Optional

from fastapi import Header, HTTPException, Request

from ..config import API_KEYS
from ..security_utils import constant_time_compare, get_client_ip, mask_sensitive_data

logger = logging.getLogger(__name__)


def require_api_key(
    request: Request,
    x_api_key: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> None:
    """
    Accept ``X-API-Key: <key>`` or ``Authorization: Bearer <key>``.

    With no key configured every request is let through (development mode).
    """
    if not API_KEYS:
        logger.warning("⚠️ No API key configured - development mode")
        return

    api_key = x_api_key or (authorization or "").replace("Bearer ", "", 1).strip()
    if not api_key:
        raise HTTPException(
            status_code=401,
            detail="Clé API manquante. Utilisez le header 'X-API-Key' ou 'Authorization: Bearer <key>'",
        )

    if not any(constant_time_compare(api_key, key) for key in API_KEYS):
        logger.warning(
            f"🚫 Invalid API key {mask_sensitive_data(api_key)} from {get_client_ip(request)}"
        )
        raise HTTPException(status_code=403, detail="Clé API invalide")
