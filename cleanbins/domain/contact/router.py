"""Contact router - General contact form"""

import logging

from fastapi import APIRouter, HTTPException

from ... import email_service
from ...email_templates import contact_message_email
from .schemas import ContactMessage

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["Contact"])


@router.post("/contact-general")
def contact_general(data: ContactMessage):
    """Forward a visitor message to the operator mailbox, replying to the visitor"""
    if not data.name or not data.email or not data.message:
        raise HTTPException(status_code=400, detail="Missing required fields")

    subject, text = contact_message_email(data.name, str(data.email), data.phone, data.message)
    try:
        email_service.send_operator_email(subject, text, reply_to=str(data.email))
    except Exception as e:
        logger.error(f"❌ Contact message from {data.email} not sent: {e}")
        raise HTTPException(status_code=500, detail="Email send failed")

    logger.info("✅ Contact message sent")
    return {"ok": True}
