"""Mail service routes - Raw send, template send and contact form"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from .. import email_service
from ..email_templates import contact_message_email
from ..rate_limiter import create_rate_limiter
from ..security_utils import escape_text, get_client_ip
from .auth import require_api_key
from .schemas import ContactRequest, SendEmailRequest, SendTemplateRequest
from .templating import render_template

logger = logging.getLogger(__name__)

rate_limit_api = create_rate_limiter(
    limit=100,
    window_seconds=900,  # 15 minutes
    key_prefix="mail_api",
    message="Trop de requêtes depuis cette IP, veuillez réessayer plus tard.",
)

rate_limit_emails = create_rate_limiter(
    limit=50,
    window_seconds=3600,  # 1 hour
    key_prefix="mail_send",
    message="Limite d'envoi d'emails atteinte. Veuillez réessayer dans une heure.",
)

router = APIRouter(
    prefix="/api",
    tags=["Mail"],
    dependencies=[Depends(rate_limit_api), Depends(require_api_key)],
)


def _require_smtp() -> None:
    if not email_service.smtp_configured():
        logger.warning("⚠️ SMTP configuration incomplete - email not sent")
        raise HTTPException(status_code=500, detail="Configuration email incomplète")


def _send_failed(e: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"ok": False, "error": "Email send failed", "message": str(e)},
    )


@router.post("/send", dependencies=[Depends(rate_limit_emails)])
def send(data: SendEmailRequest, request: Request):
    if not data.text and not data.html:
        raise HTTPException(status_code=400, detail="Au moins 'text' ou 'html' doit être fourni")
    _require_smtp()

    logger.info(
        f"📧 Sending email to {data.to} subject={data.subject!r} "
        f"text={bool(data.text)} html={bool(data.html)} ip={get_client_ip(request)}"
    )
    try:
        result = email_service.send_email(
            to=data.to,
            subject=data.subject,
            text=data.text,
            html=data.html,
            reply_to=data.replyTo,
            cc=data.cc,
            bcc=data.bcc,
        )
    except Exception as e:
        logger.error(f"❌ Email send failed from {get_client_ip(request)}: {e}")
        return _send_failed(e)

    return {"ok": True, **result}


@router.post("/send-template", dependencies=[Depends(rate_limit_emails)])
def send_template(data: SendTemplateRequest, request: Request):
    """The template serves as both the text and the html body"""
    body = render_template(data.template, data.data)
    _require_smtp()

    logger.info(f"📧 Sending template email to {data.to} ip={get_client_ip(request)}")
    try:
        result = email_service.send_email(
            to=data.to,
            subject=data.subject,
            text=body,
            html=body,
            reply_to=data.replyTo,
        )
    except Exception as e:
        logger.error(f"❌ Template email send failed from {get_client_ip(request)}: {e}")
        return _send_failed(e)

    return {"ok": True, **result}


@router.post("/contact", dependencies=[Depends(rate_limit_emails)])
def contact(data: ContactRequest, request: Request):
    _require_smtp()

    name = escape_text(data.name)
    subject, text = contact_message_email(
        name,
        str(data.email),
        escape_text(data.phone) or None,
        escape_text(data.message),
    )
    if data.subject:
        subject = escape_text(data.subject)

    try:
        email_service.send_operator_email(subject, text, reply_to=str(data.email))
    except email_service.EmailNotConfiguredError:
        raise HTTPException(status_code=500, detail="Configuration email incomplète")
    except Exception as e:
        logger.error(f"❌ Contact message send failed from {get_client_ip(request)}: {e}")
        return _send_failed(e)

    logger.info(f"✅ Contact message sent (ip={get_client_ip(request)})")
    return {"ok": True}
