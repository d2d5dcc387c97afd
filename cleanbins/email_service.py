"""
Email Service using SMTP (primary) or Resend (fallback)
Operator notifications are plain text; the password reset email is rendered from MJML
"""

import logging
import smtplib
import ssl
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, make_msgid, parseaddr
from typing import Optional, Union

import resend
from mjml import mjml_to_html

from .config import (
    EMAIL_FROM_ADDRESS,
    RESEND_API_KEY,
    SMTP_FROM,
    SMTP_HOST,
    SMTP_PASS,
    SMTP_PORT,
    SMTP_TIMEOUT,
    SMTP_TO,
    SMTP_USER,
)
from .email_templates import password_reset_template

logger = logging.getLogger(__name__)

# Initialize Resend as fallback
resend.api_key = RESEND_API_KEY

Recipients = Union[str, list[str], None]


class EmailNotConfiguredError(Exception):
    """Raised when neither SMTP credentials nor a Resend key are available"""


def _as_list(value: Recipients) -> list[str]:
    if not value:
        return []
    return [value] if isinstance(value, str) else list(value)


def smtp_configured() -> bool:
    return bool(SMTP_HOST and SMTP_USER and SMTP_PASS)


def email_configured() -> bool:
    return smtp_configured() or bool(RESEND_API_KEY)


def build_message(
    sender: str,
    to: list[str],
    subject: str,
    text: Optional[str] = None,
    html: Optional[str] = None,
    reply_to: Optional[str] = None,
    cc: Optional[list[str]] = None,
) -> MIMEMultipart:
    """MIME message with text and/or html alternatives; Bcc is never written as a header"""
    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = sender
    msg["To"] = ", ".join(to)
    if cc:
        msg["Cc"] = ", ".join(cc)
    if reply_to:
        msg["Reply-To"] = reply_to
    domain = parseaddr(sender)[1].split("@")[-1] or None
    msg["Message-ID"] = make_msgid(domain=domain)

    if text:
        msg.attach(MIMEText(text, "plain", "utf-8"))
    if html:
        msg.attach(MIMEText(html, "html", "utf-8"))
    return msg


def send_via_smtp(msg: MIMEMultipart, sender: str, recipients: list[str]) -> dict:
    """Send over the configured SMTP server (implicit TLS on 465, STARTTLS otherwise)"""
    context = ssl.create_default_context()
    if SMTP_PORT == 465:
        server = smtplib.SMTP_SSL(SMTP_HOST, SMTP_PORT, context=context, timeout=SMTP_TIMEOUT)
    else:
        server = smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=SMTP_TIMEOUT)

    try:
        if SMTP_PORT != 465:
            server.starttls(context=context)
        server.login(SMTP_USER, SMTP_PASS)
        refused = server.send_message(msg, from_addr=parseaddr(sender)[1], to_addrs=recipients)
    finally:
        server.quit()

    rejected = list(refused.keys())
    accepted = [r for r in recipients if r not in refused]
    logger.info(f"✅ SMTP email sent via {SMTP_HOST} to {len(accepted)} recipient(s)")
    return {"messageId": msg["Message-ID"], "accepted": accepted, "rejected": rejected}


def send_email(
    to: Recipients,
    subject: str,
    text: Optional[str] = None,
    html: Optional[str] = None,
    reply_to: Optional[str] = None,
    cc: Recipients = None,
    bcc: Recipients = None,
    from_address: Optional[str] = None,
) -> dict:
    """
    Send an email using SMTP when credentials are set, Resend otherwise

    Returns:
        {"messageId": str, "accepted": [...], "rejected": [...]}
    """
    to_list, cc_list, bcc_list = _as_list(to), _as_list(cc), _as_list(bcc)

    if smtp_configured():
        sender = from_address or formataddr(("Bacs Propres", SMTP_FROM))
        msg = build_message(sender, to_list, subject, text, html, reply_to, cc_list)
        try:
            return send_via_smtp(msg, sender, to_list + cc_list + bcc_list)
        except Exception as e:
            logger.error(f"❌ SMTP send error to {to_list}: {e}")
            raise

    if not RESEND_API_KEY:
        logger.error("❌ No email service configured - SMTP credentials and RESEND_API_KEY missing")
        raise EmailNotConfiguredError("Configuration email incomplète")

    try:
        logger.info(f"📧 Sending email via Resend to: {to_list}")
        email_data = {
            "from": from_address or EMAIL_FROM_ADDRESS,
            "to": to_list,
            "subject": subject,
        }
        if text:
            email_data["text"] = text
        if html:
            email_data["html"] = html
        if reply_to:
            email_data["reply_to"] = reply_to
        if cc_list:
            email_data["cc"] = cc_list
        if bcc_list:
            email_data["bcc"] = bcc_list

        response = resend.Emails.send(email_data)
        logger.info(f"✅ Email sent successfully via Resend: {response}")
        return {"messageId": response.get("id"), "accepted": to_list + cc_list + bcc_list, "rejected": []}
    except Exception as e:
        logger.error(f"❌ Email send error to {to_list}: {e}")
        raise


def send_operator_email(subject: str, text: str, reply_to: Optional[str] = None) -> dict:
    """Notify the business mailbox (SMTP_TO)"""
    if not SMTP_TO:
        raise EmailNotConfiguredError("SMTP_TO non configuré")
    return send_email(to=SMTP_TO, subject=subject, text=text, reply_to=reply_to)


def compile_mjml_to_html(mjml_content: str) -> str:
    """Compile MJML template to production-ready HTML"""
    try:
        result = mjml_to_html(mjml_content)
        html = getattr(result, "html", None)
        if html is None and isinstance(result, dict):
            html = result.get("html", "")
        errors = getattr(result, "errors", None)
        if errors:
            logger.warning(f"MJML compilation warnings: {errors}")
        return html or ""
    except Exception as e:
        logger.error(f"MJML compilation error: {e}")
        raise


def send_password_reset_email(to: str, reset_link: str, full_name: Optional[str] = None) -> dict:
    """Send the admin password reset link"""
    html = compile_mjml_to_html(password_reset_template(reset_link, full_name))
    text = (
        "Vous avez demandé la réinitialisation de votre mot de passe.\n\n"
        f"Cliquez sur ce lien pour créer un nouveau mot de passe (valide 1 heure) :\n{reset_link}\n\n"
        "Si vous n'êtes pas à l'origine de cette demande, ignorez cet email."
    )
    return send_email(
        to=to,
        subject="Réinitialisation de votre mot de passe",
        text=text,
        html=html,
    )
