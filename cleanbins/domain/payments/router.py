"""Payments router - Stripe webhook, payment verification, checkout and admin listing"""

import asyncio
import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from ...auth import get_current_admin
from ...config import BASE_URL
from ...database import get_db
from ...models import AdminUser
from ...services.stripe_service import StripeGateway, get_stripe_gateway
from ...webhook_security import WebhookSignatureError, verify_stripe_webhook
from ..settings.service import ConfigService
from .schemas import CheckoutRequest, VerifyPaymentRequest
from .service import (
    ALREADY_CONFIRMED,
    CHECKOUT_COMPLETED,
    CONFIRMED,
    FAILED,
    INCOMPLETE_METADATA,
    NOT_FOUND,
    QUOTE_PAID,
    TEST_MODE_REFUSED,
    CheckoutService,
    PaymentConfirmationService,
    PaymentReportService,
    is_session_paid,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stripe", tags=["Payments"])
admin_router = APIRouter(prefix="/api/admin", tags=["Admin Payments"])


def get_confirmation_service(db: Session = Depends(get_db)) -> PaymentConfirmationService:
    """Dependency injection for PaymentConfirmationService"""
    return PaymentConfirmationService(db, ConfigService(db))


def get_checkout_service(
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> CheckoutService:
    """Dependency injection for CheckoutService"""
    return CheckoutService(db, gateway)


def get_payment_report_service(
    db: Session = Depends(get_db),
    gateway: StripeGateway = Depends(get_stripe_gateway),
) -> PaymentReportService:
    """Dependency injection for PaymentReportService"""
    return PaymentReportService(db, gateway)


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    service: PaymentConfirmationService = Depends(get_confirmation_service),
):
    """
    Stripe webhook handler.

    Once the signature is valid the answer is always 200 so Stripe does not retry a
    fulfilment problem; failures are reported in the body and the logs.
    """
    if not gateway.webhook_configured:
        raise HTTPException(status_code=503, detail="Stripe non configuré")

    try:
        event = await verify_stripe_webhook(request, gateway.webhook_secret)
    except WebhookSignatureError as e:
        logger.error(f"❌ Stripe webhook signature error: {e}")
        raise HTTPException(status_code=400, detail=f"Webhook Error: {e}")

    event_type = event.get("type")
    logger.info(f"📥 Stripe webhook received: {event_type}")
    if event_type != CHECKOUT_COMPLETED:
        return {"received": True}

    session = (event.get("data") or {}).get("object") or {}
    try:
        outcome = await asyncio.to_thread(service.confirm_session, session)
    except Exception as e:
        logger.error(f"❌ Webhook fulfilment failed for session {session.get('id')}: {e}")
        return {"received": True, "error": "Erreur lors du traitement du paiement"}

    if outcome["status"] == TEST_MODE_REFUSED:
        return {"received": True, "ignored": True, "reason": TEST_MODE_REFUSED}
    if outcome.get("error"):
        return {"received": True, "error": outcome["error"]}
    return {"received": True}


@router.get("/webhook/test")
def webhook_test(gateway: StripeGateway = Depends(get_stripe_gateway)):
    return {
        "ok": True,
        "message": "Webhook endpoint accessible",
        "configured": gateway.webhook_configured,
        "webhookUrl": f"{BASE_URL}/api/stripe/webhook",
    }


@router.post("/verify-payment")
def verify_payment(
    data: VerifyPaymentRequest,
    gateway: StripeGateway = Depends(get_stripe_gateway),
    service: PaymentConfirmationService = Depends(get_confirmation_service),
):
    """Pull-side confirmation, called by the success page with the Checkout session id"""
    if not data.sessionId:
        raise HTTPException(status_code=400, detail="sessionId est requis")
    if not gateway.configured:
        raise HTTPException(status_code=503, detail="Stripe non configuré")

    try:
        session = gateway.retrieve_checkout_session(data.sessionId)
    except Exception as e:
        logger.error(f"❌ Failed to retrieve Stripe session {data.sessionId}: {e}")
        raise HTTPException(status_code=500, detail="Impossible de récupérer la session de paiement")

    logger.info(
        f"🔍 Verifying session {data.sessionId}: payment_status={session.get('payment_status')} "
        f"status={session.get('status')} livemode={session.get('livemode')}"
    )

    if service.test_session_refused(session):
        return {
            "ok": False,
            "error": "Mode test désactivé. Les paiements de test ne sont pas acceptés.",
            "sessionStatus": session.get("payment_status"),
        }

    if not is_session_paid(session):
        return {
            "ok": False,
            "error": "Paiement non complété",
            "sessionStatus": session.get("payment_status"),
            "sessionComplete": session.get("status") == "complete",
            "details": {
                "payment_status": session.get("payment_status"),
                "status": session.get("status"),
                "livemode": session.get("livemode"),
            },
        }

    outcome = service.confirm_session(session)
    status = outcome["status"]

    if status == CONFIRMED:
        return {
            "ok": True,
            "message": "Paiement vérifié et réservation validée",
            "bookingId": outcome["bookingId"],
            "testMode": outcome["testMode"],
        }
    if status == ALREADY_CONFIRMED:
        return {"ok": True, "message": "Paiement déjà validé", "bookingId": outcome["bookingId"]}
    if status == QUOTE_PAID:
        return {"ok": True, "message": "Paiement du devis validé", "quoteId": outcome["quoteId"]}
    if status == NOT_FOUND:
        raise HTTPException(status_code=404, detail=outcome["error"])
    if status == INCOMPLETE_METADATA:
        raise HTTPException(status_code=400, detail=outcome["error"])
    if status == FAILED:
        raise HTTPException(status_code=500, detail=outcome["error"])

    body = {"ok": False, "error": outcome.get("error") or "Paiement non associé à une réservation"}
    if outcome.get("details"):
        body["details"] = outcome["details"]
    return body


@router.post("/create-checkout-session")
def create_checkout_session(
    data: CheckoutRequest,
    service: CheckoutService = Depends(get_checkout_service),
):
    return service.create_checkout_session(data)


@admin_router.get("/payments")
def list_payments(
    _admin: AdminUser = Depends(get_current_admin),
    service: PaymentReportService = Depends(get_payment_report_service),
):
    try:
        return {"ok": True, "payments": service.list_payments()}
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"❌ Failed to list payments: {e}")
        raise HTTPException(status_code=500, detail="Erreur serveur")
