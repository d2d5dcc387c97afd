"""Shared test helpers"""

from datetime import timedelta

from cleanbins.domain.settings.repository import ConfigRepository
from cleanbins.security_utils import create_jwt_token

WEBHOOK_SECRET = "whsec_test"


class FakeStripeGateway:
    """In-memory stand-in for the Stripe API"""

    def __init__(self):
        self.api_key = "sk_test_fake"
        self.webhook_secret = WEBHOOK_SECRET
        self.sessions = {}
        self.created = []
        self.payment_intents = {}
        self.price = {"id": "price_123", "unit_amount": 4900}

    @property
    def configured(self):
        return bool(self.api_key)

    @property
    def webhook_configured(self):
        return bool(self.api_key and self.webhook_secret)

    def retrieve_checkout_session(self, session_id):
        if session_id not in self.sessions:
            raise RuntimeError(f"No such checkout.session: {session_id}")
        return self.sessions[session_id]

    def create_checkout_session(self, **params):
        session_id = f"cs_test_{len(self.created) + 1}"
        self.created.append(params)
        return {"id": session_id, "url": f"https://checkout.stripe.test/{session_id}"}

    def first_active_price(self, product_id):
        return self.price

    def retrieve_payment_intent(self, payment_intent_id):
        if payment_intent_id not in self.payment_intents:
            raise RuntimeError(f"No such payment_intent: {payment_intent_id}")
        return self.payment_intents[payment_intent_id]


def paid_session(session_id, metadata, livemode=True, payment_intent="pi_123"):
    return {
        "id": session_id,
        "object": "checkout.session",
        "payment_status": "paid",
        "status": "complete",
        "livemode": livemode,
        "payment_intent": payment_intent,
        "metadata": metadata,
    }


def token_for(admin):
    return create_jwt_token(
        {"username": admin.username, "userId": admin.id, "role": admin.role, "fullName": admin.full_name},
        expires_delta=timedelta(days=1),
    )


def auth_headers(admin):
    return {"Authorization": f"Bearer {token_for(admin)}"}


def set_config(db, key, value):
    reload(db)
    ConfigRepository.set(db, key, value)
    db.commit()


def booking_payload(**overrides):
    payload = {
        "name": "Jean Dupont",
        "email": "jean@example.com",
        "phone": "0612345678",
        "city": "Lyon",
        "address": "1 rue de la République",
        "postalCode": "69001",
        "serviceType": "bin-cleaning",
        "binCount": 2,
        "preferredDate": "2030-03-12",
        "rgpdConsent": True,
    }
    payload.update(overrides)
    return payload


def reload(db):
    """End the session's read snapshot so rows committed by the app become visible"""
    db.commit()
