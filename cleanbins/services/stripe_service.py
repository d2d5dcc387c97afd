"""
Stripe gateway
Thin wrapper around the Stripe SDK returning plain dicts, injected into the payment routes
"""

import logging
from typing import Any, Optional

import stripe

from ..config import STRIPE_SECRET_KEY, STRIPE_TIMEOUT, STRIPE_WEBHOOK_SECRET

logger = logging.getLogger(__name__)

stripe.default_http_client = stripe.RequestsClient(timeout=STRIPE_TIMEOUT)
stripe.max_network_retries = 1


class StripeNotConfiguredError(Exception):
    """Raised when a Stripe call is attempted without a secret key"""


def _plain(obj: Any) -> dict:
    if obj is None:
        return {}
    if isinstance(obj, dict) and not isinstance(obj, stripe.StripeObject):
        return obj
    return obj.to_dict()


class StripeGateway:
    """Stripe API access for checkout sessions, prices and payment intents"""

    def __init__(self, api_key: Optional[str], webhook_secret: Optional[str] = None):
        self.api_key = api_key
        self.webhook_secret = webhook_secret

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    @property
    def webhook_configured(self) -> bool:
        return bool(self.api_key and self.webhook_secret)

    def _require_key(self) -> str:
        if not self.api_key:
            raise StripeNotConfiguredError("Stripe non configuré")
        return self.api_key

    def retrieve_checkout_session(self, session_id: str) -> dict:
        session = stripe.checkout.Session.retrieve(session_id, api_key=self._require_key())
        return _plain(session)

    def create_checkout_session(self, **params) -> dict:
        session = stripe.checkout.Session.create(api_key=self._require_key(), **params)
        logger.info(f"✅ Stripe checkout session created: {session.id}")
        return _plain(session)

    def first_active_price(self, product_id: str) -> Optional[dict]:
        prices = stripe.Price.list(product=product_id, active=True, limit=1, api_key=self._require_key())
        data = _plain(prices).get("data") or []
        return data[0] if data else None

    def retrieve_payment_intent(self, payment_intent_id: str) -> dict:
        intent = stripe.PaymentIntent.retrieve(payment_intent_id, api_key=self._require_key())
        return _plain(intent)


def get_stripe_gateway() -> StripeGateway:
    """Dependency injection for StripeGateway"""
    return StripeGateway(STRIPE_SECRET_KEY, STRIPE_WEBHOOK_SECRET)
