"""Payment schemas - Stripe checkout and verification requests"""

from typing import Optional

from pydantic import BaseModel

from ..bookings.schemas import BookingRequest


class VerifyPaymentRequest(BaseModel):
    sessionId: Optional[str] = None


class CheckoutRequest(BaseModel):
    """
    Checkout for a booking or a quote.

    A booking is either an existing row (``id``) or the form itself (``bookingData``),
    in which case the row is only created once the payment is confirmed.
    """

    type: Optional[str] = None
    id: Optional[int] = None
    serviceId: Optional[str] = None
    variantId: Optional[int] = None
    bookingData: Optional[BookingRequest] = None
