"""
Payment provider access.

``StripePaymentProvider`` talks to Stripe Checkout and hands back plain
session payloads. ``PaymentVerifier`` decides whether a session may be
turned into an appointment and validates its metadata into typed models
before anything is written.
"""
from datetime import date
from typing import Any, Dict, Mapping, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError
import logging
import stripe

from .errors import (
    InvalidPaymentMetadataError, PaymentLookupError, PaymentNotCompletedError
)

logger = logging.getLogger(__name__)

PAID = "paid"

class AppointmentDetails(BaseModel):
    """Appointment fields carried in the checkout session metadata."""
    model_config = ConfigDict(str_strip_whitespace=True)

    patient_name: str = Field(min_length=1, max_length=200)
    appointment_type: str = Field(min_length=1, max_length=100)
    appointment_date: date
    appointment_time: str = Field(min_length=1, max_length=20)

class PaymentSession(BaseModel):
    """A settled checkout session, validated."""
    id: str
    payment_status: str
    amount_total: int = Field(ge=0)
    payment_reference: str = Field(min_length=1)
    client_reference_id: Optional[str] = None
    details: AppointmentDetails

class CheckoutSession(BaseModel):
    id: str
    url: str

class StripePaymentProvider:
    def __init__(self, api_key: Optional[str], timeout: int = 10):
        self.client = None
        if api_key:
            self.client = stripe.StripeClient(
                api_key,
                http_client=stripe.RequestsClient(timeout=timeout),
                max_network_retries=0,
            )

    def _require_client(self):
        if self.client is None:
            logger.error("STRIPE_SECRET_KEY is not configured")
            raise PaymentLookupError("Payment provider is not configured")
        return self.client

    def retrieve_session(self, session_id: str) -> Dict[str, Any]:
        try:
            session = self._require_client().checkout.sessions.retrieve(session_id)
        except stripe.StripeError as e:
            logger.error(f"Stripe error retrieving session {session_id}: {e}")
            raise PaymentLookupError() from e

        # Expanded sessions carry the PaymentIntent object instead of its id
        payment_intent = session.payment_intent
        reference = getattr(payment_intent, "id", payment_intent) or session.id

        return {
            "id": session.id,
            "payment_status": session.payment_status,
            "amount_total": session.amount_total,
            "payment_reference": reference,
            "client_reference_id": session.client_reference_id,
            "metadata": session.metadata.to_dict() if session.metadata is not None else {},
        }

    def create_session(self, params: Dict[str, Any]) -> CheckoutSession:
        try:
            session = self._require_client().checkout.sessions.create(params=params)
        except stripe.StripeError as e:
            logger.error(f"Stripe error creating checkout session: {e}")
            raise PaymentLookupError("Unable to start payment. Please try again.") from e

        return CheckoutSession(id=session.id, url=session.url)

class PaymentVerifier:
    def __init__(self, provider):
        self.provider = provider

    def verify(self, session_id: str) -> PaymentSession:
        """Fetch a checkout session and require it to be paid.

        Raises PaymentLookupError when the provider cannot be queried,
        PaymentNotCompletedError when the session is not paid, and
        InvalidPaymentMetadataError when a paid session lacks the
        appointment details needed to book it.
        """
        if not session_id:
            raise PaymentLookupError("A checkout session id is required")

        raw = self.provider.retrieve_session(session_id)

        payment_status = raw.get("payment_status")
        if payment_status != PAID:
            logger.info(f"Session {session_id} has payment status {payment_status!r}")
            raise PaymentNotCompletedError()

        return self._validate(session_id, raw)

    def _validate(self, session_id: str, raw: Mapping[str, Any]) -> PaymentSession:
        metadata = raw.get("metadata") or {}
        try:
            return PaymentSession(
                id=raw.get("id") or session_id,
                payment_status=raw.get("payment_status"),
                amount_total=raw.get("amount_total"),
                payment_reference=raw.get("payment_reference"),
                client_reference_id=raw.get("client_reference_id"),
                details=AppointmentDetails(**metadata),
            )
        except (ValidationError, TypeError) as e:
            logger.error(f"Session {session_id} failed validation: {e}")
            raise InvalidPaymentMetadataError() from e
