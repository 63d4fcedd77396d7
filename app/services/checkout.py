from typing import Dict, Any
import logging

from ..core.config import Settings
from ..schemas.appointment import CheckoutRequest, CheckoutResponse
from .identity import UserIdentity

logger = logging.getLogger(__name__)

class CheckoutService:
    """Starts a hosted payment for a booking request.

    The booking travels in the session metadata; confirmation later reads
    it back from the provider rather than from the client.
    """

    def __init__(self, provider, settings: Settings):
        self.provider = provider
        self.settings = settings

    def create_checkout(self, user: UserIdentity, booking: CheckoutRequest) -> CheckoutResponse:
        session = self.provider.create_session(self._session_params(user, booking))
        logger.info(f"Created checkout session {session.id} for user {user.id}")
        return CheckoutResponse(url=session.url, session_id=session.id)

    def _session_params(self, user: UserIdentity, booking: CheckoutRequest) -> Dict[str, Any]:
        return_url = self.settings.FRONTEND_URL
        params = {
            "mode": "payment",
            "line_items": [{
                "price_data": {
                    "currency": self.settings.APPOINTMENT_CURRENCY,
                    "product_data": {"name": f"{booking.appointment_type} Appointment"},
                    "unit_amount": self.settings.price_for(booking.appointment_type),
                },
                "quantity": 1,
            }],
            "success_url": return_url + "?payment=success&session_id={CHECKOUT_SESSION_ID}",
            "cancel_url": return_url + "?payment=cancelled",
            "client_reference_id": str(user.id),
            "metadata": {
                "patient_name": booking.patient_name,
                "appointment_type": booking.appointment_type,
                "appointment_date": booking.appointment_date.isoformat(),
                "appointment_time": booking.appointment_time,
            },
        }
        if user.email:
            params["customer_email"] = user.email
        return params
