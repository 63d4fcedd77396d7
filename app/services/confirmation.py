"""
Appointment confirmation after checkout.

The stages run strictly in order: authenticate the caller, verify the
payment, persist the appointment, then email the patient. A failure in
any of the first three ends the request. Email failure is reported in the
result and never undoes the appointment.

Confirming the same checkout session again is safe: the store returns the
appointment already recorded for the payment and the email is re-sent.
Only the account that started the checkout may confirm it.
"""
from typing import Optional
import logging

from ..schemas.appointment import ConfirmationResult
from .appointment_store import AppointmentStore
from .errors import AuthenticationError, NotificationError
from .identity import IdentityProvider
from .notifications import NotificationDispatcher
from .payments import PaymentVerifier

logger = logging.getLogger(__name__)

NO_CONTACT_NUMBER = "Not provided"
SESSION_NOT_OWNED = "Checkout session belongs to another account"

class ConfirmationOrchestrator:
    def __init__(
        self,
        identity: IdentityProvider,
        verifier: PaymentVerifier,
        store: AppointmentStore,
        dispatcher: NotificationDispatcher,
    ):
        self.identity = identity
        self.verifier = verifier
        self.store = store
        self.dispatcher = dispatcher

    def confirm(self, token: Optional[str], session_id: str) -> ConfirmationResult:
        user = self.identity.get_user(token)
        if not user.email:
            raise AuthenticationError("User not authenticated")

        logger.info(f"Processing appointment confirmation for session: {session_id}")

        payment = self.verifier.verify(session_id)
        if payment.client_reference_id != str(user.id):
            logger.warning(f"User {user.id} tried to confirm session {session_id} of another account")
            raise AuthenticationError(SESSION_NOT_OWNED)

        appointment = self.store.create_once(
            user_id=user.id,
            payment_reference=payment.payment_reference,
            details=payment.details,
            contact_number=user.phone or NO_CONTACT_NUMBER,
            amount_minor_units=payment.amount_total,
        )
        if appointment.user_id != user.id:
            logger.warning(
                f"Appointment {appointment.id} for payment {payment.payment_reference} "
                f"belongs to another user"
            )
            raise AuthenticationError(SESSION_NOT_OWNED)

        email_sent = True
        try:
            message_id = self.dispatcher.send_confirmation(user.email, appointment)
            logger.info(f"Confirmation email {message_id} sent for appointment {appointment.id}")
        except NotificationError as e:
            email_sent = False
            logger.warning(f"Appointment {appointment.id} confirmed but email failed: {e.message}")

        return ConfirmationResult(
            success=True,
            appointment_id=appointment.id,
            email_sent=email_sent,
        )
