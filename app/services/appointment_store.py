from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from decimal import Decimal
from typing import List
import logging

from ..models.appointment import Appointment, AppointmentStatus, PaymentStatus
from .errors import PersistenceError
from .payments import AppointmentDetails

logger = logging.getLogger(__name__)

CENTS = Decimal("0.01")

def to_display_amount(minor_units: int) -> Decimal:
    """Convert an amount in minor currency units to a two-place Decimal."""
    return (Decimal(int(minor_units)) / Decimal(100)).quantize(CENTS)

class AppointmentStore:
    def __init__(self, db: Session):
        self.db = db

    def create_once(
        self,
        user_id: int,
        payment_reference: str,
        details: AppointmentDetails,
        contact_number: str,
        amount_minor_units: int,
    ) -> Appointment:
        """Insert the appointment for a payment, or return the one already stored.

        The unique constraint on ``payment_reference`` decides which of
        several concurrent inserts wins; losers read back the winner's row.
        """
        appointment = Appointment(
            user_id=user_id,
            patient_name=details.patient_name,
            contact_number=contact_number,
            appointment_type=details.appointment_type,
            doctor_type="General Practitioner",
            appointment_date=details.appointment_date,
            appointment_time=details.appointment_time,
            reason="Scheduled via online booking",
            status=AppointmentStatus.CONFIRMED,
            payment_status=PaymentStatus.PAID,
            payment_reference=payment_reference,
            total_amount=to_display_amount(amount_minor_units),
        )

        try:
            self.db.add(appointment)
            self.db.commit()
            self.db.refresh(appointment)
            logger.info(f"Appointment {appointment.id} created for payment {payment_reference}")
            return appointment
        except IntegrityError as e:
            self.db.rollback()
            existing = self._get_by_payment_reference(payment_reference)
            if existing is None:
                logger.error(f"Appointment insert rejected for payment {payment_reference}: {str(e)}")
                raise PersistenceError() from e
            logger.info(f"Appointment {existing.id} already recorded for payment {payment_reference}")
            return existing
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Database error creating appointment for payment {payment_reference}: {str(e)}")
            raise PersistenceError() from e

    def list_for_user(self, user_id: int) -> List[Appointment]:
        try:
            return (
                self.db.query(Appointment)
                .filter(Appointment.user_id == user_id)
                .order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Database error listing appointments for user {user_id}: {str(e)}")
            raise PersistenceError("Failed to load appointments") from e

    def _get_by_payment_reference(self, payment_reference: str):
        try:
            return self.db.query(Appointment).filter(
                Appointment.payment_reference == payment_reference
            ).first()
        except SQLAlchemyError as e:
            logger.error(f"Database error reading payment {payment_reference}: {str(e)}")
            raise PersistenceError() from e
