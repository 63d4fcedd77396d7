from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Numeric, Text, Enum as SQLEnum
from sqlalchemy.sql import func
import enum
import uuid

from ..core.database import Base
from .user import User  # noqa: F401  registers the users table for the foreign key

class AppointmentStatus(str, enum.Enum):
    CONFIRMED = "confirmed"

class PaymentStatus(str, enum.Enum):
    PAID = "paid"

def _new_appointment_id() -> str:
    return str(uuid.uuid4())

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(String(36), primary_key=True, default=_new_appointment_id)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Appointment details
    patient_name = Column(String(200), nullable=False)
    contact_number = Column(String(20), nullable=False)
    appointment_type = Column(String(100), nullable=False)
    doctor_type = Column(String(100), nullable=False, default="General Practitioner")
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(20), nullable=False)
    reason = Column(Text, nullable=True)
    status = Column(SQLEnum(AppointmentStatus), nullable=False, default=AppointmentStatus.CONFIRMED)

    # Payment; one appointment per provider charge
    payment_status = Column(SQLEnum(PaymentStatus), nullable=False, default=PaymentStatus.PAID)
    payment_reference = Column(String(255), nullable=False, unique=True)
    total_amount = Column(Numeric(10, 2), nullable=False)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())

    def __repr__(self):
        return f"<Appointment(id={self.id}, user_id={self.user_id}, payment_reference='{self.payment_reference}')>"
