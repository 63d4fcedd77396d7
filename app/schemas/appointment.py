from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from ..models.appointment import AppointmentStatus, PaymentStatus

class CamelModel(BaseModel):
    """Accepts and emits camelCase field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class ConfirmationRequest(CamelModel):
    session_id: str = Field(min_length=1, max_length=255)

class ConfirmationResult(CamelModel):
    success: bool
    appointment_id: Optional[str] = None
    email_sent: bool = False

class CheckoutRequest(CamelModel):
    patient_name: str = Field(min_length=1, max_length=200)
    appointment_type: str = Field(min_length=1, max_length=100)
    appointment_date: date
    appointment_time: str = Field(min_length=1, max_length=20)

class CheckoutResponse(CamelModel):
    url: str
    session_id: str

class AppointmentResponse(CamelModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)

    id: str
    patient_name: str
    contact_number: str
    appointment_type: str
    doctor_type: str
    appointment_date: date
    appointment_time: str
    reason: Optional[str] = None
    status: AppointmentStatus
    payment_status: PaymentStatus
    payment_reference: str
    total_amount: Decimal
    created_at: Optional[datetime] = None

class ErrorResponse(BaseModel):
    error: str
    kind: str
