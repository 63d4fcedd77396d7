from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

from ...core.database import get_db
from ...api.deps import (
    get_bearer_token, get_checkout_service, get_confirmation_orchestrator,
    get_current_identity
)
from ...services.appointment_store import AppointmentStore
from ...services.checkout import CheckoutService
from ...services.confirmation import ConfirmationOrchestrator
from ...services.identity import UserIdentity
from ...schemas.appointment import (
    AppointmentResponse, CheckoutRequest, CheckoutResponse,
    ConfirmationRequest, ConfirmationResult, ErrorResponse
)

router = APIRouter(prefix="/appointments", tags=["Appointments"])

ERROR_RESPONSES = {
    401: {"model": ErrorResponse},
    402: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

@router.post("/checkout", response_model=CheckoutResponse, responses=ERROR_RESPONSES)
def create_checkout(
    booking: CheckoutRequest,
    current_user: UserIdentity = Depends(get_current_identity),
    checkout: CheckoutService = Depends(get_checkout_service)
):
    """Start a hosted payment for an appointment booking."""
    return checkout.create_checkout(current_user, booking)

@router.post("/confirm", response_model=ConfirmationResult, responses=ERROR_RESPONSES)
def confirm_appointment(
    confirmation: ConfirmationRequest,
    token: Optional[str] = Depends(get_bearer_token),
    orchestrator: ConfirmationOrchestrator = Depends(get_confirmation_orchestrator)
):
    """Confirm the appointment paid for in a checkout session.

    Safe to repeat for the same session: every call reports the same
    appointment and retries the confirmation email.
    """
    return orchestrator.confirm(token, confirmation.session_id)

@router.get("", response_model=List[AppointmentResponse], responses={401: {"model": ErrorResponse}})
def list_appointments(
    current_user: UserIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db)
):
    """List the caller's appointments."""
    appointments = AppointmentStore(db).list_for_user(current_user.id)
    return [AppointmentResponse.model_validate(a) for a in appointments]
