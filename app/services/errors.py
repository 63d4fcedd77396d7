"""
Error kinds raised by the appointment confirmation workflow and the
assistant.

Every error carries a machine-checkable ``kind``, the HTTP status it maps
to, and a message that is safe to show to the caller. Provider details go
to the logs, not into ``message``.
"""
from typing import Optional
from fastapi import status


class WorkflowError(Exception):
    kind = "workflow_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "The request could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class AuthenticationError(WorkflowError):
    """Missing or invalid credential, or no contact email on the account."""
    kind = "authentication_error"
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "User not authenticated"


class PaymentLookupError(WorkflowError):
    """The payment provider could not be reached or rejected the request. Retryable."""
    kind = "payment_lookup_error"
    default_message = "Unable to retrieve payment details. Please try again."


class PaymentNotCompletedError(WorkflowError):
    """The checkout session exists but has not been paid."""
    kind = "payment_not_completed"
    status_code = status.HTTP_402_PAYMENT_REQUIRED
    default_message = "Payment not completed"


class PersistenceError(WorkflowError):
    """The appointment could not be stored. Retrying is safe."""
    kind = "persistence_error"
    default_message = "Failed to create appointment record"


class InvalidPaymentMetadataError(PersistenceError):
    kind = "invalid_payment_metadata"
    default_message = "Payment session is missing appointment details"


class NotificationError(WorkflowError):
    """Confirmation email could not be delivered. Never fails the workflow."""
    kind = "notification_error"
    default_message = "Failed to send confirmation email"


class AssistantUnavailableError(WorkflowError):
    kind = "assistant_unavailable"
    default_message = "Failed to process chat request"
