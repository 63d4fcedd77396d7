from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from functools import lru_cache
from typing import Optional
import logging
import redis

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import security
from ..services.appointment_store import AppointmentStore
from ..services.assistant import ChatAssistant
from ..services.checkout import CheckoutService
from ..services.confirmation import ConfirmationOrchestrator
from ..services.identity import IdentityProvider, UserIdentity
from ..services.notifications import NotificationDispatcher, SmtpEmailSender
from ..services.payments import PaymentVerifier, StripePaymentProvider

logger = logging.getLogger(__name__)

# Provider clients are built once per process and shared read-only
@lru_cache
def get_payment_provider() -> StripePaymentProvider:
    """Get the payment provider client."""
    return StripePaymentProvider(settings.STRIPE_SECRET_KEY, timeout=settings.STRIPE_TIMEOUT_SECONDS)

@lru_cache
def get_email_sender() -> SmtpEmailSender:
    """Get the email sender."""
    return SmtpEmailSender(
        host=settings.SMTP_HOST,
        port=settings.SMTP_PORT,
        username=settings.SMTP_USER,
        password=settings.SMTP_PASSWORD,
        from_email=settings.EMAIL_FROM,
        use_tls=settings.SMTP_USE_TLS,
        timeout=settings.SMTP_TIMEOUT_SECONDS,
    )

@lru_cache
def get_chat_assistant() -> ChatAssistant:
    """Get the conversational assistant client."""
    return ChatAssistant(
        model_url=settings.CHAT_MODEL_URL,
        access_token=settings.HUGGING_FACE_ACCESS_TOKEN,
        timeout=settings.CHAT_TIMEOUT_SECONDS,
    )

def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[str]:
    """Extract the bearer token from the Authorization header, if any."""
    return credentials.credentials if credentials else None

def get_identity_provider(db: Session = Depends(get_db)) -> IdentityProvider:
    return IdentityProvider(db)

def get_current_identity(
    token: Optional[str] = Depends(get_bearer_token),
    identity: IdentityProvider = Depends(get_identity_provider)
) -> UserIdentity:
    """Get the authenticated caller."""
    return identity.get_user(token)

def get_confirmation_orchestrator(
    identity: IdentityProvider = Depends(get_identity_provider),
    db: Session = Depends(get_db),
    provider = Depends(get_payment_provider),
    sender = Depends(get_email_sender)
) -> ConfirmationOrchestrator:
    return ConfirmationOrchestrator(
        identity=identity,
        verifier=PaymentVerifier(provider),
        store=AppointmentStore(db),
        dispatcher=NotificationDispatcher(sender),
    )

def get_checkout_service(
    provider = Depends(get_payment_provider)
) -> CheckoutService:
    return CheckoutService(provider, settings)

# Rate limiting dependency
def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Per-client hourly rate limit for the assistant."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:chat:{client_ip}"

    try:
        current_requests = redis_client.get(key)
        if current_requests is None:
            redis_client.setex(key, 3600, 1)  # 1 hour window
            return
        if int(current_requests) >= settings.CHAT_RATE_LIMIT:
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests. Please try again later."
            )
        redis_client.incr(key)
    except redis.RedisError as e:
        # Redis outage disables rate limiting, not the assistant
        logger.warning(f"Rate limit check skipped, Redis unavailable: {e}")
