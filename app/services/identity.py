from sqlalchemy.orm import Session
from sqlalchemy.exc import SQLAlchemyError
from typing import Optional
from pydantic import BaseModel
import logging

from ..core.security import verify_token
from ..models.user import User
from .errors import AuthenticationError, WorkflowError

logger = logging.getLogger(__name__)

class UserIdentity(BaseModel):
    id: int
    email: Optional[str] = None
    phone: Optional[str] = None

class IdentityProvider:
    """Resolves bearer tokens to the user they were issued for."""

    def __init__(self, db: Session):
        self.db = db

    def get_user(self, token: Optional[str]) -> UserIdentity:
        if not token:
            raise AuthenticationError("Missing bearer token")

        token_payload = verify_token(token)
        if not token_payload or token_payload.token_type != "access":
            raise AuthenticationError("Invalid or expired token")

        if not token_payload.sub:
            raise AuthenticationError("Invalid token payload")

        try:
            user = self.db.query(User).filter(User.id == token_payload.sub).first()
        except SQLAlchemyError as e:
            logger.error(f"User lookup failed: {str(e)}")
            raise WorkflowError("Unable to verify credentials") from e

        if not user or not user.is_active:
            raise AuthenticationError("User not found or inactive")

        return UserIdentity(id=user.id, email=user.email, phone=user.phone_number)
