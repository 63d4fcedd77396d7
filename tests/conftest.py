import os

# Set testing environment before the application is imported
os.environ["TESTING"] = "1"
os.environ["TEST_DATABASE_URL"] = "sqlite:///./test.db"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from app.main import app
from app.core.database import Base, get_db, get_redis
from app.core.security import create_access_token
from app.api.deps import get_email_sender, get_payment_provider
from app.models.user import User
from app.services.errors import NotificationError, PaymentLookupError
from app.services.payments import CheckoutSession

# Create test database
SQLALCHEMY_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(
    SQLALCHEMY_DATABASE_URL, connect_args={"check_same_thread": False}
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class FakePaymentProvider:
    """In-memory stand-in for the Stripe checkout API."""

    def __init__(self, sessions=None):
        self.sessions = dict(sessions or {})
        self.retrieved = []
        self.created = []
        self.error = None

    def retrieve_session(self, session_id):
        self.retrieved.append(session_id)
        if self.error is not None:
            raise self.error
        if session_id not in self.sessions:
            raise PaymentLookupError()
        return dict(self.sessions[session_id])

    def create_session(self, params):
        self.created.append(params)
        if self.error is not None:
            raise self.error
        return CheckoutSession(id="cs_test_new", url="https://checkout.stripe.test/pay/cs_test_new")


class FakeEmailSender:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []

    def send(self, to_email, subject, html_content):
        if self.fail:
            raise NotificationError()
        self.sent.append({"to": to_email, "subject": subject, "html": html_content})
        return f"<message-{len(self.sent)}@test>"


class FakeRedis:
    def __init__(self):
        self.data = {}

    def get(self, key):
        return self.data.get(key)

    def setex(self, key, ttl, value):
        self.data[key] = str(value)
        return True

    def incr(self, key):
        self.data[key] = str(int(self.data.get(key, 0)) + 1)
        return int(self.data[key])


def checkout_payload(
    session_id="sess_123",
    payment_status="paid",
    amount_total=15000,
    payment_reference="pi_123",
    client_reference_id=None,
    **metadata
):
    """A checkout session as returned by the payment provider adapter."""
    details = {
        "patient_name": "Jane Doe",
        "appointment_type": "General Checkup",
        "appointment_date": "2025-03-10",
        "appointment_time": "10:00",
    }
    details.update(metadata)
    return {
        "id": session_id,
        "payment_status": payment_status,
        "amount_total": amount_total,
        "payment_reference": payment_reference,
        "client_reference_id": client_reference_id,
        "metadata": {k: v for k, v in details.items() if v is not None},
    }


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def patient(db_session):
    user = User(email="jane@example.com", phone_number="+15550100", is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def other_user(db_session):
    user = User(email="sam@example.com", phone_number=None, is_active=True)
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


@pytest.fixture
def token(patient):
    return create_access_token({"sub": patient.id, "email": patient.email})


@pytest.fixture
def auth_headers(token):
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def payment_provider(patient):
    owner = str(patient.id)
    return FakePaymentProvider({
        "sess_123": checkout_payload(client_reference_id=owner),
        "sess_456": checkout_payload(
            session_id="sess_456", payment_status="unpaid", payment_reference=None,
            client_reference_id=owner
        ),
    })


@pytest.fixture
def email_sender():
    return FakeEmailSender()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client(db_session, payment_provider, email_sender, fake_redis):
    def override_get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_payment_provider] = lambda: payment_provider
    app.dependency_overrides[get_email_sender] = lambda: email_sender
    app.dependency_overrides[get_redis] = lambda: fake_redis
    with TestClient(app, base_url="http://testserver") as test_client:
        yield test_client
    app.dependency_overrides.clear()
