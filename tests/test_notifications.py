import smtplib
import pytest
from datetime import date
from decimal import Decimal

from app.models.appointment import Appointment
from app.services import notifications
from app.services.errors import NotificationError
from app.services.notifications import (
    NotificationDispatcher, SmtpEmailSender, render_confirmation
)
from tests.conftest import FakeEmailSender


def make_appointment(**overrides):
    fields = dict(
        id="6f1c2a8e-0000-4000-8000-000000000001",
        user_id=1,
        patient_name="Jane Doe",
        contact_number="+15550100",
        appointment_type="General Checkup",
        appointment_date=date(2025, 3, 10),
        appointment_time="10:00",
        payment_reference="pi_123",
        total_amount=Decimal("150.00"),
    )
    fields.update(overrides)
    return Appointment(**fields)


class RecordingSMTP:
    instances = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.timeout = timeout
        self.messages = []
        self.started_tls = False
        self.logged_in = None
        RecordingSMTP.instances.append(self)

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def starttls(self):
        self.started_tls = True

    def login(self, username, password):
        self.logged_in = (username, password)

    def send_message(self, msg):
        self.messages.append(msg)


class UnreachableSMTP:
    def __init__(self, host, port, timeout=None):
        raise OSError("Connection refused")


def smtp_sender(**overrides):
    options = dict(
        host="smtp.example.com",
        port=587,
        username="mailer",
        password="secret",
        from_email="Healthcare Assistant <no-reply@example.com>",
        use_tls=True,
        timeout=5,
    )
    options.update(overrides)
    return SmtpEmailSender(**options)


class TestConfirmationMessage:

    def test_message_contains_appointment_details(self):
        html = render_confirmation(make_appointment())

        assert "Jane Doe" in html
        assert "2025-03-10" in html
        assert "10:00" in html
        assert "General Checkup" in html
        assert "$150.00" in html
        assert "6f1c2a8e-0000-4000-8000-000000000001" in html

    def test_patient_supplied_text_is_escaped(self):
        html = render_confirmation(make_appointment(patient_name="<script>x</script>"))

        assert "<script>" not in html
        assert "&lt;script&gt;" in html


class TestNotificationDispatcher:

    def test_sends_confirmation_to_recipient(self):
        sender = FakeEmailSender()

        message_id = NotificationDispatcher(sender).send_confirmation(
            "jane@example.com", make_appointment()
        )

        assert message_id == "<message-1@test>"
        assert sender.sent[0]["to"] == "jane@example.com"
        assert sender.sent[0]["subject"] == "Appointment Confirmation - Your Healthcare Visit"

    def test_sender_failure_raises_notification_error(self):
        with pytest.raises(NotificationError):
            NotificationDispatcher(FakeEmailSender(fail=True)).send_confirmation(
                "jane@example.com", make_appointment()
            )

    def test_unexpected_sender_error_is_wrapped(self):
        class BrokenSender:
            def send(self, to_email, subject, html_content):
                raise RuntimeError("provider exploded")

        with pytest.raises(NotificationError) as exc_info:
            NotificationDispatcher(BrokenSender()).send_confirmation(
                "jane@example.com", make_appointment()
            )
        assert "exploded" not in exc_info.value.message


class TestSmtpEmailSender:

    def test_send_delivers_html_message(self, monkeypatch):
        RecordingSMTP.instances = []
        monkeypatch.setattr(notifications.smtplib, "SMTP", RecordingSMTP)

        message_id = smtp_sender().send("jane@example.com", "Subject", "<p>Hello</p>")

        server = RecordingSMTP.instances[0]
        assert server.timeout == 5
        assert server.started_tls
        assert server.logged_in == ("mailer", "secret")
        msg = server.messages[0]
        assert msg["To"] == "jane@example.com"
        assert msg["Message-ID"] == message_id

    def test_unconfigured_host_raises_notification_error(self):
        with pytest.raises(NotificationError):
            smtp_sender(host=None).send("jane@example.com", "Subject", "<p>Hello</p>")

    def test_connection_failure_raises_notification_error(self, monkeypatch):
        monkeypatch.setattr(notifications.smtplib, "SMTP", UnreachableSMTP)

        with pytest.raises(NotificationError):
            smtp_sender().send("jane@example.com", "Subject", "<p>Hello</p>")

    def test_smtp_rejection_raises_notification_error(self, monkeypatch):
        class RejectingSMTP(RecordingSMTP):
            def send_message(self, msg):
                raise smtplib.SMTPRecipientsRefused({"jane@example.com": (550, b"No such user")})

        monkeypatch.setattr(notifications.smtplib, "SMTP", RejectingSMTP)

        with pytest.raises(NotificationError):
            smtp_sender().send("jane@example.com", "Subject", "<p>Hello</p>")
