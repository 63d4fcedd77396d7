import smtplib
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart
from email.utils import make_msgid
from html import escape
from typing import Optional

from ..models.appointment import Appointment
from .errors import NotificationError

logger = logging.getLogger(__name__)

class SmtpEmailSender:
    """Sends email via SMTP."""

    def __init__(
        self,
        host: Optional[str],
        port: int,
        username: Optional[str],
        password: Optional[str],
        from_email: str,
        use_tls: bool = True,
        timeout: int = 10,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.from_email = from_email
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to_email: str, subject: str, html_content: str) -> str:
        """Send an HTML email and return its Message-ID."""
        if not self.host:
            raise NotificationError("Email delivery is not configured")

        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = self.from_email
        msg['To'] = to_email
        msg['Message-ID'] = make_msgid()
        msg.attach(MIMEText(html_content, 'html'))

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
                if self.use_tls:
                    server.starttls()
                if self.username and self.password:
                    server.login(self.username, self.password)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            raise NotificationError() from e

        logger.info(f"Email sent to {to_email}")
        return msg['Message-ID']

class NotificationDispatcher:
    def __init__(self, sender):
        self.sender = sender

    def send_confirmation(self, recipient_email: str, appointment: Appointment) -> str:
        subject = "Appointment Confirmation - Your Healthcare Visit"
        html_content = render_confirmation(appointment)
        try:
            return self.sender.send(recipient_email, subject, html_content)
        except NotificationError:
            raise
        except Exception as e:
            # Sender implementations may surface their own transport errors
            logger.error(f"Email provider error for appointment {appointment.id}: {e}")
            raise NotificationError() from e

def render_confirmation(appointment: Appointment) -> str:
    return f"""
    <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #2563eb; text-align: center;">Appointment Confirmed!</h1>

      <div style="background-color: #f8fafc; padding: 20px; border-radius: 8px; margin: 20px 0;">
        <h2 style="color: #334155; margin-bottom: 15px;">Appointment Details</h2>
        <p><strong>Patient:</strong> {escape(appointment.patient_name)}</p>
        <p><strong>Date:</strong> {appointment.appointment_date.isoformat()}</p>
        <p><strong>Time:</strong> {escape(appointment.appointment_time)}</p>
        <p><strong>Type:</strong> {escape(appointment.appointment_type)}</p>
        <p><strong>Amount Paid:</strong> ${appointment.total_amount:.2f}</p>
        <p><strong>Confirmation ID:</strong> {appointment.id}</p>
      </div>

      <div style="background-color: #fef3c7; padding: 15px; border-radius: 8px; margin: 20px 0;">
        <h3 style="color: #92400e; margin-bottom: 10px;">Important Reminders</h3>
        <ul style="color: #92400e; margin: 0; padding-left: 20px;">
          <li>Please arrive 15 minutes early for your appointment</li>
          <li>Bring a valid ID and insurance card if applicable</li>
          <li>Prepare any questions or concerns you'd like to discuss</li>
        </ul>
      </div>

      <p style="text-align: center; color: #64748b;">
        Need to reschedule? Contact us or visit your dashboard to manage your appointments.
      </p>
    </div>
    """
