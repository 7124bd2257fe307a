"""
Transactional email for the key request workflow.

``Notifier`` is the interface the workflow calls. ``SmtpNotifier`` delivers
through an SMTP relay; ``LogNotifier`` is used when no relay is configured,
writes to the log and reports the message as undelivered. Delivery failures are raised as ``NotificationError``
and it is up to the caller to decide they do not undo anything.
"""
import html
import logging
import smtplib
from abc import ABC, abstractmethod
from email.message import EmailMessage
from typing import Optional

from app.core.config import settings
from app.core.exceptions import NotificationError

logger = logging.getLogger(__name__)


API_KEY_TEMPLATE = """\
<h1>Your API Key is Ready</h1>
<p>Hello {name},</p>
<p>Thanks for your interest in the {app_name}! Your API key has been generated:</p>
<p style="background-color: #f0f0f0; padding: 15px; font-family: monospace; word-break: break-all;">{key}</p>
<h2>Quick Start</h2>
<p>Send the key in the <code>X-API-Key</code> header:</p>
<pre style="background-color: #f0f0f0; padding: 10px;">curl -H "X-API-Key: {key}" {base_url}/api/v1/quotes/random</pre>
<p>For more information, please visit our <a href="{base_url}/docs">documentation</a>.</p>
<p>Best regards,<br>The {app_name} Team</p>
"""

REJECTION_TEMPLATE = """\
<h1>API Key Request Update</h1>
<p>Hello {name},</p>
<p>Thank you for your interest in the {app_name}.</p>
<p>After reviewing your request, we are unable to provide an API key at this time.</p>
<p>If you have any questions or would like to provide additional information about your use case, please reply to this email.</p>
<p>Best regards,<br>The {app_name} Team</p>
"""

ADMIN_ALERT_TEMPLATE = """\
<h1>New API Key Request</h1>
<p><strong>Name:</strong> {name}</p>
<p><strong>Email:</strong> {email}</p>
<p><strong>Usage Description:</strong> {usage}</p>
<p><strong>Request ID:</strong> {request_id}</p>
<p>Approve with <code>PATCH {base_url}/api/v1/key-requests/{request_id}/approve</code>.</p>
"""


class Notifier(ABC):
    """Sends the workflow's emails. Subclasses implement ``send``."""

    @abstractmethod
    def send(self, to: str, subject: str, html_body: str) -> None:
        """Deliver one message. Raises NotificationError on failure."""

    def send_api_key(self, email: str, name: str, key: str) -> None:
        body = API_KEY_TEMPLATE.format(
            name=html.escape(name),
            key=html.escape(key),
            app_name=html.escape(settings.APP_NAME),
            base_url=settings.BASE_URL.rstrip("/"),
        )
        self.send(email, f"Your {settings.APP_NAME} Key", body)

    def send_rejection(self, email: str, name: str) -> None:
        body = REJECTION_TEMPLATE.format(
            name=html.escape(name),
            app_name=html.escape(settings.APP_NAME),
        )
        self.send(email, f"Update on Your {settings.APP_NAME} Key Request", body)

    def send_admin_alert(self, request_id: int, name: str, email: str, usage: str) -> bool:
        """
        Tell the operator about a new request.

        Returns False without sending when ADMIN_EMAIL is not configured.
        """
        if not settings.ADMIN_EMAIL:
            logger.info("ADMIN_EMAIL not set, skipping new key request notification")
            return False
        body = ADMIN_ALERT_TEMPLATE.format(
            request_id=request_id,
            name=html.escape(name),
            email=html.escape(email),
            usage=html.escape(usage),
            base_url=settings.BASE_URL.rstrip("/"),
        )
        self.send(settings.ADMIN_EMAIL, "New API Key Request", body)
        return True


class SmtpNotifier(Notifier):
    """Delivers through an SMTP relay with STARTTLS and login."""

    def __init__(
        self,
        host: str,
        port: int,
        username: Optional[str],
        password: Optional[str],
        sender: str,
        use_tls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.sender = sender
        self.use_tls = use_tls
        self.timeout = timeout

    def send(self, to: str, subject: str, html_body: str) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to
        message["Subject"] = subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(html_body, subtype="html")

        logger.info(f"Sending email to {to}: {subject}")
        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.username:
                    smtp.login(self.username, self.password or "")
                smtp.send_message(message)
        except (smtplib.SMTPException, OSError) as e:
            # OSError covers connection refusals and socket timeouts
            logger.error(f"Failed to send email to {to}: {e}")
            raise NotificationError(str(e)) from e
        logger.info(f"Email sent to {to}")


class LogNotifier(Notifier):
    """
    Fallback when no SMTP relay is configured.

    Nothing is delivered, so every send is reported as a failure. Message
    bodies never reach the log.
    """

    def send(self, to: str, subject: str, html_body: str) -> None:
        logger.warning(f"SMTP not configured, email to {to} not sent: {subject}")
        raise NotificationError("SMTP not configured")


def get_notifier() -> Notifier:
    """Dependency returning the notifier for the current configuration."""
    if settings.is_smtp_configured():
        return SmtpNotifier(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            sender=settings.EMAIL_FROM,
            use_tls=settings.SMTP_USE_TLS,
            timeout=settings.SMTP_TIMEOUT,
        )
    return LogNotifier()
