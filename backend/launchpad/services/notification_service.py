"""Outgoing notifications (admin e-mail).

Delivery is best-effort: callers wrap ``send`` in their own error boundary,
so a mail outage never blocks a moderation decision.
"""
import logging
import smtplib
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from functools import lru_cache
from html import escape

from launchpad.config import settings

logger = logging.getLogger(__name__)


@dataclass
class Notification:
    to: str
    subject: str
    body: str
    delivered: bool = False


class LogNotifier:
    """Used when no SMTP host is configured: records the message in the log only."""

    def send(self, notification: Notification) -> None:
        logger.info("Notification to %s: %s", notification.to, notification.subject)


class SmtpNotifier:
    """Sends HTML mail through the configured SMTP relay."""

    def __init__(self, host: str, port: int, username: str = "", password: str = "",
                 use_tls: bool = True, sender: str = "", timeout: float = 10.0):
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.use_tls = use_tls
        self.sender = sender
        self.timeout = timeout

    def send(self, notification: Notification) -> None:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = notification.to
        message["Subject"] = notification.subject
        message.set_content("This message requires an HTML-capable mail client.")
        message.add_alternative(notification.body, subtype="html")

        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
            if self.use_tls:
                smtp.starttls()
            if self.username:
                smtp.login(self.username, self.password)
            smtp.send_message(message)
        logger.info("Sent '%s' to %s", notification.subject, notification.to)


@lru_cache
def get_notifier():
    """FastAPI dependency: the process-wide notification sink."""
    if not settings.EMAIL_HOST:
        return LogNotifier()
    return SmtpNotifier(
        host=settings.EMAIL_HOST,
        port=settings.EMAIL_PORT,
        username=settings.EMAIL_USER,
        password=settings.EMAIL_PASSWORD,
        use_tls=settings.EMAIL_USE_TLS,
        sender=settings.EMAIL_FROM,
    )


def startup_approved_notification(startup_id: str, name: str) -> Notification:
    updated_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    body = f"""
    <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>Startup Status Changed</h2>
      <p>A startup has been approved:</p>
      <ul>
        <li><strong>Name:</strong> {escape(name)}</li>
        <li><strong>ID:</strong> {startup_id}</li>
        <li><strong>Status:</strong> Approved</li>
        <li><strong>Updated at:</strong> {updated_at}</li>
      </ul>
      <p>The startup is now visible to the public.</p>
    </div>
    """
    return Notification(to=settings.ADMIN_EMAIL, subject=f"Startup Approved: {name}", body=body)


def startup_created_notification(name: str, slug: str) -> Notification:
    body = f"""
    <div style="font-family: sans-serif; max-width: 600px; margin: 0 auto;">
      <h2>New Startup Created</h2>
      <p>A new startup has been added to the platform and is awaiting approval.</p>
      <p><strong>Startup Name:</strong> {escape(name)}<br><strong>Status:</strong> Pending Approval</p>
      <p><a href="{settings.SITE_URL.rstrip('/')}/admin/moderation">Review Startup</a></p>
      <p style="color: #888; font-size: 12px;">Public page once approved: /startups/{slug}</p>
    </div>
    """
    return Notification(to=settings.ADMIN_EMAIL, subject=f"New Startup Created: {name}", body=body)


def deliver(notifier, notification: Notification) -> Notification:
    """Send through ``notifier``; any failure is logged and swallowed."""
    try:
        notifier.send(notification)
        notification.delivered = True
    except Exception:
        logger.exception("Notification '%s' to %s failed", notification.subject, notification.to)
    return notification
