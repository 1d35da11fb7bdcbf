"""
Email adapter for the accounts service.

The default implementation uses SMTP, reading credentials from Settings.
Sending is best effort: failures are logged and reported as False, never raised.
"""

from __future__ import annotations

from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
import logging
import smtplib
import ssl
from typing import Protocol

from .config import Settings
from .utils import absolute_url

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    def send_verification(self, to_email: str, token: str) -> bool:
        ...

    def send_password_reset(self, to_email: str, token: str) -> bool:
        ...


def _button(url: str, label: str, color: str) -> str:
    return (
        f'<a href="{url}" style="display:inline-block;padding:12px 24px;background-color:{color};'
        f'color:#fff;text-decoration:none;border-radius:4px;margin:16px 0;">{label}</a>'
    )


class SMTPNotifier:
    """Sends verification and password reset links by SMTP."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def _configured(self) -> bool:
        s = self.settings
        return bool(s.smtp_host and s.smtp_user and s.smtp_password and s.smtp_from and s.smtp_port)

    def send_email(self, subject: str, to_email: str, html_body: str, text_body: str | None = None) -> bool:
        settings = self.settings
        if not self._configured():
            logger.warning("SMTP not configured; skipping email %r to %s", subject, to_email)
            return False
        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = settings.smtp_from
        msg["To"] = to_email
        plain = text_body or html_body
        msg.attach(MIMEText(plain, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        port = settings.smtp_port or 587
        timeout = settings.smtp_timeout_seconds if settings.smtp_timeout_seconds > 0 else 10.0
        try:
            if port == 465:
                context = ssl.create_default_context()
                with smtplib.SMTP_SSL(settings.smtp_host, port, context=context, timeout=timeout) as server:
                    server.login(settings.smtp_user, settings.smtp_password)
                    server.sendmail(settings.smtp_from, [to_email], msg.as_string())
            else:
                with smtplib.SMTP(settings.smtp_host, port, timeout=timeout) as server:
                    server.ehlo()
                    server.starttls(context=ssl.create_default_context())
                    server.login(settings.smtp_user, settings.smtp_password)
                    server.sendmail(settings.smtp_from, [to_email], msg.as_string())
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email sending failed to %s: %s", to_email, exc)
            return False
        logger.info("Email sent to %s: %s", to_email, subject)
        return True

    def send_verification(self, to_email: str, token: str) -> bool:
        url = absolute_url(f"/verify-email?token={token}", self.settings.frontend_url)
        html_body = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2>Verify Your Email Address</h2>
          <p>Thank you for registering! Please click the button below to verify your email address:</p>
          {_button(url, "Verify Email", "#007bff")}
          <p>If the button doesn't work, copy and paste this link into your browser:</p>
          <p><a href="{url}">{url}</a></p>
        </div>
        """
        return self.send_email("Verify Your Email Address", to_email, html_body, f"Verify your email address: {url}")

    def send_password_reset(self, to_email: str, token: str) -> bool:
        url = absolute_url(f"/reset-password?token={token}", self.settings.frontend_url)
        minutes = max(1, self.settings.password_reset_ttl_seconds // 60)
        html_body = f"""
        <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
          <h2>Password Reset Request</h2>
          <p>You requested a password reset. Click the button below to reset your password:</p>
          {_button(url, "Reset Password", "#dc3545")}
          <p>If the button doesn't work, copy and paste this link into your browser:</p>
          <p><a href="{url}">{url}</a></p>
          <p>This link will expire in {minutes} minutes.</p>
          <p>If you didn't request this, please ignore this email.</p>
        </div>
        """
        return self.send_email("Password Reset Request", to_email, html_body, f"Reset your password: {url}")
