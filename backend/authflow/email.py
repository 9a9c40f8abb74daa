import logging
from html import escape
from typing import Optional, Protocol

import resend

from .errors import DeliveryError

logger = logging.getLogger(__name__)


def _redact_email(email: str) -> str:
    """Redact email for logging: u***@domain.com"""
    if "@" in email:
        local, domain = email.rsplit("@", 1)
        return f"{local[0]}***@{domain}" if local else f"***@{domain}"
    return "***"


class Mailer(Protocol):
    def send_otp(self, email: str, name: str, code: int) -> None: ...

    def send_welcome(self, email: str, name: str) -> None: ...

    def send_password_reset(self, email: str, url: str) -> None: ...


_BOX_STYLE = (
    "font-size: 32px; font-weight: bold; letter-spacing: 8px; "
    "background: #f5f5f5; padding: 20px; text-align: center; "
    "border-radius: 8px; margin: 20px 0;"
)


class ResendMailer:
    """Transactional mail through the Resend API.

    Every send builds its own params dict; nothing is shared between calls.
    """

    def __init__(self, api_key: Optional[str], app_name: str = "App", from_email: str = "noreply@example.com"):
        self.api_key = api_key
        self.app_name = app_name
        self.from_email = from_email
        if api_key:
            resend.api_key = api_key
        else:
            logger.warning("RESEND_API_KEY is not set - emails will not be sent")

    def _send(self, to_email: str, subject: str, html: str, kind: str) -> None:
        if not self.api_key:
            logger.error(f"Cannot send {kind} email to {_redact_email(to_email)} - RESEND_API_KEY is not set")
            raise DeliveryError(f"Failed to send {kind} email")

        params = {
            "from": f"{self.app_name} <{self.from_email}>",
            "to": [to_email],
            "subject": subject,
            "html": html,
        }
        try:
            resend.Emails.send(params)
        except Exception as e:
            logger.error(f"Failed to send {kind} email to {_redact_email(to_email)}: {e}")
            raise DeliveryError(f"Failed to send {kind} email") from e

    def send_otp(self, email: str, name: str, code: int) -> None:
        """Send a verification email with the 6-digit code."""
        app_name = escape(self.app_name)
        self._send(email, f"{self.app_name} - Verify Your Account", f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #333;">Welcome to {app_name}, {escape(name)}!</h1>
                <p>Your verification code is:</p>
                <div style="{_BOX_STYLE}">{int(code)}</div>
                <p>This code expires in 5 minutes.</p>
                <p>If you didn't create an account, you can ignore this email.</p>
            </div>
        """, "otp")

    def send_welcome(self, email: str, name: str) -> None:
        app_name = escape(self.app_name)
        self._send(email, f"Welcome to {self.app_name}", f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #333;">Welcome aboard, {escape(name)}!</h1>
                <p>Your {app_name} account is verified and ready to use.</p>
            </div>
        """, "welcome")

    def send_password_reset(self, email: str, url: str) -> None:
        """Send a password reset email with the recovery link."""
        self._send(email, f"{self.app_name} - Password Reset", f"""
            <div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
                <h1 style="color: #333;">Password Reset Request</h1>
                <p>You requested to reset your password. Use the link below:</p>
                <p><a href="{escape(url, quote=True)}">Reset your password</a></p>
                <p>This link expires in 2 hours.</p>
                <p>If you didn't request a password reset, you can ignore this email.</p>
            </div>
        """, "password reset")
