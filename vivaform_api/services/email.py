from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import parseaddr
from urllib.parse import quote
from typing import Optional

import httpx
from starlette.concurrency import run_in_threadpool

from vivaform_api.core.settings import AppSettings, get_app_settings

logger = logging.getLogger(__name__)

SENDGRID_URL = "https://api.sendgrid.com/v3/mail/send"

_LAYOUT = """<!DOCTYPE html>
<html>
  <body style="font-family: -apple-system, 'Segoe UI', sans-serif; line-height: 1.6; color: #333;">
    <div style="max-width: 600px; margin: 0 auto; padding: 20px;">
      <h1 style="color: #2563eb;">{title}</h1>
      {body}
      <p>Best regards,<br>The VivaForm Team</p>
    </div>
  </body>
</html>
"""


def _render(title: str, body: str) -> str:
    return _LAYOUT.format(title=title, body=body)


class EmailService:
    """
    Outgoing email through the transport selected by EMAIL_SERVICE.

    - console: log only (development and tests)
    - smtp: stdlib smtplib, executed in a worker thread
    - sendgrid: SendGrid v3 HTTP API via httpx

    Sending failures are logged and swallowed so that auth flows keep working.
    """

    def __init__(self, settings: Optional[AppSettings] = None) -> None:
        self.settings = settings or get_app_settings()

    # PUBLIC_INTERFACE
    async def send(self, to: str, subject: str, html: str) -> bool:
        """Send an HTML email; returns False when delivery failed."""
        transport = (self.settings.EMAIL_SERVICE or "console").lower()
        try:
            if transport == "smtp":
                await run_in_threadpool(self._send_smtp, to, subject, html)
            elif transport == "sendgrid":
                await self._send_sendgrid(to, subject, html)
            else:
                logger.info("Email (console) to=%s subject=%s\n%s", to, subject, html)
            return True
        except Exception:
            logger.error("Failed to send email to %s via %s", to, transport, exc_info=True)
            return False

    def _send_smtp(self, to: str, subject: str, html: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.settings.EMAIL_FROM
        msg["To"] = to
        msg["Subject"] = subject
        msg.set_content("This message requires an HTML-capable email client.")
        msg.add_alternative(html, subtype="html")

        port = self.settings.SMTP_PORT
        if port == 465:
            client = smtplib.SMTP_SSL(self.settings.SMTP_HOST or "localhost", port, timeout=15)
        else:
            client = smtplib.SMTP(self.settings.SMTP_HOST or "localhost", port, timeout=15)
        with client:
            if port != 465:
                client.starttls()
            if self.settings.SMTP_USER and self.settings.SMTP_PASSWORD:
                client.login(self.settings.SMTP_USER, self.settings.SMTP_PASSWORD)
            client.send_message(msg)

    async def _send_sendgrid(self, to: str, subject: str, html: str) -> None:
        name, address = parseaddr(self.settings.EMAIL_FROM)
        payload = {
            "personalizations": [{"to": [{"email": to}]}],
            "from": {"email": address, "name": name or "VivaForm"},
            "subject": subject,
            "content": [{"type": "text/html", "value": html}],
        }
        headers = {"Authorization": f"Bearer {self.settings.SENDGRID_API_KEY}"}
        async with httpx.AsyncClient(timeout=15) as client:
            response = await client.post(SENDGRID_URL, json=payload, headers=headers)
            response.raise_for_status()

    # Templates
    async def send_verification_email(self, to: str, token: str) -> bool:
        url = f"{self.settings.FRONTEND_URL}/verify-email?token={token}"
        html = _render(
            "Verify Your Email",
            f"<p>Thank you for signing up with VivaForm!</p>"
            f'<p><a href="{url}">Verify Email Address</a></p>'
            f"<p>If you didn't create a VivaForm account, you can safely ignore this email.</p>",
        )
        return await self.send(to, "Verify Your VivaForm Email", html)

    async def send_password_reset_email(self, to: str, token: str) -> bool:
        url = f"{self.settings.FRONTEND_URL}/reset-password?token={token}&email={quote(to)}"
        html = _render(
            "Reset Your Password",
            f"<p>We received a request to reset your VivaForm password.</p>"
            f'<p><a href="{url}">Reset Password</a></p>'
            f"<p>This link expires in 1 hour. If you didn't request it, ignore this email.</p>",
        )
        return await self.send(to, "Reset Your VivaForm Password", html)

    async def send_temporary_password_email(self, to: str, password: str) -> bool:
        html = _render(
            "Your Temporary Password",
            f"<p>Use this temporary password to sign in: <strong>{password}</strong></p>"
            f"<p>You will be asked to choose a new password right after signing in.</p>",
        )
        return await self.send(to, "Your VivaForm Temporary Password", html)

    async def send_welcome_email(self, to: str, name: Optional[str]) -> bool:
        html = _render(
            "Welcome to VivaForm!",
            f"<p>Hi {name or 'there'},</p>"
            f"<p>Your personalized nutrition and wellness companion is ready.</p>"
            f'<p><a href="{self.settings.FRONTEND_URL}/dashboard">Go to Dashboard</a></p>',
        )
        return await self.send(to, "Welcome to VivaForm!", html)
