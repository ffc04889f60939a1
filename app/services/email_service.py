"""
UserDesk - Email Service

Supports two delivery methods:
    1. Resend HTTP API (recommended for cloud platforms)
    2. SMTP fallback (for local dev or self-hosted with Gmail, SES, etc.)

Resend is checked first. If USERDESK_RESEND_API_KEY is not set, falls back to SMTP.
Gracefully degrades: if neither is configured, logs a warning and returns False.
"""
import logging
from typing import Optional

import httpx

from ..config import settings

logger = logging.getLogger("userdesk.email")


class EmailService:
    """Async email service with Resend HTTP API and SMTP fallback."""

    RESEND_API_URL = "https://api.resend.com/emails"

    def is_configured(self) -> bool:
        """Check if any email backend is configured."""
        return bool(
            settings.email.resend_api_key
            or (settings.email.smtp_host and settings.email.smtp_username)
        )

    def _use_resend(self) -> bool:
        """Check if Resend API key is set."""
        return bool(settings.email.resend_api_key)

    def _sender(self) -> str:
        return f"{settings.email.from_name} <{settings.email.from_email}>"

    async def _send_via_resend(
        self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None
    ) -> bool:
        """Send email via Resend HTTP API."""
        payload = {
            "from": self._sender(),
            "to": [to_email],
            "subject": subject,
            "html": html_body,
        }
        if text_body:
            payload["text"] = text_body

        try:
            async with httpx.AsyncClient() as client:
                response = await client.post(
                    self.RESEND_API_URL,
                    headers={
                        "Authorization": f"Bearer {settings.email.resend_api_key}",
                        "Content-Type": "application/json",
                    },
                    json=payload,
                    timeout=10.0,
                )
        except httpx.HTTPError as e:
            logger.error("Failed to send email via Resend to %s: %s", to_email, e)
            return False

        if response.status_code == 200:
            logger.info("Email sent via Resend to %s: %s", to_email, subject)
            return True
        logger.error("Resend API error (%s): %s", response.status_code, response.text)
        return False

    async def _send_via_smtp(
        self, to_email: str, subject: str, html_body: str, text_body: Optional[str] = None
    ) -> bool:
        """Send email via SMTP."""
        import aiosmtplib
        from email.mime.text import MIMEText
        from email.mime.multipart import MIMEMultipart

        message = MIMEMultipart("alternative")
        message["From"] = self._sender()
        message["To"] = to_email
        message["Subject"] = subject

        if text_body:
            message.attach(MIMEText(text_body, "plain"))
        message.attach(MIMEText(html_body, "html"))

        try:
            await aiosmtplib.send(
                message,
                hostname=settings.email.smtp_host,
                port=settings.email.smtp_port,
                username=settings.email.smtp_username,
                password=settings.email.smtp_password,
                start_tls=settings.email.smtp_use_tls,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            logger.error("Failed to send email via SMTP to %s: %s", to_email, e)
            return False

        logger.info("Email sent via SMTP to %s: %s", to_email, subject)
        return True

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_body: str,
        text_body: Optional[str] = None,
    ) -> bool:
        """Send an email. Uses Resend if configured, otherwise SMTP."""
        if not self.is_configured():
            logger.warning("Email not configured - skipping send to %s", to_email)
            return False

        if self._use_resend():
            return await self._send_via_resend(to_email, subject, html_body, text_body)
        return await self._send_via_smtp(to_email, subject, html_body, text_body)

    async def send_password_reset_code(
        self, to_email: str, code: str, user_name: str = ""
    ) -> bool:
        """Send the one-time password reset code."""
        greeting = f"Hi {user_name}," if user_name else "Hi,"
        minutes = max(settings.auth.otp_expire_seconds // 60, 1)

        text = f"Your OTP for password reset is: {code}"
        html = f"""
        <div style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', sans-serif;
                     max-width: 480px; margin: 0 auto; padding: 24px;">
            <h2 style="color: #2563eb; margin-bottom: 16px;">Password reset code</h2>
            <p>{greeting}</p>
            <p>Use the code below to reset your password:</p>
            <p style="text-align: center; margin: 32px 0; font-size: 32px;
                      font-weight: 700; letter-spacing: 8px;">{code}</p>
            <hr style="border: none; border-top: 1px solid #e5e7eb; margin: 24px 0;">
            <p style="color: #9ca3af; font-size: 12px;">
                This code expires in {minutes} minutes. If you didn't request a password reset, ignore this email.
            </p>
        </div>
        """
        return await self.send_email(to_email, "Password Reset OTP", html, text)


# Global instance
email_service = EmailService()
