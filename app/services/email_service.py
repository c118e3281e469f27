from email.message import EmailMessage
import logging

import aiosmtplib

from app.config import Settings

logger = logging.getLogger(__name__)


class MailDeliveryError(Exception):
    """Raised when the SMTP gateway cannot deliver a message."""


class SMTPMailer:
    """
    Async SMTP client built from Settings.

    - Port 465 uses implicit TLS; any other port uses STARTTLS.
    - Requires MAIL_USERNAME and MAIL_PASSWORD to be configured.
    """

    def __init__(self, settings: Settings):
        self.hostname = settings.mail_server
        self.port = settings.mail_port
        self.username = settings.mail_username
        self.password = settings.mail_password
        self.sender = settings.mail_from or settings.mail_username
        self.timeout = settings.mail_timeout

    async def send_email(self, subject: str, recipient: str, text_body: str, html_body: str | None = None) -> None:
        if not self.username or not self.password:
            raise MailDeliveryError("MAIL_USERNAME/MAIL_PASSWORD are not configured")

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = f'"LexiLearn" <{self.sender}>'
        msg["To"] = recipient
        msg.set_content(text_body)
        if html_body:
            msg.add_alternative(html_body, subtype="html")

        use_tls_direct = self.port == 465
        try:
            await aiosmtplib.send(
                msg,
                hostname=self.hostname,
                port=self.port,
                username=self.username,
                password=self.password,
                use_tls=use_tls_direct,
                start_tls=not use_tls_direct,
                timeout=self.timeout,
            )
        except (aiosmtplib.SMTPException, OSError) as e:
            raise MailDeliveryError(str(e)) from e

    async def send_verification_code(self, recipient: str, code: str, ttl_minutes: int) -> None:
        text_body = (
            f"Your LexiLearn verification code is: {code}. "
            f"It expires in {ttl_minutes} minutes. Do not share it with anyone."
        )
        html_body = (
            f"<html>"
            f"<body style='font-family: Arial, sans-serif; text-align: center; margin: 0; padding: 40px;'>"
            f"<h1 style='font-size: 28px; font-weight: bold;'>LexiLearn verification code</h1>"
            f"<h2 style='font-size: 40px; color: #835bfc;'>{code}</h2>"
            f"<p style='font-size: 16px;'>This code expires in {ttl_minutes} minutes.</p>"
            f"<p style='font-size: 16px;'>If you did not request it, you can ignore this email.</p>"
            f"</body>"
            f"</html>"
        )
        await self.send_email("LexiLearn registration code", recipient, text_body, html_body)
        logger.info(f"[Mail] Verification email sent to: {recipient}")
