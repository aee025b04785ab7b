"""Service for sending emails."""

import logging
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional, Protocol

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    """Best-effort delivery of account links. Implementations never raise."""

    def send_verification_email(self, to_email: str, verification_url: str) -> bool:
        ...

    def send_password_reset_email(self, to_email: str, reset_url: str) -> bool:
        ...


class EmailService:
    """Service for sending emails via SMTP."""

    def __init__(
        self,
        smtp_host: Optional[str] = None,
        smtp_port: Optional[int] = None,
        smtp_username: Optional[str] = None,
        smtp_password: Optional[str] = None,
        from_email: Optional[str] = None,
        from_name: str = "Farmdesk",
    ):
        self.smtp_host = smtp_host or os.getenv("SMTP_HOST", "")
        self.smtp_port = smtp_port or int(os.getenv("SMTP_PORT", "587"))
        self.smtp_username = smtp_username or os.getenv("SMTP_USERNAME", "")
        self.smtp_password = smtp_password or os.getenv("SMTP_PASSWORD", "")
        self.from_email = from_email or os.getenv("SMTP_FROM_EMAIL", "")
        self.from_name = from_name
        self.enabled = bool(self.smtp_host and self.smtp_username and self.from_email)

    def send_verification_email(self, to_email: str, verification_url: str) -> bool:
        """
        Send the email address confirmation link.

        Args:
            to_email: Recipient email
            verification_url: Link that confirms the address

        Returns:
            True if sent (or logged in development), False otherwise
        """
        if not self.enabled:
            logger.info("Verification URL for %s: %s", to_email, verification_url)
            return True

        subject = "Verify your email - Farmdesk"
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #166534;">Welcome to Farmdesk!</h2>
                <p style="color: #475569; line-height: 1.6;">
                    Thanks for signing up. Please confirm your email address to finish setting up your account.
                </p>
                <p style="text-align: center; margin: 30px 0;">
                    <a href="{verification_url}"
                       style="background-color: #16a34a; color: white; padding: 15px 30px;
                              text-decoration: none; border-radius: 5px; font-weight: bold;">
                        Verify email
                    </a>
                </p>
                <p style="color: #64748b; font-size: 14px;">
                    If you did not create a Farmdesk account, you can ignore this email.
                </p>
            </body>
        </html>
        """

        text_body = f"""
        Welcome to Farmdesk!

        Confirm your email address by opening the link below:
        {verification_url}

        If you did not create a Farmdesk account, you can ignore this email.
        """

        return self._send_email(to_email, subject, html_body, text_body)

    def send_password_reset_email(self, to_email: str, reset_url: str) -> bool:
        """
        Send the password reset link.

        Args:
            to_email: Recipient email
            reset_url: Link to the reset form, carrying the reset token

        Returns:
            True if sent (or logged in development), False otherwise
        """
        if not self.enabled:
            logger.info("Password reset URL for %s: %s", to_email, reset_url)
            return True

        subject = "Reset your password - Farmdesk"
        html_body = f"""
        <html>
            <body style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
                <h2 style="color: #166534;">Password reset</h2>
                <p style="color: #475569; line-height: 1.6;">
                    We received a request to reset your Farmdesk password.
                </p>
                <p style="text-align: center; margin: 30px 0;">
                    <a href="{reset_url}"
                       style="background-color: #16a34a; color: white; padding: 15px 30px;
                              text-decoration: none; border-radius: 5px; font-weight: bold;">
                        Choose a new password
                    </a>
                </p>
                <p style="color: #64748b; font-size: 14px;">
                    This link expires in 1 hour. If you did not ask for a reset, you can ignore this email.
                </p>
            </body>
        </html>
        """

        text_body = f"""
        Farmdesk - Password reset

        Choose a new password using the link below:
        {reset_url}

        This link expires in 1 hour. If you did not ask for a reset, you can ignore this email.
        """

        return self._send_email(to_email, subject, html_body, text_body)

    def _send_email(self, to_email: str, subject: str, html_body: str, text_body: str) -> bool:
        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            msg.attach(MIMEText(text_body, "plain", "utf-8"))
            msg.attach(MIMEText(html_body, "html", "utf-8"))

            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls()
                server.login(self.smtp_username, self.smtp_password)
                server.send_message(msg)

            return True

        except (smtplib.SMTPException, OSError):
            logger.exception("Failed to send email to %s", to_email)
            return False
