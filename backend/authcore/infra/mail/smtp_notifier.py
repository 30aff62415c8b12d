"""SMTP adapter for the notifier port."""

from __future__ import annotations

import logging
import smtplib
import ssl
from datetime import timedelta
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from urllib.parse import quote

from authcore.services._shared.ports import Notifier, Recipient

log = logging.getLogger(__name__)


def redact_email(email: str) -> str:
    """Redact an email address for logging."""
    if "@" not in email:
        return "redacted"
    local, domain = email.split("@", 1)
    return f"{local[:2]}***@{domain}"


def describe_ttl(ttl: timedelta) -> str:
    """Render a link lifetime for email copy (``"1 hour"``, ``"30 minutes"``)."""
    minutes = max(1, int(ttl.total_seconds() // 60))
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return "1 minute" if minutes == 1 else f"{minutes} minutes"


class SMTPNotifier(Notifier):
    """
    Send account emails over SMTP.

    When ``smtp_host`` or the sender address is missing the message is logged
    (recipient redacted) instead of sent, which keeps development setups
    working without a mail server. Delivery errors propagate to the caller
    (the outbox logs them).

    :param verification_base_url: Public URL of the API serving
        ``/auth/verify-email``.
    :param reset_base_url: Public URL of the frontend serving
        ``/reset-password``.
    :param reset_ttl: Lifetime of a reset token, quoted in the email.
    """

    def __init__(
        self,
        *,
        smtp_host: str | None = None,
        smtp_port: int = 587,
        smtp_user: str | None = None,
        smtp_password: str | None = None,
        smtp_use_tls: bool = True,
        from_email: str | None = None,
        from_name: str = "Accounts",
        verification_base_url: str = "http://localhost:8000/api/v1",
        reset_base_url: str = "http://localhost:3000",
        reset_ttl: timedelta = timedelta(hours=1),
        timeout: float = 30.0,
    ) -> None:
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_password = smtp_password
        self.smtp_use_tls = smtp_use_tls
        self.from_email = from_email or smtp_user
        self.from_name = from_name
        self.verification_base_url = verification_base_url.rstrip("/")
        self.reset_base_url = reset_base_url.rstrip("/")
        self.reset_ttl = reset_ttl
        self.timeout = timeout

    @property
    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.from_email)

    # ------------------------------------------------------------------ #
    # Links
    # ------------------------------------------------------------------ #

    def verification_url(self, token: str) -> str:
        return f"{self.verification_base_url}/auth/verify-email?token={quote(token)}"

    def reset_url(self, token: str) -> str:
        return f"{self.reset_base_url}/reset-password?token={quote(token)}"

    # ------------------------------------------------------------------ #
    # Port
    # ------------------------------------------------------------------ #

    def send_verification_email(self, recipient: Recipient, token: str) -> None:
        url = self.verification_url(token)
        text = (
            f"Hello {recipient.display_name},\n\n"
            f"Please confirm your email address by opening the link below:\n{url}\n\n"
            "If you did not create an account, you can ignore this message."
        )
        html = (
            f"<p>Hello {recipient.display_name},</p>"
            f'<p>Please confirm your email address: <a href="{url}">verify email</a></p>'
            "<p>If you did not create an account, you can ignore this message.</p>"
        )
        self._send(recipient.email, "Verify your email address", text, html)

    def send_password_reset_email(self, recipient: Recipient, token: str) -> None:
        url = self.reset_url(token)
        lifetime = describe_ttl(self.reset_ttl)
        text = (
            f"Hello {recipient.display_name},\n\n"
            f"A password reset was requested for your account. The link below is "
            f"valid for {lifetime}:\n{url}\n\n"
            "If you did not request it, no action is needed."
        )
        html = (
            f"<p>Hello {recipient.display_name},</p>"
            f'<p>A password reset was requested: <a href="{url}">choose a new password</a>. '
            f"The link is valid for {lifetime}.</p>"
            "<p>If you did not request it, no action is needed.</p>"
        )
        self._send(recipient.email, "Reset your password", text, html)

    # ------------------------------------------------------------------ #
    # Transport
    # ------------------------------------------------------------------ #

    def _send(self, to_email: str, subject: str, text_body: str, html_body: str) -> None:
        if not self.is_configured:
            log.info(
                "email.dev_mode to=%s subject=%s",
                redact_email(to_email),
                subject,
                extra={"event": "email.logged"},
            )
            return

        msg = MIMEMultipart("alternative")
        msg["Subject"] = subject
        msg["From"] = f"{self.from_name} <{self.from_email}>"
        msg["To"] = to_email
        msg.attach(MIMEText(text_body, "plain"))
        msg.attach(MIMEText(html_body, "html"))

        context = ssl.create_default_context()
        host = str(self.smtp_host)
        if self.smtp_use_tls:
            with smtplib.SMTP(host, self.smtp_port, timeout=self.timeout) as server:
                server.starttls(context=context)
                self._login(server)
                server.sendmail(str(self.from_email), to_email, msg.as_string())
        else:
            with smtplib.SMTP_SSL(
                host, self.smtp_port, context=context, timeout=self.timeout
            ) as server:
                self._login(server)
                server.sendmail(str(self.from_email), to_email, msg.as_string())

        log.info(
            "email.sent to=%s subject=%s",
            redact_email(to_email),
            subject,
            extra={"event": "email.sent"},
        )

    def _login(self, server: smtplib.SMTP) -> None:
        if self.smtp_user and self.smtp_password:
            server.login(self.smtp_user, self.smtp_password)
