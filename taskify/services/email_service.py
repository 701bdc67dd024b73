# taskify/services/email_service.py
import logging
import smtplib
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from taskify.config import Settings

logger = logging.getLogger(__name__)


class Notifier(Protocol):
    async def send_verification(self, email: str, token: str) -> None: ...

    async def send_password_reset(self, email: str, token: str) -> None: ...


class EmailNotifier:
    """Sends account emails over SMTP. Failures propagate to the caller."""

    def __init__(self, settings: Settings):
        self.settings = settings

    def verification_url(self, token: str) -> str:
        return f"{self.settings.client_url}/verify-email/{token}"

    def reset_url(self, token: str) -> str:
        return f"{self.settings.client_url}/reset-password/{token}"

    def build_message(self, to: str, subject: str, body: str) -> MIMEText:
        message = MIMEText(body, "plain", "utf-8")
        message["From"] = formataddr(("Taskify", self.settings.email_from))
        message["To"] = to
        message["Subject"] = subject
        return message

    def _deliver(self, message: MIMEText) -> None:
        s = self.settings
        if s.email_secure:
            smtp = smtplib.SMTP_SSL(s.email_host, s.email_port, timeout=30)
        else:
            smtp = smtplib.SMTP(s.email_host, s.email_port, timeout=30)
        with smtp:
            if not s.email_secure and smtp.has_extn("starttls"):
                smtp.starttls()
                smtp.ehlo()
            smtp.login(s.email_user, s.email_pass)
            smtp.send_message(message)

    async def _send(self, to: str, subject: str, body: str, link: str) -> None:
        if not self.settings.smtp_configured:
            if self.settings.is_production:
                raise RuntimeError("SMTP is not configured (EMAIL_HOST, EMAIL_USER, EMAIL_PASS)")
            logger.info("SMTP not configured, not sending '%s' to %s. Link: %s", subject, to, link)
            return
        await run_in_threadpool(self._deliver, self.build_message(to, subject, body))
        logger.info("Sent '%s' to %s", subject, to)
        if not self.settings.is_production:
            logger.debug("Link: %s", link)

    async def send_verification(self, email: str, token: str) -> None:
        url = self.verification_url(token)
        body = (
            "Welcome to Taskify!\n\n"
            f"Please verify your email address by opening this link:\n\n{url}\n\n"
        )
        await self._send(email, "Verify Your Email Address", body, url)

    async def send_password_reset(self, email: str, token: str) -> None:
        url = self.reset_url(token)
        body = (
            "You recently requested to reset your Taskify password.\n\n"
            f"Open this link to choose a new one:\n\n{url}\n\n"
            "This link will expire in 30 minutes. If you did not request a reset, ignore this email.\n"
        )
        await self._send(email, "Reset Your Taskify Password", body, url)
