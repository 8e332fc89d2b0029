"""Email Notifier — best-effort SMTP delivery behind the core Notifier protocol.

Invariants:
    - send() never raises: returns True on delivery, False on any SMTP failure
    - Without SMTP settings, messages are logged instead of sent and count as delivered
    - Blocking smtplib calls run in a worker thread with a bounded timeout

Design Decisions:
    - Wrapper over raw smtplib: isolates transport errors from the workflows, which
      only decide whether a failed delivery matters to their caller
    - A fresh connection per message: reminder volume is low and it avoids holding
      idle SMTP sessions across sweep intervals
"""

import asyncio
import logging
import smtplib
from email.message import EmailMessage

from trustlend.config import Settings

logger = logging.getLogger(__name__)


class EmailNotifier:
    """Sends plain-text notification emails."""

    def __init__(
        self,
        host: str | None,
        port: int = 587,
        user: str | None = None,
        password: str | None = None,
        sender: str = "Trust Lending <noreply@example.com>",
        timeout_seconds: int = 15,
    ):
        self.host = host
        self.port = port
        self.user = user
        self.password = password
        self.sender = sender
        self.timeout_seconds = timeout_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> "EmailNotifier":
        return cls(
            host=settings.smtp_host,
            port=settings.smtp_port,
            user=settings.smtp_user,
            password=settings.smtp_password,
            sender=settings.email_from,
            timeout_seconds=settings.smtp_timeout_seconds,
        )

    @property
    def configured(self) -> bool:
        return bool(self.host)

    async def send(self, to_email: str, subject: str, body: str) -> bool:
        if not self.configured:
            logger.info(f"[email:dev] to={to_email} subject={subject!r} body={body!r}")
            return True
        message = self._build(to_email, subject, body)
        try:
            await asyncio.to_thread(self._deliver, message)
        except (smtplib.SMTPException, OSError) as e:
            logger.error(f"SMTP delivery to {to_email} failed: {e}")
            return False
        logger.info(f"Email sent to {to_email}: {subject}")
        return True

    def _build(self, to_email: str, subject: str, body: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = self.sender
        message["To"] = to_email
        message["Subject"] = subject
        message.set_content(body)
        return message

    def _deliver(self, message: EmailMessage) -> None:
        if self.port == 465:
            smtp = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds)
        with smtp:
            if self.port != 465:
                smtp.starttls()
            if self.user and self.password:
                smtp.login(self.user, self.password)
            smtp.send_message(message)
