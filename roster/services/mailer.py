"""
Outbound mail transport.

The auth service only needs "send a plain-text email to an address"; anything
implementing the Mailer protocol can be injected (tests use a recording fake).

SmtpMailer talks to an SMTP relay with the standard library's smtplib. The
blocking conversation runs in the threadpool so it never stalls the event
loop, and any transport failure is re-raised as MailDeliveryError so the
caller reports it instead of claiming success.
"""

import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Protocol

from starlette.concurrency import run_in_threadpool

from roster.config import Settings
from roster.exceptions import MailDeliveryError

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    async def send(self, to: str, subject: str, body: str) -> None:
        """Deliver a plain-text message or raise MailDeliveryError."""
        ...


class SmtpMailer:
    """Mailer backed by an SMTP relay (STARTTLS + login when configured)."""

    def __init__(
        self,
        host: str,
        port: int,
        sender: str,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = True,
        timeout: float = 10.0,
    ):
        self.host = host
        self.port = port
        self.sender = sender
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmtpMailer":
        return cls(
            host=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            sender=settings.MAIL_FROM,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            starttls=settings.SMTP_STARTTLS,
            timeout=settings.SMTP_TIMEOUT_SECONDS,
        )

    def build_message(self, to: str, subject: str, body: str) -> EmailMessage:
        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = self.sender
        msg["To"] = to
        msg.set_content(body)
        return msg

    def _deliver(self, msg: EmailMessage) -> None:
        with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as server:
            if self.starttls:
                server.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                server.login(self.username, self.password)
            server.send_message(msg)

    async def send(self, to: str, subject: str, body: str) -> None:
        msg = self.build_message(to, subject, body)
        try:
            await run_in_threadpool(self._deliver, msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("SMTP delivery to %s failed: %s", to, e)
            raise MailDeliveryError() from e
        logger.info("Sent '%s' email to %s", subject, to)
