"""
Outbound SMS through carrier email-to-SMS gateways.

Supports an in-memory gateway for tests/local runs and an SMTP relay for
production.
"""

from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass, field
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Protocol

logger = logging.getLogger(__name__)

SMTP_TIMEOUT = 30  # seconds

# Address list from textbelt (https://github.com/typpo/textbelt). Only the
# widely used carriers are enabled since each one costs a message of quota.
PROVIDERS = (
    "%s@fido.ca",
    "%s@msg.koodomobile.com",
    "%s@msg.telus.com",
    "%s@myboostmobile.com",
    "%s@pcs.rogers.com",
    "%s@txt.bell.ca",
    "%s@txt.windmobile.ca",
    "%s@vmobile.ca",
)


class SmsGateway(Protocol):
    """Minimal interface: deliver one message to one phone number."""

    def send(self, number: str, message: str) -> bool:
        ...


@dataclass
class InMemorySmsGateway:
    """Records messages instead of sending them. Numbers in `failing_numbers` fail."""

    sent: list[tuple[str, str]] = field(default_factory=list)
    failing_numbers: set[str] = field(default_factory=set)

    def send(self, number: str, message: str) -> bool:
        if number in self.failing_numbers:
            return False
        self.sent.append((number, message))
        return True


@dataclass
class SmtpSmsGateway:
    """Sends each message to every carrier gateway address through an SMTP relay."""

    host: str
    port: int
    sender: str
    username: str = ""
    password: str = ""
    secure: bool = False
    tls_reject_unauthorized: bool = True
    providers: tuple[str, ...] = PROVIDERS

    def _ssl_context(self) -> ssl.SSLContext:
        context = ssl.create_default_context()
        if not self.tls_reject_unauthorized:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
        return context

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(
                self.host, self.port, timeout=SMTP_TIMEOUT, context=self._ssl_context()
            )
        server = smtplib.SMTP(self.host, self.port, timeout=SMTP_TIMEOUT)
        server.ehlo()
        if server.has_extn("starttls"):
            server.starttls(context=self._ssl_context())
            server.ehlo()
        return server

    def _build_message(self, to_addr: str, message: str) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["From"] = f'"Duck Fact" <{self.sender}>'
        msg["To"] = to_addr
        msg.attach(MIMEText(message, "plain", "utf-8"))
        msg.attach(MIMEText(message, "html", "utf-8"))
        return msg

    def send(self, number: str, message: str) -> bool:
        addresses = [provider.replace("%s", number) for provider in self.providers]
        accepted: list[str] = []
        failures: list[tuple[str, Exception]] = []
        try:
            with self._connect() as server:
                if self.username and self.password:
                    server.login(self.username, self.password)
                for to_addr in addresses:
                    msg = self._build_message(to_addr, message)
                    try:
                        server.sendmail(self.sender, [to_addr], msg.as_string())
                    except (smtplib.SMTPException, OSError) as exc:
                        failures.append((to_addr, exc))
                    else:
                        accepted.append(to_addr)
        except (smtplib.SMTPException, OSError) as exc:
            # Closing a broken session can fail after carriers already accepted.
            logger.warning("SMTP session for %s failed: %s", number, exc)
            return bool(accepted)

        success = bool(accepted)
        if not success:
            for to_addr, exc in failures:
                logger.warning("Relay rejected %s: %s", to_addr, exc)
        return success
