from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from typing import Optional, Protocol

import httpx
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Email, Mail

from .config import DEFAULT_MAIL_TIMEOUT, Settings
from .errors import TransportError
from .models import MailMessage

logger = logging.getLogger(__name__)


class MailSender(Protocol):
    provider: str

    def send(self, message: MailMessage) -> None: ...


class SMTPMailer:
    provider = "smtp"

    def __init__(
        self,
        host: str,
        port: int,
        username: str | None = None,
        password: str | None = None,
        *,
        starttls: bool = False,
        timeout: float = DEFAULT_MAIL_TIMEOUT,
    ) -> None:
        self.host = host
        self.port = port
        self.username = username
        self.password = password
        self.starttls = starttls
        self.timeout = timeout

    def send(self, message: MailMessage) -> None:
        msg = EmailMessage()
        msg["From"] = message.from_address
        msg["To"] = ", ".join(message.to)
        msg["Subject"] = message.subject
        msg.set_content(message.text)

        try:
            with smtplib.SMTP(self.host, self.port, timeout=self.timeout) as smtp:
                if self.starttls:
                    smtp.starttls()
                if self.username and self.password:
                    smtp.login(self.username, self.password)
                smtp.send_message(msg, from_addr=message.from_address, to_addrs=list(message.to))
        except (smtplib.SMTPException, OSError) as exc:
            raise TransportError(f"Failed to send email via {self.host}:{self.port}: {exc}") from exc
        logger.info("Mail sent via smtp to %s recipient(s)", len(message.to))


class BrevoMailer:
    provider = "brevo"

    def __init__(self, api_key: str, *, client: Optional[httpx.Client] = None, timeout: float = 20.0):
        self._api_key = api_key
        self._client = client
        self._timeout = timeout

    def send(self, message: MailMessage) -> None:
        payload = {
            "sender": {"email": message.from_address},
            "to": [{"email": address} for address in message.to],
            "subject": message.subject,
            "textContent": message.text,
        }
        headers = {"api-key": self._api_key, "content-type": "application/json"}
        try:
            if self._client is not None:
                response = self._client.post("https://api.brevo.com/v3/smtp/email", json=payload, headers=headers)
            else:
                with httpx.Client(timeout=self._timeout) as client:
                    response = client.post("https://api.brevo.com/v3/smtp/email", json=payload, headers=headers)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise TransportError(f"Failed to send email: {exc}") from exc
        logger.info("Mail sent with status %s", response.status_code)


class SendGridMailer:
    provider = "sendgrid"

    def __init__(self, api_key: str):
        self._client = SendGridAPIClient(api_key)

    def send(self, message: MailMessage) -> None:
        mail = Mail(
            from_email=Email(email=message.from_address),
            to_emails=list(message.to),
            subject=message.subject,
            plain_text_content=message.text,
        )
        try:
            response = self._client.send(mail)
        except Exception as exc:  # noqa: BLE001
            raise TransportError(f"Failed to send email: {exc}") from exc
        if response.status_code >= 400:
            raise TransportError(f"SendGrid returned error status: {response.status_code}")
        logger.info("Mail sent with status %s", response.status_code)


def build_mailer(settings: Settings) -> SMTPMailer:
    return SMTPMailer(
        settings.mail_host,
        settings.mail_port,
        settings.mail_username,
        settings.mail_password,
        starttls=settings.mail_starttls,
        timeout=settings.mail_timeout,
    )
