"""
Outgoing email for game applications.

A template renders to a ``RenderedEmail``; a transport delivers it. The
``smtp`` transport uses aiosmtplib, ``log`` only records and logs the
message (development and tests). The transport is picked by
``DEVWARS_EMAIL_TRANSPORT``.
"""

from __future__ import annotations

import ssl
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from email.message import EmailMessage

import aiosmtplib
import structlog

from devwars.config import Settings, get_settings
from devwars.email.templates import game_application, game_application_resign

logger = structlog.get_logger()

TemplateFunc = Callable[[str, str, str, str], tuple[str, str, str]]

TEMPLATES: dict[str, TemplateFunc] = {
    "game_application": game_application,
    "game_application_resign": game_application_resign,
}


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


def render(template_name: str, context: dict[str, str]) -> RenderedEmail:
    """Render a registered template. Missing context keys render as blanks.

    Raises:
        ValueError: If the template name is unknown.
    """
    template = TEMPLATES.get(template_name)
    if template is None:
        msg = f"Unknown template: {template_name}"
        raise ValueError(msg)

    games_url = f"{get_settings().frontend_base_url.rstrip('/')}/games"
    subject, html, text = template(
        context.get("username", ""),
        context.get("game_time", ""),
        context.get("game_mode", "specified"),
        games_url,
    )
    return RenderedEmail(subject=subject, html=html, text=text)


class EmailTransport(ABC):
    @abstractmethod
    async def deliver(self, to: str, email: RenderedEmail) -> bool:
        """Hand the message over. Returns False when it was not accepted."""


class SMTPTransport(EmailTransport):
    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def build_message(self, to: str, email: RenderedEmail) -> EmailMessage:
        message = EmailMessage()
        message["From"] = f"{self.settings.email_from_name} <{self.settings.email_from_address}>"
        message["To"] = to
        message["Subject"] = email.subject
        message.set_content(email.text)
        message.add_alternative(email.html, subtype="html")
        return message

    async def deliver(self, to: str, email: RenderedEmail) -> bool:
        s = self.settings
        try:
            await aiosmtplib.send(
                self.build_message(to, email),
                hostname=s.smtp_host,
                port=s.smtp_port,
                username=s.smtp_username or None,
                password=s.smtp_password or None,
                start_tls=s.smtp_use_tls,
                tls_context=ssl.create_default_context() if s.smtp_use_tls else None,
            )
        except (aiosmtplib.SMTPException, OSError):
            logger.exception("email_send_failed", to=to, transport="smtp")
            return False
        logger.info("email_sent", to=to, subject=email.subject, transport="smtp")
        return True


class LogTransport(EmailTransport):
    """Keeps every message in ``sent`` instead of sending it."""

    def __init__(self) -> None:
        self.sent: list[dict[str, str]] = []

    async def deliver(self, to: str, email: RenderedEmail) -> bool:
        self.sent.append({"to": to, "subject": email.subject, "text": email.text})
        logger.info("email_logged", to=to, subject=email.subject, transport="log")
        return True


def transport_from_settings(settings: Settings) -> EmailTransport:
    if settings.email_transport == "smtp":
        return SMTPTransport(settings)
    return LogTransport()


class EmailService:
    def __init__(self, transport: EmailTransport | None = None) -> None:
        self.transport = transport or transport_from_settings(get_settings())

    async def send_template(self, to: str, template_name: str, context: dict[str, str]) -> bool:
        """Render ``template_name`` with ``context`` (username, game_time, game_mode) and send it."""
        return await self.transport.deliver(to, render(template_name, context))


_email_service: EmailService | None = None


def get_email_service() -> EmailService:
    global _email_service  # noqa: PLW0603
    if _email_service is None:
        _email_service = EmailService()
    return _email_service


def set_email_service(service: EmailService | None) -> None:
    """Replace the shared service; None resets it to the configured transport."""
    global _email_service  # noqa: PLW0603
    _email_service = service
