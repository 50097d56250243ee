from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Literal, Optional

from shortener.config import settings

LOGGER = logging.getLogger(__name__)
CONSOLE_LOGGER = logging.getLogger("shortener.otp")

# Informational only; the stored expires_at is the real deadline.
STATED_EXPIRY_MINUTES = 10


@dataclass(frozen=True)
class DeliveryResult:
    mode: Literal["email", "console"]


def send_otp(email: str, code: str, purpose: str) -> DeliveryResult:
    """Deliver ``code`` to ``email``, falling back to the log.

    Never raises: missing credentials or any transport error degrade to
    ``console`` mode, where the code is written to the ``shortener.otp``
    logger so the flow keeps working without mail.
    """
    if not settings.email_configured:
        _log_to_console(email, code, purpose, reason="email not configured")
        return DeliveryResult(mode="console")

    transport = _build_transport()
    if transport is None:
        _log_to_console(email, code, purpose)
        return DeliveryResult(mode="console")

    try:
        message = _build_message(settings.email_user, email, purpose, code)
        with transport as server:
            server.login(settings.email_user, settings.email_pass)
            server.send_message(message)
    except Exception:
        LOGGER.exception("Failed to send OTP email, falling back to console")
        _log_to_console(email, code, purpose)
        return DeliveryResult(mode="console")
    LOGGER.info("OTP email sent to=%s purpose=%s", email, purpose)
    return DeliveryResult(mode="email")


def build_subject(purpose: str) -> str:
    if purpose == "reset":
        return "Your Deadman-Link password reset code"
    return "Your Deadman-Link verification code"


def build_body(code: str) -> str:
    return f"Your code is {code}. It expires in {STATED_EXPIRY_MINUTES} minutes."


def _build_message(sender: str, recipient: str, purpose: str, code: str) -> EmailMessage:
    message = EmailMessage()
    message["From"] = sender
    message["To"] = recipient
    message["Subject"] = build_subject(purpose)
    message.set_content(build_body(code))
    return message


def _build_transport() -> Optional[smtplib.SMTP_SSL]:
    try:
        return smtplib.SMTP_SSL(
            settings.email_host,
            settings.email_port,
            timeout=settings.email_timeout_seconds,
        )
    except Exception:
        LOGGER.exception(
            "Could not open SMTP transport host=%s port=%s",
            settings.email_host,
            settings.email_port,
        )
        return None


def _log_to_console(email: str, code: str, purpose: str, reason: str = "") -> None:
    suffix = f" ({reason})" if reason else ""
    CONSOLE_LOGGER.warning("[OTP] %s for %s: %s%s", purpose, email, code, suffix)
