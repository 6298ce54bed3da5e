"""
Outbound email.

``Mailer`` is the capability the identity service depends on. Production
uses Brevo's transactional API; ``console`` just logs, which is handy for
local development. Both raise ``MailerError`` when delivery fails so the
caller can compensate.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache
from html import escape
from typing import Protocol

import sib_api_v3_sdk
import urllib3
from sib_api_v3_sdk.rest import ApiException
from starlette.concurrency import run_in_threadpool

from taskdesk.core.config import settings

logger = logging.getLogger(__name__)


class MailerError(Exception):
    """Email could not be handed to the transport."""


@dataclass(frozen=True)
class EmailMessage:
    to: str
    subject: str
    html: str
    to_name: str | None = None


class Mailer(Protocol):
    async def send(self, message: EmailMessage) -> None: ...


class ConsoleMailer:
    async def send(self, message: EmailMessage) -> None:
        logger.info("EMAIL to=%s subject=%r (console backend, not delivered)", message.to, message.subject)


class BrevoMailer:
    def __init__(self, api_key: str, sender_email: str, sender_name: str) -> None:
        configuration = sib_api_v3_sdk.Configuration()
        configuration.api_key["api-key"] = api_key
        self._api = sib_api_v3_sdk.TransactionalEmailsApi(sib_api_v3_sdk.ApiClient(configuration))
        self._sender = {"name": sender_name, "email": sender_email}

    async def send(self, message: EmailMessage) -> None:
        recipient = {"email": message.to}
        if message.to_name:
            recipient["name"] = message.to_name
        payload = sib_api_v3_sdk.SendSmtpEmail(
            to=[recipient],
            sender=self._sender,
            subject=message.subject,
            html_content=message.html,
        )
        try:
            # the SDK is blocking
            response = await run_in_threadpool(self._api.send_transac_email, payload)
        except (ApiException, urllib3.exceptions.HTTPError) as exc:
            logger.error("Brevo rejected email to %s: %s", message.to, exc)
            raise MailerError(str(exc)) from exc
        logger.info("Email sent to %s (%s)", message.to, getattr(response, "message_id", "-"))


@lru_cache
def get_mailer() -> Mailer:
    """FastAPI dependency: the process-wide mail transport."""
    if settings.EMAIL_BACKEND == "brevo":
        if not settings.BREVO_API_KEY:
            raise RuntimeError("EMAIL_BACKEND=brevo requires BREVO_API_KEY")
        return BrevoMailer(settings.BREVO_API_KEY, settings.EMAIL_FROM, settings.EMAIL_FROM_NAME)
    return ConsoleMailer()


# ── Templates ───────────────────────────────────────────────────────
def otp_email(to: str, first_name: str, otp: str, minutes: int) -> EmailMessage:
    html = f"""
    <h1>Task Management System</h1>
    <p>Hello {escape(first_name)},</p>
    <p>Your OTP for account verification is:</p>
    <h2>{otp}</h2>
    <p>This OTP will expire in {minutes} minutes.</p>
    <p>If you did not request this OTP, please ignore this email.</p>
    <p>Regards,<br>{escape(settings.EMAIL_FROM_NAME)}</p>
    """
    return EmailMessage(to=to, to_name=first_name, subject="Account Verification OTP", html=html)


def reset_email(to: str, reset_url: str) -> EmailMessage:
    url = escape(reset_url, quote=True)
    html = f"""
    <h1>Password Reset Request</h1>
    <p>You are receiving this email because you (or someone else) has requested the reset of a password.</p>
    <p>Please click on the following link to reset your password:</p>
    <a href="{url}" target="_blank">Reset Password</a>
    <p>If you did not request this, please ignore this email and your password will remain unchanged.</p>
    """
    return EmailMessage(to=to, subject="Password Reset Request", html=html)
