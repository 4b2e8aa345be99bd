"""
Outgoing mail for the token flows (verification links, password resets).

Providers: ``resend`` (default, Resend SDK) and ``smtp`` (stdlib smtplib).
With EMAIL_ENABLED=false nothing is sent and the call only logs, which is
the local-dev default.
"""
from __future__ import annotations

import logging
import smtplib
from dataclasses import dataclass
from email.message import EmailMessage
from html import escape as html_escape
from typing import Callable, Optional

import resend

from jobtrack.core.config import settings

logger = logging.getLogger(__name__)


class EmailNotConfiguredError(RuntimeError):
    pass


class EmailDeliveryError(RuntimeError):
    """Provider is configured but rejected or failed the send."""


@dataclass(frozen=True)
class Outgoing:
    to: str
    subject: str
    body: str


def _sender_address() -> str:
    if not settings.FROM_EMAIL:
        raise EmailNotConfiguredError("FROM_EMAIL is not set")
    return settings.FROM_EMAIL


def _deliver_resend(mail: Outgoing) -> Optional[str]:
    api_key = (settings.RESEND_API_KEY or "").strip()
    if not api_key:
        raise EmailNotConfiguredError("RESEND_API_KEY is not set")

    params = {
        "from": _sender_address(),
        "to": [mail.to],
        "subject": mail.subject,
        "text": mail.body,
        "html": f"<pre>{html_escape(mail.body)}</pre>",
    }
    resend.api_key = api_key
    try:
        res = resend.Emails.send(params)  # type: ignore[arg-type]
    except Exception as e:  # noqa: BLE001
        logger.exception("Resend email failed: to=%s", mail.to)
        raise EmailDeliveryError(f"Resend send failed: {e}") from e

    if isinstance(res, dict) and res.get("error"):
        raise EmailDeliveryError(f"Resend API error: {res['error']}")
    msg_id = res.get("id") if isinstance(res, dict) else None
    logger.info("Resend email sent: to=%s msg_id=%s", mail.to, msg_id)
    return msg_id


def _deliver_smtp(mail: Outgoing) -> Optional[str]:
    if not settings.SMTP_HOST:
        raise EmailNotConfiguredError("SMTP_HOST is not set")

    msg = EmailMessage()
    msg["From"] = _sender_address()
    msg["To"] = mail.to
    msg["Subject"] = mail.subject
    msg.set_content(mail.body)

    smtp_cls = smtplib.SMTP_SSL if settings.SMTP_USE_SSL else smtplib.SMTP
    try:
        with smtp_cls(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as server:
            if settings.SMTP_USE_TLS and not settings.SMTP_USE_SSL:
                server.starttls()
            if settings.SMTP_USERNAME:
                server.login(settings.SMTP_USERNAME, settings.SMTP_PASSWORD)
            server.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("SMTP email failed: to=%s host=%s", mail.to, settings.SMTP_HOST)
        raise EmailDeliveryError("SMTP email failed") from e

    logger.info("SMTP email sent: to=%s", mail.to)
    return None


PROVIDERS: dict[str, Callable[[Outgoing], Optional[str]]] = {
    "resend": _deliver_resend,
    "smtp": _deliver_smtp,
}


def _provider(name: str | None) -> Callable[[Outgoing], Optional[str]]:
    key = (name or "").strip().lower() or "resend"
    try:
        return PROVIDERS[key]
    except KeyError:
        raise EmailNotConfiguredError(
            f"Unsupported EMAIL_PROVIDER={key!r}. Supported: {', '.join(sorted(PROVIDERS))}."
        )


def send_email(to_email: str, subject: str, body: str) -> Optional[str]:
    """Returns the provider message id when there is one."""
    if not settings.EMAIL_ENABLED:
        logger.info("Email disabled; skipping delivery: to=%s subject=%s", to_email, subject)
        return None
    deliver = _provider(settings.EMAIL_PROVIDER)
    return deliver(Outgoing(to=to_email, subject=subject, body=body))


VERIFY_TEMPLATE = """\
Welcome to Job Application Tracker!

Confirm your email address to finish setting up your account:
{link}

The link expires in {hours} hours. If you did not sign up, ignore this email.
"""

RESET_TEMPLATE = """\
Someone asked to reset the password for your Job Application Tracker account.

This link works once and expires in {minutes} minutes:
{link}

If it wasn't you, ignore this email; your password stays the same.
"""


def send_verification_email(to_email: str, token: str) -> Optional[str]:
    body = VERIFY_TEMPLATE.format(
        link=f"{settings.FRONTEND_BASE_URL}/verify?token={token}",
        hours=settings.EMAIL_VERIFY_TOKEN_EXPIRE_HOURS,
    )
    return send_email(to_email, "Verify your email", body)


def send_password_reset_email(to_email: str, token: str) -> Optional[str]:
    body = RESET_TEMPLATE.format(
        link=f"{settings.FRONTEND_BASE_URL}/reset-password?token={token}",
        minutes=settings.PASSWORD_RESET_TOKEN_EXPIRE_MINUTES,
    )
    return send_email(to_email, "Reset your password", body)
