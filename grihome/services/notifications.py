"""
Email and SMS delivery for OTP codes and listing notifications.

Backends are picked by settings.email_backend / settings.sms_backend. The console
backend only logs, which keeps development and tests free of outside services.
"""

import asyncio
import logging
import smtplib
import ssl
from email.message import EmailMessage

import httpx

from grihome.config import settings

logger = logging.getLogger(__name__)

BREVO_URL = "https://api.brevo.com/v3/smtp/email"


class EmailSendError(RuntimeError):
    pass


def _is_configuration_error(err: EmailSendError) -> bool:
    """True when delivery failed because no provider is configured, not because it refused."""
    msg = (str(err) or "").lower()
    return "not configured" in msg


async def _send_via_brevo(*, to_email: str, subject: str, text: str) -> None:
    if not settings.brevo_api_key:
        raise EmailSendError("BREVO_API_KEY not configured")
    sender_email = (settings.brevo_from_email or settings.smtp_from_email or "").strip()
    if not sender_email:
        raise EmailSendError("BREVO_FROM_EMAIL not configured")

    payload = {
        "sender": {"email": sender_email, "name": settings.brevo_sender_name},
        "to": [{"email": to_email}],
        "subject": subject,
        "textContent": text,
    }
    async with httpx.AsyncClient(timeout=15) as client:
        resp = await client.post(
            BREVO_URL,
            headers={"api-key": settings.brevo_api_key, "Accept": "application/json"},
            json=payload,
        )
    if not resp.is_success:
        raise EmailSendError(f"Brevo send failed: HTTP {resp.status_code}: {resp.text[:500]}")


def _send_via_smtp(*, to_email: str, subject: str, text: str) -> None:
    host = settings.smtp_host
    port = int(settings.smtp_port)
    sender = settings.smtp_from_email or settings.smtp_user
    if not host:
        raise EmailSendError("SMTP_HOST not configured")
    if not sender:
        raise EmailSendError("SMTP_FROM_EMAIL not configured")

    msg = EmailMessage()
    msg["From"] = sender
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(text)

    if port == 465:
        with smtplib.SMTP_SSL(host, port, timeout=15, context=ssl.create_default_context()) as s:
            if settings.smtp_user and settings.smtp_password:
                s.login(settings.smtp_user, settings.smtp_password)
            s.send_message(msg)
        return

    with smtplib.SMTP(host, port, timeout=15) as s:
        s.ehlo()
        if s.has_extn("starttls"):
            s.starttls(context=ssl.create_default_context())
            s.ehlo()
        if settings.smtp_user and settings.smtp_password:
            s.login(settings.smtp_user, settings.smtp_password)
        s.send_message(msg)


async def send_email(*, to_email: str, subject: str, text: str) -> str:
    """
    Deliver one plain-text email. Returns the backend that handled it.

    Raises:
        EmailSendError: Invalid recipient or provider failure
    """
    to_email = (to_email or "").strip()
    if not to_email or "@" not in to_email:
        raise EmailSendError("Invalid recipient email")

    backend = settings.email_backend.strip().lower()
    if backend in ("console", "log"):
        logger.warning(f"EMAIL_BACKEND=console: to={to_email} subject={subject}\n{text}")
        return "console"

    if backend == "brevo" or (backend == "auto" and settings.brevo_api_key):
        await _send_via_brevo(to_email=to_email, subject=subject, text=text)
        return "brevo"

    if backend == "smtp" or (backend == "auto" and settings.smtp_host):
        await asyncio.to_thread(_send_via_smtp, to_email=to_email, subject=subject, text=text)
        return "smtp"

    if not settings.is_production:
        logger.warning(
            f"No email provider configured; logging instead. to={to_email} subject={subject}\n{text}"
        )
        return "console"

    raise EmailSendError("Email provider not configured")


async def send_sms(*, to_phone: str, text: str) -> str:
    """
    Best-effort SMS. No paid provider ships by default; the console backend logs the message.
    """
    to_phone = (to_phone or "").strip()
    text = (text or "").strip()
    if not to_phone or not text:
        return "skipped"

    backend = settings.sms_backend.strip().lower()
    if backend in {"disabled", "off", "none"}:
        return "disabled"

    logger.warning(f"SMS_BACKEND={backend}: to={to_phone}\n{text}")
    return "console"


async def send_otp(*, identifier: str, channel: str, otp: str, purpose: str) -> str:
    """
    Send an OTP by email or SMS. Falls back to logging the code when email is not configured.
    """
    mins = settings.otp_expire_minutes
    label = {"login": "Login", "verify": "Verification", "reset": "Password reset"}.get(purpose, "Grihome")
    text = (
        f"Your {label} OTP is: {otp}\n\n"
        f"This code expires in {mins} minutes.\n\n"
        "If you did not request this, you can ignore this message."
    )
    if channel == "mobile":
        return await send_sms(to_phone=identifier, text=text)

    try:
        return await send_email(to_email=identifier, subject=f"{label} OTP", text=text)
    except EmailSendError as e:
        if _is_configuration_error(e) and not settings.is_production:
            logger.warning(f"OTP delivery fallback (email not configured): purpose={purpose} to={identifier} otp={otp}")
            return "console"
        raise


async def notify_quietly(*, to_email: str, subject: str, text: str) -> bool:
    """Notification that must never fail the request that triggered it."""
    try:
        await send_email(to_email=to_email, subject=subject, text=text)
        return True
    except (EmailSendError, httpx.HTTPError, OSError) as e:
        logger.warning(f"Notification to {to_email} not delivered: {e}")
        return False


async def sms_quietly(*, to_phone: str, text: str) -> bool:
    """True when an SMS backend accepted the message."""
    try:
        return await send_sms(to_phone=to_phone, text=text) not in ("skipped", "disabled")
    except (httpx.HTTPError, OSError) as e:
        logger.warning(f"SMS to {to_phone} not delivered: {e}")
        return False


def promotion_reminder_text(*, name: str, what: str, project_name: str, end_date: str, days_remaining: int) -> str:
    plural = "s" if days_remaining > 1 else ""
    return (
        f"Hello {name},\n\n"
        f"Your {what} for {project_name} expires on {end_date} "
        f"({days_remaining} day{plural} from now).\n\n"
        "Renew it before then to stay featured on the project page.\n"
    )
