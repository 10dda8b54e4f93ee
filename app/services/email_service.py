import asyncio
import logging
import threading
from email.message import EmailMessage
from typing import Iterable
import aiosmtplib

from app.core import config
from app.core.config import CODE_TTL_MINUTES

logger = logging.getLogger(__name__)


async def send_email_html(subject: str, recipients: Iterable[str], html_body: str, plain_fallback: str | None = None) -> None:
    """
    Send an HTML email over SMTP.

    - STARTTLS on port 587, direct TLS on port 465.
    - Needs MAIL_USERNAME and MAIL_PASSWORD; MAIL_FROM, MAIL_PORT and MAIL_SERVER are optional.
    """
    if not config.MAIL_USERNAME or not config.MAIL_PASSWORD:
        raise RuntimeError("MAIL_USERNAME/MAIL_PASSWORD are not configured")

    recipients = list(recipients)
    if not recipients:
        raise ValueError("recipients must not be empty")

    msg = EmailMessage()
    msg["Subject"] = subject
    msg["From"] = config.MAIL_FROM or config.MAIL_USERNAME
    msg["To"] = ", ".join(recipients)
    msg.set_content(plain_fallback or "This message contains HTML content. Enable HTML in your mail client to read it.")
    msg.add_alternative(html_body, subtype="html")

    use_tls_direct = config.MAIL_PORT == 465

    await aiosmtplib.send(
        msg,
        hostname=config.MAIL_SERVER,
        port=config.MAIL_PORT,
        username=config.MAIL_USERNAME,
        password=config.MAIL_PASSWORD,
        use_tls=use_tls_direct,
        start_tls=not use_tls_direct,
    )


async def send_code_email(email: str, code: str) -> bool:
    """Deliver a one-time code. Returns False instead of raising so the caller can answer 500."""
    html_body = (
        "<div style='font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;'>"
        "<h2>Your premium access code</h2>"
        "<p>Your code is:</p>"
        "<div style='background-color: #f4f4f4; padding: 20px; text-align: center; "
        "font-size: 32px; font-weight: bold; letter-spacing: 5px; margin: 20px 0;'>"
        f"{code}"
        "</div>"
        f"<p>This code expires in {CODE_TTL_MINUTES} minutes.</p>"
        "<p>If you didn't request this code, please ignore this email.</p>"
        "</div>"
    )
    try:
        await send_email_html(
            "Your login code",
            [email],
            html_body,
            plain_fallback=f"Your code is {code}. It expires in {CODE_TTL_MINUTES} minutes.",
        )
    except Exception as e:
        logger.error(f"Failed to send code email to {email}: {e}")
        return False
    logger.info(f"Code email sent to: {email}")
    return True


async def send_purchase_confirmation_email(email: str) -> None:
    """Fire-and-forget: a failure is logged and never reaches the entitlement grant."""
    html_body = (
        "<div style='font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;'>"
        "<h2>Thank you for your purchase!</h2>"
        "<p>Your premium access is now active.</p>"
        "<p>To log in, use your email and request a login code.</p>"
        "</div>"
    )
    try:
        await send_email_html("Your premium access is active", [email], html_body)
    except Exception as e:
        logger.error(f"Failed to send purchase confirmation to {email}: {e}")
        return
    logger.info(f"Purchase confirmation sent to: {email}")


def notify_purchase_in_background(email: str) -> None:
    """Send the purchase confirmation from a daemon thread, for callers without an event loop."""
    thread = threading.Thread(
        target=asyncio.run,
        args=(send_purchase_confirmation_email(email),),
        daemon=True,
    )
    thread.start()
