"""Outbound email notifications.

Notifications are best-effort: they run after the triggering transaction has
committed, each delivery is bounded by NOTIFIER_TIMEOUT_SECONDS, and failures
are logged and dropped (no retry).
"""

from __future__ import annotations

import asyncio
import html
import logging
import smtplib
import ssl
from dataclasses import asdict, dataclass
from email.message import EmailMessage
from email.utils import formataddr
from typing import Iterable, List, Optional

from config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    to: str
    subject: str
    text: str
    html: str

    def to_dict(self) -> dict:
        return asdict(self)


def _wrap(body: str) -> str:
    return (
        '<div style="font-family: Arial, sans-serif; color: #333; max-width: 600px; margin: 0 auto;">'
        f"{body}</div>"
    )


def match_notification(giver_name: str, giver_email: str, recipient_name: str) -> Notification:
    """Tell a giver whom they are buying for."""
    link = settings.CLIENT_URL
    return Notification(
        to=giver_email,
        subject="Your Secret Santa Match is Here! 🎁",
        text=(
            f"Ho Ho Ho, {giver_name}!\n\n"
            f"You are the Secret Santa for: {recipient_name}\n\n"
            f"Visit {link} to see their wishlist and get gift ideas."
        ),
        html=_wrap(
            f'<h1 style="color: #c41e3a;">Ho Ho Ho, {html.escape(giver_name)}! 🎅</h1>'
            "<p>The elves have done their magic and your Secret Santa match has been chosen.</p>"
            f"<p>You are the Secret Santa for: <strong>{html.escape(recipient_name)}</strong>! 🎄</p>"
            f'<p>Visit the <a href="{html.escape(link)}">Secret Santa App</a> to see their wishlist.</p>'
        ),
    )


def wishlist_update_notification(
    santa_email: str,
    santa_name: str,
    giftee_name: str,
    item_title: Optional[str],
) -> Notification:
    """Tell a Santa that their recipient added a wishlist item."""
    title = item_title or "New Item"
    link = f"{settings.CLIENT_URL.rstrip('/')}/match"
    return Notification(
        to=santa_email,
        subject=f"New Wishlist Item from {giftee_name}! 🎁",
        text=(
            f"Hello {santa_name}!\n\n"
            f"{giftee_name} just added a new item to their wishlist: {title}\n\n"
            f"Check it out at {link}"
        ),
        html=_wrap(
            f'<h2 style="color: #1a472a;">Hello {html.escape(santa_name)}! 🦌</h2>'
            f"<p><strong>{html.escape(giftee_name)}</strong> just added a new item to their wishlist:</p>"
            f'<p style="font-weight: bold; color: #c41e3a;">{html.escape(title)}</p>'
            f'<p>Check it out on their <a href="{html.escape(link)}">Wishlist</a>.</p>'
        ),
    )


def welcome_notification(email: str, name: str, password: Optional[str] = None) -> Notification:
    link = settings.CLIENT_URL
    password_text = f"Your temporary password is: {password}\n\n" if password else ""
    password_html = (
        f"<p>Your temporary password is: <strong>{html.escape(password)}</strong></p>" if password else ""
    )
    return Notification(
        to=email,
        subject="Welcome to Secret Santa! 🎄",
        text=(
            f"Welcome, {name}!\n\n"
            "You have been invited to the Secret Santa Gift Exchange.\n\n"
            f"{password_text}"
            f"Log in at {link} to create your wishlist."
        ),
        html=_wrap(
            f'<h1 style="color: #1a472a;">Welcome, {html.escape(name)}! 🦌</h1>'
            "<p>You have been invited to the Secret Santa Gift Exchange.</p>"
            f"{password_html}"
            f'<p>Log in at <a href="{html.escape(link)}">Secret Santa App</a> to create your wishlist.</p>'
        ),
    )


def _build_message(notification: Notification) -> EmailMessage:
    message = EmailMessage()
    message["Subject"] = notification.subject
    message["From"] = formataddr((settings.EMAIL_FROM_NAME, settings.EMAIL_USER))
    message["To"] = notification.to
    message.set_content(notification.text)
    message.add_alternative(notification.html, subtype="html")
    return message


def send_email(notification: Notification) -> bool:
    """Deliver over SMTP. Returns False when email is not configured."""
    if not settings.email_configured:
        logger.warning("Email credentials not set. Skipping email to %s", notification.to)
        return False

    message = _build_message(notification)
    timeout = float(settings.NOTIFIER_TIMEOUT_SECONDS)
    with smtplib.SMTP(settings.SMTP_HOST, int(settings.SMTP_PORT), timeout=timeout) as server:
        server.ehlo()
        if settings.SMTP_USE_TLS:
            server.starttls(context=ssl.create_default_context())
            server.ehlo()
        server.login(settings.EMAIL_USER, settings.EMAIL_PASS)
        server.send_message(message)
    logger.info("Email sent to %s (%s)", notification.to, notification.subject)
    return True


async def deliver_notification(notification: Notification) -> bool:
    """Send one notification off the event loop; never raises."""
    try:
        # wait_for only stops awaiting; the SMTP socket timeout is what ends the thread.
        return await asyncio.wait_for(
            asyncio.to_thread(send_email, notification),
            timeout=float(settings.NOTIFIER_TIMEOUT_SECONDS),
        )
    except asyncio.TimeoutError:
        logger.error("Timed out sending email to %s", notification.to)
    except Exception:
        logger.exception("Failed to send email to %s", notification.to)
    return False


def deliver_notification_job(payload: dict) -> bool:
    """RQ entrypoint: deliver a queued notification once, logging failures."""
    notification = Notification(**payload)
    try:
        return send_email(notification)
    except Exception:
        logger.exception("Failed to send queued email to %s", notification.to)
        return False


async def dispatch_notifications(notifications: Iterable[Notification]) -> int:
    """Hand notifications to the configured backend; returns how many were accepted."""
    pending: List[Notification] = [n for n in notifications if n.to]
    if not pending:
        return 0

    backend = (settings.NOTIFICATION_BACKEND or "inline").strip().lower()
    if backend == "rq":
        from services.notification_queue import enqueue_notification

        accepted = 0
        for notification in pending:
            try:
                await asyncio.to_thread(enqueue_notification, notification)
                accepted += 1
            except Exception:
                logger.exception("Failed to enqueue email to %s", notification.to)
        return accepted

    delivered = 0
    for notification in pending:
        if await deliver_notification(notification):
            delivered += 1
    logger.info("Delivered %s of %s notifications", delivered, len(pending))
    return delivered
