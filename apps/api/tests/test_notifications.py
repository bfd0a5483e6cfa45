import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config import settings
from services import notification_queue, notifications
from services.notifications import (
    Notification,
    deliver_notification,
    deliver_notification_job,
    dispatch_notifications,
    match_notification,
    send_email,
    welcome_notification,
    wishlist_update_notification,
)


def _note(to="bob@example.com"):
    return Notification(to=to, subject="Hi", text="plain", html="<p>rich</p>")


def test_match_notification_escapes_names_in_html():
    note = match_notification("<b>Eve</b>", "eve@example.com", "Tom & Jerry")
    assert note.to == "eve@example.com"
    assert "Tom & Jerry" in note.text
    assert "&lt;b&gt;Eve&lt;/b&gt;" in note.html
    assert "Tom &amp; Jerry" in note.html
    assert "<b>Eve</b>" not in note.html


def test_wishlist_notification_defaults_missing_title():
    with patch.object(settings, "CLIENT_URL", "https://santa.example.com/"):
        note = wishlist_update_notification("bob@example.com", "Bob", "Alice", None)
    assert note.subject == "New Wishlist Item from Alice! 🎁"
    assert "New Item" in note.text
    assert "https://santa.example.com/match" in note.text


def test_welcome_notification_omits_password_line_when_absent():
    assert "temporary password" not in welcome_notification("a@example.com", "Al").text
    assert "Sun1#Sea#Sky" in welcome_notification("a@example.com", "Al", "Sun1#Sea#Sky").text


def test_send_email_is_skipped_without_credentials():
    with (
        patch.object(settings, "EMAIL_USER", ""),
        patch.object(settings, "EMAIL_PASS", ""),
        patch("services.notifications.smtplib.SMTP") as smtp,
    ):
        assert send_email(_note()) is False
    smtp.assert_not_called()


def test_send_email_uses_starttls_and_login():
    with (
        patch.object(settings, "EMAIL_USER", "santa@example.com"),
        patch.object(settings, "EMAIL_PASS", "app-password"),
        patch.object(settings, "SMTP_USE_TLS", True),
        patch("services.notifications.smtplib.SMTP") as smtp,
    ):
        assert send_email(_note()) is True

    server = smtp.return_value.__enter__.return_value
    server.starttls.assert_called_once()
    server.login.assert_called_once_with("santa@example.com", "app-password")
    [call] = server.send_message.call_args_list
    message = call.args[0]
    assert message["To"] == "bob@example.com"
    assert message["Subject"] == "Hi"


@pytest.mark.asyncio
async def test_deliver_notification_swallows_send_errors():
    with patch("services.notifications.send_email", side_effect=RuntimeError("smtp down")):
        assert await deliver_notification(_note()) is False


@pytest.mark.asyncio
async def test_deliver_notification_times_out():
    def slow_send(_):
        time.sleep(0.5)
        return True

    with (
        patch.object(settings, "NOTIFIER_TIMEOUT_SECONDS", 0.05),
        patch("services.notifications.send_email", side_effect=slow_send),
    ):
        assert await deliver_notification(_note()) is False


def test_deliver_notification_job_rebuilds_payload():
    with patch("services.notifications.send_email", return_value=True) as send:
        assert deliver_notification_job(_note().to_dict()) is True
    assert send.call_args.args[0] == _note()


def test_deliver_notification_job_logs_failures():
    with patch("services.notifications.send_email", side_effect=OSError("refused")):
        assert deliver_notification_job(_note().to_dict()) is False


@pytest.mark.asyncio
async def test_dispatch_inline_skips_blank_recipients():
    deliver = AsyncMock(return_value=True)
    with (
        patch.object(settings, "NOTIFICATION_BACKEND", "inline"),
        patch.object(notifications, "deliver_notification", deliver),
    ):
        delivered = await dispatch_notifications([_note(), _note(to=""), _note("carol@example.com")])
    assert delivered == 2
    assert [c.args[0].to for c in deliver.await_args_list] == ["bob@example.com", "carol@example.com"]


@pytest.mark.asyncio
async def test_dispatch_rq_enqueues_each_notification():
    enqueue = MagicMock(side_effect=[MagicMock(), ConnectionError("redis down")])
    with (
        patch.object(settings, "NOTIFICATION_BACKEND", "rq"),
        patch.object(notification_queue, "enqueue_notification", enqueue),
    ):
        accepted = await dispatch_notifications([_note(), _note("carol@example.com")])
    assert accepted == 1
    assert enqueue.call_count == 2


def test_enqueue_notification_targets_delivery_job():
    queue = MagicMock()
    with patch.object(notification_queue, "get_notification_queue", return_value=queue):
        notification_queue.enqueue_notification(_note())
    args, kwargs = queue.enqueue.call_args
    assert args == ("services.notifications.deliver_notification_job", _note().to_dict())
    assert kwargs["result_ttl"] == 86400
    assert "retry" not in kwargs
