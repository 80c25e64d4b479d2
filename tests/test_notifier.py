from unittest.mock import MagicMock, patch

import pytest
import requests

from core.errors import NotificationError
from core.notifier import SmtpNotifier, TelegramNotifier, build_notifier


class TestBuildNotifier:

    def test_defaults_to_email(self):
        notifier = build_notifier({"SMTP_USER": "me@example.com"})

        assert isinstance(notifier, SmtpNotifier)
        assert notifier.host == "smtp.gmail.com"
        assert notifier.port == 587
        assert notifier.sender == "me@example.com"

    def test_telegram(self):
        notifier = build_notifier({"NOTIFIER": "telegram", "TELEGRAM_BOT_TOKEN": "t", "TELEGRAM_CHAT_ID": "-100"})

        assert isinstance(notifier, TelegramNotifier)
        assert notifier.chat_id == -100

    def test_telegram_needs_credentials(self):
        with pytest.raises(ValueError):
            build_notifier({"NOTIFIER": "telegram"})

    def test_unknown_kind(self):
        with pytest.raises(ValueError):
            build_notifier({"NOTIFIER": "pager"})


class TestSmtpNotifier:

    @patch("core.notifier.smtplib.SMTP")
    def test_deliver_sends_message(self, mock_smtp):
        smtp = mock_smtp.return_value.__enter__.return_value
        SmtpNotifier("smtp.test", 587, user="u", password="p").deliver("a@example.com", "subj", "body")

        smtp.login.assert_called_once_with("u", "p")
        sent = smtp.send_message.call_args.args[0]
        assert sent["To"] == "a@example.com"
        assert sent["Subject"] == "subj"

    @patch("core.notifier.smtplib.SMTP", side_effect=OSError("refused"))
    def test_connection_failure_raises(self, _):
        with pytest.raises(NotificationError):
            SmtpNotifier("smtp.test", 587).deliver("a@example.com", "subj", "body")


class TestTelegramNotifier:

    def test_deliver_posts_message(self):
        notifier = TelegramNotifier("tok", 42)
        notifier.session = MagicMock()
        notifier.session.post.return_value.json.return_value = {"ok": True}

        notifier.deliver("a@example.com", "subj", "body")

        url = notifier.session.post.call_args.args[0]
        payload = notifier.session.post.call_args.kwargs["json"]
        assert url == "https://api.telegram.org/bottok/sendMessage"
        assert payload["chat_id"] == 42
        assert payload["text"] == "subj\nTo: a@example.com\n\nbody"

    def test_not_ok_raises(self):
        notifier = TelegramNotifier("tok", 42)
        notifier.session = MagicMock()
        notifier.session.post.return_value.json.return_value = {"ok": False, "description": "chat not found"}

        with pytest.raises(NotificationError):
            notifier.deliver("a@example.com", "subj", "body")

    def test_network_error_raises(self):
        notifier = TelegramNotifier("tok", 42)
        notifier.session = MagicMock()
        notifier.session.post.side_effect = requests.ConnectionError("down")

        with pytest.raises(NotificationError):
            notifier.deliver("a@example.com", "subj", "body")

    def test_long_body_truncated(self):
        notifier = TelegramNotifier("tok", 42)
        notifier.session = MagicMock()
        notifier.session.post.return_value.json.return_value = {"ok": True}

        notifier.deliver("a@example.com", "subj", "x" * 10_000)

        assert len(notifier.session.post.call_args.kwargs["json"]["text"]) == 3500
