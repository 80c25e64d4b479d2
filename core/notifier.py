from __future__ import annotations

import os
import smtplib
import ssl
from email.message import EmailMessage
from typing import Mapping, Protocol

import requests

from core.errors import NotificationError

# Telegram rejects messages over 4096 chars
MAX_MSG_CHARS = 3500


class Notifier(Protocol):
    def deliver(self, recipient: str, subject: str, body: str) -> None:
        """Raises NotificationError when the message was not accepted."""


def _truncate(s: str, n: int) -> str:
    return s if len(s) <= n else s[: n - 1] + "…"


class SmtpNotifier:
    def __init__(self, host: str, port: int, user: str = "", password: str = "",
                 sender: str = "", secure: bool = False, timeout: float = 30.0):
        self.host = host
        self.port = int(port)
        self.user = user
        self.password = password
        self.sender = sender or user or "watcher@example.com"
        self.secure = secure
        self.timeout = timeout

    def _connect(self) -> smtplib.SMTP:
        if self.secure:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout, context=ssl.create_default_context())
        smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout)
        smtp.starttls(context=ssl.create_default_context())
        return smtp

    def deliver(self, recipient: str, subject: str, body: str) -> None:
        msg = EmailMessage()
        msg["From"] = self.sender
        msg["To"] = recipient
        msg["Subject"] = subject
        msg.set_content(body)
        try:
            with self._connect() as smtp:
                if self.user:
                    smtp.login(self.user, self.password)
                smtp.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"email to {recipient} failed: {e}") from e


class TelegramNotifier:
    """Posts every grouped message into one chat; the recipient goes in the header."""

    def __init__(self, bot_token: str, chat_id: int):
        self.bot_token = bot_token.strip()
        self.chat_id = int(chat_id)
        self.base = f"https://api.telegram.org/bot{self.bot_token}"
        self.session = requests.Session()

    def deliver(self, recipient: str, subject: str, body: str) -> None:
        text = _truncate(f"{subject}\nTo: {recipient}\n\n{body}", MAX_MSG_CHARS)
        try:
            r = self.session.post(
                f"{self.base}/sendMessage",
                json={
                    "chat_id": self.chat_id,
                    "text": text,
                    "disable_web_page_preview": True,
                },
                timeout=20,
            )
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            raise NotificationError(f"telegram send failed: {e}") from e
        if not data.get("ok"):
            raise NotificationError(f"telegram send failed: {data}")


def build_notifier(environ: Mapping[str, str] = os.environ) -> Notifier:
    kind = (environ.get("NOTIFIER") or "email").strip().lower()
    if kind == "telegram":
        token = (environ.get("TELEGRAM_BOT_TOKEN") or "").strip()
        chat = (environ.get("TELEGRAM_CHAT_ID") or "").strip()
        if not token or not chat:
            raise ValueError("NOTIFIER=telegram needs TELEGRAM_BOT_TOKEN and TELEGRAM_CHAT_ID")
        try:
            return TelegramNotifier(bot_token=token, chat_id=int(chat))
        except ValueError as e:
            raise ValueError("TELEGRAM_CHAT_ID must be an integer.") from e
    if kind != "email":
        raise ValueError(f"unknown NOTIFIER {kind!r} (expected email or telegram)")
    user = environ.get("SMTP_USER", "")
    return SmtpNotifier(
        host=environ.get("SMTP_HOST", "smtp.gmail.com"),
        port=int(environ.get("SMTP_PORT", "587") or "587"),
        user=user,
        password=environ.get("SMTP_PASS", ""),
        sender=environ.get("EMAIL_FROM", "") or user,
        secure=(environ.get("SMTP_SECURE", "false").strip().lower() == "true"),
    )
