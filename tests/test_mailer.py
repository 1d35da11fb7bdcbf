from __future__ import annotations

import dataclasses
import email
import smtplib
import socket
import time

from accounts.core import mailer


class _RecordingSMTP:
    sent: list = []
    last_timeout = None

    def __init__(self, host, port, timeout=None):
        self.host, self.port, self.timeout = host, port, timeout
        _RecordingSMTP.last_timeout = timeout

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def ehlo(self):
        pass

    def starttls(self, context=None):
        pass

    def login(self, user, password):
        pass

    def sendmail(self, sender, recipients, message):
        self.sent.append((sender, recipients, message))


def _bodies(raw: str) -> list[str]:
    parsed = email.message_from_string(raw)
    return [part.get_payload(decode=True).decode() for part in parsed.walk() if not part.is_multipart()]


def _smtp_settings(settings):
    return dataclasses.replace(
        settings,
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="mailer",
        smtp_password="secret",
        smtp_from="no-reply@example.com",
        frontend_url="https://app.example.com",
    )


def test_unconfigured_smtp_reports_not_sent(settings):
    notifier = mailer.SMTPNotifier(settings)

    assert notifier.send_verification("a@x.com", "tok") is False


def test_verification_email_carries_frontend_link(settings, monkeypatch):
    _RecordingSMTP.sent = []
    monkeypatch.setattr(mailer.smtplib, "SMTP", _RecordingSMTP)
    notifier = mailer.SMTPNotifier(_smtp_settings(settings))

    assert notifier.send_verification("a@x.com", "abc123") is True

    sender, recipients, message = _RecordingSMTP.sent[-1]
    assert sender == "no-reply@example.com"
    assert recipients == ["a@x.com"]
    assert _RecordingSMTP.last_timeout == 10
    for body in _bodies(message):
        assert "https://app.example.com/verify-email?token=abc123" in body


def test_smtp_failure_is_logged_not_raised(settings, monkeypatch):
    class _Broken(_RecordingSMTP):
        def login(self, user, password):
            raise smtplib.SMTPAuthenticationError(535, b"bad credentials")

    monkeypatch.setattr(mailer.smtplib, "SMTP", _Broken)
    notifier = mailer.SMTPNotifier(_smtp_settings(settings))

    assert notifier.send_password_reset("a@x.com", "tok") is False


def test_silent_smtp_server_times_out(settings):
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as listener:
        # the kernel completes the handshake; nothing ever sends a greeting
        listener.bind(("127.0.0.1", 0))
        listener.listen(1)
        silent = dataclasses.replace(
            _smtp_settings(settings),
            smtp_host="127.0.0.1",
            smtp_port=listener.getsockname()[1],
            smtp_timeout_seconds=0.5,
        )
        notifier = mailer.SMTPNotifier(silent)

        started = time.monotonic()
        sent = notifier.send_verification("a@x.com", "tok")

    assert sent is False
    assert time.monotonic() - started < 5
