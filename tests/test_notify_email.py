import smtplib
from datetime import datetime, timezone

import pytest
import resend

from app.core.config import settings
from app.models.issue import IssueRecord
from app.services import notify_email
from app.services.notify_email import MailTransport, NotificationError


def _smtp_transport():
    return MailTransport(
        provider="smtp",
        from_address="noreply@citysense.test",
        from_name="CitySense",
        smtp_host="smtp.citysense.test",
        smtp_port=465,
        smtp_username="noreply@citysense.test",
        smtp_password="pw",
    )


def _issue():
    return IssueRecord.model_validate({
        "id": "i1",
        "title": "Leaking <pipe>",
        "description": "Water everywhere on the road",
        "category": "Water Leakage",
        "severity": 4,
        "location": {"lat": 1.5, "lng": 2.5, "address": "Main St"},
        "userId": "u1",
        "timestamp": datetime(2024, 4, 1, 10, 30, tzinfo=timezone.utc),
    })


class FakeSMTP:
    sent = []
    closed = []
    starttls_error = None

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        FakeSMTP.closed.append(self.host)

    def starttls(self):
        if FakeSMTP.starttls_error:
            raise FakeSMTP.starttls_error

    def login(self, user, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


@pytest.fixture(autouse=True)
def reset_fake_smtp():
    FakeSMTP.sent = []
    FakeSMTP.closed = []
    FakeSMTP.starttls_error = None


def test_unconfigured_transport_is_a_noop():
    transport = MailTransport(provider="smtp")
    assert not transport.is_configured
    assert transport.send("a@example.com", "Hi", "<p>Hi</p>") is False


def test_smtp_send(monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
    assert _smtp_transport().send("a@example.com", "Hello", "<p>Hello</p>") is True
    msg = FakeSMTP.sent[0]
    assert msg["To"] == "a@example.com"
    assert msg["From"] == "CitySense <noreply@citysense.test>"


def test_smtp_failure_raises(monkeypatch):
    def refuse(*args, **kwargs):
        raise ConnectionRefusedError("connection refused")

    monkeypatch.setattr(smtplib, "SMTP_SSL", refuse)
    with pytest.raises(NotificationError):
        _smtp_transport().send("a@example.com", "Hello", "<p>Hello</p>")


def test_starttls_failure_closes_connection(monkeypatch):
    FakeSMTP.starttls_error = smtplib.SMTPNotSupportedError("STARTTLS extension not supported")
    monkeypatch.setattr(smtplib, "SMTP", FakeSMTP)
    transport = _smtp_transport()
    transport.smtp_use_ssl = False
    transport.smtp_port = 587

    with pytest.raises(NotificationError):
        transport.send("a@example.com", "Hello", "<p>Hello</p>")
    assert FakeSMTP.closed == ["smtp.citysense.test"]
    assert FakeSMTP.sent == []


def test_resend_send(monkeypatch):
    payloads = []
    monkeypatch.setattr(resend.Emails, "send", lambda params: payloads.append(params) or {"id": "e1"})
    transport = MailTransport(provider="resend", from_address="noreply@citysense.test", resend_api_key="re_test")
    assert transport.send("a@example.com", "Hello", "<p>Hello</p>") is True
    assert payloads[0]["to"] == ["a@example.com"]


def test_issue_reported_email_escapes_fields():
    subject, body = notify_email.issue_reported_html(_issue())
    assert subject == "New Issue Reported: Leaking <pipe>"
    assert "Leaking &lt;pipe&gt;" in body
    assert "Main St" in body
    assert "01 Apr 2024, 10:30 UTC" in body


def test_send_issue_reported_counts_sent(monkeypatch):
    monkeypatch.setattr(smtplib, "SMTP_SSL", FakeSMTP)
    sent = notify_email.send_issue_reported(_smtp_transport(), ["a@example.com", "b@example.com"], _issue())
    assert sent == 2


def test_admin_recipients_fall_back_to_settings(monkeypatch):
    monkeypatch.setattr(settings, "admin_notification_emails", "ops@example.com, cc@example.com")
    assert notify_email.admin_recipients([None, ""]) == ["ops@example.com", "cc@example.com"]
    assert notify_email.admin_recipients(["b@x.com", "a@x.com", "b@x.com"]) == ["a@x.com", "b@x.com"]
