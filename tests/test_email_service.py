import smtplib
from types import SimpleNamespace

import pytest

import jobtracker.services.email_service as email_mod
from jobtracker.core.errors import EmailDeliveryError


class _FakeSMTP:
    sent = []
    fail = False

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port
        self.calls = []

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False

    def starttls(self):
        self.calls.append("starttls")

    def login(self, username, password):
        self.calls.append(("login", username))

    def send_message(self, message):
        if _FakeSMTP.fail:
            raise smtplib.SMTPServerDisconnected("gone")
        _FakeSMTP.sent.append(message)


@pytest.fixture
def smtp(monkeypatch):
    _FakeSMTP.sent = []
    _FakeSMTP.fail = False
    monkeypatch.setattr(email_mod.settings, "email_enabled", True)
    monkeypatch.setattr(email_mod.settings, "smtp_username", "mailer")
    monkeypatch.setattr(email_mod.smtplib, "SMTP", _FakeSMTP)
    return _FakeSMTP


def _user(**prefs):
    return SimpleNamespace(email="asha@example.com", first_name="Asha", preferences=prefs or None)


def test_render_template_escapes_html():
    html = email_mod.render_template(
        "status_update.html",
        job_id="job-1",
        job_title="<script>alert(1)</script>",
        company="Acme",
        previous_status="Applied",
        new_status="Interview Scheduled",
        note=None,
    )
    assert "&lt;script&gt;" in html
    assert "from <em>Applied</em>" in html
    assert "/jobs/job-1" in html


def test_send_email_skipped_when_disabled(monkeypatch):
    monkeypatch.setattr(email_mod.settings, "email_enabled", False)
    monkeypatch.setattr(email_mod.smtplib, "SMTP", lambda *a, **k: pytest.fail("SMTP must not be used"))
    email_mod.send_email("asha@example.com", "Hi", "<p>Hi</p>")


def test_send_email_delivers_multipart(smtp):
    email_mod.send_email("asha@example.com", "Hello", "<p>Hello</p>")
    assert len(smtp.sent) == 1
    message = smtp.sent[0]
    assert message["To"] == "asha@example.com"
    assert message["Subject"] == "Hello"
    assert message.is_multipart()


def test_send_email_wraps_smtp_errors(smtp):
    smtp.fail = True
    with pytest.raises(EmailDeliveryError):
        email_mod.send_email("asha@example.com", "Hello", "<p>Hello</p>")


def test_notify_helpers_swallow_delivery_errors(smtp):
    smtp.fail = True
    assert email_mod.notify_temp_password("asha@example.com", "Tmp-1234", 30) is False


def test_notify_status_change_respects_preferences(smtp):
    job = SimpleNamespace(id="job-1", job_title="SRE", company="Initech", status="Offer Extended")
    assert email_mod.notify_status_change(_user(email_notifications=False), job, "Interviewed") is False
    assert smtp.sent == []

    assert email_mod.notify_status_change(_user(), job, "Interviewed", note="Great news") is True
    assert smtp.sent[0]["Subject"] == "Application update: SRE at Initech"


def test_notify_welcome(smtp):
    assert email_mod.notify_welcome(_user()) is True
    assert smtp.sent[0]["Subject"] == "Welcome to Job Tracker"
