import smtplib

import pytest

from teamsync.services import email as email_service
from teamsync.services.email import EmailNotifier, notify_safely, send_email


class FakeSMTP:
    """Stands in for smtplib.SMTP_SSL and keeps what was sent."""

    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host
        self.port = port

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def login(self, username, password):
        pass

    def send_message(self, msg):
        FakeSMTP.sent.append(msg)


class RefusingSMTP(FakeSMTP):
    def __init__(self, host, port, timeout=None):
        raise smtplib.SMTPConnectError(421, b'service not available')


@pytest.fixture
def smtp_configured(monkeypatch):
    monkeypatch.setattr(email_service, 'SMTP_HOST', 'smtp.example.com')
    monkeypatch.setattr(email_service, 'SMTP_USERNAME', 'noreply@example.com')
    monkeypatch.setattr(email_service, 'SMTP_PASSWORD', 'secret')
    monkeypatch.setattr(email_service, 'SMTP_USE_SSL', True)
    FakeSMTP.sent = []


def test_send_without_configuration_reports_false(monkeypatch):
    monkeypatch.setattr(email_service, 'SMTP_HOST', None)
    assert send_email('someone@example.com', 'Hi', '<p>Hi</p>') is False


def test_send_delivers_message(monkeypatch, smtp_configured):
    monkeypatch.setattr(email_service.smtplib, 'SMTP_SSL', FakeSMTP)

    assert EmailNotifier().send_invite('new@example.com', 'Olivia', 'Acme', 12, 'member', 'Platform') is True

    message = FakeSMTP.sent[0]
    assert message['To'] == 'new@example.com'
    assert message['Subject'] == "You're invited to join Acme"


def test_transport_errors_surface_through_notify_safely(monkeypatch, smtp_configured):
    monkeypatch.setattr(email_service.smtplib, 'SMTP_SSL', RefusingSMTP)

    with pytest.raises(smtplib.SMTPConnectError):
        send_email('someone@example.com', 'Hi', '<p>Hi</p>')

    notifier = EmailNotifier()
    assert notify_safely('invite', notifier.send_invite, 'new@example.com', 'Olivia', 'Acme', 12, 'member') is False
