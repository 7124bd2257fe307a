"""
Tests for the email notifiers.
"""
import smtplib
import socket
from unittest.mock import MagicMock, patch

import pytest

from app.core.exceptions import NotificationError
from app.main import app
from app.models.activity_log import ActivityLog
from app.models.key_request import KeyRequestStatus
from app.services.approval_workflow import ApprovalWorkflow
from app.services.notifier import LogNotifier, SmtpNotifier, get_notifier


@pytest.fixture
def smtp_notifier():
    return SmtpNotifier(
        host="smtp.example.com",
        port=587,
        username="mailer",
        password="hunter2",
        sender="noreply@example.com",
        timeout=5.0,
    )


@pytest.fixture
def mock_smtp():
    with patch("app.services.notifier.smtplib.SMTP") as smtp_class:
        connection = MagicMock()
        smtp_class.return_value.__enter__.return_value = connection
        yield smtp_class, connection


def test_smtp_notifier_sends_key_email(smtp_notifier, mock_smtp):
    smtp_class, connection = mock_smtp

    smtp_notifier.send_api_key("ada@x.com", "Ada", "qk_" + "a" * 64)

    smtp_class.assert_called_once_with("smtp.example.com", 587, timeout=5.0)
    connection.starttls.assert_called_once()
    connection.login.assert_called_once_with("mailer", "hunter2")
    message = connection.send_message.call_args[0][0]
    assert message["To"] == "ada@x.com"
    assert message["From"] == "noreply@example.com"
    assert "Key" in message["Subject"]
    html_part = message.get_body(preferencelist=("html",))
    assert "qk_" + "a" * 64 in html_part.get_content()


def test_smtp_failure_raises_notification_error(smtp_notifier, mock_smtp):
    _, connection = mock_smtp
    connection.send_message.side_effect = smtplib.SMTPRecipientsRefused({"ada@x.com": (550, b"no such user")})

    with pytest.raises(NotificationError):
        smtp_notifier.send_rejection("ada@x.com", "Ada")


def test_smtp_timeout_raises_notification_error(smtp_notifier, mock_smtp):
    smtp_class, _ = mock_smtp
    smtp_class.side_effect = socket.timeout("timed out")

    with pytest.raises(NotificationError):
        smtp_notifier.send_rejection("ada@x.com", "Ada")


def test_smtp_without_tls_or_login(mock_smtp):
    _, connection = mock_smtp
    notifier = SmtpNotifier("localhost", 25, None, None, "noreply@localhost", use_tls=False)

    notifier.send("ada@x.com", "Hello", "<p>hi</p>")

    connection.starttls.assert_not_called()
    connection.login.assert_not_called()
    connection.send_message.assert_called_once()


def test_templates_escape_user_supplied_values():
    notifier = LogNotifier()
    with patch.object(LogNotifier, "send") as send:
        notifier.send_rejection("ada@x.com", "<script>alert(1)</script>")

    body = send.call_args[0][2]
    assert "<script>" not in body
    assert "&lt;script&gt;" in body


def test_admin_alert_skipped_without_admin_email():
    notifier = LogNotifier()
    with patch.object(LogNotifier, "send") as send:
        assert notifier.send_admin_alert(1, "Ada", "ada@x.com", "testing") is False

    send.assert_not_called()


def test_log_notifier_reports_failure_without_logging_body(caplog):
    with caplog.at_level("WARNING", logger="app.services.notifier"):
        with pytest.raises(NotificationError, match="SMTP not configured"):
            LogNotifier().send_api_key("ada@x.com", "Ada", "qk_" + "b" * 64)

    assert "ada@x.com" in caplog.text
    assert "qk_" not in caplog.text


def test_approval_without_smtp_is_reported_undelivered(db_session):
    """With no relay configured the approval stands but the key is flagged as never sent."""
    workflow = ApprovalWorkflow(db_session, get_notifier(), auto_approve=False)
    request_id = workflow.submit("Ada", "ada@x.com", "testing").request.id

    result = workflow.approve(request_id)

    assert result.request.status == KeyRequestStatus.APPROVED
    assert result.notification.attempted is True
    assert result.notification.delivered is False
    entry = db_session.query(ActivityLog).filter(ActivityLog.action == "notification_failed").one()
    assert entry.resource_id == request_id
    assert entry.details == {"kind": "api_key_delivery", "error": "SMTP not configured"}


def test_approve_endpoint_without_smtp_reports_notification_failure(client, admin_headers):
    app.dependency_overrides.pop(get_notifier)
    request_id = client.post(
        "/api/v1/key-requests",
        json={"name": "Ada", "email": "ada@x.com", "usage": "testing"},
    ).json()["id"]

    response = client.patch(f"/api/v1/key-requests/{request_id}/approve", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["notification_sent"] is False
    failures = client.get(
        "/api/v1/activity",
        headers=admin_headers,
        params={"action": "notification_failed"},
    ).json()
    assert failures["total"] == 1


def test_get_notifier_without_smtp_host_logs_only():
    assert isinstance(get_notifier(), LogNotifier)


def test_get_notifier_with_smtp_host():
    with patch("app.core.config.settings.SMTP_HOST", "smtp.example.com"):
        notifier = get_notifier()

    assert isinstance(notifier, SmtpNotifier)
    assert notifier.host == "smtp.example.com"
