"""
Unit tests for DevMailSender.

Tests cover:
1. send() records the email and reports 202 like SendGrid
2. Configurable status for failure-path tests
3. Logging of the email with a body preview
4. Test helper methods
5. Bounded history
"""

import logging

import pytest

from src.adapters.dev_email import DevMailSender, SentEmail
from src.core.ports.email import EmailTemplate, is_success_status


def send_one(sender: DevMailSender, to: str = "user@example.com", body: str = "Hello") -> int:
    return sender.send(
        to,
        "User",
        "news@example.com",
        "Example News",
        "Confirm",
        body,
        f"<p>{body}</p>",
    )


class TestDevMailSenderSend:
    """Tests for send()."""

    def test_returns_accepted(self) -> None:
        assert send_one(DevMailSender()) == 202

    def test_configured_status_returned(self) -> None:
        sender = DevMailSender(status_code=503)

        status = send_one(sender)

        assert status == 503
        assert not is_success_status(status)

    def test_records_every_field(self) -> None:
        sender = DevMailSender()
        send_one(sender, body="Click here")

        email = sender.get_last_email()
        assert isinstance(email, SentEmail)
        assert email.id.startswith("dev-")
        assert email.recipient == "user@example.com"
        assert email.recipient_name == "User"
        assert email.sender == "news@example.com"
        assert email.sender_name == "Example News"
        assert email.subject == "Confirm"
        assert email.plain_body == "Click here"
        assert email.html_body == "<p>Click here</p>"


class TestDevMailSenderLogging:
    """Tests for log output."""

    def test_logs_recipient_and_subject(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="src.adapters.dev_email"):
            send_one(DevMailSender())

        assert "To=user@example.com" in caplog.text
        assert "Subject=Confirm" in caplog.text

    def test_long_body_truncated(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = DevMailSender(body_preview_length=10)

        with caplog.at_level(logging.INFO, logger="src.adapters.dev_email"):
            send_one(sender, body="x" * 50)

        assert "Body=xxxxxxxxxx..." in caplog.text

    def test_body_logging_disabled(self, caplog: pytest.LogCaptureFixture) -> None:
        sender = DevMailSender(log_body=False)

        with caplog.at_level(logging.INFO, logger="src.adapters.dev_email"):
            send_one(sender, body="secret-link")

        assert "secret-link" not in caplog.text


class TestDevMailSenderHelpers:
    """Tests for test helper methods."""

    def test_get_last_email_empty(self) -> None:
        assert DevMailSender().get_last_email() is None

    def test_get_emails_to(self) -> None:
        sender = DevMailSender()
        send_one(sender, to="a@example.com")
        send_one(sender, to="b@example.com")
        send_one(sender, to="a@example.com")

        assert len(sender.get_emails_to("a@example.com")) == 2
        assert sender.email_count == 3

    def test_clear(self) -> None:
        sender = DevMailSender()
        send_one(sender)

        sender.clear()

        assert sender.email_count == 0

    def test_history_keeps_most_recent(self) -> None:
        sender = DevMailSender(max_history=3)
        for i in range(5):
            send_one(sender, to=f"user{i}@example.com")

        assert sender.email_count == 3
        assert sender.get_emails_to("user0@example.com") == []
        last = sender.get_last_email()
        assert last is not None
        assert last.recipient == "user4@example.com"


class TestEmailTemplate:
    """Tests for placeholder rendering."""

    def test_render_replaces_all_placeholders(self) -> None:
        template = EmailTemplate(
            plain_template="{{USERNAME}}: {{LINK}} from {{FROMNAME}} {{FROMEMAIL}}",
            html_template="<a href='{{LINK}}'>{{LINK}}</a>",
            subject="Confirm",
            from_email="news@example.com",
            from_name="News",
        )

        rendered = template.render("https://x.test/?v=abc", "Alice")

        assert rendered.plain_body == "Alice: https://x.test/?v=abc from News news@example.com"
        assert rendered.html_body == "<a href='https://x.test/?v=abc'>https://x.test/?v=abc</a>"
        assert rendered.subject == "Confirm"

    def test_missing_sender_rejected(self) -> None:
        with pytest.raises(ValueError):
            EmailTemplate("p", "h", "Subject", "", "Name")
