"""
Dev Mail Sender.

Logs emails to console instead of sending.
Used for local development and tests (dev_mail setting).

Key behaviors:
- Logs email details (body preview only)
- Returns 202 like SendGrid so the signup flow behaves as in production
- Keeps the most recent emails in memory for test assertions
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from threading import Lock
from uuid import uuid4

logger = logging.getLogger(__name__)

ACCEPTED = 202
DEFAULT_MAX_HISTORY = 100


@dataclass
class SentEmail:
    """Record of a logged email for test assertions."""

    id: str
    recipient: str
    recipient_name: str
    sender: str
    sender_name: str
    subject: str
    plain_body: str
    html_body: str
    logged_at: datetime


@dataclass
class DevMailSender:
    """
    Mail sender that logs instead of sending.

    Implements MailSenderPort.
    """

    sent_emails: deque[SentEmail] = field(default_factory=deque)

    # Configuration
    status_code: int = ACCEPTED  # Status reported back to the caller
    log_level: int = logging.INFO
    log_body: bool = True
    body_preview_length: int = 100
    max_history: int = DEFAULT_MAX_HISTORY  # Oldest emails dropped beyond this

    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.sent_emails = deque(self.sent_emails, maxlen=self.max_history)

    def send(
        self,
        to: str,
        to_name: str,
        from_email: str,
        from_name: str,
        subject: str,
        plain_body: str,
        html_body: str,
    ) -> int:
        message_id = f"dev-{uuid4().hex[:12]}"

        sent_email = SentEmail(
            id=message_id,
            recipient=to,
            recipient_name=to_name,
            sender=from_email,
            sender_name=from_name,
            subject=subject,
            plain_body=plain_body,
            html_body=html_body,
            logged_at=datetime.now(UTC),
        )
        with self._lock:
            self.sent_emails.append(sent_email)

        self._log_email(to, subject, plain_body, message_id, from_email)
        return self.status_code

    def _log_email(
        self,
        recipient: str,
        subject: str,
        body: str,
        message_id: str,
        sender: str,
    ) -> None:
        parts = [
            f"EMAIL (dev): To={recipient}",
            f"Subject={subject}",
            f"From={sender}",
        ]

        if self.log_body and body:
            preview = body[: self.body_preview_length]
            if len(body) > self.body_preview_length:
                preview += "..."
            parts.append(f"Body={preview}")

        parts.append(f"MessageID={message_id}")
        logger.log(self.log_level, ", ".join(parts))

    # --- Test Helper Methods ---

    def get_last_email(self) -> SentEmail | None:
        """Get the most recently logged email."""
        with self._lock:
            return self.sent_emails[-1] if self.sent_emails else None

    def get_emails_to(self, recipient: str) -> list[SentEmail]:
        """Get all emails logged to a specific recipient."""
        with self._lock:
            return [e for e in self.sent_emails if e.recipient == recipient]

    def clear(self) -> None:
        """Clear all stored emails (for test isolation)."""
        with self._lock:
            self.sent_emails.clear()

    @property
    def email_count(self) -> int:
        with self._lock:
            return len(self.sent_emails)
