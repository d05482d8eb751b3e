"""
Mail Transport Interface.

Protocol-based interface for sending the verification email, plus the
resolved email template the signup flow renders before sending.

Implementation strategies:
1. DevMailSender: Logs emails to console (dev/test)
2. SendGridMailSender: Sends via the SendGrid v3 HTTP API

Both return the transport's HTTP-style status code; any 2xx is success
(SendGrid answers 202 Accepted).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

# Template placeholders
LINK_PLACEHOLDER = "{{LINK}}"
FROM_NAME_PLACEHOLDER = "{{FROMNAME}}"
FROM_EMAIL_PLACEHOLDER = "{{FROMEMAIL}}"
USERNAME_PLACEHOLDER = "{{USERNAME}}"


def is_success_status(status_code: int) -> bool:
    return 200 <= status_code < 300


@dataclass(frozen=True)
class RenderedEmail:
    """A verification email ready to hand to a transport."""

    subject: str
    plain_body: str
    html_body: str


@dataclass(frozen=True)
class EmailTemplate:
    """
    Verification email template with its sender identity.

    Template strings are already loaded from disk.
    """

    plain_template: str
    html_template: str
    subject: str
    from_email: str
    from_name: str

    def __post_init__(self) -> None:
        if not self.from_email:
            raise ValueError("Sender email is required")
        if not self.subject:
            raise ValueError("Subject is required")

    def _fill(self, text: str, link: str, recipient_name: str) -> str:
        return (
            text.replace(LINK_PLACEHOLDER, link)
            .replace(FROM_NAME_PLACEHOLDER, self.from_name)
            .replace(FROM_EMAIL_PLACEHOLDER, self.from_email)
            .replace(USERNAME_PLACEHOLDER, recipient_name)
        )

    def render(self, link: str, recipient_name: str) -> RenderedEmail:
        """Substitute the link, sender and recipient placeholders."""
        return RenderedEmail(
            subject=self.subject,
            plain_body=self._fill(self.plain_template, link, recipient_name),
            html_body=self._fill(self.html_template, link, recipient_name),
        )


class MailSenderPort(Protocol):
    """
    Mail transport interface.

    Implementations:
    - DevMailSender: Logs to console (dev/test)
    - SendGridMailSender: Sends via SendGrid
    """

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
        """
        Send one email.

        Returns:
            Transport status code (2xx = accepted)
        """
        ...


# --- Error Types ---


class EmailError(Exception):
    """Base exception for email-related errors."""

    pass


class EmailSendError(EmailError):
    """Failed to reach the mail transport."""

    def __init__(self, recipient: str, error: str) -> None:
        self.recipient = recipient
        self.error = error
        super().__init__(f"Failed to send email to {recipient}: {error}")
