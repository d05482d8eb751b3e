"""
SendGrid Mail Sender.

Sends the verification email through the SendGrid v3 mail/send API.
The HTTP status is returned to the caller unchanged; SendGrid answers
202 Accepted on success. No retries: the subscriber resubmits the form.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from src.core.ports.email import EmailSendError, is_success_status

logger = logging.getLogger(__name__)

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
DEFAULT_TIMEOUT_SECONDS = 15.0


def build_payload(
    to: str,
    to_name: str,
    from_email: str,
    from_name: str,
    subject: str,
    plain_body: str,
    html_body: str,
) -> dict[str, Any]:
    """Build a single-recipient mail/send request body."""
    recipient: dict[str, str] = {"email": to}
    if to_name:
        recipient["name"] = to_name
    sender: dict[str, str] = {"email": from_email}
    if from_name:
        sender["name"] = from_name

    return {
        "personalizations": [{"to": [recipient]}],
        "from": sender,
        "subject": subject,
        "content": [
            {"type": "text/plain", "value": plain_body},
            {"type": "text/html", "value": html_body},
        ],
    }


class SendGridMailSender:
    """Implements MailSenderPort over the SendGrid HTTP API."""

    def __init__(
        self,
        api_key: str,
        *,
        url: str = SENDGRID_SEND_URL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("SendGrid API key is required")
        self._api_key = api_key
        self._url = url
        self._timeout = timeout
        self._session = session or requests.Session()

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

        Raises:
            EmailSendError: If SendGrid could not be reached
        """
        payload = build_payload(to, to_name, from_email, from_name, subject, plain_body, html_body)
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            response = self._session.post(
                self._url, json=payload, headers=headers, timeout=self._timeout
            )
        except requests.RequestException as e:
            raise EmailSendError(to, str(e)) from e

        if not is_success_status(response.status_code):
            logger.warning(
                "SendGrid rejected email to %s: HTTP %d %s",
                to,
                response.status_code,
                response.text[:200],
            )
        return response.status_code

    def close(self) -> None:
        self._session.close()
