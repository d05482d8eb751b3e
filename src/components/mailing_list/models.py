"""
Mailing list component models.

Inputs, outputs, configuration and error types for the signup request,
link verification and list download flows.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

# --- Outcomes ---


class Outcome(Enum):
    """What a processor did with a request."""

    EMAIL_SENT = "email_sent"
    SEND_FAILED = "send_failed"  # Transport answered non-2xx
    SUBSCRIBED = "subscribed"
    UNSUBSCRIBED = "unsubscribed"
    DOWNLOAD = "download"
    INVALID = "invalid"
    THROTTLED = "throttled"
    BAD_SIGNATURE = "bad_signature"
    EXPIRED = "expired"
    NOT_FOUND = "not_found"
    ERROR = "error"


# --- Input Models ---


@dataclass(frozen=True)
class SignupRequestInput:
    """Signup form submission: base64url CSV "email,fullname,tag*"."""

    payload: str
    ip_address: str


@dataclass(frozen=True)
class VerifyInput:
    """Link click: "<payload>.<signature>"."""

    token: str


@dataclass(frozen=True)
class DownloadInput:
    """List download with the operator's password."""

    password: str


# --- Output Models ---


@dataclass(frozen=True)
class ProcessorOutput:
    """
    Result of any processor entry point.

    status_code and message are what the HTTP layer sends back as a
    plain-text response.
    """

    outcome: Outcome
    status_code: int
    message: str
    email: str | None = None
    tags: tuple[str, ...] = ()
    retry_after_seconds: int | None = None
    link: str | None = None
    content: bytes | None = None  # Download body

    @property
    def success(self) -> bool:
        return 200 <= self.status_code < 300


@dataclass(frozen=True)
class RateLimitDecision:
    """Allowed, or throttled with the seconds left in the window."""

    allowed: bool
    remaining_seconds: int = 0

    @classmethod
    def allow(cls) -> RateLimitDecision:
        return cls(allowed=True)

    @classmethod
    def throttle(cls, remaining_seconds: int) -> RateLimitDecision:
        return cls(allowed=False, remaining_seconds=remaining_seconds)


# --- Parsed Records ---


@dataclass(frozen=True)
class SignupRecord:
    """A validated signup request."""

    email: str
    fullname: str
    tags: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class TokenRecord:
    """The state carried by a verified token."""

    email: str
    fullname: str
    expiry: int  # Epoch seconds, 0 = never expires
    tags: tuple[str, ...] = field(default_factory=tuple)

    @property
    def is_unsubscribe(self) -> bool:
        return not self.tags

    def is_expired(self, now: int) -> bool:
        return self.expiry != 0 and now > self.expiry


# --- Configuration ---


@dataclass(frozen=True)
class MailingListConfig:
    """Mailing list processor configuration."""

    hosted_url: str
    link_valid_seconds: int = 86400  # 0 disables expiry
    download_password: str = ""
    download_filename: str = "emaillist.csv"

    def __post_init__(self) -> None:
        if not self.hosted_url:
            raise ValueError("hosted_url is required")
        if self.link_valid_seconds < 0:
            raise ValueError("link_valid_seconds cannot be negative")


# --- Error Types ---


class MailingListError(Exception):
    """
    Base mailing list error.

    Carries the HTTP status and the user-facing message it maps to.
    """

    status_code = 500
    outcome = Outcome.ERROR
    default_message = "Error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InvalidRequestError(MailingListError):
    """Malformed payload, bad email syntax or too few fields."""

    status_code = 400
    outcome = Outcome.INVALID
    default_message = "Invalid request"


class ThrottledError(MailingListError):
    """Source IP asked again inside the throttle window."""

    status_code = 429
    outcome = Outcome.THROTTLED

    def __init__(self, ip_address: str, retry_after_seconds: int) -> None:
        self.ip_address = ip_address
        self.retry_after_seconds = retry_after_seconds
        super().__init__(f"Too many requests. Try again in {retry_after_seconds} seconds.")


class SignatureInvalidError(MailingListError):
    """Token signature did not verify (or token malformed)."""

    status_code = 400
    outcome = Outcome.BAD_SIGNATURE
    default_message = "Invalid signature"


class LinkExpiredError(MailingListError):
    """Token expiry is in the past."""

    status_code = 400
    outcome = Outcome.EXPIRED
    default_message = "Link expired"

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__()


class NotFoundError(MailingListError):
    """Download refused or list file missing."""

    status_code = 404
    outcome = Outcome.NOT_FOUND
    default_message = "Not Found"
