"""
Mailing list component.

Stateless double opt-in signup with signed verification links.
"""

from src.components.mailing_list.component import (
    COUNTERS,
    EMAIL_REGEX,
    MailingListService,
    build_token_payload,
    build_verification_url,
    clean_tags,
    compute_expiry,
    is_valid_email,
    parse_first_record,
    parse_signup_record,
    parse_token_record,
)
from src.components.mailing_list.models import (
    DownloadInput,
    InvalidRequestError,
    LinkExpiredError,
    MailingListConfig,
    MailingListError,
    NotFoundError,
    Outcome,
    ProcessorOutput,
    RateLimitDecision,
    SignatureInvalidError,
    SignupRecord,
    SignupRequestInput,
    ThrottledError,
    TokenRecord,
    VerifyInput,
)
from src.components.mailing_list.ports import (
    DownloadSourcePort,
    ListStorePort,
    MetricsPort,
    RateLimiterPort,
    SignerPort,
)

__all__ = [
    # Service
    "MailingListService",
    # Pure functions
    "is_valid_email",
    "parse_first_record",
    "parse_signup_record",
    "parse_token_record",
    "clean_tags",
    "compute_expiry",
    "build_token_payload",
    "build_verification_url",
    # Constants
    "COUNTERS",
    "EMAIL_REGEX",
    # Models
    "MailingListConfig",
    "Outcome",
    "ProcessorOutput",
    "RateLimitDecision",
    "SignupRecord",
    "TokenRecord",
    # Input
    "SignupRequestInput",
    "VerifyInput",
    "DownloadInput",
    # Errors
    "MailingListError",
    "InvalidRequestError",
    "ThrottledError",
    "SignatureInvalidError",
    "LinkExpiredError",
    "NotFoundError",
    # Ports
    "SignerPort",
    "RateLimiterPort",
    "ListStorePort",
    "DownloadSourcePort",
    "MetricsPort",
]
