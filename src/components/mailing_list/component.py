"""
Mailing list component.

Stateless double opt-in: the signup request is validated and throttled,
then everything needed to apply it is packed into a signed link. Nothing
is stored until the link comes back with a valid signature.

Key behaviors:
- Signup: validate -> throttle per IP -> sign -> mail the link
- Verify: signature first, then parse, then expiry, then apply
- Verify replaces the subscriber's whole tag set; no tags = unsubscribe
- The directory change and the save run under one directory transaction
- Every entry point returns a ProcessorOutput; nothing raises past it

Token payload: base64url (unpadded) of the CSV record
"email","fullname","expiry"[,"tag"]* with expiry in epoch seconds
(0 = never expires).
"""

from __future__ import annotations

import csv
import io
import logging
import re
import secrets
from collections.abc import Sequence

from src.components.directory import Directory, KnownTagSet
from src.components.mailing_list.models import (
    DownloadInput,
    InvalidRequestError,
    LinkExpiredError,
    MailingListConfig,
    MailingListError,
    NotFoundError,
    Outcome,
    ProcessorOutput,
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
from src.components.signer import b64url_decode, b64url_encode, verify
from src.core.ports.email import EmailTemplate, MailSenderPort, is_success_status
from src.core.ports.time import ClockPort

logger = logging.getLogger(__name__)

EMAIL_REGEX = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")

# Counter names
ADD_REQUESTS = "add_requests"
EMAIL_SENT = "add_success"
EMAIL_LINK_CLICKS = "email_link_clicks"
RECORD_UPDATES = "record_update"
UNSUBSCRIBES = "unsubscribes"

COUNTERS = (ADD_REQUESTS, EMAIL_SENT, EMAIL_LINK_CLICKS, RECORD_UPDATES, UNSUBSCRIBES)


# --- Pure Functions ---


def is_valid_email(email: str) -> bool:
    return EMAIL_REGEX.fullmatch(email) is not None


def parse_first_record(encoded: str) -> list[str] | None:
    """
    Decode a base64url CSV payload and return its first record.

    Returns None if the payload holds no record.

    Raises:
        ValueError: If the payload is not base64url or not UTF-8
        csv.Error: If the record is not valid CSV
    """
    text = b64url_decode(encoded).decode("utf-8")
    return next(csv.reader(io.StringIO(text)), None)


def clean_tags(fields: Sequence[str]) -> tuple[str, ...]:
    """Drop blank tags and duplicates, keeping first-seen order."""
    return tuple(dict.fromkeys(tag for tag in fields if tag))


def parse_signup_record(encoded: str) -> SignupRecord:
    """
    Parse and validate a signup request payload.

    Raises:
        InvalidRequestError: No record, fewer than 2 fields, or bad email
    """
    fields = parse_first_record(encoded)
    if not fields or len(fields) < 2 or not is_valid_email(fields[0]):
        raise InvalidRequestError()
    return SignupRecord(email=fields[0], fullname=fields[1], tags=clean_tags(fields[2:]))


def parse_token_record(encoded: str) -> TokenRecord:
    """
    Parse the payload part of a verified token.

    Raises:
        InvalidRequestError: No record or fewer than 3 fields
        ValueError: Expiry is not an integer
    """
    fields = parse_first_record(encoded)
    if not fields or len(fields) < 3:
        raise InvalidRequestError("Invalid data")
    return TokenRecord(
        email=fields[0],
        fullname=fields[1],
        expiry=int(fields[2]),
        tags=clean_tags(fields[3:]),
    )


def compute_expiry(now: int, link_valid_seconds: int) -> int:
    """0 when links never expire, else now + validity window."""
    return 0 if link_valid_seconds == 0 else now + link_valid_seconds


def build_token_payload(email: str, fullname: str, expiry: int, tags: Sequence[str]) -> str:
    """
    Canonical token payload: every field quoted, then base64url without padding.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="")
    writer.writerow([email, fullname, str(expiry), *tags])
    return b64url_encode(buffer.getvalue().encode("utf-8"))


def build_verification_url(hosted_url: str, token: str) -> str:
    return f"{hosted_url}?v={token}"


def split_token(token: str) -> str:
    """Payload part of an already-verified token."""
    return token.split(".", 1)[0]


# --- Processors ---


class MailingListService:
    """
    Signup, verification and download processors.

    One instance per process; every collaborator is injected.
    """

    def __init__(
        self,
        *,
        config: MailingListConfig,
        signer: SignerPort,
        rate_limiter: RateLimiterPort,
        directory: Directory,
        list_stores: Sequence[ListStorePort],
        mail_sender: MailSenderPort,
        email_template: EmailTemplate,
        clock: ClockPort,
        known_tags: KnownTagSet | None = None,
        metrics: MetricsPort | None = None,
        download_source: DownloadSourcePort | None = None,
    ) -> None:
        self._config = config
        self._signer = signer
        self._public_key = signer.public_key()
        self._rate_limiter = rate_limiter
        self._directory = directory
        self._list_stores = list(list_stores)
        self._mail_sender = mail_sender
        self._template = email_template
        self._clock = clock
        self._known_tags = known_tags if known_tags is not None else KnownTagSet()
        self._metrics = metrics
        self._download_source = download_source

    @property
    def directory(self) -> Directory:
        return self._directory

    @property
    def known_tags(self) -> KnownTagSet:
        return self._known_tags

    @property
    def download_filename(self) -> str:
        return self._config.download_filename

    def _count(self, name: str) -> None:
        if self._metrics is not None:
            self._metrics.increment(name)

    # --- Lifecycle ---

    def load(self) -> None:
        """Merge every list store into the directory."""
        with self._directory.transaction():
            for store in self._list_stores:
                store.load(self._directory)
        logger.info("Directory loaded with %d subscribers", len(self._directory))

    def save(self) -> None:
        """Write the directory to every list store."""
        with self._directory.transaction():
            for store in self._list_stores:
                store.save(self._directory)

    # --- Signup Request ---

    def run_request(self, inp: SignupRequestInput) -> ProcessorOutput:
        """
        Handle a signup request.

        Validates the record, throttles the source IP, signs a link that
        carries the complete request and mails it to the subscriber.
        """
        self._count(ADD_REQUESTS)
        try:
            return self._process_request(inp)
        except MailingListError as e:
            if isinstance(e, ThrottledError):
                return ProcessorOutput(
                    outcome=e.outcome,
                    status_code=e.status_code,
                    message=e.message,
                    retry_after_seconds=e.retry_after_seconds,
                )
            return ProcessorOutput(outcome=e.outcome, status_code=e.status_code, message=e.message)
        except Exception:
            logger.exception("Signup request failed")
            return ProcessorOutput(outcome=Outcome.ERROR, status_code=500, message="Error")

    def _process_request(self, inp: SignupRequestInput) -> ProcessorOutput:
        record = parse_signup_record(inp.payload)

        now = self._clock.now_epoch()
        decision = self._rate_limiter.check_and_register(inp.ip_address, now)
        if not decision.allowed:
            logger.info(
                "Too many requests for email: %s, remaining %d seconds",
                record.email,
                decision.remaining_seconds,
            )
            raise ThrottledError(inp.ip_address, decision.remaining_seconds)

        self._known_tags.add_all(record.tags)

        expiry = compute_expiry(now, self._config.link_valid_seconds)
        payload = build_token_payload(record.email, record.fullname, expiry, record.tags)
        token = self._signer.sign(payload)
        if not token:
            raise RuntimeError("Signer returned an empty token")
        link = build_verification_url(self._config.hosted_url, token)

        rendered = self._template.render(link, record.fullname)
        status = self._mail_sender.send(
            record.email,
            record.fullname,
            self._template.from_email,
            self._template.from_name,
            rendered.subject,
            rendered.plain_body,
            rendered.html_body,
        )

        if not is_success_status(status):
            logger.warning("Mail transport returned %d for %s", status, record.email)
            return ProcessorOutput(
                outcome=Outcome.SEND_FAILED,
                status_code=status,
                message="Failed to send email",
                email=record.email,
                tags=record.tags,
            )

        logger.info(
            "Email sent to %s, %s, categories: %s",
            record.email,
            record.fullname,
            ",".join(record.tags),
        )
        self._count(EMAIL_SENT)
        return ProcessorOutput(
            outcome=Outcome.EMAIL_SENT,
            status_code=status,
            message="Email sent",
            email=record.email,
            tags=record.tags,
            link=link,
        )

    # --- Link Verification ---

    def run_verify(self, inp: VerifyInput) -> ProcessorOutput:
        """
        Handle a verification link click.

        The signature is checked before any payload field is read; the
        directory is only touched once parsing and expiry checks pass.
        """
        self._count(EMAIL_LINK_CLICKS)
        try:
            return self._process_verify(inp)
        except MailingListError as e:
            return ProcessorOutput(outcome=e.outcome, status_code=e.status_code, message=e.message)
        except Exception:
            logger.exception("Verification failed")
            return ProcessorOutput(outcome=Outcome.ERROR, status_code=500, message="Error")

    def _process_verify(self, inp: VerifyInput) -> ProcessorOutput:
        if not verify(inp.token, self._public_key):
            logger.info("Invalid signature")
            raise SignatureInvalidError()

        record = parse_token_record(split_token(inp.token))

        if record.is_expired(self._clock.now_epoch()):
            logger.info("Link expired for %s", record.email)
            raise LinkExpiredError(record.email)

        self._known_tags.add_all(record.tags)

        with self._directory.transaction():
            previous = self._directory.get(record.email)
            try:
                if record.is_unsubscribe:
                    self._directory.remove(record.email)
                else:
                    self._directory.upsert(record.email, record.fullname, record.tags)
                self.save()
            except Exception:
                # Keep memory in step with the last successful save
                if previous is None:
                    self._directory.remove(record.email)
                else:
                    self._directory.upsert(record.email, previous.display_name, previous.tags)
                raise

        logger.info(
            "VERIFIED: %s, %s, categories: %s",
            record.email,
            record.fullname,
            ",".join(record.tags),
        )

        if record.is_unsubscribe:
            self._count(UNSUBSCRIBES)
            return ProcessorOutput(
                outcome=Outcome.UNSUBSCRIBED,
                status_code=200,
                message=f"Confirmed unsubscribed {record.email}",
                email=record.email,
            )

        self._count(RECORD_UPDATES)
        return ProcessorOutput(
            outcome=Outcome.SUBSCRIBED,
            status_code=200,
            message=f"Confirmed subscribed to {record.email} to: {','.join(record.tags)}",
            email=record.email,
            tags=record.tags,
        )

    # --- List Download ---

    def run_download(self, inp: DownloadInput) -> ProcessorOutput:
        """
        Serve the list file to the operator.

        A wrong or unconfigured password looks exactly like a missing route.
        """
        try:
            return self._process_download(inp)
        except MailingListError as e:
            return ProcessorOutput(outcome=e.outcome, status_code=e.status_code, message=e.message)
        except Exception:
            logger.exception("Download failed")
            return ProcessorOutput(outcome=Outcome.ERROR, status_code=500, message="Error")

    def _process_download(self, inp: DownloadInput) -> ProcessorOutput:
        expected = self._config.download_password
        if not expected or not secrets.compare_digest(
            inp.password.encode("utf-8"), expected.encode("utf-8")
        ):
            logger.warning("Download failed: bad password")
            raise NotFoundError()

        source = self._download_source
        if source is None or not source.exists():
            raise NotFoundError("File not found")

        logger.info("Download successful")
        return ProcessorOutput(
            outcome=Outcome.DOWNLOAD,
            status_code=200,
            message="",
            content=source.read_bytes(),
        )
