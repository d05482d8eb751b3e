from __future__ import annotations

import logging
from dataclasses import dataclass

from src.adapters.clock import SystemClock
from src.adapters.csv_list import CSVListStore
from src.adapters.dev_email import DevMailSender
from src.adapters.sendgrid_email import SendGridMailSender
from src.app_shell.config import ConfigError, Settings, load_email_config
from src.app_shell.rate_limit import RateLimiter, RateLimitSweeper
from src.components.directory import Directory, KnownTagSet
from src.components.mailing_list import COUNTERS, MailingListConfig, MailingListService
from src.components.signer import Signer
from src.core.ports.email import EmailTemplate, MailSenderPort
from src.core.ports.time import ClockPort
from src.shell.http.health import (
    HealthCheckRegistry,
    MetricsCollector,
    mark_startup_complete,
    setup_default_health_checks,
)

logger = logging.getLogger(__name__)


def create_mail_sender(settings: Settings) -> MailSenderPort:
    """
    SendGrid when a key is configured, the logging dev sender when
    dev_mail is set.

    Raises:
        ConfigError: If neither is configured
    """
    if settings.sendgrid_api_key:
        return SendGridMailSender(settings.sendgrid_api_key)
    if settings.dev_mail:
        logger.warning("Dev mail enabled, emails will only be logged")
        return DevMailSender()
    raise ConfigError("sendgrid_api_key is required (or enable dev_mail to log emails)")


@dataclass
class ServiceContext:
    """One instance of every collaborator, for the life of the process."""

    settings: Settings
    service: MailingListService
    signer: Signer
    rate_limiter: RateLimiter
    sweeper: RateLimitSweeper
    directory: Directory
    known_tags: KnownTagSet
    list_store: CSVListStore
    mail_sender: MailSenderPort
    metrics: MetricsCollector
    health: HealthCheckRegistry
    clock: ClockPort

    @classmethod
    def create(
        cls,
        settings: Settings,
        *,
        email_template: EmailTemplate | None = None,
        mail_sender: MailSenderPort | None = None,
        clock: ClockPort | None = None,
        signer: Signer | None = None,
    ) -> ServiceContext:
        """
        Wire the service from settings.

        Keyword arguments replace the default collaborators (tests inject
        a dev mail sender or a fixed clock this way).

        Raises:
            ConfigError: If the email config cannot be loaded or no mail
                transport is configured
        """
        template = email_template or load_email_config(settings.email_config_path)
        clock = clock or SystemClock()
        signer = signer or Signer()

        if mail_sender is None:
            mail_sender = create_mail_sender(settings)

        rate_limiter = RateLimiter(window_seconds=settings.rate_limit_seconds)
        sweeper = RateLimitSweeper(
            rate_limiter, clock, interval_seconds=settings.sweep_interval_seconds
        )
        directory = Directory()
        known_tags = KnownTagSet()
        list_store = CSVListStore(settings.csv_file)
        metrics = MetricsCollector(COUNTERS)

        health = HealthCheckRegistry()
        setup_default_health_checks(health, list_file=list_store.path)

        service = MailingListService(
            config=MailingListConfig(
                hosted_url=settings.hosted_url,
                link_valid_seconds=settings.link_valid_seconds,
                download_password=settings.download_password,
            ),
            signer=signer,
            rate_limiter=rate_limiter,
            directory=directory,
            list_stores=[list_store],
            mail_sender=mail_sender,
            email_template=template,
            clock=clock,
            known_tags=known_tags,
            metrics=metrics,
            download_source=list_store,
        )

        return cls(
            settings=settings,
            service=service,
            signer=signer,
            rate_limiter=rate_limiter,
            sweeper=sweeper,
            directory=directory,
            known_tags=known_tags,
            list_store=list_store,
            mail_sender=mail_sender,
            metrics=metrics,
            health=health,
            clock=clock,
        )

    def start(self) -> None:
        """Load the list, start the sweeper and report ready."""
        self.service.load()
        self.known_tags.add_all(self.directory.all_tags())
        self.sweeper.start()
        mark_startup_complete()
        logger.info("Service started, links point at %s", self.settings.hosted_url)

    def shutdown(self) -> None:
        self.sweeper.stop()
        close = getattr(self.mail_sender, "close", None)
        if close is not None:
            close()
        logger.info("Service stopped")

    def gauges(self) -> dict[str, int]:
        """Point-in-time values reported next to the counters."""
        return {
            "known_tags": len(self.known_tags),
            "subscribers": len(self.directory),
            "rate_limited_ips": len(self.rate_limiter),
        }
