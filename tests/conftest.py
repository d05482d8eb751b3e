from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path

import pytest

from src.adapters.dev_email import DevMailSender
from src.api.deps import set_context
from src.app_shell.config import Settings
from src.app_shell.context import ServiceContext
from src.components.signer import Signer
from src.core.ports.email import EmailTemplate
from src.shell.http.health import StartupTracker

NOW = 1_700_000_000


class FixedClock:
    """Clock that only moves when told to."""

    def __init__(self, now: int = NOW) -> None:
        self.now = now

    def now_utc(self) -> datetime:
        return datetime.fromtimestamp(self.now, UTC)

    def now_epoch(self) -> int:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def signer() -> Signer:
    # Key generation is slow; one keypair serves the whole run
    return Signer()


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def mail_sender() -> DevMailSender:
    return DevMailSender()


@pytest.fixture
def email_template() -> EmailTemplate:
    return EmailTemplate(
        plain_template="Hi {{USERNAME}}, confirm here: {{LINK}}",
        html_template='<p>Hi {{USERNAME}}</p><a href="{{LINK}}">Confirm</a>',
        subject="Confirm your subscription",
        from_email="news@example.com",
        from_name="Example News",
    )


@pytest.fixture
def csv_path(tmp_path: Path) -> Path:
    return tmp_path / "list.csv"


@pytest.fixture
def settings(tmp_path: Path, csv_path: Path) -> Settings:
    return Settings(
        hosted_url="https://lists.example.com/signup",
        email_config_path=tmp_path / "email.yaml",
        csv_file=csv_path,
        download_password="letmein",
        link_valid_seconds=3600,
    )


@pytest.fixture
def test_ctx(
    settings: Settings,
    email_template: EmailTemplate,
    mail_sender: DevMailSender,
    clock: FixedClock,
    signer: Signer,
) -> Iterator[ServiceContext]:
    """
    Full ServiceContext backed by a temp CSV file, a dev mail sender and a
    fixed clock.
    """
    ctx = ServiceContext.create(
        settings,
        email_template=email_template,
        mail_sender=mail_sender,
        clock=clock,
        signer=signer,
    )
    yield ctx
    ctx.sweeper.stop()


@pytest.fixture(autouse=True)
def reset_globals() -> Iterator[None]:
    """Process-wide state must not leak between tests."""
    StartupTracker.reset()
    set_context(None)
    yield
    StartupTracker.reset()
    set_context(None)
