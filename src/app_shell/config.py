"""
Service configuration.

Settings come from CLI flags or SML_* environment variables; the
verification email lives in a separate YAML file that points at the
plain-text and HTML templates.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from src.core.ports.email import EmailTemplate

ENV_PREFIX = "SML_"

# Level names uvicorn accepts
LOG_LEVELS = ("critical", "error", "warning", "info", "debug", "trace")


class ConfigError(Exception):
    """Configuration missing or invalid; the service cannot start."""


class Settings(BaseModel):
    host: str = "0.0.0.0"
    port: int = Field(default=18888, ge=1, le=65535)
    hosted_url: str
    email_config_path: Path
    csv_file: Path
    download_password: str = ""
    link_valid_seconds: int = Field(default=86400, ge=0)
    sendgrid_api_key: str | None = None
    dev_mail: bool = False  # Log emails instead of sending when no SendGrid key
    rate_limit_seconds: int = Field(default=60, gt=0)
    sweep_interval_seconds: float = Field(default=60.0, gt=0)
    log_level: str = "INFO"

    @field_validator("hosted_url")
    @classmethod
    def _hosted_url_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("hosted_url must not be empty")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_log_level(cls, value: str) -> str:
        level = value.strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return level.upper()

    @field_validator("sendgrid_api_key")
    @classmethod
    def _blank_key_is_none(cls, value: str | None) -> str | None:
        return value or None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides: object) -> Settings:
        """
        Build settings from SML_* environment variables.

        SML_HOSTED_URL maps to hosted_url and so on. Keyword overrides win
        over the environment; None overrides are ignored.

        Raises:
            ConfigError: If a required value is missing or invalid
        """
        env = os.environ if environ is None else environ
        data: dict[str, object] = {}
        for name in cls.model_fields:
            key = f"{ENV_PREFIX}{name.upper()}"
            if key in env:
                data[name] = env[key]
        data.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Settings validation failed:\n{e}") from e


# --- Email Config ---


class EmailConfigFile(BaseModel):
    """On-disk shape of the email config YAML."""

    plain_template: Path
    html_template: Path
    subject: str = Field(min_length=1)
    from_email: str = Field(min_length=1)
    from_name: str = ""


def _read_template(base_dir: Path, path: Path) -> str:
    resolved = path if path.is_absolute() else base_dir / path
    try:
        return resolved.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read email template {resolved}: {e}") from e


def load_email_config(path: Path) -> EmailTemplate:
    """
    Load the email config and the templates it names.

    Template paths are resolved relative to the config file.

    Raises:
        ConfigError: Missing file, invalid YAML or schema errors
    """
    if not path.exists():
        raise ConfigError(f"Email config not found at: {path}")

    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML syntax in email config: {e}") from e

    try:
        config = EmailConfigFile.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Email config validation failed:\n{e}") from e

    base_dir = path.parent
    return EmailTemplate(
        plain_template=_read_template(base_dir, config.plain_template),
        html_template=_read_template(base_dir, config.html_template),
        subject=config.subject,
        from_email=config.from_email,
        from_name=config.from_name,
    )
