import argparse
import logging
import os
import sys
from pathlib import Path

import uvicorn

from src.api.main import create_app
from src.app_shell.config import ENV_PREFIX, ConfigError, Settings
from src.app_shell.context import ServiceContext

logger = logging.getLogger("cli")


def _env(name: str) -> str | None:
    return os.environ.get(f"{ENV_PREFIX}{name}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Secure Mailing List: double opt-in signup server",
    )
    parser.add_argument("--host", default=_env("HOST"), help="Bind address (default 0.0.0.0)")
    parser.add_argument(
        "--port", type=int, default=_env("PORT"), help="Listen port (default 18888)"
    )
    parser.add_argument(
        "--hosted-url",
        default=_env("HOSTED_URL"),
        help="Public URL of this server, used in verification links",
    )
    parser.add_argument(
        "--email-config",
        type=Path,
        default=_env("EMAIL_CONFIG_PATH"),
        help="YAML file with the verification email settings",
    )
    parser.add_argument(
        "--csv-file", type=Path, default=_env("CSV_FILE"), help="Subscriber list CSV"
    )
    parser.add_argument(
        "--download-password",
        default=_env("DOWNLOAD_PASSWORD"),
        help="Password for ?d= list download (empty disables download)",
    )
    parser.add_argument(
        "--link-valid-seconds",
        type=int,
        default=_env("LINK_VALID_SECONDS"),
        help="Verification link lifetime, 0 = never expires (default 86400)",
    )
    parser.add_argument(
        "--sendgrid-api-key",
        default=_env("SENDGRID_API_KEY"),
        help="SendGrid API key (required unless --dev-mail)",
    )
    parser.add_argument(
        "--dev-mail",
        action="store_true",
        default=None,
        help="Log verification emails instead of sending them",
    )
    parser.add_argument(
        "--log-level", default=_env("LOG_LEVEL") or "INFO", help="Logging level"
    )
    parser.add_argument(
        "--proxy-headers",
        action="store_true",
        help="Trust X-Forwarded-For from the local reverse proxy for client IPs",
    )
    return parser


def load_settings(args: argparse.Namespace) -> Settings:
    return Settings.from_env(
        host=args.host,
        port=args.port,
        hosted_url=args.hosted_url,
        email_config_path=args.email_config,
        csv_file=args.csv_file,
        download_password=args.download_password,
        link_valid_seconds=args.link_valid_seconds,
        sendgrid_api_key=args.sendgrid_api_key,
        dev_mail=args.dev_mail,
        log_level=args.log_level,
    )


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.DEBUG),  # TRACE is uvicorn-only
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args)
    except ConfigError as e:
        configure_logging("INFO")
        logger.error("%s", e)
        sys.exit(1)

    configure_logging(settings.log_level)

    try:
        context = ServiceContext.create(settings)
    except ConfigError as e:
        logger.error("%s", e)
        sys.exit(1)

    logger.info("Listening on %s:%d", settings.host, settings.port)
    uvicorn.run(
        create_app(context),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        proxy_headers=args.proxy_headers,
    )


if __name__ == "__main__":
    main()
