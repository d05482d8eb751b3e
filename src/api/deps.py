from __future__ import annotations

from functools import lru_cache

from fastapi import Depends

from src.app_shell.config import Settings
from src.app_shell.context import ServiceContext
from src.components.mailing_list import MailingListService


# --- Settings ---
@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


# --- Service Context ---
_context_instance: ServiceContext | None = None


def get_context() -> ServiceContext:
    """Get service context singleton."""
    global _context_instance
    if _context_instance is None:
        _context_instance = ServiceContext.create(get_settings())
    return _context_instance


def set_context(context: ServiceContext | None) -> None:
    """Install a prebuilt context (None clears it)."""
    global _context_instance
    _context_instance = context


def get_mailing_list_service(
    context: ServiceContext = Depends(get_context),
) -> MailingListService:
    return context.service
