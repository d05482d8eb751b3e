"""
Mailing list component ports.

Protocol interfaces for the collaborators the processors need.
"""

from __future__ import annotations

from typing import Protocol

from src.components.directory import Directory
from src.components.mailing_list.models import RateLimitDecision


class SignerPort(Protocol):
    """Signs payloads and verifies tokens with the process key."""

    def sign(self, payload: str) -> str:
        """Return "<payload>.<signature>", or "" on failure."""
        ...

    def public_key(self) -> bytes:
        """DER-encoded public key."""
        ...


class RateLimiterPort(Protocol):
    """Per-IP signup throttle."""

    def check_and_register(self, ip: str, now: int) -> RateLimitDecision:
        """
        Atomically check the IP's deadline and, if clear, start a new window.

        Args:
            ip: Source IP address
            now: Current epoch seconds

        Returns:
            Allowed, or throttled with the remaining seconds
        """
        ...


class ListStorePort(Protocol):
    """Durable mirror of the Directory."""

    def load(self, into: Directory) -> int:
        """Merge stored subscribers into a directory (additive)."""
        ...

    def save(self, from_: Directory) -> None:
        """Rewrite the store from a directory."""
        ...


class DownloadSourcePort(Protocol):
    """The file served by the download endpoint."""

    def exists(self) -> bool:
        ...

    def read_bytes(self) -> bytes:
        ...


class MetricsPort(Protocol):
    """Named counters."""

    def increment(self, name: str, amount: int = 1) -> None:
        ...
