"""
Clock interface.

Token expiry and rate-limit deadlines are whole epoch seconds (UTC),
so the only thing the core needs from a clock is "now" in that unit.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    """Time source (enables testing with deterministic time)."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

    def now_epoch(self) -> int:
        """Get current time as whole seconds since the Unix epoch."""
        ...
