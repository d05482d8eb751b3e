"""
Directory component models.

Subscriber entries keyed by email address.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass


@dataclass(frozen=True)
class SubscriptionEntry:
    """
    A subscriber's display name and the tags they are subscribed to.

    An entry is never stored with an empty tag set; an empty set means
    "unsubscribe" and removes the entry instead.
    """

    display_name: str
    tags: frozenset[str]

    @classmethod
    def create(cls, display_name: str, tags: Iterable[str]) -> SubscriptionEntry:
        return cls(display_name=display_name, tags=frozenset(tags))

    def merged_with(self, tags: Iterable[str]) -> SubscriptionEntry:
        """Union extra tags in, keeping the display name."""
        return SubscriptionEntry(display_name=self.display_name, tags=self.tags | frozenset(tags))


class EmptyTagSetError(ValueError):
    """Raised when an entry would be stored with no tags."""

    def __init__(self, email: str) -> None:
        self.email = email
        super().__init__(f"Refusing to store '{email}' with an empty tag set")
