"""
Directory component.

In-memory, lock-guarded mapping from email address to SubscriptionEntry.
This is the single source of truth for who is subscribed to what; list
stores only mirror it.

Key behaviors:
- Emails are keys exactly as given (no case folding)
- upsert() replaces the whole entry; merge() unions tags into it
- transaction() holds the lock across a read-modify-write-persist sequence
- KnownTagSet records every tag the processors have seen (bookkeeping only)
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from threading import Lock, RLock

from src.components.directory.models import EmptyTagSetError, SubscriptionEntry


class Directory:
    def __init__(self) -> None:
        self._entries: dict[str, SubscriptionEntry] = {}
        self._lock = RLock()

    @contextmanager
    def transaction(self) -> Iterator[Directory]:
        """
        Hold the directory lock for a compound operation.

        The lock is re-entrant, so the regular methods (and list stores
        taking a snapshot) can be called inside the block.
        """
        with self._lock:
            yield self

    def get(self, email: str) -> SubscriptionEntry | None:
        with self._lock:
            return self._entries.get(email)

    def upsert(self, email: str, display_name: str, tags: Iterable[str]) -> SubscriptionEntry:
        """
        Store an entry, replacing any previous one for the email.

        Raises:
            EmptyTagSetError: If tags is empty
        """
        entry = SubscriptionEntry.create(display_name, tags)
        if not entry.tags:
            raise EmptyTagSetError(email)
        with self._lock:
            self._entries[email] = entry
        return entry

    def merge(self, email: str, display_name: str, tags: Iterable[str]) -> SubscriptionEntry | None:
        """
        Additively merge tags for an email.

        Existing entries keep their display name and gain the new tags;
        pre-existing tags are never removed. A new email with no tags is
        not stored (returns None).
        """
        tag_set = frozenset(tags)
        with self._lock:
            existing = self._entries.get(email)
            if existing is not None:
                merged = existing.merged_with(tag_set)
                self._entries[email] = merged
                return merged
            if not tag_set:
                return None
            entry = SubscriptionEntry(display_name=display_name, tags=tag_set)
            self._entries[email] = entry
            return entry

    def remove(self, email: str) -> bool:
        """Remove an entry. Returns True if it existed."""
        with self._lock:
            return self._entries.pop(email, None) is not None

    def snapshot(self) -> dict[str, SubscriptionEntry]:
        """Copy of the current mapping (entries are immutable)."""
        with self._lock:
            return dict(self._entries)

    def all_tags(self) -> set[str]:
        """Union of tags across all current entries."""
        with self._lock:
            tags: set[str] = set()
            for entry in self._entries.values():
                tags |= entry.tags
            return tags

    def __contains__(self, email: object) -> bool:
        with self._lock:
            return email in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class KnownTagSet:
    """Every tag string observed so far. Not authoritative."""

    def __init__(self) -> None:
        self._tags: set[str] = set()
        self._lock = Lock()

    def add_all(self, tags: Iterable[str]) -> None:
        with self._lock:
            self._tags.update(tags)

    def snapshot(self) -> frozenset[str]:
        with self._lock:
            return frozenset(self._tags)

    def __len__(self) -> int:
        with self._lock:
            return len(self._tags)
