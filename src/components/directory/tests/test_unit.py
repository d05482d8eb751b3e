"""
Directory component unit tests.

Tests cover:
- upsert replaces, merge unions
- Entries are never stored with an empty tag set
- Emails are case-sensitive keys
- transaction() serializes concurrent read-modify-write
"""

from __future__ import annotations

import threading

import pytest

from src.components.directory import (
    Directory,
    EmptyTagSetError,
    KnownTagSet,
    SubscriptionEntry,
)


@pytest.fixture
def directory() -> Directory:
    return Directory()


class TestUpsert:
    def test_upsert_inserts(self, directory: Directory) -> None:
        entry = directory.upsert("a@b.com", "Alice", ["news"])

        assert entry == SubscriptionEntry("Alice", frozenset({"news"}))
        assert directory.get("a@b.com") == entry
        assert "a@b.com" in directory
        assert len(directory) == 1

    def test_upsert_replaces_tags_and_name(self, directory: Directory) -> None:
        directory.upsert("a@b.com", "Alice", ["news", "events"])
        directory.upsert("a@b.com", "Alice B.", ["jobs"])

        entry = directory.get("a@b.com")
        assert entry is not None
        assert entry.display_name == "Alice B."
        assert entry.tags == frozenset({"jobs"})

    def test_upsert_empty_tags_raises(self, directory: Directory) -> None:
        with pytest.raises(EmptyTagSetError):
            directory.upsert("a@b.com", "Alice", [])

        assert "a@b.com" not in directory

    def test_emails_are_case_sensitive(self, directory: Directory) -> None:
        directory.upsert("a@b.com", "Alice", ["news"])
        directory.upsert("A@B.com", "Alice", ["events"])

        assert len(directory) == 2


class TestMerge:
    def test_merge_unions_tags(self, directory: Directory) -> None:
        directory.merge("a@b.com", "Alice", ["news"])
        directory.merge("a@b.com", "Someone Else", ["events"])

        entry = directory.get("a@b.com")
        assert entry is not None
        assert entry.tags == frozenset({"news", "events"})
        # First writer keeps the display name
        assert entry.display_name == "Alice"

    def test_merge_never_removes_tags(self, directory: Directory) -> None:
        directory.upsert("a@b.com", "Alice", ["news", "events"])
        directory.merge("a@b.com", "Alice", [])

        entry = directory.get("a@b.com")
        assert entry is not None
        assert entry.tags == frozenset({"news", "events"})

    def test_merge_new_email_without_tags_not_stored(self, directory: Directory) -> None:
        assert directory.merge("a@b.com", "Alice", []) is None
        assert "a@b.com" not in directory


class TestRemoveAndSnapshot:
    def test_remove_existing(self, directory: Directory) -> None:
        directory.upsert("a@b.com", "Alice", ["news"])

        assert directory.remove("a@b.com") is True
        assert "a@b.com" not in directory

    def test_remove_missing(self, directory: Directory) -> None:
        assert directory.remove("nobody@b.com") is False

    def test_snapshot_is_a_copy(self, directory: Directory) -> None:
        directory.upsert("a@b.com", "Alice", ["news"])
        snap = directory.snapshot()
        directory.remove("a@b.com")

        assert "a@b.com" in snap

    def test_all_tags(self, directory: Directory) -> None:
        directory.upsert("a@b.com", "Alice", ["news", "events"])
        directory.upsert("c@d.com", "Carol", ["jobs", "news"])

        assert directory.all_tags() == {"news", "events", "jobs"}


class TestTransaction:
    def test_transaction_is_reentrant(self, directory: Directory) -> None:
        with directory.transaction() as d:
            d.upsert("a@b.com", "Alice", ["news"])
            assert d.snapshot() == {"a@b.com": SubscriptionEntry("Alice", frozenset({"news"}))}

    def test_concurrent_read_modify_write_is_not_lost(self, directory: Directory) -> None:
        directory.upsert("counter@b.com", "Counter", ["0"])

        def bump() -> None:
            for _ in range(200):
                with directory.transaction():
                    entry = directory.get("counter@b.com")
                    assert entry is not None
                    value = int(next(iter(entry.tags)))
                    directory.upsert("counter@b.com", "Counter", [str(value + 1)])

        threads = [threading.Thread(target=bump) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        entry = directory.get("counter@b.com")
        assert entry is not None
        assert entry.tags == frozenset({"800"})


class TestKnownTagSet:
    def test_add_all_accumulates(self) -> None:
        known = KnownTagSet()
        known.add_all(["news"])
        known.add_all(["events", "news"])

        assert known.snapshot() == frozenset({"news", "events"})
        assert len(known) == 2
