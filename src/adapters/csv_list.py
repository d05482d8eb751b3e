"""
CSV list store.

Durable, human-editable mirror of the Directory.

File layout (UTF-8, comma separated, minimal quoting):

    email,fullname,<tag>,<tag>,...
    a@b.com,Alice,True,False
    ...

Key behaviors:
- load() merges additively into a Directory (never removes tags), so it is
  idempotent and several stores can contribute to one subscriber
- save() rewrites the whole file from a Directory snapshot, tag columns in
  sorted order, via a temp file renamed over the target
"""

from __future__ import annotations

import csv
import logging
import os
import shutil
import tempfile
from pathlib import Path

from src.components.directory import Directory

logger = logging.getLogger(__name__)

DEFAULT_FILE_MODE = 0o644

IDENTITY_COLUMN = "email"
NAME_COLUMN = "fullname"

TRUE_VALUES = {"true", "1", "yes", "y"}
FALSE_VALUES = {"false", "0", "no", "n", ""}


class ListStoreError(Exception):
    """The backing file could not be read or written."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"List store error for '{path}': {reason}")


def parse_bool(value: str) -> bool:
    """
    Parse a membership cell.

    Raises:
        ValueError: If value is not a recognised boolean
    """
    normalized = value.strip().lower()
    if normalized in TRUE_VALUES:
        return True
    if normalized in FALSE_VALUES:
        return False
    raise ValueError(f"Not a boolean: {value!r}")


class CSVListStore:
    def __init__(self, path: str | Path) -> None:
        if not str(path):
            raise ValueError("CSV file path cannot be empty")
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def exists(self) -> bool:
        return self._path.is_file()

    def read_bytes(self) -> bytes:
        """Raw file content (for download)."""
        return self._path.read_bytes()

    def load(self, into: Directory) -> int:
        """
        Merge the file's subscribers into a directory.

        Returns:
            Number of data rows merged

        Raises:
            ListStoreError: If a membership cell is not a boolean
        """
        if not self.exists():
            logger.info("No list file at %s, starting empty", self._path)
            return 0

        merged = 0
        with open(self._path, newline="", encoding="utf-8") as f:
            reader = csv.reader(f)
            header = next(reader, None)
            if header is None or len(header) < 2:
                logger.warning("List file %s has no usable header", self._path)
                return 0

            tag_columns = header[2:]
            for line_no, row in enumerate(reader, start=2):
                if not row or not row[0].strip():
                    continue

                email = row[0]
                fullname = row[1] if len(row) > 1 else ""
                tags = []
                for offset, tag in enumerate(tag_columns):
                    cell = row[offset + 2] if offset + 2 < len(row) else ""
                    try:
                        subscribed = parse_bool(cell)
                    except ValueError as e:
                        raise ListStoreError(
                            self._path, f"line {line_no}, column '{tag}': {e}"
                        ) from e
                    if subscribed:
                        tags.append(tag)

                into.merge(email, fullname, tags)
                merged += 1

        logger.info("Loaded %d rows from %s", merged, self._path)
        return merged

    def save(self, from_: Directory) -> None:
        """
        Rewrite the file from a directory snapshot.

        The new content is written to a temporary file next to the target
        and renamed over it, so readers never see a partial file.
        """
        entries = from_.snapshot()
        tags: set[str] = set()
        for entry in entries.values():
            tags |= entry.tags
        sorted_tags = sorted(tags)

        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.", suffix=".tmp", dir=directory
        )
        tmp = Path(tmp_name)
        try:
            with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
                writer = csv.writer(f)
                writer.writerow([IDENTITY_COLUMN, NAME_COLUMN, *sorted_tags])
                for email in sorted(entries):
                    entry = entries[email]
                    writer.writerow(
                        [email, entry.display_name, *(tag in entry.tags for tag in sorted_tags)]
                    )
                f.flush()
                os.fsync(f.fileno())
            # mkstemp creates 0600; keep the list readable as before
            if self._path.exists():
                shutil.copymode(self._path, tmp)
            else:
                tmp.chmod(DEFAULT_FILE_MODE)
            tmp.replace(self._path)
        except Exception:
            tmp.unlink(missing_ok=True)
            raise

        logger.debug("Saved %d subscribers to %s", len(entries), self._path)
