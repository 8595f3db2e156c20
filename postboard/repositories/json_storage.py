"""
JSON document storage shared by the account and post repositories.

A JsonStorage instance owns one file and its in-memory mirror. Every
repository operation runs inside ``transaction()`` (writes) or ``snapshot()``
(reads); both hold the same lock, so a load -> mutate -> persist cycle never
interleaves with another one on the same handle.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from postboard.core.errors import StorageError

logger = logging.getLogger(__name__)

COLLECTIONS = ("accounts", "posts")


def default_document() -> dict:
    return {
        "accounts": [],
        "posts": [],
        "sequences": {name: 0 for name in COLLECTIONS},
    }


def db_defaults(db: dict) -> dict:
    for name in COLLECTIONS:
        db.setdefault(name, [])
    sequences = db.setdefault("sequences", {})
    for name in COLLECTIONS:
        sequences.setdefault(name, 0)
    return db


def _check_document(db: object) -> dict:
    if not isinstance(db, dict):
        raise StorageError("Malformed document: root must be an object")
    for name in COLLECTIONS:
        records = db.get(name, [])
        if not isinstance(records, list):
            raise StorageError(f"Malformed document: '{name}' must be a list")
        for record in records:
            if not isinstance(record, dict):
                raise StorageError(f"Malformed document: '{name}' holds a non-object record")
            record_id = record.get("id")
            if isinstance(record_id, bool) or not isinstance(record_id, int):
                raise StorageError(f"Malformed document: '{name}' record without integer id")
    sequences = db.get("sequences", {})
    if not isinstance(sequences, dict) or not all(
        isinstance(v, int) and not isinstance(v, bool) for v in sequences.values()
    ):
        raise StorageError("Malformed document: 'sequences' must map names to integers")
    return db_defaults(db)


class JsonStorage:
    """Single source of truth for ``{accounts: [...], posts: [...]}``."""

    def __init__(self, path: str | os.PathLike[str]):
        self.path = Path(path)
        self.data: dict = default_document()
        self._lock = threading.RLock()

    def load(self) -> dict:
        """Read the file into memory, creating it when it does not exist yet."""
        with self._lock:
            if not self.path.exists():
                logger.info("Initializing empty store at %s", self.path, extra={"path": str(self.path)})
                self.data = default_document()
                self.persist()
                return self.data
            try:
                with self.path.open("r", encoding="utf-8") as f:
                    raw = json.load(f)
            except json.JSONDecodeError as exc:
                raise StorageError(f"Malformed document at {self.path}: {exc}") from exc
            except (OSError, UnicodeDecodeError) as exc:
                raise StorageError(f"Cannot read {self.path}: {exc}") from exc
            self.data = _check_document(raw)
            return self.data

    def persist(self) -> None:
        """Atomically replace the file with the in-memory document."""
        with self._lock:
            tmp_name = None
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                fd, tmp_name = tempfile.mkstemp(
                    dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
                )
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(self.data, f, ensure_ascii=False, indent=2)
                    f.flush()
                    os.fsync(f.fileno())
                os.replace(tmp_name, self.path)
            except OSError as exc:
                if tmp_name and os.path.exists(tmp_name):
                    os.unlink(tmp_name)
                logger.error("Failed to persist %s: %s", self.path, exc, extra={"path": str(self.path)})
                raise StorageError(f"Cannot write {self.path}: {exc}") from exc

    @contextmanager
    def transaction(self) -> Iterator[dict]:
        """Serialized load -> mutate -> persist. Nothing is written if the body raises."""
        with self._lock:
            data = self.load()
            yield data
            self.persist()

    @contextmanager
    def snapshot(self) -> Iterator[dict]:
        """Fresh, consistent view for read-only work."""
        with self._lock:
            yield self.load()

    def next_id(self, collection: str) -> int:
        """Allocate the next id of ``collection``. Call inside ``transaction()``."""
        with self._lock:
            sequences = self.data["sequences"]
            highest = max((r["id"] for r in self.data[collection]), default=0)
            new_id = max(sequences.get(collection, 0), highest) + 1
            sequences[collection] = new_id
            return new_id
