"""
Key-value storage adapters.

Values are stored JSON-encoded under plain string keys (``activities``,
``blogPosts``, ``adminCredentials``, ...). Reads return the decoded value or
None; writes never raise: a value that cannot be serialized or that would push
the store over its size quota is dropped with a warning. There is no expiry,
versioning or schema validation; callers own the shape of what they store.
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from kindergarten.core.config import Settings
from kindergarten.db.models import StorageEntry
from kindergarten.db.session import create_all, session_scope

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Raised by a backend when a value cannot be written."""


class KeyValueStore:
    """Base adapter; subclasses implement the raw string operations."""

    def __init__(self, max_bytes: int = 0) -> None:
        self.max_bytes = max_bytes

    # ------------------------------ backend hooks ------------------------------
    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, raw: str) -> None:
        raise NotImplementedError

    def _delete(self, key: str) -> None:
        raise NotImplementedError

    def _size_without(self, key: str) -> int:
        raise NotImplementedError

    def keys(self) -> list[str]:
        raise NotImplementedError

    # ------------------------------ public API ------------------------------
    def get(self, key: str) -> Any:
        raw = self._read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Unparseable value in storage", extra={"payload": {"key": key}})
            return None

    def set(self, key: str, value: Any) -> bool:
        try:
            raw = json.dumps(value, ensure_ascii=False)
        except (TypeError, ValueError) as exc:
            logger.warning("Value is not serializable", extra={"payload": {"key": key, "error": str(exc)}})
            return False
        try:
            if self.max_bytes and self._size_without(key) + len(key) + len(raw.encode("utf-8")) > self.max_bytes:
                raise StorageError(f"storage quota of {self.max_bytes} bytes exceeded")
            self._write(key, raw)
        except StorageError as exc:
            logger.warning("Storage write failed", extra={"payload": {"key": key, "error": str(exc)}})
            return False
        return True

    def remove(self, key: str) -> None:
        try:
            self._delete(key)
        except StorageError as exc:
            logger.warning("Storage delete failed", extra={"payload": {"key": key, "error": str(exc)}})

    def clear(self, keys: Iterable[str] | None = None) -> None:
        for key in list(keys if keys is not None else self.keys()):
            self.remove(key)


class MemoryStore(KeyValueStore):
    """Process-local store; backs browser sessions and tests."""

    def __init__(self, max_bytes: int = 0) -> None:
        super().__init__(max_bytes)
        self._data: dict[str, str] = {}
        self._lock = threading.Lock()

    def _read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._data.get(key)

    def _write(self, key: str, raw: str) -> None:
        with self._lock:
            self._data[key] = raw

    def _delete(self, key: str) -> None:
        with self._lock:
            self._data.pop(key, None)

    def _size_without(self, key: str) -> int:
        with self._lock:
            return sum(len(k) + len(v.encode("utf-8")) for k, v in self._data.items() if k != key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._data)


class JSONFileStore(KeyValueStore):
    """
    One JSON document on disk mapping key -> encoded value.

    The whole document is rewritten on every write; an interrupted write can
    leave it unreadable, in which case every key reads as missing.
    """

    def __init__(self, path: str | Path, max_bytes: int = 0) -> None:
        super().__init__(max_bytes)
        self.path = Path(path)
        self._lock = threading.RLock()

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Storage file unreadable", extra={"payload": {"path": str(self.path), "error": str(exc)}})
            return {}
        if not isinstance(doc, dict):
            return {}
        return {str(k): v for k, v in doc.items() if isinstance(v, str)}

    def _save(self, doc: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(doc, ensure_ascii=False, indent=2), encoding="utf-8")
        except OSError as exc:
            raise StorageError(str(exc)) from exc

    def _read(self, key: str) -> Optional[str]:
        with self._lock:
            return self._load().get(key)

    def _write(self, key: str, raw: str) -> None:
        with self._lock:
            doc = self._load()
            doc[key] = raw
            self._save(doc)

    def _delete(self, key: str) -> None:
        with self._lock:
            doc = self._load()
            if key in doc:
                del doc[key]
                self._save(doc)

    def _size_without(self, key: str) -> int:
        with self._lock:
            return sum(len(k) + len(v.encode("utf-8")) for k, v in self._load().items() if k != key)

    def keys(self) -> list[str]:
        with self._lock:
            return list(self._load())


class SQLStore(KeyValueStore):
    """One ``storage_entries`` row per key, through SQLAlchemy."""

    def __init__(self, max_bytes: int = 0, create_tables: bool = True) -> None:
        super().__init__(max_bytes)
        if create_tables:
            create_all()

    def _read(self, key: str) -> Optional[str]:
        with session_scope() as session:
            entry = session.get(StorageEntry, key)
            return entry.value if entry else None

    def _write(self, key: str, raw: str) -> None:
        try:
            with session_scope() as session:
                session.merge(StorageEntry(key=key, value=raw))
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc

    def _delete(self, key: str) -> None:
        try:
            with session_scope() as session:
                session.execute(delete(StorageEntry).where(StorageEntry.key == key))
        except SQLAlchemyError as exc:
            raise StorageError(str(exc)) from exc

    def _size_without(self, key: str) -> int:
        size = func.length(StorageEntry.key) + func.length(StorageEntry.value)
        stmt = select(func.coalesce(func.sum(size), 0)).where(StorageEntry.key != key)
        with session_scope() as session:
            return int(session.execute(stmt).scalar_one())

    def keys(self) -> list[str]:
        with session_scope() as session:
            return list(session.execute(select(StorageEntry.key).order_by(StorageEntry.key)).scalars())


def build_store(settings: Settings) -> KeyValueStore:
    """Pick the persistent backend named in settings."""
    if settings.storage_backend == "sql":
        return SQLStore(max_bytes=settings.storage_max_bytes)
    if settings.storage_backend == "memory":
        return MemoryStore(max_bytes=settings.storage_max_bytes)
    return JSONFileStore(settings.storage_path, max_bytes=settings.storage_max_bytes)
