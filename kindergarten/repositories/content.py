"""
In-memory content collections mirrored to the key-value store.

Each repository reads its whole collection from one storage key on first
access and writes the whole collection back after every mutation. Newest
records are kept first.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, Union

from kindergarten.core.sanitize import sanitize_text
from kindergarten.domain.ids import IdGenerator
from kindergarten.domain.models import CATEGORY_NAMES, Activity, BlogPost, ContactMessage, Record, parse_tags
from kindergarten.repositories.storage import KeyValueStore

logger = logging.getLogger(__name__)

Confirm = Union[bool, Callable[[], bool]]
ChangeListener = Callable[["ContentRepository"], None]

MESSAGE_FILTERS = ("all", "unread", "read")


class ValidationError(Exception):
    """A required field is missing or a value is malformed."""

    def __init__(self, message: str, errors: Optional[dict[str, str]] = None):
        super().__init__(message)
        self.message = message
        self.errors = errors or {}


class NotFoundError(LookupError):
    """No record carries the requested identifier."""

    def __init__(self, message: str, item_id: Any = None):
        super().__init__(message)
        self.message = message
        self.item_id = item_id


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _coerce_id(item_id: Any) -> Optional[int]:
    try:
        return int(item_id)
    except (TypeError, ValueError):
        return None


class ContentRepository:
    """Generic collection; subclasses declare the record type and its rules."""

    key: str = ""
    record_type: type[Record] = Record
    label: str = "Kayıt"
    # field -> message shown when it is empty
    required: dict[str, str] = {}
    editable: tuple[str, ...] = ()
    max_items: Optional[int] = None

    def __init__(
        self,
        store: KeyValueStore,
        *,
        id_generator: Optional[IdGenerator] = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        self._store = store
        self._ids = id_generator or IdGenerator()
        self._now = clock
        self._items: Optional[list[Record]] = None
        self._dirty = False
        self._lock = threading.RLock()
        self._listeners: list[ChangeListener] = []

    # -------------------------------------- state --------------------------------------
    @property
    def loaded(self) -> bool:
        return self._items is not None

    def _ensure_loaded(self) -> list[Record]:
        if self._items is None:
            self._items = self._load()
        return self._items

    def _load(self) -> list[Record]:
        raw = self._store.get(self.key)
        if not isinstance(raw, list):
            if raw is not None:
                logger.warning("Stored collection is not a list", extra={"payload": {"key": self.key}})
            return []
        items: list[Record] = []
        for entry in raw:
            if not isinstance(entry, Mapping):
                continue
            try:
                items.append(self.record_type.from_dict(entry))
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed record", extra={"payload": {"key": self.key, "error": str(exc)}})
        return items

    def persist(self) -> bool:
        """Write the collection back if it changed since the last successful write."""
        with self._lock:
            if self._items is None or not self._dirty:
                return True
            if not self._store.set(self.key, [item.to_dict() for item in self._items]):
                return False
            self._dirty = False
            return True

    def subscribe(self, listener: ChangeListener) -> None:
        self._listeners.append(listener)

    def _commit(self, items: list[Record], action: str, item_id: int) -> None:
        self._items = items
        self._dirty = True
        if not self.persist():
            logger.error(
                "Collection kept in memory but not persisted",
                extra={"payload": {"key": self.key, "action": action, "id": item_id}},
            )
        logger.info(f"{self.label} {action}", extra={"payload": {"key": self.key, "id": item_id, "count": len(items)}})
        for listener in list(self._listeners):
            try:
                listener(self)
            except Exception:
                logger.exception("Change listener failed", extra={"payload": {"key": self.key}})

    # -------------------------------------- input --------------------------------------
    def _clean(self, name: str, value: Any) -> Any:
        """Coerce one submitted field; subclasses handle non-text fields."""
        return sanitize_text(value) if value is not None else ""

    def _normalize(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        return {name: self._clean(name, fields[name]) for name in self.editable if name in fields}

    def _validate(self, data: Mapping[str, Any]) -> None:
        errors = {name: message for name, message in self.required.items() if not str(data.get(name) or "").strip()}
        if errors:
            first = next(iter(errors.values()))
            logger.warning("Validation failed", extra={"payload": {"key": self.key, "errors": errors}})
            raise ValidationError(first, errors)

    def _find_index(self, items: list[Record], item_id: Any) -> int:
        wanted = _coerce_id(item_id)
        for index, item in enumerate(items):
            if item.id == wanted:
                return index
        return -1

    def _not_found(self, item_id: Any) -> NotFoundError:
        logger.warning("Record not found", extra={"payload": {"key": self.key, "id": item_id}})
        return NotFoundError(f"{self.label} bulunamadı!", item_id)

    # -------------------------------------- operations --------------------------------------
    def create(self, fields: Mapping[str, Any]) -> Record:
        data = self._normalize(fields)
        self._validate(data)
        with self._lock:
            items = self._ensure_loaded()
            new_id = self._ids.next_id({item.id for item in items})
            record = self.record_type.from_dict({**data, "id": new_id, "createdAt": self._now()})
            updated = [record, *items]
            if self.max_items:
                updated = updated[: self.max_items]
            self._commit(updated, "created", new_id)
            return record

    def update(self, item_id: Any, fields: Mapping[str, Any]) -> Record:
        changes = self._normalize(fields)
        with self._lock:
            items = self._ensure_loaded()
            index = self._find_index(items, item_id)
            if index == -1:
                raise self._not_found(item_id)
            current = items[index]
            merged = {**current.to_dict(), **changes, "id": current.id, "updatedAt": self._now()}
            self._validate(merged)
            record = self.record_type.from_dict(merged)
            updated = list(items)
            updated[index] = record
            self._commit(updated, "updated", current.id)
            return record

    def delete(self, item_id: Any, confirm: Confirm) -> bool:
        """Remove a record once the caller's yes/no gate says yes."""
        approved = confirm() if callable(confirm) else bool(confirm)
        if not approved:
            return False
        with self._lock:
            items = self._ensure_loaded()
            wanted = _coerce_id(item_id)
            remaining = [item for item in items if item.id != wanted]
            if len(remaining) == len(items):
                raise self._not_found(item_id)
            self._commit(remaining, "deleted", wanted)
            return True

    def get(self, item_id: Any) -> Record:
        with self._lock:
            items = self._ensure_loaded()
            index = self._find_index(items, item_id)
            if index == -1:
                raise self._not_found(item_id)
            return items[index]

    def list(self) -> tuple[Record, ...]:
        with self._lock:
            return tuple(self._ensure_loaded())

    def count(self) -> int:
        with self._lock:
            return len(self._ensure_loaded())


class ActivityRepository(ContentRepository):
    key = "activities"
    record_type = Activity
    label = "Etkinlik"
    required = {
        "title": "Etkinlik başlığı gereklidir!",
        "date": "Etkinlik tarihi gereklidir!",
        "location": "Etkinlik yeri gereklidir!",
    }
    editable = ("title", "date", "time", "location", "description", "image", "capacity")

    def _clean(self, name: str, value: Any) -> Any:
        if name == "capacity":
            if value is None or str(value).strip() == "":
                return None
            try:
                capacity = int(str(value).strip())
            except ValueError:
                raise ValidationError("Kapasite sayı olmalıdır!", {"capacity": "Kapasite sayı olmalıdır!"})
            if capacity < 0:
                raise ValidationError("Kapasite negatif olamaz!", {"capacity": "Kapasite negatif olamaz!"})
            return capacity
        if name in ("time", "image"):
            return sanitize_text(value) or None
        return super()._clean(name, value)


class BlogPostRepository(ContentRepository):
    key = "blogPosts"
    record_type = BlogPost
    label = "Blog yazısı"
    required = {
        "title": "Blog başlığı gereklidir!",
        "author": "Yazar adı gereklidir!",
        "content": "Blog içeriği gereklidir!",
    }
    editable = ("title", "author", "category", "content", "image", "tags")

    def _clean(self, name: str, value: Any) -> Any:
        if name == "tags":
            if isinstance(value, str):
                value = sanitize_text(value)
            return parse_tags(value)
        if name == "category":
            category = sanitize_text(value) or None
            if category is not None and category not in CATEGORY_NAMES:
                raise ValidationError("Geçersiz kategori!", {"category": "Geçersiz kategori!"})
            return category
        if name == "image":
            return sanitize_text(value) or None
        return super()._clean(name, value)


class ContactMessageRepository(ContentRepository):
    key = "contactMessages"
    record_type = ContactMessage
    label = "Mesaj"
    required = {
        "name": "Ad soyad gereklidir!",
        "email": "E-posta gereklidir!",
        "message": "Mesaj gereklidir!",
    }
    editable = ("name", "email", "message", "userAgent")

    def __init__(self, store: KeyValueStore, *, max_items: int = 1000, **kwargs) -> None:
        super().__init__(store, **kwargs)
        self.max_items = max_items

    def create(self, fields: Mapping[str, Any]) -> ContactMessage:
        # new messages always start unread
        return super().create({k: v for k, v in fields.items() if k != "read"})

    def _set_read(self, item_id: Any, read: bool) -> ContactMessage:
        with self._lock:
            items = self._ensure_loaded()
            index = self._find_index(items, item_id)
            if index == -1:
                raise self._not_found(item_id)
            record = ContactMessage.from_dict({**items[index].to_dict(), "read": read})
            updated = list(items)
            updated[index] = record
            self._commit(updated, "marked read" if read else "marked unread", record.id)
            return record

    def mark_read(self, item_id: Any) -> ContactMessage:
        return self._set_read(item_id, True)

    def mark_unread(self, item_id: Any) -> ContactMessage:
        return self._set_read(item_id, False)

    def list(self, status: str = "all") -> tuple[ContactMessage, ...]:
        if status not in MESSAGE_FILTERS:
            raise ValueError(f"unknown message filter: {status!r}")
        messages = super().list()
        if status == "unread":
            return tuple(m for m in messages if not m.read)
        if status == "read":
            return tuple(m for m in messages if m.read)
        return messages

    def unread_count(self) -> int:
        return len(self.list("unread"))


class ContentStore:
    """The three collections of the site, constructed once per application."""

    def __init__(
        self,
        store: KeyValueStore,
        *,
        max_messages: int = 1000,
        id_generator: Optional[IdGenerator] = None,
        clock: Callable[[], str] = utc_now_iso,
    ) -> None:
        ids = id_generator or IdGenerator()
        self.store = store
        self.activities = ActivityRepository(store, id_generator=ids, clock=clock)
        self.blog_posts = BlogPostRepository(store, id_generator=ids, clock=clock)
        self.messages = ContactMessageRepository(store, max_items=max_messages, id_generator=ids, clock=clock)

    @property
    def repositories(self) -> Iterable[ContentRepository]:
        return (self.activities, self.blog_posts, self.messages)

    def persist_all(self) -> bool:
        results = [repo.persist() for repo in self.repositories]
        return all(results)

    def stats(self) -> dict[str, int]:
        return {
            "activities": self.activities.count(),
            "blogPosts": self.blog_posts.count(),
            "messages": self.messages.count(),
            "unreadMessages": self.messages.unread_count(),
        }
