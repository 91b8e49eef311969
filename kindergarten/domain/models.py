"""Content records as they are persisted (camelCase keys, JSON primitives)."""
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any, Mapping, Optional

CATEGORY_NAMES = {
    "egitim": "Eğitim",
    "gelisim": "Gelişim",
    "etkinlik": "Etkinlik",
    "saglik": "Sağlık",
    "diger": "Diğer",
}


def category_name(category: str | None) -> str:
    return CATEGORY_NAMES.get(category or "", category or "")


def parse_tags(value: Any) -> tuple[str, ...]:
    """Split a comma separated tag string; lists are accepted as-is."""
    if value is None:
        return ()
    parts = value.split(",") if isinstance(value, str) else list(value)
    return tuple(str(tag).strip() for tag in parts if str(tag).strip())


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


class Record:
    """Shared (de)serialization for the frozen content dataclasses."""

    id: int

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key, value in data.items():
            if isinstance(value, tuple):
                data[key] = list(value)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]):
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


@dataclass(frozen=True)
class Activity(Record):
    id: int
    title: str
    date: str
    location: str
    description: str = ""
    time: Optional[str] = None
    image: Optional[str] = None
    capacity: Optional[int] = None
    createdAt: str = ""
    updatedAt: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Activity":
        record = super().from_dict(data)
        capacity = record.capacity
        if capacity is not None and not isinstance(capacity, int):
            try:
                capacity = int(str(capacity).strip())
            except ValueError:
                capacity = None
        return cls(
            **{**asdict(record), "time": _optional_str(record.time), "image": _optional_str(record.image), "capacity": capacity}
        )


@dataclass(frozen=True)
class BlogPost(Record):
    id: int
    title: str
    author: str
    content: str
    category: Optional[str] = None
    image: Optional[str] = None
    tags: tuple[str, ...] = field(default_factory=tuple)
    createdAt: str = ""
    updatedAt: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "BlogPost":
        record = super().from_dict(data)
        return cls(
            **{
                **asdict(record),
                "category": _optional_str(record.category),
                "image": _optional_str(record.image),
                "tags": parse_tags(record.tags),
            }
        )


@dataclass(frozen=True)
class ContactMessage(Record):
    id: int
    name: str
    email: str
    message: str
    createdAt: str = ""
    read: bool = False
    userAgent: str = ""


@dataclass(frozen=True)
class AdminCredentials:
    username: str
    password: str

    def to_dict(self) -> dict[str, str]:
        return {"username": self.username, "password": self.password}

    @classmethod
    def from_dict(cls, data: Any) -> Optional["AdminCredentials"]:
        if not isinstance(data, Mapping):
            return None
        username = data.get("username")
        password = data.get("password")
        if not isinstance(username, str) or not isinstance(password, str):
            return None
        return cls(username=username, password=password)
