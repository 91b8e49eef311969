"""Persistence layer: key-value store backends and the content repositories."""

from .content import (
    ActivityRepository,
    BlogPostRepository,
    ContactMessageRepository,
    ContentRepository,
    ContentStore,
    NotFoundError,
    ValidationError,
)
from .storage import JSONFileStore, KeyValueStore, MemoryStore, SQLStore, StorageError, build_store

__all__ = [
    "ActivityRepository",
    "BlogPostRepository",
    "ContactMessageRepository",
    "ContentRepository",
    "ContentStore",
    "JSONFileStore",
    "KeyValueStore",
    "MemoryStore",
    "NotFoundError",
    "SQLStore",
    "StorageError",
    "ValidationError",
    "build_store",
]
