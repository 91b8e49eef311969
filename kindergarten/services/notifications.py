"""Transient user notifications, kept in the browser session until shown."""
from __future__ import annotations

import logging
from typing import Literal

from kindergarten.repositories.storage import KeyValueStore

logger = logging.getLogger(__name__)

FLASH_KEY = "notifications"
KINDS = ("success", "error", "info")

Kind = Literal["success", "error", "info"]


class Notifier:
    """``show`` queues a message on a session; ``pop`` hands them to the next page."""

    def show(self, session: KeyValueStore, message: str, kind: Kind = "success") -> None:
        if kind not in KINDS:
            kind = "info"
        # a new notification replaces the one still pending
        if not session.set(FLASH_KEY, [{"message": message, "kind": kind}]):
            logger.debug("Notification dropped", extra={"payload": {"message": message}})

    def pop(self, session: KeyValueStore) -> list[dict]:
        pending = session.get(FLASH_KEY)
        session.remove(FLASH_KEY)
        if not isinstance(pending, list):
            return []
        return [item for item in pending if isinstance(item, dict) and item.get("message")]
