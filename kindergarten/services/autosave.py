"""Periodic write-back of content collections with unsaved changes, plus expired-session cleanup."""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from kindergarten.repositories.content import ContentStore
from kindergarten.services.session_service import SessionRegistry

logger = logging.getLogger(__name__)


class Autosaver:
    def __init__(
        self,
        content: ContentStore,
        interval_seconds: float = 30.0,
        sessions: Optional[SessionRegistry] = None,
    ) -> None:
        self.content = content
        self.sessions = sessions
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def flush(self) -> bool:
        ok = self.content.persist_all()
        if not ok:
            logger.warning("Autosave could not persist every collection")
        if self.sessions is not None:
            purged = self.sessions.purge_expired()
            if purged:
                logger.debug("Expired sessions dropped", extra={"payload": {"count": purged}})
        return ok

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            await asyncio.to_thread(self.flush)

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.get_running_loop().create_task(self._loop())
        logger.debug("Autosave started", extra={"payload": {"interval": self.interval_seconds}})

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self.flush()
