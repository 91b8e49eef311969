"""Browser sessions: an opaque cookie token mapped to a per-session store."""
from __future__ import annotations

import secrets
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

from fastapi import Request, Response

from kindergarten.core.config import get_settings
from kindergarten.repositories.storage import MemoryStore

SESSION_COOKIE_NAME = "kg_session"


@dataclass
class BrowserSession:
    token: str
    store: MemoryStore = field(default_factory=MemoryStore)
    last_seen: float = 0.0


class SessionRegistry:
    """Holds session-scoped storage; idle sessions expire after ``timeout_seconds``."""

    def __init__(self, timeout_seconds: int = 1800, clock: Callable[[], float] = time.time) -> None:
        self.timeout_seconds = timeout_seconds
        self._clock = clock
        self._sessions: dict[str, BrowserSession] = {}
        self._lock = threading.Lock()

    def _expired(self, session: BrowserSession, now: float) -> bool:
        return self.timeout_seconds > 0 and session.last_seen + self.timeout_seconds < now

    def issue(self) -> BrowserSession:
        token = secrets.token_urlsafe(32)
        session = BrowserSession(token=token, last_seen=self._clock())
        with self._lock:
            self._sessions[token] = session
        return session

    def get(self, token: Optional[str]) -> Optional[BrowserSession]:
        if not token:
            return None
        now = self._clock()
        with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if self._expired(session, now):
                del self._sessions[token]
                return None
            session.last_seen = now
            return session

    def get_or_issue(self, token: Optional[str]) -> BrowserSession:
        return self.get(token) or self.issue()

    def discard(self, token: Optional[str]) -> None:
        if not token:
            return
        with self._lock:
            self._sessions.pop(token, None)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            stale = [token for token, session in self._sessions.items() if self._expired(session, now)]
            for token in stale:
                del self._sessions[token]
        return len(stale)


def current_session(request: Request) -> BrowserSession:
    """Session for this request, issuing a new one if the cookie is missing or stale."""
    cached = getattr(request.state, "browser_session", None)
    if cached is not None:
        return cached
    registry: SessionRegistry = request.app.state.sessions
    session = registry.get_or_issue(request.cookies.get(SESSION_COOKIE_NAME))
    request.state.browser_session = session
    return session


def set_session_cookie(response: Response, token: str) -> None:
    settings = get_settings()
    # no max_age: the cookie lives as long as the browser session
    response.set_cookie(
        SESSION_COOKIE_NAME,
        token,
        httponly=True,
        secure=settings.is_production,
        samesite="strict",
        path="/",
    )


def rotate_session(request: Request) -> BrowserSession:
    """Replace the caller's session with a fresh one (login and logout)."""
    registry: SessionRegistry = request.app.state.sessions
    registry.discard(request.cookies.get(SESSION_COOKIE_NAME))
    old = getattr(request.state, "browser_session", None)
    if old is not None:
        registry.discard(old.token)
    session = registry.issue()
    request.state.browser_session = session
    return session
