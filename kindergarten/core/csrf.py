"""
CSRF protection for the site's HTML forms.

Each browser session owns one random token, kept server-side in the session
store. Forms echo it in a hidden ``csrf_token`` field (scripts may send the
``x-csrf-token`` header instead); a POST is accepted only when the echoed
value matches and the request does not come from a foreign origin.
"""

from __future__ import annotations

import logging
import secrets
from urllib import parse as urlparse

from fastapi import HTTPException, Request

from kindergarten.repositories.storage import KeyValueStore

logger = logging.getLogger(__name__)

SESSION_KEY = "csrfToken"
HEADER_NAME = "x-csrf-token"
TOKEN_BYTES = 32


class CsrfRejected(HTTPException):
    def __init__(self, reason: str):
        super().__init__(status_code=403, detail=reason)
        self.reason = reason


def session_token(session: KeyValueStore) -> str:
    """Token bound to ``session``, created on first use."""
    token = session.get(SESSION_KEY)
    if isinstance(token, str) and len(token) >= 16:
        return token
    token = secrets.token_urlsafe(TOKEN_BYTES)
    session.set(SESSION_KEY, token)
    return token


def _same_origin(request: Request) -> bool:
    source = request.headers.get("origin") or request.headers.get("referer")
    if not source:
        return True
    try:
        source_host = (urlparse.urlparse(source).hostname or "").lower()
    except ValueError:
        return False
    own_host = (request.headers.get("host") or "").split(":", 1)[0].lower()
    return not (source_host and own_host) or source_host == own_host


def validate_csrf(request: Request, session: KeyValueStore, supplied: str | None) -> None:
    """Raise :class:`CsrfRejected` unless ``supplied`` matches the session token."""
    expected = session.get(SESSION_KEY)
    candidate = (supplied or "").strip() or (request.headers.get(HEADER_NAME) or "").strip()
    if not isinstance(expected, str) or not candidate:
        logger.warning("CSRF token missing", extra={"payload": {"path": request.url.path}})
        raise CsrfRejected("CSRF token eksik.")
    if not secrets.compare_digest(expected.encode("utf-8"), candidate.encode("utf-8")):
        logger.warning("CSRF token mismatch", extra={"payload": {"path": request.url.path}})
        raise CsrfRejected("CSRF token geçersiz.")
    if not _same_origin(request):
        logger.warning("Cross-origin form post", extra={"payload": {"path": request.url.path}})
        raise CsrfRejected("Geçersiz kaynak.")
