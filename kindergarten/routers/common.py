"""Helpers shared by the page routers (templates, sessions, redirects)."""
from __future__ import annotations

from typing import Any, Optional

from fastapi import Request
from fastapi.responses import RedirectResponse
from fastapi.templating import Jinja2Templates

from kindergarten.core import csrf
from kindergarten.core.config import SITE_INFO
from kindergarten.render.fragments import render_notifications
from kindergarten.services.session_service import BrowserSession, current_session, set_session_cookie


def _templates(request: Request) -> Jinja2Templates:
    tpl = getattr(getattr(request.app, "state", None), "templates", None)
    if tpl:
        return tpl
    raise RuntimeError("Templates not configured")


def form_token(request: Request) -> str:
    return csrf.session_token(current_session(request).store)


def protect(request: Request, supplied: Optional[str]) -> None:
    """Reject a form post whose token does not belong to the caller's session."""
    csrf.validate_csrf(request, current_session(request).store, supplied)


def notify(request: Request, message: str, kind: str = "success") -> None:
    request.app.state.notifier.show(current_session(request).store, message, kind)


def render_page(request: Request, name: str, context: Optional[dict[str, Any]] = None, status_code: int = 200):
    session: BrowserSession = current_session(request)
    pending = request.app.state.notifier.pop(session.store)
    base = {
        "site": SITE_INFO,
        "csrf_token": csrf.session_token(session.store),
        "notifications_html": render_notifications(pending),
    }
    base.update(context or {})
    response = _templates(request).TemplateResponse(request, name, base, status_code=status_code)
    set_session_cookie(response, session.token)
    return response


def redirect(request: Request, url: str) -> RedirectResponse:
    response = RedirectResponse(url, status_code=303)
    set_session_cookie(response, current_session(request).token)
    return response
