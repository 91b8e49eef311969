"""Application factory: wires storage, repositories, services and routers."""
from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from kindergarten.core.config import SITE_INFO, Settings, get_settings
from kindergarten.core.csrf import CsrfRejected
from kindergarten.core.logging import configure_logging
from kindergarten.core.rate_limiter import RateLimiter
from kindergarten.render.fragments import LiveFragment, render_public_activities, render_public_blog_posts
from kindergarten.repositories.content import ContentStore
from kindergarten.repositories.storage import KeyValueStore, build_store
from kindergarten.routers import admin as admin_router
from kindergarten.routers import pages as pages_router
from kindergarten.routers.common import notify, redirect
from kindergarten.services.analytics import Analytics
from kindergarten.services.autosave import Autosaver
from kindergarten.services.contact_service import ContactService
from kindergarten.services.notifications import Notifier
from kindergarten.services.session_guard import SessionGuard
from kindergarten.services.session_service import SessionRegistry

logger = logging.getLogger(__name__)

BASE = os.path.dirname(__file__)
TEMPLATES_DIR = os.path.join(BASE, "templates")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Inject baseline security headers (CSP, anti clickjacking, referrer policy)."""

    def __init__(self, app, *, enforce_hsts: bool) -> None:
        super().__init__(app)
        self._enforce_hsts = enforce_hsts

    async def dispatch(self, request, call_next):
        response = await call_next(request)
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; "
            "img-src 'self' data: https:; "
            "style-src 'self' 'unsafe-inline' https://cdnjs.cloudflare.com https://fonts.googleapis.com; "
            "font-src 'self' https://cdnjs.cloudflare.com https://fonts.gstatic.com; "
            "script-src 'self' 'unsafe-inline'; "
            "connect-src 'self'",
        )
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
        if self._enforce_hsts:
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    autosaver: Autosaver = app.state.autosaver
    autosaver.start()
    logger.info("Site ready", extra={"payload": {"backend": app.state.settings.storage_backend}})
    yield
    await autosaver.stop()
    logger.info("Site stopped, content flushed")


def create_app(settings: Optional[Settings] = None, store: Optional[KeyValueStore] = None) -> FastAPI:
    """Factory compatible with uvicorn/gunicorn (``--factory``)."""
    settings = settings or get_settings()
    configure_logging(settings)
    store = store if store is not None else build_store(settings)

    app = FastAPI(title=SITE_INFO["name"], lifespan=lifespan)
    app.state.settings = settings
    app.state.store = store
    app.state.templates = Jinja2Templates(directory=TEMPLATES_DIR)

    content = ContentStore(store, max_messages=settings.contact_max_messages)
    analytics = Analytics()
    app.state.content = content
    app.state.analytics = analytics
    app.state.guard = SessionGuard(store, settings)
    app.state.sessions = SessionRegistry(settings.session_timeout_seconds)
    app.state.notifier = Notifier()
    app.state.contact_service = ContactService(
        messages=content.messages,
        limiter=RateLimiter(),
        analytics=analytics,
        window_seconds=settings.contact_rate_limit_seconds,
    )
    app.state.fragments = {
        "public_activities": LiveFragment(content.activities, render_public_activities),
        "public_blog": LiveFragment(content.blog_posts, render_public_blog_posts),
    }
    app.state.autosaver = Autosaver(content, settings.autosave_interval_seconds, sessions=app.state.sessions)

    app.add_middleware(SecurityHeadersMiddleware, enforce_hsts=settings.is_production)

    @app.exception_handler(CsrfRejected)
    async def csrf_rejected(request: Request, exc: CsrfRejected):
        # usually an idle session that expired while the form was open
        notify(request, "Oturumunuzun süresi doldu. Lütfen formu tekrar gönderin.", "error")
        return redirect(request, "/admin" if request.url.path.startswith("/admin") else "/#contact")

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception):
        logger.exception("Unhandled error", extra={"payload": {"path": request.url.path}})
        return app.state.templates.TemplateResponse(
            request,
            "error.html",
            {"site": SITE_INFO, "message": "Beklenmeyen bir hata oluştu. Lütfen daha sonra tekrar deneyin."},
            status_code=500,
        )

    app.include_router(pages_router.router)
    app.include_router(admin_router.router)
    return app
