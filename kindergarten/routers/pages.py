from __future__ import annotations

import asyncio

from fastapi import APIRouter, Form, Request
from starlette.concurrency import run_in_threadpool

from kindergarten.core.rate_limiter import client_ip
from kindergarten.repositories.content import ValidationError
from kindergarten.routers.common import notify, protect, redirect, render_page
from kindergarten.services.contact_service import RateLimitedError

router = APIRouter(prefix="", tags=["pages"])


@router.get("/")
def home(request: Request):
    state = request.app.state
    state.analytics.track_page_view("home", "Ana Sayfa")
    return render_page(
        request,
        "index.html",
        {
            "activities_html": state.fragments["public_activities"].html,
            "blog_html": state.fragments["public_blog"].html,
        },
    )


@router.post("/contact")
async def submit_contact(
    request: Request,
    name: str = Form(""),
    email: str = Form(""),
    message: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    state = request.app.state
    try:
        await run_in_threadpool(
            state.contact_service.submit,
            {"name": name, "email": email, "message": message},
            client=client_ip(request),
            user_agent=request.headers.get("user-agent", ""),
        )
    except (ValidationError, RateLimitedError) as exc:
        notify(request, exc.message, "error")
        return redirect(request, "/#contact")
    delay = state.settings.contact_submit_delay_seconds
    if delay:
        await asyncio.sleep(delay)
    notify(request, "Mesajınız başarıyla gönderildi!", "success")
    return redirect(request, "/#contact")


@router.get("/health")
def health():
    return {"ok": True}
