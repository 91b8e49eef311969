from __future__ import annotations

import logging

from fastapi import APIRouter, Form, Request
from fastapi.responses import Response

from kindergarten.core.sanitize import password_strength
from kindergarten.domain.models import CATEGORY_NAMES
from kindergarten.render.fragments import (
    render_admin_activities,
    render_admin_blog_posts,
    render_admin_messages,
)
from kindergarten.repositories.content import MESSAGE_FILTERS, NotFoundError, ValidationError
from kindergarten.routers.common import form_token, notify, protect, redirect, render_page
from kindergarten.services.export_service import export_filename, export_json
from kindergarten.services.session_guard import AuthError, GuardState, SessionGuard
from kindergarten.services.session_service import current_session, rotate_session

router = APIRouter(prefix="/admin", tags=["admin"])
logger = logging.getLogger(__name__)


def _guard(request: Request) -> SessionGuard:
    return request.app.state.guard


def _logged_in(request: Request) -> bool:
    return _guard(request).is_logged_in(current_session(request).store)


def _form_context(request: Request) -> dict:
    settings = request.app.state.settings
    return {
        "categories": CATEGORY_NAMES,
        "username_min": settings.username_min_length,
        "password_min": settings.password_min_length,
    }


# ---------------------- auth ----------------------
@router.get("")
def dashboard(request: Request, messages: str = "all"):
    state = _guard(request).state(current_session(request).store)
    if state is GuardState.NEEDS_CREDENTIAL_SETUP:
        return render_page(request, "admin_setup.html", _form_context(request))
    if state is GuardState.LOGGED_OUT:
        return render_page(request, "admin_login.html")

    content = request.app.state.content
    message_filter = messages if messages in MESSAGE_FILTERS else "all"
    token = form_token(request)
    context = {
        **_form_context(request),
        "stats": content.stats(),
        "message_filter": message_filter,
        "activities_html": render_admin_activities(content.activities.list(), token),
        "blog_html": render_admin_blog_posts(content.blog_posts.list(), token),
        "messages_html": render_admin_messages(content.messages.list(message_filter), message_filter, token),
    }
    return render_page(request, "admin_dashboard.html", context)


@router.get("/login")
def login_page(request: Request):
    if _logged_in(request):
        return redirect(request, "/admin")
    return render_page(request, "admin_login.html")


@router.post("/setup")
def setup(
    request: Request,
    username: str = Form(""),
    password: str = Form(""),
    confirm_password: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    guard = _guard(request)
    try:
        guard.setup_credentials(current_session(request).store, username, password, confirm_password)
        guard.login(rotate_session(request).store, username.strip(), password)
    except (ValidationError, AuthError) as exc:
        notify(request, exc.message, "error")
        return redirect(request, "/admin")
    notify(request, "Güvenlik ayarları başarıyla kaydedildi!", "success")
    return redirect(request, "/admin")


@router.post("/login")
def login(request: Request, username: str = Form(""), password: str = Form(""), csrf_token: str = Form("")):
    protect(request, csrf_token)
    try:
        _guard(request).login(rotate_session(request).store, username, password)
    except AuthError as exc:
        notify(request, exc.message, "error")
        return redirect(request, "/admin/login")
    request.app.state.analytics.track_event("admin_login", {"success": True})
    notify(request, "Başarıyla giriş yapıldı!", "success")
    return redirect(request, "/admin")


@router.post("/logout")
def logout(request: Request, csrf_token: str = Form("")):
    protect(request, csrf_token)
    _guard(request).logout(current_session(request).store)
    rotate_session(request)
    notify(request, "Başarıyla çıkış yapıldı!", "info")
    return redirect(request, "/admin/login")


@router.post("/password")
def change_password(
    request: Request,
    current_password: str = Form(""),
    new_password: str = Form(""),
    confirm_password: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    if not _logged_in(request):
        return redirect(request, "/admin")
    try:
        _guard(request).change_password(current_session(request).store, current_password, new_password, confirm_password)
    except (ValidationError, AuthError) as exc:
        notify(request, exc.message, "error")
        return redirect(request, "/admin#changePassword")
    notify(request, "Şifre başarıyla değiştirildi!", "success")
    return redirect(request, "/admin")


@router.get("/password-strength")
def check_password_strength(value: str = ""):
    return {"strength": password_strength(value)}


# ---------------------- content helpers ----------------------
def _mutate(request: Request, action, success: str, anchor: str, *, kind: str = "success"):
    """Run a repository call inside the admin guard and report the outcome."""
    if not _logged_in(request):
        return redirect(request, "/admin")
    try:
        result = action()
    except (ValidationError, NotFoundError) as exc:
        notify(request, exc.message, "error")
        return redirect(request, f"/admin#{anchor}")
    if result is False:
        notify(request, "İşlem iptal edildi.", "info")
    else:
        notify(request, success, kind)
    return redirect(request, f"/admin#{anchor}")


def _edit_page(request: Request, repository, item_id: int, template: str, name: str, anchor: str):
    if not _logged_in(request):
        return redirect(request, "/admin")
    try:
        record = repository.get(item_id)
    except NotFoundError as exc:
        notify(request, exc.message, "error")
        return redirect(request, f"/admin#{anchor}")
    return render_page(request, template, {**_form_context(request), name: record})


# ---------------------- activities ----------------------
def _activity_fields(title, date, time, location, description, image, capacity) -> dict:
    return {
        "title": title,
        "date": date,
        "time": time,
        "location": location,
        "description": description,
        "image": image,
        "capacity": capacity,
    }


@router.post("/activities")
def create_activity(
    request: Request,
    title: str = Form(""),
    date: str = Form(""),
    time: str = Form(""),
    location: str = Form(""),
    description: str = Form(""),
    image: str = Form(""),
    capacity: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    repo = request.app.state.content.activities
    fields = _activity_fields(title, date, time, location, description, image, capacity)
    return _mutate(request, lambda: repo.create(fields), "Etkinlik başarıyla eklendi!", "activitiesManagement")


@router.get("/activities/{item_id}/edit")
def edit_activity(request: Request, item_id: int):
    repo = request.app.state.content.activities
    return _edit_page(request, repo, item_id, "admin_edit_activity.html", "activity", "activitiesManagement")


@router.post("/activities/{item_id}")
def update_activity(
    request: Request,
    item_id: int,
    title: str = Form(""),
    date: str = Form(""),
    time: str = Form(""),
    location: str = Form(""),
    description: str = Form(""),
    image: str = Form(""),
    capacity: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    repo = request.app.state.content.activities
    fields = _activity_fields(title, date, time, location, description, image, capacity)
    return _mutate(request, lambda: repo.update(item_id, fields), "Etkinlik başarıyla güncellendi!", "activitiesManagement")


@router.post("/activities/{item_id}/delete")
def delete_activity(request: Request, item_id: int, confirm: str = Form(""), csrf_token: str = Form("")):
    protect(request, csrf_token)
    repo = request.app.state.content.activities
    return _mutate(
        request, lambda: repo.delete(item_id, lambda: confirm == "yes"), "Etkinlik silindi!", "activitiesManagement", kind="info"
    )


# ---------------------- blog ----------------------
def _blog_fields(title, author, category, content, image, tags) -> dict:
    return {"title": title, "author": author, "category": category, "content": content, "image": image, "tags": tags}


@router.post("/blog")
def create_blog_post(
    request: Request,
    title: str = Form(""),
    author: str = Form(""),
    category: str = Form(""),
    content: str = Form(""),
    image: str = Form(""),
    tags: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    repo = request.app.state.content.blog_posts
    fields = _blog_fields(title, author, category, content, image, tags)
    return _mutate(request, lambda: repo.create(fields), "Blog yazısı başarıyla eklendi!", "blogManagement")


@router.get("/blog/{item_id}/edit")
def edit_blog_post(request: Request, item_id: int):
    repo = request.app.state.content.blog_posts
    return _edit_page(request, repo, item_id, "admin_edit_blog.html", "post", "blogManagement")


@router.post("/blog/{item_id}")
def update_blog_post(
    request: Request,
    item_id: int,
    title: str = Form(""),
    author: str = Form(""),
    category: str = Form(""),
    content: str = Form(""),
    image: str = Form(""),
    tags: str = Form(""),
    csrf_token: str = Form(""),
):
    protect(request, csrf_token)
    repo = request.app.state.content.blog_posts
    fields = _blog_fields(title, author, category, content, image, tags)
    return _mutate(request, lambda: repo.update(item_id, fields), "Blog yazısı başarıyla güncellendi!", "blogManagement")


@router.post("/blog/{item_id}/delete")
def delete_blog_post(request: Request, item_id: int, confirm: str = Form(""), csrf_token: str = Form("")):
    protect(request, csrf_token)
    repo = request.app.state.content.blog_posts
    return _mutate(
        request, lambda: repo.delete(item_id, lambda: confirm == "yes"), "Blog yazısı silindi!", "blogManagement", kind="info"
    )


# ---------------------- messages ----------------------
@router.post("/messages/{item_id}/read")
def mark_message_read(request: Request, item_id: int, csrf_token: str = Form("")):
    protect(request, csrf_token)
    repo = request.app.state.content.messages
    return _mutate(request, lambda: repo.mark_read(item_id), "Mesaj okundu olarak işaretlendi!", "messagesManagement")


@router.post("/messages/{item_id}/unread")
def mark_message_unread(request: Request, item_id: int, csrf_token: str = Form("")):
    protect(request, csrf_token)
    repo = request.app.state.content.messages
    return _mutate(
        request, lambda: repo.mark_unread(item_id), "Mesaj okunmadı olarak işaretlendi!", "messagesManagement", kind="info"
    )


@router.post("/messages/{item_id}/delete")
def delete_message(request: Request, item_id: int, confirm: str = Form(""), csrf_token: str = Form("")):
    protect(request, csrf_token)
    repo = request.app.state.content.messages
    return _mutate(
        request, lambda: repo.delete(item_id, lambda: confirm == "yes"), "Mesaj silindi!", "messagesManagement", kind="info"
    )


# ---------------------- export ----------------------
@router.get("/export")
def export(request: Request):
    if not _logged_in(request):
        return redirect(request, "/admin")
    body = export_json(request.app.state.content)
    filename = export_filename()
    logger.info("Content exported", extra={"payload": {"filename": filename}})
    return Response(
        content=body.encode("utf-8"),
        media_type="application/json",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
