"""
HTML fragments for the content lists.

Every function here is pure: records in, markup string out. Lists are always
rendered whole; an empty collection yields a fixed empty-state block with a
call to action. Values were sanitized when stored and are escaped again here.
"""

from __future__ import annotations

import html
import threading
from datetime import date, datetime
from typing import Any, Callable, Iterable, Mapping, Optional

from kindergarten.domain.models import Activity, BlogPost, ContactMessage, category_name

MONTHS_TR = (
    "Ocak", "Şubat", "Mart", "Nisan", "Mayıs", "Haziran",
    "Temmuz", "Ağustos", "Eylül", "Ekim", "Kasım", "Aralık",
)
WEEKDAYS_TR = ("Pazartesi", "Salı", "Çarşamba", "Perşembe", "Cuma", "Cumartesi", "Pazar")

PREVIEW_LENGTH = 200

EMPTY_MESSAGES = {
    "all": "Henüz mesaj bulunmuyor",
    "unread": "Okunmamış mesaj bulunmuyor",
    "read": "Okunmuş mesaj bulunmuyor",
}


def _e(value: Any) -> str:
    return html.escape("" if value is None else str(value))


def format_date(value: Any) -> str:
    """``2024-02-15`` -> ``15 Şubat 2024 Perşembe``; unknown formats pass through."""
    if not value:
        return ""
    text = str(value).strip()
    try:
        parsed: date = datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        try:
            parsed = date.fromisoformat(text[:10])
        except ValueError:
            return text
    return f"{parsed.day} {MONTHS_TR[parsed.month - 1]} {parsed.year} {WEEKDAYS_TR[parsed.weekday()]}"


def preview(text: str, limit: int = PREVIEW_LENGTH) -> str:
    return text[:limit] + "..." if len(text) > limit else text


# ------------------------------------------ view models ------------------------------------------
def activity_view(activity: Activity) -> dict[str, Any]:
    return {
        "id": activity.id,
        "title": activity.title,
        "date": format_date(activity.date),
        "time": activity.time or "",
        "location": activity.location,
        "capacity": activity.capacity,
        "description": activity.description,
        "image": activity.image or "",
    }


def blog_view(post: BlogPost, *, truncate: bool = False) -> dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "author": post.author,
        "category": category_name(post.category) if post.category else "",
        "date": format_date(post.createdAt),
        "tags": ", ".join(post.tags),
        "content": preview(post.content) if truncate else post.content,
        "image": post.image or "",
    }


def message_view(message: ContactMessage) -> dict[str, Any]:
    return {
        "id": message.id,
        "name": message.name,
        "email": message.email,
        "date": format_date(message.createdAt),
        "message": message.message,
        "read": message.read,
    }


# ------------------------------------------ shared pieces ------------------------------------------
def _empty_state(icon: str, heading: str, text: str, action: str = "", css: str = "empty-state") -> str:
    return (
        f"<div class='{css}'>"
        f"<i class='fas fa-{icon}'></i>"
        f"<h3>{_e(heading)}</h3>"
        f"<p>{_e(text)}</p>"
        f"{action}"
        f"</div>"
    )


def _image(src: str, alt: str, css: str) -> str:
    if not src:
        return ""
    return f"<img src='{_e(src)}' alt='{_e(alt)}' class='{css}' loading='lazy'>"


def _post_button(action: str, label: str, css: str, csrf_token: str, confirm: str = "") -> str:
    onsubmit = ""
    confirm_input = ""
    if confirm:
        # confirm texts are constants without quotes
        onsubmit = f" onsubmit=\"return window.confirm('{confirm}');\""
        confirm_input = "<input type='hidden' name='confirm' value='yes'>"
    return (
        f"<form method='post' action='{_e(action)}' class='inline-form'{onsubmit}>"
        f"<input type='hidden' name='csrf_token' value='{_e(csrf_token)}'>"
        f"{confirm_input}"
        f"<button class='btn {css} btn-sm'>{label}</button>"
        f"</form>"
    )


# ------------------------------------------ admin fragments ------------------------------------------
def render_admin_activities(activities: Iterable[Activity], csrf_token: str = "") -> str:
    items = list(activities)
    if not items:
        return _empty_state(
            "calendar-plus",
            "Henüz etkinlik eklenmemiş",
            "İlk etkinliğinizi eklemek için \"Yeni Etkinlik\" formunu kullanın!",
            "<a class='btn btn-primary' href='#addActivity'><i class='fas fa-plus'></i> İlk Etkinliği Ekle</a>",
        )
    rows = []
    for activity in items:
        v = activity_view(activity)
        meta = f"<i class='fas fa-calendar'></i> {_e(v['date'])}"
        if v["time"]:
            meta += f" • <i class='fas fa-clock'></i> {_e(v['time'])}"
        meta += f"<br><i class='fas fa-map-marker-alt'></i> {_e(v['location'])}"
        if v["capacity"]:
            meta += f" • <i class='fas fa-users'></i> {_e(v['capacity'])} kişi"
        actions = (
            f"<a class='btn btn-warning btn-sm' href='/admin/activities/{v['id']}/edit'><i class='fas fa-edit'></i> Düzenle</a>"
            + _post_button(
                f"/admin/activities/{v['id']}/delete",
                "<i class='fas fa-trash'></i> Sil",
                "btn-danger",
                csrf_token,
                confirm="Bu etkinliği silmek istediğinizden emin misiniz?",
            )
        )
        rows.append(
            f"<div class='content-item' data-id='{v['id']}'>"
            f"<div class='content-item-header'><div>"
            f"<div class='content-item-title'>{_e(v['title'])}</div>"
            f"<div class='content-item-meta'>{meta}</div>"
            f"</div><div class='content-item-actions'>{actions}</div></div>"
            f"<p>{_e(v['description'])}</p>"
            f"{_image(v['image'], v['title'], 'content-item-image')}"
            f"</div>"
        )
    return "".join(rows)


def render_admin_blog_posts(posts: Iterable[BlogPost], csrf_token: str = "") -> str:
    items = list(posts)
    if not items:
        return _empty_state(
            "blog",
            "Henüz blog yazısı eklenmemiş",
            "İlk blog yazınızı eklemek için \"Yeni Blog Yazısı\" formunu kullanın!",
            "<a class='btn btn-primary' href='#addBlog'><i class='fas fa-plus'></i> İlk Blog Yazısını Ekle</a>",
        )
    rows = []
    for post in items:
        v = blog_view(post, truncate=True)
        meta = f"<i class='fas fa-user'></i> {_e(v['author'])}"
        if v["category"]:
            meta += f" • <i class='fas fa-tag'></i> {_e(v['category'])}"
        meta += f"<br><i class='fas fa-calendar'></i> {_e(v['date'])}"
        if v["tags"]:
            meta += f" • <i class='fas fa-hashtag'></i> {_e(v['tags'])}"
        actions = (
            f"<a class='btn btn-warning btn-sm' href='/admin/blog/{v['id']}/edit'><i class='fas fa-edit'></i> Düzenle</a>"
            + _post_button(
                f"/admin/blog/{v['id']}/delete",
                "<i class='fas fa-trash'></i> Sil",
                "btn-danger",
                csrf_token,
                confirm="Bu blog yazısını silmek istediğinizden emin misiniz?",
            )
        )
        rows.append(
            f"<div class='content-item' data-id='{v['id']}'>"
            f"<div class='content-item-header'><div>"
            f"<div class='content-item-title'>{_e(v['title'])}</div>"
            f"<div class='content-item-meta'>{meta}</div>"
            f"</div><div class='content-item-actions'>{actions}</div></div>"
            f"<p>{_e(v['content'])}</p>"
            f"{_image(v['image'], v['title'], 'content-item-image')}"
            f"</div>"
        )
    return "".join(rows)


def render_admin_messages(messages: Iterable[ContactMessage], status: str = "all", csrf_token: str = "") -> str:
    items = list(messages)
    if not items:
        return _empty_state(
            "envelope",
            EMPTY_MESSAGES.get(status, EMPTY_MESSAGES["all"]),
            "İletişim formundan gelen mesajlar burada görünecek.",
        )
    rows = []
    for message in items:
        v = message_view(message)
        badge = "" if v["read"] else " <span class='unread-badge'>Yeni</span>"
        if v["read"]:
            toggle = _post_button(
                f"/admin/messages/{v['id']}/unread", "<i class='fas fa-envelope'></i> Okunmadı İşaretle", "btn-warning", csrf_token
            )
        else:
            toggle = _post_button(
                f"/admin/messages/{v['id']}/read", "<i class='fas fa-check'></i> Okundu İşaretle", "btn-success", csrf_token
            )
        delete = _post_button(
            f"/admin/messages/{v['id']}/delete",
            "<i class='fas fa-trash'></i> Sil",
            "btn-danger",
            csrf_token,
            confirm="Bu mesajı silmek istediğinizden emin misiniz?",
        )
        css = "content-item" if v["read"] else "content-item unread-message"
        rows.append(
            f"<div class='{css}' data-id='{v['id']}'>"
            f"<div class='content-item-header'><div>"
            f"<div class='content-item-title'>{_e(v['name'])}{badge}</div>"
            f"<div class='content-item-meta'><i class='fas fa-envelope'></i> {_e(v['email'])}"
            f"<br><i class='fas fa-calendar'></i> {_e(v['date'])}</div>"
            f"</div><div class='content-item-actions'>{toggle}{delete}</div></div>"
            f"<div class='message-content'><p>{_e(v['message'])}</p></div>"
            f"</div>"
        )
    return "".join(rows)


# ------------------------------------------ public fragments ------------------------------------------
def render_public_activities(activities: Iterable[Activity]) -> str:
    items = list(activities)
    if not items:
        return _empty_state(
            "calendar-plus",
            "Henüz etkinlik eklenmemiş",
            "Yeni etkinliklerimiz için yakında tekrar ziyaret edin!",
            "<a class='btn btn-primary' href='#contact'>Bize Ulaşın</a>",
            css="no-content",
        )
    cards = []
    for activity in items:
        v = activity_view(activity)
        cards.append(
            f"<div class='activity-card'>"
            f"{_image(v['image'], v['title'], 'activity-image')}"
            f"<h3>{_e(v['title'])}</h3>"
            f"<div class='activity-date'><i class='fas fa-calendar'></i> {_e(v['date'])}</div>"
            f"<div class='activity-location'><i class='fas fa-map-marker-alt'></i> {_e(v['location'])}</div>"
            f"<p class='activity-description'>{_e(v['description'])}</p>"
            f"</div>"
        )
    return "".join(cards)


def render_public_blog_posts(posts: Iterable[BlogPost]) -> str:
    items = list(posts)
    if not items:
        return _empty_state(
            "blog",
            "Henüz blog yazısı eklenmemiş",
            "Yeni yazılarımız için yakında tekrar ziyaret edin!",
            "<a class='btn btn-primary' href='#contact'>Bize Ulaşın</a>",
            css="no-content",
        )
    cards = []
    for post in items:
        v = blog_view(post)
        cards.append(
            f"<div class='blog-card'>"
            f"{_image(v['image'], v['title'], 'blog-image')}"
            f"<h3>{_e(v['title'])}</h3>"
            f"<div class='blog-author'><i class='fas fa-user'></i> {_e(v['author'])} - {_e(v['date'])}</div>"
            f"<p class='blog-content'>{_e(v['content'])}</p>"
            f"</div>"
        )
    return "".join(cards)


def render_notifications(notifications: Iterable[Mapping[str, Any]]) -> str:
    icons = {"success": "check-circle", "error": "exclamation-circle"}
    parts = []
    for item in notifications:
        kind = item.get("kind") or "info"
        parts.append(
            f"<div class='notification notification-{_e(kind)}' role='{'alert' if kind == 'error' else 'status'}'>"
            f"<div class='notification-content'><i class='fas fa-{icons.get(kind, 'info-circle')}'></i>"
            f"<span>{_e(item.get('message'))}</span></div></div>"
        )
    return "".join(parts)


class LiveFragment:
    """A rendered fragment that re-renders whenever its repository changes."""

    def __init__(self, repository, render: Callable[[Iterable[Any]], str]) -> None:
        self._repository = repository
        self._render = render
        self._lock = threading.Lock()
        self._html: Optional[str] = None
        self.renders = 0
        repository.subscribe(self._on_change)

    def _on_change(self, repository) -> None:
        self.refresh()

    def refresh(self) -> str:
        markup = self._render(self._repository.list())
        with self._lock:
            self._html = markup
            self.renders += 1
        return markup

    @property
    def html(self) -> str:
        with self._lock:
            cached = self._html
        return cached if cached is not None else self.refresh()
