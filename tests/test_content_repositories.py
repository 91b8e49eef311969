from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.domain.ids import IdGenerator
from kindergarten.domain.models import Activity, BlogPost, ContactMessage
from kindergarten.repositories.content import (
    ActivityRepository,
    BlogPostRepository,
    ContactMessageRepository,
    ContentStore,
    NotFoundError,
    ValidationError,
)
from kindergarten.repositories.storage import MemoryStore

NOW = "2024-02-15T10:00:00.000Z"


def fixed_clock() -> str:
    return NOW


@pytest.fixture()
def store():
    return MemoryStore()


@pytest.fixture()
def ids():
    # frozen wall clock: ids still increase by one
    return IdGenerator(clock=lambda: 1_700_000_000.0)


@pytest.fixture()
def content(store, ids):
    return ContentStore(store, id_generator=ids, clock=fixed_clock)


def activity_fields(**overrides):
    data = {"title": "Piknik", "date": "2024-05-01", "location": "Bahçe"}
    data.update(overrides)
    return data


def test_blog_post_create_is_listed_and_persisted(content, store):
    post = content.blog_posts.create({"title": "Test", "author": "A", "content": "Hello"})

    assert isinstance(post, BlogPost)
    assert post.title == "Test"
    assert post.category is None
    assert post.tags == ()
    assert post.createdAt == NOW
    assert content.blog_posts.list() == (post,)

    stored = store.get("blogPosts")
    assert stored[0]["title"] == "Test"
    assert stored[0]["tags"] == []


def test_newest_record_comes_first(content):
    first = content.activities.create(activity_fields(title="Birinci"))
    second = content.activities.create(activity_fields(title="İkinci"))

    assert second.id > first.id
    assert [a.title for a in content.activities.list()] == ["İkinci", "Birinci"]


def test_missing_required_field_raises_validation_error(content, store):
    with pytest.raises(ValidationError) as exc:
        content.blog_posts.create({"title": "", "author": "A", "content": "Hello"})

    assert exc.value.message == "Blog başlığı gereklidir!"
    assert "title" in exc.value.errors
    assert store.get("blogPosts") is None


def test_text_fields_are_sanitized(content):
    post = content.blog_posts.create(
        {"title": "  <b>Bahar</b>  ", "author": "A", "content": "javascript:alert(1) onclick=x metin"}
    )
    assert post.title == "bBahar/b"
    assert "javascript:" not in post.content
    assert "onclick=" not in post.content


def test_activity_capacity_rules(content):
    assert content.activities.create(activity_fields(capacity="20")).capacity == 20
    assert content.activities.create(activity_fields(capacity="")).capacity is None

    with pytest.raises(ValidationError):
        content.activities.create(activity_fields(capacity="yirmi"))
    with pytest.raises(ValidationError):
        content.activities.create(activity_fields(capacity="-1"))


def test_blog_category_and_tags(content):
    post = content.blog_posts.create(
        {"title": "T", "author": "A", "content": "C", "category": "egitim", "tags": "oyun, müzik,, sanat "}
    )
    assert post.category == "egitim"
    assert post.tags == ("oyun", "müzik", "sanat")

    with pytest.raises(ValidationError):
        content.blog_posts.create({"title": "T", "author": "A", "content": "C", "category": "bilinmeyen"})


def test_update_merges_fields_and_keeps_id(content):
    created = content.activities.create(activity_fields(description="Eski"))

    updated = content.activities.update(created.id, {"title": "Yeni başlık", "id": 1})

    assert updated.id == created.id
    assert updated.title == "Yeni başlık"
    assert updated.description == "Eski"
    assert updated.createdAt == created.createdAt
    assert updated.updatedAt == NOW
    assert content.activities.get(str(created.id)) == updated


def test_update_cannot_blank_a_required_field(content):
    created = content.activities.create(activity_fields())
    with pytest.raises(ValidationError):
        content.activities.update(created.id, {"location": "   "})
    assert content.activities.get(created.id).location == "Bahçe"


def test_unknown_id_raises_not_found(content):
    with pytest.raises(NotFoundError):
        content.activities.update(12345, {"title": "x"})
    with pytest.raises(NotFoundError):
        content.blog_posts.get("nope")
    with pytest.raises(NotFoundError):
        content.messages.delete(12345, True)


def test_delete_requires_confirmation(content):
    created = content.activities.create(activity_fields())

    assert content.activities.delete(created.id, False) is False
    assert content.activities.delete(created.id, lambda: False) is False
    assert content.activities.count() == 1

    assert content.activities.delete(created.id, lambda: True) is True
    assert content.activities.count() == 0


def test_collections_survive_a_reload(store, ids, content):
    content.activities.create(activity_fields(capacity="12", time="10:30"))
    content.blog_posts.create({"title": "T", "author": "A", "content": "C", "tags": "x,y"})
    content.messages.create({"name": "Ayşe", "email": "a@b.co", "message": "Merhaba dünya"})

    fresh = ContentStore(store, id_generator=ids, clock=fixed_clock)

    assert fresh.activities.list() == content.activities.list()
    assert fresh.blog_posts.list() == content.blog_posts.list()
    assert fresh.messages.list() == content.messages.list()


def test_malformed_stored_records_are_skipped(store, ids):
    store.set(
        "activities",
        [{"id": 1, "title": "Geçerli", "date": "2024-01-01", "location": "Sınıf"}, "junk", {"bogus": True}],
    )
    repo = ActivityRepository(store, id_generator=ids)

    assert [a.title for a in repo.list()] == ["Geçerli"]


def test_new_ids_skip_ids_already_stored(store):
    store.set("activities", [{"id": 1_700_000_000_000, "title": "Eski", "date": "2024-01-01", "location": "Sınıf"}])
    repo = ActivityRepository(store, id_generator=IdGenerator(clock=lambda: 1_700_000_000.0))

    created = repo.create(activity_fields())

    assert created.id != 1_700_000_000_000
    assert len({a.id for a in repo.list()}) == 2


def test_persist_before_first_load_leaves_store_untouched(store, ids):
    store.set("activities", [{"id": 1, "title": "Eski", "date": "2024-01-01", "location": "Sınıf"}])
    repo = ActivityRepository(store, id_generator=ids)

    assert repo.loaded is False
    assert repo.persist() is True
    assert len(store.get("activities")) == 1


def test_listeners_are_notified_and_failures_are_contained(content):
    seen = []

    def broken(_repo):
        raise RuntimeError("boom")

    content.activities.subscribe(broken)
    content.activities.subscribe(lambda repo: seen.append(repo.count()))

    content.activities.create(activity_fields())

    assert seen == [1]
    assert content.activities.count() == 1


def test_new_messages_start_unread(content):
    message = content.messages.create(
        {"name": "Ayşe", "email": "a@b.co", "message": "Merhaba dünya", "read": True}
    )
    assert isinstance(message, ContactMessage)
    assert message.read is False
    assert content.messages.unread_count() == 1


def test_mark_read_is_idempotent_and_filters(content):
    first = content.messages.create({"name": "Ayşe", "email": "a@b.co", "message": "Birinci mesaj"})
    second = content.messages.create({"name": "Ali", "email": "c@d.co", "message": "İkinci mesaj"})

    content.messages.mark_read(first.id)
    content.messages.mark_read(first.id)

    assert content.messages.unread_count() == 1
    assert [m.id for m in content.messages.list("read")] == [first.id]
    assert [m.id for m in content.messages.list("unread")] == [second.id]
    assert len(content.messages.list("all")) == 2

    content.messages.mark_unread(first.id)
    assert content.messages.unread_count() == 2

    with pytest.raises(ValueError):
        content.messages.list("archived")


def test_message_history_is_capped(store, ids):
    repo = ContactMessageRepository(store, max_items=3, id_generator=ids, clock=fixed_clock)
    created = [
        repo.create({"name": f"Kişi {i}", "email": "a@b.co", "message": f"Mesaj numarası {i}"}) for i in range(4)
    ]

    kept = [m.id for m in repo.list()]
    assert len(kept) == 3
    assert created[0].id not in kept
    assert kept[0] == created[-1].id
    assert len(store.get("contactMessages")) == 3


def test_default_message_cap():
    assert ContactMessageRepository(MemoryStore()).max_items == 1000


def test_stats(content):
    content.activities.create(activity_fields())
    content.blog_posts.create({"title": "T", "author": "A", "content": "C"})
    message = content.messages.create({"name": "Ayşe", "email": "a@b.co", "message": "Merhaba dünya"})
    content.messages.create({"name": "Ali", "email": "c@d.co", "message": "Merhaba tekrar"})
    content.messages.mark_read(message.id)

    assert content.stats() == {"activities": 1, "blogPosts": 1, "messages": 2, "unreadMessages": 1}


def test_record_from_dict_coerces_optional_fields():
    activity = Activity.from_dict(
        {"id": 3, "title": "T", "date": "2024-01-01", "location": "L", "time": "", "capacity": "8", "extra": 1}
    )
    assert activity.time is None
    assert activity.capacity == 8
    assert "extra" not in activity.to_dict()


def test_blog_repository_uses_its_storage_key(store, ids):
    BlogPostRepository(store, id_generator=ids).create({"title": "T", "author": "A", "content": "C"})
    assert store.get("blogPosts") is not None
    assert store.get("activities") is None
