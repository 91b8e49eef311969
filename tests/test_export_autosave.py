from __future__ import annotations

import asyncio
import json
import sys
from datetime import datetime, timezone
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.repositories.content import ContentStore
from kindergarten.repositories.storage import MemoryStore, StorageError
from kindergarten.services.analytics import Analytics
from kindergarten.services.autosave import Autosaver
from kindergarten.services.export_service import build_export, export_filename, export_json
from kindergarten.services.notifications import Notifier
from kindergarten.services.session_service import SessionRegistry

STAMP = datetime(2024, 2, 15, 10, 0, tzinfo=timezone.utc)


def seeded_content() -> ContentStore:
    content = ContentStore(MemoryStore())
    content.activities.create({"title": "Piknik", "date": "2024-05-01", "location": "Park"})
    content.blog_posts.create({"title": "Renkli Dünya", "author": "Zeynep", "content": "İçerik"})
    content.messages.create({"name": "Ayşe", "email": "a@b.co", "message": "Merhaba dünya"})
    return content


def test_build_export_contains_every_collection():
    data = build_export(seeded_content(), STAMP)

    assert set(data) == {"activities", "blogPosts", "contactMessages", "exportDate"}
    assert data["activities"][0]["title"] == "Piknik"
    assert data["blogPosts"][0]["tags"] == []
    assert data["contactMessages"][0]["read"] is False
    assert data["exportDate"] == "2024-02-15T10:00:00.000Z"


def test_export_filename_and_json():
    assert export_filename(STAMP) == "anaokulu-backup-2024-02-15.json"

    body = export_json(seeded_content(), STAMP)
    assert "Renkli Dünya" in body
    assert json.loads(body)["blogPosts"][0]["author"] == "Zeynep"


def test_export_of_empty_site():
    data = build_export(ContentStore(MemoryStore()), STAMP)
    assert data["activities"] == [] and data["blogPosts"] == [] and data["contactMessages"] == []


class FlakyStore(MemoryStore):
    """Memory store whose writes fail while ``down`` is set."""

    down = False

    def _write(self, key: str, raw: str) -> None:
        if self.down:
            raise StorageError("disk unavailable")
        super()._write(key, raw)


def content_with_unsaved_activity() -> ContentStore:
    store = FlakyStore()
    content = ContentStore(store)
    store.down = True
    content.activities.create({"title": "Piknik", "date": "2024-05-01", "location": "Park"})
    store.down = False
    assert store.get("activities") is None
    return content


def test_autosaver_flushes_on_stop():
    content = content_with_unsaved_activity()
    saver = Autosaver(content, interval_seconds=60)

    async def scenario():
        saver.start()
        assert saver.running
        await saver.stop()

    asyncio.run(scenario())

    assert saver.running is False
    assert content.store.get("activities")[0]["title"] == "Piknik"


def test_autosaver_persists_on_interval():
    content = content_with_unsaved_activity()
    saver = Autosaver(content, interval_seconds=0.01)

    async def scenario():
        saver.start()
        for _ in range(100):
            await asyncio.sleep(0.01)
            if content.store.get("activities") is not None:
                break
        restored = content.store.get("activities")
        await saver.stop()
        return restored

    restored = asyncio.run(scenario())
    assert restored[0]["title"] == "Piknik"


def test_flush_leaves_unchanged_collections_alone():
    content = seeded_content()
    content.store.remove("blogPosts")

    assert Autosaver(content).flush() is True

    assert content.store.get("blogPosts") is None
    assert content.store.get("activities")[0]["title"] == "Piknik"


def test_autosaver_flush_drops_expired_sessions():
    now = [1000.0]
    sessions = SessionRegistry(timeout_seconds=60, clock=lambda: now[0])
    stale = sessions.issue()
    now[0] += 50
    fresh = sessions.issue()
    now[0] += 20

    assert Autosaver(seeded_content(), sessions=sessions).flush() is True

    # nothing left for a second sweep
    assert sessions.purge_expired() == 0
    assert sessions.get(stale.token) is None
    assert sessions.get(fresh.token) is fresh


def test_notifier_keeps_latest_and_pops_once():
    session = MemoryStore()
    notifier = Notifier()

    notifier.show(session, "İlk", "success")
    notifier.show(session, "Son", "unknown")

    assert notifier.pop(session) == [{"message": "Son", "kind": "info"}]
    assert notifier.pop(session) == []


def test_analytics_buffer():
    analytics = Analytics(max_events=2)
    analytics.track_page_view("home", "Ana Sayfa")
    analytics.track_form_submission("contact_form", True, {"messageId": 1})
    analytics.track_event("admin_login")

    names = [e["name"] for e in analytics.events()]
    assert names == ["form_submission", "admin_login"]
    assert analytics.events("form_submission")[0]["params"]["success"] is True

    disabled = Analytics(enabled=False)
    disabled.track_event("x")
    assert disabled.events() == []
