"""Backup export of all content collections into one JSON document."""
from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Optional

from kindergarten.repositories.content import ContentStore


def _now(now: Optional[datetime]) -> datetime:
    return now or datetime.now(timezone.utc)


def build_export(content: ContentStore, now: Optional[datetime] = None) -> dict[str, Any]:
    stamp = _now(now).astimezone(timezone.utc)
    return {
        "activities": [item.to_dict() for item in content.activities.list()],
        "blogPosts": [item.to_dict() for item in content.blog_posts.list()],
        "contactMessages": [item.to_dict() for item in content.messages.list()],
        "exportDate": stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
    }


def export_filename(now: Optional[datetime] = None) -> str:
    return f"anaokulu-backup-{_now(now).astimezone(timezone.utc).date().isoformat()}.json"


def export_json(content: ContentStore, now: Optional[datetime] = None) -> str:
    return json.dumps(build_export(content, now), ensure_ascii=False, indent=2)
