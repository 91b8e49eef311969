"""Usage events: logged and kept in a bounded in-memory buffer."""
from __future__ import annotations

import logging
import time
from collections import deque
from typing import Any, Mapping, Optional

logger = logging.getLogger(__name__)


class Analytics:
    def __init__(self, max_events: int = 1000, enabled: bool = True) -> None:
        self.enabled = enabled
        self._events: deque[dict[str, Any]] = deque(maxlen=max_events)

    def track_event(self, name: str, params: Optional[Mapping[str, Any]] = None) -> None:
        if not self.enabled:
            return
        event = {"name": name, "params": dict(params or {}), "timestamp": int(time.time() * 1000)}
        self._events.append(event)
        logger.info(f"event {name}", extra={"payload": event["params"]})

    def track_page_view(self, page: str, title: str = "") -> None:
        self.track_event("page_view", {"page": page, "title": title})

    def track_form_submission(self, form_name: str, success: bool, data: Optional[Mapping[str, Any]] = None) -> None:
        self.track_event("form_submission", {"form": form_name, "success": success, **dict(data or {})})

    def events(self, name: Optional[str] = None) -> list[dict[str, Any]]:
        return [e for e in self._events if name is None or e["name"] == name]
