"""Identifier generation for content records."""
from __future__ import annotations

import threading
import time
from typing import Callable, Collection


class IdGenerator:
    """
    Millisecond timestamps, forced strictly increasing and never reusing an id
    already present in the target collection.
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        self._clock = clock
        self._last = 0
        self._lock = threading.Lock()

    def next_id(self, taken: Collection[int] = ()) -> int:
        with self._lock:
            candidate = max(int(self._clock() * 1000), self._last + 1)
            while candidate in taken:
                candidate += 1
            self._last = candidate
            return candidate
