"""Logging setup: stdlib logging with an optional structured payload."""

from __future__ import annotations

import json
import logging

from .config import Settings

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s - %(message)s"


class PayloadFormatter(logging.Formatter):
    """Append ``extra={"payload": {...}}`` to the line as compact JSON."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        payload = getattr(record, "payload", None)
        if payload:
            try:
                line = f"{line} {json.dumps(payload, ensure_ascii=False, default=str, sort_keys=True)}"
            except (TypeError, ValueError):
                line = f"{line} {payload!r}"
        return line


def configure_logging(settings: Settings) -> None:
    level = getattr(logging, settings.log_level, logging.INFO)
    handler = logging.StreamHandler()
    handler.setFormatter(PayloadFormatter(LOG_FORMAT))
    logging.basicConfig(level=level, handlers=[handler], force=True)
    # uvicorn access lines are noise at debug level
    logging.getLogger("uvicorn.access").setLevel(max(level, logging.INFO))
