#!/usr/bin/env python3
"""
Write a JSON backup of all content (activities, blog posts, messages).

Usage:
  python scripts/export_data.py [--out backups/]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.core.config import get_settings
from kindergarten.repositories.content import ContentStore
from kindergarten.repositories.storage import build_store
from kindergarten.services.export_service import export_filename, export_json


def main() -> None:
    ap = argparse.ArgumentParser(description="Export site content as a JSON backup")
    ap.add_argument("--out", default=".", help="Target directory or file (default: current directory)")
    args = ap.parse_args()

    settings = get_settings()
    content = ContentStore(build_store(settings), max_messages=settings.contact_max_messages)

    target = Path(args.out)
    if target.is_dir() or not target.suffix:
        target.mkdir(parents=True, exist_ok=True)
        target = target / export_filename()
    target.write_text(export_json(content), encoding="utf-8")

    stats = content.stats()
    print(f"OK: backup written to {target}")
    print(f"  activities: {stats['activities']}")
    print(f"  blogPosts: {stats['blogPosts']}")
    print(f"  messages: {stats['messages']} ({stats['unreadMessages']} unread)")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
