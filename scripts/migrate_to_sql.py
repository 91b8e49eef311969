"""One-off migration script: JSON storage file -> SQL database (DATABASE_URL)."""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.core.config import get_settings
from kindergarten.repositories.storage import JSONFileStore, SQLStore


def migrate(source: Path, overwrite: bool) -> int:
    if not source.exists():
        raise SystemExit(f"File not found: {source}")
    settings = get_settings()
    src = JSONFileStore(source)
    dst = SQLStore(max_bytes=settings.storage_max_bytes)
    existing = set(dst.keys())

    copied = 0
    for key in src.keys():
        if key in existing and not overwrite:
            print(f"  skip {key} (already present)")
            continue
        value = src.get(key)
        if value is None:
            print(f"  skip {key} (unreadable)")
            continue
        if not dst.set(key, value):
            raise SystemExit(f"Could not write key {key}")
        copied += 1
    return copied


def main() -> None:
    settings = get_settings()
    ap = argparse.ArgumentParser(description="Copy the JSON storage file into the SQL store")
    ap.add_argument("--source", default=settings.storage_path, help="JSON storage file")
    ap.add_argument("--overwrite", action="store_true", help="Replace keys already in the database")
    args = ap.parse_args()

    copied = migrate(Path(args.source), args.overwrite)
    print(f"Migration finished: {copied} key(s) copied.")


if __name__ == "__main__":
    main()
