#!/usr/bin/env python3
"""
Forget the stored admin credentials and any login lockout.

The next visit to /admin shows the credential setup form again.

Usage:
  python scripts/reset_admin.py [--yes]
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.core.config import get_settings
from kindergarten.repositories.storage import build_store
from kindergarten.services.session_guard import SessionGuard


def main() -> None:
    ap = argparse.ArgumentParser(description="Reset admin credentials")
    ap.add_argument("--yes", action="store_true", help="Do not ask for confirmation")
    args = ap.parse_args()

    if not args.yes:
        answer = input("Reset admin credentials? [y/N] ").strip().lower()
        if answer not in ("y", "yes", "e", "evet"):
            raise SystemExit("Aborted")

    settings = get_settings()
    guard = SessionGuard(build_store(settings), settings)
    guard.reset_credentials()
    print("OK: admin credentials reset")
    print(f"  Default login until setup: {settings.default_admin_username}")


if __name__ == "__main__":
    try:
        main()
    except Exception as exc:  # pragma: no cover
        sys.stderr.write(f"Error: {exc}\n")
        raise SystemExit(1)
