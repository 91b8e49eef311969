"""Security helpers (hashing and verification)."""

from __future__ import annotations

import secrets

from argon2 import PasswordHasher, exceptions as argon_exc

_ph = PasswordHasher()
_PREFIX = "argon2$"


def hash_password(password: str) -> str:
    """Create an Argon2 hash with a prefix for detection."""
    return f"{_PREFIX}{_ph.hash(password)}"


def is_hashed(stored: str | None) -> bool:
    return (stored or "").startswith(_PREFIX)


def needs_upgrade(stored: str | None) -> bool:
    """True for cleartext values and hashes made with outdated parameters."""
    if not is_hashed(stored):
        return True
    try:
        return _ph.check_needs_rehash(stored[len(_PREFIX):])
    except argon_exc.InvalidHashError:
        return True


def verify_password(password: str, stored: str | None) -> bool:
    """Check a password against an Argon2 hash or a legacy cleartext value."""
    stored = stored or ""
    if is_hashed(stored):
        try:
            return _ph.verify(stored[len(_PREFIX):], password or "")
        except (argon_exc.VerifyMismatchError, argon_exc.VerificationError, argon_exc.InvalidHashError):
            return False
    # credentials written by the old browser-only panel were kept in cleartext
    return secrets.compare_digest((password or "").encode("utf-8"), stored.encode("utf-8"))
