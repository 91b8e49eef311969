"""
Admin access: one-time credential setup, login with lockout, logout.

The guard gates the admin pages only. Repositories stay writable by any code
that holds them. Attempt counting is global (a single admin account) and the
lockout is a usability measure against password guessing through the form.
"""

from __future__ import annotations

import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from kindergarten.core.config import Settings, get_settings
from kindergarten.core.security import hash_password, needs_upgrade, verify_password
from kindergarten.domain.models import AdminCredentials
from kindergarten.repositories.content import ValidationError
from kindergarten.repositories.storage import KeyValueStore

logger = logging.getLogger(__name__)

CREDENTIALS_KEY = "adminCredentials"
SETUP_FLAG_KEY = "adminPasswordSetup"
ATTEMPTS_KEY = "loginAttempts"
LOGGED_IN_KEY = "adminLoggedIn"
GLOBAL_IDENTIFIER = "admin"


class AuthError(Exception):
    """Base class for admin authentication failures."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidCredentialsError(AuthError):
    pass


class AccountLockedError(AuthError):
    def __init__(self, message: str, remaining_seconds: int):
        super().__init__(message)
        self.remaining_seconds = remaining_seconds


class SetupError(AuthError):
    pass


class NotLoggedInError(AuthError):
    pass


class GuardState(str, enum.Enum):
    NEEDS_CREDENTIAL_SETUP = "needs_credential_setup"
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


@dataclass
class LoginResult:
    username: str
    upgraded_hash: bool


class SessionGuard:
    """State machine over the persistent store and one browser session store."""

    def __init__(
        self,
        store: KeyValueStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.store = store
        self.settings = settings or get_settings()
        self._clock = clock
        # held across lockout check, verify and counter update
        self._lock = threading.RLock()

    # -------------------------------------- helpers --------------------------------------
    def _default_credentials(self) -> AdminCredentials:
        return AdminCredentials(self.settings.default_admin_username, self.settings.default_admin_password)

    def stored_credentials(self) -> Optional[AdminCredentials]:
        return AdminCredentials.from_dict(self.store.get(CREDENTIALS_KEY))

    def _effective_credentials(self) -> AdminCredentials:
        return self.stored_credentials() or self._default_credentials()

    def _save_credentials(self, username: str, password: str) -> None:
        record = AdminCredentials(username=username, password=hash_password(password))
        if not self.store.set(CREDENTIALS_KEY, record.to_dict()):
            logger.error("Admin credentials could not be persisted")

    def _attempts(self) -> dict:
        data = self.store.get(ATTEMPTS_KEY)
        return data if isinstance(data, dict) else {}

    def _entry(self, identifier: str) -> dict:
        entry = self._attempts().get(identifier)
        return entry if isinstance(entry, dict) else {"attempts": 0, "lockedUntil": None}

    def _save_entry(self, identifier: str, entry: Optional[dict]) -> None:
        attempts = self._attempts()
        if entry is None:
            attempts.pop(identifier, None)
        else:
            attempts[identifier] = entry
        if attempts:
            self.store.set(ATTEMPTS_KEY, attempts)
        else:
            self.store.remove(ATTEMPTS_KEY)

    def _validate_new_password(self, password: str, confirm: str, field: str = "password") -> None:
        minimum = self.settings.password_min_length
        if len(password or "") < minimum:
            msg = f"Şifre en az {minimum} karakter olmalıdır!"
            raise ValidationError(msg, {field: msg})
        if password != confirm:
            msg = "Şifreler eşleşmiyor!"
            raise ValidationError(msg, {"confirm": msg})

    # -------------------------------------- state --------------------------------------
    def state(self, session: KeyValueStore) -> GuardState:
        if session.get(LOGGED_IN_KEY) == "true":
            return GuardState.LOGGED_IN
        if self.is_setup_complete():
            return GuardState.LOGGED_OUT
        return GuardState.NEEDS_CREDENTIAL_SETUP

    def is_setup_complete(self) -> bool:
        return self.store.get(SETUP_FLAG_KEY) == "true"

    def is_logged_in(self, session: KeyValueStore) -> bool:
        return self.state(session) is GuardState.LOGGED_IN

    def remaining_lockout(self, identifier: str = GLOBAL_IDENTIFIER) -> int:
        with self._lock:
            locked_until = self._entry(identifier).get("lockedUntil")
            if not locked_until:
                return 0
            remaining = float(locked_until) - self._clock()
            if remaining <= 0:
                # lock window elapsed: start counting from zero again
                self._save_entry(identifier, None)
                return 0
            return int(remaining + 0.999)

    def is_locked(self, identifier: str = GLOBAL_IDENTIFIER) -> bool:
        return self.remaining_lockout(identifier) > 0

    def failed_attempts(self, identifier: str = GLOBAL_IDENTIFIER) -> int:
        return int(self._entry(identifier).get("attempts") or 0)

    # -------------------------------------- transitions --------------------------------------
    def setup_credentials(self, session: KeyValueStore, username: str, password: str, confirm: str) -> AdminCredentials:
        with self._lock:
            if self.is_setup_complete():
                raise SetupError("Yönetici bilgileri zaten ayarlanmış.")
            username = (username or "").strip()
            minimum = self.settings.username_min_length
            if len(username) < minimum:
                msg = f"Kullanıcı adı en az {minimum} karakter olmalıdır!"
                raise ValidationError(msg, {"username": msg})
            self._validate_new_password(password, confirm)
            self._save_credentials(username, password)
            self.store.set(SETUP_FLAG_KEY, "true")
            # failures against the default pair do not count against the new one
            self.store.remove(ATTEMPTS_KEY)
        session.remove(LOGGED_IN_KEY)
        logger.info("Admin credentials configured", extra={"payload": {"username": username}})
        return AdminCredentials(username=username, password="")

    def login(self, session: KeyValueStore, username: str, password: str) -> LoginResult:
        with self._lock:
            remaining = self.remaining_lockout()
            if remaining:
                minutes = max(1, (remaining + 59) // 60)
                logger.warning("Login rejected, lockout active", extra={"payload": {"remaining": remaining}})
                raise AccountLockedError(f"Çok fazla hatalı deneme. {minutes} dakika sonra tekrar deneyin.", remaining)

            credentials = self._effective_credentials()
            if (username or "") != credentials.username or not verify_password(password or "", credentials.password):
                self._record_failure()
                raise InvalidCredentialsError("Kullanıcı adı veya şifre hatalı!")

            self._save_entry(GLOBAL_IDENTIFIER, None)
            upgraded = False
            if self.stored_credentials() is not None and needs_upgrade(credentials.password):
                self._save_credentials(credentials.username, password)
                upgraded = True
        session.set(LOGGED_IN_KEY, "true")
        logger.info("Admin logged in", extra={"payload": {"username": credentials.username}})
        return LoginResult(username=credentials.username, upgraded_hash=upgraded)

    def _record_failure(self) -> None:
        entry = self._entry(GLOBAL_IDENTIFIER)
        attempts = int(entry.get("attempts") or 0) + 1
        entry = {"attempts": attempts, "lockedUntil": None}
        if attempts >= self.settings.max_login_attempts:
            entry["lockedUntil"] = self._clock() + self.settings.lockout_seconds
            logger.warning("Admin login locked", extra={"payload": {"attempts": attempts}})
        else:
            logger.warning("Admin login failed", extra={"payload": {"attempts": attempts}})
        self._save_entry(GLOBAL_IDENTIFIER, entry)

    def logout(self, session: KeyValueStore) -> None:
        session.remove(LOGGED_IN_KEY)
        logger.info("Admin logged out")

    def change_password(self, session: KeyValueStore, current: str, new: str, confirm: str) -> None:
        if not self.is_logged_in(session):
            raise NotLoggedInError("Oturum açmanız gerekiyor.")
        with self._lock:
            credentials = self._effective_credentials()
            if not verify_password(current or "", credentials.password):
                raise InvalidCredentialsError("Mevcut şifre hatalı!")
            self._validate_new_password(new, confirm, field="new_password")
            self._save_credentials(credentials.username, new)
        logger.info("Admin password changed")

    def reset_credentials(self) -> None:
        """Forget credentials, the setup flag and any lockout."""
        with self._lock:
            self.store.clear((CREDENTIALS_KEY, SETUP_FLAG_KEY, ATTEMPTS_KEY))
        logger.info("Admin credentials reset")
