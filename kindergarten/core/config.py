"""
Configuration helpers for the kindergarten site.

Settings are read once from environment variables; defaults mirror the
values the site has always shipped with (5 login attempts, 15 minute lockout,
30 second autosave, 1000 stored contact messages, ...).
"""

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
import os

ROOT_DIR = Path(__file__).resolve().parents[2]

SITE_INFO = {
    "name": "Renkli Dünya Anaokulu",
    "description": "Modern, responsive anaokulu web sitesi",
    "email": "info@renklidunya.com",
    "phone": "+90 (212) 555 0123",
    "address": "Örnek Mahallesi, Çocuk Sokak No:123, İstanbul, Türkiye",
}


@dataclass(frozen=True)
class Settings:
    """Typed view of environment variables."""

    app_env: str
    log_level: str
    storage_backend: str
    storage_path: str
    database_url: str
    storage_max_bytes: int
    max_login_attempts: int
    lockout_seconds: int
    session_timeout_seconds: int
    username_min_length: int
    password_min_length: int
    contact_max_messages: int
    contact_rate_limit_seconds: int
    contact_submit_delay_seconds: float
    autosave_interval_seconds: float
    default_admin_username: str
    default_admin_password: str

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache
def get_settings() -> Settings:
    """Read the current environment and build a Settings instance."""
    def _int(value: str | None, default: int = 0) -> int:
        try:
            return int(value)
        except (TypeError, ValueError):
            return default

    def _float(value: str | None, default: float = 0.0) -> float:
        try:
            return float(value)
        except (TypeError, ValueError):
            return default

    app_env = (os.getenv("APP_ENV") or "development").strip().lower()
    default_level = "ERROR" if app_env == "production" else "DEBUG"
    return Settings(
        app_env=app_env,
        log_level=(os.getenv("LOG_LEVEL") or default_level).strip().upper(),
        storage_backend=(os.getenv("STORAGE_BACKEND") or "json").strip().lower(),
        storage_path=os.getenv("STORAGE_PATH") or str(ROOT_DIR / "data" / "storage.json"),
        database_url=(os.getenv("DATABASE_URL") or "").strip(),
        storage_max_bytes=_int(os.getenv("STORAGE_MAX_BYTES"), 10 * 1024 * 1024),
        max_login_attempts=max(1, _int(os.getenv("MAX_LOGIN_ATTEMPTS"), 5)),
        lockout_seconds=max(0, _int(os.getenv("LOCKOUT_SECONDS"), 15 * 60)),
        session_timeout_seconds=max(60, _int(os.getenv("SESSION_TIMEOUT_SECONDS"), 30 * 60)),
        username_min_length=_int(os.getenv("USERNAME_MIN_LENGTH"), 3),
        password_min_length=_int(os.getenv("PASSWORD_MIN_LENGTH"), 6),
        contact_max_messages=max(1, _int(os.getenv("CONTACT_MAX_MESSAGES"), 1000)),
        contact_rate_limit_seconds=max(0, _int(os.getenv("CONTACT_RATE_LIMIT_SECONDS"), 30)),
        contact_submit_delay_seconds=max(0.0, _float(os.getenv("CONTACT_SUBMIT_DELAY_SECONDS"), 2.0)),
        autosave_interval_seconds=max(1.0, _float(os.getenv("AUTOSAVE_INTERVAL_SECONDS"), 30.0)),
        default_admin_username=os.getenv("DEFAULT_ADMIN_USERNAME", "admin"),
        default_admin_password=os.getenv("DEFAULT_ADMIN_PASSWORD", "admin123"),
    )
