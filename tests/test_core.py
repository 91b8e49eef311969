from __future__ import annotations

import sys
from pathlib import Path

import pytest
from starlette.requests import Request

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from kindergarten.core import config as core_config
from kindergarten.core import csrf
from kindergarten.core.rate_limiter import RateLimiter
from kindergarten.core.sanitize import password_strength, sanitize_text, validate_email, validate_form_data
from kindergarten.core.security import hash_password, is_hashed, needs_upgrade, verify_password
from kindergarten.domain.ids import IdGenerator
from kindergarten.repositories.storage import MemoryStore
from kindergarten.services.contact_service import CONTACT_RULES


def test_sanitize_text():
    assert sanitize_text("  <script>alert(1)</script> ") == "scriptalert(1)/script"
    assert sanitize_text("JavaScript:void(0)") == "void(0)"
    assert sanitize_text("img onerror=x") == "img x"
    assert sanitize_text(None) == ""
    assert sanitize_text(12) == ""


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("veli@example.com", True),
        ("a.b+c@okul.com.tr", True),
        ("veli@", False),
        ("veli@example", False),
        ("", False),
    ],
)
def test_validate_email(value, expected):
    assert validate_email(value) is expected


def test_validate_form_data_reports_and_sanitizes():
    result = validate_form_data({"name": "A", "email": "bad", "message": "<kısa>"}, CONTACT_RULES)

    assert result.is_valid is False
    assert result.errors["name"] == "En az 2 karakter olmalıdır"
    assert result.errors["email"] == "Geçersiz e-posta adresi"
    assert result.errors["message"] == "En az 10 karakter olmalıdır"
    assert result.sanitized["message"] == "kısa"


def test_validate_form_data_required_wins_over_email_format():
    result = validate_form_data({}, CONTACT_RULES)
    assert result.errors["email"] == "Bu alan zorunludur"


def test_validate_form_data_accepts_valid_input():
    result = validate_form_data(
        {"name": "Ayşe Yılmaz", "email": "ayse@example.com", "message": "Kayıt hakkında bilgi almak istiyorum."},
        CONTACT_RULES,
    )
    assert result.is_valid
    assert result.errors == {}


@pytest.mark.parametrize(
    ("password", "expected"),
    [
        ("", "weak"),
        ("abcdef", "weak"),
        ("abcdef1", "medium"),
        ("Abcdef1", "strong"),
        ("Abcdef1!", "strong"),
    ],
)
def test_password_strength(password, expected):
    assert password_strength(password) == expected


def test_hash_and_verify_password():
    stored = hash_password("gizli123")
    assert is_hashed(stored)
    assert verify_password("gizli123", stored)
    assert not verify_password("yanlis", stored)
    assert not verify_password("gizli123", "argon2$not-a-hash")


def test_verify_password_accepts_legacy_cleartext():
    assert verify_password("admin123", "admin123")
    assert not verify_password("admin12", "admin123")
    assert not is_hashed("admin123")


def test_rate_limiter_window():
    now = [0.0]
    limiter = RateLimiter(clock=lambda: now[0])

    assert limiter.hit("contact:1.2.3.4", 1, 30) is True
    assert limiter.hit("contact:1.2.3.4", 1, 30) is False
    assert limiter.hit("contact:5.6.7.8", 1, 30) is True

    now[0] = 31.0
    assert limiter.hit("contact:1.2.3.4", 1, 30) is True

    limiter.reset("contact:1.2.3.4")
    assert limiter.hit("contact:1.2.3.4", 1, 30) is True
    assert limiter.hit("anything", 1, 0) is True


def test_id_generator_is_strictly_increasing():
    ids = IdGenerator(clock=lambda: 5.0)
    first = ids.next_id()
    second = ids.next_id()
    third = ids.next_id({second + 1, second + 2})

    assert first == 5000
    assert second == 5001
    assert third == second + 3


def test_settings_from_environment(monkeypatch):
    monkeypatch.setenv("APP_ENV", "production")
    monkeypatch.setenv("MAX_LOGIN_ATTEMPTS", "0")
    monkeypatch.setenv("CONTACT_RATE_LIMIT_SECONDS", "abc")
    monkeypatch.setenv("STORAGE_BACKEND", "SQL")
    monkeypatch.delenv("LOG_LEVEL", raising=False)
    core_config.get_settings.cache_clear()
    try:
        settings = core_config.get_settings()
        assert settings.is_production
        assert settings.log_level == "ERROR"
        assert settings.max_login_attempts == 1
        assert settings.contact_rate_limit_seconds == 30
        assert settings.storage_backend == "sql"
    finally:
        core_config.get_settings.cache_clear()


def test_needs_upgrade():
    assert needs_upgrade("admin123")
    assert needs_upgrade("argon2$garbage")
    assert not needs_upgrade(hash_password("gizli123"))


def make_request(headers=None) -> Request:
    raw = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()]
    return Request({"type": "http", "method": "POST", "path": "/contact", "headers": raw, "query_string": b""})


def test_csrf_token_is_stable_per_session():
    session = MemoryStore()
    token = csrf.session_token(session)

    assert len(token) >= 16
    assert csrf.session_token(session) == token
    assert csrf.session_token(MemoryStore()) != token


def test_validate_csrf():
    session = MemoryStore()
    token = csrf.session_token(session)
    own = {"host": "anaokulu.example"}

    csrf.validate_csrf(make_request(own), session, token)
    csrf.validate_csrf(make_request({**own, "x-csrf-token": token}), session, "")
    csrf.validate_csrf(make_request({**own, "origin": "https://anaokulu.example"}), session, token)

    with pytest.raises(csrf.CsrfRejected):
        csrf.validate_csrf(make_request(own), session, "")
    with pytest.raises(csrf.CsrfRejected):
        csrf.validate_csrf(make_request(own), session, "x" * 43)
    with pytest.raises(csrf.CsrfRejected):
        csrf.validate_csrf(make_request(own), MemoryStore(), token)
    with pytest.raises(csrf.CsrfRejected) as exc:
        csrf.validate_csrf(make_request({**own, "origin": "https://evil.example"}), session, token)
    assert exc.value.status_code == 403
