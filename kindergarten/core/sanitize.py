"""
Input validation and sanitization.

Every text field is sanitized before it reaches a repository: angle brackets,
the ``javascript:`` protocol and inline ``onxxx=`` handler patterns are
stripped and the value is trimmed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_ANGLE_BRACKETS = re.compile(r"[<>]")
_JS_PROTOCOL = re.compile(r"javascript:", re.IGNORECASE)
_EVENT_HANDLER = re.compile(r"on\w+=", re.IGNORECASE)


def sanitize_text(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    value = _ANGLE_BRACKETS.sub("", value)
    value = _JS_PROTOCOL.sub("", value)
    value = _EVENT_HANDLER.sub("", value)
    return value.strip()


def validate_email(value: str | None) -> bool:
    return bool(EMAIL_PATTERN.fullmatch(value or ""))


@dataclass
class FormValidation:
    is_valid: bool = True
    errors: dict[str, str] = field(default_factory=dict)
    sanitized: dict[str, str] = field(default_factory=dict)


def validate_form_data(data: Mapping[str, Any], rules: Mapping[str, Mapping[str, Any]]) -> FormValidation:
    """
    Validate and sanitize form fields.

    ``rules`` maps a field name to ``{"type": "text"|"email", "required": bool,
    "min_length": int, "max_length": int}``. Fields without a rule are ignored.
    Only the last failing check of a field is reported.
    """
    result = FormValidation()
    for name, rule in rules.items():
        value = sanitize_text(data.get(name))
        if rule.get("type") == "email" and not validate_email(value):
            result.errors[name] = "Geçersiz e-posta adresi"
        if rule.get("required") and not value:
            result.errors[name] = "Bu alan zorunludur"
        min_length = rule.get("min_length")
        if value and min_length and len(value) < min_length:
            result.errors[name] = f"En az {min_length} karakter olmalıdır"
        max_length = rule.get("max_length")
        if value and max_length and len(value) > max_length:
            result.errors[name] = f"En fazla {max_length} karakter olabilir"
        result.sanitized[name] = value
    result.is_valid = not result.errors
    return result


def password_strength(password: str | None) -> str:
    """Score a password as weak, medium or strong."""
    password = password or ""
    score = 0
    if len(password) >= 6:
        score += 1
    if re.search(r"[a-z]", password):
        score += 1
    if re.search(r"[A-Z]", password):
        score += 1
    if re.search(r"[0-9]", password):
        score += 1
    if re.search(r"[^a-zA-Z0-9]", password):
        score += 1
    if score <= 2:
        return "weak"
    if score <= 3:
        return "medium"
    return "strong"
