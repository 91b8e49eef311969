"""Public contact form submission."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from kindergarten.core.rate_limiter import RateLimiter
from kindergarten.core.sanitize import validate_form_data
from kindergarten.domain.models import ContactMessage
from kindergarten.repositories.content import ContactMessageRepository, ValidationError
from kindergarten.services.analytics import Analytics

logger = logging.getLogger(__name__)

CONTACT_RULES = {
    "name": {"type": "text", "required": True, "min_length": 2, "max_length": 100},
    "email": {"type": "email", "required": True},
    "message": {"type": "text", "required": True, "min_length": 10, "max_length": 1000},
}


class RateLimitedError(Exception):
    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


@dataclass
class ContactService:
    messages: ContactMessageRepository
    limiter: RateLimiter
    analytics: Optional[Analytics] = None
    window_seconds: int = 30

    def submit(self, form: Mapping[str, str], *, client: str, user_agent: str = "") -> ContactMessage:
        validation = validate_form_data(form, CONTACT_RULES)
        if not validation.is_valid:
            logger.warning("Contact form validation failed", extra={"payload": validation.errors})
            if self.analytics:
                self.analytics.track_form_submission("contact_form", False, {"errors": sorted(validation.errors)})
            raise ValidationError("Lütfen formu doğru şekilde doldurun!", validation.errors)

        if not self.limiter.hit(f"contact:{client}", 1, self.window_seconds):
            logger.warning("Contact form rate limit exceeded", extra={"payload": {"client": client}})
            raise RateLimitedError("Çok sık mesaj gönderiyorsunuz. Lütfen bekleyin.")

        message = self.messages.create({**validation.sanitized, "userAgent": (user_agent or "")[:512]})
        logger.info("Contact form submitted", extra={"payload": {"messageId": message.id, "email": message.email}})
        if self.analytics:
            self.analytics.track_form_submission(
                "contact_form",
                True,
                {"messageId": message.id, "hasEmail": bool(message.email), "messageLength": len(message.message)},
            )
        return message
