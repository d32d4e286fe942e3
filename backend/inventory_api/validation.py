from __future__ import annotations

import re
from typing import Any

# Input policy constants
MIN_PASSWORD_LENGTH = 6
MIN_CODE_LENGTH = 4

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ValidationError(ValueError):
    """400-level input problem."""


class ConflictError(ValueError):
    """Business rule conflict."""


class DuplicateNameError(ConflictError):
    """A product with the same name already exists in the caller's scope."""


def normalize_email(value: Any) -> str:
    """Trim + lowercase. Non-strings normalize to an empty string."""
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def require_text(value: Any, field: str) -> str:
    text = clean_text(value)
    if not text:
        raise ValidationError(f"{field} is required")
    return text


def require_email(value: Any) -> str:
    email = normalize_email(value)
    if not EMAIL_PATTERN.match(email):
        raise ValidationError("Valid email required")
    return email


def require_min_length(value: Any, field: str, minimum: int) -> str:
    if not isinstance(value, str) or len(value) < minimum:
        raise ValidationError(f"{field} must be at least {minimum} characters")
    return value


def coerce_stock(value: Any) -> int:
    """
    Lenient stock coercion: anything that is not an integer becomes 0.

    Negative integers are a caller error, not something to coerce.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        stock = value
    else:
        try:
            stock = int(str(value).strip())
        except (TypeError, ValueError):
            return 0
    if stock < 0:
        raise ValidationError("stock must be >= 0")
    return stock


def parse_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in {"1", "true", "yes", "on"}


MAX_PASSWORD_BYTES = 72  # bcrypt input limit


def require_password(value: Any, field: str = "Password") -> str:
    password = require_min_length(value, field, MIN_PASSWORD_LENGTH)
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"{field} must be at most {MAX_PASSWORD_BYTES} bytes")
    return password
