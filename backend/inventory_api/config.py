# backend/inventory_api/config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import timedelta
from typing import Mapping

from flask import current_app


def _env_flag(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/inventory.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///inventory.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Session tokens
    JWT_SECRET = os.environ.get("JWT_SECRET", "dev-secret")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")
    TOKEN_TTL_HOURS = int(os.environ.get("TOKEN_TTL_HOURS", "24"))

    # Password hashing cost (bcrypt rounds)
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "10"))

    # Google sign-in (audience of accepted ID tokens)
    GOOGLE_CLIENT_ID = os.environ.get("GOOGLE_CLIENT_ID")

    # Transactional email (Brevo HTTP API)
    BREVO_API_KEY = os.environ.get("BREVO_API_KEY")
    BREVO_API_URL = os.environ.get("BREVO_API_URL", "https://api.brevo.com/v3/smtp/email")
    EMAIL_FROM = os.environ.get("EMAIL_FROM", "Inventory App <no-reply@example.com>")
    EMAIL_TIMEOUT_SECONDS = float(os.environ.get("EMAIL_TIMEOUT_SECONDS", "10"))

    # Development convenience: echo issued OTPs in API responses
    EXPOSE_DEV_OTP = _env_flag("EXPOSE_DEV_OTP")

    UPLOAD_FOLDER = os.environ.get(
        "UPLOAD_FOLDER",
        os.path.join(os.path.dirname(os.path.dirname(__file__)), "uploads"),
    )
    MAX_CONTENT_LENGTH = 5 * 1024 * 1024

    CORS_ORIGINS = os.environ.get(
        "CORS_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,https://product-inventory-nu.vercel.app",
    )

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")


@dataclass(frozen=True)
class AuthSettings:
    """
    Immutable auth/mail settings, built once per app from its final config.

    Services take this as an explicit argument instead of reading
    the environment or app.config themselves.
    """
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    token_ttl: timedelta = timedelta(days=1)
    bcrypt_rounds: int = 10
    google_client_id: str | None = None
    brevo_api_key: str | None = None
    brevo_api_url: str = "https://api.brevo.com/v3/smtp/email"
    email_from: str = "Inventory App <no-reply@example.com>"
    email_timeout: float = 10.0
    expose_dev_otp: bool = False

    @classmethod
    def from_mapping(cls, config: Mapping) -> "AuthSettings":
        secret = config.get("JWT_SECRET")
        if not secret:
            raise RuntimeError("JWT_SECRET must be configured")
        return cls(
            jwt_secret=secret,
            jwt_algorithm=config.get("JWT_ALGORITHM", "HS256"),
            token_ttl=timedelta(hours=int(config.get("TOKEN_TTL_HOURS", 24))),
            bcrypt_rounds=int(config.get("BCRYPT_ROUNDS", 10)),
            google_client_id=config.get("GOOGLE_CLIENT_ID") or None,
            brevo_api_key=config.get("BREVO_API_KEY") or None,
            brevo_api_url=config.get("BREVO_API_URL", cls.brevo_api_url),
            email_from=config.get("EMAIL_FROM", cls.email_from),
            email_timeout=float(config.get("EMAIL_TIMEOUT_SECONDS", 10)),
            expose_dev_otp=bool(config.get("EXPOSE_DEV_OTP", False)),
        )


def get_auth_settings() -> AuthSettings:
    """AuthSettings of the current app (set up by create_app)."""
    return current_app.extensions["auth_settings"]
