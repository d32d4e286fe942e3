from __future__ import annotations

import enum

from ..extensions import db
from inventory_api.time_utils import to_utc_z


class Role(str, enum.Enum):
    """
    Account roles.

    The column stays a free-form string (default "user") so that rows
    written by older schema revisions or by hand still load; decode()
    maps anything unrecognized, including NULL, to USER.
    """
    USER = "user"
    ADMIN = "admin"

    @classmethod
    def decode(cls, value: str | None) -> "Role":
        if value is None:
            return cls.USER
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.USER


class OtpPurpose(str, enum.Enum):
    REGISTER = "REGISTER"
    RESET = "RESET"


class Account(db.Model):
    """
    User accounts for password and Google sign-in.

    Email is globally unique and always stored normalized (trimmed,
    lower-cased). Google-created accounts carry a synthetic password hash
    that can never be used for password login.
    """
    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=True)
    email = db.Column(db.String(255), nullable=False, unique=True, index=True)

    # Bcrypt hashed password
    password_hash = db.Column(db.String(255), nullable=False)

    role = db.Column(db.String(32), nullable=True, default=Role.USER.value, server_default=Role.USER.value)

    # Always true today: accounts only exist after an OTP or Google check
    is_verified = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    google_id = db.Column(db.String(255), nullable=True, index=True)
    avatar_url = db.Column(db.Text, nullable=True)

    @property
    def role_enum(self) -> Role:
        return Role.decode(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role_enum is Role.ADMIN

    def __repr__(self) -> str:
        return f"<Account id={self.id} email={self.email!r} role={self.role!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role_enum.value,
            "is_verified": self.is_verified,
            "avatar": self.avatar_url,
            "created_at": to_utc_z(self.created_at),
        }


class OneTimeCode(db.Model):
    """
    Short-lived numeric codes proving control of an email address.

    No foreign key to accounts: a code is joined only by email string,
    so REGISTER codes exist before their account does. Rows are never
    deleted; used/expired rows simply stop matching.
    """
    __tablename__ = "one_time_codes"
    __table_args__ = (
        db.Index("ix_one_time_codes_lookup", "email", "purpose", "used"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    email = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(16), nullable=False)
    purpose = db.Column(db.String(16), nullable=False)
    expires_at = db.Column(db.DateTime(timezone=True), nullable=False)
    used = db.Column(db.Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<OneTimeCode id={self.id} email={self.email!r} purpose={self.purpose} used={self.used}>"
