# Overview: Service-layer operations for one-time codes; encapsulates business logic and database work.

"""
One-Time Code Engine

Issues and consumes short-lived numeric codes bound to an (email, purpose)
pair. Used to prove control of an email address before registration or
a password reset.

INVARIANTS:
- A code is consumable iff used is false, now <= expires_at, and
  (email, code, purpose) match exactly.
- Issuing never invalidates earlier outstanding codes for the same pair.
- An expired match is reported as expired and left unused.
- Rows are never deleted.
"""

import secrets
from datetime import timedelta

from ..extensions import db
from ..models import OneTimeCode, OtpPurpose
from inventory_api.time_utils import utcnow


OTP_LENGTH = 6
OTP_TTL = timedelta(minutes=10)


class InvalidCodeError(ValueError):
    """No unused code matches the given email, code and purpose."""

    def __init__(self, message: str = "Invalid OTP"):
        super().__init__(message)


class CodeExpiredError(ValueError):
    """The matching code is past its expiry."""

    def __init__(self, message: str = "OTP expired"):
        super().__init__(message)


def generate_code() -> str:
    """Zero-padded numeric code from a CSPRNG."""
    return f"{secrets.randbelow(10 ** OTP_LENGTH):0{OTP_LENGTH}d}"


def issue(email: str, purpose: OtpPurpose) -> str:
    """
    Persist a new unused code for (email, purpose) and return it.

    The caller is responsible for delivery; delivery outcome has no
    effect on the stored row.
    """
    code = generate_code()
    row = OneTimeCode(
        email=email,
        code=code,
        purpose=OtpPurpose(purpose).value,
        expires_at=utcnow() + OTP_TTL,
        used=False,
    )
    db.session.add(row)
    db.session.commit()
    return code


def verify(email: str, code: str, purpose: OtpPurpose) -> OneTimeCode:
    """
    Consume a code.

    Returns the consumed row (now used=True).

    Raises:
        InvalidCodeError: no unused row matches
        CodeExpiredError: the first matching row is expired (left unused)
    """
    row = (
        db.session.query(OneTimeCode)
        .filter(
            OneTimeCode.email == email,
            OneTimeCode.code == code,
            OneTimeCode.purpose == OtpPurpose(purpose).value,
            OneTimeCode.used.is_(False),
        )
        .order_by(OneTimeCode.id.asc())
        .first()
    )
    if row is None:
        raise InvalidCodeError()

    if row.expires_at < utcnow():
        raise CodeExpiredError()

    row.used = True
    db.session.commit()
    return row
