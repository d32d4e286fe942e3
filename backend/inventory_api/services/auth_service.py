# Overview: Service-layer operations for auth; encapsulates business logic and database work.

"""
Identity Service

Registration and password reset are gated by one-time codes sent to the
email address. Login is by email + password or by a verified Google ID
token. Every successful flow ends with a signed session token.

Registration state per attempt:
    NO_CODE -> CODE_ISSUED -> VERIFIED | EXPIRED | INVALID

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor from settings, default 10)
- Unknown email and wrong password fail with the same error
- Password reset requests answer identically whether or not the
  account exists
- Multi-step flows are sequential, not transactional: the code is
  consumed before the account write, so a failed write leaves the
  code used and the caller must request a new one
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

import bcrypt
from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..config import AuthSettings
from ..extensions import db
from ..models import Account, OtpPurpose, Role
from ..validation import (
    MIN_CODE_LENGTH,
    ValidationError,
    normalize_email,
    require_email,
    require_min_length,
    require_password,
    require_text,
)
from . import email_service, google_identity, otp_service, token_service
from .google_identity import InvalidFederatedTokenError
from inventory_api.time_utils import utcnow


class InvalidCredentialsError(ValueError):
    """Unknown email or wrong password. Deliberately one error for both."""

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class UserNotFoundError(LookupError):
    """Account vanished between reset request and reset verify."""

    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class EmailAlreadyRegisteredError(ValueError):
    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


@dataclass
class AuthResult:
    token: str
    account: Account


@dataclass(frozen=True)
class OtpRequestResult:
    """Outcome of a code request. `code` is None when no code was issued."""
    code: str | None
    delivered: bool


def hash_password(password: str, rounds: int = 10) -> str:
    """Hash password using bcrypt with the given cost factor."""
    salt = bcrypt.gensalt(rounds=rounds)
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')  # Store as string in database


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify password against bcrypt hash.

    bcrypt.checkpw() compares in constant time. Malformed hashes
    verify as False.
    """
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except (ValueError, TypeError):
        return False


def find_account_by_email(email: str) -> Account | None:
    return db.session.query(Account).filter(Account.email == normalize_email(email)).first()


def _deliver_code(email: str, code: str, purpose: OtpPurpose, settings: AuthSettings) -> bool:
    result = email_service.send_otp_email(email, code, purpose, settings)
    if not result.success:
        current_app.logger.warning(
            "%s OTP for %s not delivered (%s); caller may request a new code",
            purpose.value, email, result.error,
        )
    return result.success


def request_registration_code(email: str, settings: AuthSettings) -> OtpRequestResult:
    """
    Issue a REGISTER code and attempt delivery.

    Succeeds whether or not the email is already registered and whether
    or not delivery worked.
    """
    email = require_email(email)
    code = otp_service.issue(email, OtpPurpose.REGISTER)
    delivered = _deliver_code(email, code, OtpPurpose.REGISTER, settings)
    return OtpRequestResult(code=code, delivered=delivered)


def verify_registration(
    *,
    name: str,
    email: str,
    code: str,
    password: str,
    settings: AuthSettings,
) -> AuthResult:
    """
    Consume a REGISTER code and create the account.

    Raises:
        ValidationError: malformed input
        InvalidCodeError / CodeExpiredError: code check failed
        EmailAlreadyRegisteredError: account insert hit the unique email
    """
    name = require_text(name, "Name")
    email = require_email(email)
    require_min_length(code, "OTP", MIN_CODE_LENGTH)
    require_password(password)

    otp_service.verify(email, code, OtpPurpose.REGISTER)

    account = Account(
        name=name,
        email=email,
        password_hash=hash_password(password, settings.bcrypt_rounds),
        role=Role.USER.value,
        is_verified=True,
        created_at=utcnow(),
    )
    db.session.add(account)
    try:
        db.session.commit()
    except IntegrityError:
        db.session.rollback()
        raise EmailAlreadyRegisteredError()

    return AuthResult(token=token_service.issue_token(account, settings), account=account)


def login(email: str, password: str, settings: AuthSettings) -> AuthResult:
    """
    Password login.

    Raises:
        ValidationError: email/password missing
        InvalidCredentialsError: unknown email or wrong password
    """
    email = require_email(email)
    if not isinstance(password, str) or not password:
        raise ValidationError("Password is required")

    account = find_account_by_email(email)
    if account is None:
        current_app.logger.warning("Login failed: unknown email %s", email)
        raise InvalidCredentialsError()

    if not verify_password(password, account.password_hash):
        current_app.logger.warning("Login failed: wrong password for %s", email)
        raise InvalidCredentialsError()

    current_app.logger.info("Login successful for %s", email)
    return AuthResult(token=token_service.issue_token(account, settings), account=account)


def request_password_reset(email: str, settings: AuthSettings) -> OtpRequestResult:
    """
    Issue a RESET code if the account exists.

    The caller answers identically in every case.
    """
    email = require_email(email)
    if find_account_by_email(email) is None:
        return OtpRequestResult(code=None, delivered=False)

    code = otp_service.issue(email, OtpPurpose.RESET)
    delivered = _deliver_code(email, code, OtpPurpose.RESET, settings)
    return OtpRequestResult(code=code, delivered=delivered)


def verify_password_reset(*, email: str, code: str, new_password: str, settings: AuthSettings) -> None:
    """
    Consume a RESET code and replace the password.

    Raises:
        ValidationError: malformed input
        InvalidCodeError / CodeExpiredError: code check failed
        UserNotFoundError: no account with that email any more
    """
    email = require_email(email)
    require_min_length(code, "OTP", MIN_CODE_LENGTH)
    require_password(new_password, "New password")

    otp_service.verify(email, code, OtpPurpose.RESET)

    updated = (
        db.session.query(Account)
        .filter(Account.email == email)
        .update({"password_hash": hash_password(new_password, settings.bcrypt_rounds)})
    )
    db.session.commit()
    if updated == 0:
        raise UserNotFoundError()


def _federated_secret(subject: str, settings: AuthSettings) -> str:
    # Digest first: bcrypt rejects inputs longer than 72 bytes
    return hashlib.sha256((subject + settings.jwt_secret).encode("utf-8")).hexdigest()


def login_with_federated_identity(id_token: str, settings: AuthSettings) -> AuthResult:
    """
    Google sign-in.

    Existing accounts are matched by email and never updated from the
    incoming claims. New accounts get a synthetic password hash derived
    from the Google subject and the signing secret, unusable for
    password login.

    Raises:
        InvalidFederatedTokenError: token rejected or no email claim
    """
    claims = google_identity.verify_id_token(id_token, settings.google_client_id)

    email = normalize_email(claims.get("email"))
    if not email:
        raise InvalidFederatedTokenError("Google token has no email")

    account = find_account_by_email(email)
    if account is None:
        subject = str(claims.get("sub") or "")
        account = Account(
            name=claims.get("name"),
            email=email,
            password_hash=hash_password(_federated_secret(subject, settings), settings.bcrypt_rounds),
            role=Role.USER.value,
            is_verified=True,
            google_id=subject or None,
            avatar_url=claims.get("picture"),
            created_at=utcnow(),
        )
        db.session.add(account)
        db.session.commit()
        current_app.logger.info("Created account %s from Google sign-in", email)

    return AuthResult(token=token_service.issue_token(account, settings), account=account)
