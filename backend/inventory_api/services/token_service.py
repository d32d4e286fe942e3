# Overview: Service-layer operations for session tokens; signs and verifies bearer tokens.

"""
Session Token Service

Tokens are self-contained signed JWTs carrying the caller identity and
role. There is no server-side session table and no revocation: a token
stays valid until it expires (1 day by default), after which the client
must log in again.

Claims: account_id, email, name, role, iat, exp.
"""

from dataclasses import dataclass

from jose import JWTError, jwt

from ..config import AuthSettings
from ..models import Account, Role
from inventory_api.time_utils import utcnow


BEARER_PREFIX = "Bearer "


class TokenError(Exception):
    """Base class for bearer token rejections (401)."""


class NoTokenError(TokenError):
    def __init__(self, message: str = "No token provided"):
        super().__init__(message)


class InvalidOrExpiredTokenError(TokenError):
    def __init__(self, message: str = "Invalid or expired token"):
        super().__init__(message)


@dataclass(frozen=True)
class CallerIdentity:
    """Identity decoded from a verified session token."""
    account_id: int
    email: str | None
    name: str | None
    role: Role = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role is Role.ADMIN

    def to_dict(self) -> dict:
        return {
            "id": self.account_id,
            "email": self.email,
            "name": self.name,
            "role": self.role.value,
        }


def issue_token(account: Account, settings: AuthSettings) -> str:
    """Sign a session token for the account with its stored role."""
    now = utcnow()
    claims = {
        "account_id": account.id,
        "email": account.email,
        "name": account.name,
        "role": account.role_enum.value,
        "iat": now,
        "exp": now + settings.token_ttl,
    }
    return jwt.encode(claims, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def extract_bearer(raw_header: str | None) -> str:
    if not raw_header or not raw_header.startswith(BEARER_PREFIX):
        raise NoTokenError()
    token = raw_header[len(BEARER_PREFIX):].strip()
    if not token:
        raise NoTokenError()
    return token


def decode_token(token: str, settings: AuthSettings) -> CallerIdentity:
    try:
        claims = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except JWTError:
        raise InvalidOrExpiredTokenError()

    account_id = claims.get("account_id")
    if not isinstance(account_id, int):
        raise InvalidOrExpiredTokenError()

    return CallerIdentity(
        account_id=account_id,
        email=claims.get("email"),
        name=claims.get("name"),
        role=Role.decode(claims.get("role")),
    )


def authenticate(raw_header: str | None, settings: AuthSettings) -> CallerIdentity:
    """
    Resolve an Authorization header value to a caller identity.

    Raises:
        NoTokenError: header missing or not a bearer credential
        InvalidOrExpiredTokenError: bad signature, malformed, or expired
    """
    return decode_token(extract_bearer(raw_header), settings)
