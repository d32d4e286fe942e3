# Overview: Verification of Google Sign-In ID tokens against Google's published keys.

from __future__ import annotations

import time

import httpx
from jose import JWTError, jwt

GOOGLE_JWKS_URL = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}
JWKS_CACHE_TTL_SECONDS = 3600

_JWKS_CACHE: dict[str, tuple[float, dict]] = {}


class InvalidFederatedTokenError(ValueError):
    """The Google ID token could not be verified or carries no usable email."""

    def __init__(self, message: str = "Invalid Google token"):
        super().__init__(message)


def _get_jwks(url: str = GOOGLE_JWKS_URL) -> dict:
    now = time.time()
    cached = _JWKS_CACHE.get(url)
    if cached and cached[0] > now:
        return cached[1]

    try:
        with httpx.Client(timeout=5.0) as client:
            resp = client.get(url)
            resp.raise_for_status()
        payload = resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise InvalidFederatedTokenError(f"Unable to fetch Google signing keys: {e}")

    if not isinstance(payload, dict) or not isinstance(payload.get("keys"), list):
        raise InvalidFederatedTokenError("Malformed Google signing keys")

    _JWKS_CACHE[url] = (now + JWKS_CACHE_TTL_SECONDS, payload)
    return payload


def verify_id_token(raw_token: str, audience: str | None) -> dict:
    """
    Verify a Google ID token and return its claims.

    Checks signature (RS256 against Google's JWKS), audience, expiry and
    issuer.

    Raises:
        InvalidFederatedTokenError: on any verification failure
    """
    if not audience:
        raise InvalidFederatedTokenError("Google sign-in is not configured")
    if not raw_token:
        raise InvalidFederatedTokenError("Google token is required")

    try:
        header = jwt.get_unverified_header(raw_token)
    except JWTError:
        raise InvalidFederatedTokenError()

    kid = header.get("kid")
    key = next((k for k in _get_jwks().get("keys", []) if k.get("kid") == kid), None)
    if key is None:
        raise InvalidFederatedTokenError("Unknown Google signing key")

    try:
        claims = jwt.decode(
            raw_token,
            key,
            algorithms=["RS256"],
            audience=audience,
            options={"verify_at_hash": False},
        )
    except JWTError:
        raise InvalidFederatedTokenError()

    if claims.get("iss") not in GOOGLE_ISSUERS:
        raise InvalidFederatedTokenError("Unexpected token issuer")

    return claims
