# Overview: Request authentication and role decorators for API routes.

from functools import wraps
from flask import request, g

from .config import get_auth_settings
from .responses import error_response
from .services import token_service
from .services.token_service import TokenError


def _current_caller():
    return getattr(g, "caller", None)


def require_auth(f):
    """
    Require a valid bearer token.

    Sets g.caller to the CallerIdentity decoded from the token. Tokens are
    not checked against the database: a deleted account's token keeps
    working until it expires.

    SECURITY: Returns 401 if:
    - No Authorization header or not a Bearer credential
    - Bad signature, malformed or expired token
    """
    @wraps(f)
    def decorated_function(*args, **kwargs):
        try:
            g.caller = token_service.authenticate(
                request.headers.get("Authorization"),
                get_auth_settings(),
            )
        except TokenError as e:
            return error_response(str(e), 401)

        return f(*args, **kwargs)

    return decorated_function


def require_admin(f):
    """Require @require_auth first; then the admin role."""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        caller = _current_caller()
        if caller is None:
            return error_response("Unauthorized: No user found", 401)

        if not caller.is_admin:
            return error_response("Forbidden: Admins only", 403)

        return f(*args, **kwargs)

    return decorated_function
