# Overview: Flask API routes for auth operations; parses input and returns JSON responses.

# backend/inventory_api/routes/auth.py
"""
Authentication API routes

SECURITY FEATURES:
- Registration and password reset gated by emailed one-time codes
- Password reset request answers identically for known and unknown emails
- Unknown email and wrong password share one error message
- Stateless bearer tokens (no server-side session, no revocation)
"""

from flask import Blueprint, request, jsonify, current_app, g

from ..config import get_auth_settings
from ..decorators import require_auth
from ..responses import error_response
from ..services import auth_service
from ..services.auth_service import (
    EmailAlreadyRegisteredError,
    InvalidCredentialsError,
    UserNotFoundError,
)
from ..services.google_identity import InvalidFederatedTokenError
from ..services.otp_service import CodeExpiredError, InvalidCodeError
from ..validation import ValidationError


auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")

REGISTER_OTP_MESSAGE = "OTP generated. If the email doesn't arrive, request a new code."
RESET_OTP_MESSAGE = "If the email exists, an OTP has been sent to reset the password"


def _json_body() -> dict:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _auth_response(result, message: str):
    return jsonify({
        "message": message,
        "token": result.token,
        "user": result.account.to_dict(),
    })


@auth_bp.post("/register-request-otp")
def register_request_otp_route():
    """
    Issue a registration code for an email.

    Always answers with the same message, whether or not the email is
    already registered and whether or not delivery worked.
    """
    data = _json_body()
    settings = get_auth_settings()

    try:
        result = auth_service.request_registration_code(data.get("email"), settings)
    except ValidationError as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to issue registration OTP")
        return error_response("Failed to generate OTP", 500)

    body = {"message": REGISTER_OTP_MESSAGE}
    if settings.expose_dev_otp:
        body["devOtp"] = result.code
    return jsonify(body)


@auth_bp.post("/register-verify")
def register_verify_route():
    """
    Verify a registration code and create the account.

    Body: { name, email, otp, password }
    """
    data = _json_body()

    try:
        result = auth_service.verify_registration(
            name=data.get("name"),
            email=data.get("email"),
            code=data.get("otp"),
            password=data.get("password"),
            settings=get_auth_settings(),
        )
    except (ValidationError, InvalidCodeError, CodeExpiredError, EmailAlreadyRegisteredError) as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to complete registration")
        return error_response("DB error", 500)

    return _auth_response(result, "Registration successful")


@auth_bp.post("/login")
def login_route():
    data = _json_body()

    try:
        result = auth_service.login(data.get("email"), data.get("password"), get_auth_settings())
    except (ValidationError, InvalidCredentialsError) as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to login user")
        return error_response("DB error", 500)

    return _auth_response(result, "Login successful")


@auth_bp.post("/forgot-password-request")
def forgot_password_request_route():
    data = _json_body()
    settings = get_auth_settings()

    try:
        result = auth_service.request_password_reset(data.get("email"), settings)
    except ValidationError as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to issue password reset OTP")
        return error_response("DB error", 500)

    body = {"message": RESET_OTP_MESSAGE}
    if settings.expose_dev_otp and result.code:
        body["devOtp"] = result.code
    return jsonify(body)


@auth_bp.post("/forgot-password-verify")
def forgot_password_verify_route():
    """
    Verify a reset code and set the new password.

    Body: { email, otp, newPassword }
    """
    data = _json_body()

    try:
        auth_service.verify_password_reset(
            email=data.get("email"),
            code=data.get("otp"),
            new_password=data.get("newPassword"),
            settings=get_auth_settings(),
        )
    except (ValidationError, InvalidCodeError, CodeExpiredError) as e:
        return error_response(str(e), 400)
    except UserNotFoundError as e:
        return error_response(str(e), 404)
    except Exception:
        current_app.logger.exception("Failed to reset password")
        return error_response("DB error", 500)

    return jsonify({"message": "Password reset successful"})


@auth_bp.post("/google")
def google_login_route():
    """
    Sign in with a Google ID token.

    Body: { idToken } (or { credential } as sent by Google Identity Services)
    """
    data = _json_body()
    id_token = data.get("idToken") or data.get("credential")

    try:
        result = auth_service.login_with_federated_identity(id_token, get_auth_settings())
    except InvalidFederatedTokenError as e:
        current_app.logger.warning("Google sign-in rejected: %s", e)
        return error_response(str(e), 401)
    except Exception:
        current_app.logger.exception("Failed to complete Google sign-in")
        return error_response("DB error", 500)

    return _auth_response(result, "Login successful")


@auth_bp.get("/me")
@require_auth
def me_route():
    """Identity carried by the caller's token."""
    return jsonify({"user": g.caller.to_dict()})
