# Overview: Flask API routes for admin operations; parses input and returns JSON responses.

# backend/inventory_api/routes/admin.py
"""
Admin routes for account management.

Provides endpoints for:
- Listing accounts with their product counts
- Deleting non-admin accounts (their products and history go with them)

All endpoints require authentication and the admin role.
"""

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_auth, require_admin
from ..responses import error_response
from ..services import admin_service
from ..services.admin_service import AccountNotFoundError, AdminDeletionError

admin_bp = Blueprint("admin", __name__, url_prefix="/api/admin")


@admin_bp.get("/users")
@require_auth
@require_admin
def list_users():
    try:
        return jsonify(admin_service.list_accounts())
    except Exception:
        current_app.logger.exception("Failed to list accounts")
        return error_response("DB error", 500)


@admin_bp.delete("/users/<int:user_id>")
@require_auth
@require_admin
def delete_user(user_id: int):
    try:
        admin_service.delete_account(user_id)
    except AccountNotFoundError as e:
        return error_response(str(e), 404)
    except AdminDeletionError as e:
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to delete account %s", user_id)
        return error_response("DB error", 500)

    current_app.logger.info("Account %s deleted by admin %s", user_id, g.caller.email)
    return jsonify({"message": "User deleted"})
