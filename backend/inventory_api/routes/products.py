# Overview: Flask API routes for products operations; parses input and returns JSON responses.

# backend/inventory_api/routes/products.py
"""
Product management routes with owner scoping.

OWNERSHIP: All product operations are scoped to the caller's account.
The caller comes from g.caller (set by @require_auth); admins see every
owner's products.

SECURITY: All routes require authentication. A product owned by someone
else answers 404, the same as a missing one.
"""
from flask import Blueprint, Response, current_app, g, jsonify, request

from ..decorators import require_auth
from ..responses import error_response
from ..services import products_service, storage_service
from ..services.products_service import ListQuery, ProductInput
from ..validation import DuplicateNameError, ValidationError

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _product_payload() -> dict:
    """JSON body, or form fields for multipart requests carrying an image."""
    if request.mimetype == "multipart/form-data" or request.form:
        return request.form.to_dict()
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _store_image(data: ProductInput) -> str | None:
    """Save the multipart "image" file, if any, and point data.image at it."""
    uploaded = storage_service.save_upload(
        request.files.get("image"),
        current_app.config["UPLOAD_FOLDER"],
    )
    if uploaded:
        data.image = uploaded
    return uploaded


def _discard_image(uploaded: str | None) -> None:
    storage_service.discard_upload(uploaded, current_app.config["UPLOAD_FOLDER"])


@products_bp.get("")
@require_auth
def list_products_route():
    """
    List products visible to the caller.

    Query params:
    - page: int (1-indexed, default 1)
    - limit: int (default 10)
    - search: name substring, case-insensitive
    - category: exact category, case-insensitive
    - sortBy: name | stock | category | brand (default name)
    - sortOrder: asc | desc (default asc; alias: order)
    - lowStockOnly: true to keep only 0 < stock <= 5 (alias: lowStock)
    """
    try:
        return jsonify(products_service.list_products(g.caller, ListQuery.from_args(request.args)))
    except Exception:
        current_app.logger.exception("Failed to list products")
        return error_response("DB error", 500)


@products_bp.get("/summary")
@require_auth
def summary_route():
    try:
        return jsonify(products_service.summary(g.caller))
    except Exception:
        current_app.logger.exception("Failed to compute product summary")
        return error_response("DB error", 500)


@products_bp.get("/search")
@require_auth
def search_route():
    try:
        return jsonify(products_service.search_products(g.caller, request.args.get("name", "")))
    except Exception:
        current_app.logger.exception("Failed to search products")
        return error_response("DB error", 500)


@products_bp.get("/export")
@require_auth
def export_route():
    try:
        body = products_service.export_csv(g.caller)
    except Exception:
        current_app.logger.exception("Failed to export products")
        return error_response("DB error", 500)

    return Response(
        body,
        mimetype="text/csv",
        headers={"Content-Disposition": "attachment; filename=products.csv"},
    )


@products_bp.post("/import")
@require_auth
def import_route():
    """
    Import products from an uploaded CSV (multipart field "file").

    Returns { added, skipped, duplicates: [{ name, existingId }] }.
    """
    upload = request.files.get("file")
    if upload is None or not upload.filename:
        return error_response("CSV file required", 400)

    try:
        text = upload.read().decode("utf-8-sig")
    except UnicodeDecodeError:
        return error_response("CSV file must be UTF-8 encoded", 400)

    try:
        result = products_service.import_rows(g.caller, products_service.parse_csv(text))
    except Exception:
        current_app.logger.exception("Failed to import products")
        return error_response("DB error", 500)

    current_app.logger.info(
        "Import by account %s: %d added, %d skipped",
        g.caller.account_id, result.added, result.skipped,
    )
    return jsonify(result.to_dict())


@products_bp.get("/<int:product_id>/history")
@require_auth
def history_route(product_id: int):
    try:
        return jsonify(products_service.get_history(product_id))
    except Exception:
        current_app.logger.exception("Failed to load history for product %s", product_id)
        return error_response("DB error", 500)


@products_bp.post("")
@require_auth
def create_product_route():
    """
    Create a product owned by the caller.

    Accepts JSON or multipart form data with an optional "image" file.
    """
    uploaded = None
    try:
        data = ProductInput.from_payload(_product_payload())
        uploaded = _store_image(data)
        product = products_service.create_product(g.caller, data)
    except (ValidationError, DuplicateNameError) as e:
        _discard_image(uploaded)
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to create product")
        _discard_image(uploaded)
        return error_response("DB error", 500)

    return jsonify(product.to_dict()), 201


@products_bp.put("/<int:product_id>")
@require_auth
def update_product_route(product_id: int):
    """
    Update a product.

    A stock change appends a history entry. Without a new image the stored
    image is kept; without a description the stored one is kept.
    """
    uploaded = None
    try:
        data = ProductInput.from_payload(_product_payload())
        uploaded = _store_image(data)
        product = products_service.update_product(g.caller, product_id, data)
    except (ValidationError, DuplicateNameError) as e:
        _discard_image(uploaded)
        return error_response(str(e), 400)
    except Exception:
        current_app.logger.exception("Failed to update product %s", product_id)
        _discard_image(uploaded)
        return error_response("DB error", 500)

    if product is None:
        _discard_image(uploaded)
        return error_response("Product not found", 404)

    return jsonify(product.to_dict())


@products_bp.delete("/<int:product_id>")
@require_auth
def delete_product_route(product_id: int):
    try:
        deleted = products_service.delete_product(g.caller, product_id)
    except Exception:
        current_app.logger.exception("Failed to delete product %s", product_id)
        return error_response("DB error", 500)

    if not deleted:
        return error_response("Product not found", 404)

    return jsonify({"message": "Deleted"})
