# Overview: Flask API routes for product management and lookup; parses input and returns JSON responses.

# backend/tabletpos/routes/products.py
"""
Product management routes.

Serves the catalog screens and the barcode/id lookup contract the POS
screen uses to put products in a cart. Image files and barcode hardware
stay on the client; only the opaque image_path is stored.
"""
from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import PosError
from ..models import Product
from ..services import products_service
from ..validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_product,
    parse_discount_rules,
    ValidationError,
    ConflictError,
)

PRODUCT_POLICY = ModelValidationPolicy(
    writable_fields={
        "name", "category", "barcode", "image_path",
        "price_cents", "capital_price_cents", "quantity",
    },
    required_on_create={"name", "price_cents"},
    allow_null_fields={"category", "capital_price_cents", "quantity"},
)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


def _split_payload(payload) -> tuple[dict, list | None]:
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    payload = dict(payload)
    if "discount_rules" not in payload:
        return payload, None
    return payload, parse_discount_rules(payload.pop("discount_rules"))


@products_bp.get("")
def list_products():
    """
    List products ordered by name.

    Query params:
    - search: str (optional) - matches name or barcode
    - category: str (optional)
    """
    products = products_service.list_products(
        db.session,
        search=request.args.get("search"),
        category=request.args.get("category"),
    )
    return {"items": [p.to_dict() for p in products], "count": len(products)}


@products_bp.get("/categories")
def list_categories():
    return {"items": products_service.list_categories(db.session)}


@products_bp.get("/low-stock")
def low_stock():
    threshold = request.args.get("threshold", type=int)
    if threshold is None:
        threshold = current_app.config["LOW_STOCK_THRESHOLD"]
    products = products_service.get_low_stock_products(db.session, threshold=threshold)
    return {
        "threshold": threshold,
        "items": [p.to_dict() for p in products],
        "count": len(products),
    }


@products_bp.get("/barcode/<string:barcode>")
def get_by_barcode(barcode: str):
    try:
        product = products_service.get_product_by_barcode(db.session, barcode)
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    return {"product": product.to_dict()}


@products_bp.get("/<int:product_id>")
def get_product(product_id: int):
    try:
        product = products_service.get_product(db.session, product_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    return {"product": product.to_dict()}


@products_bp.post("")
def create_product_route():
    """
    Create a new product.

    Body: product fields plus optional discount_rules
    [{"min_quantity": 5, "percent": 10}, ...]
    """
    try:
        payload, rules = _split_payload(request.get_json(silent=True) or {})
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=False)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product = products_service.create_product(db.session, patch=patch, discount_rules=rules)
    except ConflictError as e:
        return {"error": str(e)}, 409

    current_app.logger.info("Product %s created", product.id)
    return {"product": product.to_dict()}, 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """
    Update a product. Omitted fields are unchanged; a discount_rules key
    replaces all rules (an empty list clears them).
    """
    try:
        payload, rules = _split_payload(request.get_json(silent=True) or {})
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_POLICY, partial=True)
        enforce_rules_product(patch)
    except ValidationError as e:
        return {"error": str(e)}, 400

    try:
        product = products_service.update_product(
            db.session, product_id, patch=patch, discount_rules=rules
        )
    except ConflictError as e:
        current_app.logger.warning("Product %s update rejected: %s", product_id, e)
        return {"error": str(e)}, 409
    except ValidationError as e:
        return {"error": str(e)}, 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status

    return {"product": product.to_dict()}


@products_bp.delete("/<int:product_id>")
def delete_product_route(product_id: int):
    """Delete a product; its past sale items keep their snapshots."""
    deleted = products_service.delete_product(db.session, product_id)
    if not deleted:
        return {"error": "Product not found"}, 404

    current_app.logger.info("Product %s deleted", product_id)
    return {"ok": True}, 200
