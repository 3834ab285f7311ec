# Overview: Flask API routes for cart quoting and checkout; parses input and returns JSON responses.

"""
Checkout routes.

The tablet keeps its cart locally and posts it here. The server rebuilds
the cart against live stock (so the same stock and pricing rules apply as
in the in-memory cart), then commits it through the checkout engine.
"""

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import PosError, TotalMismatch
from ..services import checkout_service
from ..validation import ValidationError, parse_checkout_lines, optional_cents


checkout_bp = Blueprint("checkout", __name__, url_prefix="/api/checkout")


def _cart_from_request(data: dict):
    lines = parse_checkout_lines(data.get("lines"))
    return checkout_service.build_cart(db.session, lines)


@checkout_bp.post("/quote")
def quote_route():
    """Price a cart without committing anything."""
    data = request.get_json(silent=True) or {}
    try:
        cart = _cart_from_request(data)
    except ValidationError as e:
        return {"error": str(e)}, 400
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    finally:
        # Reads only; release the transaction
        db.session.rollback()

    return {"cart": cart.to_dict()}, 200


@checkout_bp.post("")
def checkout_route():
    """
    Commit a sale.

    Body:
    - lines: [{"product_id", "quantity", "manual_price_cents"?}]
    - sale_date: "YYYY-MM-DD" (optional, defaults to today)
    - grand_total_cents: int (optional; must match the priced cart)
    - amount_tendered_cents: int (optional; must cover the total)
    """
    data = request.get_json(silent=True) or {}
    try:
        cart = _cart_from_request(data)
        grand_total = optional_cents(data, "grand_total_cents")
        if grand_total is not None and grand_total != cart.grand_total_cents:
            raise TotalMismatch(expected_cents=cart.grand_total_cents, given_cents=grand_total)

        sale_id = checkout_service.checkout_cart(
            db.session,
            cart,
            sale_date=data.get("sale_date"),
            amount_tendered_cents=optional_cents(data, "amount_tendered_cents"),
        )
    except ValidationError as e:
        db.session.rollback()
        return {"error": str(e)}, 400
    except PosError as e:
        db.session.rollback()
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        db.session.rollback()
        current_app.logger.exception("Failed to process checkout")
        return jsonify({"error": "Internal server error"}), 500

    sale = checkout_service.get_sale(db.session, sale_id)
    current_app.logger.info(
        "Sale %s committed: %s line(s), total_cents=%s", sale.id, len(sale.items), sale.total_cents
    )
    return jsonify({"sale": sale.to_dict(include_items=True), "cart": cart.to_dict()}), 201
