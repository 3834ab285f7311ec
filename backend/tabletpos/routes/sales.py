# Overview: Flask API routes for sale lookup and voiding; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, current_app

from ..extensions import db
from ..errors import PosError
from ..services import checkout_service


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


@sales_bp.get("/<int:sale_id>")
def get_sale_route(sale_id: int):
    """Get sale with its item snapshots (receipt / audit view)."""
    try:
        sale = checkout_service.get_sale(db.session, sale_id)
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    return jsonify({"sale": sale.to_dict(include_items=True)}), 200


@sales_bp.post("/<int:sale_id>/void")
def void_sale_route(sale_id: int):
    """
    Void a sale and return its stock.

    Voiding an already voided sale succeeds without changing anything.
    """
    data = request.get_json(silent=True) or {}
    try:
        sale = checkout_service.void_sale(db.session, sale_id, reason=data.get("reason"))
    except PosError as e:
        return jsonify(e.to_dict()), e.http_status
    except Exception:
        current_app.logger.exception("Failed to void sale")
        return jsonify({"error": "Internal server error"}), 500

    current_app.logger.info("Sale %s voided", sale.id)
    return jsonify({"sale": sale.to_dict(include_items=True)}), 200
