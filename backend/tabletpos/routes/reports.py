from flask import Blueprint, jsonify, request

from ..extensions import db
from ..services import reporting_service


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _range():
    return request.args.get("start"), request.args.get("end")


@reports_bp.get("/total")
def total_sales_report():
    start, end = _range()
    try:
        total = reporting_service.total_sales(db.session, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"start": start, "end": end, "total_sales_cents": total}), 200


@reports_bp.get("/sales")
def sales_report():
    start, end = _range()
    try:
        rows = reporting_service.sales_in_range(db.session, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"start": start, "end": end, "rows": rows}), 200


@reports_bp.get("/products")
def products_sold_report():
    start, end = _range()
    try:
        rows = reporting_service.products_sold_in_range(db.session, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"start": start, "end": end, "rows": rows}), 200


@reports_bp.get("/inventory")
def inventory_report():
    start, end = _range()
    try:
        rows = reporting_service.inventory_report(db.session, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"start": start, "end": end, "rows": rows}), 200


@reports_bp.get("/summary")
def summary_report():
    start, end = _range()
    try:
        summary = reporting_service.sales_summary(db.session, start, end)
    except reporting_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(summary), 200
