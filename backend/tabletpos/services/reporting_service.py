# Overview: Read-only sales and inventory aggregates over an inclusive date range.

"""
tabletpos Reporting Semantics (authoritative)

- Ranges are inclusive [start, end] over Sale.sale_date ('YYYY-MM-DD'),
  compared as strings. Either bound may be omitted (open-ended).
- Voided sales never contribute to revenue or quantity aggregates.
- Revenue is quantity * unit price ACTUALLY charged (post-discount).
- Product names come from the SaleItem snapshot, so sales of products that
  were deleted later still show up.
- inventory_report reconstructs beginning_stock = remaining + sold. This
  holds only while checkout and void are the sole stock movements in the
  period; manual stock edits make it an approximation.
"""

from __future__ import annotations

from sqlalchemy import func

from ..models import Product, Sale, SaleItem
from ..time_utils import normalize_sale_date


class ReportError(Exception):
    """Raised when report generation fails."""
    pass


def _parse_range(start, end) -> tuple[str | None, str | None]:
    try:
        start_date = normalize_sale_date(start) if start else None
        end_date = normalize_sale_date(end) if end else None
    except ValueError:
        raise ReportError("start and end must be ISO dates (YYYY-MM-DD)")
    if start_date and end_date and start_date > end_date:
        raise ReportError("start must be on or before end")
    return start_date, end_date


def _active_in_range(query, start_date: str | None, end_date: str | None):
    query = query.filter(Sale.voided.is_(False))
    if start_date:
        query = query.filter(Sale.sale_date >= start_date)
    if end_date:
        query = query.filter(Sale.sale_date <= end_date)
    return query


def total_sales(session, start=None, end=None) -> int:
    """Sum of grand totals (cents) of non-voided sales in range."""
    start_date, end_date = _parse_range(start, end)
    query = session.query(func.coalesce(func.sum(Sale.total_cents), 0))
    return int(_active_in_range(query, start_date, end_date).scalar() or 0)


def sales_in_range(session, start=None, end=None) -> list[dict]:
    """Non-voided sales in range, newest first, with their item counts."""
    start_date, end_date = _parse_range(start, end)
    item_counts = (
        session.query(
            SaleItem.sale_id.label("sale_id"),
            func.sum(SaleItem.quantity).label("items_sold"),
        )
        .group_by(SaleItem.sale_id)
        .subquery()
    )
    query = session.query(Sale, func.coalesce(item_counts.c.items_sold, 0)).outerjoin(
        item_counts, item_counts.c.sale_id == Sale.id
    )
    rows = _active_in_range(query, start_date, end_date).order_by(Sale.id.desc()).all()

    results = []
    for sale, items in rows:
        data = sale.to_dict()
        data["items_sold"] = int(items or 0)
        results.append(data)
    return results


def products_sold_in_range(session, start=None, end=None) -> list[dict]:
    """Per-product quantity and charged revenue, best sellers first."""
    start_date, end_date = _parse_range(start, end)
    total_quantity = func.sum(SaleItem.quantity)
    query = (
        session.query(
            SaleItem.product_id.label("product_id"),
            func.max(SaleItem.product_name).label("name"),
            func.max(SaleItem.product_barcode).label("barcode"),
            total_quantity.label("total_quantity"),
            func.sum(SaleItem.quantity * SaleItem.unit_price_cents).label("total_revenue_cents"),
            func.sum(SaleItem.quantity * (SaleItem.list_price_cents - SaleItem.unit_price_cents)).label(
                "total_discount_cents"
            ),
        )
        .select_from(SaleItem)
        .join(Sale, SaleItem.sale_id == Sale.id)
    )
    rows = (
        _active_in_range(query, start_date, end_date)
        .group_by(SaleItem.product_id)
        .order_by(total_quantity.desc(), SaleItem.product_id.asc())
        .all()
    )
    return [
        {
            "product_id": row.product_id,
            "name": row.name,
            "barcode": row.barcode,
            "total_quantity": int(row.total_quantity or 0),
            "total_revenue_cents": int(row.total_revenue_cents or 0),
            "total_discount_cents": int(row.total_discount_cents or 0),
        }
        for row in rows
    ]


def inventory_report(session, start=None, end=None) -> list[dict]:
    """
    Per live product: remaining (current) stock, quantity sold in range and
    the reconstructed beginning stock.
    """
    start_date, end_date = _parse_range(start, end)
    sold_query = session.query(
        SaleItem.product_id.label("product_id"),
        func.sum(SaleItem.quantity).label("sold"),
    ).select_from(SaleItem).join(Sale, SaleItem.sale_id == Sale.id)
    sold = _active_in_range(sold_query, start_date, end_date).group_by(SaleItem.product_id).subquery()

    rows = (
        session.query(Product, func.coalesce(sold.c.sold, 0))
        .outerjoin(sold, sold.c.product_id == Product.id)
        .order_by(Product.name.asc(), Product.id.asc())
        .all()
    )

    report = []
    for product, total_sold in rows:
        total_sold = int(total_sold or 0)
        report.append({
            "product_id": product.id,
            "name": product.name,
            "barcode": product.barcode,
            "category": product.category,
            "beginning_stock": product.quantity + total_sold,
            "total_sold": total_sold,
            "remaining_stock": product.quantity,
        })
    return report


def sales_summary(session, start=None, end=None) -> dict:
    """Headline numbers for the range; voided sales are only counted, never summed."""
    start_date, end_date = _parse_range(start, end)

    totals = _active_in_range(
        session.query(
            func.count(Sale.id),
            func.coalesce(func.sum(Sale.total_cents), 0),
            func.coalesce(func.sum(Sale.original_total_cents), 0),
            func.coalesce(func.sum(Sale.discount_cents), 0),
        ),
        start_date,
        end_date,
    ).one()

    items_sold = _active_in_range(
        session.query(func.coalesce(func.sum(SaleItem.quantity), 0))
        .select_from(SaleItem)
        .join(Sale, SaleItem.sale_id == Sale.id),
        start_date,
        end_date,
    ).scalar()

    voided_query = session.query(func.count(Sale.id)).filter(Sale.voided.is_(True))
    if start_date:
        voided_query = voided_query.filter(Sale.sale_date >= start_date)
    if end_date:
        voided_query = voided_query.filter(Sale.sale_date <= end_date)

    return {
        "start": start_date,
        "end": end_date,
        "sales_count": int(totals[0] or 0),
        "total_sales_cents": int(totals[1] or 0),
        "original_total_cents": int(totals[2] or 0),
        "total_discount_cents": int(totals[3] or 0),
        "items_sold": int(items_sold or 0),
        "voided_count": int(voided_query.scalar() or 0),
    }
