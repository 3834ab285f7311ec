# Overview: Checkout transaction engine; atomic sale commit with stock decrement, and compensating void.

"""
tabletpos Checkout Invariants (authoritative)

Atomicity:
- process_checkout and void_sale each run as ONE database transaction.
  Every failure rolls back every write made by the call: no partial sale,
  no partial stock movement.
- The engine receives its session explicitly; it never reaches for a global.

Checkout phases:
1. Validation: quantities are summed per product and checked against
   stock re-read at commit time (row-locked where the dialect supports it).
   Missing products -> ProductNotFound; short stock -> InsufficientStock.
   Nothing has been written when these are raised.
2. Commit: Sale row, one SaleItem per line, and a conditional decrement
   per line. A refused decrement -> StockValidationFailed -> rollback.

Void:
- Active -> Voided is the only transition; voiding twice is a no-op.
- Stock is returned for every item whose product still exists; deleted
  products are skipped, never an error.
- SaleItems are never modified or deleted.
"""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import select

from ..errors import (
    EmptyCart,
    CheckoutError,
    InsufficientPayment,
    InsufficientStock,
    ProductNotFound,
    SaleNotFound,
    TotalMismatch,
)
from ..models import Product, Sale, SaleItem
from ..time_utils import normalize_sale_date, utcnow
from ..validation import ValidationError
from .cart import Cart, CheckoutLine
from .concurrency import lock_for_update, run_with_retry
from .inventory_service import decrement_stock, get_stock, increment_stock
from .products_service import get_product


def _as_checkout_line(line) -> CheckoutLine:
    if isinstance(line, CheckoutLine):
        return line
    if isinstance(line, dict):
        try:
            return CheckoutLine(
                product_id=line["product_id"],
                quantity=line["quantity"],
                unit_price_cents=line["unit_price_cents"],
                list_price_cents=line.get("list_price_cents", line["unit_price_cents"]),
                product_name=line.get("product_name", ""),
                product_barcode=line.get("product_barcode"),
                manual_override=bool(line.get("manual_override", False)),
            )
        except KeyError as exc:
            raise CheckoutError(f"Checkout line missing {exc.args[0]}")
    raise CheckoutError("Unsupported checkout line")


def _check_line_shape(line: CheckoutLine) -> None:
    if isinstance(line.quantity, bool) or not isinstance(line.quantity, int) or line.quantity < 1:
        raise CheckoutError("Line quantity must be a positive integer", details={"product_id": line.product_id})
    if line.unit_price_cents < 0 or line.unit_price_cents > line.list_price_cents:
        raise CheckoutError(
            "Line unit price must be between 0 and the list price",
            details={
                "product_id": line.product_id,
                "unit_price_cents": line.unit_price_cents,
                "list_price_cents": line.list_price_cents,
            },
        )


def _validate_stock(session, lines: list[CheckoutLine]) -> dict[int, dict]:
    """
    Phase 1. Re-read stock for every product in the cart.

    Returns product_id -> {"name", "barcode", "quantity"} for snapshotting.
    """
    requested: dict[int, int] = {}
    for line in lines:
        requested[line.product_id] = requested.get(line.product_id, 0) + line.quantity

    # Column query so identity-mapped Products cannot hand back stale stock
    rows = session.execute(
        lock_for_update(
            select(Product.id, Product.name, Product.barcode, Product.quantity)
            .where(Product.id.in_(list(requested)))
        )
    ).all()
    products = {row.id: {"name": row.name, "barcode": row.barcode, "quantity": row.quantity} for row in rows}

    for product_id, qty in requested.items():
        product = products.get(product_id)
        if product is None:
            raise ProductNotFound(product_id)
        if product["quantity"] < qty:
            raise InsufficientStock(product_id, available=product["quantity"], requested=qty)

    return products


def process_checkout(
    session,
    lines: Iterable,
    grand_total_cents: int | None = None,
    sale_date=None,
    amount_tendered_cents: int | None = None,
) -> int:
    """
    Commit a sale atomically and return its id.

    `lines` are CheckoutLine snapshots (Cart.checkout_lines()) or dicts with
    product_id / quantity / unit_price_cents. `grand_total_cents`, when
    given, must match the lines; `amount_tendered_cents`, when given, must
    cover it and the change is recorded on the sale.
    """
    lines = [_as_checkout_line(line) for line in lines]
    if not lines:
        raise EmptyCart()
    for line in lines:
        _check_line_shape(line)

    try:
        sale_date = normalize_sale_date(sale_date)
    except ValueError:
        raise ValidationError("sale_date must be an ISO date (YYYY-MM-DD)")

    total = sum(line.line_total_cents for line in lines)
    original_total = sum(line.list_price_cents * line.quantity for line in lines)
    if grand_total_cents is not None and grand_total_cents != total:
        raise TotalMismatch(expected_cents=total, given_cents=grand_total_cents)

    change = None
    if amount_tendered_cents is not None:
        if amount_tendered_cents < total:
            raise InsufficientPayment(total_cents=total, tendered_cents=amount_tendered_cents)
        change = amount_tendered_cents - total

    def _op():
        try:
            snapshots = _validate_stock(session, lines)

            sale = Sale(
                total_cents=total,
                original_total_cents=original_total,
                discount_cents=max(original_total - total, 0),
                sale_date=sale_date,
                amount_tendered_cents=amount_tendered_cents,
                change_cents=change,
                voided=False,
            )
            session.add(sale)
            session.flush()

            for line in lines:
                snap = snapshots[line.product_id]
                session.add(SaleItem(
                    sale_id=sale.id,
                    product_id=line.product_id,
                    product_name=line.product_name or snap["name"],
                    product_barcode=line.product_barcode if line.product_barcode is not None else snap["barcode"],
                    quantity=line.quantity,
                    unit_price_cents=line.unit_price_cents,
                    list_price_cents=line.list_price_cents,
                    manual_override=line.manual_override,
                ))
                decrement_stock(session, line.product_id, line.quantity)

            session.flush()
            sale_id = sale.id
            session.commit()
            return sale_id
        except Exception:
            session.rollback()
            raise

    return run_with_retry(session, _op)


def checkout_cart(session, cart: Cart, sale_date=None, amount_tendered_cents: int | None = None) -> int:
    """Commit a Cart. The cart itself is left untouched; the caller clears it."""
    return process_checkout(
        session,
        cart.checkout_lines(),
        grand_total_cents=cart.grand_total_cents,
        sale_date=sale_date,
        amount_tendered_cents=amount_tendered_cents,
    )


def build_cart(session, requests: list[dict]) -> Cart:
    """
    Build a Cart from {"product_id", "quantity", "manual_price_cents"}
    requests, bounding quantities by live stock.

    Repeated product ids are merged into one line.
    """
    cart = Cart(stock_source=lambda product_id: get_stock(session, product_id))
    for req in requests:
        product_id = req["product_id"]
        index = cart.find(product_id)
        if index < 0:
            cart.add(get_product(session, product_id))
            index = cart.find(product_id)
            quantity = req["quantity"]
        else:
            quantity = cart.lines[index].quantity + req["quantity"]
        cart.set_quantity(index, quantity)
        if req.get("manual_price_cents") is not None:
            cart.set_manual_price(index, req["manual_price_cents"])
    return cart


def get_sale(session, sale_id: int) -> Sale:
    sale = session.get(Sale, sale_id)
    if sale is None:
        raise SaleNotFound(sale_id)
    return sale


def void_sale(session, sale_id: int, reason: str | None = None) -> Sale:
    """
    Void a sale and return its stock, atomically.

    Idempotent: an already voided sale is returned unchanged.
    """
    def _op():
        try:
            sale = session.execute(
                lock_for_update(select(Sale).where(Sale.id == sale_id))
                .execution_options(populate_existing=True)
            ).scalar_one_or_none()
            if sale is None:
                raise SaleNotFound(sale_id)

            if sale.voided:
                # Nothing to write; release the row lock
                session.rollback()
                return sale

            items = session.execute(select(SaleItem).where(SaleItem.sale_id == sale.id)).scalars().all()
            for item in items:
                # False when the product was deleted since the sale; skip it
                increment_stock(session, item.product_id, item.quantity)

            sale.voided = True
            sale.voided_at = utcnow()
            sale.void_reason = reason

            session.commit()
            return sale
        except Exception:
            session.rollback()
            raise

    return run_with_retry(session, _op)
