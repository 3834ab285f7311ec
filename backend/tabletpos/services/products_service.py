# backend/tabletpos/services/products_service.py
"""
Product catalog service.

Covers the collaborator contracts the checkout core consumes:
- (product_id | barcode) -> Product lookup
- product add / edit / delete, including discount-rule replacement
- low-stock listing for the dashboard

Stock edits here are ABSOLUTE sets (direct edit). Relative stock movement
belongs to the checkout engine only.
"""
from __future__ import annotations

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ProductNotFound
from ..models import Product, DiscountRule, DEFAULT_CATEGORY
from ..validation import ConflictError
from .inventory_service import set_stock

PRODUCT_MUTABLE_FIELDS = {
    "name", "category", "barcode", "image_path",
    "price_cents", "capital_price_cents", "quantity",
}


def _normalize_category(value: str | None) -> str:
    if value is None or not value.strip():
        return DEFAULT_CATEGORY
    return value.strip()


def _ensure_barcode_free(session, barcode: str | None, product_id: int | None = None) -> None:
    if not barcode:
        return
    q = select(Product.id).where(Product.barcode == barcode)
    if product_id is not None:
        q = q.where(Product.id != product_id)
    if session.execute(q).first() is not None:
        raise ConflictError(f"Barcode {barcode!r} already exists")


def replace_discount_rules(product: Product, rules: list[tuple[int, int]]) -> None:
    """Replace the product's tiered rules, keeping submitted order."""
    product.discount_rules = [
        DiscountRule(min_quantity=min_quantity, percent_bps=percent_bps, position=i)
        for i, (min_quantity, percent_bps) in enumerate(rules)
    ]


def get_product(session, product_id: int) -> Product:
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    return product


def get_product_by_barcode(session, barcode: str) -> Product:
    product = session.execute(
        select(Product).where(Product.barcode == barcode)
    ).scalar_one_or_none()
    if product is None:
        raise ProductNotFound(barcode=barcode)
    return product


def list_products(session, *, search: str | None = None, category: str | None = None) -> list[Product]:
    """All products ordered by name; `search` matches name or barcode."""
    q = select(Product)
    if search:
        term = f"%{search.strip().lower()}%"
        q = q.where(or_(func.lower(Product.name).like(term), Product.barcode.like(term)))
    if category:
        q = q.where(Product.category == category)
    return list(session.execute(q.order_by(Product.name.asc(), Product.id.asc())).scalars())


def list_categories(session) -> list[str]:
    rows = session.execute(select(Product.category).distinct().order_by(Product.category.asc()))
    return [row[0] for row in rows]


def get_low_stock_products(session, threshold: int = 10) -> list[Product]:
    """Products with quantity <= threshold, emptiest first."""
    q = (
        select(Product)
        .where(Product.quantity <= threshold)
        .order_by(Product.quantity.asc(), Product.name.asc())
    )
    return list(session.execute(q).scalars())


def create_product(session, *, patch: dict, discount_rules: list[tuple[int, int]] | None = None) -> Product:
    """
    Create product from a validated patch dict.

    Defaults:
    - blank category -> "Uncategorized"
    - missing capital price -> selling price
    - missing quantity -> 0

    Raises ConflictError when the barcode is already taken.
    """
    _ensure_barcode_free(session, patch.get("barcode"))

    price_cents = patch["price_cents"]
    capital = patch.get("capital_price_cents")
    product = Product(
        name=patch["name"],
        category=_normalize_category(patch.get("category")),
        barcode=patch.get("barcode"),
        image_path=patch.get("image_path"),
        price_cents=price_cents,
        capital_price_cents=price_cents if capital is None else capital,
        quantity=patch.get("quantity") or 0,
    )
    replace_discount_rules(product, discount_rules or [])
    session.add(product)

    try:
        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Barcode {patch.get('barcode')!r} already exists")
    return product


def update_product(
    session,
    product_id: int,
    *,
    patch: dict,
    discount_rules: list[tuple[int, int]] | None = None,
) -> Product:
    """
    Apply a validated patch. `discount_rules=None` leaves rules untouched;
    an empty list clears them.
    """
    try:
        product = get_product(session, product_id)
        _ensure_barcode_free(session, patch.get("barcode"), product_id=product_id)

        for k, v in patch.items():
            if k not in PRODUCT_MUTABLE_FIELDS or k == "quantity":
                continue
            if k == "category":
                v = _normalize_category(v)
            if k == "capital_price_cents" and v is None:
                v = patch.get("price_cents", product.price_cents)
            setattr(product, k, v)

        if patch.get("quantity") is not None:
            set_stock(session, product_id, patch["quantity"])

        if discount_rules is not None:
            replace_discount_rules(product, discount_rules)

        session.commit()
    except IntegrityError:
        session.rollback()
        raise ConflictError(f"Barcode {patch.get('barcode')!r} already exists")
    except StaleDataError:
        # A checkout or void moved this product's stock mid-edit
        session.rollback()
        raise ConflictError(f"Product {product_id} was changed by another transaction; reload and retry")
    except Exception:
        session.rollback()
        raise
    return product


def delete_product(session, product_id: int) -> bool:
    """
    Delete a product. Sale history is untouched: SaleItems keep their
    product_id and name/barcode snapshot.
    """
    product = session.get(Product, product_id)
    if product is None:
        return False
    session.delete(product)
    session.commit()
    return True
