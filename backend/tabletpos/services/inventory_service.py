# Overview: Stock ledger reads and conditional writes executed inside the caller's transaction.

"""
tabletpos Inventory Invariants (authoritative)

- Product.quantity is the authoritative on-hand stock.
- Stock never goes negative. A decrement past zero raises
  StockValidationFailed; it is never clamped.
- Decrements are a single conditional UPDATE
  (... SET quantity = quantity - :n WHERE id = :id AND quantity >= :n),
  so the check and the write are one storage-level operation.
- None of these functions commit. They run inside the caller's transaction
  (checkout, void, product edit) and the caller commits or rolls back.
"""

from __future__ import annotations

from sqlalchemy import select, update

from ..errors import ProductNotFound, StockValidationFailed
from ..models import Product
from ..validation import ValidationError
from .concurrency import lock_for_update


def _require_positive_amount(amount) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
        raise ValidationError("amount must be a positive integer")
    return amount


def get_stock(session, product_id: int, *, lock: bool = False) -> int:
    """Current on-hand quantity. Raises ProductNotFound."""
    stmt = select(Product.quantity).where(Product.id == product_id)
    if lock:
        stmt = lock_for_update(stmt)
    quantity = session.execute(stmt).scalar_one_or_none()
    if quantity is None:
        raise ProductNotFound(product_id)
    return int(quantity)


def _stock_update(product_id: int, delta):
    return (
        update(Product)
        .where(Product.id == product_id)
        .values(quantity=Product.quantity + delta, version_id=Product.version_id + 1)
        .execution_options(synchronize_session=False)
    )


def decrement_stock(session, product_id: int, amount: int) -> None:
    """
    Conditionally remove `amount` units.

    Raises ProductNotFound if the product is gone, StockValidationFailed if
    the decrement would take stock below zero.
    """
    amount = _require_positive_amount(amount)
    result = session.execute(
        _stock_update(product_id, -amount).where(Product.quantity >= amount)
    )
    if result.rowcount == 1:
        return

    exists = session.execute(select(Product.id).where(Product.id == product_id)).first()
    if exists is None:
        raise ProductNotFound(product_id)
    raise StockValidationFailed(product_id, requested=amount)


def increment_stock(session, product_id: int, amount: int) -> bool:
    """
    Return `amount` units to stock.

    Returns False (and changes nothing) when the product no longer exists.
    """
    amount = _require_positive_amount(amount)
    result = session.execute(_stock_update(product_id, amount))
    return result.rowcount == 1


def set_stock(session, product_id: int, quantity: int) -> Product:
    """Absolute stock set for direct product edits."""
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 0:
        raise ValidationError("quantity must be an integer >= 0")
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    product.quantity = quantity
    session.flush()
    return product
