# Overview: Domain error types raised by the pricing, cart, inventory and checkout layers.

"""
tabletpos error hierarchy.

Every domain error carries a human-readable message and a `details` dict
so the HTTP layer can return structured feedback without string parsing.

Propagation rules:
- Validation errors (ProductNotFound, InsufficientStock, InvalidDiscount,
  CheckoutError) are raised before anything is written.
- StockValidationFailed is raised mid-commit; the caller's transaction is
  rolled back by the checkout engine before it propagates.
"""

from __future__ import annotations


class PosError(Exception):
    """Base class for checkout/pricing domain errors."""
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"error": self.message, "details": self.details}


class ProductNotFound(PosError):
    http_status = 404

    def __init__(self, product_id: int | None = None, barcode: str | None = None):
        if barcode is not None:
            message = f"Product with barcode {barcode!r} not found"
        else:
            message = f"Product with ID {product_id} not found"
        super().__init__(message, details={"product_id": product_id, "barcode": barcode})
        self.product_id = product_id
        self.barcode = barcode


class InsufficientStock(PosError):
    http_status = 409

    def __init__(self, product_id: int, available: int, requested: int):
        super().__init__(
            f"Insufficient stock. Product ID {product_id} has only {available} available, "
            f"but {requested} requested",
            details={"product_id": product_id, "available": available, "requested": requested},
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class InvalidDiscount(PosError):
    def __init__(self, reason: str, details: dict | None = None):
        super().__init__(f"Invalid discount: {reason}", details=dict(details or {}, reason=reason))
        self.reason = reason


class StockValidationFailed(PosError):
    """Conditional decrement refused: stock would go negative."""
    http_status = 409

    def __init__(self, product_id: int, requested: int):
        super().__init__(
            f"Stock validation failed. Product ID {product_id} would have negative stock",
            details={"product_id": product_id, "requested": requested},
        )
        self.product_id = product_id
        self.requested = requested


class SaleNotFound(PosError):
    http_status = 404

    def __init__(self, sale_id: int):
        super().__init__(f"Sale {sale_id} not found", details={"sale_id": sale_id})
        self.sale_id = sale_id


class CartError(PosError):
    """Invalid cart operation (bad line index, bad quantity)."""


class CheckoutError(PosError):
    """Checkout request rejected before any write."""


class EmptyCart(CheckoutError):
    def __init__(self):
        super().__init__("Cart is empty")


class TotalMismatch(CheckoutError):
    def __init__(self, expected_cents: int, given_cents: int):
        super().__init__(
            "Grand total does not match line items",
            details={"expected_cents": expected_cents, "given_cents": given_cents},
        )


class InsufficientPayment(CheckoutError):
    def __init__(self, total_cents: int, tendered_cents: int):
        super().__init__(
            "Customer payment is less than total",
            details={"total_cents": total_cents, "tendered_cents": tendered_cents},
        )
