# Overview: In-memory cart aggregate; line-item mutations bounded by live stock and order totals.

"""
Cart aggregate.

WHY: A cart is ephemeral and owned by exactly one checkout session, so it
lives in memory and is only persisted when the checkout engine commits it.

Products are captured as frozen snapshots at add time (price and discount
rules). Quantity bounds use LIVE stock when a stock_source is supplied, so a
stale snapshot cannot let the cart outgrow the shelf; the checkout engine
still re-checks at commit time.

Invariant: original_total_cents - total_discount_cents == grand_total_cents
for every cart state (exact, integer cents).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional

from ..errors import CartError, InsufficientStock
from .pricing_service import effective_unit_price, line_item_totals, validate_manual_price


@dataclass(frozen=True)
class RuleSnapshot:
    min_quantity: int
    percent_bps: int


@dataclass(frozen=True)
class ProductSnapshot:
    id: int
    name: str
    price_cents: int
    stock: int
    barcode: Optional[str] = None
    discount_rules: tuple[RuleSnapshot, ...] = ()

    @classmethod
    def from_product(cls, product) -> "ProductSnapshot":
        if isinstance(product, cls):
            return product
        return cls(
            id=product.id,
            name=product.name,
            price_cents=product.price_cents,
            stock=product.quantity,
            barcode=product.barcode,
            discount_rules=tuple(
                RuleSnapshot(min_quantity=r.min_quantity, percent_bps=r.percent_bps)
                for r in product.discount_rules
            ),
        )


@dataclass
class CartLine:
    product: ProductSnapshot
    quantity: int = 1
    manual_price_cents: Optional[int] = None

    @property
    def unit_price_cents(self) -> int:
        return effective_unit_price(self.product, self.quantity, self.manual_price_cents)

    @property
    def totals(self):
        return line_item_totals(self)

    def to_dict(self) -> dict:
        data = {
            "product_id": self.product.id,
            "name": self.product.name,
            "barcode": self.product.barcode,
            "quantity": self.quantity,
            "price_cents": self.product.price_cents,
            "manual_price_cents": self.manual_price_cents,
            "unit_price_cents": self.unit_price_cents,
        }
        data.update(self.totals.to_dict())
        return data


@dataclass(frozen=True)
class CheckoutLine:
    """What the checkout engine persists for one line."""
    product_id: int
    quantity: int
    unit_price_cents: int
    list_price_cents: int
    product_name: str = ""
    product_barcode: Optional[str] = None
    manual_override: bool = False

    @property
    def line_total_cents(self) -> int:
        return self.unit_price_cents * self.quantity


@dataclass
class Cart:
    stock_source: Optional[Callable[[int], int]] = None
    lines: list[CartLine] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.lines)

    def __iter__(self):
        return iter(self.lines)

    def _live_stock(self, product: ProductSnapshot) -> int:
        if self.stock_source is None:
            return product.stock
        return self.stock_source(product.id)

    def _line(self, index: int) -> CartLine:
        if not isinstance(index, int) or index < 0 or index >= len(self.lines):
            raise CartError("Cart line not found", details={"index": index})
        return self.lines[index]

    def find(self, product_id: int) -> int:
        """Index of the line holding product_id, or -1."""
        for i, line in enumerate(self.lines):
            if line.product.id == product_id:
                return i
        return -1

    def add(self, product) -> CartLine:
        """Add one unit of product, merging into an existing line."""
        snapshot = ProductSnapshot.from_product(product)
        available = self._live_stock(snapshot)
        if available <= 0:
            raise InsufficientStock(snapshot.id, available=max(available, 0), requested=1)

        index = self.find(snapshot.id)
        if index >= 0:
            line = self.lines[index]
            if line.quantity + 1 > available:
                raise InsufficientStock(snapshot.id, available=available, requested=line.quantity + 1)
            line.quantity += 1
            return line

        line = CartLine(product=snapshot, quantity=1)
        self.lines.append(line)
        return line

    def remove(self, index: int) -> CartLine:
        self._line(index)
        return self.lines.pop(index)

    def set_quantity(self, index: int, quantity: int) -> Optional[CartLine]:
        """Set a line's quantity; zero or less removes the line (returns None)."""
        line = self._line(index)
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise CartError("quantity must be an integer", details={"quantity": quantity})
        if quantity <= 0:
            self.lines.pop(index)
            return None

        available = self._live_stock(line.product)
        if quantity > available:
            raise InsufficientStock(line.product.id, available=available, requested=quantity)
        line.quantity = quantity
        return line

    def set_manual_price(self, index: int, manual_price_cents: Optional[int]) -> CartLine:
        """Override the unit price; None reverts to the tiered price."""
        line = self._line(index)
        if manual_price_cents is None:
            line.manual_price_cents = None
        else:
            line.manual_price_cents = validate_manual_price(line.product.price_cents, manual_price_cents)
        return line

    def clear(self) -> None:
        self.lines.clear()

    @property
    def original_total_cents(self) -> int:
        return sum(line.totals.subtotal_cents for line in self.lines)

    @property
    def total_discount_cents(self) -> int:
        return sum(line.totals.discount_cents for line in self.lines)

    @property
    def grand_total_cents(self) -> int:
        return sum(line.totals.total_cents for line in self.lines)

    def checkout_lines(self) -> list[CheckoutLine]:
        return [
            CheckoutLine(
                product_id=line.product.id,
                quantity=line.quantity,
                unit_price_cents=line.unit_price_cents,
                list_price_cents=line.product.price_cents,
                product_name=line.product.name,
                product_barcode=line.product.barcode,
                manual_override=line.manual_price_cents is not None,
            )
            for line in self.lines
        ]

    def to_dict(self) -> dict:
        return {
            "lines": [line.to_dict() for line in self.lines],
            "original_total_cents": self.original_total_cents,
            "total_discount_cents": self.total_discount_cents,
            "grand_total_cents": self.grand_total_cents,
        }
