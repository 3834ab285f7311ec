# Overview: Pure pricing functions for tiered quantity discounts and manual price overrides.

"""
tabletpos Pricing Invariants (authoritative)

- All money is integer cents; percents are basis points internally
  (10000 bps = 100%).
- Tiered resolution picks the HIGHEST percent among rules whose
  min_quantity <= quantity, not the rule with the largest min_quantity.
- A manual override always beats the tiered discount. Clearing the override
  falls back to the tiered price, not to the list price.
- 0 <= effective unit price <= list price, always. Overrides outside that
  closed range are rejected with InvalidDiscount.
- Tiered prices round half-up to the nearest cent.

No side effects: these functions accept ORM Products, DiscountRules or the
cart's frozen snapshots interchangeably (anything with price_cents /
discount_rules, and min_quantity / percent_bps).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Iterable

from ..errors import InvalidDiscount

MAX_PERCENT_BPS = 10_000


@dataclass(frozen=True)
class LineTotals:
    subtotal_cents: int
    total_cents: int
    discount_cents: int
    discount_percent_display: float

    def to_dict(self) -> dict:
        return {
            "subtotal_cents": self.subtotal_cents,
            "total_cents": self.total_cents,
            "discount_cents": self.discount_cents,
            "discount_percent": self.discount_percent_display,
        }


def validate_percent(percent) -> int:
    """Convert a percent (e.g. 12.5) to basis points, rejecting malformed values."""
    if isinstance(percent, bool) or percent is None:
        raise InvalidDiscount("percent must be a number", {"percent": percent})
    try:
        value = Decimal(str(percent))
    except (InvalidOperation, ValueError):
        raise InvalidDiscount("percent must be a number", {"percent": percent})
    if not value.is_finite():
        raise InvalidDiscount("percent must be a number", {"percent": str(percent)})
    if value < 0 or value > 100:
        raise InvalidDiscount("percent must be between 0 and 100", {"percent": float(value)})
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def resolve_discount_bps(rules: Iterable, quantity: int) -> int:
    best = 0
    for rule in rules or ():
        if rule.min_quantity <= quantity and rule.percent_bps > best:
            best = rule.percent_bps
    return best


def resolve_discount_percent(rules: Iterable, quantity: int) -> float:
    """Best qualifying tiered percent for `quantity` (0 when nothing qualifies)."""
    return resolve_discount_bps(rules, quantity) / 100


def validate_manual_price(base_price_cents: int, manual_price_cents) -> int:
    """
    Check a manual unit price against the list price and return it as int cents.

    Raises InvalidDiscount when the override is not whole cents or falls
    outside [0, base_price_cents].
    """
    if isinstance(manual_price_cents, bool):
        raise InvalidDiscount("manual price must be whole cents", {"manual_price_cents": manual_price_cents})
    if isinstance(manual_price_cents, float):
        if not manual_price_cents.is_integer():
            raise InvalidDiscount("manual price must be whole cents", {"manual_price_cents": manual_price_cents})
        manual_price_cents = int(manual_price_cents)
    if not isinstance(manual_price_cents, int):
        raise InvalidDiscount("manual price must be whole cents", {"manual_price_cents": manual_price_cents})

    if manual_price_cents < 0:
        raise InvalidDiscount(
            "manual price cannot be negative",
            {"manual_price_cents": manual_price_cents, "base_price_cents": base_price_cents},
        )
    if manual_price_cents > base_price_cents:
        raise InvalidDiscount(
            "manual price cannot exceed the original price",
            {"manual_price_cents": manual_price_cents, "base_price_cents": base_price_cents},
        )
    return manual_price_cents


def tiered_unit_price(base_price_cents: int, percent_bps: int) -> int:
    # nearest-cent rounding (half-up) of the discount amount
    discount = (base_price_cents * percent_bps + MAX_PERCENT_BPS // 2) // MAX_PERCENT_BPS
    return base_price_cents - discount


def effective_unit_price(product, quantity: int, manual_price_cents: int | None = None) -> int:
    """
    Unit price charged for `quantity` units of `product`.

    Manual override wins unconditionally; otherwise the tiered discount for
    the quantity applies.
    """
    base = product.price_cents
    if manual_price_cents is not None:
        return validate_manual_price(base, manual_price_cents)
    return tiered_unit_price(base, resolve_discount_bps(product.discount_rules, quantity))


def discount_percent_display(base_price_cents: int, unit_price_cents: int) -> float:
    if base_price_cents <= 0 or unit_price_cents >= base_price_cents:
        return 0.0
    return round((1 - unit_price_cents / base_price_cents) * 100, 2)


def line_item_totals(line) -> LineTotals:
    """Derived totals for a cart line (product, quantity, manual_price_cents)."""
    base = line.product.price_cents
    unit = effective_unit_price(line.product, line.quantity, line.manual_price_cents)

    subtotal = base * line.quantity
    total = unit * line.quantity
    return LineTotals(
        subtotal_cents=subtotal,
        total_cents=total,
        discount_cents=max(subtotal - total, 0),
        discount_percent_display=discount_percent_display(base, unit),
    )
