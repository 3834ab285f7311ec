import pytest

from tabletpos.errors import InvalidDiscount
from tabletpos.services.cart import ProductSnapshot, RuleSnapshot, CartLine
from tabletpos.services.pricing_service import (
    discount_percent_display,
    effective_unit_price,
    line_item_totals,
    resolve_discount_percent,
    tiered_unit_price,
    validate_manual_price,
    validate_percent,
)


def _product(price_cents, rules=()):
    return ProductSnapshot(
        id=1,
        name="Item",
        price_cents=price_cents,
        stock=100,
        discount_rules=tuple(RuleSnapshot(min_quantity=q, percent_bps=bps) for q, bps in rules),
    )


class TestTieredDiscount:
    def test_no_rules_charges_list_price(self):
        product = _product(100)
        assert effective_unit_price(product, 7) == 100

    def test_rule_activates_at_threshold(self):
        product = _product(50, rules=[(5, 1000)])
        assert effective_unit_price(product, 4) == 50
        assert effective_unit_price(product, 5) == 45

    def test_scenario_bulk_line_totals(self):
        product = _product(50, rules=[(5, 1000)])
        totals = line_item_totals(CartLine(product=product, quantity=5))
        assert totals.subtotal_cents == 250
        assert totals.total_cents == 225
        assert totals.discount_cents == 25
        assert totals.discount_percent_display == 10.0

    def test_highest_qualifying_percent_wins(self):
        # Larger threshold carries the smaller percent
        rules = [(2, 2000), (10, 500)]
        assert resolve_discount_percent(rules=[RuleSnapshot(q, b) for q, b in rules], quantity=12) == 20.0
        assert resolve_discount_percent(rules=[RuleSnapshot(q, b) for q, b in rules], quantity=1) == 0.0

    def test_unit_price_non_increasing_in_quantity(self):
        product = _product(999, rules=[(3, 500), (6, 1250), (10, 3000)])
        prices = [effective_unit_price(product, q) for q in range(1, 20)]
        assert prices == sorted(prices, reverse=True)
        assert all(0 <= p <= 999 for p in prices)

    def test_rounding_is_half_up(self):
        # 15% of 10 cents is 1.5 cents
        assert tiered_unit_price(10, 1500) == 8
        # 12.5% of 4 cents is 0.5 cents
        assert tiered_unit_price(4, 1250) == 3
        assert tiered_unit_price(4, 1000) == 4

    def test_full_discount_is_free(self):
        assert tiered_unit_price(250, 10_000) == 0


class TestManualOverride:
    def test_scenario_override_bounds(self):
        product = _product(20, rules=[(1, 5000)])
        with pytest.raises(InvalidDiscount):
            effective_unit_price(product, 1, manual_price_cents=25)
        with pytest.raises(InvalidDiscount):
            effective_unit_price(product, 1, manual_price_cents=-1)
        # Override beats the auto discount even when it is worse for the customer
        assert effective_unit_price(product, 1, manual_price_cents=15) == 15

    def test_override_at_bounds_is_accepted(self):
        assert validate_manual_price(20, 0) == 0
        assert validate_manual_price(20, 20) == 20

    def test_integral_float_is_accepted(self):
        assert validate_manual_price(20, 15.0) == 15

    @pytest.mark.parametrize("bad", [15.5, "15", True, None])
    def test_non_cent_values_rejected(self, bad):
        with pytest.raises(InvalidDiscount):
            validate_manual_price(20, bad)


class TestPercentValidation:
    def test_percent_to_basis_points(self):
        assert validate_percent(10) == 1000
        assert validate_percent("12.5") == 1250
        assert validate_percent(0) == 0
        assert validate_percent(100) == 10_000

    @pytest.mark.parametrize("bad", [-1, 100.01, "abc", None, True, float("nan")])
    def test_invalid_percent_rejected(self, bad):
        with pytest.raises(InvalidDiscount):
            validate_percent(bad)


def test_discount_percent_display():
    assert discount_percent_display(100, 100) == 0.0
    assert discount_percent_display(0, 0) == 0.0
    assert discount_percent_display(300, 200) == 33.33
