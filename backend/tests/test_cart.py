import pytest

from tabletpos.errors import CartError, InsufficientStock, InvalidDiscount
from tabletpos.services.cart import Cart, ProductSnapshot, RuleSnapshot


def _snapshot(product_id=1, price_cents=100, stock=10, rules=(), name=None):
    return ProductSnapshot(
        id=product_id,
        name=name or f"Product {product_id}",
        price_cents=price_cents,
        stock=stock,
        barcode=f"BC{product_id}",
        discount_rules=tuple(RuleSnapshot(min_quantity=q, percent_bps=bps) for q, bps in rules),
    )


def _assert_totals_consistent(cart):
    assert cart.original_total_cents - cart.total_discount_cents == cart.grand_total_cents


class TestCartMutations:
    def test_add_merges_same_product(self):
        cart = Cart()
        product = _snapshot()
        cart.add(product)
        cart.add(product)
        assert len(cart) == 1
        assert cart.lines[0].quantity == 2

    def test_add_out_of_stock_rejected(self):
        cart = Cart()
        with pytest.raises(InsufficientStock) as exc_info:
            cart.add(_snapshot(stock=0))
        assert exc_info.value.requested == 1
        assert len(cart) == 0

    def test_add_past_stock_leaves_line_unchanged(self):
        cart = Cart()
        product = _snapshot(stock=2)
        cart.add(product)
        cart.add(product)
        with pytest.raises(InsufficientStock):
            cart.add(product)
        assert cart.lines[0].quantity == 2

    def test_set_quantity_bounded_by_stock(self):
        cart = Cart()
        cart.add(_snapshot(stock=3))
        with pytest.raises(InsufficientStock) as exc_info:
            cart.set_quantity(0, 4)
        assert exc_info.value.available == 3
        assert exc_info.value.requested == 4
        assert cart.lines[0].quantity == 1

        cart.set_quantity(0, 3)
        assert cart.lines[0].quantity == 3

    def test_set_quantity_zero_removes_line(self):
        cart = Cart()
        cart.add(_snapshot(product_id=1))
        cart.add(_snapshot(product_id=2))
        assert cart.set_quantity(0, 0) is None
        assert [line.product.id for line in cart] == [2]

    def test_set_quantity_rejects_non_integer(self):
        cart = Cart()
        cart.add(_snapshot())
        with pytest.raises(CartError):
            cart.set_quantity(0, 2.5)

    def test_bad_index_rejected(self):
        cart = Cart()
        cart.add(_snapshot())
        with pytest.raises(CartError):
            cart.remove(3)
        with pytest.raises(CartError):
            cart.set_quantity(-1, 2)
        with pytest.raises(CartError):
            cart.set_manual_price(1, 50)

    def test_live_stock_source_wins_over_snapshot(self):
        live = {1: 1}
        cart = Cart(stock_source=lambda product_id: live[product_id])
        cart.add(_snapshot(stock=50))
        with pytest.raises(InsufficientStock):
            cart.set_quantity(0, 2)

        live[1] = 5
        cart.set_quantity(0, 5)
        assert cart.lines[0].quantity == 5

    def test_clear(self):
        cart = Cart()
        cart.add(_snapshot())
        cart.clear()
        assert len(cart) == 0
        assert cart.grand_total_cents == 0


class TestCartPricing:
    def test_quantity_change_recomputes_tier(self):
        cart = Cart()
        cart.add(_snapshot(price_cents=50, rules=[(5, 1000)]))
        assert cart.lines[0].unit_price_cents == 50
        cart.set_quantity(0, 5)
        assert cart.lines[0].unit_price_cents == 45
        assert cart.grand_total_cents == 225
        assert cart.total_discount_cents == 25

    def test_clearing_override_reverts_to_tiered_price(self):
        cart = Cart()
        cart.add(_snapshot(price_cents=50, rules=[(5, 1000)]))
        cart.set_quantity(0, 5)
        cart.set_manual_price(0, 40)
        assert cart.lines[0].unit_price_cents == 40

        cart.set_manual_price(0, None)
        # Tiered price, not list price
        assert cart.lines[0].unit_price_cents == 45

    def test_invalid_override_leaves_line_unchanged(self):
        cart = Cart()
        cart.add(_snapshot(price_cents=20))
        cart.set_manual_price(0, 15)
        with pytest.raises(InvalidDiscount):
            cart.set_manual_price(0, 25)
        assert cart.lines[0].manual_price_cents == 15

    def test_totals_consistent_through_mutations(self):
        cart = Cart()
        a = _snapshot(product_id=1, price_cents=333, stock=50, rules=[(3, 1500), (7, 2250)])
        b = _snapshot(product_id=2, price_cents=99, stock=50, rules=[(2, 3333)])
        _assert_totals_consistent(cart)

        cart.add(a)
        _assert_totals_consistent(cart)
        cart.add(b)
        for quantity in (2, 3, 7, 11):
            cart.set_quantity(0, quantity)
            cart.set_quantity(1, quantity)
            _assert_totals_consistent(cart)

        cart.set_manual_price(1, 1)
        _assert_totals_consistent(cart)
        cart.remove(0)
        _assert_totals_consistent(cart)

    def test_checkout_lines_snapshot(self):
        cart = Cart()
        cart.add(_snapshot(product_id=7, price_cents=50, rules=[(5, 1000)], name="Soap"))
        cart.set_quantity(0, 5)
        cart.add(_snapshot(product_id=8, price_cents=20))
        cart.set_manual_price(1, 15)

        first, second = cart.checkout_lines()
        assert (first.product_id, first.quantity, first.unit_price_cents, first.list_price_cents) == (7, 5, 45, 50)
        assert first.product_name == "Soap"
        assert first.manual_override is False
        assert second.manual_override is True
        assert second.unit_price_cents == 15
        assert sum(line.line_total_cents for line in cart.checkout_lines()) == cart.grand_total_cents

    def test_to_dict(self):
        cart = Cart()
        cart.add(_snapshot(price_cents=50, rules=[(1, 1000)]))
        data = cart.to_dict()
        assert data["grand_total_cents"] == 45
        assert data["original_total_cents"] == 50
        assert data["total_discount_cents"] == 5
        assert data["lines"][0]["discount_percent"] == 10.0
