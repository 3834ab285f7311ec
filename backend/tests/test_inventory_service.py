import pytest

from tabletpos.errors import ProductNotFound, StockValidationFailed
from tabletpos.models import Product
from tabletpos.services import inventory_service
from tabletpos.validation import ValidationError


def _quantity(session, product_id):
    session.expire_all()
    return session.get(Product, product_id).quantity


def test_decrement_within_stock(db_session, make_product):
    product = make_product(quantity=5)
    inventory_service.decrement_stock(db_session, product.id, 5)
    db_session.commit()
    assert _quantity(db_session, product.id) == 0


def test_decrement_past_zero_is_refused_not_clamped(db_session, make_product):
    product = make_product(quantity=2)
    with pytest.raises(StockValidationFailed) as exc_info:
        inventory_service.decrement_stock(db_session, product.id, 3)
    assert exc_info.value.requested == 3
    db_session.rollback()
    assert _quantity(db_session, product.id) == 2


def test_decrement_missing_product(db_session):
    with pytest.raises(ProductNotFound):
        inventory_service.decrement_stock(db_session, 999, 1)


def test_decrement_bumps_version(db_session, make_product):
    product = make_product(quantity=5)
    version = product.version_id
    inventory_service.decrement_stock(db_session, product.id, 1)
    db_session.commit()
    db_session.expire_all()
    assert db_session.get(Product, product.id).version_id == version + 1


def test_increment_skips_deleted_product(db_session):
    assert inventory_service.increment_stock(db_session, 999, 4) is False


def test_increment_returns_stock(db_session, make_product):
    product = make_product(quantity=1)
    assert inventory_service.increment_stock(db_session, product.id, 4) is True
    db_session.commit()
    assert _quantity(db_session, product.id) == 5


@pytest.mark.parametrize("amount", [0, -1, 1.5, True])
def test_movements_require_positive_integer(db_session, make_product, amount):
    product = make_product(quantity=5)
    with pytest.raises(ValidationError):
        inventory_service.decrement_stock(db_session, product.id, amount)
    with pytest.raises(ValidationError):
        inventory_service.increment_stock(db_session, product.id, amount)


def test_get_stock(db_session, make_product):
    product = make_product(quantity=7)
    assert inventory_service.get_stock(db_session, product.id) == 7
    assert inventory_service.get_stock(db_session, product.id, lock=True) == 7
    with pytest.raises(ProductNotFound):
        inventory_service.get_stock(db_session, 12345)


def test_set_stock(db_session, make_product):
    product = make_product(quantity=7)
    inventory_service.set_stock(db_session, product.id, 0)
    db_session.commit()
    assert _quantity(db_session, product.id) == 0

    with pytest.raises(ValidationError):
        inventory_service.set_stock(db_session, product.id, -1)
    with pytest.raises(ProductNotFound):
        inventory_service.set_stock(db_session, 12345, 1)
