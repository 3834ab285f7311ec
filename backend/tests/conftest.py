"""
Pytest fixtures for tabletpos backend tests.

Provides an in-memory database, per-test cleanup, a test client and a
product factory.
"""

import pytest
from tabletpos import create_app
from tabletpos.config import TestConfig
from tabletpos.extensions import db
from tabletpos.models import Product, DiscountRule


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory for committed products.

    rules: iterable of (min_quantity, percent_bps) tuples.
    """
    def _make(name="Widget", price_cents=100, quantity=10, barcode=None, rules=(), category="General"):
        product = Product(
            name=name,
            category=category,
            barcode=barcode,
            price_cents=price_cents,
            capital_price_cents=price_cents,
            quantity=quantity,
        )
        product.discount_rules = [
            DiscountRule(min_quantity=min_qty, percent_bps=bps, position=i)
            for i, (min_qty, bps) in enumerate(rules)
        ]
        db_session.add(product)
        db_session.commit()
        return product

    return _make
