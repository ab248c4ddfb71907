"""
Pytest fixtures for dualpos backend tests.

Provides test database setup, catalog fixtures, and test client.
"""

import pytest
from dualpos import create_app
from dualpos.config import TestConfig
from dualpos.extensions import db
from dualpos.services import inventory_service, transaction_service
from dualpos.validation import MAX_AMOUNT_CENTS


STORE = "Central"
OTHER_STORE = "Waterside"


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
    """Factory for catalog products; LRD price is derived from the 197 default rate."""
    def _make(item, store=STORE, quantity=20, price_usd_cents=500, **kwargs):
        return inventory_service.create_product(
            store=store,
            item=item,
            quantity=quantity,
            price_usd_cents=price_usd_cents,
            **kwargs,
        )
    return _make


@pytest.fixture(scope='function')
def rice(make_product):
    """20 bags at $5.00 / 985.00 LRD."""
    return make_product("Rice 25kg", quantity=20, price_usd_cents=500, category="Grains")


@pytest.fixture(scope='function')
def oil(make_product):
    """10 bottles at $3.00 / 591.00 LRD."""
    return make_product("Palm Oil 1L", quantity=10, price_usd_cents=300, category="Oils")


@pytest.fixture(scope='function')
def sell(db_session):
    """Record a USD sale paid in full; lines are (product, quantity) pairs."""
    def _sell(*lines, store=STORE, occurred_at=None):
        return transaction_service.create_sale(
            store=store,
            currency="USD",
            line_items=[{"product_id": p.id, "quantity": q} for p, q in lines],
            amount_received_usd_cents=MAX_AMOUNT_CENTS,
            occurred_at=occurred_at,
        )
    return _sell
