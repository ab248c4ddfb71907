"""
Tests for the product catalog and stock mutations.

Stock changes are single conditional UPDATEs; a decrement that would go
below zero must leave the row untouched.
"""

import pytest

from dualpos.models import Product
from dualpos.services import inventory_service
from dualpos.validation import ValidationError, NotFoundError

from conftest import STORE, OTHER_STORE


class TestCreateProduct:
    """Catalog creation rules."""

    def test_lrd_price_derived_from_current_rate(self, db_session, make_product):
        product = make_product("Rice", quantity=4, price_usd_cents=500)

        assert product.price_lrd_cents == 98500
        assert product.total_usd_cents == 2000
        assert product.total_lrd_cents == 394000

    def test_explicit_lrd_price_is_kept(self, db_session, make_product):
        product = make_product("Bread", price_usd_cents=100, price_lrd_cents=20000)

        assert product.price_lrd_cents == 20000

    def test_duplicate_item_in_same_store_rejected(self, db_session, make_product):
        make_product("Rice")

        with pytest.raises(ValidationError, match="already exists"):
            make_product("Rice")

    def test_same_item_allowed_in_another_store(self, db_session, make_product):
        a = make_product("Rice", store=STORE)
        b = make_product("Rice", store=OTHER_STORE)

        assert a.id != b.id

    def test_store_and_item_required(self, db_session):
        with pytest.raises(ValidationError, match="Store is required"):
            inventory_service.create_product(store="  ", item="Rice")
        with pytest.raises(ValidationError, match="item is required"):
            inventory_service.create_product(store=STORE, item="")

    def test_uncounted_quantity_stays_null(self, db_session, make_product):
        product = make_product("Charcoal", quantity=None, price_usd_cents=300)
        db_session.expire(product)

        assert product.quantity is None
        assert product.total_usd_cents is None
        assert product.total_lrd_cents is None

    def test_omitted_quantity_defaults_to_zero(self, db_session):
        product = inventory_service.create_product(store=STORE, item="Matches", price_usd_cents=10)

        assert product.quantity == 0
        assert product.total_lrd_cents == 0

    def test_negative_quantity_rejected(self, db_session, make_product):
        with pytest.raises(ValidationError):
            make_product("Rice", quantity=-1)


class TestStockMutation:
    """Atomic increments and guarded decrements."""

    def test_take_stock_decrements(self, db_session, rice):
        inventory_service.take_stock(rice, 5)
        db_session.commit()

        assert rice.quantity == 15

    def test_take_stock_refuses_to_go_negative(self, db_session, rice):
        with pytest.raises(ValidationError, match="Insufficient quantity for product Rice 25kg"):
            inventory_service.take_stock(rice, 21)
        db_session.rollback()

        db_session.refresh(rice)
        assert rice.quantity == 20

    def test_take_exact_remaining_stock(self, db_session, rice):
        inventory_service.take_stock(rice, 20)
        db_session.commit()

        assert rice.quantity == 0

    def test_uncounted_quantity_treated_as_zero(self, db_session, make_product):
        product = make_product("Charcoal", quantity=None)

        with pytest.raises(ValidationError, match="Insufficient quantity"):
            inventory_service.take_stock(product, 1)
        db_session.rollback()

        inventory_service.return_stock(product, 2)
        db_session.commit()
        assert product.quantity == 2

    def test_adjust_quantity_both_directions(self, db_session, rice):
        inventory_service.adjust_quantity(rice.id, STORE, 7)
        assert db_session.get(Product, rice.id).quantity == 27

        inventory_service.adjust_quantity(rice.id, STORE, -27)
        assert db_session.get(Product, rice.id).quantity == 0

    def test_adjust_quantity_guarded(self, db_session, rice):
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(rice.id, STORE, -21)

        db_session.refresh(rice)
        assert rice.quantity == 20

    def test_adjust_quantity_rejects_zero_delta(self, db_session, rice):
        with pytest.raises(ValidationError):
            inventory_service.adjust_quantity(rice.id, STORE, 0)

    def test_product_from_another_store_not_found(self, db_session, rice):
        with pytest.raises(NotFoundError):
            inventory_service.adjust_quantity(rice.id, OTHER_STORE, 1)

        assert inventory_service.find_product(rice.id, OTHER_STORE) is None
        assert inventory_service.find_product(rice.id, STORE).id == rice.id


class TestCatalogQueries:
    def test_list_products_sorted_and_filtered(self, db_session, rice, oil, make_product):
        make_product("Beans", category="Grains")
        make_product("Elsewhere", store=OTHER_STORE)

        names = [p.item for p in inventory_service.list_products(STORE)]
        assert names == ["Beans", "Palm Oil 1L", "Rice 25kg"]

        grains = [p.item for p in inventory_service.list_products(STORE, category="Grains")]
        assert grains == ["Beans", "Rice 25kg"]

    def test_inventory_summary(self, db_session, rice, oil, make_product):
        make_product("Empty shelf", quantity=0)

        summary = inventory_service.get_inventory_summary(STORE)

        assert summary["product_count"] == 3
        assert summary["total_pieces"] == 30
        assert summary["stock_value_usd_cents"] == 20 * 500 + 10 * 300
        assert summary["stock_value_lrd_cents"] == 20 * 98500 + 10 * 59100
        assert summary["out_of_stock_count"] == 1

    def test_summary_for_empty_store(self, db_session):
        summary = inventory_service.get_inventory_summary("Nowhere")

        assert summary["product_count"] == 0
        assert summary["total_pieces"] == 0
        assert summary["stock_value_usd_cents"] == 0
