"""
Tests for the sales report and top products.

Reports fold sales and returns into day, store and product rollups;
every rollup is floored at zero and output order is fully deterministic.
"""

import json
from datetime import datetime

import pytest

from dualpos.models import Product
from dualpos.services import reporting_service, transaction_service
from dualpos.validation import ValidationError

from conftest import STORE, OTHER_STORE


def _return(product, quantity, occurred_at=None, store=STORE):
    return transaction_service.create_return(
        store=store,
        line_items=[{"product_id": product.id, "quantity": quantity}],
        currency="USD",
        occurred_at=occurred_at,
    )


class TestTopProducts:
    def test_ranked_by_quantity(self, db_session, make_product, sell):
        a = make_product("A")
        b = make_product("B")
        c = make_product("C")
        sell((a, 5))
        sell((b, 4), (c, 3))
        sell((b, 6))

        top = reporting_service.get_top_products(store=STORE)

        assert [p["total_quantity"] for p in top] == [10, 5, 3]
        assert [p["item"] for p in top] == ["B", "A", "C"]
        assert top[0]["transactions"] == 2
        assert top[0]["total_sales_usd_cents"] == 5000
        assert top[0]["total_sales_lrd_cents"] == 10 * 98500

    def test_returns_and_other_stores_ignored(self, db_session, make_product, sell):
        a = make_product("A")
        elsewhere = make_product("A", store=OTHER_STORE)
        sell((a, 2))
        sell((elsewhere, 9), store=OTHER_STORE)
        _return(a, 1)

        top = reporting_service.get_top_products(store=STORE)

        assert [(p["item"], p["total_quantity"]) for p in top] == [("A", 2)]

    def test_date_window(self, db_session, rice, oil, sell):
        sell((rice, 1), occurred_at=datetime(2026, 3, 1, 12, 0))
        sell((oil, 4), occurred_at=datetime(2026, 3, 10, 12, 0))

        top = reporting_service.get_top_products(store=STORE, start="2026-03-01", end="2026-03-05")

        assert [p["item"] for p in top] == ["Rice 25kg"]

    def test_capped_at_configured_limit(self, app, db_session, make_product, sell, monkeypatch):
        monkeypatch.setitem(app.config, "TOP_PRODUCTS_LIMIT", 2)
        products = [make_product(f"P{i}") for i in range(4)]
        for i, product in enumerate(products):
            sell((product, i + 1))

        top = reporting_service.get_top_products(store=STORE)

        assert [p["total_quantity"] for p in top] == [4, 3]

    def test_products_removed_from_catalog_dropped(self, db_session, rice, oil, sell):
        sell((rice, 5), (oil, 1))
        db_session.query(Product).filter(Product.id == rice.id).delete()
        db_session.commit()

        top = reporting_service.get_top_products(store=STORE)

        assert [p["item"] for p in top] == ["Palm Oil 1L"]

    def test_store_required(self, db_session):
        with pytest.raises(ValidationError):
            reporting_service.get_top_products(store="")


class TestSalesReportRollups:
    def test_requires_store_or_all_stores(self, db_session):
        with pytest.raises(ValidationError, match="Either store parameter or all_stores flag is required"):
            reporting_service.generate_sales_report()

    def test_daily_store_and_product_rollups(self, db_session, rice, oil, sell):
        sell((rice, 2), occurred_at=datetime(2026, 3, 1, 10, 0))
        sell((rice, 1), (oil, 3), occurred_at=datetime(2026, 3, 2, 10, 0))

        report = reporting_service.generate_sales_report(store=STORE)

        assert [d["date"] for d in report["daily_totals"]] == ["2026-03-02", "2026-03-01"]
        day2 = report["daily_totals"][0]
        assert day2["total_usd_cents"] == 500 + 900
        assert day2["items"] == 4
        assert day2["transactions"] == 1

        summary = report["summary"]
        assert summary["total_usd_cents"] == 2400
        assert summary["total_items"] == 6
        assert summary["total_transactions"] == 2
        assert summary["store_count"] == 1

        products = {p["name"]: p for p in report["product_totals"]}
        assert products["Rice 25kg"]["quantity_sold"] == 3
        assert products["Rice 25kg"]["total_usd_cents"] == 1500
        assert products["Rice 25kg"]["transactions"] == 2
        assert [p["name"] for p in report["product_totals"]] == ["Palm Oil 1L", "Rice 25kg"]

    def test_returns_subtract(self, db_session, rice, sell):
        sell((rice, 4), occurred_at=datetime(2026, 3, 1, 10, 0))
        _return(rice, 1, occurred_at=datetime(2026, 3, 1, 15, 0))

        report = reporting_service.generate_sales_report(store=STORE)

        day = report["daily_totals"][0]
        assert day["total_usd_cents"] == 1500
        assert day["items"] == 3
        assert day["returns"] == 1
        product = report["product_totals"][0]
        assert product["quantity_sold"] == 4
        assert product["quantity_returned"] == 1
        assert product["quantity"] == 3
        assert product["returns"] == 1
        assert report["summary"]["total_returns"] == 1

    @pytest.mark.parametrize("return_first", [True, False])
    def test_rollups_never_negative(self, db_session, rice, sell, return_first):
        sale_at = datetime(2026, 3, 1, 12, 0)
        return_at = datetime(2026, 3, 1, 9, 0) if return_first else datetime(2026, 3, 1, 18, 0)
        sell((rice, 1), occurred_at=sale_at)
        _return(rice, 3, occurred_at=return_at)

        report = reporting_service.generate_sales_report(store=STORE)

        for bucket in report["daily_totals"] + report["store_totals"]:
            assert bucket["total_usd_cents"] == 0
            assert bucket["total_lrd_cents"] == 0
            assert bucket["items"] == 0
        product = report["product_totals"][0]
        assert product["quantity"] == 0
        assert product["total_usd_cents"] == 0
        assert report["summary"]["total_usd_cents"] == 0
        assert report["summary"]["total_items"] == 0

    def test_product_revenue_follows_transaction_currency(self, db_session, rice):
        transaction_service.create_sale(
            store=STORE,
            currency="LRD",
            line_items=[{"product_id": rice.id, "quantity": 2}],
            amount_received_lrd_cents=197000,
        )

        product = reporting_service.generate_sales_report(store=STORE)["product_totals"][0]

        assert product["total_lrd_cents"] == 197000
        assert product["total_usd_cents"] == 0


class TestSalesReportScope:
    def test_single_store_excludes_others(self, db_session, make_product, sell):
        here = make_product("Soap")
        there = make_product("Soap", store=OTHER_STORE)
        sell((here, 1))
        sell((there, 5), store=OTHER_STORE)

        report = reporting_service.generate_sales_report(store=STORE)

        assert report["summary"]["total_items"] == 1
        assert [s["store"] for s in report["store_totals"]] == [STORE]

    def test_all_stores(self, db_session, make_product, sell):
        here = make_product("Soap")
        there = make_product("Soap", store=OTHER_STORE)
        sell((here, 1))
        sell((there, 5), store=OTHER_STORE)
        sell((there, 1), store=OTHER_STORE)

        report = reporting_service.generate_sales_report(all_stores=True)

        assert report["summary"]["store_count"] == 2
        assert report["summary"]["total_items"] == 7
        assert [s["store"] for s in report["store_totals"]] == [OTHER_STORE, STORE]
        assert {(p["name"], p["store"]) for p in report["product_totals"]} == {
            ("Soap", STORE),
            ("Soap", OTHER_STORE),
        }

    def test_date_window_is_inclusive(self, db_session, rice, sell):
        sell((rice, 1), occurred_at=datetime(2026, 3, 1, 0, 0))
        sell((rice, 1), occurred_at=datetime(2026, 3, 3, 23, 59, 59))
        sell((rice, 1), occurred_at=datetime(2026, 3, 4, 0, 0))

        report = reporting_service.generate_sales_report(store=STORE, start="2026-03-01", end="2026-03-03")

        assert report["summary"]["total_transactions"] == 2
        assert report["start"] == "2026-03-01T00:00:00Z"

    def test_recent_transactions_capped(self, app, db_session, rice, sell, monkeypatch):
        monkeypatch.setitem(app.config, "RECENT_TRANSACTIONS_LIMIT", 3)
        for hour in range(5):
            sell((rice, 1), occurred_at=datetime(2026, 3, 1, 8 + hour, 0))

        report = reporting_service.generate_sales_report(store=STORE)

        assert len(report["recent_transactions"]) == 3
        assert report["recent_transactions"][0]["occurred_at"] == "2026-03-01T12:00:00Z"
        assert report["summary"]["total_transactions"] == 5


class TestSalesReportTender:
    def test_received_and_change_per_currency(self, db_session, rice):
        line = [{"product_id": rice.id, "quantity": 1}]
        transaction_service.create_sale(
            store=STORE, currency="LRD", line_items=line, amount_received_lrd_cents=100000
        )
        transaction_service.create_sale(
            store=STORE, currency="USD", line_items=line, amount_received_usd_cents=600
        )
        transaction_service.create_sale(
            store=STORE,
            currency="BOTH",
            line_items=line,
            amount_received_lrd_cents=50000,
            amount_received_usd_cents=250,
            change_currency="LRD",
        )

        summary = reporting_service.generate_sales_report(store=STORE)["summary"]

        assert summary["total_amount_received_lrd_cents"] == 100000 + 50000
        assert summary["total_amount_received_usd_cents"] == 600 + 250
        assert summary["total_change_lrd_cents"] == 1500 + 750
        assert summary["total_change_usd_cents"] == 100


class TestSalesReportIdempotence:
    def test_repeated_report_is_identical(self, db_session, rice, oil, sell):
        sell((rice, 2), (oil, 1), occurred_at=datetime(2026, 3, 1, 10, 0))
        sell((oil, 2), occurred_at=datetime(2026, 3, 1, 10, 0))
        sell((rice, 1), occurred_at=datetime(2026, 3, 2, 10, 0))
        _return(oil, 1, occurred_at=datetime(2026, 3, 2, 11, 0))

        first = reporting_service.generate_sales_report(store=STORE, start="2026-03-01", end="2026-03-02")
        second = reporting_service.generate_sales_report(store=STORE, start="2026-03-01", end="2026-03-02")

        assert json.dumps(first) == json.dumps(second)
