"""Tests for customer tabs: opening, settling and the balance views."""

from datetime import datetime

import pytest

from dualpos.models import Credit, Product, Transaction
from dualpos.services import credit_service
from dualpos.validation import ValidationError, NotFoundError

from conftest import STORE, OTHER_STORE


def _open_tab(product, quantity, customer="Musu Kollie", **kwargs):
    return credit_service.create_credit(
        store=kwargs.pop("store", STORE),
        customer_name=customer,
        line_items=[{"product_id": product.id, "quantity": quantity}],
        **kwargs,
    )


class TestCreateCredit:
    def test_tab_takes_stock_and_snapshots_prices(self, db_session, rice):
        credit = _open_tab(rice, 2)

        assert credit.status == "pending"
        assert credit.preferred_currency == "LRD"
        assert credit.total_lrd_cents == 197000
        assert credit.total_usd_cents == 1000
        assert credit.lines[0].unit_price_lrd_cents == 98500
        assert credit.paid_at is None
        assert db_session.get(Product, rice.id).quantity == 18

    def test_explicit_totals_and_currency(self, db_session, rice):
        credit = _open_tab(rice, 1, total_lrd_cents=90000, total_usd_cents=450, preferred_currency="usd")

        assert credit.total_lrd_cents == 90000
        assert credit.total_usd_cents == 450
        assert credit.preferred_currency == "USD"

    def test_customer_name_required(self, db_session, rice):
        with pytest.raises(ValidationError, match="Customer name is required"):
            _open_tab(rice, 1, customer="   ")

    def test_split_currency_not_allowed_as_preference(self, db_session, rice):
        with pytest.raises(ValidationError):
            _open_tab(rice, 1, preferred_currency="BOTH")

    def test_lrd_only_product_on_lrd_tab(self, db_session, make_product):
        bread = make_product("Local bread", quantity=5, price_usd_cents=None, price_lrd_cents=5000)

        credit = _open_tab(bread, 2)

        assert credit.total_lrd_cents == 10000
        assert credit.total_usd_cents == 0

        with pytest.raises(ValidationError, match="has no price"):
            _open_tab(bread, 1, preferred_currency="USD")

    def test_short_stock_leaves_nothing_behind(self, db_session, rice):
        with pytest.raises(ValidationError, match="Insufficient quantity"):
            _open_tab(rice, 50)

        assert db_session.query(Credit).count() == 0
        assert db_session.get(Product, rice.id).quantity == 20


class TestPayCredit:
    """pending -> paid, exactly once."""

    def test_paying_links_a_sale_with_matching_totals(self, db_session, rice):
        credit = _open_tab(rice, 2)

        paid, tx = credit_service.pay_credit(
            credit_id=credit.id,
            store=STORE,
            currency="LRD",
            amount_received_lrd_cents=200000,
            occurred_at=datetime(2026, 3, 4, 15, 0),
        )

        assert paid.status == "paid"
        assert paid.paid_at == datetime(2026, 3, 4, 15, 0)
        assert paid.payment_transaction_id == tx.id
        assert tx.kind == "sale"
        assert tx.total_lrd_cents == credit.total_lrd_cents
        assert tx.total_usd_cents == credit.total_usd_cents
        assert tx.change_cents == 3000
        assert [line.quantity for line in tx.lines] == [2]
        assert tx.note == f"Payment for credit {credit.id}"
        # stock was taken when the tab was opened
        assert db_session.get(Product, rice.id).quantity == 18

    def test_paying_twice_is_not_found(self, db_session, rice):
        credit = _open_tab(rice, 1)
        credit_service.pay_credit(
            credit_id=credit.id, store=STORE, currency="USD", amount_received_usd_cents=500
        )

        with pytest.raises(NotFoundError, match="Pending credit not found"):
            credit_service.pay_credit(
                credit_id=credit.id, store=STORE, currency="USD", amount_received_usd_cents=500
            )

        assert db_session.query(Transaction).count() == 1

    def test_tab_settled_concurrently_is_not_paid_again(self, db_session, rice, monkeypatch):
        credit_id = _open_tab(rice, 1).id
        real_validate = credit_service.validate_payment

        def settled_elsewhere(**kwargs):
            # Another payment commits after this one has loaded the tab.
            db_session.query(Credit).filter(Credit.id == credit_id).update(
                {Credit.status: "paid"}, synchronize_session=False
            )
            db_session.commit()
            return real_validate(**kwargs)

        monkeypatch.setattr(credit_service, "validate_payment", settled_elsewhere)

        with pytest.raises(NotFoundError, match="Pending credit not found"):
            credit_service.pay_credit(
                credit_id=credit_id, store=STORE, currency="USD", amount_received_usd_cents=500
            )

        assert db_session.query(Transaction).count() == 0
        assert db_session.get(Credit, credit_id).payment_transaction_id is None

    def test_short_payment_keeps_tab_pending(self, db_session, rice):
        credit = _open_tab(rice, 1)

        with pytest.raises(ValidationError):
            credit_service.pay_credit(
                credit_id=credit.id, store=STORE, currency="USD", amount_received_usd_cents=499
            )

        assert db_session.get(Credit, credit.id).status == "pending"
        assert db_session.query(Transaction).count() == 0

    def test_split_payment_of_tab(self, db_session, rice):
        credit = _open_tab(rice, 1)

        _, tx = credit_service.pay_credit(
            credit_id=credit.id,
            store=STORE,
            currency="BOTH",
            amount_received_lrd_cents=50000,
            amount_received_usd_cents=250,
            change_currency="LRD",
            rate=197,
        )

        # 50000 + 250 * 197 = 99250 against 98500
        assert tx.change_cents == 750

    def test_other_store_cannot_settle(self, db_session, rice):
        credit = _open_tab(rice, 1)

        with pytest.raises(NotFoundError):
            credit_service.pay_credit(
                credit_id=credit.id, store=OTHER_STORE, currency="USD", amount_received_usd_cents=500
            )


class TestCreditQueries:
    def test_list_and_filter_by_status(self, db_session, rice):
        first = _open_tab(rice, 1, occurred_at=datetime(2026, 3, 1, 9, 0))
        second = _open_tab(rice, 1, occurred_at=datetime(2026, 3, 2, 9, 0))
        credit_service.pay_credit(
            credit_id=first.id, store=STORE, currency="USD", amount_received_usd_cents=500
        )

        assert [c.id for c in credit_service.get_credits(STORE)] == [second.id, first.id]
        assert [c.id for c in credit_service.get_credits(STORE, "pending")] == [second.id]
        assert [c.id for c in credit_service.get_credits(STORE, "paid")] == [first.id]
        # unknown status filters are ignored
        assert len(credit_service.get_credits(STORE, "overdue")) == 2

    def test_get_credit_scoped_to_store(self, db_session, rice):
        credit = _open_tab(rice, 1)

        assert credit_service.get_credit(credit.id, STORE).id == credit.id
        with pytest.raises(NotFoundError):
            credit_service.get_credit(credit.id, OTHER_STORE)

    def test_customer_search_is_partial_and_case_insensitive(self, db_session, rice):
        musu = _open_tab(rice, 1, customer="Musu Kollie")
        _open_tab(rice, 1, customer="Joseph Tarr")

        found = credit_service.get_credits_by_customer(STORE, "kOLL")

        assert [c.id for c in found] == [musu.id]

    def test_date_range_totals(self, db_session, rice, oil):
        _open_tab(rice, 1, occurred_at=datetime(2026, 3, 1, 9, 0))
        _open_tab(oil, 2, occurred_at=datetime(2026, 3, 2, 9, 0))
        _open_tab(rice, 1, occurred_at=datetime(2026, 3, 9, 9, 0))

        result = credit_service.get_credits_by_date_range("2026-03-01", "2026-03-02", STORE)

        assert result["totals"] == {
            "total_lrd_cents": 98500 + 2 * 59100,
            "total_usd_cents": 500 + 600,
            "count": 2,
        }

    def test_date_range_requires_dates(self, db_session):
        with pytest.raises(ValidationError):
            credit_service.get_credits_by_date_range(None, "2026-03-02", STORE)

    def test_balance_partitions_and_currency_subtotals(self, db_session, rice, oil):
        lrd_tab = _open_tab(rice, 1)
        _open_tab(oil, 1, preferred_currency="USD")
        _open_tab(rice, 2, customer="Joseph Tarr")
        credit_service.pay_credit(
            credit_id=lrd_tab.id, store=STORE, currency="LRD", amount_received_lrd_cents=98500
        )

        balance = credit_service.get_credit_balance(STORE)

        pending = balance["pending"]
        assert pending["count"] == 2
        assert pending["lrd_count"] == 1
        assert pending["usd_count"] == 1
        assert pending["lrd_total_cents"] == 197000
        assert pending["usd_total_cents"] == 300
        assert pending["total_lrd_cents"] == 197000 + 59100

        assert balance["paid"]["count"] == 1
        assert balance["paid"]["total_lrd_cents"] == 98500
        assert balance["total"]["count"] == 3
        assert len(balance["recent_credits"]) == 3
