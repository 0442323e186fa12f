# Overview: Pytest coverage for closing reconciliation, totals and the idempotent upsert.

"""
Daily Closing Tests

- totals: income = 11 income fields, expenses = inventory + credit
- blank or zero auto-fillable fields take the day's aggregate, unless the
  field is listed in explicit_zero
- resubmitting a day overwrites the single row (no merge)
- a lost insert race is retried once as an update
- future dates are rejected
"""

import json
from datetime import timedelta

import pytest

from conftest import BUSINESS_DAY, seed_business_day

from shopledger.extensions import db
from shopledger.models import DailyClosing, AuditEvent
from shopledger.services import closing_service, ledger_store, sales_service
from shopledger.services.closing_service import (
    ClosingIntegrityError,
    INCOME_FIELDS,
    EXPENSE_FIELDS,
    compute_totals,
)
from shopledger.validation import ConflictError, ValidationError
from shopledger.time_utils import local_today


def _closing_rows(shop_id):
    return db.session.query(DailyClosing).filter_by(shop_id=shop_id).all()


class TestComputeTotals:

    def test_formula(self):
        values = {field: 0 for field in INCOME_FIELDS + EXPENSE_FIELDS}
        for weight, field in enumerate(INCOME_FIELDS, start=1):
            values[field] = weight * 1_000
        values["inventory_cents"] = 7
        values["credit_cents"] = 11

        totals = compute_totals(values)

        assert totals["total_income_cents"] == sum(range(1, 12)) * 1_000
        assert totals["total_expenses_cents"] == 18
        assert totals["net_amount_cents"] == 66_000 - 18

    def test_net_can_be_negative(self):
        values = {field: 0 for field in INCOME_FIELDS + EXPENSE_FIELDS}
        values["credit_cents"] = 500
        assert compute_totals(values)["net_amount_cents"] == -500

    def test_malformed_input_is_an_integrity_error(self):
        values = {field: 0 for field in INCOME_FIELDS + EXPENSE_FIELDS}
        values["cash_cents"] = "12"
        with pytest.raises(ClosingIntegrityError):
            compute_totals(values)


class TestSubmitClosing:

    def test_end_to_end_day(self, shop_a, owner_a):
        seed_business_day(shop_a.id, owner_a.id)

        result = closing_service.submit_closing(
            shop_a.id,
            BUSINESS_DAY,
            {"bank_transfer_cents": 0, "cash_cents": 0, "credit_cents": 0, "receiving_cents": 100_000},
            submitted_by_user_id=owner_a.id,
        )

        closing = result.closing
        assert result.created is True
        assert closing.cash_sales_cents == 28_000_000
        assert closing.jazz_load_sales_cents == 500_000
        assert closing.telenor_load_sales_cents == 300_000
        assert closing.zong_load_sales_cents == 0
        assert closing.ufone_load_sales_cents == 0
        assert closing.easypaisa_sales_cents == 250_000
        assert closing.jazzcash_sales_cents == 200_000
        assert closing.loan_cents == 1_200_000
        assert closing.inventory_cents == 5_000_000
        assert closing.receiving_cents == 100_000
        assert closing.total_income_cents == 30_550_000
        assert closing.total_expenses_cents == 5_000_000
        assert closing.net_amount_cents == 25_550_000
        assert closing.revision == 1
        assert closing.submitted_by_user_id == owner_a.id

        provenance = result.provenance
        assert provenance["cash_sales_cents"] == {
            "computed_cents": 28_000_000, "stored_cents": 28_000_000, "source": "auto",
        }
        assert provenance["receiving_cents"]["source"] == "manual"
        assert "cash_sales_cents" in json.loads(closing.auto_filled_fields)

    def test_zero_cash_sales_is_replaced_by_aggregate(self, shop_a):
        sales_service.record_sale(shop_a.id, total_amount_cents=20_500_000, sale_date="2025-01-05T10:00:00")
        sales_service.record_sale(shop_a.id, total_amount_cents=7_500_000, sale_date="2025-01-05T15:00:00")

        for entered in (0, None, ""):
            result = closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_sales_cents": entered})
            assert result.closing.cash_sales_cents == 28_000_000

    def test_manual_value_wins_over_aggregate(self, shop_a):
        sales_service.record_sale(shop_a.id, total_amount_cents=5_000, sale_date="2025-01-05T10:00:00")

        result = closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_sales_cents": 4_000})

        assert result.closing.cash_sales_cents == 4_000
        assert result.provenance["cash_sales_cents"]["computed_cents"] == 5_000
        assert result.provenance["cash_sales_cents"]["source"] == "manual"

    def test_explicit_zero_is_stored_as_zero(self, shop_a):
        sales_service.record_sale(shop_a.id, total_amount_cents=5_000, sale_date="2025-01-05T10:00:00")

        result = closing_service.submit_closing(
            shop_a.id, BUSINESS_DAY, {"cash_sales_cents": 0, "explicit_zero": ["cash_sales_cents"]},
        )

        assert result.closing.cash_sales_cents == 0
        assert result.provenance["cash_sales_cents"]["source"] == "manual"

    @pytest.mark.parametrize("payload", [
        {"explicit_zero": ["receiving_cents"]},
        {"explicit_zero": ["cash_sales_cents"], "cash_sales_cents": 10},
        {"explicit_zero": "cash_sales_cents"},
        {"total_income_cents": 1},
        {"cash_cents": -1},
        {"cash_cents": 1.5},
        {"notes": "x" * 2_001},
    ])
    def test_invalid_payloads(self, shop_a, payload):
        with pytest.raises(ValidationError):
            closing_service.submit_closing(shop_a.id, BUSINESS_DAY, payload)
        assert _closing_rows(shop_a.id) == []

    def test_future_date_rejected(self, shop_a):
        with pytest.raises(ValidationError, match="future"):
            closing_service.submit_closing(shop_a.id, local_today() + timedelta(days=1), {})

    def test_today_is_allowed(self, shop_a):
        result = closing_service.submit_closing(shop_a.id, local_today(), {"cash_cents": 1})
        assert result.created is True


class TestIdempotentUpsert:

    def test_resubmission_overwrites_single_row(self, shop_a, owner_a):
        first = closing_service.submit_closing(
            shop_a.id, BUSINESS_DAY,
            {"cash_cents": 10_000, "credit_cents": 2_000, "receiving_cents": 500, "notes": "first pass"},
        )
        second = closing_service.submit_closing(
            shop_a.id, BUSINESS_DAY, {"cash_cents": 7_000},
            submitted_by_user_id=owner_a.id,
        )

        rows = _closing_rows(shop_a.id)
        assert len(rows) == 1
        assert first.created is True
        assert second.created is False
        assert second.message == "Daily closing updated successfully"

        closing = rows[0]
        assert closing.cash_cents == 7_000
        assert closing.credit_cents == 0
        assert closing.receiving_cents == 0
        assert closing.notes is None
        assert closing.total_income_cents == 7_000
        assert closing.net_amount_cents == 7_000
        assert closing.revision == 2

        events = db.session.query(AuditEvent).filter_by(
            event_type="DAILY_CLOSING_SUBMITTED", entity_id=closing.id,
        ).count()
        assert events == 2

    def test_closings_are_per_shop_and_date(self, shop_a, shop_b):
        closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_cents": 1})
        closing_service.submit_closing(shop_b.id, BUSINESS_DAY, {"cash_cents": 2})
        closing_service.submit_closing(shop_a.id, BUSINESS_DAY - timedelta(days=1), {"cash_cents": 3})

        assert len(_closing_rows(shop_a.id)) == 2
        assert ledger_store.get_daily_closing(shop_b.id, BUSINESS_DAY).cash_cents == 2

    def test_lost_insert_race_is_retried_as_update(self, shop_a, monkeypatch):
        # Another submission already created the row
        closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_cents": 1_000})

        real_lookup = ledger_store._locked_closing
        calls = []

        def stale_lookup(shop_id, closing_date):
            calls.append(closing_date)
            if len(calls) == 1:
                return None
            return real_lookup(shop_id, closing_date)

        monkeypatch.setattr(ledger_store, "_locked_closing", stale_lookup)

        result = closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_cents": 2_000})

        assert len(calls) == 2
        assert result.created is False
        rows = _closing_rows(shop_a.id)
        assert len(rows) == 1
        assert rows[0].cash_cents == 2_000
        assert rows[0].revision == 2

    def test_race_lost_twice_is_a_conflict(self, shop_a, monkeypatch):
        closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_cents": 1_000})
        monkeypatch.setattr(ledger_store, "_locked_closing", lambda shop_id, closing_date: None)

        with pytest.raises(ConflictError):
            closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {"cash_cents": 2_000})

        rows = _closing_rows(shop_a.id)
        assert len(rows) == 1
        assert rows[0].cash_cents == 1_000
        assert rows[0].revision == 1


class TestClosingViews:

    def test_get_closing_before_and_after_submit(self, shop_a):
        sales_service.record_sale(shop_a.id, total_amount_cents=9_000, sale_date="2025-01-05T10:00:00")

        view = closing_service.get_closing(shop_a.id, BUSINESS_DAY)
        assert view["closing_data"] is None
        assert view["sales_data"]["total_sales_cents"] == 9_000
        assert view["suggested_closing"]["cash_sales_cents"] == 9_000
        assert view["suggested_closing"]["net_amount_cents"] == 9_000
        assert _closing_rows(shop_a.id) == []

        closing_service.submit_closing(shop_a.id, BUSINESS_DAY, {})
        view = closing_service.get_closing(shop_a.id, BUSINESS_DAY)
        assert view["closing_data"]["cash_sales_cents"] == 9_000
        assert view["closing_data"]["closing_date"] == "2025-01-05"

    def test_history_is_newest_first_and_limited(self, shop_a, shop_b):
        for offset in range(3):
            closing_service.submit_closing(shop_a.id, BUSINESS_DAY - timedelta(days=offset), {})
        closing_service.submit_closing(shop_b.id, BUSINESS_DAY, {})

        history = closing_service.closing_history(shop_a.id, 2)
        assert [c["closing_date"] for c in history] == ["2025-01-05", "2025-01-04"]

        with pytest.raises(ValidationError):
            closing_service.closing_history(shop_a.id, 0)
