# Overview: Pytest coverage for recording, editing and listing service transactions.

"""
Transaction Recorder Tests

- Suggested vs manual commission and the stored rate snapshot
- net_commission_cents == commission_cents - discount_cents, negative allowed
- Edits re-derive net without re-applying the fee schedule
- Another shop's transaction id behaves like a missing id
"""

from datetime import date, datetime

import pytest

from shopledger.extensions import db
from shopledger.models import AuditEvent
from shopledger.models.fees import MOBILE_LOAD, EASYPAISA_CASHIN, BILL_PAYMENT, FEE_MODE_FLAT
from shopledger.models.mobile_services import (
    COMPLETED,
    CANCELLED,
    COMMISSION_CALCULATED,
    COMMISSION_MANUAL,
)
from shopledger.services import audit_service, transaction_service, fee_service
from shopledger.validation import NotFoundError, ValidationError


def _load(shop_id, **overrides):
    data = {
        "service_type": MOBILE_LOAD,
        "load_provider": "JAZZ",
        "amount_cents": 100_000,
        "transaction_date": "2025-01-05T10:00:00",
    }
    data.update(overrides)
    return transaction_service.create_transaction(shop_id, **data)


class TestCreateTransaction:

    def test_suggested_commission_is_used_by_default(self, shop_a, owner_a):
        tx = _load(shop_a.id, created_by_user_id=owner_a.id)

        assert tx.commission_cents == 2_600
        assert tx.suggested_commission_cents == 2_600
        assert tx.commission_source == COMMISSION_CALCULATED
        assert tx.commission_mode == FEE_MODE_FLAT
        assert tx.commission_rate_hundredths == 2_600
        assert tx.net_commission_cents == 2_600
        assert tx.status == COMPLETED
        assert tx.transaction_date == datetime(2025, 1, 5, 10, 0)

    def test_manual_commission_overrides_suggestion(self, shop_a):
        tx = _load(shop_a.id, manual_commission_cents=3_000)

        assert tx.commission_cents == 3_000
        assert tx.suggested_commission_cents == 2_600
        assert tx.commission_source == COMMISSION_MANUAL

    def test_manual_commission_equal_to_suggestion_stays_calculated(self, shop_a):
        tx = _load(shop_a.id, manual_commission_cents=2_600)
        assert tx.commission_source == COMMISSION_CALCULATED

    def test_negative_manual_commission_falls_back_to_suggestion(self, shop_a):
        tx = _load(shop_a.id, manual_commission_cents=-1)
        assert tx.commission_cents == 2_600
        assert tx.commission_source == COMMISSION_CALCULATED

    def test_discount_larger_than_commission_goes_negative(self, shop_a):
        tx = _load(shop_a.id, discount_cents=4_000)

        assert tx.commission_cents == 2_600
        assert tx.discount_cents == 4_000
        assert tx.net_commission_cents == -1_400

    def test_zero_manual_commission_is_kept(self, shop_a):
        tx = _load(shop_a.id, manual_commission_cents=0, discount_cents=500)
        assert tx.commission_cents == 0
        assert tx.net_commission_cents == -500

    def test_offset_is_dropped_not_converted(self, shop_a):
        tx = _load(shop_a.id, transaction_date="2025-01-05T23:30:00+05:00")
        assert tx.transaction_date == datetime(2025, 1, 5, 23, 30)

    def test_uses_shop_fee_rule(self, shop_a):
        fee_service.update_fee_settings(
            shop_a.id,
            [{"service_type": EASYPAISA_CASHIN, "is_percentage": True, "rate_hundredths": 100}],
        )
        tx = transaction_service.create_transaction(
            shop_a.id,
            service_type="easypaisa_cashin",
            amount_cents=250_000,
        )
        assert tx.service_type == EASYPAISA_CASHIN
        assert tx.commission_cents == 2_500
        assert tx.load_provider is None

    def test_stored_commission_survives_fee_change(self, shop_a):
        tx = _load(shop_a.id)
        fee_service.update_fee_settings(shop_a.id, [{"service_type": MOBILE_LOAD, "rate_hundredths": 5_000}])

        reloaded = transaction_service.get_transaction(shop_a.id, tx.id)
        assert reloaded.commission_cents == 2_600

    def test_audit_event_written(self, shop_a, owner_a):
        tx = _load(shop_a.id, created_by_user_id=owner_a.id)

        event = db.session.query(AuditEvent).filter_by(entity_type="service_transaction", entity_id=tx.id).one()
        assert event.event_type == "SERVICE_TX_CREATED"
        assert event.actor_user_id == owner_a.id
        assert event.shop_id == shop_a.id

    def test_audit_module_documents_its_rules(self):
        assert "Append-only" in audit_service.__doc__

    @pytest.mark.parametrize("overrides,message", [
        ({"amount_cents": 0}, "amount_cents must be > 0"),
        ({"amount_cents": -5}, "amount_cents must be >= 0"),
        ({"amount_cents": 10.5}, "amount_cents"),
        ({"load_provider": None}, "load_provider is required"),
        ({"load_provider": "WARID"}, "load_provider must be one of"),
        ({"service_type": "CRYPTO"}, "service_type must be one of"),
        ({"discount_cents": -1}, "discount_cents must be >= 0"),
        ({"status": "LOST"}, "status must be one of"),
        ({"transaction_date": "yesterday"}, "transaction_date"),
    ])
    def test_validation(self, shop_a, overrides, message):
        with pytest.raises(ValidationError, match=message):
            _load(shop_a.id, **overrides)

    def test_load_provider_rejected_for_other_types(self, shop_a):
        with pytest.raises(ValidationError, match="only allowed for MOBILE_LOAD"):
            transaction_service.create_transaction(
                shop_a.id,
                service_type=BILL_PAYMENT,
                load_provider="JAZZ",
                amount_cents=10_000,
            )


class TestUpdateTransaction:

    def test_net_is_rederived_from_patch(self, shop_a):
        tx = _load(shop_a.id)

        updated = transaction_service.update_transaction(shop_a.id, tx.id, {"discount_cents": 600})
        assert updated.net_commission_cents == 2_000

        updated = transaction_service.update_transaction(shop_a.id, tx.id, {"commission_cents": 1_000})
        assert updated.commission_cents == 1_000
        assert updated.net_commission_cents == 400
        assert updated.commission_source == COMMISSION_MANUAL

    def test_amount_edit_does_not_reapply_fee_schedule(self, shop_a):
        tx = _load(shop_a.id)

        updated = transaction_service.update_transaction(shop_a.id, tx.id, {"amount_cents": 500_000})
        assert updated.amount_cents == 500_000
        assert updated.commission_cents == 2_600
        assert updated.net_commission_cents == 2_600

    def test_status_change(self, shop_a):
        tx = _load(shop_a.id)
        updated = transaction_service.update_transaction(shop_a.id, tx.id, {"status": "cancelled"})
        assert updated.status == CANCELLED

    def test_non_writable_fields_rejected(self, shop_a):
        tx = _load(shop_a.id)
        with pytest.raises(ValidationError, match="Field not allowed"):
            transaction_service.update_transaction(shop_a.id, tx.id, {"net_commission_cents": 1})
        with pytest.raises(ValidationError, match="Field not allowed"):
            transaction_service.update_transaction(shop_a.id, tx.id, {"shop_id": 99})

    def test_empty_patch_rejected(self, shop_a):
        tx = _load(shop_a.id)
        with pytest.raises(ValidationError):
            transaction_service.update_transaction(shop_a.id, tx.id, {})

    def test_other_shop_transaction_is_not_found(self, shop_a, shop_b):
        tx = _load(shop_a.id)
        with pytest.raises(NotFoundError):
            transaction_service.update_transaction(shop_b.id, tx.id, {"discount_cents": 1})
        with pytest.raises(NotFoundError):
            transaction_service.get_transaction(shop_b.id, tx.id)
        with pytest.raises(NotFoundError):
            transaction_service.delete_transaction(shop_b.id, tx.id)


class TestDeleteTransaction:

    def test_delete_keeps_audit_snapshot(self, shop_a):
        tx = _load(shop_a.id)
        tx_id = tx.id

        transaction_service.delete_transaction(shop_a.id, tx_id)

        with pytest.raises(NotFoundError):
            transaction_service.get_transaction(shop_a.id, tx_id)
        event = db.session.query(AuditEvent).filter_by(event_type="SERVICE_TX_DELETED", entity_id=tx_id).one()
        assert event.to_dict()["payload"]["amount_cents"] == 100_000


class TestListTransactions:

    def test_filters_pagination_and_totals(self, shop_a, shop_b):
        _load(shop_a.id, customer_name="Bilal", transaction_date="2025-01-04T09:00:00")
        _load(shop_a.id, load_provider="ZONG", transaction_date="2025-01-05T09:00:00")
        _load(shop_a.id, load_provider="UFONE", discount_cents=100, transaction_date="2025-01-05T11:00:00")
        _load(shop_b.id, transaction_date="2025-01-05T09:00:00")

        result = transaction_service.list_transactions(shop_a.id, page=1, limit=2)
        assert result["pagination"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}
        assert [tx["load_provider"] for tx in result["items"]] == ["UFONE", "ZONG"]
        assert result["totals"] == {
            "amount_cents": 300_000,
            "commission_cents": 7_800,
            "net_commission_cents": 7_700,
        }

        one_day = transaction_service.list_transactions(
            shop_a.id, start_date=date(2025, 1, 5), end_date=date(2025, 1, 5),
        )
        assert one_day["pagination"]["total"] == 2

        search = transaction_service.list_transactions(shop_a.id, search="bil")
        assert [tx["customer_name"] for tx in search["items"]] == ["Bilal"]

    def test_invalid_paging(self, shop_a):
        with pytest.raises(ValidationError):
            transaction_service.list_transactions(shop_a.id, page=0)
        with pytest.raises(ValidationError):
            transaction_service.list_transactions(shop_a.id, limit=1_000)
