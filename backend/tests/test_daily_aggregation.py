# Overview: Pytest coverage for the daily aggregator and its tenant isolation.

"""
Daily Aggregator Tests

- Each section sums exactly one shop's rows for one calendar day
- Commissions are bucketed by carrier / wallet; bank transfer and bill
  payment land in other_fees_cents
- Only COMPLETED service transactions count
- Shop B's identical day never leaks into shop A's aggregates
"""

from datetime import date

from conftest import BUSINESS_DAY, seed_business_day

from shopledger.services import aggregation_service, ledger_store, sales_service, transaction_service


class TestAggregateDay:

    def test_full_day(self, shop_a, owner_a):
        seed_business_day(shop_a.id, owner_a.id)

        aggregates = aggregation_service.aggregate_day(shop_a.id, BUSINESS_DAY)

        assert aggregates["date"] == "2025-01-05"
        assert aggregates["shop_id"] == shop_a.id

        sales = aggregates["sales_data"]
        assert sales["total_sales_cents"] == 28_000_000
        assert sales["total_transactions"] == 2
        assert sales["by_payment_method"]["CASH"] == {"count": 1, "amount_cents": 20_500_000}

        fees = aggregates["service_fee_data"]
        assert fees["jazz_load_fees_cents"] == 500_000
        assert fees["telenor_load_fees_cents"] == 300_000
        assert fees["zong_load_fees_cents"] == 0
        assert fees["ufone_load_fees_cents"] == 0
        assert fees["easypaisa_fees_cents"] == 250_000
        assert fees["jazzcash_fees_cents"] == 200_000
        assert fees["other_fees_cents"] == 0
        assert fees["total_service_fees_cents"] == 1_250_000
        assert fees["transactions_count"] == 4

        purchases = aggregates["purchase_data"]
        assert purchases["total_purchase_expenses_cents"] == 5_000_000
        assert purchases["payments_count"] == 1
        assert purchases["payments"][0]["supplier_name"] == "City Distributors"

        loans = aggregates["loan_data"]
        assert loans["total_remaining_loans_cents"] == 1_200_000
        assert loans["outstanding_loans"] == 1

    def test_empty_day_is_all_zero(self, shop_a):
        aggregates = aggregation_service.aggregate_day(shop_a.id, BUSINESS_DAY)

        assert aggregates["sales_data"]["total_sales_cents"] == 0
        assert aggregates["service_fee_data"]["total_service_fees_cents"] == 0
        assert aggregates["purchase_data"]["total_purchase_expenses_cents"] == 0
        assert aggregates["loan_data"]["total_remaining_loans_cents"] == 0

    def test_day_boundaries_are_local_midnight(self, shop_a):
        sales_service.record_sale(shop_a.id, total_amount_cents=100, sale_date="2025-01-04T23:59:59")
        sales_service.record_sale(shop_a.id, total_amount_cents=200, sale_date="2025-01-05T00:00:00")
        sales_service.record_sale(shop_a.id, total_amount_cents=400, sale_date="2025-01-05T23:59:59")
        sales_service.record_sale(shop_a.id, total_amount_cents=800, sale_date="2025-01-06T00:00:00")

        sales = ledger_store.sum_sales_by_shop_and_date(shop_a.id, BUSINESS_DAY)
        assert sales["total_sales_cents"] == 600

    def test_bank_transfer_and_bill_payment_are_other_fees(self, shop_a):
        for service_type in ("BANK_TRANSFER", "BILL_PAYMENT"):
            transaction_service.create_transaction(
                shop_a.id,
                service_type=service_type,
                amount_cents=1_000_000,
                manual_commission_cents=1_000,
                transaction_date="2025-01-05T12:00:00",
            )

        fees = aggregation_service.aggregate_day(shop_a.id, BUSINESS_DAY)["service_fee_data"]
        assert fees["other_fees_cents"] == 2_000
        assert fees["breakdown"]["BANK_TRANSFER"]["commission_cents"] == 1_000

    def test_buckets_sum_commission_not_net(self, shop_a):
        transaction_service.create_transaction(
            shop_a.id,
            service_type="MOBILE_LOAD",
            load_provider="UFONE",
            amount_cents=100_000,
            discount_cents=1_000,
            transaction_date="2025-01-05T12:00:00",
        )

        fees = aggregation_service.aggregate_day(shop_a.id, BUSINESS_DAY)["service_fee_data"]
        assert fees["ufone_load_fees_cents"] == 2_600
        assert fees["total_net_commission_cents"] == 1_600

    def test_supplier_payment_counts_on_payment_day(self, shop_a):
        from shopledger.services import purchase_service

        supplier = purchase_service.create_supplier(shop_a.id, "Late Payer Traders")
        purchase = purchase_service.create_purchase(
            shop_a.id,
            supplier_id=supplier.id,
            total_amount_cents=900_000,
            purchase_date="2025-01-01T09:00:00",
        )
        purchase_service.record_purchase_payment(
            shop_a.id, purchase.id, amount_cents=300_000, payment_date="2025-01-05T16:00:00",
        )

        assert ledger_store.sum_supplier_payments_by_shop_and_date(shop_a.id, date(2025, 1, 1))[
            "total_purchase_expenses_cents"
        ] == 0
        assert ledger_store.sum_supplier_payments_by_shop_and_date(shop_a.id, BUSINESS_DAY)[
            "total_purchase_expenses_cents"
        ] == 300_000


class TestAggregationTenantIsolation:
    """aggregate_day(shop A) never includes shop B rows on the same date."""

    def test_other_shop_same_day_is_invisible(self, shop_a, shop_b):
        seed_business_day(shop_b.id)

        aggregates = aggregation_service.aggregate_day(shop_a.id, BUSINESS_DAY)

        assert aggregates["sales_data"]["total_sales_cents"] == 0
        assert aggregates["service_fee_data"]["total_service_fees_cents"] == 0
        assert aggregates["purchase_data"]["payments"] == []
        assert aggregates["loan_data"]["outstanding_loans"] == 0

    def test_both_shops_seeded(self, shop_a, shop_b):
        seed_business_day(shop_a.id)
        seed_business_day(shop_b.id)
        sales_service.record_sale(shop_b.id, total_amount_cents=1, sale_date="2025-01-05T13:00:00")

        a = aggregation_service.aggregate_day(shop_a.id, BUSINESS_DAY)
        b = aggregation_service.aggregate_day(shop_b.id, BUSINESS_DAY)

        assert a["sales_data"]["total_sales_cents"] == 28_000_000
        assert b["sales_data"]["total_sales_cents"] == 28_000_001
        assert a["loan_data"]["total_remaining_loans_cents"] == 1_200_000
        assert a["purchase_data"]["total_purchase_expenses_cents"] == 5_000_000
