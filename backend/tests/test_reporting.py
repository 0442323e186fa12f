# Overview: Pytest coverage for the range summary report and its CSV export.

import csv
import io

import pytest

from conftest import seed_business_day

from shopledger.services import reporting_service, transaction_service
from shopledger.services.reporting_service import ReportError, CSV_HEADER


class TestSummaryReport:

    def test_summary_groups(self, shop_a, shop_b):
        seed_business_day(shop_a.id)
        seed_business_day(shop_b.id)

        report = reporting_service.summary_report(shop_a.id, "2025-01-05", "2025-01-05")

        assert report["by_payment_method"] == {
            "CASH": {"count": 1, "amount_cents": 20_500_000},
            "EASYPAISA": {"count": 1, "amount_cents": 7_500_000},
        }
        assert report["by_service_type"]["MOBILE_LOAD"]["count"] == 2
        assert report["by_service_type"]["MOBILE_LOAD"]["commission_cents"] == 800_000
        assert set(report["by_service_type"]) == {"MOBILE_LOAD", "EASYPAISA_CASHOUT", "JAZZCASH_CASHIN"}
        assert report["by_supplier"] == {"City Distributors": {"count": 1, "amount_cents": 5_000_000}}
        assert report["totals"]["sales_cents"] == 28_000_000
        assert report["totals"]["service_commission_cents"] == 1_250_000
        assert report["totals"]["supplier_payments_cents"] == 5_000_000
        assert report["loss_making_transactions"]["count"] == 0

    def test_loss_making_transactions(self, shop_a):
        transaction_service.create_transaction(
            shop_a.id,
            service_type="BANK_TRANSFER",
            amount_cents=100_000,
            manual_commission_cents=1_000,
            discount_cents=3_000,
            transaction_date="2025-01-05T11:00:00",
        )

        report = reporting_service.summary_report(shop_a.id, "2025-01-01", "2025-01-31")
        losses = report["loss_making_transactions"]
        assert losses["count"] == 1
        assert losses["total_loss_cents"] == 2_000

    def test_single_bound_is_one_day(self, shop_a):
        report = reporting_service.summary_report(shop_a.id, "2025-01-05", None)
        assert report["start_date"] == report["end_date"] == "2025-01-05"

    @pytest.mark.parametrize("start,end", [
        ("2025-01-06", "2025-01-05"),
        ("2024-01-01", "2025-01-05"),
        ("05-01-2025", None),
    ])
    def test_invalid_ranges(self, shop_a, start, end):
        with pytest.raises(ReportError):
            reporting_service.summary_report(shop_a.id, start, end)


class TestSummaryCsv:

    def test_one_row_per_group(self, shop_a):
        seed_business_day(shop_a.id)
        report = reporting_service.summary_report(shop_a.id, "2025-01-05", "2025-01-05")

        rows = list(csv.reader(io.StringIO(reporting_service.summary_report_csv(report))))

        assert rows[0] == CSV_HEADER
        assert len(rows) == 1 + 2 + 3 + 1
        assert ["payment_method", "CASH", "1", "20500000", "", ""] in rows
        assert ["supplier", "City Distributors", "1", "5000000", "", ""] in rows
        sections = [row[0] for row in rows[1:]]
        assert sections == ["payment_method"] * 2 + ["service_type"] * 3 + ["supplier"]
