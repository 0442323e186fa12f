# Overview: Daily Aggregator; folds a shop's same-day facts into the subtotals a closing needs.

from __future__ import annotations

from datetime import date

from ..models.fees import (
    MOBILE_LOAD,
    EASYPAISA_CASHIN,
    EASYPAISA_CASHOUT,
    JAZZCASH_CASHIN,
    JAZZCASH_CASHOUT,
)
from ..models.mobile_services import JAZZ, TELENOR, ZONG, UFONE
from . import ledger_store


LOAD_PROVIDER_BUCKETS = {
    JAZZ: "jazz_load_fees_cents",
    TELENOR: "telenor_load_fees_cents",
    ZONG: "zong_load_fees_cents",
    UFONE: "ufone_load_fees_cents",
}

SERVICE_TYPE_BUCKETS = {
    EASYPAISA_CASHIN: "easypaisa_fees_cents",
    EASYPAISA_CASHOUT: "easypaisa_fees_cents",
    JAZZCASH_CASHIN: "jazzcash_fees_cents",
    JAZZCASH_CASHOUT: "jazzcash_fees_cents",
}

# BANK_TRANSFER, BILL_PAYMENT and anything unrecognised
OTHER_BUCKET = "other_fees_cents"

FEE_BUCKETS = (
    "jazz_load_fees_cents",
    "telenor_load_fees_cents",
    "zong_load_fees_cents",
    "ufone_load_fees_cents",
    "easypaisa_fees_cents",
    "jazzcash_fees_cents",
    OTHER_BUCKET,
)


def _bucket_for(service_type: str, load_provider: str | None) -> str:
    if service_type == MOBILE_LOAD:
        return LOAD_PROVIDER_BUCKETS.get(load_provider, OTHER_BUCKET)
    return SERVICE_TYPE_BUCKETS.get(service_type, OTHER_BUCKET)


def build_service_fee_data(rows: list[dict]) -> dict:
    """
    Bucket grouped commission rows into the closing's service fields.

    Buckets sum `commission_cents` (what was charged), not net commission.
    The breakdown carries both.
    """
    buckets = {name: 0 for name in FEE_BUCKETS}
    breakdown: dict[str, dict] = {}
    total_commission = 0
    total_net = 0
    count = 0

    for row in rows:
        buckets[_bucket_for(row["service_type"], row["load_provider"])] += row["commission_cents"]

        entry = breakdown.setdefault(row["service_type"], {
            "count": 0,
            "amount_cents": 0,
            "commission_cents": 0,
            "net_commission_cents": 0,
        })
        entry["count"] += row["count"]
        entry["amount_cents"] += row["amount_cents"]
        entry["commission_cents"] += row["commission_cents"]
        entry["net_commission_cents"] += row["net_commission_cents"]

        total_commission += row["commission_cents"]
        total_net += row["net_commission_cents"]
        count += row["count"]

    return {
        **buckets,
        "total_service_fees_cents": total_commission,
        "total_net_commission_cents": total_net,
        "transactions_count": count,
        "breakdown": breakdown,
    }


def aggregate_day(shop_id: int, day: date) -> dict:
    """
    Subtotals for one shop and one calendar day.

    Four independent read-only queries, all scoped to shop_id:
    sales (any payment method), outstanding loan balance (current, not as of
    `day`), supplier payments dated `day`, and completed service commissions.
    """
    return {
        "date": day.isoformat(),
        "shop_id": shop_id,
        "sales_data": ledger_store.sum_sales_by_shop_and_date(shop_id, day),
        "loan_data": ledger_store.sum_remaining_loan_balance_by_shop(shop_id),
        "purchase_data": ledger_store.sum_supplier_payments_by_shop_and_date(shop_id, day),
        "service_fee_data": build_service_fee_data(
            ledger_store.sum_service_commissions_by_shop_and_date_grouped_by_type(shop_id, day)
        ),
    }
