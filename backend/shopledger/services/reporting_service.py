# Overview: Service-layer operations for reporting; read-only rollups for the dashboard and CSV export.

from __future__ import annotations

import csv
import io
from datetime import date, timedelta

from sqlalchemy import func

from shopledger.extensions import db
from shopledger.models import ServiceTransaction
from shopledger.models.mobile_services import COMPLETED
from shopledger.services import ledger_store
from shopledger.time_utils import day_bounds, local_today, parse_calendar_date


MAX_RANGE_DAYS = 366
LOSS_LIST_LIMIT = 50


class ReportError(Exception):
    """Raised when report parameters are invalid."""
    pass


def _parse_range(start: str | None, end: str | None) -> tuple[date, date]:
    """Defaults to today; a single bound makes a one-day range."""
    try:
        start_day = parse_calendar_date(start)
        end_day = parse_calendar_date(end)
    except ValueError:
        raise ReportError("start_date and end_date must be YYYY-MM-DD")

    if start_day is None and end_day is None:
        start_day = end_day = local_today()
    start_day = start_day or end_day
    end_day = end_day or start_day

    if start_day > end_day:
        raise ReportError("start_date must be on or before end_date")
    if (end_day - start_day) > timedelta(days=MAX_RANGE_DAYS - 1):
        raise ReportError(f"Date range cannot exceed {MAX_RANGE_DAYS} days")
    return start_day, end_day


def _by_service_type(rows: list[dict]) -> dict:
    grouped: dict[str, dict] = {}
    for row in rows:
        entry = grouped.setdefault(row["service_type"], {
            "count": 0,
            "amount_cents": 0,
            "commission_cents": 0,
            "net_commission_cents": 0,
        })
        for key in ("count", "amount_cents", "commission_cents", "net_commission_cents"):
            entry[key] += row[key]
    return grouped


def _by_supplier(payments: list[dict]) -> dict:
    grouped: dict[str, dict] = {}
    for payment in payments:
        entry = grouped.setdefault(payment["supplier_name"], {"count": 0, "amount_cents": 0})
        entry["count"] += 1
        entry["amount_cents"] += payment["amount_cents"]
    return grouped


def _loss_making(shop_id: int, start_day: date, end_day: date) -> dict:
    start = day_bounds(start_day)[0]
    end = day_bounds(end_day)[1]
    query = db.session.query(ServiceTransaction).filter(
        ServiceTransaction.shop_id == shop_id,
        ServiceTransaction.status == COMPLETED,
        ServiceTransaction.net_commission_cents < 0,
        ServiceTransaction.transaction_date >= start,
        ServiceTransaction.transaction_date < end,
    )
    total, net_sum = query.with_entities(
        func.count(ServiceTransaction.id),
        func.coalesce(func.sum(ServiceTransaction.net_commission_cents), 0),
    ).one()
    rows = query.order_by(ServiceTransaction.net_commission_cents.asc()).limit(LOSS_LIST_LIMIT).all()
    return {
        "count": int(total),
        "total_loss_cents": -int(net_sum),
        "items": [tx.to_dict() for tx in rows],
    }


def summary_report(shop_id: int, start: str | None = None, end: str | None = None) -> dict:
    """
    Sales by payment method, service transactions by type, supplier payments
    by supplier, and loss-making transactions for a date range.

    Uses the same queries as the daily closing; nothing here is written back.
    """
    start_day, end_day = _parse_range(start, end)

    sales = ledger_store.sales_by_payment_method_between(shop_id, start_day, end_day)
    service_rows = ledger_store.service_commissions_between(shop_id, start_day, end_day)
    payments = ledger_store.supplier_payments_between(shop_id, start_day, end_day)

    by_service_type = _by_service_type(service_rows)

    return {
        "shop_id": shop_id,
        "start_date": start_day.isoformat(),
        "end_date": end_day.isoformat(),
        "by_payment_method": sales["by_payment_method"],
        "by_service_type": by_service_type,
        "by_supplier": _by_supplier(payments),
        "loss_making_transactions": _loss_making(shop_id, start_day, end_day),
        "totals": {
            "sales_cents": sales["total_sales_cents"],
            "sales_count": sales["total_transactions"],
            "service_commission_cents": sum(e["commission_cents"] for e in by_service_type.values()),
            "service_net_commission_cents": sum(e["net_commission_cents"] for e in by_service_type.values()),
            "supplier_payments_cents": sum(p["amount_cents"] for p in payments),
        },
    }


CSV_HEADER = ["section", "key", "count", "amount_cents", "commission_cents", "net_commission_cents"]


def summary_report_csv(report: dict) -> str:
    """Flatten a summary report into CSV, one row per group."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_HEADER)

    for method, entry in sorted(report["by_payment_method"].items()):
        writer.writerow(["payment_method", method, entry["count"], entry["amount_cents"], "", ""])

    for service_type, entry in sorted(report["by_service_type"].items()):
        writer.writerow([
            "service_type",
            service_type,
            entry["count"],
            entry["amount_cents"],
            entry["commission_cents"],
            entry["net_commission_cents"],
        ])

    for supplier, entry in sorted(report["by_supplier"].items()):
        writer.writerow(["supplier", supplier, entry["count"], entry["amount_cents"], "", ""])

    return buffer.getvalue()
