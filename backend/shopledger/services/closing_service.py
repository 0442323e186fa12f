# Overview: Closing Reconciler; merges day aggregates with owner-entered figures into the daily closing.

"""
Closing Reconciler

submit_closing(shop_id, date, manual_fields) turns the owner's end-of-day
form into one DailyClosing row:

    total_income   = cash_sales + jazz_load + telenor_load + zong_load
                     + ufone_load + bank_transfer + easypaisa + jazzcash
                     + loan + cash + receiving
    total_expenses = inventory + credit
    net_amount     = total_income - total_expenses

AUTO-FILL: fields with a system-computed counterpart (cash sales, the four
load fields, the two wallet fields, loan, inventory) take the aggregate when
the owner leaves them blank or zero. A field named in `explicit_zero` is kept
at zero instead. Every response reports, per field, the computed aggregate,
the stored value and where the stored value came from.

Only SHOP_OWNER / SUPER_ADMIN reach submit_closing (route permission).
get_closing is the read-only view workers see.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import date

from ..models import DailyClosing
from ..validation import (
    MAX_AMOUNT_CENTS,
    ValidationError,
    parse_optional_cents,
)
from shopledger.time_utils import local_today
from . import aggregation_service, ledger_store


logger = logging.getLogger(__name__)


class ClosingIntegrityError(Exception):
    """A closing total could not be derived from well-formed inputs (server fault)."""


# Closing field -> (aggregate section, aggregate key)
AUTO_FILL_SOURCES = {
    "cash_sales_cents": ("sales_data", "total_sales_cents"),
    "jazz_load_sales_cents": ("service_fee_data", "jazz_load_fees_cents"),
    "telenor_load_sales_cents": ("service_fee_data", "telenor_load_fees_cents"),
    "zong_load_sales_cents": ("service_fee_data", "zong_load_fees_cents"),
    "ufone_load_sales_cents": ("service_fee_data", "ufone_load_fees_cents"),
    "easypaisa_sales_cents": ("service_fee_data", "easypaisa_fees_cents"),
    "jazzcash_sales_cents": ("service_fee_data", "jazzcash_fees_cents"),
    "loan_cents": ("loan_data", "total_remaining_loans_cents"),
    "inventory_cents": ("purchase_data", "total_purchase_expenses_cents"),
}

MANUAL_ONLY_FIELDS = (
    "receiving_cents",
    "bank_transfer_cents",
    "cash_cents",
    "credit_cents",
)

INCOME_FIELDS = (
    "cash_sales_cents",
    "jazz_load_sales_cents",
    "telenor_load_sales_cents",
    "zong_load_sales_cents",
    "ufone_load_sales_cents",
    "bank_transfer_cents",
    "easypaisa_sales_cents",
    "jazzcash_sales_cents",
    "loan_cents",
    "cash_cents",
    "receiving_cents",
)

EXPENSE_FIELDS = (
    "inventory_cents",
    "credit_cents",
)

AMOUNT_FIELDS = tuple(AUTO_FILL_SOURCES) + MANUAL_ONLY_FIELDS
ALLOWED_INPUT_KEYS = set(AMOUNT_FIELDS) | {"notes", "explicit_zero"}

SOURCE_AUTO = "auto"
SOURCE_MANUAL = "manual"


@dataclass
class ClosingResult:
    closing: DailyClosing
    created: bool
    aggregates: dict
    provenance: dict

    @property
    def message(self) -> str:
        if self.created:
            return "Daily closing created successfully"
        return "Daily closing updated successfully"

    def to_dict(self) -> dict:
        return {
            "closing": self.closing.to_dict(),
            "field_provenance": self.provenance,
            "created": self.created,
            "message": self.message,
        }


def parse_manual_fields(payload: dict) -> tuple[dict, set[str], str | None]:
    """
    Validate the owner's form.

    Returns (amounts, explicit_zero, notes). Amounts maps every closing field
    to an int or None (not provided).
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    for key in payload:
        if key not in ALLOWED_INPUT_KEYS:
            raise ValidationError(f"Field not allowed: {key}")

    amounts = {field: parse_optional_cents(payload.get(field), field) for field in AMOUNT_FIELDS}

    raw_explicit = payload.get("explicit_zero") or []
    if not isinstance(raw_explicit, list):
        raise ValidationError("explicit_zero must be a list of field names")
    explicit_zero = set()
    for field in raw_explicit:
        if field not in AUTO_FILL_SOURCES:
            raise ValidationError(f"explicit_zero: {field} is not an auto-filled field")
        if amounts[field]:
            raise ValidationError(f"explicit_zero: {field} was given a non-zero value")
        explicit_zero.add(field)

    notes = payload.get("notes")
    if notes is not None:
        notes = str(notes).strip() or None
        if notes and len(notes) > 2000:
            raise ValidationError("notes exceeds max length 2000")

    return amounts, explicit_zero, notes


def resolve_fields(amounts: dict, aggregates: dict, explicit_zero: set[str] | None = None) -> tuple[dict, dict]:
    """
    Apply the auto-fill rule.

    Returns (values, provenance). Blank or zero auto-fillable fields take
    their aggregate unless listed in explicit_zero; manual-only fields
    default to zero.
    """
    explicit_zero = explicit_zero or set()
    values = {}
    provenance = {}

    for field, (section, key) in AUTO_FILL_SOURCES.items():
        computed = aggregates[section][key]
        entered = amounts.get(field)
        if field in explicit_zero:
            value, source = 0, SOURCE_MANUAL
        elif not entered:
            value, source = computed, SOURCE_AUTO
        else:
            value, source = entered, SOURCE_MANUAL
        values[field] = value
        provenance[field] = {"computed_cents": computed, "stored_cents": value, "source": source}

    for field in MANUAL_ONLY_FIELDS:
        value = amounts.get(field) or 0
        values[field] = value
        provenance[field] = {"computed_cents": None, "stored_cents": value, "source": SOURCE_MANUAL}

    return values, provenance


def compute_totals(values: dict) -> dict:
    """
    Derived totals for a closing.

    Raises ClosingIntegrityError if any input is not a non-negative integer;
    a malformed aggregate must never be written as a closing.
    """
    for field in INCOME_FIELDS + EXPENSE_FIELDS:
        value = values.get(field)
        if not isinstance(value, int) or isinstance(value, bool) or value < 0:
            raise ClosingIntegrityError(f"Malformed closing input {field}={value!r}")

    total_income = sum(values[field] for field in INCOME_FIELDS)
    total_expenses = sum(values[field] for field in EXPENSE_FIELDS)
    return {
        "total_income_cents": total_income,
        "total_expenses_cents": total_expenses,
        "net_amount_cents": total_income - total_expenses,
    }


def _validate_closing_date(closing_date: date) -> None:
    if closing_date > local_today():
        raise ValidationError("Cannot create a closing for a future date")


def submit_closing(
    shop_id: int,
    closing_date: date,
    manual_fields: dict,
    *,
    submitted_by_user_id: int | None = None,
) -> ClosingResult:
    """
    Aggregate, merge, compute and upsert the closing for (shop_id, closing_date).

    Reads are not serialized against concurrent sales; only the closing row
    itself is. Resubmission overwrites every field of the existing row.
    """
    _validate_closing_date(closing_date)
    amounts, explicit_zero, notes = parse_manual_fields(manual_fields)

    aggregates = aggregation_service.aggregate_day(shop_id, closing_date)
    values, provenance = resolve_fields(amounts, aggregates, explicit_zero)
    totals = compute_totals(values)

    for field, total in totals.items():
        if total > MAX_AMOUNT_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS}")

    auto_filled = sorted(f for f, p in provenance.items() if p["source"] == SOURCE_AUTO)
    fields = {
        **values,
        **totals,
        "notes": notes,
        "auto_filled_fields": json.dumps(auto_filled),
    }

    closing, created = ledger_store.upsert_daily_closing(
        shop_id,
        closing_date,
        fields,
        submitted_by_user_id=submitted_by_user_id,
        audit_payload={**values, **totals, "auto_filled_fields": auto_filled},
    )
    logger.info(
        "Daily closing %s shop=%s date=%s revision=%s net=%s",
        "created" if created else "updated",
        shop_id, closing_date.isoformat(), closing.revision, closing.net_amount_cents,
    )
    return ClosingResult(closing=closing, created=created, aggregates=aggregates, provenance=provenance)


def get_closing(shop_id: int, closing_date: date) -> dict:
    """
    Read-only closing view: the day's aggregates, the stored closing (or
    None), and a preview of what an all-defaults submission would store.
    Nothing is written.
    """
    aggregates = aggregation_service.aggregate_day(shop_id, closing_date)
    values, _provenance = resolve_fields({}, aggregates)
    stored = ledger_store.get_daily_closing(shop_id, closing_date)

    return {
        **aggregates,
        "suggested_closing": {**values, **compute_totals(values)},
        "closing_data": stored.to_dict() if stored else None,
    }


def closing_history(shop_id: int, limit: int) -> list[dict]:
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    return [closing.to_dict() for closing in ledger_store.closing_history(shop_id, limit)]
