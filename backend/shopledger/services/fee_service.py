# Overview: Service-layer operations for commission fee schedules; resolves per-transaction commission.

"""
FeeSchedule Resolver

Three fee modes per service type, picked by the rule's flags:
- slab: fixed fee of the first slab with min <= amount <= max (0 if none matches)
- percentage: amount * rate / 100
- flat: (amount / 1000) * rate, i.e. rate is charged per thousand

All amounts are integer paisa. Rates are stored as rate_hundredths (see
FeeRule). Fractional paisa are rounded half-up.

The resolver is a pure function. It produces the *suggested* commission
when a transaction is entered; a persisted transaction's commission is never
recomputed from the schedule afterwards.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from ..extensions import db
from ..models import FeeRule, FeeSlab
from ..models.fees import (
    SERVICE_TYPES,
    EASYPAISA_CASHIN,
    EASYPAISA_CASHOUT,
    JAZZCASH_CASHIN,
    JAZZCASH_CASHOUT,
    BANK_TRANSFER,
    MOBILE_LOAD,
    BILL_PAYMENT,
    FEE_MODE_FLAT,
    FEE_MODE_PERCENTAGE,
    FEE_MODE_SLAB,
)
from ..validation import ValidationError, coerce_int, parse_cents, require_choice


logger = logging.getLogger(__name__)


# Rs per 1,000 charged when a shop has not configured the service yet (x100)
DEFAULT_FLAT_RATES_HUNDREDTHS = {
    EASYPAISA_CASHIN: 1000,
    EASYPAISA_CASHOUT: 2000,
    JAZZCASH_CASHIN: 1000,
    JAZZCASH_CASHOUT: 2000,
    BANK_TRANSFER: 2000,
    MOBILE_LOAD: 2600,
    BILL_PAYMENT: 1000,
}

# Percentage rules above 100% are always typos
MAX_PERCENTAGE_HUNDREDTHS = 10_000
MAX_FLAT_RATE_HUNDREDTHS = 100_000


@dataclass(frozen=True)
class SlabBand:
    min_amount_cents: int
    max_amount_cents: int
    fee_cents: int


@dataclass(frozen=True)
class DefaultFeeRule:
    """Stand-in for a FeeRule row the shop has not saved yet."""
    service_type: str
    rate_hundredths: int
    is_percentage: bool = False
    use_slabs: bool = False
    slabs: tuple = field(default_factory=tuple)

    @property
    def mode(self) -> str:
        return FEE_MODE_FLAT

    def to_dict(self) -> dict:
        return {
            "id": None,
            "service_type": self.service_type,
            "is_percentage": self.is_percentage,
            "rate_hundredths": self.rate_hundredths,
            "rate": str(Decimal(self.rate_hundredths) / 100),
            "use_slabs": self.use_slabs,
            "mode": self.mode,
            "slabs": [],
            "is_default": True,
            "updated_at": None,
        }


@dataclass(frozen=True)
class CommissionQuote:
    commission_cents: int
    mode: str
    rate_hundredths: int | None

    def to_dict(self) -> dict:
        return {
            "commission_cents": self.commission_cents,
            "commission_mode": self.mode,
            "commission_rate_hundredths": self.rate_hundredths,
        }


def _round_half_up(numerator: int, denominator: int) -> int:
    return int((Decimal(numerator) / Decimal(denominator)).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _active_mode(fee_rule) -> str:
    if fee_rule.use_slabs and fee_rule.slabs:
        return FEE_MODE_SLAB
    if fee_rule.is_percentage:
        return FEE_MODE_PERCENTAGE
    return FEE_MODE_FLAT


def resolve_commission(service_type: str, amount_cents: int, fee_rule) -> int:
    """
    Commission owed on `amount_cents` under `fee_rule`.

    `fee_rule` is a FeeRule row or a DefaultFeeRule; anything exposing
    is_percentage, rate_hundredths, use_slabs and ordered slabs works.
    A slab schedule with no covering band yields 0 and logs a warning:
    there is no fallback to the flat rate.
    """
    mode = _active_mode(fee_rule)

    if mode == FEE_MODE_SLAB:
        for slab in fee_rule.slabs:
            if slab.min_amount_cents <= amount_cents <= slab.max_amount_cents:
                return slab.fee_cents
        logger.warning(
            "No fee slab covers amount %s for %s; commission resolves to 0",
            amount_cents, service_type,
        )
        return 0

    if mode == FEE_MODE_PERCENTAGE:
        # rate_hundredths is basis points: amount * bps / 10_000
        return _round_half_up(amount_cents * fee_rule.rate_hundredths, 10_000)

    # (amount_rupees / 1000) * rate_rupees, expressed in paisa
    return _round_half_up(amount_cents * fee_rule.rate_hundredths, 100_000)


def default_fee_rule(service_type: str) -> DefaultFeeRule:
    return DefaultFeeRule(
        service_type=service_type,
        rate_hundredths=DEFAULT_FLAT_RATES_HUNDREDTHS[service_type],
    )


def get_fee_rule(shop_id: int, service_type: str):
    """Stored rule for the shop, or the built-in flat default."""
    rule = db.session.query(FeeRule).filter_by(
        shop_id=shop_id,
        service_type=service_type,
    ).first()
    if rule is not None:
        return rule
    return default_fee_rule(service_type)


def quote_commission(shop_id: int, service_type: str, amount_cents: int) -> CommissionQuote:
    """Suggested commission plus the rate snapshot a transaction stores with it."""
    rule = get_fee_rule(shop_id, service_type)
    mode = _active_mode(rule)
    return CommissionQuote(
        commission_cents=resolve_commission(service_type, amount_cents, rule),
        mode=mode,
        rate_hundredths=None if mode == FEE_MODE_SLAB else rule.rate_hundredths,
    )


def get_fee_settings(shop_id: int) -> list[dict]:
    """All seven fee rules for the shop, stored or default, in a stable order."""
    stored = {
        rule.service_type: rule
        for rule in db.session.query(FeeRule).filter_by(shop_id=shop_id).all()
    }
    return [
        (stored.get(service_type) or default_fee_rule(service_type)).to_dict()
        for service_type in SERVICE_TYPES
    ]


def parse_rate_hundredths(entry: dict) -> int:
    """
    Accept either `rate_hundredths` (integer) or `rate` (decimal, at most two places).
    """
    if "rate_hundredths" in entry:
        value = coerce_int(entry["rate_hundredths"], "rate_hundredths")
    elif "rate" in entry:
        raw = entry["rate"]
        if isinstance(raw, bool) or raw is None:
            raise ValidationError("rate must be a number")
        try:
            rate = Decimal(str(raw).strip())
        except InvalidOperation:
            raise ValidationError("rate must be a number")
        if not rate.is_finite():
            raise ValidationError("rate must be a number")
        scaled = rate * 100
        if scaled != scaled.to_integral_value():
            raise ValidationError("rate supports at most two decimal places")
        value = int(scaled)
    else:
        raise ValidationError("rate is required")

    if value < 0:
        raise ValidationError("rate must be >= 0")
    return value


def parse_slabs(raw_slabs) -> list[SlabBand]:
    """
    Validate a slab table: each band min <= max, fee >= 0, no overlaps.

    Bands are returned sorted by min_amount_cents, which is the order the
    resolver scans them in.
    """
    if raw_slabs is None:
        return []
    if not isinstance(raw_slabs, list):
        raise ValidationError("slabs must be a list")

    bands = []
    for index, raw in enumerate(raw_slabs):
        if not isinstance(raw, dict):
            raise ValidationError(f"slabs[{index}] must be an object")
        band = SlabBand(
            min_amount_cents=parse_cents(raw.get("min_amount_cents"), f"slabs[{index}].min_amount_cents"),
            max_amount_cents=parse_cents(raw.get("max_amount_cents"), f"slabs[{index}].max_amount_cents"),
            fee_cents=parse_cents(raw.get("fee_cents"), f"slabs[{index}].fee_cents"),
        )
        if band.max_amount_cents < band.min_amount_cents:
            raise ValidationError(f"slabs[{index}]: max_amount_cents must be >= min_amount_cents")
        bands.append(band)

    bands.sort(key=lambda b: b.min_amount_cents)
    for previous, current in zip(bands, bands[1:]):
        if current.min_amount_cents <= previous.max_amount_cents:
            raise ValidationError(
                f"Slabs overlap: {previous.min_amount_cents}-{previous.max_amount_cents} "
                f"and {current.min_amount_cents}-{current.max_amount_cents}"
            )
    return bands


def _validate_rule_entry(entry: dict) -> dict:
    if not isinstance(entry, dict):
        raise ValidationError("Each rule must be an object")

    service_type = require_choice(entry.get("service_type"), "service_type", SERVICE_TYPES)
    is_percentage = entry.get("is_percentage", False)
    use_slabs = entry.get("use_slabs", False)
    if not isinstance(is_percentage, bool):
        raise ValidationError("is_percentage must be a boolean")
    if not isinstance(use_slabs, bool):
        raise ValidationError("use_slabs must be a boolean")

    slabs = parse_slabs(entry.get("slabs"))

    # A slab table may stand alone; None means "keep the stored rate"
    if use_slabs and slabs and "rate_hundredths" not in entry and "rate" not in entry:
        rate_hundredths = None
    else:
        rate_hundredths = parse_rate_hundredths(entry)
        if is_percentage and rate_hundredths > MAX_PERCENTAGE_HUNDREDTHS:
            raise ValidationError("percentage rate cannot exceed 100")
        if not is_percentage and rate_hundredths > MAX_FLAT_RATE_HUNDREDTHS:
            raise ValidationError("flat rate cannot exceed 1000 per thousand")

    return {
        "service_type": service_type,
        "is_percentage": is_percentage,
        "use_slabs": use_slabs,
        "rate_hundredths": rate_hundredths,
        "slabs": slabs,
    }


def update_fee_settings(shop_id: int, rules: list, user_id: int | None = None) -> list[dict]:
    """
    Replace the given service types' fee rules for a shop.

    All entries are validated before anything is written; one bad entry
    rejects the whole update. Service types not mentioned keep their
    current rule. Slab tables are replaced wholesale.
    """
    if not isinstance(rules, list) or not rules:
        raise ValidationError("rules must be a non-empty list")

    validated = [_validate_rule_entry(entry) for entry in rules]
    seen = set()
    for entry in validated:
        if entry["service_type"] in seen:
            raise ValidationError(f"Duplicate rule for {entry['service_type']}")
        seen.add(entry["service_type"])

    for entry in validated:
        rule = db.session.query(FeeRule).filter_by(
            shop_id=shop_id,
            service_type=entry["service_type"],
        ).first()
        if rule is None:
            rule = FeeRule(shop_id=shop_id, service_type=entry["service_type"])
            db.session.add(rule)

        rate_hundredths = entry["rate_hundredths"]
        if rate_hundredths is None:
            # A stored rate only carries over while the rate kind is unchanged
            same_kind = rule.rate_hundredths is not None and rule.is_percentage == entry["is_percentage"]
            rate_hundredths = rule.rate_hundredths if same_kind else 0

        rule.is_percentage = entry["is_percentage"]
        rule.use_slabs = entry["use_slabs"]
        rule.rate_hundredths = rate_hundredths
        rule.updated_by_user_id = user_id

        # Old bands go first so (fee_rule_id, position) stays unique
        rule.slabs.clear()
        db.session.flush()
        for position, band in enumerate(entry["slabs"], start=1):
            rule.slabs.append(FeeSlab(
                position=position,
                min_amount_cents=band.min_amount_cents,
                max_amount_cents=band.max_amount_cents,
                fee_cents=band.fee_cents,
            ))

    db.session.commit()
    return get_fee_settings(shop_id)


def seed_default_fee_rules(shop_id: int) -> int:
    """Persist the built-in flat defaults for any service type the shop lacks."""
    existing = {
        rule.service_type
        for rule in db.session.query(FeeRule).filter_by(shop_id=shop_id).all()
    }
    created = 0
    for service_type in SERVICE_TYPES:
        if service_type in existing:
            continue
        db.session.add(FeeRule(
            shop_id=shop_id,
            service_type=service_type,
            is_percentage=False,
            use_slabs=False,
            rate_hundredths=DEFAULT_FLAT_RATES_HUNDREDTHS[service_type],
        ))
        created += 1
    db.session.commit()
    return created
