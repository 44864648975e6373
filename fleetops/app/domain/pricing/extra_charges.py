"""
Extra-Charge Ledger.

Computes itemized post-trip surcharges on top of the fare currently stored
on a booking. The base fare is never recomputed here, so an operator
override stays authoritative.

Each application computes the full set of extras from scratch; callers
store the itemized values and derive the total on read, which makes
re-application idempotent.
"""

from decimal import Decimal
from typing import Any, Mapping, Optional

from pydantic import BaseModel

from fleetops.app.core.exceptions import FareValidationError
from fleetops.app.domain.pricing.catalog import RentalPackageTerms, RuleTerms
from fleetops.app.domain.pricing.fare_calculator import require_field
from fleetops.app.domain.pricing.money import ZERO, non_negative, quantize_money, to_decimal

EXTRA_FIELDS = ("extra_km_used", "extra_hours_used", "waiting_time_minutes", "upgrade_charges")

MINUTES_PER_HOUR = Decimal("60")


class ExtraChargeBreakdown(BaseModel):
    """Itemized extras for one booking."""
    extra_km_used: Decimal
    extra_hours_used: Decimal
    waiting_time_minutes: Decimal
    billable_waiting_minutes: Decimal

    extra_km_charge: Decimal
    extra_hour_charge: Decimal
    waiting_charge: Decimal
    upgrade_charges: Decimal

    total: Decimal
    updated_fare: Decimal

    class Config:
        frozen = True


def _distance_rate(rule: RuleTerms) -> Decimal:
    if isinstance(rule, RentalPackageTerms):
        return require_field(rule, "extra_km_rate", "extra distance charge")
    return require_field(rule, "per_km_rate", "extra distance charge")


def _hour_rate(rule: RuleTerms) -> Decimal:
    if isinstance(rule, RentalPackageTerms):
        return require_field(rule, "extra_hour_rate", "extra time charge")
    return require_field(rule, "per_minute_rate", "extra time charge") * MINUTES_PER_HOUR


def apply_extras(
    booking_fare: Optional[Any],
    rule: RuleTerms,
    extras: Mapping[str, Any],
) -> ExtraChargeBreakdown:
    """
    Compute post-trip extras for a completed booking.

    Args:
        booking_fare: fare currently stored on the booking (None when unpriced)
        rule: the rule or package resolved for the booking's scope
        extras: any of extra_km_used, extra_hours_used, waiting_time_minutes,
            upgrade_charges; missing or None fields count as zero

    Returns:
        ExtraChargeBreakdown with itemized charges, their total and the updated fare

    Raises:
        FareValidationError: unknown field, negative or non-numeric value
        InvalidRuleError: a rate needed for a non-zero extra is missing
    """
    unknown = set(extras) - set(EXTRA_FIELDS)
    if unknown:
        field = sorted(unknown)[0]
        raise FareValidationError(field, extras[field], "is not a recognized extra")

    values = {
        field: non_negative(extras[field], field) if extras.get(field) is not None else ZERO
        for field in EXTRA_FIELDS
    }
    fare = to_decimal(booking_fare, "booking_fare") if booking_fare is not None else ZERO

    extra_km_charge = ZERO
    if values["extra_km_used"] > 0:
        extra_km_charge = quantize_money(values["extra_km_used"] * _distance_rate(rule))

    extra_hour_charge = ZERO
    if values["extra_hours_used"] > 0:
        extra_hour_charge = quantize_money(values["extra_hours_used"] * _hour_rate(rule))

    billable_waiting = max(ZERO, values["waiting_time_minutes"] - Decimal(rule.free_waiting_minutes or 0))
    waiting_charge = ZERO
    if billable_waiting > 0:
        rate = require_field(rule, "waiting_charge_per_minute", "waiting charge")
        waiting_charge = quantize_money(billable_waiting * rate)

    upgrade_charges = quantize_money(values["upgrade_charges"])

    total = extra_km_charge + extra_hour_charge + waiting_charge + upgrade_charges

    return ExtraChargeBreakdown(
        extra_km_used=values["extra_km_used"],
        extra_hours_used=values["extra_hours_used"],
        waiting_time_minutes=values["waiting_time_minutes"],
        billable_waiting_minutes=billable_waiting,
        extra_km_charge=extra_km_charge,
        extra_hour_charge=extra_hour_charge,
        waiting_charge=waiting_charge,
        upgrade_charges=upgrade_charges,
        total=total,
        updated_fare=quantize_money(fare + total),
    )
