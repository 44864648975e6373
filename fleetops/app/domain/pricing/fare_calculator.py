"""Fare Calculator: quote-time estimates from a resolved rule.

Metered rule:   (base + distance * per_km [+ duration * per_minute]) * surge, floored at minimum
Rental package: base_price + max(0, distance - included_km) * extra_km_rate

Time overage and waiting are billed at completion by the extra-charge ledger,
never here.
"""

from decimal import Decimal
from typing import Any, Optional

from fleetops.app.core.exceptions import InvalidRuleError
from fleetops.app.domain.pricing.catalog import PricingRuleTerms, RentalPackageTerms, RuleTerms
from fleetops.app.domain.pricing.money import ZERO, non_negative, quantize_money
from fleetops.app.models.pricing_enums import PenaltyKind


def require_field(rule: RuleTerms, field: str, purpose: str) -> Decimal:
    value = getattr(rule, field)
    if value is None:
        raise InvalidRuleError(
            f"{rule.kind.value} {rule.id} has no {field}; cannot compute {purpose}",
            rule_id=rule.id,
            missing_field=field,
        )
    return value


def compute_fare(rule: RuleTerms, distance: Any, duration: Any = None) -> Decimal:
    """Compute the fare estimate for a trip against a resolved rule.

    Args:
        rule: resolved pricing rule or rental package
        distance: trip distance in km
        duration: trip duration in minutes, optional

    Raises:
        FareValidationError: negative or non-numeric distance/duration
        InvalidRuleError: a field required for the computation is missing
    """
    distance_km = non_negative(distance, "distance")
    duration_min = non_negative(duration, "duration") if duration is not None else None

    if isinstance(rule, RentalPackageTerms):
        return _package_fare(rule, distance_km)
    return _metered_fare(rule, distance_km, duration_min)


def _metered_fare(rule: PricingRuleTerms, distance_km: Decimal, duration_min: Optional[Decimal]) -> Decimal:
    base_fare = require_field(rule, "base_fare", "fare")
    per_km_rate = require_field(rule, "per_km_rate", "fare")

    amount = base_fare + distance_km * per_km_rate
    if duration_min is not None:
        # A duration against a rule without a time rate is an error, not a zero
        amount += duration_min * require_field(rule, "per_minute_rate", "time-based fare")

    amount *= rule.surge_multiplier
    amount = max(amount, rule.minimum_fare)
    return quantize_money(amount)


def _package_fare(package: RentalPackageTerms, distance_km: Decimal) -> Decimal:
    base_price = require_field(package, "base_price", "package fare")
    included_km = require_field(package, "included_km", "package fare")

    amount = base_price
    overage_km = max(ZERO, distance_km - included_km)
    if overage_km > 0:
        amount += overage_km * require_field(package, "extra_km_rate", "distance overage")
    return quantize_money(amount)


def penalty_fee(rule: RuleTerms, kind: PenaltyKind) -> Decimal:
    """Flat cancellation or no-show fee of a rule (zero when unset)."""
    if kind == PenaltyKind.NO_SHOW:
        fee = rule.no_show_fee
    else:
        fee = rule.cancellation_fee
    return quantize_money(fee or ZERO)
