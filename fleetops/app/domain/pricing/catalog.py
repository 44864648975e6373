"""
Rule Catalog.

Immutable snapshots of the pricing rules and rental packages that can apply
to one computation. Snapshots are taken from stored rows, so later edits to
a rule never change a computation already in flight.
"""

import logging
from decimal import Decimal
from typing import ClassVar, Optional, Tuple, Union

from pydantic import BaseModel, Field, ValidationError
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.models.pricing_enums import RuleKind
from fleetops.app.models.pricing_rule import PricingRule
from fleetops.app.models.rental_package import RentalPackage

logger = logging.getLogger("fleetops.pricing")


class PricingRuleTerms(BaseModel):
    """Frozen view of a metered pricing rule."""
    kind: ClassVar[RuleKind] = RuleKind.PRICING_RULE

    id: Optional[int] = None
    service_type_id: int
    vehicle_type: str
    zone: Optional[str] = None

    base_fare: Optional[Decimal] = Field(None, ge=0)
    per_km_rate: Optional[Decimal] = Field(None, ge=0)
    per_minute_rate: Optional[Decimal] = Field(None, ge=0)
    minimum_fare: Decimal = Field(Decimal("0"), ge=0)
    surge_multiplier: Decimal = Field(Decimal("1.0"), gt=0)

    cancellation_fee: Decimal = Field(Decimal("0"), ge=0)
    no_show_fee: Decimal = Field(Decimal("0"), ge=0)
    waiting_charge_per_minute: Optional[Decimal] = Field(Decimal("0"), ge=0)
    free_waiting_minutes: int = Field(0, ge=0)

    is_active: bool = True

    class Config:
        from_attributes = True
        frozen = True


class RentalPackageTerms(BaseModel):
    """Frozen view of a rental package."""
    kind: ClassVar[RuleKind] = RuleKind.RENTAL_PACKAGE

    id: Optional[int] = None
    service_type_id: int
    vehicle_type: str
    zone: Optional[str] = None

    name: str = ""
    duration_hours: Optional[Decimal] = Field(None, ge=0)
    included_km: Optional[Decimal] = Field(None, ge=0)
    base_price: Optional[Decimal] = Field(None, ge=0)
    extra_km_rate: Optional[Decimal] = Field(None, ge=0)
    extra_hour_rate: Optional[Decimal] = Field(None, ge=0)

    free_waiting_minutes: int = Field(0, ge=0)
    waiting_charge_per_minute: Optional[Decimal] = Field(None, ge=0)
    cancellation_fee: Decimal = Field(Decimal("0"), ge=0)
    no_show_fee: Decimal = Field(Decimal("0"), ge=0)

    is_active: bool = True

    class Config:
        from_attributes = True
        frozen = True


RuleTerms = Union[PricingRuleTerms, RentalPackageTerms]


class RuleCatalog(BaseModel):
    """Read-only collection of rule snapshots, in load order."""
    pricing_rules: Tuple[PricingRuleTerms, ...] = ()
    rental_packages: Tuple[RentalPackageTerms, ...] = ()

    class Config:
        frozen = True

    def entries(self, kind: RuleKind) -> Tuple[RuleTerms, ...]:
        if kind == RuleKind.RENTAL_PACKAGE:
            return self.rental_packages
        return self.pricing_rules


def _snapshots(rows, terms_model) -> tuple:
    """Snapshot stored rows, skipping any whose terms no longer validate."""
    snapshots = []
    for row in rows:
        try:
            snapshots.append(terms_model.model_validate(row))
        except ValidationError as exc:
            logger.warning(
                "Skipping %s %s with invalid terms: %s",
                terms_model.kind.value, row.id, exc.errors(include_url=False)
            )
    return tuple(snapshots)


async def load_catalog(db: AsyncSession, service_type_id: int, vehicle_type: str) -> RuleCatalog:
    """
    Fetch the active rules and packages for one service/vehicle scope.

    Rows are ordered by id so catalog order is insertion order. A row that
    fails validation (e.g. a surge rounded to zero by the store) is left out
    so the remaining rules still resolve.
    """
    rules = await db.execute(
        select(PricingRule).where(
            PricingRule.service_type_id == service_type_id,
            PricingRule.vehicle_type == vehicle_type,
            PricingRule.is_active == True
        ).order_by(PricingRule.id)
    )
    packages = await db.execute(
        select(RentalPackage).where(
            RentalPackage.service_type_id == service_type_id,
            RentalPackage.vehicle_type == vehicle_type,
            RentalPackage.is_active == True
        ).order_by(RentalPackage.id)
    )

    return RuleCatalog(
        pricing_rules=_snapshots(rules.scalars().all(), PricingRuleTerms),
        rental_packages=_snapshots(packages.scalars().all(), RentalPackageTerms),
    )
