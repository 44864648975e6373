"""
Pricing Rule Resolver.

Responsible for determining the single rule or rental package that applies
to a (service type, vehicle type, zone) request.

Matching:
1. Active entries with the exact service type and vehicle type (case-sensitive)
2. Zone matches when the entry's zone is unset (wildcard) or equal to the request

Tie-break strategies:
- most_specific: exact zone ranks above wildcard, then catalog order (stable sort)
- catalog_order: first match in catalog order, whatever its zone
"""

import logging
from typing import Optional, Union

from sqlalchemy.ext.asyncio import AsyncSession

from fleetops.app.core.config import settings
from fleetops.app.core.exceptions import PricingNotConfiguredError
from fleetops.app.domain.pricing.catalog import RuleCatalog, RuleTerms, load_catalog
from fleetops.app.models.pricing_enums import ResolutionStrategy, RuleKind
from fleetops.app.models.service_type import ServiceType

logger = logging.getLogger("fleetops.pricing")


def zone_matches(entry: RuleTerms, zone: Optional[str]) -> bool:
    return entry.zone is None or entry.zone == zone


def specificity_rank(entry: RuleTerms) -> int:
    """Lower ranks win: exact zone (0) before wildcard (1)."""
    return 0 if entry.zone is not None else 1


def resolve(
    catalog: RuleCatalog,
    service_type_id: int,
    vehicle_type: str,
    zone: Optional[str] = None,
    kind: RuleKind = RuleKind.PRICING_RULE,
    strategy: Union[ResolutionStrategy, str] = ResolutionStrategy.MOST_SPECIFIC,
) -> RuleTerms:
    """
    Select the applicable rule or package from the catalog.

    Raises:
        PricingNotConfiguredError: if no active entry matches the scope
    """
    strategy = ResolutionStrategy(strategy)

    candidates = [
        entry for entry in catalog.entries(kind)
        if entry.is_active
        and entry.service_type_id == service_type_id
        and entry.vehicle_type == vehicle_type
        and zone_matches(entry, zone)
    ]

    if not candidates:
        logger.warning(
            "No %s configured for service_type=%s vehicle_type=%s zone=%s",
            kind.value, service_type_id, vehicle_type, zone
        )
        raise PricingNotConfiguredError(service_type_id, vehicle_type, zone, kind.value)

    if strategy == ResolutionStrategy.MOST_SPECIFIC:
        candidates = sorted(candidates, key=specificity_rank)

    return candidates[0]


class PricingResolver:

    @staticmethod
    def kind_for(service_type: ServiceType) -> RuleKind:
        if service_type.uses_rental_packages:
            return RuleKind.RENTAL_PACKAGE
        return RuleKind.PRICING_RULE

    @staticmethod
    async def resolve_for_scope(
        db: AsyncSession,
        service_type: ServiceType,
        vehicle_type: str,
        zone: Optional[str] = None,
        strategy: Optional[ResolutionStrategy] = None,
    ) -> RuleTerms:
        """
        Load a catalog snapshot for the scope and resolve against it.

        Service types without zone-based pricing ignore the requested zone,
        so only wildcard entries can apply to them.

        Raises:
            PricingNotConfiguredError: If no active rule or package matches.
        """
        effective_zone = zone if service_type.zone_based_pricing else None
        catalog = await load_catalog(db, service_type.id, vehicle_type)

        return resolve(
            catalog,
            service_type.id,
            vehicle_type,
            effective_zone,
            kind=PricingResolver.kind_for(service_type),
            strategy=strategy or settings.resolution_strategy,
        )
