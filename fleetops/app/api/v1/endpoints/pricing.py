"""
Pricing API Endpoints.

Manages service types, pricing rules and rental packages, and serves
ad-hoc fare quotes.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from fleetops.app.db.session import get_db
from fleetops.app.core.config import settings
from fleetops.app.core.dependencies import get_operator, client_ip
from fleetops.app.core.exceptions import ConflictError, ResourceNotFoundError
from fleetops.app.domain.pricing.booking_service import BookingService
from fleetops.app.domain.pricing.money import format_currency
from fleetops.app.models.service_type import ServiceType
from fleetops.app.models.pricing_rule import PricingRule
from fleetops.app.models.rental_package import RentalPackage
from fleetops.app.schemas.pricing import (
    ServiceTypeCreate, ServiceTypeUpdate, ServiceTypeResponse,
    PricingRuleCreate, PricingRuleUpdate, PricingRuleResponse, PricingRuleListResponse,
    RentalPackageCreate, RentalPackageUpdate, RentalPackageResponse, RentalPackageListResponse,
    QuoteRequest, QuoteResponse,
)
from fleetops.app.services.audit import log_event, AuditAction

router = APIRouter(prefix="/pricing", tags=["Pricing"])

# Fields that pricing rules and packages depend on once they exist
FROZEN_SERVICE_TYPE_FIELDS = ("name", "zone_based_pricing", "uses_rental_packages")

# Rates that may be cleared back to unset with an explicit null
NULLABLE_RULE_FIELDS = ("per_minute_rate",)
NULLABLE_PACKAGE_FIELDS = ("waiting_charge_per_minute",)


async def _get_service_type(db: AsyncSession, service_type_id: int) -> ServiceType:
    service_type = await db.get(ServiceType, service_type_id)
    if not service_type:
        raise ResourceNotFoundError("Service type", service_type_id)
    return service_type


def _changes(data, nullable_fields) -> dict:
    """Fields set in a PATCH body. Null only clears the nullable fields."""
    return {
        field: value for field, value in data.model_dump(exclude_unset=True).items()
        if value is not None or field in nullable_fields
    }


async def _is_referenced(db: AsyncSession, service_type_id: int) -> bool:
    rules = await db.execute(
        select(func.count(PricingRule.id)).where(PricingRule.service_type_id == service_type_id)
    )
    packages = await db.execute(
        select(func.count(RentalPackage.id)).where(RentalPackage.service_type_id == service_type_id)
    )
    return (rules.scalar() or 0) + (packages.scalar() or 0) > 0


# Service types

@router.post("/service-types", response_model=ServiceTypeResponse, status_code=status.HTTP_201_CREATED)
async def create_service_type(
    data: ServiceTypeCreate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a service type.
    """
    existing = await db.execute(select(ServiceType).where(ServiceType.name == data.name))
    if existing.scalar_one_or_none():
        raise ConflictError(f"Service type '{data.name}' already exists", details={"name": data.name})

    service_type = ServiceType(**data.model_dump(), is_active=True)
    db.add(service_type)
    await db.commit()
    await db.refresh(service_type)

    await log_event(
        db=db,
        action=AuditAction.SERVICE_TYPE_CREATED,
        actor_username=operator,
        entity_type="service_type",
        entity_id=service_type.id,
        metadata={"name": service_type.name},
        ip_address=client_ip(request)
    )

    return ServiceTypeResponse.model_validate(service_type)


@router.get("/service-types", response_model=List[ServiceTypeResponse])
async def list_service_types(db: AsyncSession = Depends(get_db)):
    """
    List all service types.
    """
    result = await db.execute(select(ServiceType).order_by(ServiceType.id))
    return [ServiceTypeResponse.model_validate(st) for st in result.scalars().all()]


@router.get("/service-types/{service_type_id}", response_model=ServiceTypeResponse)
async def get_service_type(service_type_id: int, db: AsyncSession = Depends(get_db)):
    return ServiceTypeResponse.model_validate(await _get_service_type(db, service_type_id))


@router.patch("/service-types/{service_type_id}", response_model=ServiceTypeResponse)
async def update_service_type(
    service_type_id: int,
    data: ServiceTypeUpdate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Update a service type.

    Name and pricing behaviour are frozen once rules or packages reference it.
    """
    service_type = await _get_service_type(db, service_type_id)
    update_data = data.model_dump(exclude_unset=True, exclude_none=True)

    changed_frozen = [
        field for field in FROZEN_SERVICE_TYPE_FIELDS
        if field in update_data and update_data[field] != getattr(service_type, field)
    ]
    if changed_frozen and await _is_referenced(db, service_type.id):
        raise ConflictError(
            "Service type is referenced by pricing rules or packages",
            details={"fields": changed_frozen}
        )

    for field, value in update_data.items():
        setattr(service_type, field, value)

    await db.commit()
    await db.refresh(service_type)

    await log_event(
        db=db,
        action=AuditAction.SERVICE_TYPE_UPDATED,
        actor_username=operator,
        entity_type="service_type",
        entity_id=service_type.id,
        metadata={"updated_fields": list(update_data.keys())},
        ip_address=client_ip(request)
    )

    return ServiceTypeResponse.model_validate(service_type)


# Pricing rules

@router.post(
    "/service-types/{service_type_id}/pricing-rules",
    response_model=PricingRuleResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_pricing_rule(
    service_type_id: int,
    rule: PricingRuleCreate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a pricing rule under a service type.

    Rules are not deduplicated; the resolver decides between overlapping rules.
    """
    await _get_service_type(db, service_type_id)

    new_rule = PricingRule(service_type_id=service_type_id, **rule.model_dump(), is_active=True)
    db.add(new_rule)
    await db.commit()
    await db.refresh(new_rule)

    await log_event(
        db=db,
        action=AuditAction.PRICING_RULE_CREATED,
        actor_username=operator,
        entity_type="pricing_rule",
        entity_id=new_rule.id,
        metadata={
            "service_type_id": service_type_id,
            "vehicle_type": new_rule.vehicle_type,
            "zone": new_rule.zone
        },
        ip_address=client_ip(request)
    )

    return PricingRuleResponse.model_validate(new_rule)


@router.get("/service-types/{service_type_id}/pricing-rules", response_model=PricingRuleListResponse)
async def list_pricing_rules(
    service_type_id: int,
    active_only: bool = Query(False, description="Hide deactivated rules"),
    db: AsyncSession = Depends(get_db)
):
    """
    List pricing rules of a service type in catalog order.
    """
    await _get_service_type(db, service_type_id)

    query = select(PricingRule).where(PricingRule.service_type_id == service_type_id)
    if active_only:
        query = query.where(PricingRule.is_active == True)

    result = await db.execute(query.order_by(PricingRule.id))
    rules = [PricingRuleResponse.model_validate(r) for r in result.scalars().all()]
    return PricingRuleListResponse(rules=rules, total=len(rules))


async def _get_pricing_rule(db: AsyncSession, rule_id: int) -> PricingRule:
    rule = await db.get(PricingRule, rule_id)
    if not rule:
        raise ResourceNotFoundError("Pricing rule", rule_id)
    return rule


@router.get("/pricing-rules/{rule_id}", response_model=PricingRuleResponse)
async def get_pricing_rule(rule_id: int, db: AsyncSession = Depends(get_db)):
    return PricingRuleResponse.model_validate(await _get_pricing_rule(db, rule_id))


@router.patch("/pricing-rules/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing_rule(
    rule_id: int,
    data: PricingRuleUpdate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Edit a rule's rates. Stored booking fares are not affected.
    """
    rule = await _get_pricing_rule(db, rule_id)

    update_data = _changes(data, NULLABLE_RULE_FIELDS)
    for field, value in update_data.items():
        setattr(rule, field, value)

    await db.commit()
    await db.refresh(rule)

    await log_event(
        db=db,
        action=AuditAction.PRICING_RULE_UPDATED,
        actor_username=operator,
        entity_type="pricing_rule",
        entity_id=rule.id,
        metadata={"updated_fields": list(update_data.keys())},
        ip_address=client_ip(request)
    )

    return PricingRuleResponse.model_validate(rule)


@router.patch("/pricing-rules/{rule_id}/deactivate", response_model=PricingRuleResponse)
async def deactivate_pricing_rule(
    rule_id: int,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a pricing rule (soft delete).
    """
    rule = await _get_pricing_rule(db, rule_id)
    if not rule.is_active:
        raise ConflictError("Pricing rule is already deactivated", details={"rule_id": rule_id})

    rule.is_active = False
    await db.commit()
    await db.refresh(rule)

    await log_event(
        db=db,
        action=AuditAction.PRICING_RULE_DEACTIVATED,
        actor_username=operator,
        entity_type="pricing_rule",
        entity_id=rule.id,
        ip_address=client_ip(request)
    )

    return PricingRuleResponse.model_validate(rule)


# Rental packages

@router.post(
    "/service-types/{service_type_id}/rental-packages",
    response_model=RentalPackageResponse,
    status_code=status.HTTP_201_CREATED
)
async def create_rental_package(
    service_type_id: int,
    package: RentalPackageCreate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a rental package under a service type.
    """
    await _get_service_type(db, service_type_id)

    new_package = RentalPackage(service_type_id=service_type_id, **package.model_dump(), is_active=True)
    db.add(new_package)
    await db.commit()
    await db.refresh(new_package)

    await log_event(
        db=db,
        action=AuditAction.RENTAL_PACKAGE_CREATED,
        actor_username=operator,
        entity_type="rental_package",
        entity_id=new_package.id,
        metadata={
            "service_type_id": service_type_id,
            "name": new_package.name,
            "vehicle_type": new_package.vehicle_type,
            "zone": new_package.zone
        },
        ip_address=client_ip(request)
    )

    return RentalPackageResponse.model_validate(new_package)


@router.get("/service-types/{service_type_id}/rental-packages", response_model=RentalPackageListResponse)
async def list_rental_packages(
    service_type_id: int,
    active_only: bool = Query(False, description="Hide deactivated packages"),
    db: AsyncSession = Depends(get_db)
):
    await _get_service_type(db, service_type_id)

    query = select(RentalPackage).where(RentalPackage.service_type_id == service_type_id)
    if active_only:
        query = query.where(RentalPackage.is_active == True)

    result = await db.execute(query.order_by(RentalPackage.id))
    packages = [RentalPackageResponse.model_validate(p) for p in result.scalars().all()]
    return RentalPackageListResponse(packages=packages, total=len(packages))


async def _get_rental_package(db: AsyncSession, package_id: int) -> RentalPackage:
    package = await db.get(RentalPackage, package_id)
    if not package:
        raise ResourceNotFoundError("Rental package", package_id)
    return package


@router.get("/rental-packages/{package_id}", response_model=RentalPackageResponse)
async def get_rental_package(package_id: int, db: AsyncSession = Depends(get_db)):
    return RentalPackageResponse.model_validate(await _get_rental_package(db, package_id))


@router.patch("/rental-packages/{package_id}", response_model=RentalPackageResponse)
async def update_rental_package(
    package_id: int,
    data: RentalPackageUpdate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    package = await _get_rental_package(db, package_id)

    update_data = _changes(data, NULLABLE_PACKAGE_FIELDS)
    for field, value in update_data.items():
        setattr(package, field, value)

    await db.commit()
    await db.refresh(package)

    await log_event(
        db=db,
        action=AuditAction.RENTAL_PACKAGE_UPDATED,
        actor_username=operator,
        entity_type="rental_package",
        entity_id=package.id,
        metadata={"updated_fields": list(update_data.keys())},
        ip_address=client_ip(request)
    )

    return RentalPackageResponse.model_validate(package)


@router.patch("/rental-packages/{package_id}/deactivate", response_model=RentalPackageResponse)
async def deactivate_rental_package(
    package_id: int,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Deactivate a rental package (soft delete).
    """
    package = await _get_rental_package(db, package_id)
    if not package.is_active:
        raise ConflictError("Rental package is already deactivated", details={"package_id": package_id})

    package.is_active = False
    await db.commit()
    await db.refresh(package)

    await log_event(
        db=db,
        action=AuditAction.RENTAL_PACKAGE_DEACTIVATED,
        actor_username=operator,
        entity_type="rental_package",
        entity_id=package.id,
        ip_address=client_ip(request)
    )

    return RentalPackageResponse.model_validate(package)


# Quotes

@router.post("/quote", response_model=QuoteResponse)
async def quote_fare(quote: QuoteRequest, db: AsyncSession = Depends(get_db)):
    """
    Estimate a fare without creating a booking.

    Returns 404 (ERR_PRICING_001) when no pricing is configured for the scope.
    """
    service_type = await _get_service_type(db, quote.service_type_id)
    rule, amount = await BookingService.quote(
        db, service_type, quote.vehicle_type, quote.zone,
        quote.distance_km, quote.duration_minutes
    )

    return QuoteResponse(
        rule_kind=rule.kind,
        rule_id=rule.id,
        rule_zone=rule.zone,
        amount=amount,
        formatted_amount=format_currency(amount, settings.currency_symbol),
    )
