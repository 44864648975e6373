"""
Pricing Schemas.

Request and response models for service types, pricing rules,
rental packages and ad-hoc quotes.
"""

from pydantic import BaseModel, Field
from datetime import datetime
from decimal import Decimal
from typing import Optional, List
from fleetops.app.models.pricing_enums import RuleKind


class ServiceTypeCreate(BaseModel):
    """Schema for creating a service type."""
    name: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9_]+$", description="Machine name")
    display_name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    zone_based_pricing: bool = False
    uses_rental_packages: bool = False


class ServiceTypeUpdate(BaseModel):
    """Schema for updating a service type."""
    name: Optional[str] = Field(None, min_length=1, max_length=50, pattern=r"^[a-z0-9_]+$")
    display_name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    zone_based_pricing: Optional[bool] = None
    uses_rental_packages: Optional[bool] = None
    is_active: Optional[bool] = None


class ServiceTypeResponse(BaseModel):
    """Schema for displaying a service type."""
    id: int
    name: str
    display_name: str
    description: Optional[str]
    zone_based_pricing: bool
    uses_rental_packages: bool
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class PricingRuleCreate(BaseModel):
    """Schema for creating a pricing rule."""
    vehicle_type: str = Field(..., min_length=1, max_length=50)
    zone: Optional[str] = Field(None, min_length=1, max_length=100, description="Omit for a wildcard rule")
    base_fare: Decimal = Field(..., ge=0, decimal_places=2)
    per_km_rate: Decimal = Field(..., ge=0, decimal_places=2)
    per_minute_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    minimum_fare: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    surge_multiplier: Decimal = Field(Decimal("1.0"), gt=0, max_digits=5, decimal_places=2)
    cancellation_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    no_show_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    waiting_charge_per_minute: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    free_waiting_minutes: int = Field(5, ge=0)


class PricingRuleUpdate(BaseModel):
    """Schema for editing a pricing rule. Scope fields are fixed."""
    base_fare: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    per_km_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    per_minute_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    minimum_fare: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    surge_multiplier: Optional[Decimal] = Field(None, gt=0, max_digits=5, decimal_places=2)
    cancellation_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    no_show_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    waiting_charge_per_minute: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    free_waiting_minutes: Optional[int] = Field(None, ge=0)


class PricingRuleResponse(BaseModel):
    """Schema for displaying a pricing rule."""
    id: int
    service_type_id: int
    vehicle_type: str
    zone: Optional[str]
    base_fare: Decimal
    per_km_rate: Decimal
    per_minute_rate: Optional[Decimal]
    minimum_fare: Decimal
    surge_multiplier: Decimal
    cancellation_fee: Decimal
    no_show_fee: Decimal
    waiting_charge_per_minute: Decimal
    free_waiting_minutes: int
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class RentalPackageCreate(BaseModel):
    """Schema for creating a rental package."""
    vehicle_type: str = Field(..., min_length=1, max_length=50)
    zone: Optional[str] = Field(None, min_length=1, max_length=100)
    name: str = Field(..., min_length=1, max_length=100, description="Label, e.g. '4 hrs / 40 km'")
    duration_hours: Decimal = Field(..., gt=0, decimal_places=2)
    included_km: Decimal = Field(..., ge=0, decimal_places=2)
    base_price: Decimal = Field(..., ge=0, decimal_places=2)
    extra_km_rate: Decimal = Field(..., ge=0, decimal_places=2)
    extra_hour_rate: Decimal = Field(..., ge=0, decimal_places=2)
    free_waiting_minutes: int = Field(0, ge=0)
    waiting_charge_per_minute: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    cancellation_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)
    no_show_fee: Decimal = Field(Decimal("0"), ge=0, decimal_places=2)


class RentalPackageUpdate(BaseModel):
    """Schema for editing a rental package."""
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    duration_hours: Optional[Decimal] = Field(None, gt=0, decimal_places=2)
    included_km: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    base_price: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    extra_km_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    extra_hour_rate: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    free_waiting_minutes: Optional[int] = Field(None, ge=0)
    waiting_charge_per_minute: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    cancellation_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)
    no_show_fee: Optional[Decimal] = Field(None, ge=0, decimal_places=2)


class RentalPackageResponse(BaseModel):
    """Schema for displaying a rental package."""
    id: int
    service_type_id: int
    vehicle_type: str
    zone: Optional[str]
    name: str
    duration_hours: Decimal
    included_km: Decimal
    base_price: Decimal
    extra_km_rate: Decimal
    extra_hour_rate: Decimal
    free_waiting_minutes: int
    waiting_charge_per_minute: Optional[Decimal]
    cancellation_fee: Decimal
    no_show_fee: Decimal
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class QuoteRequest(BaseModel):
    """Schema for an ad-hoc fare estimate."""
    service_type_id: int
    vehicle_type: str = Field(..., min_length=1, max_length=50)
    zone: Optional[str] = None
    distance_km: Decimal = Field(..., ge=0)
    duration_minutes: Optional[Decimal] = Field(None, ge=0)


class QuoteResponse(BaseModel):
    """Resolved rule and the resulting estimate."""
    rule_kind: RuleKind
    rule_id: Optional[int]
    rule_zone: Optional[str]
    amount: Decimal
    formatted_amount: str


class PricingRuleListResponse(BaseModel):
    rules: List[PricingRuleResponse]
    total: int


class RentalPackageListResponse(BaseModel):
    packages: List[RentalPackageResponse]
    total: int
