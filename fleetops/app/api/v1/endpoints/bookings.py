"""
Booking API Endpoints.

Booking creation with automatic quoting, operator fare overrides,
lifecycle transitions, post-trip extras and the audit trail.
"""

from typing import List, Optional
from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select, func

from fleetops.app.db.session import get_db
from fleetops.app.core.dependencies import get_operator, client_ip
from fleetops.app.domain.pricing.booking_service import BookingService
from fleetops.app.models.booking import Booking
from fleetops.app.models.pricing_enums import BookingStatus
from fleetops.app.schemas.booking import (
    BookingCreate, BookingResponse, BookingListResponse,
    FareOverrideRequest, BookingStatusUpdate,
    BookingExtrasRequest, ExtraChargesResponse, AuditEntryResponse,
)
from fleetops.app.services.audit import get_audit_trail

router = APIRouter(prefix="/bookings", tags=["Bookings"])


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Create a booking and quote its fare.

    If no pricing is configured the booking is still created; `quoted_fare`
    stays empty and `pricing_message` says why.
    """
    booking, pricing_message = await BookingService.create_booking(
        db, data, actor=operator, ip_address=client_ip(request)
    )
    response = BookingResponse.model_validate(booking)
    response.pricing_message = pricing_message
    return response


@router.get("", response_model=BookingListResponse)
async def list_bookings(
    status_filter: Optional[BookingStatus] = Query(None, alias="status"),
    page: int = Query(1, ge=1, description="Page number"),
    page_size: int = Query(50, ge=1, le=100, description="Items per page"),
    db: AsyncSession = Depends(get_db)
):
    """
    List bookings, newest first.
    """
    count_query = select(func.count(Booking.id))
    query = select(Booking)
    if status_filter:
        count_query = count_query.where(Booking.status == status_filter)
        query = query.where(Booking.status == status_filter)

    total_result = await db.execute(count_query)
    total = total_result.scalar()

    offset = (page - 1) * page_size
    result = await db.execute(
        query.order_by(Booking.id.desc()).offset(offset).limit(page_size)
    )

    return BookingListResponse(
        bookings=[BookingResponse.model_validate(b) for b in result.scalars().all()],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(booking_id: int, db: AsyncSession = Depends(get_db)):
    return BookingResponse.model_validate(await BookingService.get_booking(db, booking_id))


@router.patch("/{booking_id}/fare", response_model=BookingResponse)
async def override_fare(
    booking_id: int,
    data: FareOverrideRequest,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Overwrite the final fare. Authoritative; the fare calculator is not consulted.
    """
    booking = await BookingService.override_fare(
        db, booking_id, data.final_fare, data.reason,
        actor=operator, ip_address=client_ip(request)
    )
    return BookingResponse.model_validate(booking)


@router.post("/{booking_id}/status", response_model=BookingResponse)
async def change_booking_status(
    booking_id: int,
    data: BookingStatusUpdate,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    booking = await BookingService.change_status(
        db, booking_id, data.status, data.reason, data.penalty,
        actor=operator, ip_address=client_ip(request)
    )
    return BookingResponse.model_validate(booking)


@router.put("/{booking_id}/extras", response_model=ExtraChargesResponse)
async def apply_booking_extras(
    booking_id: int,
    data: BookingExtrasRequest,
    request: Request,
    operator: Optional[str] = Depends(get_operator),
    db: AsyncSession = Depends(get_db)
):
    """
    Set post-trip extras on a completed booking.

    Replaces previously applied extras, so repeating the request never double-charges.
    """
    booking, breakdown = await BookingService.apply_extras(
        db, booking_id, data.model_dump(),
        actor=operator, ip_address=client_ip(request)
    )

    return ExtraChargesResponse(
        booking_id=booking.id,
        extra_km_charge=breakdown.extra_km_charge,
        extra_hour_charge=breakdown.extra_hour_charge,
        waiting_charge=breakdown.waiting_charge,
        upgrade_charges=breakdown.upgrade_charges,
        billable_waiting_minutes=breakdown.billable_waiting_minutes,
        total=breakdown.total,
        fare_amount=booking.fare_amount,
    )


@router.get("/{booking_id}/audit-trail", response_model=List[AuditEntryResponse])
async def booking_audit_trail(
    booking_id: int,
    limit: int = Query(100, ge=1, le=500),
    db: AsyncSession = Depends(get_db)
):
    """
    Audit entries recorded against a booking, most recent first.
    """
    await BookingService.get_booking(db, booking_id)
    entries = await get_audit_trail(db, entity_type="booking", entity_id=booking_id, limit=limit)
    return [AuditEntryResponse.model_validate(e) for e in entries]
