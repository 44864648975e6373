"""
API v1 Router.

Aggregates all v1 API endpoints.
"""

from fastapi import APIRouter
from fleetops.app.api.v1.endpoints import pricing, bookings, payments

router = APIRouter()

# Service types, pricing rules, rental packages, quotes
router.include_router(pricing.router)

# Bookings and their fares
router.include_router(bookings.router)

# Payments and reconciliation
router.include_router(payments.booking_router)
router.include_router(payments.router)
