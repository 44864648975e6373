"""
Pricing and booking enumerations.
"""

import enum


class BookingStatus(str, enum.Enum):
    """Booking lifecycle status enumeration."""
    PENDING = "pending"  # Created, waiting for a driver
    ACCEPTED = "accepted"  # Driver accepted
    STARTED = "started"  # Trip / rental in progress
    COMPLETED = "completed"  # Finished, extras may be applied
    CANCELLED = "cancelled"
    NO_DRIVER = "no_driver"  # No driver could be assigned


class BookingPaymentStatus(str, enum.Enum):
    """Payment status stored on the booking itself."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"


class PaymentStatus(str, enum.Enum):
    """Status of a single payment transaction."""
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    COMPLETED = "completed"


class RuleKind(str, enum.Enum):
    """Which catalog collection a service type is priced from."""
    PRICING_RULE = "pricing_rule"
    RENTAL_PACKAGE = "rental_package"


class PenaltyKind(str, enum.Enum):
    """Flat fees a rule can charge instead of a trip fare."""
    CANCELLATION = "cancellation"
    NO_SHOW = "no_show"


class ResolutionStrategy(str, enum.Enum):
    """Tie-break between zone-specific and wildcard entries."""
    MOST_SPECIFIC = "most_specific"
    CATALOG_ORDER = "catalog_order"
