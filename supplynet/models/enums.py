"""
Model enumerations.
"""

from enum import StrEnum


class MemberStatus(StrEnum):
    """Member account status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    SUSPENDED = "SUSPENDED"


class OfferStatus(StrEnum):
    """Offer listing status."""

    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


class CommissionStatus(StrEnum):
    """Commission record payout status."""

    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"


class CommissionSourceType(StrEnum):
    """What produced a commission record."""

    PURCHASE = "PURCHASE"


class OrderStatus(StrEnum):
    """Purchase order status (owned by the order service)."""

    PENDING = "PENDING"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
