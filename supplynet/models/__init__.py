"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from supplynet.models.base import Base
from supplynet.models.commission_record import CommissionRecord
from supplynet.models.enums import (
    CommissionSourceType,
    CommissionStatus,
    MemberStatus,
    OfferStatus,
    OrderStatus,
)
from supplynet.models.member import Member
from supplynet.models.offer import Offer, OfferVariant, PurchaseRestriction
from supplynet.models.purchase_order import PurchaseOrder

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionSourceType",
    "CommissionStatus",
    "MemberStatus",
    "OfferStatus",
    "OrderStatus",
    # Network
    "Member",
    # Catalog
    "Offer",
    "OfferVariant",
    "PurchaseRestriction",
    # Settlement
    "CommissionRecord",
    "PurchaseOrder",
]
