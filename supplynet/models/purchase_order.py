"""
PurchaseOrder model.

Orders are owned by the order service; this engine only reads them for
team performance reporting.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from supplynet.models.base import Base
from supplynet.models.enums import OrderStatus
from supplynet.models.types import MoneyType


class PurchaseOrder(Base):
    """PurchaseOrder model - read-side view of settled orders."""

    __tablename__ = "purchase_orders"
    __table_args__ = (
        Index('idx_purchase_order_buyer_created', 'buyer_id', 'created_at'),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    buyer_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"), nullable=False
    )
    seller_id: Mapped[int] = mapped_column(
        ForeignKey("members.id"), nullable=False, index=True
    )
    offer_id: Mapped[int] = mapped_column(
        ForeignKey("offers.id"), nullable=False
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OrderStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )
