"""
CommissionRecord model.

One row per beneficiary per order. Created at settlement time; status is
changed later by the payout step only.
"""

from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from supplynet.models.base import Base
from supplynet.models.enums import CommissionSourceType, CommissionStatus
from supplynet.models.types import MoneyType, RateType


class CommissionRecord(Base):
    """CommissionRecord model - degressive commission payable to a member."""

    __tablename__ = "commission_records"
    __table_args__ = (
        CheckConstraint(
            'amount >= 0', name='check_commission_amount_non_negative'
        ),
        CheckConstraint(
            'depth >= 1', name='check_commission_depth_positive'
        ),
        Index(
            'idx_commission_beneficiary_created',
            'beneficiary_id', 'created_at'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    beneficiary_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    order_id: Mapped[int] = mapped_column(
        Integer, nullable=False, index=True
    )
    source_member_id: Mapped[int] = mapped_column(
        ForeignKey("members.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    amount: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    rate: Mapped[Decimal] = mapped_column(RateType, nullable=False)
    depth: Mapped[int] = mapped_column(Integer, nullable=False)

    source_type: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionSourceType.PURCHASE.value
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=CommissionStatus.PENDING.value,
        index=True
    )

    # path_depth, max_depth, base_rate, calculation_method
    meta: Mapped[dict[str, Any] | None] = mapped_column(JSONB, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionRecord(id={self.id}, order_id={self.order_id}, "
            f"beneficiary_id={self.beneficiary_id}, amount={self.amount}, "
            f"depth={self.depth}, status={self.status})>"
        )
