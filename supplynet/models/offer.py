"""
Offer models.

Purchasable products, their variants and per-offer purchase restrictions.
"""

from decimal import Decimal
from typing import Optional

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from supplynet.models.base import Base
from supplynet.models.enums import OfferStatus
from supplynet.models.types import MoneyType


class Offer(Base):
    """Offer model - a purchasable product."""

    __tablename__ = "offers"
    __table_args__ = (
        CheckConstraint(
            'total_stock >= 0', name='check_offer_total_stock_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OfferStatus.ACTIVE.value, index=True
    )
    # Denormalized by the catalog service; validation sums variants instead
    total_stock: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0
    )

    variants: Mapped[list["OfferVariant"]] = relationship(
        back_populates="offer",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    restriction: Mapped[Optional["PurchaseRestriction"]] = relationship(
        back_populates="offer",
        lazy="selectin",
        uselist=False,
    )

    @property
    def variant_stock(self) -> int:
        """Sum of stock across all variants."""
        return sum(variant.stock for variant in self.variants)

    @property
    def active_variants(self) -> list["OfferVariant"]:
        """Variants that can currently be sold."""
        return [variant for variant in self.variants if variant.is_active]

    def __repr__(self) -> str:
        """String representation."""
        return f"<Offer(id={self.id}, status={self.status})>"


class OfferVariant(Base):
    """Offer variant - a concrete sellable specification of an offer."""

    __tablename__ = "offer_variants"
    __table_args__ = (
        CheckConstraint(
            'stock >= 0', name='check_offer_variant_stock_non_negative'
        ),
        CheckConstraint(
            'price >= 0', name='check_offer_variant_price_non_negative'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    offer_id: Mapped[int] = mapped_column(
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )
    stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    price: Mapped[Decimal] = mapped_column(MoneyType, nullable=False)
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    offer: Mapped["Offer"] = relationship(back_populates="variants")


class PurchaseRestriction(Base):
    """Per-offer purchase restriction record."""

    __tablename__ = "purchase_restrictions"
    __table_args__ = (
        CheckConstraint(
            'max_quantity IS NULL OR max_quantity > 0',
            name='check_purchase_restriction_max_quantity_positive'
        ),
    )

    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )
    offer_id: Mapped[int] = mapped_column(
        ForeignKey("offers.id", ondelete="CASCADE"),
        nullable=False,
        unique=True
    )
    max_quantity: Mapped[int | None] = mapped_column(Integer, nullable=True)
    min_rank: Mapped[str | None] = mapped_column(String(20), nullable=True)

    offer: Mapped["Offer"] = relationship(back_populates="restriction")
