"""
Offer repository.

Data access layer for Offer model (the offer store).
"""

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from supplynet.models.offer import Offer, PurchaseRestriction
from supplynet.repositories.base import BaseRepository


class OfferRepository(BaseRepository[Offer]):
    """Offer repository with variant and restriction lookups."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize offer repository."""
        super().__init__(Offer, session)

    async def find_by_id(self, offer_id: int) -> Offer | None:
        """
        Get offer with its variants loaded.

        Args:
            offer_id: Offer ID

        Returns:
            Offer or None
        """
        stmt = (
            select(Offer)
            .where(Offer.id == offer_id)
            .options(selectinload(Offer.variants))
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def find_purchase_restriction(
        self, offer_id: int
    ) -> PurchaseRestriction | None:
        """
        Get the purchase restriction record of an offer.

        Args:
            offer_id: Offer ID

        Returns:
            PurchaseRestriction or None if the offer has none
        """
        stmt = select(PurchaseRestriction).where(
            PurchaseRestriction.offer_id == offer_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()
