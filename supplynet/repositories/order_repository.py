"""
Order repository.

Read-only access to purchase orders for reporting.
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from supplynet.models.enums import OrderStatus
from supplynet.models.purchase_order import PurchaseOrder
from supplynet.repositories.base import BaseRepository


class OrderRepository(BaseRepository[PurchaseOrder]):
    """Order repository with reporting aggregates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize order repository."""
        super().__init__(PurchaseOrder, session)

    async def aggregate_completed(
        self,
        buyer_ids: Iterable[int],
        start: datetime,
        end: datetime,
    ) -> dict:
        """
        Count and sum completed orders placed by a set of buyers.

        Args:
            buyer_ids: Buyer member IDs
            start: Window start (inclusive)
            end: Window end (inclusive)

        Returns:
            Dict with total_orders and total_amount
        """
        ids = list(buyer_ids)
        if not ids:
            return {"total_orders": 0, "total_amount": Decimal("0")}

        stmt = select(
            func.count(PurchaseOrder.id),
            func.coalesce(func.sum(PurchaseOrder.total_amount), 0),
        ).where(
            PurchaseOrder.buyer_id.in_(ids),
            PurchaseOrder.status == OrderStatus.COMPLETED.value,
            PurchaseOrder.created_at >= start,
            PurchaseOrder.created_at <= end,
        )
        result = await self.session.execute(stmt)
        total_orders, total_amount = result.one()

        return {
            "total_orders": total_orders or 0,
            "total_amount": Decimal(str(total_amount or 0)),
        }
