"""
Commission repository.

Data access layer for CommissionRecord model (the commission ledger).
"""

from collections.abc import Iterable
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from supplynet.models.commission_record import CommissionRecord
from supplynet.repositories.base import BaseRepository


class CommissionRepository(BaseRepository[CommissionRecord]):
    """Commission ledger with filtered reads and aggregates."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize commission repository."""
        super().__init__(CommissionRecord, session)

    def _apply_filters(
        self,
        stmt: Any,
        beneficiary_id: int | None = None,
        beneficiary_ids: Iterable[int] | None = None,
        order_id: int | None = None,
        status: str | None = None,
        since: datetime | None = None,
        until: datetime | None = None,
    ) -> Any:
        """Attach ledger filters to a select statement."""
        if beneficiary_id is not None:
            stmt = stmt.where(CommissionRecord.beneficiary_id == beneficiary_id)
        if beneficiary_ids is not None:
            stmt = stmt.where(
                CommissionRecord.beneficiary_id.in_(list(beneficiary_ids))
            )
        if order_id is not None:
            stmt = stmt.where(CommissionRecord.order_id == order_id)
        if status is not None:
            stmt = stmt.where(CommissionRecord.status == status)
        if since is not None:
            stmt = stmt.where(CommissionRecord.created_at >= since)
        if until is not None:
            stmt = stmt.where(CommissionRecord.created_at <= until)
        return stmt

    async def find_many(self, **filters: Any) -> list[CommissionRecord]:
        """
        Find ledger records.

        Args:
            **filters: beneficiary_id, beneficiary_ids, order_id, status,
                since, until

        Returns:
            Matching records, oldest first
        """
        stmt = self._apply_filters(select(CommissionRecord), **filters)
        stmt = stmt.order_by(CommissionRecord.created_at, CommissionRecord.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def aggregate(self, **filters: Any) -> dict[str, Any]:
        """
        Aggregate ledger records with SQL to avoid loading rows.

        Args:
            **filters: Same filters as find_many

        Returns:
            Dict with count, total_amount and order_count
        """
        stmt = select(
            func.count(CommissionRecord.id),
            func.coalesce(func.sum(CommissionRecord.amount), 0),
            func.count(func.distinct(CommissionRecord.order_id)),
        )
        stmt = self._apply_filters(stmt, **filters)
        result = await self.session.execute(stmt)
        count, total, order_count = result.one()

        return {
            "count": count or 0,
            "total_amount": Decimal(str(total or 0)),
            "order_count": order_count or 0,
        }
