"""
Member repository.

Data access layer for Member model (the member store).
"""

from collections.abc import Iterable

from sqlalchemy import or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from supplynet.models.member import Member
from supplynet.repositories.base import BaseRepository


class MemberRepository(BaseRepository[Member]):
    """Member repository with ancestry queries."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize member repository."""
        super().__init__(Member, session)

    async def find_by_id(self, member_id: int) -> Member | None:
        """Get member by ID."""
        return await self.get_by_id(member_id)

    async def find_many_by_id(
        self, member_ids: Iterable[int]
    ) -> list[Member]:
        """
        Bulk-load members in one query.

        Order of the result is unspecified; callers re-order by id.

        Args:
            member_ids: Member IDs

        Returns:
            Members that exist
        """
        ids = list(dict.fromkeys(member_ids))
        if not ids:
            return []

        stmt = select(Member).where(Member.id.in_(ids))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_children(self, member_id: int) -> list[Member]:
        """
        Get direct downline (members linking to member_id).

        Args:
            member_id: Upline member ID

        Returns:
            Members whose referrer or parent is member_id
        """
        stmt = select(Member).where(
            or_(
                Member.referrer_id == member_id,
                Member.parent_id == member_id,
            )
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def find_subtree(self, member_id: int) -> list[Member]:
        """
        Get the whole downline of a member.

        Uses the materialized path (JSONB containment) and direct links so
        members with a missing path are still found at depth 1.

        Args:
            member_id: Leader member ID

        Returns:
            Downline members, leader excluded
        """
        stmt = select(Member).where(
            or_(
                Member.parent_id == member_id,
                Member.referrer_id == member_id,
                Member.path.contains([member_id]),
            )
        )
        result = await self.session.execute(stmt)
        return [m for m in result.scalars().all() if m.id != member_id]

    async def find_all_ids(self) -> list[int]:
        """Get IDs of every member, oldest first."""
        stmt = select(Member.id).order_by(Member.created_at, Member.id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def update_ancestry(
        self,
        member_id: int,
        referrer_id: int | None,
        parent_id: int | None,
        path: list[int] | None,
    ) -> None:
        """
        Write ancestry links and path in one statement.

        Only AncestryService calls this; it keeps links and path consistent.

        Args:
            member_id: Member to update
            referrer_id: New referrer link
            parent_id: New structural parent link
            path: New materialized path
        """
        stmt = (
            update(Member)
            .where(Member.id == member_id)
            .values(referrer_id=referrer_id, parent_id=parent_id, path=path)
        )
        await self.session.execute(stmt)

    async def update_path(
        self, member_id: int, path: list[int] | None
    ) -> None:
        """Write only the materialized path of a member."""
        stmt = update(Member).where(Member.id == member_id).values(path=path)
        await self.session.execute(stmt)
