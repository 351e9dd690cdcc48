"""
Ancestry service.

The single place that writes referrer/parent links and materialized
paths. Paths are always derived from links, never set independently, so
the two representations cannot drift apart through this service.
"""

from collections import deque
from typing import TYPE_CHECKING

from sqlalchemy.ext.asyncio import AsyncSession

from supplynet.repositories.member_repository import MemberRepository
from supplynet.services.base_service import BaseService, transaction
from supplynet.services.team.member_reader import MemberReader
from supplynet.utils.exceptions import AncestryError, NotFoundError

if TYPE_CHECKING:
    from supplynet.services.supply_chain.path_finder import (
        SupplyChainPathFinder,
    )


class AncestryService(BaseService):
    """Keeps member links and materialized paths consistent."""

    def __init__(
        self,
        session: AsyncSession,
        member_reader: MemberReader | None = None,
        path_finder: "SupplyChainPathFinder | None" = None,
    ) -> None:
        """
        Initialize ancestry service.

        Args:
            session: Async database session
            member_reader: Member cache to invalidate after changes
            path_finder: Upline-chain cache owner to invalidate after changes
        """
        super().__init__(session)
        self.member_repo = MemberRepository(session)
        self.member_reader = member_reader
        self.path_finder = path_finder

    async def compute_path_from_links(
        self,
        member_id: int,
        memo: dict[int, list[int]] | None = None,
    ) -> list[int]:
        """
        Derive a member's path by following upline links to the root.

        Args:
            member_id: Member ID
            memo: Already derived paths, filled in as a side effect

        Returns:
            Ancestor ids, root first, member excluded

        Raises:
            NotFoundError: Member or one of its uplines does not exist
            AncestryError: Links form a cycle
        """
        if memo is not None and member_id in memo:
            return list(memo[member_id])

        member = await self.member_repo.find_by_id(member_id)
        if member is None:
            raise NotFoundError(f"member {member_id} does not exist")

        ancestors: list[int] = []  # Nearest first
        prefix: list[int] = []
        visited = {member_id}
        upline_id = member.upline_id

        while upline_id is not None:
            if memo is not None and upline_id in memo:
                prefix = memo[upline_id] + [upline_id]
                break
            if upline_id in visited:
                raise AncestryError(
                    f"referral cycle through member {upline_id} "
                    f"above member {member_id}"
                )
            visited.add(upline_id)
            ancestors.append(upline_id)

            upline = await self.member_repo.find_by_id(upline_id)
            if upline is None:
                raise NotFoundError(
                    f"upline {upline_id} of member {member_id} does not exist"
                )
            upline_id = upline.upline_id

        path = prefix + list(reversed(ancestors))

        if memo is not None:
            memo[member_id] = path
            for index, ancestor_id in enumerate(ancestors):
                memo[ancestor_id] = path[: len(path) - 1 - index]

        return list(path)

    @transaction
    async def attach_member(
        self,
        member_id: int,
        referrer_id: int,
        parent_id: int | None = None,
    ) -> list[int]:
        """
        Attach an unplaced member under a referrer.

        Args:
            member_id: Member without upline links
            referrer_id: Referrer (preferred upline link)
            parent_id: Structural parent, defaults to the referrer

        Returns:
            New materialized path of the member

        Raises:
            NotFoundError: Member, referrer or parent does not exist
            AncestryError: Member already placed, self-reference or cycle
        """
        parent_id = parent_id if parent_id is not None else referrer_id
        if member_id in (referrer_id, parent_id):
            raise AncestryError(f"member {member_id} cannot be its own upline")

        member = await self.member_repo.find_by_id(member_id)
        if member is None:
            raise NotFoundError(f"member {member_id} does not exist")
        if member.upline_id is not None:
            raise AncestryError(
                f"member {member_id} is already attached to "
                f"{member.upline_id}; use move_member"
            )

        for upline_id in {referrer_id, parent_id}:
            if await self.member_repo.find_by_id(upline_id) is None:
                raise NotFoundError(f"member {upline_id} does not exist")

        path = await self._relink(member_id, referrer_id, parent_id)

        self.logger.info(
            "Member attached",
            extra={
                "member_id": member_id,
                "referrer_id": referrer_id,
                "parent_id": parent_id,
                "depth": len(path),
            },
        )
        return path

    @transaction
    async def move_member(self, member_id: int, new_upline_id: int) -> list[int]:
        """
        Re-parent a member together with its whole downline.

        Both links are pointed at the new upline so the preferred link
        and the structural link agree.

        Args:
            member_id: Member to move
            new_upline_id: New referrer and parent

        Returns:
            New materialized path of the member

        Raises:
            NotFoundError: Member or new upline does not exist
            AncestryError: Self-reference, or the new upline is in the
                member's downline
        """
        if member_id == new_upline_id:
            raise AncestryError(f"member {member_id} cannot be its own upline")

        if await self.member_repo.find_by_id(member_id) is None:
            raise NotFoundError(f"member {member_id} does not exist")
        if await self.member_repo.find_by_id(new_upline_id) is None:
            raise NotFoundError(f"member {new_upline_id} does not exist")

        path = await self._relink(member_id, new_upline_id, new_upline_id)

        self.logger.info(
            "Member moved",
            extra={
                "member_id": member_id,
                "new_upline_id": new_upline_id,
                "depth": len(path),
            },
        )
        return path

    async def check_consistency(self, member_id: int) -> list[str]:
        """
        Compare a member's stored path with its links.

        Args:
            member_id: Member ID

        Returns:
            Human-readable issues, empty when consistent

        Raises:
            NotFoundError: Member does not exist
        """
        member = await self.member_repo.find_by_id(member_id)
        if member is None:
            raise NotFoundError(f"member {member_id} does not exist")

        issues: list[str] = []
        stored = member.path

        if stored is None:
            issues.append("path not materialized")
        else:
            if member_id in stored:
                issues.append("path contains the member itself")
            if len(set(stored)) != len(stored):
                issues.append("path contains duplicate ids")

        try:
            expected = await self.compute_path_from_links(member_id)
        except (AncestryError, NotFoundError) as e:
            issues.append(f"links are broken: {e}")
            return issues

        if stored is not None and list(stored) != expected:
            issues.append(f"path {list(stored)} does not match links {expected}")

        return issues

    @transaction
    async def rebuild_paths(self) -> int:
        """
        Recompute every member's path from its links.

        Members whose links are cyclic or dangling get no path, which
        makes readers fall back to bounded link traversal.

        Returns:
            Number of members whose stored path changed
        """
        memo: dict[int, list[int]] = {}
        member_ids = await self.member_repo.find_all_ids()
        changed = 0
        broken = 0

        for member_id in member_ids:
            member = await self.member_repo.find_by_id(member_id)
            if member is None:
                continue

            try:
                path = await self.compute_path_from_links(member_id, memo)
            except (AncestryError, NotFoundError) as e:
                self.logger.warning(
                    "Cannot derive path, clearing it",
                    extra={"member_id": member_id, "error": str(e)},
                )
                path = None
                broken += 1

            if member.path != path:
                await self.member_repo.update_path(member_id, path)
                changed += 1

        self._clear_caches()

        self.logger.info(
            "Materialized paths rebuilt",
            extra={
                "members": len(member_ids),
                "changed": changed,
                "broken": broken,
            },
        )
        return changed

    async def _relink(
        self, member_id: int, referrer_id: int, parent_id: int
    ) -> list[int]:
        """Write new links for a member and re-derive its downline paths."""
        upline_path = await self.compute_path_from_links(referrer_id)
        path = upline_path + [referrer_id]
        if member_id in path:
            raise AncestryError(
                f"member {referrer_id} is in the downline of member {member_id}"
            )

        await self.member_repo.update_ancestry(
            member_id, referrer_id=referrer_id, parent_id=parent_id, path=path
        )
        affected = await self._rederive_downline(member_id, path)
        self._invalidate(affected)
        return path

    async def _rederive_downline(
        self, root_id: int, root_path: list[int]
    ) -> list[int]:
        """
        Rewrite paths below root_id breadth-first.

        Returns:
            IDs whose path was rewritten, root included
        """
        affected = [root_id]
        visited = {root_id}
        queue = deque([(root_id, root_path)])

        while queue:
            upline_id, upline_path = queue.popleft()
            child_path = upline_path + [upline_id]

            for child in await self.member_repo.find_children(upline_id):
                # Children linked only through the fallback link follow
                # their preferred upline instead
                if child.upline_id != upline_id:
                    continue
                if child.id in visited:
                    self.logger.warning(
                        "Referral cycle in downline, skipping member",
                        extra={"member_id": child.id, "upline_id": upline_id},
                    )
                    continue
                visited.add(child.id)

                await self.member_repo.update_path(child.id, child_path)
                affected.append(child.id)
                queue.append((child.id, child_path))

        return affected

    def _invalidate(self, member_ids: list[int]) -> None:
        if self.member_reader is not None:
            self.member_reader.invalidate(member_ids)
        if self.path_finder is not None:
            self.path_finder.invalidate_members(member_ids)

    def _clear_caches(self) -> None:
        if self.member_reader is not None:
            self.member_reader.cache.clear()
        if self.path_finder is not None:
            self.path_finder.clear_cache()
