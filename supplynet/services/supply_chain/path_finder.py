"""
Supply chain path finder.

Resolves a member's active upline chain and finds the nearest upline
whose rank is high enough to act as a supplier.
"""

from dataclasses import dataclass, field

from loguru import logger

from supplynet.config.constants import UPLINE_SEARCH_MAX_DEPTH
from supplynet.config.ranks import MemberRank
from supplynet.services.cache.upline_cache import UplineCache
from supplynet.services.team.member_reader import MemberReader
from supplynet.services.team.snapshot import MemberSnapshot


@dataclass(frozen=True)
class UplineHop:
    """An upline together with its hop distance from the start member."""

    distance: int
    member: MemberSnapshot


@dataclass(frozen=True)
class UplineSearchResult:
    """Nearest qualifying upline and the ids walked to reach it."""

    member: MemberSnapshot
    rank: MemberRank
    distance: int
    search_path: list[int] = field(default_factory=list)


@dataclass(frozen=True)
class SupplierCandidate:
    """Upline that outranks the member."""

    member_id: int
    rank: MemberRank
    distance: int


@dataclass(frozen=True)
class SupplyChainPath:
    """Suppliers available to a member, nearest first."""

    path: list[SupplierCandidate] = field(default_factory=list)
    total_distance: int = 0  # Hop distance of the farthest supplier
    is_valid: bool = False


def upline_cache_key(member_id: int, max_depth: int) -> str:
    """Cache key of an upline chain."""
    return f"upline:{member_id}:{max_depth}"


def _chain_owner(key: str) -> int | None:
    try:
        return int(key.split(":")[1])
    except (IndexError, ValueError):
        return None


class SupplyChainPathFinder:
    """
    Upline chain resolution backed by the upline-chain cache.

    Inactive uplines are skipped and the walk continues past them. Every
    walk is bounded by max_depth and guarded by a visited set.
    """

    def __init__(
        self,
        member_reader: MemberReader,
        chain_cache: UplineCache[list[UplineHop]],
    ) -> None:
        """
        Initialize path finder.

        Args:
            member_reader: Cached member lookup
            chain_cache: Cache for resolved chains keyed by (member, depth)
        """
        self.member_reader = member_reader
        self.chain_cache = chain_cache

    async def get_upline_chain(
        self, member_id: int, max_depth: int = UPLINE_SEARCH_MAX_DEPTH
    ) -> list[MemberSnapshot]:
        """
        Get active uplines, nearest first.

        Args:
            member_id: Start member ID
            max_depth: Max hops to look up

        Returns:
            Active uplines within max_depth hops
        """
        hops = await self.get_upline_hops(member_id, max_depth)
        return [hop.member for hop in hops]

    async def get_upline_hops(
        self, member_id: int, max_depth: int = UPLINE_SEARCH_MAX_DEPTH
    ) -> list[UplineHop]:
        """
        Get active uplines annotated with their hop distance.

        Prefers the materialized path (one bulk lookup); falls back to
        following links when the path is missing or inconsistent.

        Args:
            member_id: Start member ID
            max_depth: Max hops to look up

        Returns:
            List of UplineHop, nearest first
        """
        if max_depth < 1:
            return []

        key = upline_cache_key(member_id, max_depth)
        walked = self.chain_cache.get(key)
        if walked is None:
            walked = await self._walk_upline(member_id, max_depth)
            if walked:
                self.chain_cache.set(key, walked)

        hops = [hop for hop in walked if hop.member.is_active]
        logger.debug(
            "Upline chain resolved",
            extra={
                "member_id": member_id,
                "max_depth": max_depth,
                "chain_length": len(hops),
            },
        )
        return hops

    async def _walk_upline(
        self, member_id: int, max_depth: int
    ) -> list[UplineHop]:
        """Every existing upline within max_depth hops, active or not."""
        member = await self.member_reader.get(member_id)
        if member is None:
            return []

        if member.has_consistent_path:
            hops = await self._hops_from_path(member, max_depth)
        else:
            if member.path is not None:
                logger.warning(
                    "Materialized path inconsistent with links, walking links",
                    extra={"member_id": member_id, "path": list(member.path)},
                )
            hops = await self._hops_by_traversal(member, max_depth)
        return hops

    async def _hops_from_path(
        self, member: MemberSnapshot, max_depth: int
    ) -> list[UplineHop]:
        nearest_ids = list(reversed(member.path))[:max_depth]
        if not nearest_ids:
            return []

        uplines = await self.member_reader.get_many(nearest_ids)

        hops = []
        for distance, upline_id in enumerate(nearest_ids, start=1):
            upline = uplines.get(upline_id)
            if upline is None:
                logger.warning(
                    "Path references missing member",
                    extra={"member_id": member.id, "missing_id": upline_id},
                )
                continue
            hops.append(UplineHop(distance=distance, member=upline))
        return hops

    async def _hops_by_traversal(
        self, member: MemberSnapshot, max_depth: int
    ) -> list[UplineHop]:
        hops = []
        visited = {member.id}
        current = member

        for distance in range(1, max_depth + 1):
            upline_id = current.upline_id
            if upline_id is None:
                break

            if upline_id in visited:
                logger.warning(
                    "Referral cycle detected, stopping upline walk",
                    extra={
                        "member_id": member.id,
                        "cycle_at": upline_id,
                        "walked": distance - 1,
                    },
                )
                break
            visited.add(upline_id)

            upline = await self.member_reader.get(upline_id)
            if upline is None:
                logger.warning(
                    "Upline link points to missing member",
                    extra={"member_id": current.id, "missing_id": upline_id},
                )
                break

            hops.append(UplineHop(distance=distance, member=upline))
            current = upline

        return hops

    async def find_higher_level_upline(
        self,
        member_id: int,
        min_rank_ordinal: int,
        max_depth: int = UPLINE_SEARCH_MAX_DEPTH,
    ) -> UplineSearchResult | None:
        """
        Find the nearest active upline ranked strictly above a rank.

        Args:
            member_id: Start member ID (included in the search path)
            min_rank_ordinal: Ordinal the upline must exceed
            max_depth: Max hops to look up

        Returns:
            UplineSearchResult, or None if no upline qualifies
        """
        hops = await self.get_upline_hops(member_id, max_depth)

        search_path = [member_id]
        for hop in hops:
            search_path.append(hop.member.id)
            if hop.member.rank_ordinal > min_rank_ordinal:
                return UplineSearchResult(
                    member=hop.member,
                    rank=hop.member.rank,
                    distance=hop.distance,
                    search_path=search_path,
                )
        return None

    async def find_optimal_supply_path(
        self, member_id: int, max_depth: int = UPLINE_SEARCH_MAX_DEPTH
    ) -> SupplyChainPath:
        """
        List every active upline that outranks the member.

        Args:
            member_id: Member looking for suppliers
            max_depth: Max hops to look up

        Returns:
            SupplyChainPath; invalid and empty if nobody qualifies
        """
        member = await self.member_reader.get(member_id)
        if member is None:
            return SupplyChainPath()

        hops = await self.get_upline_hops(member_id, max_depth)
        suppliers = [
            SupplierCandidate(
                member_id=hop.member.id,
                rank=hop.member.rank,
                distance=hop.distance,
            )
            for hop in hops
            if hop.member.rank_ordinal > member.rank_ordinal
        ]

        return SupplyChainPath(
            path=suppliers,
            total_distance=suppliers[-1].distance if suppliers else 0,
            is_valid=bool(suppliers),
        )

    def invalidate_member(self, member_id: int) -> int:
        """Drop chains of a member and chains that pass through it."""
        return self.invalidate_members([member_id])

    def invalidate_members(self, member_ids: list[int] | set[int]) -> int:
        """
        Drop cached chains affected by ancestry or status changes.

        Removes chains owned by any of the members and chains that
        contain any of them as an upline.

        Args:
            member_ids: Changed members

        Returns:
            Number of cached chains dropped
        """
        changed = set(member_ids)
        if not changed:
            return 0

        def affected(key: str, hops: list[UplineHop]) -> bool:
            if _chain_owner(key) in changed:
                return True
            return any(hop.member.id in changed for hop in hops)

        dropped = self.chain_cache.delete_where(affected)
        if dropped:
            logger.debug(
                "Upline chains invalidated",
                extra={"members": sorted(changed), "dropped": dropped},
            )
        return dropped

    def clear_cache(self) -> None:
        """Drop every cached chain."""
        self.chain_cache.clear()
        logger.info("Supply chain path finder cache cleared")

    def get_cache_stats(self) -> dict:
        """Sizes of the caches the path finder relies on."""
        return {
            "member_cache_size": self.member_reader.cache.size(),
            "upline_chain_cache_size": self.chain_cache.size(),
        }
