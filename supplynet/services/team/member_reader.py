"""
Cached member lookup.

Shared by the relationship resolver, the path finder and the purchase
validator so a member is loaded from the store at most once per TTL.
"""

from collections.abc import Iterable

from loguru import logger

from supplynet.repositories.member_repository import MemberRepository
from supplynet.services.cache.upline_cache import UplineCache
from supplynet.services.team.snapshot import MemberSnapshot


def member_cache_key(member_id: int) -> str:
    """Cache key of a member snapshot."""
    return f"member:{member_id}"


class MemberReader:
    """Read-through cache in front of the member store."""

    def __init__(
        self,
        member_repo: MemberRepository,
        cache: UplineCache[MemberSnapshot],
    ) -> None:
        """
        Initialize member reader.

        Args:
            member_repo: Member store
            cache: Cache holding MemberSnapshot values
        """
        self.member_repo = member_repo
        self.cache = cache

    async def lookup(self, member_id: int) -> tuple[MemberSnapshot | None, bool]:
        """
        Get a member and whether the cache served it.

        Args:
            member_id: Member ID

        Returns:
            Tuple of (snapshot or None, cache_hit)
        """
        key = member_cache_key(member_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached, True

        member = await self.member_repo.find_by_id(member_id)
        if member is None:
            return None, False

        snapshot = MemberSnapshot.from_model(member)
        self.cache.set(key, snapshot)
        return snapshot, False

    async def get(self, member_id: int) -> MemberSnapshot | None:
        """Get a member snapshot or None."""
        snapshot, _ = await self.lookup(member_id)
        return snapshot

    async def get_many(
        self, member_ids: Iterable[int]
    ) -> dict[int, MemberSnapshot]:
        """
        Get several members with one store query for the cache misses.

        Args:
            member_ids: Member IDs

        Returns:
            Mapping of id to snapshot for members that exist
        """
        ids = list(dict.fromkeys(member_ids))
        cached = self.cache.mget(member_cache_key(member_id) for member_id in ids)

        found: dict[int, MemberSnapshot] = {}
        missing: list[int] = []
        for member_id in ids:
            snapshot = cached.get(member_cache_key(member_id))
            if snapshot is None:
                missing.append(member_id)
            else:
                found[member_id] = snapshot

        if missing:
            members = await self.member_repo.find_many_by_id(missing)
            for member in members:
                snapshot = MemberSnapshot.from_model(member)
                found[snapshot.id] = snapshot
                self.cache.set(member_cache_key(snapshot.id), snapshot)

        return found

    def invalidate(self, member_ids: Iterable[int]) -> None:
        """Drop cached snapshots of the given members."""
        dropped = 0
        for member_id in member_ids:
            if self.cache.delete(member_cache_key(member_id)):
                dropped += 1

        if dropped:
            logger.debug(
                "Member snapshots invalidated", extra={"dropped": dropped}
            )
