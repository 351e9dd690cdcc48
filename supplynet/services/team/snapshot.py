"""
Member snapshot.

Immutable, session-independent copy of the member fields the engine
needs. Snapshots are what the caches hold; ORM instances never leave the
session that loaded them.
"""

from dataclasses import dataclass

from supplynet.config.ranks import MemberRank
from supplynet.models.enums import MemberStatus
from supplynet.models.member import Member


@dataclass(frozen=True)
class MemberSnapshot:
    """Read-only view of a member."""

    id: int
    rank: MemberRank
    status: MemberStatus
    referrer_id: int | None = None
    parent_id: int | None = None
    path: tuple[int, ...] | None = None

    @classmethod
    def from_model(cls, member: Member) -> "MemberSnapshot":
        """Copy the relevant fields out of an ORM instance."""
        return cls(
            id=member.id,
            rank=MemberRank(member.rank),
            status=MemberStatus(member.status),
            referrer_id=member.referrer_id,
            parent_id=member.parent_id,
            path=tuple(member.path) if member.path is not None else None,
        )

    @property
    def is_active(self) -> bool:
        """Only active members take part in validation and payouts."""
        return self.status == MemberStatus.ACTIVE

    @property
    def rank_ordinal(self) -> int:
        """Position of the member's rank on the ladder."""
        return self.rank.ordinal

    @property
    def upline_id(self) -> int | None:
        """Nearest ancestor link, referrer preferred over parent."""
        return self.referrer_id or self.parent_id

    @property
    def has_consistent_path(self) -> bool:
        """
        Path is usable: present, no duplicates, no self-reference, and
        ending at the upline link when there is one.
        """
        if self.path is None:
            return False
        if self.id in self.path or len(set(self.path)) != len(self.path):
            return False
        if self.upline_id is None:
            return not self.path
        return bool(self.path) and self.path[-1] == self.upline_id
