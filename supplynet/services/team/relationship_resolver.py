"""
Team relationship resolver.

Answers "is A an upline of B, and how far away" from B's materialized
path, without walking the tree.
"""

from dataclasses import dataclass, field
from enum import StrEnum

from loguru import logger

from supplynet.services.team.member_reader import MemberReader


class RelationshipType(StrEnum):
    """How a candidate ancestor relates to a member."""

    DIRECT = "direct"
    INDIRECT = "indirect"
    NONE = "none"


@dataclass(frozen=True)
class TeamRelationship:
    """
    Result of a relationship check.

    distance counts hops from the ancestor to the member, member included
    (1 for a direct upline). path holds only the ids strictly between them.
    """

    is_valid: bool
    distance: int = 0
    path: list[int] = field(default_factory=list)
    relationship_type: RelationshipType = RelationshipType.NONE
    message: str | None = None


class TeamRelationshipResolver:
    """Resolves ancestor relationships using materialized paths."""

    def __init__(self, member_reader: MemberReader) -> None:
        """
        Initialize resolver.

        Args:
            member_reader: Cached member lookup
        """
        self.member_reader = member_reader

    async def validate_team_relationship(
        self, candidate_ancestor_id: int, member_id: int
    ) -> TeamRelationship:
        """
        Check whether candidate_ancestor_id is an upline of member_id.

        Args:
            candidate_ancestor_id: Presumed ancestor (e.g. the seller)
            member_id: Presumed descendant (e.g. the buyer)

        Returns:
            TeamRelationship; invalid with a message when either member is
            missing or the member has no usable path
        """
        if candidate_ancestor_id == member_id:
            return TeamRelationship(
                is_valid=False,
                message="a member cannot be its own upline",
            )

        members = await self.member_reader.get_many(
            [candidate_ancestor_id, member_id]
        )
        if candidate_ancestor_id not in members:
            return TeamRelationship(
                is_valid=False,
                message=f"member {candidate_ancestor_id} does not exist",
            )
        member = members.get(member_id)
        if member is None:
            return TeamRelationship(
                is_valid=False,
                message=f"member {member_id} does not exist",
            )

        path = member.path
        if path is None:
            return TeamRelationship(
                is_valid=False,
                message=f"ancestry path of member {member_id} is not materialized",
            )

        if member_id in path or len(set(path)) != len(path):
            logger.warning(
                "Corrupted materialized path",
                extra={"member_id": member_id, "path": list(path)},
            )
            return TeamRelationship(
                is_valid=False,
                message=f"ancestry path of member {member_id} is corrupted",
            )

        if candidate_ancestor_id not in path:
            return TeamRelationship(
                is_valid=False,
                message=(
                    f"member {candidate_ancestor_id} is not an upline "
                    f"of member {member_id}"
                ),
            )

        index = path.index(candidate_ancestor_id)
        distance = len(path) - index

        return TeamRelationship(
            is_valid=True,
            distance=distance,
            path=list(path[index + 1:]),
            relationship_type=(
                RelationshipType.DIRECT if distance == 1
                else RelationshipType.INDIRECT
            ),
        )
