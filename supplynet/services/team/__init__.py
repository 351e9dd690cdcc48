"""
Team services package.

- snapshot: immutable member view held by the caches
- member_reader: cached member lookup
- relationship_resolver: ancestor / distance checks via materialized paths
- ancestry_service: the single writer of links and paths
"""

from supplynet.services.team.ancestry_service import AncestryService
from supplynet.services.team.member_reader import MemberReader, member_cache_key
from supplynet.services.team.relationship_resolver import (
    RelationshipType,
    TeamRelationship,
    TeamRelationshipResolver,
)
from supplynet.services.team.snapshot import MemberSnapshot


__all__ = [
    "AncestryService",
    "MemberReader",
    "MemberSnapshot",
    "RelationshipType",
    "TeamRelationship",
    "TeamRelationshipResolver",
    "member_cache_key",
]
