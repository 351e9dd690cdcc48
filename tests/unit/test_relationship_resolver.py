"""
Unit tests for TeamRelationshipResolver.

Tree used (see conftest.team_tree): 1 -> 2 -> 3 -> 4 -> 5 and 1 -> 6.
"""

import pytest

from fakes import make_member

from supplynet.services.team.relationship_resolver import RelationshipType


class TestValidateTeamRelationship:
    """Test ancestor checks over materialized paths."""

    @pytest.mark.asyncio
    async def test_direct_upline(self, resolver):
        """Direct upline is distance 1 with nothing in between."""
        result = await resolver.validate_team_relationship(4, 5)

        assert result.is_valid is True
        assert result.distance == 1
        assert result.path == []
        assert result.relationship_type == RelationshipType.DIRECT

    @pytest.mark.asyncio
    async def test_indirect_upline(self, resolver):
        """Distance counts hops; path holds the ids strictly between."""
        result = await resolver.validate_team_relationship(2, 5)

        assert result.is_valid is True
        assert result.distance == 3
        assert result.path == [3, 4]
        assert result.relationship_type == RelationshipType.INDIRECT

    @pytest.mark.asyncio
    async def test_root_upline(self, resolver):
        """Root is as far away as the path is long."""
        result = await resolver.validate_team_relationship(1, 5)

        assert result.distance == 4
        assert result.path == [2, 3, 4]

    @pytest.mark.asyncio
    async def test_not_an_upline(self, resolver):
        """Member on another branch is not an upline."""
        result = await resolver.validate_team_relationship(6, 5)

        assert result.is_valid is False
        assert result.relationship_type == RelationshipType.NONE
        assert "not an upline" in result.message

    @pytest.mark.asyncio
    async def test_downline_is_not_upline(self, resolver):
        """Relationship is directional."""
        result = await resolver.validate_team_relationship(5, 4)

        assert result.is_valid is False

    @pytest.mark.asyncio
    async def test_self_is_invalid(self, resolver, member_repo):
        """A member is never its own upline, without touching the store."""
        result = await resolver.validate_team_relationship(5, 5)

        assert result.is_valid is False
        assert member_repo.calls["find_many_by_id"] == 0

    @pytest.mark.asyncio
    async def test_missing_ancestor(self, resolver):
        """Unknown candidate ancestor is reported."""
        result = await resolver.validate_team_relationship(99, 5)

        assert result.is_valid is False
        assert "99 does not exist" in result.message

    @pytest.mark.asyncio
    async def test_missing_member(self, resolver):
        """Unknown member is reported."""
        result = await resolver.validate_team_relationship(1, 99)

        assert result.is_valid is False
        assert "99 does not exist" in result.message

    @pytest.mark.asyncio
    async def test_path_not_materialized(self, resolver, member_repo):
        """Member without a path is not resolved by walking links."""
        member_repo.add(make_member(7, referrer_id=1, path=None))

        result = await resolver.validate_team_relationship(1, 7)

        assert result.is_valid is False
        assert "not materialized" in result.message

    @pytest.mark.asyncio
    async def test_corrupted_path(self, resolver, member_repo):
        """Path containing the member itself is rejected."""
        member_repo.add(make_member(7, referrer_id=1, path=[1, 7]))

        result = await resolver.validate_team_relationship(1, 7)

        assert result.is_valid is False
        assert "corrupted" in result.message

    @pytest.mark.asyncio
    async def test_second_lookup_served_from_cache(self, resolver, member_repo):
        """Members are loaded once and then read from the member cache."""
        await resolver.validate_team_relationship(2, 5)
        await resolver.validate_team_relationship(2, 5)

        assert member_repo.calls["find_many_by_id"] == 1
