"""
Unit tests for AncestryService.

Tree used (see conftest.team_tree):
1 DIRECTOR -> 2 TIER_3 -> 3 TIER_1 -> 4 VIP -> 5 NORMAL, and 1 -> 6 NORMAL.
"""

import pytest

from fakes import make_member

from supplynet.services.team.ancestry_service import AncestryService
from supplynet.utils.exceptions import AncestryError, NotFoundError


@pytest.fixture
def service(mock_session, member_repo, member_reader, path_finder):
    """Ancestry service over the fake store with cache invalidation."""
    svc = AncestryService(mock_session, member_reader, path_finder)
    svc.member_repo = member_repo
    return svc


class TestComputePath:
    """Test path derivation from links."""

    @pytest.mark.asyncio
    async def test_root_first(self, service):
        """Ancestors are listed from the root down."""
        assert await service.compute_path_from_links(5) == [1, 2, 3, 4]
        assert await service.compute_path_from_links(1) == []

    @pytest.mark.asyncio
    async def test_memo_filled_for_ancestors(self, service):
        """One walk derives the paths of every ancestor on the way."""
        memo = {}

        await service.compute_path_from_links(5, memo)

        assert memo == {
            5: [1, 2, 3, 4],
            4: [1, 2, 3],
            3: [1, 2],
            2: [1],
            1: [],
        }

    @pytest.mark.asyncio
    async def test_cycle_raises(self, service, member_repo):
        """Cyclic links cannot produce a path."""
        member_repo.add(make_member(10, referrer_id=11))
        member_repo.add(make_member(11, referrer_id=10))

        with pytest.raises(AncestryError):
            await service.compute_path_from_links(10)

    @pytest.mark.asyncio
    async def test_dangling_link_raises(self, service, member_repo):
        """Link to a missing member is reported."""
        member_repo.add(make_member(10, referrer_id=99))

        with pytest.raises(NotFoundError):
            await service.compute_path_from_links(10)


class TestAttachMember:
    """Test placing new members."""

    @pytest.mark.asyncio
    async def test_attach(self, service, member_repo, mock_session):
        """New member gets both links and its derived path."""
        member_repo.add(make_member(7))

        path = await service.attach_member(7, 4)

        member = member_repo.members[7]
        assert path == [1, 2, 3, 4]
        assert member.referrer_id == 4
        assert member.parent_id == 4
        assert member.path == [1, 2, 3, 4]
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_attach_with_separate_parent(self, service, member_repo):
        """Path follows the referrer when the parent differs."""
        member_repo.add(make_member(7))

        path = await service.attach_member(7, 4, parent_id=6)

        assert path == [1, 2, 3, 4]
        assert member_repo.members[7].parent_id == 6

    @pytest.mark.asyncio
    async def test_self_reference(self, service, member_repo, mock_session):
        """A member cannot refer itself."""
        member_repo.add(make_member(7))

        with pytest.raises(AncestryError):
            await service.attach_member(7, 7)

        mock_session.rollback.assert_awaited_once()
        mock_session.commit.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_already_attached(self, service):
        """Placed members must be moved instead."""
        with pytest.raises(AncestryError):
            await service.attach_member(5, 6)

    @pytest.mark.asyncio
    async def test_missing_referrer(self, service, member_repo):
        """Referrer must exist."""
        member_repo.add(make_member(7))

        with pytest.raises(NotFoundError):
            await service.attach_member(7, 99)


class TestMoveMember:
    """Test re-parenting."""

    @pytest.mark.asyncio
    async def test_move_rewrites_downline(self, service, member_repo):
        """Moving a member re-derives every path below it."""
        path = await service.move_member(3, 6)

        assert path == [1, 6]
        assert member_repo.members[3].referrer_id == 6
        assert member_repo.members[3].parent_id == 6
        assert member_repo.members[4].path == [1, 6, 3]
        assert member_repo.members[5].path == [1, 6, 3, 4]
        # Untouched branch
        assert member_repo.members[2].path == [1]

    @pytest.mark.asyncio
    async def test_move_invalidates_cached_chains(self, service, path_finder):
        """Cached upline chains reflect the move."""
        before = await path_finder.get_upline_chain(5)
        assert [m.id for m in before] == [4, 3, 2, 1]

        await service.move_member(3, 6)

        after = await path_finder.get_upline_chain(5)
        assert [m.id for m in after] == [4, 3, 6, 1]

    @pytest.mark.asyncio
    async def test_move_into_own_downline(
        self, service, member_repo, mock_session
    ):
        """Moving under a descendant would create a cycle."""
        with pytest.raises(AncestryError):
            await service.move_member(2, 4)

        assert member_repo.members[2].referrer_id == 1
        mock_session.rollback.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_move_to_self(self, service):
        """A member cannot be its own upline."""
        with pytest.raises(AncestryError):
            await service.move_member(3, 3)

    @pytest.mark.asyncio
    async def test_move_to_missing_upline(self, service):
        """New upline must exist."""
        with pytest.raises(NotFoundError):
            await service.move_member(3, 99)


class TestConsistency:
    """Test consistency checks and rebuild."""

    @pytest.mark.asyncio
    async def test_consistent_member(self, service):
        """Path derived from links reports nothing."""
        assert await service.check_consistency(5) == []

    @pytest.mark.asyncio
    async def test_stale_path(self, service, member_repo):
        """Stored path disagreeing with links is reported."""
        member_repo.members[5].path = [1, 6]

        issues = await service.check_consistency(5)

        assert issues == ["path [1, 6] does not match links [1, 2, 3, 4]"]

    @pytest.mark.asyncio
    async def test_missing_path(self, service, member_repo):
        """Unmaterialized path is reported."""
        member_repo.members[5].path = None

        assert await service.check_consistency(5) == ["path not materialized"]

    @pytest.mark.asyncio
    async def test_broken_links(self, service, member_repo):
        """Cyclic links are reported instead of raising."""
        member_repo.add(make_member(10, referrer_id=11, path=[11, 10]))
        member_repo.add(make_member(11, referrer_id=10, path=[10]))

        issues = await service.check_consistency(10)

        assert issues[0] == "path contains the member itself"
        assert issues[1].startswith("links are broken")

    @pytest.mark.asyncio
    async def test_missing_member(self, service):
        """Unknown member raises."""
        with pytest.raises(NotFoundError):
            await service.check_consistency(99)

    @pytest.mark.asyncio
    async def test_rebuild_paths(self, service, member_repo, mock_session):
        """Every path is re-derived; broken links get no path."""
        member_repo.members[4].path = [9]
        member_repo.members[5].path = None
        member_repo.add(make_member(10, referrer_id=11, path=[11]))
        member_repo.add(make_member(11, referrer_id=10, path=None))

        changed = await service.rebuild_paths()

        assert changed == 3
        assert member_repo.members[4].path == [1, 2, 3]
        assert member_repo.members[5].path == [1, 2, 3, 4]
        assert member_repo.members[10].path is None
        assert member_repo.members[11].path is None
        mock_session.commit.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_rebuild_clears_caches(self, service, path_finder):
        """Rebuild drops every cached chain."""
        await path_finder.get_upline_chain(5)

        await service.rebuild_paths()

        assert path_finder.get_cache_stats()["upline_chain_cache_size"] == 0
        assert path_finder.get_cache_stats()["member_cache_size"] == 0
