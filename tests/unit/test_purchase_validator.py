"""
Unit tests for PurchaseValidator.

Tree used (see conftest.team_tree):
1 DIRECTOR -> 2 TIER_3 -> 3 TIER_1 -> 4 VIP -> 5 NORMAL, and 1 -> 6 NORMAL.
Offer 1 has stock 100, max 10 per purchase, min rank NORMAL.
"""

import pytest

from fakes import make_member, make_offer

from supplynet.config.ranks import MemberRank
from supplynet.models.offer import PurchaseRestriction
from supplynet.services.purchase.purchase_validator import PurchaseValidator
from supplynet.services.purchase.results import (
    SYSTEM_ERROR_REASON,
    LevelComparisonResult,
    ValidatorStats,
)
from supplynet.services.purchase.rules import TEAM_RELATIONSHIP_REASON
from supplynet.utils.exceptions import RejectionCategory


@pytest.fixture
def validator(member_reader, resolver, path_finder, offer_repo):
    """Validator over the fake stores."""
    return PurchaseValidator(member_reader, resolver, path_finder, offer_repo)


def assert_rejected(result, reason):
    assert result.is_valid is False
    assert result.can_purchase is False
    assert result.reasons == [reason]


class TestApproval:
    """Test purchases that go through."""

    @pytest.mark.asyncio
    async def test_direct_upline_seller(self, validator):
        """NORMAL buyer buying from its VIP referrer is approved."""
        result = await validator.validate_purchase_permission(5, 4, 1, 3)

        assert result.is_valid is True
        assert result.can_purchase is True
        assert result.reasons == []
        assert result.rejection_category is None
        assert result.metadata.buyer_rank == MemberRank.NORMAL
        assert result.metadata.seller_rank == MemberRank.VIP
        assert result.metadata.team_relationship.distance == 1
        assert result.metadata.level_comparison.result == LevelComparisonResult.VALID
        # Offer allows 10, NORMAL rank allows 5
        assert result.restrictions.max_quantity == 5

    @pytest.mark.asyncio
    async def test_indirect_upline_seller(self, validator):
        """Seller further up the tree is accepted."""
        result = await validator.validate_purchase_permission(5, 2, 1, 1)

        assert result.is_valid is True
        assert result.metadata.team_relationship.distance == 3

    @pytest.mark.asyncio
    async def test_peer_escalation(self, validator, member_repo):
        """Seller not outranking the buyer is replaced by a higher upline."""
        member_repo.add(
            make_member(7, "TIER_1", referrer_id=4, path=[1, 2, 3, 4])
        )

        result = await validator.validate_purchase_permission(7, 4, 1, 3)

        assert result.is_valid is True
        comparison = result.metadata.level_comparison
        assert comparison.result == LevelComparisonResult.ESCALATED
        assert comparison.search_path == [4, 3, 2]
        assert result.metadata.effective_seller_id == 2
        assert result.metadata.effective_seller_rank == MemberRank.TIER_3


class TestRejection:
    """Test each rejection, in pipeline order."""

    @pytest.mark.asyncio
    async def test_missing_buyer(self, validator, member_repo):
        """Missing buyer stops before the seller is loaded."""
        result = await validator.validate_purchase_permission(99, 4, 1, 1)

        assert_rejected(result, "buyer does not exist")
        assert result.rejection_category == RejectionCategory.NOT_FOUND
        assert member_repo.calls["find_by_id"] == 1

    @pytest.mark.asyncio
    async def test_missing_seller(self, validator):
        """Missing seller is reported."""
        result = await validator.validate_purchase_permission(5, 99, 1, 1)

        assert_rejected(result, "seller does not exist")

    @pytest.mark.asyncio
    async def test_inactive_buyer(self, validator, member_repo):
        """Inactive buyer is refused."""
        member_repo.members[5].status = "INACTIVE"

        result = await validator.validate_purchase_permission(5, 4, 1, 1)

        assert_rejected(result, "buyer account status abnormal")
        assert result.rejection_category == RejectionCategory.INVALID_STATE

    @pytest.mark.asyncio
    async def test_inactive_seller(self, validator, member_repo):
        """Suspended seller is refused."""
        member_repo.members[4].status = "SUSPENDED"

        result = await validator.validate_purchase_permission(5, 4, 1, 1)

        assert_rejected(result, "seller account status abnormal")

    @pytest.mark.asyncio
    async def test_seller_outside_team(self, validator, offer_repo):
        """Seller on another branch is refused before any offer lookup."""
        offer_repo.error = RuntimeError("offer store must not be queried")

        result = await validator.validate_purchase_permission(5, 6, 1, 1)

        assert_rejected(result, TEAM_RELATIONSHIP_REASON)
        assert result.rejection_category == RejectionCategory.RULE_VIOLATION

    @pytest.mark.asyncio
    async def test_seller_rank_too_low(self, validator, member_repo):
        """Buyer outranking a root seller has nobody to escalate to."""
        member_repo.add(make_member(10, "VIP", path=[]))
        member_repo.add(make_member(11, "TIER_2", referrer_id=10, path=[10]))

        result = await validator.validate_purchase_permission(11, 10, 1, 1)

        assert_rejected(
            result,
            "buyer rank (TIER_2) is greater than or equal to seller rank "
            "(VIP), violating sourcing rule",
        )
        assert (
            result.metadata.level_comparison.result
            == LevelComparisonResult.SELLER_LEVEL_TOO_LOW
        )

    @pytest.mark.asyncio
    async def test_missing_offer(self, validator):
        """Unknown offer is refused."""
        result = await validator.validate_purchase_permission(5, 4, 99, 1)

        assert_rejected(result, "product does not exist")

    @pytest.mark.asyncio
    async def test_delisted_offer(self, validator, offer_repo):
        """Inactive offer is refused."""
        offer_repo.add(make_offer(2, status="INACTIVE"))

        result = await validator.validate_purchase_permission(5, 4, 2, 1)

        assert_rejected(result, "product is delisted")

    @pytest.mark.asyncio
    async def test_invalid_quantity(self, validator):
        """Zero quantity is refused."""
        result = await validator.validate_purchase_permission(5, 4, 1, 0)

        assert_rejected(result, "invalid quantity: 0")

    @pytest.mark.asyncio
    async def test_insufficient_stock_before_limits(self, validator):
        """Stock is checked before the per-purchase limit."""
        result = await validator.validate_purchase_permission(5, 4, 1, 150)

        assert_rejected(result, "insufficient stock: have 100, need 150")
        assert result.restrictions is None

    @pytest.mark.asyncio
    async def test_no_active_variant(self, validator, offer_repo):
        """Offer with stock but no sellable variant is refused."""
        offer_repo.add(make_offer(3, variants=[(50, False)]))

        result = await validator.validate_purchase_permission(5, 4, 3, 1)

        assert_rejected(result, "no available variant")

    @pytest.mark.asyncio
    async def test_exceeds_rank_limit(self, validator):
        """NORMAL buyer may take at most 5 units."""
        result = await validator.validate_purchase_permission(5, 4, 1, 6)

        assert_rejected(result, "exceeds per-purchase limit: max 5, requested 6")
        assert result.restrictions.max_quantity == 5

    @pytest.mark.asyncio
    async def test_buyer_below_min_rank(self, validator, offer_repo):
        """Offer reserved for VIP and above refuses a NORMAL buyer."""
        offer_repo.add(
            make_offer(4),
            PurchaseRestriction(offer_id=4, max_quantity=None, min_rank="VIP"),
        )

        result = await validator.validate_purchase_permission(5, 4, 4, 1)

        assert_rejected(result, "buyer rank too low: requires VIP, has NORMAL")


class TestFailures:
    """Test system errors and statistics."""

    @pytest.mark.asyncio
    async def test_store_failure_is_generic_rejection(
        self, validator, member_repo
    ):
        """Unexpected errors never propagate."""
        member_repo.error = RuntimeError("database down")

        result = await validator.validate_purchase_permission(5, 4, 1, 1)

        assert_rejected(result, SYSTEM_ERROR_REASON)
        assert result.rejection_category == RejectionCategory.SYSTEM_ERROR

    @pytest.mark.asyncio
    async def test_offer_store_failure(self, validator, offer_repo):
        """Failures in later stages are caught too."""
        offer_repo.error = RuntimeError("offer store down")

        result = await validator.validate_purchase_permission(5, 4, 1, 1)

        assert_rejected(result, SYSTEM_ERROR_REASON)
        assert result.metadata.buyer_rank == MemberRank.NORMAL

    @pytest.mark.asyncio
    async def test_stats_track_validations_and_cache(self, validator):
        """Counters cover every run, approved or not."""
        await validator.validate_purchase_permission(5, 4, 1, 1)
        result = await validator.validate_purchase_permission(5, 4, 1, 1)

        stats = validator.get_performance_stats()
        assert stats["total_validations"] == 2
        assert stats["cache_misses"] == 2
        assert stats["cache_hits"] == 2
        assert stats["cache_hit_rate"] == 0.5
        assert stats["average_validation_ms"] >= 0
        assert stats["member_cache_size"] > 0
        assert result.metadata.performance.total_validations == 2

    @pytest.mark.asyncio
    async def test_shared_stats(
        self, member_reader, resolver, path_finder, offer_repo
    ):
        """Validators sharing stats share counters."""
        stats = ValidatorStats()
        first = PurchaseValidator(
            member_reader, resolver, path_finder, offer_repo, stats=stats
        )
        second = PurchaseValidator(
            member_reader, resolver, path_finder, offer_repo, stats=stats
        )

        await first.validate_purchase_permission(5, 4, 1, 1)
        await second.validate_purchase_permission(5, 4, 1, 1)

        assert stats.snapshot().total_validations == 2

        stats.reset()
        assert stats.snapshot().total_validations == 0
