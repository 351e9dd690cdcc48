"""
Unit tests for the pure purchase rules.
"""

from fakes import make_offer

from supplynet.config.ranks import MemberRank
from supplynet.models.enums import MemberStatus
from supplynet.models.offer import PurchaseRestriction
from supplynet.services.purchase import rules
from supplynet.services.purchase.results import (
    LevelComparisonResult,
    PurchaseRestrictionConfig,
)
from supplynet.services.supply_chain.path_finder import UplineSearchResult
from supplynet.services.team.relationship_resolver import TeamRelationship
from supplynet.services.team.snapshot import MemberSnapshot
from supplynet.utils.exceptions import RejectionCategory


def snapshot(member_id, rank="NORMAL", status="ACTIVE"):
    return MemberSnapshot(
        id=member_id, rank=MemberRank(rank), status=MemberStatus(status)
    )


class TestMemberRules:
    """Test existence and account status rules."""

    def test_missing_buyer_checked_first(self):
        """Buyer is reported even when the seller is missing too."""
        rejection = rules.check_members_exist(None, None)

        assert rejection.reason == "buyer does not exist"
        assert rejection.category == RejectionCategory.NOT_FOUND

    def test_missing_seller(self):
        """Missing seller is reported."""
        rejection = rules.check_members_exist(snapshot(1), None)

        assert rejection.reason == "seller does not exist"

    def test_both_present(self):
        """No rejection when both exist."""
        assert rules.check_members_exist(snapshot(1), snapshot(2)) is None

    def test_inactive_buyer(self):
        """Suspended buyer is refused."""
        rejection = rules.check_accounts_active(
            snapshot(1, status="SUSPENDED"), snapshot(2)
        )

        assert rejection.reason == "buyer account status abnormal"
        assert rejection.category == RejectionCategory.INVALID_STATE

    def test_inactive_seller(self):
        """Inactive seller is refused."""
        rejection = rules.check_accounts_active(
            snapshot(1), snapshot(2, status="INACTIVE")
        )

        assert rejection.reason == "seller account status abnormal"

    def test_team_relationship(self):
        """Invalid relationship maps to the team rejection."""
        assert rules.check_team_relationship(
            TeamRelationship(is_valid=True, distance=1)
        ) is None

        rejection = rules.check_team_relationship(
            TeamRelationship(is_valid=False)
        )
        assert rejection.reason == rules.TEAM_RELATIONSHIP_REASON


class TestRankRules:
    """Test rank comparison and escalation."""

    def test_higher_seller_is_valid(self):
        """Seller strictly above the buyer passes without escalation."""
        buyer, seller = snapshot(5, "NORMAL"), snapshot(4, "VIP")

        assert rules.needs_escalation(buyer, seller) is False
        comparison = rules.compare_ranks(buyer, seller)
        assert comparison.result == LevelComparisonResult.VALID
        assert rules.check_rank_order(comparison) is None

    def test_equal_rank_needs_escalation(self):
        """Peers need a higher-ranked upline."""
        assert rules.needs_escalation(
            snapshot(5, "VIP"), snapshot(4, "VIP")
        ) is True

    def test_escalated(self):
        """Found escalation replaces the effective seller."""
        buyer, seller = snapshot(5, "TIER_1"), snapshot(4, "VIP")
        upline = snapshot(2, "TIER_3")
        escalation = UplineSearchResult(
            member=upline,
            rank=upline.rank,
            distance=2,
            search_path=[4, 3, 2],
        )

        comparison = rules.compare_ranks(buyer, seller, escalation)

        assert comparison.result == LevelComparisonResult.ESCALATED
        assert comparison.effective_seller_id == 2
        assert comparison.effective_seller_rank == MemberRank.TIER_3
        assert comparison.search_path == [4, 3, 2]
        assert rules.check_rank_order(comparison) is None

    def test_seller_too_low(self):
        """Without escalation a low seller is refused with both ranks named."""
        comparison = rules.compare_ranks(
            snapshot(5, "TIER_2"), snapshot(4, "VIP")
        )

        rejection = rules.check_rank_order(comparison)

        assert comparison.result == LevelComparisonResult.SELLER_LEVEL_TOO_LOW
        assert rejection.reason == (
            "buyer rank (TIER_2) is greater than or equal to seller rank "
            "(VIP), violating sourcing rule"
        )
        assert rejection.category == RejectionCategory.RULE_VIOLATION


class TestOfferRules:
    """Test offer, quantity and stock rules."""

    def test_offer_missing(self):
        """Missing offer is reported."""
        assert rules.check_offer_exists(None).reason == "product does not exist"
        assert rules.check_offer_exists(make_offer()) is None

    def test_offer_delisted(self):
        """Inactive offer is refused."""
        rejection = rules.check_offer_listed(make_offer(status="INACTIVE"))

        assert rejection.reason == "product is delisted"

    def test_quantity_positive(self):
        """Zero and negative quantities are refused."""
        assert rules.check_quantity_positive(1) is None
        assert rules.check_quantity_positive(0).reason == "invalid quantity: 0"
        assert rules.check_quantity_positive(-2).reason == "invalid quantity: -2"

    def test_stock_sums_variants(self):
        """Stock is summed over every variant."""
        offer = make_offer(variants=[(2, True), (3, False)])

        assert rules.check_stock(offer, 5) is None
        rejection = rules.check_stock(offer, 6)
        assert rejection.reason == "insufficient stock: have 5, need 6"

    def test_active_variant_required(self):
        """Offer with only inactive variants is refused."""
        offer = make_offer(variants=[(10, False)])

        assert rules.check_active_variant(offer).reason == "no available variant"
        assert rules.check_active_variant(make_offer()) is None


class TestRestrictionRules:
    """Test restriction merging and enforcement."""

    def test_smaller_limit_wins(self):
        """Offer limit below the rank limit applies."""
        record = PurchaseRestriction(offer_id=1, max_quantity=3, min_rank=None)

        config = rules.merge_restrictions(record, MemberRank.VIP)

        assert config == PurchaseRestrictionConfig(max_quantity=3, min_rank=None)

    def test_rank_limit_when_offer_unrestricted(self):
        """Rank limit applies without a restriction record."""
        config = rules.merge_restrictions(None, MemberRank.NORMAL)

        assert config.max_quantity == 5
        assert config.min_rank is None

    def test_min_rank_from_record(self):
        """Minimum rank comes from the restriction record."""
        record = PurchaseRestriction(offer_id=1, max_quantity=None, min_rank="VIP")

        config = rules.merge_restrictions(record, MemberRank.TIER_1)

        assert config.max_quantity == 20
        assert config.min_rank == MemberRank.VIP

    def test_exceeds_limit(self):
        """Quantity over the limit is refused."""
        rejection = rules.check_restrictions(
            PurchaseRestrictionConfig(max_quantity=5), 6, MemberRank.NORMAL
        )

        assert rejection.reason == "exceeds per-purchase limit: max 5, requested 6"

    def test_rank_too_low(self):
        """Buyer below the minimum rank is refused."""
        rejection = rules.check_restrictions(
            PurchaseRestrictionConfig(min_rank=MemberRank.VIP),
            1,
            MemberRank.NORMAL,
        )

        assert rejection.reason == "buyer rank too low: requires VIP, has NORMAL"

    def test_unrestricted(self):
        """Empty config allows anything."""
        assert rules.check_restrictions(
            PurchaseRestrictionConfig(), 1000, MemberRank.NORMAL
        ) is None
