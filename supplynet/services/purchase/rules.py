"""
Purchase rules.

Each rule is a pure function over already-loaded data that returns a
Rejection, or None when the rule passes. PurchaseValidator loads the data
and runs the rules in order, stopping at the first rejection.
"""

from supplynet.config.ranks import MemberRank, RankBenefit, get_rank_benefit
from supplynet.models.enums import OfferStatus
from supplynet.models.offer import Offer, PurchaseRestriction
from supplynet.services.purchase.results import (
    LevelComparison,
    LevelComparisonResult,
    PurchaseRestrictionConfig,
    Rejection,
)
from supplynet.services.supply_chain.path_finder import UplineSearchResult
from supplynet.services.team.relationship_resolver import TeamRelationship
from supplynet.services.team.snapshot import MemberSnapshot
from supplynet.utils.exceptions import RejectionCategory


TEAM_RELATIONSHIP_REASON = (
    "no valid team relationship; purchase requires same-tree membership"
)


def check_members_exist(
    buyer: MemberSnapshot | None, seller: MemberSnapshot | None
) -> Rejection | None:
    """Buyer and seller must both exist."""
    if buyer is None:
        return Rejection("buyer does not exist", RejectionCategory.NOT_FOUND)
    if seller is None:
        return Rejection("seller does not exist", RejectionCategory.NOT_FOUND)
    return None


def check_accounts_active(
    buyer: MemberSnapshot, seller: MemberSnapshot
) -> Rejection | None:
    """Buyer and seller accounts must both be ACTIVE."""
    if not buyer.is_active:
        return Rejection(
            "buyer account status abnormal", RejectionCategory.INVALID_STATE
        )
    if not seller.is_active:
        return Rejection(
            "seller account status abnormal", RejectionCategory.INVALID_STATE
        )
    return None


def check_team_relationship(relationship: TeamRelationship) -> Rejection | None:
    """Seller must be an upline of the buyer."""
    if not relationship.is_valid:
        return Rejection(TEAM_RELATIONSHIP_REASON, RejectionCategory.RULE_VIOLATION)
    return None


def needs_escalation(buyer: MemberSnapshot, seller: MemberSnapshot) -> bool:
    """Seller does not strictly outrank the buyer."""
    return buyer.rank_ordinal >= seller.rank_ordinal


def compare_ranks(
    buyer: MemberSnapshot,
    seller: MemberSnapshot,
    escalation: UplineSearchResult | None = None,
) -> LevelComparison:
    """
    Compare buyer and seller ranks, applying peer escalation.

    Args:
        buyer: Buyer snapshot
        seller: Seller snapshot
        escalation: Nearest upline of the seller outranking the buyer,
            when one was searched for and found

    Returns:
        LevelComparison
    """
    if not needs_escalation(buyer, seller):
        return LevelComparison(
            result=LevelComparisonResult.VALID,
            buyer_rank=buyer.rank,
            seller_rank=seller.rank,
        )

    if escalation is None:
        return LevelComparison(
            result=LevelComparisonResult.SELLER_LEVEL_TOO_LOW,
            buyer_rank=buyer.rank,
            seller_rank=seller.rank,
        )

    return LevelComparison(
        result=LevelComparisonResult.ESCALATED,
        buyer_rank=buyer.rank,
        seller_rank=seller.rank,
        effective_seller_id=escalation.member.id,
        effective_seller_rank=escalation.rank,
        search_path=list(escalation.search_path),
    )


def check_rank_order(comparison: LevelComparison) -> Rejection | None:
    """Seller (or its escalated upline) must outrank the buyer."""
    if comparison.is_valid:
        return None
    return Rejection(
        f"buyer rank ({comparison.buyer_rank}) is greater than or equal to "
        f"seller rank ({comparison.seller_rank}), violating sourcing rule",
        RejectionCategory.RULE_VIOLATION,
    )


def check_offer_exists(offer: Offer | None) -> Rejection | None:
    """Offer must exist."""
    if offer is None:
        return Rejection("product does not exist", RejectionCategory.NOT_FOUND)
    return None


def check_offer_listed(offer: Offer) -> Rejection | None:
    """Offer must be ACTIVE."""
    if offer.status != OfferStatus.ACTIVE:
        return Rejection("product is delisted", RejectionCategory.INVALID_STATE)
    return None


def check_quantity_positive(quantity: int) -> Rejection | None:
    """Requested quantity must be at least one."""
    if quantity < 1:
        return Rejection(
            f"invalid quantity: {quantity}", RejectionCategory.RULE_VIOLATION
        )
    return None


def check_stock(offer: Offer, quantity: int) -> Rejection | None:
    """Aggregate variant stock must cover the requested quantity."""
    available = offer.variant_stock
    if available < quantity:
        return Rejection(
            f"insufficient stock: have {available}, need {quantity}",
            RejectionCategory.RULE_VIOLATION,
        )
    return None


def check_active_variant(offer: Offer) -> Rejection | None:
    """At least one variant must be sellable."""
    if not offer.active_variants:
        return Rejection("no available variant", RejectionCategory.INVALID_STATE)
    return None


def merge_restrictions(
    record: PurchaseRestriction | None,
    buyer_rank: MemberRank,
    rank_benefits: dict[MemberRank, RankBenefit] | None = None,
) -> PurchaseRestrictionConfig:
    """
    Build the effective restriction for a buyer and an offer.

    The smaller of the offer's limit and the buyer rank's per-purchase
    limit applies; the minimum rank comes from the offer only.

    Args:
        record: Offer restriction record, if any
        buyer_rank: Buyer's rank
        rank_benefits: Rank table (defaults to RANK_BENEFITS)

    Returns:
        PurchaseRestrictionConfig
    """
    benefit = get_rank_benefit(buyer_rank, rank_benefits)

    limits = [
        limit
        for limit in (
            record.max_quantity if record is not None else None,
            benefit.max_purchase_quantity,
        )
        if limit is not None
    ]

    min_rank = None
    if record is not None and record.min_rank:
        min_rank = MemberRank(record.min_rank)

    return PurchaseRestrictionConfig(
        max_quantity=min(limits) if limits else None,
        min_rank=min_rank,
    )


def check_restrictions(
    config: PurchaseRestrictionConfig,
    quantity: int,
    buyer_rank: MemberRank,
) -> Rejection | None:
    """Quantity and buyer rank must satisfy the effective restriction."""
    if config.max_quantity is not None and quantity > config.max_quantity:
        return Rejection(
            f"exceeds per-purchase limit: max {config.max_quantity}, "
            f"requested {quantity}",
            RejectionCategory.RULE_VIOLATION,
        )
    if config.min_rank is not None and buyer_rank.ordinal < config.min_rank.ordinal:
        return Rejection(
            f"buyer rank too low: requires {config.min_rank}, has {buyer_rank}",
            RejectionCategory.RULE_VIOLATION,
        )
    return None
