"""
Member rank configuration.

Single source of truth for the rank ladder and per-rank benefits.
"""

from decimal import Decimal
from enum import StrEnum
from typing import NamedTuple


class MemberRank(StrEnum):
    """Member ranks, lowest first. Declaration order is the rank order."""

    NORMAL = "NORMAL"
    VIP = "VIP"
    TIER_1 = "TIER_1"
    TIER_2 = "TIER_2"
    TIER_3 = "TIER_3"
    TIER_4 = "TIER_4"
    TIER_5 = "TIER_5"
    DIRECTOR = "DIRECTOR"

    @property
    def ordinal(self) -> int:
        """Position of the rank on the ladder (NORMAL = 0)."""
        return RANK_ORDER.index(self)


RANK_ORDER: list[MemberRank] = list(MemberRank)


class RankBenefit(NamedTuple):
    """Benefits granted to a rank."""

    rank: MemberRank
    commission_rate: Decimal  # Base rate for depth 1
    purchase_discount: Decimal
    team_depth: int  # Levels of downline the rank is paid on
    max_purchase_quantity: int | None  # Per purchase, None = unlimited


RANK_BENEFITS: dict[MemberRank, RankBenefit] = {
    MemberRank.NORMAL: RankBenefit(
        rank=MemberRank.NORMAL,
        commission_rate=Decimal("0"),
        purchase_discount=Decimal("0"),
        team_depth=0,
        max_purchase_quantity=5,
    ),
    MemberRank.VIP: RankBenefit(
        rank=MemberRank.VIP,
        commission_rate=Decimal("0.05"),
        purchase_discount=Decimal("0.05"),
        team_depth=1,
        max_purchase_quantity=10,
    ),
    MemberRank.TIER_1: RankBenefit(
        rank=MemberRank.TIER_1,
        commission_rate=Decimal("0.08"),
        purchase_discount=Decimal("0.08"),
        team_depth=2,
        max_purchase_quantity=20,
    ),
    MemberRank.TIER_2: RankBenefit(
        rank=MemberRank.TIER_2,
        commission_rate=Decimal("0.10"),
        purchase_discount=Decimal("0.10"),
        team_depth=3,
        max_purchase_quantity=20,
    ),
    MemberRank.TIER_3: RankBenefit(
        rank=MemberRank.TIER_3,
        commission_rate=Decimal("0.12"),
        purchase_discount=Decimal("0.12"),
        team_depth=4,
        max_purchase_quantity=20,
    ),
    MemberRank.TIER_4: RankBenefit(
        rank=MemberRank.TIER_4,
        commission_rate=Decimal("0.14"),
        purchase_discount=Decimal("0.14"),
        team_depth=5,
        max_purchase_quantity=20,
    ),
    MemberRank.TIER_5: RankBenefit(
        rank=MemberRank.TIER_5,
        commission_rate=Decimal("0.16"),
        purchase_discount=Decimal("0.16"),
        team_depth=6,
        max_purchase_quantity=20,
    ),
    MemberRank.DIRECTOR: RankBenefit(
        rank=MemberRank.DIRECTOR,
        commission_rate=Decimal("0.20"),
        purchase_discount=Decimal("0.20"),
        team_depth=7,
        max_purchase_quantity=20,
    ),
}


def get_rank_benefit(
    rank: MemberRank | str,
    benefits: dict[MemberRank, RankBenefit] | None = None,
) -> RankBenefit:
    """
    Look up benefits for a rank.

    Args:
        rank: Rank enum or its string value
        benefits: Optional replacement table (defaults to RANK_BENEFITS)

    Returns:
        RankBenefit for the rank

    Raises:
        ValueError: If rank is unknown or missing from the table
    """
    table = benefits if benefits is not None else RANK_BENEFITS
    rank = MemberRank(rank)
    try:
        return table[rank]
    except KeyError as exc:
        raise ValueError(f"No benefits configured for rank {rank}") from exc


def rank_ordinal(rank: MemberRank | str) -> int:
    """Ordinal of a rank given as enum or string."""
    return MemberRank(rank).ordinal
