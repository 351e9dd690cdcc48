"""
Commission calculation parameter and result types.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum

from supplynet.config.ranks import MemberRank


@dataclass(frozen=True)
class CommissionCalculationParams:
    """
    Settlement input for one order.

    order_id is None for previews that run before the order exists.
    max_depth None means the calculator's configured default.
    """

    seller_id: int
    seller_rank: MemberRank
    total_amount: Decimal
    order_id: int | None = None
    max_depth: int | None = None


@dataclass(frozen=True)
class CommissionBreakdownItem:
    """Commission owed to one member of the path."""

    user_id: int
    level: int  # Depth, seller = 1
    amount: Decimal
    rate: Decimal
    user_rank: MemberRank


@dataclass(frozen=True)
class CommissionPreview:
    """Commission an order would produce, without persisting anything."""

    total_commission: Decimal = Decimal("0")
    commission_breakdown: list[CommissionBreakdownItem] = field(
        default_factory=list
    )


@dataclass(frozen=True)
class TeamPerformance:
    """Downline activity of a leader within a time window."""

    total_orders: int = 0
    total_amount: Decimal = Decimal("0")
    total_commission: Decimal = Decimal("0")  # PAID only
    pending_commission: Decimal = Decimal("0")
    team_size: int = 0
    active_members: int = 0


@dataclass(frozen=True)
class CommissionStats:
    """Commission earned by one member within a period."""

    total_commission: Decimal = Decimal("0")
    pending_commission: Decimal = Decimal("0")
    paid_commission: Decimal = Decimal("0")
    order_count: int = 0
    average_commission: Decimal = Decimal("0")


class StatsPeriod(StrEnum):
    """Reporting periods for commission stats."""

    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
