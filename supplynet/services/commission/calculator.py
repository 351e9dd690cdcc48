"""
Commission calculator.

Walks the referral chain upward from the seller and produces degressive
commission records: the seller earns the base rate of its rank, and each
further hop earns 80% of the previous hop's rate.
"""

from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from supplynet.config.constants import (
    COMMISSION_CALCULATION_METHOD,
    COMMISSION_DECAY_FACTOR,
    COMMISSION_MAX_DEPTH,
    COMMISSION_MIN_AMOUNT,
)
from supplynet.config.ranks import MemberRank, RankBenefit, get_rank_benefit
from supplynet.models.commission_record import CommissionRecord
from supplynet.models.enums import (
    CommissionSourceType,
    CommissionStatus,
    MemberStatus,
)
from supplynet.repositories.commission_repository import CommissionRepository
from supplynet.repositories.member_repository import MemberRepository
from supplynet.repositories.order_repository import OrderRepository
from supplynet.services.commission.types import (
    CommissionBreakdownItem,
    CommissionCalculationParams,
    CommissionPreview,
    CommissionStats,
    StatsPeriod,
    TeamPerformance,
)
from supplynet.services.team.snapshot import MemberSnapshot
from supplynet.utils.exceptions import is_infrastructure_error
from supplynet.utils.money import round_money, to_decimal


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CommissionCalculator:
    """
    Degressive multi-level commission calculator.

    The commission path stops at the first inactive member, unlike the
    supply chain upline chain which skips inactive members.
    """

    def __init__(
        self,
        session: AsyncSession,
        rank_benefits: dict[MemberRank, RankBenefit] | None = None,
        decay_factor: Decimal = COMMISSION_DECAY_FACTOR,
        min_amount: Decimal = COMMISSION_MIN_AMOUNT,
        default_max_depth: int = COMMISSION_MAX_DEPTH,
        now: Callable[[], datetime] = _utcnow,
    ) -> None:
        """
        Initialize commission calculator.

        Args:
            session: Default database session
            rank_benefits: Rank table override
            decay_factor: Rate multiplier per hop
            min_amount: Amounts at or below this are not paid
            default_max_depth: Path length when params carry none
            now: Clock used for reporting periods
        """
        self.session = session
        self.member_repo = MemberRepository(session)
        self.commission_repo = CommissionRepository(session)
        self.order_repo = OrderRepository(session)
        self.rank_benefits = rank_benefits
        self.decay_factor = decay_factor
        self.min_amount = min_amount
        self.default_max_depth = default_max_depth
        self.now = now

    async def calculate_and_distribute_commission(
        self,
        params: CommissionCalculationParams,
        session: AsyncSession | None = None,
    ) -> list[CommissionRecord]:
        """
        Compute and persist commission records for an order.

        With a caller session, records are written inside a savepoint of
        the caller's transaction and the caller commits. Without one, all
        records are committed together on the default session.

        Args:
            params: Order, seller and amount
            session: Caller's transaction scope, optional

        Returns:
            Created records; empty on any failure (nothing left behind)
        """
        max_depth = self._resolve_depth(params.max_depth)

        try:
            if params.order_id is None:
                raise ValueError("order_id is required to distribute commission")

            base_rate = self._base_rate(params.seller_rank)
            path = await self.get_commission_path(params.seller_id, max_depth)
            breakdown = self._build_breakdown(
                path, base_rate, to_decimal(params.total_amount), max_depth
            )

            if session is not None:
                async with session.begin_nested():
                    records = await self._persist(
                        CommissionRepository(session),
                        params,
                        breakdown,
                        base_rate,
                        max_depth,
                    )
            else:
                records = await self._persist(
                    self.commission_repo, params, breakdown, base_rate, max_depth
                )
                await self.session.commit()

        except Exception as e:
            if session is None:
                await self.session.rollback()
            logger.exception(
                "Commission distribution failed",
                extra={
                    "order_id": params.order_id,
                    "seller_id": params.seller_id,
                    "seller_rank": str(params.seller_rank),
                    "total_amount": str(params.total_amount),
                    "error": str(e),
                    "infrastructure": is_infrastructure_error(e),
                },
            )
            return []

        total = sum((record.amount for record in records), Decimal("0"))
        logger.info(
            "Commission distribution completed",
            extra={
                "order_id": params.order_id,
                "seller_id": params.seller_id,
                "seller_rank": str(params.seller_rank),
                "record_count": len(records),
                "total_commission": str(total),
            },
        )
        return records

    async def get_commission_path(
        self, member_id: int, max_depth: int | None = None
    ) -> list[MemberSnapshot]:
        """
        Collect the commission path, seller first.

        Follows referrer before parent and stops at (excluding) the first
        inactive or missing member.

        Args:
            member_id: Seller member ID
            max_depth: Max members on the path

        Returns:
            Active members from the seller upward; empty if the seller
            cannot be loaded or is inactive
        """
        max_depth = self._resolve_depth(max_depth)
        path: list[MemberSnapshot] = []
        visited: set[int] = set()
        current_id: int | None = member_id

        try:
            while current_id is not None and len(path) < max_depth:
                if current_id in visited:
                    logger.warning(
                        "Referral cycle on commission path",
                        extra={"member_id": member_id, "cycle_at": current_id},
                    )
                    break
                visited.add(current_id)

                member = await self.member_repo.find_by_id(current_id)
                if member is None or member.status != MemberStatus.ACTIVE:
                    break

                path.append(MemberSnapshot.from_model(member))
                current_id = member.referrer_id or member.parent_id

        except Exception as e:
            logger.error(
                "Failed to resolve commission path",
                extra={
                    "member_id": member_id,
                    "max_depth": max_depth,
                    "error": str(e),
                },
            )
            return []

        return path

    async def preview_commission(
        self, params: CommissionCalculationParams
    ) -> CommissionPreview:
        """
        Compute the commission an order would produce, without persisting.

        Args:
            params: Seller and amount; order_id is ignored

        Returns:
            CommissionPreview; zeroed on failure
        """
        max_depth = self._resolve_depth(params.max_depth)

        try:
            base_rate = self._base_rate(params.seller_rank)
            path = await self.get_commission_path(params.seller_id, max_depth)
            breakdown = self._build_breakdown(
                path, base_rate, to_decimal(params.total_amount), max_depth
            )
        except Exception as e:
            logger.error(
                "Commission preview failed",
                extra={
                    "seller_id": params.seller_id,
                    "seller_rank": str(params.seller_rank),
                    "total_amount": str(params.total_amount),
                    "error": str(e),
                },
            )
            return CommissionPreview()

        return CommissionPreview(
            total_commission=sum(
                (item.amount for item in breakdown), Decimal("0")
            ),
            commission_breakdown=breakdown,
        )

    async def calculate_team_performance(
        self, leader_id: int, start: datetime, end: datetime
    ) -> TeamPerformance:
        """
        Aggregate a leader's downline activity within a time window.

        Args:
            leader_id: Leader member ID
            start: Window start (inclusive)
            end: Window end (inclusive)

        Returns:
            TeamPerformance; zeroed on failure
        """
        try:
            team = await self.member_repo.find_subtree(leader_id)
            member_ids = [member.id for member in team]
            active_members = sum(
                1 for member in team if member.status == MemberStatus.ACTIVE
            )

            if not member_ids:
                return TeamPerformance()

            orders = await self.order_repo.aggregate_completed(
                member_ids, start, end
            )
            paid = await self.commission_repo.aggregate(
                beneficiary_ids=member_ids,
                status=CommissionStatus.PAID.value,
                since=start,
                until=end,
            )
            pending = await self.commission_repo.aggregate(
                beneficiary_ids=member_ids,
                status=CommissionStatus.PENDING.value,
                since=start,
                until=end,
            )
        except Exception as e:
            logger.error(
                "Team performance calculation failed",
                extra={
                    "leader_id": leader_id,
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "error": str(e),
                },
            )
            return TeamPerformance()

        return TeamPerformance(
            total_orders=orders["total_orders"],
            total_amount=orders["total_amount"],
            total_commission=paid["total_amount"],
            pending_commission=pending["total_amount"],
            team_size=len(member_ids),
            active_members=active_members,
        )

    async def get_user_commission_stats(
        self, user_id: int, period: StatsPeriod | str = StatsPeriod.MONTH
    ) -> CommissionStats:
        """
        Summarize a member's own commission records for a period.

        Args:
            user_id: Beneficiary member ID
            period: day, week, month or year

        Returns:
            CommissionStats; zeroed on failure
        """
        try:
            now = self.now()
            start = self.period_start(StatsPeriod(period), now)

            overall = await self.commission_repo.aggregate(
                beneficiary_id=user_id, since=start, until=now
            )
            pending = await self.commission_repo.aggregate(
                beneficiary_id=user_id,
                status=CommissionStatus.PENDING.value,
                since=start,
                until=now,
            )
            paid = await self.commission_repo.aggregate(
                beneficiary_id=user_id,
                status=CommissionStatus.PAID.value,
                since=start,
                until=now,
            )
        except Exception as e:
            logger.error(
                "Commission stats query failed",
                extra={"user_id": user_id, "period": str(period), "error": str(e)},
            )
            return CommissionStats()

        order_count = overall["order_count"]
        total = overall["total_amount"]
        average = round_money(total / order_count) if order_count else Decimal("0")

        return CommissionStats(
            total_commission=total,
            pending_commission=pending["total_amount"],
            paid_commission=paid["total_amount"],
            order_count=order_count,
            average_commission=average,
        )

    @staticmethod
    def period_start(period: StatsPeriod, now: datetime) -> datetime:
        """
        Start of a reporting period ending at now.

        Day, month and year are calendar-aligned; week is a rolling 7 days.
        """
        if period == StatsPeriod.DAY:
            return now.replace(hour=0, minute=0, second=0, microsecond=0)
        if period == StatsPeriod.WEEK:
            return now - timedelta(days=7)
        if period == StatsPeriod.MONTH:
            return now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
        return now.replace(
            month=1, day=1, hour=0, minute=0, second=0, microsecond=0
        )

    def _resolve_depth(self, max_depth: int | None) -> int:
        # 0 is a real limit (no levels paid), only None falls back
        return self.default_max_depth if max_depth is None else max_depth

    def _base_rate(self, seller_rank: MemberRank) -> Decimal:
        return get_rank_benefit(seller_rank, self.rank_benefits).commission_rate

    def _build_breakdown(
        self,
        path: list[MemberSnapshot],
        base_rate: Decimal,
        total_amount: Decimal,
        max_depth: int,
    ) -> list[CommissionBreakdownItem]:
        breakdown = []
        for depth, member in enumerate(path[:max_depth], start=1):
            rate = base_rate * self.decay_factor ** (depth - 1)
            amount = total_amount * rate

            # Amounts only shrink with depth, so nothing further qualifies
            if amount <= self.min_amount:
                break

            breakdown.append(
                CommissionBreakdownItem(
                    user_id=member.id,
                    level=depth,
                    amount=round_money(amount),
                    rate=rate,
                    user_rank=member.rank,
                )
            )
        return breakdown

    async def _persist(
        self,
        ledger: CommissionRepository,
        params: CommissionCalculationParams,
        breakdown: list[CommissionBreakdownItem],
        base_rate: Decimal,
        max_depth: int,
    ) -> list[CommissionRecord]:
        records = []
        for item in breakdown:
            record = await ledger.create(
                beneficiary_id=item.user_id,
                order_id=params.order_id,
                source_member_id=params.seller_id,
                amount=item.amount,
                rate=item.rate,
                depth=item.level,
                source_type=CommissionSourceType.PURCHASE.value,
                status=CommissionStatus.PENDING.value,
                meta={
                    "path_depth": item.level,
                    "max_depth": max_depth,
                    "base_rate": str(base_rate),
                    "calculation_method": COMMISSION_CALCULATION_METHOD,
                },
            )
            records.append(record)

            logger.info(
                "Commission record created",
                extra={
                    "commission_id": record.id,
                    "beneficiary_id": item.user_id,
                    "order_id": params.order_id,
                    "amount": str(item.amount),
                    "rate": str(item.rate),
                    "depth": item.level,
                },
            )
        return records
