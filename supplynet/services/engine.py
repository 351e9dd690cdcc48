"""
Purchase engine.

Composition root: wires one database session and a shared cache manager
into the validator, the path finder, the relationship resolver, the
ancestry service and the commission calculator.
"""

from decimal import Decimal

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from supplynet.config.constants import (
    COMMISSION_DECAY_FACTOR,
    COMMISSION_MAX_DEPTH,
    COMMISSION_MIN_AMOUNT,
    MEMBER_CACHE_NAME,
    UPLINE_CHAIN_CACHE_NAME,
    UPLINE_SEARCH_MAX_DEPTH,
)
from supplynet.config.ranks import MemberRank, RankBenefit
from supplynet.models.commission_record import CommissionRecord
from supplynet.repositories.member_repository import MemberRepository
from supplynet.repositories.offer_repository import OfferRepository
from supplynet.services.cache.manager import CacheManager
from supplynet.services.commission.calculator import CommissionCalculator
from supplynet.services.commission.types import CommissionCalculationParams
from supplynet.services.purchase.purchase_validator import PurchaseValidator
from supplynet.services.purchase.results import ValidationResult, ValidatorStats
from supplynet.services.supply_chain.path_finder import SupplyChainPathFinder
from supplynet.services.team.ancestry_service import AncestryService
from supplynet.services.team.member_reader import MemberReader
from supplynet.services.team.relationship_resolver import (
    TeamRelationshipResolver,
)


class PurchaseEngine:
    """
    Per-request facade over the purchase authorization and commission core.

    The cache manager and validator stats are long-lived and shared; the
    engine itself is cheap to build per session.

    Usage:
        async with CacheManager.from_settings() as caches:
            stats = ValidatorStats()
            async with session_maker() as session:
                engine = PurchaseEngine.from_settings(session, caches, stats)
                result = await engine.validate_purchase_permission(1, 2, 3, 1)
    """

    def __init__(
        self,
        session: AsyncSession,
        cache_manager: CacheManager,
        rank_benefits: dict[MemberRank, RankBenefit] | None = None,
        upline_search_max_depth: int = UPLINE_SEARCH_MAX_DEPTH,
        commission_max_depth: int = COMMISSION_MAX_DEPTH,
        commission_decay_factor: Decimal = COMMISSION_DECAY_FACTOR,
        commission_min_amount: Decimal = COMMISSION_MIN_AMOUNT,
        validator_stats: ValidatorStats | None = None,
    ) -> None:
        """
        Initialize engine.

        Args:
            session: Async database session for this unit of work
            cache_manager: Shared cache manager
            rank_benefits: Rank table override
            upline_search_max_depth: Peer escalation search depth
            commission_max_depth: Default commission path length
            commission_decay_factor: Rate multiplier per hop
            commission_min_amount: Amounts at or below this are not paid
            validator_stats: Shared validator counters
        """
        self.session = session
        self.cache_manager = cache_manager

        self.member_reader = MemberReader(
            MemberRepository(session),
            cache_manager.get_cache(MEMBER_CACHE_NAME),
        )
        self.path_finder = SupplyChainPathFinder(
            self.member_reader,
            cache_manager.get_cache(UPLINE_CHAIN_CACHE_NAME),
        )
        self.relationship_resolver = TeamRelationshipResolver(self.member_reader)
        self.validator = PurchaseValidator(
            member_reader=self.member_reader,
            relationship_resolver=self.relationship_resolver,
            path_finder=self.path_finder,
            offer_repo=OfferRepository(session),
            rank_benefits=rank_benefits,
            max_depth=upline_search_max_depth,
            stats=validator_stats,
        )
        self.commission_calculator = CommissionCalculator(
            session,
            rank_benefits=rank_benefits,
            decay_factor=commission_decay_factor,
            min_amount=commission_min_amount,
            default_max_depth=commission_max_depth,
        )
        self.ancestry = AncestryService(
            session,
            member_reader=self.member_reader,
            path_finder=self.path_finder,
        )

    @classmethod
    def from_settings(
        cls,
        session: AsyncSession,
        cache_manager: CacheManager,
        validator_stats: ValidatorStats | None = None,
    ) -> "PurchaseEngine":
        """Build an engine with depths and thresholds taken from settings."""
        from supplynet.config.settings import settings

        return cls(
            session,
            cache_manager,
            upline_search_max_depth=settings.upline_search_max_depth,
            commission_max_depth=settings.commission_max_depth,
            commission_decay_factor=settings.commission_decay_factor,
            commission_min_amount=settings.commission_min_amount,
            validator_stats=validator_stats,
        )

    async def validate_purchase_permission(
        self, buyer_id: int, seller_id: int, offer_id: int, quantity: int
    ) -> ValidationResult:
        """Run the purchase permission pipeline."""
        return await self.validator.validate_purchase_permission(
            buyer_id, seller_id, offer_id, quantity
        )

    async def settle_order(
        self,
        params: CommissionCalculationParams,
        session: AsyncSession | None = None,
    ) -> list[CommissionRecord]:
        """
        Distribute commission for an approved, settled order.

        Args:
            params: Order, seller and amount
            session: Order settlement transaction, if the caller owns one

        Returns:
            Created commission records, empty on failure
        """
        return await self.commission_calculator.calculate_and_distribute_commission(
            params, session=session
        )

    def invalidate_member(self, member_id: int) -> None:
        """
        Forget cached data about a member after a rank or status change.

        Upline chains passing through the member are dropped as well.
        """
        self.member_reader.invalidate([member_id])
        dropped = self.path_finder.invalidate_member(member_id)
        logger.debug(
            "Member caches invalidated",
            extra={"member_id": member_id, "chains_dropped": dropped},
        )

    def get_performance_stats(self) -> dict:
        """Validator counters and cache health for monitoring."""
        stats = self.validator.get_performance_stats()
        stats["caches_healthy"] = self.cache_manager.is_healthy()
        return stats
