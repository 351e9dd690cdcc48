"""
Purchase validator.

Decides whether a buyer may purchase an offer from a seller. Stages run
strictly in order and stop at the first rejection, so later stages never
look at data an earlier stage already refused.
"""

import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from loguru import logger

from supplynet.config.constants import UPLINE_SEARCH_MAX_DEPTH
from supplynet.config.ranks import MemberRank, RankBenefit
from supplynet.models.offer import Offer
from supplynet.repositories.offer_repository import OfferRepository
from supplynet.services.purchase import rules
from supplynet.services.purchase.results import (
    SYSTEM_ERROR_REASON,
    LevelComparison,
    PurchaseRestrictionConfig,
    Rejection,
    ValidationMetadata,
    ValidationResult,
    ValidatorStats,
)
from supplynet.services.supply_chain.path_finder import SupplyChainPathFinder
from supplynet.services.team.member_reader import MemberReader
from supplynet.services.team.relationship_resolver import (
    TeamRelationship,
    TeamRelationshipResolver,
)
from supplynet.services.team.snapshot import MemberSnapshot
from supplynet.utils.exceptions import (
    classify_exception,
    is_infrastructure_error,
)


@dataclass
class ValidationContext:
    """Data loaded so far by one validation run."""

    buyer_id: int
    seller_id: int
    offer_id: int
    quantity: int
    buyer: MemberSnapshot | None = None
    seller: MemberSnapshot | None = None
    relationship: TeamRelationship | None = None
    comparison: LevelComparison | None = None
    offer: Offer | None = None
    restrictions: PurchaseRestrictionConfig | None = None
    metadata: ValidationMetadata = field(default_factory=ValidationMetadata)


Stage = Callable[[ValidationContext], Awaitable[Rejection | None]]


class PurchaseValidator:
    """
    Ordered, short-circuiting purchase permission pipeline.

    Never raises: unexpected failures become a single generic rejection.
    """

    def __init__(
        self,
        member_reader: MemberReader,
        relationship_resolver: TeamRelationshipResolver,
        path_finder: SupplyChainPathFinder,
        offer_repo: OfferRepository,
        rank_benefits: dict[MemberRank, RankBenefit] | None = None,
        max_depth: int = UPLINE_SEARCH_MAX_DEPTH,
        stats: ValidatorStats | None = None,
    ) -> None:
        """
        Initialize validator.

        Args:
            member_reader: Cached member lookup
            relationship_resolver: Seller/buyer relationship checks
            path_finder: Upline search for peer escalation
            offer_repo: Offer store
            rank_benefits: Rank table override
            max_depth: Max hops searched during peer escalation
            stats: Shared counters; a private instance is used if omitted
        """
        self.member_reader = member_reader
        self.relationship_resolver = relationship_resolver
        self.path_finder = path_finder
        self.offer_repo = offer_repo
        self.rank_benefits = rank_benefits
        self.max_depth = max_depth
        self.stats = stats if stats is not None else ValidatorStats()

        self.stages: list[Stage] = [
            self._check_members,
            self._check_accounts,
            self._check_team_relationship,
            self._check_rank_order,
            self._check_offer_exists,
            self._check_offer_listed,
            self._check_quantity,
            self._check_stock,
            self._check_active_variant,
            self._check_restrictions,
        ]

    async def validate_purchase_permission(
        self,
        buyer_id: int,
        seller_id: int,
        offer_id: int,
        quantity: int,
    ) -> ValidationResult:
        """
        Check whether buyer may purchase quantity units of offer from seller.

        Args:
            buyer_id: Buyer member ID
            seller_id: Seller member ID
            offer_id: Offer ID
            quantity: Requested units

        Returns:
            ValidationResult with at most one reason
        """
        started = time.perf_counter()
        context = ValidationContext(
            buyer_id=buyer_id,
            seller_id=seller_id,
            offer_id=offer_id,
            quantity=quantity,
        )

        try:
            result = await self._run_stages(context)
        except Exception as e:
            logger.exception(
                "Purchase validation failed with system error",
                extra={
                    "buyer_id": buyer_id,
                    "seller_id": seller_id,
                    "offer_id": offer_id,
                    "quantity": quantity,
                    "error": str(e),
                    "infrastructure": is_infrastructure_error(e),
                },
            )
            result = ValidationResult.rejected(
                Rejection(SYSTEM_ERROR_REASON, classify_exception(e)),
                metadata=context.metadata,
            )

        elapsed_ms = (time.perf_counter() - started) * 1000
        self.stats.record_validation(elapsed_ms)
        result.metadata.performance = self.stats.snapshot()
        return result

    async def _run_stages(self, context: ValidationContext) -> ValidationResult:
        for stage in self.stages:
            rejection = await stage(context)
            if rejection is not None:
                logger.info(
                    "Purchase rejected",
                    extra={
                        "buyer_id": context.buyer_id,
                        "seller_id": context.seller_id,
                        "offer_id": context.offer_id,
                        "quantity": context.quantity,
                        "stage": stage.__name__,
                        "reason": rejection.reason,
                        "category": rejection.category.value,
                    },
                )
                return ValidationResult.rejected(
                    rejection,
                    metadata=context.metadata,
                    restrictions=context.restrictions,
                )

        logger.debug(
            "Purchase approved",
            extra={
                "buyer_id": context.buyer_id,
                "seller_id": context.seller_id,
                "offer_id": context.offer_id,
                "quantity": context.quantity,
            },
        )
        return ValidationResult.approved(
            context.metadata, restrictions=context.restrictions
        )

    async def _lookup_member(self, member_id: int) -> MemberSnapshot | None:
        member, hit = await self.member_reader.lookup(member_id)
        self.stats.record_cache_lookup(hit)
        return member

    # Stages, in pipeline order

    async def _check_members(self, context: ValidationContext) -> Rejection | None:
        context.buyer = await self._lookup_member(context.buyer_id)
        if context.buyer is None:
            return rules.check_members_exist(None, None)

        context.seller = await self._lookup_member(context.seller_id)
        rejection = rules.check_members_exist(context.buyer, context.seller)
        if rejection is None:
            context.metadata.buyer_rank = context.buyer.rank
            context.metadata.seller_rank = context.seller.rank
        return rejection

    async def _check_accounts(self, context: ValidationContext) -> Rejection | None:
        return rules.check_accounts_active(context.buyer, context.seller)

    async def _check_team_relationship(
        self, context: ValidationContext
    ) -> Rejection | None:
        context.relationship = (
            await self.relationship_resolver.validate_team_relationship(
                context.seller_id, context.buyer_id
            )
        )
        context.metadata.team_relationship = context.relationship
        return rules.check_team_relationship(context.relationship)

    async def _check_rank_order(
        self, context: ValidationContext
    ) -> Rejection | None:
        escalation = None
        if rules.needs_escalation(context.buyer, context.seller):
            escalation = await self.path_finder.find_higher_level_upline(
                context.seller_id,
                context.buyer.rank_ordinal,
                self.max_depth,
            )

        context.comparison = rules.compare_ranks(
            context.buyer, context.seller, escalation
        )
        context.metadata.level_comparison = context.comparison
        context.metadata.effective_seller_id = context.comparison.effective_seller_id
        context.metadata.effective_seller_rank = (
            context.comparison.effective_seller_rank
        )

        if escalation is not None:
            logger.info(
                "Seller escalated to higher-ranked upline",
                extra={
                    "buyer_id": context.buyer_id,
                    "seller_id": context.seller_id,
                    "effective_seller_id": escalation.member.id,
                    "distance": escalation.distance,
                },
            )

        return rules.check_rank_order(context.comparison)

    async def _check_offer_exists(
        self, context: ValidationContext
    ) -> Rejection | None:
        context.offer = await self.offer_repo.find_by_id(context.offer_id)
        return rules.check_offer_exists(context.offer)

    async def _check_offer_listed(
        self, context: ValidationContext
    ) -> Rejection | None:
        return rules.check_offer_listed(context.offer)

    async def _check_quantity(self, context: ValidationContext) -> Rejection | None:
        return rules.check_quantity_positive(context.quantity)

    async def _check_stock(self, context: ValidationContext) -> Rejection | None:
        return rules.check_stock(context.offer, context.quantity)

    async def _check_active_variant(
        self, context: ValidationContext
    ) -> Rejection | None:
        return rules.check_active_variant(context.offer)

    async def _check_restrictions(
        self, context: ValidationContext
    ) -> Rejection | None:
        record = await self.offer_repo.find_purchase_restriction(context.offer_id)
        context.restrictions = rules.merge_restrictions(
            record, context.buyer.rank, self.rank_benefits
        )
        return rules.check_restrictions(
            context.restrictions, context.quantity, context.buyer.rank
        )

    def get_performance_stats(self) -> dict:
        """
        Validator counters plus cache sizes.

        Returns:
            Dict with total_validations, cache_hits, cache_misses,
            cache_hit_rate, average_validation_ms and cache sizes
        """
        snapshot = self.stats.snapshot()
        return {
            "total_validations": snapshot.total_validations,
            "cache_hits": snapshot.cache_hits,
            "cache_misses": snapshot.cache_misses,
            "cache_hit_rate": snapshot.cache_hit_rate,
            "average_validation_ms": snapshot.average_validation_ms,
            **self.path_finder.get_cache_stats(),
        }
