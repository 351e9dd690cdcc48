"""
Purchase validation result types.
"""

import threading
from dataclasses import dataclass, field
from enum import StrEnum

from supplynet.config.ranks import MemberRank
from supplynet.services.team.relationship_resolver import TeamRelationship
from supplynet.utils.exceptions import REJECTION_CATEGORIES, RejectionCategory


SYSTEM_ERROR_REASON = "system error during validation"


@dataclass(frozen=True)
class Rejection:
    """Single reason a purchase was refused."""

    reason: str
    category: RejectionCategory


class LevelComparisonResult(StrEnum):
    """Outcome of comparing buyer and seller ranks."""

    VALID = "valid"
    ESCALATED = "escalated"
    SELLER_LEVEL_TOO_LOW = "seller_level_too_low"


@dataclass(frozen=True)
class LevelComparison:
    """
    Rank comparison between buyer and seller.

    When the seller does not outrank the buyer, effective_seller_* name
    the upline found by peer escalation.
    """

    result: LevelComparisonResult
    buyer_rank: MemberRank
    seller_rank: MemberRank
    effective_seller_id: int | None = None
    effective_seller_rank: MemberRank | None = None
    search_path: list[int] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        """Whether the purchase may continue."""
        return self.result != LevelComparisonResult.SELLER_LEVEL_TOO_LOW


@dataclass(frozen=True)
class PurchaseRestrictionConfig:
    """
    Effective purchase limits for one buyer and one offer.

    None means unrestricted.
    """

    max_quantity: int | None = None
    min_rank: MemberRank | None = None


@dataclass(frozen=True)
class PerformanceSnapshot:
    """Validator counters at a point in time."""

    total_validations: int = 0
    cache_hits: int = 0
    cache_misses: int = 0
    average_validation_ms: float = 0.0

    @property
    def cache_hit_rate(self) -> float:
        """Share of member lookups served from cache."""
        lookups = self.cache_hits + self.cache_misses
        return self.cache_hits / lookups if lookups else 0.0


class ValidatorStats:
    """
    Rolling validator counters.

    One instance can be shared by validators built per request so the
    counters survive across requests.
    """

    def __init__(self) -> None:
        """Initialize counters."""
        self._lock = threading.Lock()
        self._total = 0
        self._hits = 0
        self._misses = 0
        self._average_ms = 0.0

    def record_cache_lookup(self, hit: bool) -> None:
        """Count one member lookup."""
        with self._lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1

    def record_validation(self, elapsed_ms: float) -> None:
        """Count one finished validation and fold its latency in."""
        with self._lock:
            self._total += 1
            self._average_ms += (elapsed_ms - self._average_ms) / self._total

    def snapshot(self) -> PerformanceSnapshot:
        """Consistent copy of the counters."""
        with self._lock:
            return PerformanceSnapshot(
                total_validations=self._total,
                cache_hits=self._hits,
                cache_misses=self._misses,
                average_validation_ms=self._average_ms,
            )

    def reset(self) -> None:
        """Zero every counter."""
        with self._lock:
            self._total = 0
            self._hits = 0
            self._misses = 0
            self._average_ms = 0.0


@dataclass
class ValidationMetadata:
    """Context gathered while validating."""

    buyer_rank: MemberRank | None = None
    seller_rank: MemberRank | None = None
    team_relationship: TeamRelationship | None = None
    level_comparison: LevelComparison | None = None
    effective_seller_id: int | None = None
    effective_seller_rank: MemberRank | None = None
    performance: PerformanceSnapshot = field(default_factory=PerformanceSnapshot)


@dataclass
class ValidationResult:
    """
    Outcome of a purchase permission check.

    is_valid and can_purchase always agree; reasons is empty iff valid.
    """

    is_valid: bool
    can_purchase: bool
    reasons: list[str] = field(default_factory=list)
    metadata: ValidationMetadata = field(default_factory=ValidationMetadata)
    restrictions: PurchaseRestrictionConfig | None = None
    rejection_category: RejectionCategory | None = None

    @classmethod
    def approved(
        cls,
        metadata: ValidationMetadata,
        restrictions: PurchaseRestrictionConfig | None = None,
    ) -> "ValidationResult":
        """Build a passing result."""
        return cls(
            is_valid=True,
            can_purchase=True,
            metadata=metadata,
            restrictions=restrictions,
        )

    @classmethod
    def rejected(
        cls,
        rejection: Rejection,
        metadata: ValidationMetadata | None = None,
        restrictions: PurchaseRestrictionConfig | None = None,
    ) -> "ValidationResult":
        """Build a failing result with a single reason."""
        return cls(
            is_valid=False,
            can_purchase=False,
            reasons=[rejection.reason],
            metadata=metadata if metadata is not None else ValidationMetadata(),
            restrictions=restrictions,
            rejection_category=rejection.category,
        )

    def raise_for_rejection(self) -> None:
        """
        Raise the exception matching the rejection category.

        For callers that prefer exceptions over inspecting the result.

        Raises:
            SupplyNetError: Subclass chosen by rejection_category
        """
        if self.is_valid:
            return
        category = self.rejection_category or RejectionCategory.SYSTEM_ERROR
        raise REJECTION_CATEGORIES[category](self.reasons[0])
