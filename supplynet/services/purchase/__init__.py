"""
Purchase services package.

- rules: pure purchase rules returning a Rejection or None
- results: validation result and stats types
- purchase_validator: ordered rule pipeline
"""

from supplynet.services.purchase.purchase_validator import (
    PurchaseValidator,
    ValidationContext,
)
from supplynet.services.purchase.results import (
    SYSTEM_ERROR_REASON,
    LevelComparison,
    LevelComparisonResult,
    PerformanceSnapshot,
    PurchaseRestrictionConfig,
    Rejection,
    ValidationMetadata,
    ValidationResult,
    ValidatorStats,
)


__all__ = [
    "SYSTEM_ERROR_REASON",
    "LevelComparison",
    "LevelComparisonResult",
    "PerformanceSnapshot",
    "PurchaseRestrictionConfig",
    "PurchaseValidator",
    "Rejection",
    "ValidationContext",
    "ValidationMetadata",
    "ValidationResult",
    "ValidatorStats",
]
