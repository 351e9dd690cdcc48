"""
Services.

Business logic layer.
"""

# Base Service Infrastructure
from supplynet.services.base_service import BaseService, transaction

# Cache
from supplynet.services.cache import CacheConfig, CacheManager, UplineCache

# Core Services
from supplynet.services.commission import (
    CommissionCalculationParams,
    CommissionCalculator,
)
from supplynet.services.engine import PurchaseEngine
from supplynet.services.purchase import (
    PurchaseValidator,
    ValidationResult,
    ValidatorStats,
)
from supplynet.services.supply_chain import SupplyChainPathFinder
from supplynet.services.team import (
    AncestryService,
    MemberReader,
    TeamRelationshipResolver,
)


__all__ = [
    "AncestryService",
    "BaseService",
    "CacheConfig",
    "CacheManager",
    "CommissionCalculationParams",
    "CommissionCalculator",
    "MemberReader",
    "PurchaseEngine",
    "PurchaseValidator",
    "SupplyChainPathFinder",
    "TeamRelationshipResolver",
    "UplineCache",
    "ValidationResult",
    "ValidatorStats",
    "transaction",
]
