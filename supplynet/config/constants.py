"""
Engine constants.

Defaults used by core services when no explicit value is injected.
The composition root overrides them from settings.
"""

from decimal import Decimal

# ========================================================================
# COMMISSION
# ========================================================================

# Each hop away from the seller keeps 80% of the previous hop's rate
COMMISSION_DECAY_FACTOR = Decimal("0.8")

# Records at or below this amount are not persisted
COMMISSION_MIN_AMOUNT = Decimal("0.01")

# Seller counts as depth 1
COMMISSION_MAX_DEPTH = 5

COMMISSION_CALCULATION_METHOD = "degressive"

# ========================================================================
# SUPPLY CHAIN
# ========================================================================

UPLINE_SEARCH_MAX_DEPTH = 10

# ========================================================================
# CACHE
# ========================================================================

CACHE_DEFAULT_MAX_SIZE = 10000
CACHE_DEFAULT_MAX_MEMORY = 100 * 1024 * 1024  # 100MB
CACHE_DEFAULT_TTL = 300.0  # seconds
CACHE_CLEANUP_INTERVAL = 60.0  # seconds
CACHE_CLEANUP_BATCH_SIZE = 100

# Health thresholds
CACHE_MEMORY_WARNING_RATIO = 0.9
CACHE_MIN_HIT_RATE = 0.5
CACHE_HEALTH_MIN_LOOKUPS = 100

# Named cache instances owned by the cache manager
MEMBER_CACHE_NAME = "members"
UPLINE_CHAIN_CACHE_NAME = "upline_chains"
