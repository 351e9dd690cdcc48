"""
Shared fixtures for unit tests.

This module provides in-memory stand-ins for the stores the engine reads:
- Fake member repository over real (transient) Member instances
- Fake offer repository
- Fake ledger session recording flushed / committed commission records
- Deterministic clock and a cache manager without background sweep

The fakes themselves live in tests/fakes.py so test modules can import them.
"""

import pytest

from fakes import (
    FakeClock,
    FakeMemberRepository,
    FakeOfferRepository,
    build_tree,
    make_offer,
)

from supplynet.models.offer import PurchaseRestriction
from supplynet.services.cache.manager import CacheManager
from supplynet.services.cache.upline_cache import CacheConfig
from supplynet.services.supply_chain.path_finder import SupplyChainPathFinder
from supplynet.services.team.member_reader import MemberReader
from supplynet.services.team.relationship_resolver import (
    TeamRelationshipResolver,
)


@pytest.fixture
def clock():
    """Deterministic clock for cache TTL tests."""
    return FakeClock()


@pytest.fixture
def cache_manager(clock):
    """Cache manager with background cleanup disabled."""
    manager = CacheManager(CacheConfig(background_cleanup=False), clock=clock)
    yield manager
    manager.close()


@pytest.fixture
def team_tree():
    """
    Straight active line with one side branch.

    1 DIRECTOR
    └── 2 TIER_3
        └── 3 TIER_1
            └── 4 VIP
                └── 5 NORMAL
    1 DIRECTOR
    └── 6 NORMAL
    """
    return build_tree(
        (1, "DIRECTOR", "ACTIVE", None),
        (2, "TIER_3", "ACTIVE", 1),
        (3, "TIER_1", "ACTIVE", 2),
        (4, "VIP", "ACTIVE", 3),
        (5, "NORMAL", "ACTIVE", 4),
        (6, "NORMAL", "ACTIVE", 1),
    )


@pytest.fixture
def member_repo(team_tree):
    """Fake member store holding team_tree."""
    return FakeMemberRepository(team_tree)


@pytest.fixture
def member_reader(member_repo, cache_manager):
    """Cached member lookup over the fake store."""
    return MemberReader(member_repo, cache_manager.get_cache("members"))


@pytest.fixture
def path_finder(member_reader, cache_manager):
    """Path finder over the fake store."""
    return SupplyChainPathFinder(
        member_reader, cache_manager.get_cache("upline_chains")
    )


@pytest.fixture
def resolver(member_reader):
    """Relationship resolver over the fake store."""
    return TeamRelationshipResolver(member_reader)


@pytest.fixture
def offer_repo():
    """Fake offer store with one purchasable offer (stock 100, limit 10)."""
    repo = FakeOfferRepository()
    repo.add(
        make_offer(1),
        PurchaseRestriction(offer_id=1, max_quantity=10, min_rank="NORMAL"),
    )
    return repo
