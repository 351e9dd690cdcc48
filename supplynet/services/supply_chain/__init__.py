"""
Supply chain services package.

Upline chain resolution and supplier search.
"""

from supplynet.services.supply_chain.path_finder import (
    SupplierCandidate,
    SupplyChainPath,
    SupplyChainPathFinder,
    UplineHop,
    UplineSearchResult,
    upline_cache_key,
)


__all__ = [
    "SupplierCandidate",
    "SupplyChainPath",
    "SupplyChainPathFinder",
    "UplineHop",
    "UplineSearchResult",
    "upline_cache_key",
]
