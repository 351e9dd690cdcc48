"""
Commission services package.

- calculator: degressive multi-level commission settlement and reporting
- types: parameter and result dataclasses
"""

from supplynet.services.commission.calculator import CommissionCalculator
from supplynet.services.commission.types import (
    CommissionBreakdownItem,
    CommissionCalculationParams,
    CommissionPreview,
    CommissionStats,
    StatsPeriod,
    TeamPerformance,
)


__all__ = [
    "CommissionBreakdownItem",
    "CommissionCalculationParams",
    "CommissionCalculator",
    "CommissionPreview",
    "CommissionStats",
    "StatsPeriod",
    "TeamPerformance",
]
