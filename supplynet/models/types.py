"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for order totals and commission amounts
# Precision: 18 digits total, 8 after decimal point
MoneyType = DECIMAL(18, 8)

# Commission rate as a fraction (0.15 = 15%)
# Precision: 10 digits total, 6 after decimal point
# Holds rates down to 0.000001 after decay
RateType = DECIMAL(10, 6)
