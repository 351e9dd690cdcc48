"""
Exception handling utilities.

Defines the error taxonomy used by purchase validation and commission
settlement.
"""

from enum import StrEnum

from sqlalchemy.exc import DBAPIError, OperationalError


class RejectionCategory(StrEnum):
    """Why a purchase or settlement did not go through."""

    NOT_FOUND = "not_found"
    INVALID_STATE = "invalid_state"
    RULE_VIOLATION = "rule_violation"
    SYSTEM_ERROR = "system_error"


class SupplyNetError(Exception):
    """Base class for engine errors."""

    category = RejectionCategory.SYSTEM_ERROR


class NotFoundError(SupplyNetError):
    """Raised when a member or offer does not exist."""

    category = RejectionCategory.NOT_FOUND


class InvalidStateError(SupplyNetError):
    """Raised when an account or offer is not in a usable state."""

    category = RejectionCategory.INVALID_STATE


class RuleViolationError(SupplyNetError):
    """Raised when a business rule forbids the operation."""

    category = RejectionCategory.RULE_VIOLATION


class AncestryError(RuleViolationError):
    """Raised when an ancestry change would break the referral tree."""

    pass


class SystemFailureError(SupplyNetError):
    """Raised when a store is unreachable or something unexpected failed."""

    category = RejectionCategory.SYSTEM_ERROR


# Exception type raised for each rejection category
REJECTION_CATEGORIES: dict[RejectionCategory, type[SupplyNetError]] = {
    RejectionCategory.NOT_FOUND: NotFoundError,
    RejectionCategory.INVALID_STATE: InvalidStateError,
    RejectionCategory.RULE_VIOLATION: RuleViolationError,
    RejectionCategory.SYSTEM_ERROR: SystemFailureError,
}

# Infrastructure failures - logged and converted, never retried here
INFRASTRUCTURE_ERRORS = (
    OperationalError,  # Database unreachable / connection dropped
    DBAPIError,        # Driver-level failures
)


def classify_exception(exc: BaseException) -> RejectionCategory:
    """
    Map an exception onto the rejection taxonomy.

    Args:
        exc: Exception to classify

    Returns:
        Category; anything outside the engine's own errors is a system error
    """
    if isinstance(exc, SupplyNetError):
        return exc.category
    return RejectionCategory.SYSTEM_ERROR


def is_infrastructure_error(exc: BaseException) -> bool:
    """
    Check if exception came from the data store layer.

    Args:
        exc: Exception to check

    Returns:
        True if the database or driver raised it
    """
    return isinstance(exc, INFRASTRUCTURE_ERRORS)
