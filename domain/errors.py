"""
Domain: invariant violations.

Domain objects raise these (all `ValueError` subclasses) when a construction
or state transition would break an invariant. They carry no HTTP or
transport concerns; the service layer decides how to surface them.
"""

from __future__ import annotations


class InvalidDiscountPercentage(ValueError):
    """Raised when a discount percentage is non-finite or outside [0, 100]."""
    pass


class InvalidAwardRecord(ValueError):
    """Raised when an AwardRecord would be constructed in an invalid state."""
    pass


class RedemptionNotAllowed(ValueError):
    """
    Raised when an award cannot be marked as redeemed.

    `reason` is one of: "no_prize", "already_redeemed", "expired".
    """

    def __init__(self, reason: str, message: str):
        self.reason = reason
        super().__init__(message)


class OutcomeTableError(ValueError):
    """Raised when the wheel outcome table is empty or its probabilities are malformed."""
    pass
