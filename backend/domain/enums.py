"""
Domain enums (minimal set used for clarity in services).
"""

from enum import Enum


class PaymentStatus(str, Enum):
    CAPTURED = "captured"


class CheckoutState(str, Enum):
    """
    Lifecycle of a single checkout attempt.

    Terminal states: SIGNATURE_INVALID, COMMITTED, ALREADY_COMMITTED,
    COMMIT_FAILED. A failed attempt starts over with a new order.
    """
    CREATED = "created"
    CONFIRMATION_RECEIVED = "confirmation_received"
    SIGNATURE_VALID = "signature_valid"
    SIGNATURE_INVALID = "signature_invalid"
    COMMITTED = "committed"
    ALREADY_COMMITTED = "already_committed"
    COMMIT_FAILED = "commit_failed"

    @property
    def is_success(self) -> bool:
        return self in (CheckoutState.COMMITTED, CheckoutState.ALREADY_COMMITTED)
