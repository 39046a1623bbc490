"""
Payment status state machine (``pass_kernel.domain.payment``).

    PAYMENT_REQUIRED -> PAID | WAIVED
    FREE:  terminal (initial state of free and party passes)
    PAID:  terminal
    WAIVED: terminal

PAID and WAIVED are never initial states; ``initial_payment_status``
guards the creation side.
"""

from __future__ import annotations

from pass_kernel.domain.values import PaymentStatus
from pass_kernel.exceptions import InvalidTransitionError

VALID_PAYMENT_TRANSITIONS: dict[PaymentStatus, frozenset[PaymentStatus]] = {
    PaymentStatus.PAYMENT_REQUIRED: frozenset({
        PaymentStatus.PAID, PaymentStatus.WAIVED,
    }),
    # Terminal states -- no transitions allowed
    PaymentStatus.FREE: frozenset(),
    PaymentStatus.PAID: frozenset(),
    PaymentStatus.WAIVED: frozenset(),
}

INITIAL_PAYMENT_STATUSES: frozenset[PaymentStatus] = frozenset({
    PaymentStatus.FREE, PaymentStatus.PAYMENT_REQUIRED,
})


def can_transition(current: PaymentStatus, target: PaymentStatus) -> bool:
    return PaymentStatus(target) in VALID_PAYMENT_TRANSITIONS[PaymentStatus(current)]


def validate_payment_transition(
    current: PaymentStatus,
    target: PaymentStatus,
    pass_id: str | None = None,
) -> PaymentStatus:
    """
    Return ``target`` if ``current -> target`` is allowed.

    Raises:
        InvalidTransitionError: for every pair not in VALID_PAYMENT_TRANSITIONS.
    """
    current = PaymentStatus(current)
    target = PaymentStatus(target)
    if not can_transition(current, target):
        raise InvalidTransitionError(current.value, target.value, pass_id=pass_id)
    return target


def initial_payment_status(status: PaymentStatus) -> PaymentStatus:
    """Reject PAID / WAIVED as a starting status for a new pass."""
    status = PaymentStatus(status)
    if status not in INITIAL_PAYMENT_STATUSES:
        raise ValueError(f"{status.value} is not a valid initial payment status")
    return status
