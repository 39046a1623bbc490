"""Pure domain layer: values, time windows, eligibility rules, payment state machine."""

from pass_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from pass_kernel.domain.eligibility import PassDecision, UnitAllowanceState, classify
from pass_kernel.domain.payment import (
    VALID_PAYMENT_TRANSITIONS,
    can_transition,
    validate_payment_transition,
)
from pass_kernel.domain.time_window import MonthWindow, local_date, month_window
from pass_kernel.domain.values import (
    ActorRole,
    PassKind,
    PassStatus,
    PassType,
    PaymentStatus,
    VehicleSnapshot,
    normalize_plate,
)

__all__ = [
    "ActorRole",
    "Clock",
    "DeterministicClock",
    "MonthWindow",
    "PassDecision",
    "PassKind",
    "PassStatus",
    "PassType",
    "PaymentStatus",
    "SystemClock",
    "UnitAllowanceState",
    "VALID_PAYMENT_TRANSITIONS",
    "VehicleSnapshot",
    "can_transition",
    "classify",
    "local_date",
    "month_window",
    "normalize_plate",
    "validate_payment_transition",
]
