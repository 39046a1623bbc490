"""
Eligibility decision engine (``pass_kernel.domain.eligibility``).

Responsibility
--------------
Decides what a new pass is: free, party, or paid.  Given a unit's
allowance state, the requested kind, and the configured price, returns a
``PassDecision`` or raises ``PartyLimitReachedError``.

Architecture position
---------------------
**Kernel domain layer** -- pure function.  ZERO I/O.  The caller
(``services/pass_ledger.py``) reads the allowance state, applies
``consume_party_day``, and persists the pass.

Decision rules (evaluated in this order)
----------------------------------------
Party request:
  1. Today already a party day  -> party / free, no new party day consumed.
  2. Party days used >= limit    -> PartyLimitReachedError(limit).
  3. Otherwise                   -> party / free, consume today.

Regular request:
  1. Today already a party day  -> free / free, whatever the monthly
     free-pass counter says.
  2. Free passes used < limit    -> free / free.
  3. Otherwise                   -> paid / payment_required at price.

The party-day check must come before the free-limit check: a party day
overrides the unit's free-pass counter.

Note on counting: a regular pass issued on a party day is typed ``free``
and therefore IS counted by ``count_free_passes_this_month`` on later
days.  Only ``party``-typed passes are excluded from that count.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from pass_kernel.domain.values import (
    PassKind,
    PassType,
    PaymentStatus,
    quantize_money,
)
from pass_kernel.exceptions import PartyLimitReachedError


@dataclass(frozen=True)
class UnitAllowanceState:
    """
    Derived allowance counters for one unit at one instant.

    Built fresh by ``AllowanceSelector.get_unit_allowance_state`` on every
    request; never cached.
    """

    unit_id: UUID
    today: date
    free_pass_limit: int
    free_passes_issued_this_month: int
    party_pass_limit: int
    party_days_consumed_this_month: int
    is_today_already_party_day: bool

    def __post_init__(self) -> None:
        for name in (
            "free_pass_limit",
            "free_passes_issued_this_month",
            "party_pass_limit",
            "party_days_consumed_this_month",
        ):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0, got {getattr(self, name)}")

    @property
    def free_passes_remaining(self) -> int:
        return max(0, self.free_pass_limit - self.free_passes_issued_this_month)

    @property
    def party_days_remaining(self) -> int:
        return max(0, self.party_pass_limit - self.party_days_consumed_this_month)


@dataclass(frozen=True)
class PassDecision:
    """Outcome of ``classify``: what to write on the new pass."""

    pass_type: PassType
    payment_status: PaymentStatus
    price: Decimal | None = None
    consume_party_day: bool = False

    @property
    def requires_payment(self) -> bool:
        return self.payment_status == PaymentStatus.PAYMENT_REQUIRED


_PARTY_ALREADY_ACTIVE = PassDecision(PassType.PARTY, PaymentStatus.FREE)
_PARTY_CONSUMING = PassDecision(
    PassType.PARTY, PaymentStatus.FREE, consume_party_day=True
)
_FREE = PassDecision(PassType.FREE, PaymentStatus.FREE)


def classify(
    state: UnitAllowanceState,
    requested_kind: PassKind,
    price_per_pass: Decimal,
) -> PassDecision:
    """
    Classify a new pass for the unit.

    Preconditions:
        - ``price_per_pass`` > 0.

    Raises:
        PartyLimitReachedError: party requested, today is not yet a party
            day, and the monthly party allowance is used up.
        ValueError: unknown ``requested_kind`` or non-positive price.
    """
    if price_per_pass <= 0:
        raise ValueError(f"price_per_pass must be positive, got {price_per_pass}")

    kind = PassKind(requested_kind)

    if kind == PassKind.PARTY:
        if state.is_today_already_party_day:
            return _PARTY_ALREADY_ACTIVE
        if state.party_days_consumed_this_month >= state.party_pass_limit:
            raise PartyLimitReachedError(
                limit=state.party_pass_limit, unit_id=str(state.unit_id)
            )
        return _PARTY_CONSUMING

    if state.is_today_already_party_day:
        return _FREE
    if state.free_passes_issued_this_month < state.free_pass_limit:
        return _FREE
    return PassDecision(
        PassType.PAID,
        PaymentStatus.PAYMENT_REQUIRED,
        price=quantize_money(price_per_pass),
    )
