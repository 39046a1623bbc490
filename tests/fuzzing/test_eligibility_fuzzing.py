"""
Hypothesis-based fuzzing of the eligibility engine and allowance arithmetic.

Boundaries fuzzed here:
- Counters and limits: arbitrary non-negative values, including over-limit
  counters left behind by a limit reduction
- Price: any positive amount with up to two decimal places
- Business timezone: month window always contains the instant it was built from
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest
from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st
from hypothesis.strategies import composite

from pass_kernel.domain.eligibility import UnitAllowanceState, classify
from pass_kernel.domain.time_window import local_date, month_window
from pass_kernel.domain.values import PassKind, PassType, PaymentStatus
from pass_kernel.exceptions import PartyLimitReachedError

counters = st.integers(min_value=0, max_value=60)
prices = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("9999.99"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
zones = st.sampled_from(["UTC", "America/New_York", "Asia/Kolkata", "Pacific/Auckland"])

# Autouse log-context fixtures are reset per test, not per example
FIXTURE_OK = [HealthCheck.function_scoped_fixture]


@composite
def allowance_states(draw):
    return UnitAllowanceState(
        unit_id=uuid4(),
        today=date(2024, 3, 15),
        free_pass_limit=draw(counters),
        free_passes_issued_this_month=draw(counters),
        party_pass_limit=draw(counters),
        party_days_consumed_this_month=draw(counters),
        is_today_already_party_day=draw(st.booleans()),
    )


class TestRegularFuzzing:
    @given(state=allowance_states(), price=prices)
    @settings(max_examples=300, suppress_health_check=FIXTURE_OK)
    def test_regular_never_rejected(self, state, price):
        decision = classify(state, PassKind.REGULAR, price)

        assert decision.pass_type in (PassType.FREE, PassType.PAID)
        assert decision.consume_party_day is False

    @given(state=allowance_states(), price=prices)
    @settings(max_examples=300, suppress_health_check=FIXTURE_OK)
    def test_paid_exactly_when_allowance_exhausted(self, state, price):
        decision = classify(state, PassKind.REGULAR, price)

        exhausted = (
            not state.is_today_already_party_day
            and state.free_passes_issued_this_month >= state.free_pass_limit
        )
        assert (decision.pass_type == PassType.PAID) == exhausted
        if exhausted:
            assert decision.payment_status == PaymentStatus.PAYMENT_REQUIRED
            assert decision.price == price
        else:
            assert decision.price is None


class TestPartyFuzzing:
    @given(state=allowance_states(), price=prices)
    @settings(max_examples=300, suppress_health_check=FIXTURE_OK)
    def test_party_outcome(self, state, price):
        if (
            not state.is_today_already_party_day
            and state.party_days_consumed_this_month >= state.party_pass_limit
        ):
            with pytest.raises(PartyLimitReachedError) as exc_info:
                classify(state, PassKind.PARTY, price)
            assert exc_info.value.limit == state.party_pass_limit
            return

        decision = classify(state, PassKind.PARTY, price)
        assert decision.pass_type == PassType.PARTY
        assert decision.payment_status == PaymentStatus.FREE
        assert decision.price is None
        assert decision.consume_party_day is (not state.is_today_already_party_day)

    @given(state=allowance_states())
    @settings(suppress_health_check=FIXTURE_OK)
    def test_remaining_never_negative(self, state):
        assert state.free_passes_remaining >= 0
        assert state.party_days_remaining >= 0


class TestMonthWindowFuzzing:
    @given(
        offset_minutes=st.integers(min_value=0, max_value=2 * 366 * 24 * 60),
        zone=zones,
    )
    @settings(max_examples=200, suppress_health_check=FIXTURE_OK)
    def test_window_contains_instant(self, offset_minutes, zone):
        tz = ZoneInfo(zone)
        now = datetime(2024, 1, 1, tzinfo=timezone.utc) + timedelta(minutes=offset_minutes)

        window = month_window(now, tz)

        assert window.start <= now < window.end
        assert local_date(window.start, tz) == window.first_day
        assert local_date(window.end, tz) == window.next_first_day
        assert window.contains_date(local_date(now, tz))
