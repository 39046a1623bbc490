"""
PassLedger -- issues visitor passes and answers pass queries.

Responsibility:
    Orchestrates pass creation: vehicle resolution, the one-active-pass
    check, allowance state, classification, persistence, and party-day
    consumption.  Also exposes the read side residents and admins use
    (per-unit history, admin list, active-pass and free-count queries).

Architecture position:
    Kernel > Services -- imperative shell.
    Pure decisions come from ``domain/eligibility.classify``; storage goes
    through ``PassStore``.

Invariants enforced:
    - At most one active pass per vehicle.  The pre-check raises
      DuplicateActivePassError; the claim taken by ``PassStore.insert_pass``
      closes the check-then-insert window.
    - A failed attempt leaves nothing behind: each attempt runs inside its
      own savepoint and the pass insert and party-day append share it.
    - A lost claim race is retried exactly once.  The retry sees the
      winner's pass and reports DuplicateActivePassError.
    - Flush-only: never commits or rolls back the caller's transaction.

Failure modes:
    - VehicleNotFoundError: unknown vehicle, or vehicle of another unit.
    - UnitNotFoundError: unknown unit.
    - DuplicateActivePassError: the vehicle holds a non-expired pass.
    - PartyLimitReachedError: monthly party days used up.
    - ConstraintViolationError: the claim race was lost twice.

Audit relevance:
    ``pass_created`` is logged at INFO with pass id, type, payment status
    and price; rejections are logged at INFO/WARNING with the reason.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.orm import Session

from pass_kernel.domain.clock import Clock, SystemClock
from pass_kernel.domain.dtos import PassInfo, PassWrite
from pass_kernel.domain.eligibility import UnitAllowanceState, classify
from pass_kernel.domain.values import PassKind
from pass_kernel.exceptions import (
    ConstraintViolationError,
    DuplicateActivePassError,
    PartyLimitReachedError,
    VehicleNotFoundError,
)
from pass_kernel.logging_config import LogContext, get_logger
from pass_kernel.selectors.allowance_selector import AllowanceSelector
from pass_kernel.selectors.pass_selector import PassSelector
from pass_kernel.services.base import BaseService
from pass_kernel.services.pass_store import PassStore

if TYPE_CHECKING:
    from pass_config.schema import AllowanceSettings

logger = get_logger("services.pass_ledger")

# One retry after a lost claim race; a second loss propagates.
MAX_CREATE_ATTEMPTS = 2

# Fixed validity window of every pass
PASS_VALIDITY = timedelta(hours=24)


class PassLedger(BaseService):
    """
    Creates passes and serves pass queries.

    Contract:
        ``create_pass`` returns the stored ``PassInfo`` or raises one of the
        typed errors listed in the module docstring.  Settings are passed
        in explicitly; the ledger never reads a global.

    Non-goals:
        - Does NOT collect payment; paid passes are only flagged
          ``payment_required``.
        - Does NOT change payment status (services/payment_service.py).
    """

    def __init__(
        self,
        session: Session,
        settings: AllowanceSettings,
        clock: Clock | None = None,
    ):
        super().__init__(session)
        self._settings = settings
        self._clock = clock or SystemClock()
        self._store = PassStore(session, settings)
        self._passes = PassSelector(session)
        self._allowance = AllowanceSelector(session, settings)

    @property
    def store(self) -> PassStore:
        return self._store

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    def create_pass(
        self,
        unit_id: UUID,
        vehicle_id: UUID,
        requested_kind: PassKind = PassKind.REGULAR,
        now: datetime | None = None,
    ) -> PassInfo:
        """
        Issue a 24-hour visitor pass for ``vehicle_id`` on behalf of ``unit_id``.

        Preconditions:
            - ``now`` (if given) is timezone-aware.  Defaults to the clock.

        Postconditions:
            - The returned pass is active at ``now`` and expires exactly
              24 hours later.
            - If the pass consumed a party day, today's date (business
              timezone) is recorded on the unit in the same transaction.

        Raises:
            VehicleNotFoundError, UnitNotFoundError, DuplicateActivePassError,
            PartyLimitReachedError, ConstraintViolationError.
        """
        now = now or self._clock.now_utc()
        kind = PassKind(requested_kind)

        with LogContext.bind(unit_id=unit_id, vehicle_id=vehicle_id):
            for attempt in range(1, MAX_CREATE_ATTEMPTS + 1):
                try:
                    with self.session.begin_nested():
                        return self._create_once(unit_id, vehicle_id, kind, now)
                except ConstraintViolationError:
                    if attempt == MAX_CREATE_ATTEMPTS:
                        logger.warning(
                            "pass_create_conflict_exhausted",
                            extra={"attempts": attempt},
                        )
                        raise
                    logger.info("pass_create_retry", extra={"attempt": attempt})

        # Unreachable: the loop either returns or raises.
        raise ConstraintViolationError(str(vehicle_id))

    def _create_once(
        self,
        unit_id: UUID,
        vehicle_id: UUID,
        kind: PassKind,
        now: datetime,
    ) -> PassInfo:
        vehicle = self._store.get_vehicle(vehicle_id)
        if vehicle is None or vehicle.unit_id != unit_id:
            raise VehicleNotFoundError(str(vehicle_id))

        existing = self._store.find_active_pass(vehicle_id, now)
        if existing is not None:
            logger.info(
                "pass_rejected_duplicate",
                extra={
                    "existing_pass_id": str(existing.id),
                    "expires_at": existing.expires_at,
                },
            )
            raise DuplicateActivePassError(str(vehicle_id), existing.expires_at)

        state = self._allowance.get_unit_allowance_state(
            unit_id, now, for_update=self._settings.serialize_unit_allowance
        )
        try:
            decision = classify(state, kind, self._settings.price_per_pass)
        except PartyLimitReachedError as exc:
            logger.info(
                "party_limit_reached",
                extra={
                    "limit": exc.limit,
                    "party_days_consumed": state.party_days_consumed_this_month,
                },
            )
            raise

        pass_write = PassWrite(
            unit_id=unit_id,
            vehicle_id=vehicle_id,
            vehicle_snapshot=vehicle.snapshot(),
            created_at=now,
            expires_at=now + PASS_VALIDITY,
            pass_type=decision.pass_type,
            payment_status=decision.payment_status,
            price=decision.price,
        )
        created = self._store.insert_pass(pass_write)

        if decision.consume_party_day:
            self._store.append_party_day(unit_id, state.today)

        logger.info(
            "pass_created",
            extra={
                "pass_id": str(created.id),
                "requested_kind": kind.value,
                "pass_type": created.pass_type.value,
                "payment_status": created.payment_status.value,
                "price": created.price,
                "expires_at": created.expires_at,
            },
        )
        return created

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_pass(self, pass_id: UUID) -> PassInfo:
        return self._passes.get_pass(pass_id)

    def list_passes_by_unit(self, unit_id: UUID) -> list[PassInfo]:
        return self._passes.list_passes_by_unit(unit_id)

    def list_all_passes(self) -> list[PassInfo]:
        return self._passes.list_all_passes()

    def has_active_pass(self, vehicle_id: UUID, now: datetime | None = None) -> bool:
        return self._passes.has_active_pass(vehicle_id, now or self._clock.now_utc())

    def count_free_passes_this_month(
        self,
        unit_id: UUID,
        now: datetime | None = None,
    ) -> int:
        """Passes typed ``free`` created in the current business month."""
        return self._passes.count_free_passes_this_month(
            unit_id, now or self._clock.now_utc(), self._settings.tz
        )

    def get_allowance_state(
        self,
        unit_id: UUID,
        now: datetime | None = None,
    ) -> UnitAllowanceState:
        """
        Allowance summary for resident dashboards.

        Raises:
            UnitNotFoundError: If the unit doesn't exist.
        """
        return self._allowance.get_unit_allowance_state(
            unit_id, now or self._clock.now_utc()
        )
