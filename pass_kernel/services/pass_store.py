"""
PassStore -- the persistence collaborator behind the pass ledger.

Responsibility:
    Implements the storage contract the ledger and payment service depend
    on: active-pass lookup, pass insert with the per-vehicle claim, party-day
    append, monthly free-pass count, payment status update, and unit/vehicle
    lookup.  All rows cross this boundary as DTOs; stored vehicle snapshots
    are normalized to the canonical ``VehicleSnapshot`` here and nowhere else.

Architecture position:
    Kernel > Services -- imperative shell over SQLAlchemy.
    Reads are delegated to selectors.

Invariants enforced:
    - At most one active pass per vehicle: ``insert_pass`` first takes the
      vehicle's claim row.  The claim is taken by a conditional UPDATE (only
      if the held expiry is <= the new pass's creation time) or by INSERT
      under the uq_claim_vehicle unique key.  Losing either race raises
      ConstraintViolationError and writes nothing.
    - ``append_party_day`` is idempotent; uq_party_day_unit_date backs it.
    - ``update_payment_status`` validates against the payment state machine
      while holding the pass row lock.

Failure modes:
    - ConstraintViolationError: another transaction owns the vehicle.
    - PassNotFoundError / InvalidTransitionError from update_payment_status.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pass_kernel.domain.dtos import PassInfo, PassWrite, UnitInfo, VehicleInfo
from pass_kernel.domain.payment import initial_payment_status, validate_payment_transition
from pass_kernel.domain.values import PaymentStatus
from pass_kernel.exceptions import ConstraintViolationError, PassNotFoundError
from pass_kernel.logging_config import get_logger
from pass_kernel.models.unit import UnitPartyDay
from pass_kernel.models.visitor_pass import VehiclePassClaim, VisitorPass
from pass_kernel.selectors.allowance_selector import AllowanceSelector
from pass_kernel.selectors.pass_selector import PassSelector, pass_to_dto
from pass_kernel.services.base import BaseService

if TYPE_CHECKING:
    from pass_config.schema import AllowanceSettings

logger = get_logger("services.pass_store")


class PassStore(BaseService):
    """
    SQLAlchemy-backed storage for passes, party days, and lookups.

    Non-goals:
        - Does NOT decide pass types or prices (domain/eligibility.py).
        - Does NOT call ``session.commit()``.
    """

    def __init__(self, session: Session, settings: AllowanceSettings):
        super().__init__(session)
        self._passes = PassSelector(session)
        self._lookup = AllowanceSelector(session, settings)

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    def get_unit(self, unit_id: UUID) -> UnitInfo | None:
        return self._lookup.find_unit(unit_id)

    def get_vehicle(self, vehicle_id: UUID) -> VehicleInfo | None:
        return self._lookup.find_vehicle(vehicle_id)

    def find_active_pass(self, vehicle_id: UUID, now: datetime) -> PassInfo | None:
        return self._passes.find_active_pass(vehicle_id, now)

    def count_free_passes_in_month(
        self,
        unit_id: UUID,
        month_start: datetime,
        month_end: datetime,
    ) -> int:
        return self._passes.count_free_passes_in_month(unit_id, month_start, month_end)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def insert_pass(self, pass_write: PassWrite) -> PassInfo:
        """
        Claim the vehicle and insert the pass.

        Raises:
            ConstraintViolationError: a concurrent active pass owns the vehicle.
        """
        initial_payment_status(pass_write.payment_status)
        self._claim_vehicle(pass_write)

        row = VisitorPass(
            id=pass_write.id,
            unit_id=pass_write.unit_id,
            vehicle_id=pass_write.vehicle_id,
            vehicle_snapshot=pass_write.vehicle_snapshot.to_stored(),
            created_at=pass_write.created_at,
            expires_at=pass_write.expires_at,
            pass_type=pass_write.pass_type.value,
            payment_status=pass_write.payment_status.value,
            price=pass_write.price,
        )
        self.session.add(row)
        self.session.flush()
        return pass_to_dto(row)

    def _claim_vehicle(self, pass_write: PassWrite) -> None:
        # INVARIANT: one active pass per vehicle.  Take over an expired claim...
        result = self.session.execute(
            update(VehiclePassClaim)
            .where(
                VehiclePassClaim.vehicle_id == pass_write.vehicle_id,
                VehiclePassClaim.expires_at <= pass_write.created_at,
            )
            .values(pass_id=pass_write.id, expires_at=pass_write.expires_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 1:
            return

        # ...or create the first claim; the unique key rejects a second one.
        savepoint = self.session.begin_nested()
        try:
            self.session.add(
                VehiclePassClaim(
                    vehicle_id=pass_write.vehicle_id,
                    pass_id=pass_write.id,
                    expires_at=pass_write.expires_at,
                )
            )
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            logger.warning(
                "vehicle_claim_conflict",
                extra={
                    "vehicle_id": str(pass_write.vehicle_id),
                    "pass_id": str(pass_write.id),
                },
            )
            raise ConstraintViolationError(str(pass_write.vehicle_id)) from None
        savepoint.commit()

    def append_party_day(self, unit_id: UUID, party_date: date) -> bool:
        """
        Record ``party_date`` as consumed for the unit.

        Returns:
            True if a new party day was written, False if it already existed.
        """
        if self._lookup.is_party_day(unit_id, party_date):
            return False

        savepoint = self.session.begin_nested()
        try:
            self.session.add(UnitPartyDay(unit_id=unit_id, party_date=party_date))
            self.session.flush()
        except IntegrityError:
            # Written concurrently; the date is consumed either way
            savepoint.rollback()
            return False
        savepoint.commit()
        logger.info(
            "party_day_consumed",
            extra={"unit_id": str(unit_id), "party_date": party_date.isoformat()},
        )
        return True

    def update_payment_status(self, pass_id: UUID, new_status: PaymentStatus) -> PassInfo:
        """
        Move a pass to ``new_status``.

        Raises:
            PassNotFoundError: If the pass doesn't exist.
            InvalidTransitionError: If the state machine forbids the move.
        """
        row = self.session.execute(
            select(VisitorPass)
            .where(VisitorPass.id == pass_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if row is None:
            raise PassNotFoundError(str(pass_id))

        target = validate_payment_transition(
            PaymentStatus(row.payment_status), new_status, pass_id=str(pass_id)
        )
        row.payment_status = target.value
        self.session.flush()
        return pass_to_dto(row)
