"""
Module: pass_kernel.selectors.pass_selector
Responsibility: Read-only queries over issued passes: per-unit history, the
    admin list, active-pass lookup for a vehicle, and the monthly free-pass
    count that feeds the decision engine.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Active means ``expires_at > now``, strictly.  A pass expiring exactly
      at ``now`` is expired.
    - The free-pass count includes only rows whose type is literally
      ``free``.  Party-typed passes are free of charge but are NOT counted.
    - Month windows are half-open ``[start, end)``.
"""

from datetime import datetime, tzinfo
from uuid import UUID

from sqlalchemy import func, select

from pass_kernel.domain.dtos import PassInfo
from pass_kernel.domain.time_window import month_window
from pass_kernel.domain.values import PassType, PaymentStatus, VehicleSnapshot
from pass_kernel.exceptions import PassNotFoundError
from pass_kernel.models.visitor_pass import VisitorPass
from pass_kernel.selectors.base import BaseSelector


def pass_to_dto(row: VisitorPass) -> PassInfo:
    """Convert an ORM pass to PassInfo, normalizing the stored snapshot."""
    return PassInfo(
        id=row.id,
        unit_id=row.unit_id,
        vehicle_id=row.vehicle_id,
        vehicle_snapshot=VehicleSnapshot.from_stored(row.vehicle_snapshot),
        created_at=row.created_at,
        expires_at=row.expires_at,
        pass_type=PassType(row.pass_type),
        payment_status=PaymentStatus(row.payment_status),
        price=row.price,
    )


class PassSelector(BaseSelector):
    """Queries over the passes table."""

    def get_pass(self, pass_id: UUID) -> PassInfo:
        """
        Raises:
            PassNotFoundError: If the pass doesn't exist.
        """
        row = self.session.get(VisitorPass, pass_id)
        if row is None:
            raise PassNotFoundError(str(pass_id))
        return pass_to_dto(row)

    def list_passes_by_unit(self, unit_id: UUID) -> list[PassInfo]:
        """All passes of a unit, newest first."""
        stmt = (
            select(VisitorPass)
            .where(VisitorPass.unit_id == unit_id)
            .order_by(VisitorPass.created_at.desc(), VisitorPass.id)
        )
        return [pass_to_dto(p) for p in self.session.execute(stmt).scalars().all()]

    def list_all_passes(self) -> list[PassInfo]:
        """Every pass in the system, newest first (admin view)."""
        stmt = select(VisitorPass).order_by(VisitorPass.created_at.desc(), VisitorPass.id)
        return [pass_to_dto(p) for p in self.session.execute(stmt).scalars().all()]

    def list_by_payment_status(self, status: PaymentStatus) -> list[PassInfo]:
        """Passes in one payment state, oldest first (admin collection queue)."""
        stmt = (
            select(VisitorPass)
            .where(VisitorPass.payment_status == PaymentStatus(status).value)
            .order_by(VisitorPass.created_at, VisitorPass.id)
        )
        return [pass_to_dto(p) for p in self.session.execute(stmt).scalars().all()]

    def list_party_passes(self, unit_id: UUID) -> list[PassInfo]:
        stmt = (
            select(VisitorPass)
            .where(
                VisitorPass.unit_id == unit_id,
                VisitorPass.pass_type == PassType.PARTY.value,
            )
            .order_by(VisitorPass.created_at)
        )
        return [pass_to_dto(p) for p in self.session.execute(stmt).scalars().all()]

    def find_active_pass(self, vehicle_id: UUID, now: datetime) -> PassInfo | None:
        """The vehicle's non-expired pass, if any (latest expiry wins)."""
        stmt = (
            select(VisitorPass)
            .where(
                VisitorPass.vehicle_id == vehicle_id,
                VisitorPass.expires_at > now,
            )
            .order_by(VisitorPass.expires_at.desc())
            .limit(1)
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        return pass_to_dto(row) if row is not None else None

    def has_active_pass(self, vehicle_id: UUID, now: datetime) -> bool:
        return self.find_active_pass(vehicle_id, now) is not None

    def count_free_passes_in_month(
        self,
        unit_id: UUID,
        month_start: datetime,
        month_end: datetime,
    ) -> int:
        """Rows with type ``free`` and ``month_start <= created_at < month_end``."""
        stmt = select(func.count(VisitorPass.id)).where(
            VisitorPass.unit_id == unit_id,
            VisitorPass.pass_type == PassType.FREE.value,
            VisitorPass.created_at >= month_start,
            VisitorPass.created_at < month_end,
        )
        return self.session.execute(stmt).scalar_one()

    def count_free_passes_this_month(
        self,
        unit_id: UUID,
        now: datetime,
        tz: tzinfo,
    ) -> int:
        window = month_window(now, tz)
        return self.count_free_passes_in_month(unit_id, window.start, window.end)
