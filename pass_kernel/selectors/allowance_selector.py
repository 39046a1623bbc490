"""
Module: pass_kernel.selectors.allowance_selector
Responsibility: Vehicle and unit lookup, and the derived allowance state the
    decision engine consumes (free passes used this month, party days used
    this month, whether today is already a party day).
Architecture position: Kernel > Selectors.

Invariants enforced:
    - The allowance state is recomputed from persisted rows on every call.
      Nothing is cached across requests; a stale count would let a unit
      bypass its quota.
    - Months and "today" are evaluated in the configured business timezone.
    - ``for_update=True`` locks the unit row (SELECT ... FOR UPDATE) so that
      concurrent allowance checks for the same unit serialize.  Only used
      when settings.serialize_unit_allowance is on.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from pass_kernel.domain.dtos import UnitInfo, VehicleInfo
from pass_kernel.domain.eligibility import UnitAllowanceState
from pass_kernel.domain.time_window import MonthWindow, local_date, month_window
from pass_kernel.exceptions import UnitNotFoundError, VehicleNotFoundError
from pass_kernel.models.unit import Building, Unit, UnitPartyDay
from pass_kernel.models.vehicle import Vehicle
from pass_kernel.selectors.base import BaseSelector
from pass_kernel.selectors.pass_selector import PassSelector

if TYPE_CHECKING:
    from pass_config.schema import AllowanceSettings


def vehicle_to_dto(row: Vehicle) -> VehicleInfo:
    return VehicleInfo(
        id=row.id,
        unit_id=row.unit_id,
        license_plate=row.license_plate,
        make=row.make,
        model=row.model,
        color=row.color,
        nickname=row.nickname,
    )


def unit_to_dto(row: Unit, party_days: tuple[date, ...] = ()) -> UnitInfo:
    return UnitInfo(
        id=row.id,
        building_id=row.building_id,
        building_number=row.building.number,
        number=row.number,
        free_pass_limit=row.free_pass_limit,
        party_days=party_days,
    )


class AllowanceSelector(BaseSelector):
    """
    Read-only lookups for vehicles, units, and allowance counters.

    Contract:
        ``get_unit_allowance_state`` is the only way the ledger learns how
        much of a unit's allowance is left.
    """

    def __init__(self, session: Session, settings: AllowanceSettings):
        super().__init__(session)
        self._settings = settings
        self._passes = PassSelector(session)

    def find_vehicle(self, vehicle_id: UUID) -> VehicleInfo | None:
        row = self.session.get(Vehicle, vehicle_id)
        return vehicle_to_dto(row) if row is not None else None

    def get_vehicle(self, vehicle_id: UUID) -> VehicleInfo:
        """
        Raises:
            VehicleNotFoundError: If the vehicle doesn't exist.
        """
        vehicle = self.find_vehicle(vehicle_id)
        if vehicle is None:
            raise VehicleNotFoundError(str(vehicle_id))
        return vehicle

    def list_vehicles_by_unit(self, unit_id: UUID) -> list[VehicleInfo]:
        stmt = (
            select(Vehicle)
            .where(Vehicle.unit_id == unit_id)
            .order_by(Vehicle.license_plate)
        )
        return [vehicle_to_dto(v) for v in self.session.execute(stmt).scalars().all()]

    def find_unit(self, unit_id: UUID) -> UnitInfo | None:
        row = self.session.get(Unit, unit_id)
        if row is None:
            return None
        return unit_to_dto(row, tuple(self.list_party_days(unit_id)))

    def find_unit_by_number(self, building_number: str, unit_number: str) -> UnitInfo | None:
        """Look a unit up the way residents name it: building number + unit number."""
        stmt = (
            select(Unit)
            .join(Building, Unit.building_id == Building.id)
            .where(Building.number == building_number, Unit.number == unit_number)
        )
        row = self.session.execute(stmt).scalar_one_or_none()
        if row is None:
            return None
        return unit_to_dto(row, tuple(self.list_party_days(row.id)))

    def list_party_days(self, unit_id: UUID) -> list[date]:
        """Every party day the unit has consumed, oldest first."""
        stmt = (
            select(UnitPartyDay.party_date)
            .where(UnitPartyDay.unit_id == unit_id)
            .order_by(UnitPartyDay.party_date)
        )
        return list(self.session.execute(stmt).scalars().all())

    def get_unit(self, unit_id: UUID) -> UnitInfo:
        """
        Raises:
            UnitNotFoundError: If the unit doesn't exist.
        """
        unit = self.find_unit(unit_id)
        if unit is None:
            raise UnitNotFoundError(str(unit_id))
        return unit

    def count_party_days_in_month(self, unit_id: UUID, window: MonthWindow) -> int:
        stmt = select(func.count(UnitPartyDay.id)).where(
            UnitPartyDay.unit_id == unit_id,
            UnitPartyDay.party_date >= window.first_day,
            UnitPartyDay.party_date < window.next_first_day,
        )
        return self.session.execute(stmt).scalar_one()

    def is_party_day(self, unit_id: UUID, day: date) -> bool:
        stmt = select(UnitPartyDay.id).where(
            UnitPartyDay.unit_id == unit_id,
            UnitPartyDay.party_date == day,
        )
        return self.session.execute(stmt).first() is not None

    def get_unit_allowance_state(
        self,
        unit_id: UUID,
        now: datetime,
        for_update: bool = False,
    ) -> UnitAllowanceState:
        """
        Compute the allowance counters for ``unit_id`` at ``now``.

        Raises:
            UnitNotFoundError: If the unit doesn't exist.
        """
        stmt = select(Unit.free_pass_limit).where(Unit.id == unit_id)
        if for_update:
            stmt = stmt.with_for_update()
        free_pass_limit = self.session.execute(stmt).scalar_one_or_none()
        if free_pass_limit is None:
            raise UnitNotFoundError(str(unit_id))

        tz = self._settings.tz
        window = month_window(now, tz)
        today = local_date(now, tz)

        return UnitAllowanceState(
            unit_id=unit_id,
            today=today,
            free_pass_limit=free_pass_limit,
            free_passes_issued_this_month=self._passes.count_free_passes_in_month(
                unit_id, window.start, window.end
            ),
            party_pass_limit=self._settings.party_pass_limit,
            party_days_consumed_this_month=self.count_party_days_in_month(unit_id, window),
            is_today_already_party_day=self.is_party_day(unit_id, today),
        )
