"""
UnitService -- administration of buildings, units and their allowances.

Responsibility:
    Creates buildings and units, adjusts a unit's free-pass limit, resolves
    a unit from its (building number, unit number) address, deletes units,
    and re-derives party days from party passes.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - A new unit gets ``settings.default_free_pass_limit`` unless the admin
      gives one explicitly.
    - free_pass_limit >= 0.
    - Deleting a unit removes its vehicles, passes, party days and vehicle
      claims.  This is the only path that deletes passes or party days.
    - ``reconcile_party_days`` only adds dates; it never removes one.

Failure modes:
    - BuildingNotFoundError, UnitNotFoundError.
    - DuplicateBuildingError on a repeated building number.
    - DuplicateUnitError on a repeated (building, unit number).
    - ValueError on a negative free-pass limit or a blank number.
"""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pass_kernel.domain.dtos import BuildingInfo, UnitInfo
from pass_kernel.domain.time_window import local_date
from pass_kernel.exceptions import (
    BuildingNotFoundError,
    DuplicateBuildingError,
    DuplicateUnitError,
    UnitNotFoundError,
)
from pass_kernel.logging_config import get_logger
from pass_kernel.models.unit import Building, Unit
from pass_kernel.models.vehicle import Vehicle
from pass_kernel.models.visitor_pass import VehiclePassClaim
from pass_kernel.selectors.allowance_selector import AllowanceSelector
from pass_kernel.selectors.pass_selector import PassSelector
from pass_kernel.services.base import BaseService
from pass_kernel.services.pass_store import PassStore

if TYPE_CHECKING:
    from pass_config.schema import AllowanceSettings

logger = get_logger("services.unit")


def _building_to_dto(row: Building) -> BuildingInfo:
    return BuildingInfo(id=row.id, number=row.number, name=row.name)


def _require_number(value: str, label: str) -> str:
    cleaned = (value or "").strip()
    if not cleaned:
        raise ValueError(f"{label} must not be blank")
    return cleaned


def _require_limit(limit: int) -> int:
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 0:
        raise ValueError(f"free_pass_limit must be an integer >= 0, got {limit!r}")
    return limit


class UnitService(BaseService):
    """
    Contract:
        All methods flush; the caller commits.
    """

    def __init__(self, session: Session, settings: AllowanceSettings):
        super().__init__(session)
        self._settings = settings
        self._lookup = AllowanceSelector(session, settings)
        self._passes = PassSelector(session)
        self._store = PassStore(session, settings)

    # ------------------------------------------------------------------
    # Buildings
    # ------------------------------------------------------------------

    def create_building(self, number: str, name: str | None = None) -> BuildingInfo:
        """
        Raises:
            DuplicateBuildingError, ValueError.
        """
        number = _require_number(number, "building number")
        row = Building(number=number, name=name)
        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateBuildingError(number) from None
        savepoint.commit()

        logger.info("building_created", extra={"building_number": number})
        return _building_to_dto(row)

    def find_building(self, number: str) -> BuildingInfo | None:
        row = self._building_row(number)
        return _building_to_dto(row) if row is not None else None

    def _building_row(self, number: str) -> Building | None:
        return self.session.execute(
            select(Building).where(Building.number == number)
        ).scalar_one_or_none()

    # ------------------------------------------------------------------
    # Units
    # ------------------------------------------------------------------

    def create_unit(
        self,
        building_number: str,
        unit_number: str,
        free_pass_limit: int | None = None,
    ) -> UnitInfo:
        """
        Raises:
            BuildingNotFoundError, DuplicateUnitError, ValueError.
        """
        unit_number = _require_number(unit_number, "unit number")
        building = self._building_row(building_number)
        if building is None:
            raise BuildingNotFoundError(building_number)

        limit = _require_limit(
            self._settings.default_free_pass_limit
            if free_pass_limit is None
            else free_pass_limit
        )

        row = Unit(building_id=building.id, number=unit_number, free_pass_limit=limit)
        savepoint = self.session.begin_nested()
        try:
            self.session.add(row)
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateUnitError(building_number, unit_number) from None
        savepoint.commit()

        logger.info(
            "unit_created",
            extra={
                "unit_id": str(row.id),
                "building_number": building_number,
                "unit_number": unit_number,
                "free_pass_limit": limit,
            },
        )
        return self._lookup.get_unit(row.id)

    def get_unit(self, unit_id: UUID) -> UnitInfo:
        return self._lookup.get_unit(unit_id)

    def find_unit(self, building_number: str, unit_number: str) -> UnitInfo | None:
        return self._lookup.find_unit_by_number(building_number, unit_number)

    def list_units(self, building_number: str) -> list[UnitInfo]:
        building = self._building_row(building_number)
        if building is None:
            raise BuildingNotFoundError(building_number)
        rows = self.session.execute(
            select(Unit.id).where(Unit.building_id == building.id).order_by(Unit.number)
        ).scalars().all()
        return [self._lookup.get_unit(unit_id) for unit_id in rows]

    def update_free_pass_limit(self, unit_id: UUID, free_pass_limit: int) -> UnitInfo:
        """
        Change the unit's monthly free-pass cap.  Already-issued passes keep
        their type; the new cap applies to the next request.

        Raises:
            UnitNotFoundError, ValueError.
        """
        limit = _require_limit(free_pass_limit)
        row = self.session.get(Unit, unit_id)
        if row is None:
            raise UnitNotFoundError(str(unit_id))

        old_limit = row.free_pass_limit
        row.free_pass_limit = limit
        self.session.flush()
        logger.info(
            "free_pass_limit_updated",
            extra={"unit_id": str(unit_id), "old_limit": old_limit, "new_limit": limit},
        )
        return self._lookup.get_unit(unit_id)

    def delete_unit(self, unit_id: UUID) -> None:
        """
        Delete a unit with its vehicles, passes and party days.

        Raises:
            UnitNotFoundError: If the unit doesn't exist.
        """
        row = self.session.get(Unit, unit_id)
        if row is None:
            raise UnitNotFoundError(str(unit_id))

        vehicle_ids = self.session.execute(
            select(Vehicle.id).where(Vehicle.unit_id == unit_id)
        ).scalars().all()
        if vehicle_ids:
            self.session.execute(
                delete(VehiclePassClaim)
                .where(VehiclePassClaim.vehicle_id.in_(vehicle_ids))
                .execution_options(synchronize_session=False)
            )

        self.session.delete(row)
        self.session.flush()
        logger.info("unit_deleted", extra={"unit_id": str(unit_id)})

    # ------------------------------------------------------------------
    # Party days
    # ------------------------------------------------------------------

    def reconcile_party_days(self, unit_id: UUID) -> list[date]:
        """
        Record the business-local date of every party pass that is missing
        from the unit's party days.

        Returns:
            The dates added, oldest first.

        Raises:
            UnitNotFoundError: If the unit doesn't exist.
        """
        self._lookup.get_unit(unit_id)
        recorded = set(self._lookup.list_party_days(unit_id))

        wanted = sorted({
            local_date(p.created_at, self._settings.tz)
            for p in self._passes.list_party_passes(unit_id)
        })
        added: list[date] = []
        for day in wanted:
            if day in recorded:
                continue
            if self._store.append_party_day(unit_id, day):
                added.append(day)

        if added:
            logger.warning(
                "party_days_reconciled",
                extra={"unit_id": str(unit_id), "added": [d.isoformat() for d in added]},
            )
        return added
