"""
VehicleService -- the resident's vehicle registry.

Responsibility:
    Registers, edits, deletes, and lists the vehicles a unit may request
    passes for.

Architecture position:
    Kernel > Services -- imperative shell.

Invariants enforced:
    - Plates are stored normalized (``normalize_plate``); a plate that is
      empty after normalization is rejected.
    - A plate appears once per unit.
    - Editing or deleting a vehicle never touches issued passes; they keep
      the snapshot taken at issuance.

Failure modes:
    - UnitNotFoundError, VehicleNotFoundError.
    - InvalidPlateError, DuplicateVehicleError.
"""

from uuid import UUID

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from pass_kernel.domain.dtos import VehicleInfo
from pass_kernel.domain.values import normalize_plate
from pass_kernel.exceptions import (
    DuplicateVehicleError,
    InvalidPlateError,
    UnitNotFoundError,
    VehicleNotFoundError,
)
from pass_kernel.logging_config import get_logger
from pass_kernel.models.unit import Unit
from pass_kernel.models.vehicle import Vehicle
from pass_kernel.models.visitor_pass import VehiclePassClaim
from pass_kernel.selectors.allowance_selector import vehicle_to_dto
from pass_kernel.services.base import BaseService

logger = get_logger("services.vehicle")


def _clean_plate(raw_plate: str) -> str:
    plate = normalize_plate(raw_plate)
    if not plate:
        raise InvalidPlateError(raw_plate)
    return plate


class VehicleService(BaseService):
    """Vehicle CRUD scoped to a unit."""

    def __init__(self, session: Session):
        super().__init__(session)

    def _plate_taken(self, unit_id: UUID, plate: str, exclude_id: UUID | None = None) -> bool:
        stmt = select(Vehicle.id).where(
            Vehicle.unit_id == unit_id,
            Vehicle.license_plate == plate,
        )
        if exclude_id is not None:
            stmt = stmt.where(Vehicle.id != exclude_id)
        return self.session.execute(stmt).first() is not None

    def _get_row(self, vehicle_id: UUID) -> Vehicle:
        row = self.session.get(Vehicle, vehicle_id)
        if row is None:
            raise VehicleNotFoundError(str(vehicle_id))
        return row

    def _flush_checked(self, unit_id: UUID, plate: str) -> None:
        savepoint = self.session.begin_nested()
        try:
            self.session.flush()
        except IntegrityError:
            savepoint.rollback()
            raise DuplicateVehicleError(str(unit_id), plate) from None
        savepoint.commit()

    def register_vehicle(
        self,
        unit_id: UUID,
        license_plate: str,
        make: str = "",
        model: str = "",
        color: str = "",
        nickname: str | None = None,
    ) -> VehicleInfo:
        """
        Raises:
            UnitNotFoundError, InvalidPlateError, DuplicateVehicleError.
        """
        if self.session.get(Unit, unit_id) is None:
            raise UnitNotFoundError(str(unit_id))

        plate = _clean_plate(license_plate)
        if self._plate_taken(unit_id, plate):
            raise DuplicateVehicleError(str(unit_id), plate)

        row = Vehicle(
            unit_id=unit_id,
            license_plate=plate,
            make=make.strip(),
            model=model.strip(),
            color=color.strip(),
            nickname=(nickname or "").strip() or None,
        )
        self.session.add(row)
        self._flush_checked(unit_id, plate)

        logger.info(
            "vehicle_registered",
            extra={"unit_id": str(unit_id), "vehicle_id": str(row.id), "license_plate": plate},
        )
        return vehicle_to_dto(row)

    def update_vehicle(
        self,
        vehicle_id: UUID,
        license_plate: str | None = None,
        make: str | None = None,
        model: str | None = None,
        color: str | None = None,
        nickname: str | None = None,
    ) -> VehicleInfo:
        """
        Change the given fields; ``None`` leaves a field as is and an empty
        ``nickname`` clears it.

        Raises:
            VehicleNotFoundError, InvalidPlateError, DuplicateVehicleError.
        """
        row = self._get_row(vehicle_id)

        if license_plate is not None:
            plate = _clean_plate(license_plate)
            if self._plate_taken(row.unit_id, plate, exclude_id=row.id):
                raise DuplicateVehicleError(str(row.unit_id), plate)
            row.license_plate = plate
        if make is not None:
            row.make = make.strip()
        if model is not None:
            row.model = model.strip()
        if color is not None:
            row.color = color.strip()
        if nickname is not None:
            row.nickname = nickname.strip() or None

        self._flush_checked(row.unit_id, row.license_plate)
        logger.info("vehicle_updated", extra={"vehicle_id": str(vehicle_id)})
        return vehicle_to_dto(row)

    def delete_vehicle(self, vehicle_id: UUID) -> None:
        """
        Raises:
            VehicleNotFoundError: If the vehicle doesn't exist.
        """
        row = self._get_row(vehicle_id)
        self.session.execute(
            delete(VehiclePassClaim)
            .where(VehiclePassClaim.vehicle_id == vehicle_id)
            .execution_options(synchronize_session=False)
        )
        self.session.delete(row)
        self.session.flush()
        logger.info("vehicle_deleted", extra={"vehicle_id": str(vehicle_id)})

    def list_vehicles_by_unit(self, unit_id: UUID) -> list[VehicleInfo]:
        stmt = (
            select(Vehicle)
            .where(Vehicle.unit_id == unit_id)
            .order_by(Vehicle.license_plate)
        )
        return [vehicle_to_dto(v) for v in self.session.execute(stmt).scalars().all()]
