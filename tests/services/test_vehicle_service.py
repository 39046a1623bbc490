"""
Tests for VehicleService (pass_kernel/services/vehicle_service.py).

Covers:
- Registration with plate normalization
- Duplicate and empty plates
- Editing and deleting without touching issued passes
"""

from uuid import uuid4

import pytest
from sqlalchemy import func, select

from pass_kernel.exceptions import (
    DuplicateVehicleError,
    InvalidPlateError,
    UnitNotFoundError,
    VehicleNotFoundError,
)
from pass_kernel.models.visitor_pass import VehiclePassClaim


class TestRegister:
    def test_plate_is_normalized(self, vehicle_service, unit):
        v = vehicle_service.register_vehicle(unit.id, " abc-123 ", "Toyota", "Corolla", "Red")

        assert v.license_plate == "ABC123"
        assert v.unit_id == unit.id
        assert v.make == "Toyota"
        assert v.nickname is None

    def test_blank_nickname_stored_as_none(self, vehicle_service, unit):
        v = vehicle_service.register_vehicle(unit.id, "X1", nickname="   ")
        assert v.nickname is None

    @pytest.mark.parametrize("plate", ["", "  ", "--", "..."])
    def test_empty_plate_rejected(self, vehicle_service, unit, plate):
        with pytest.raises(InvalidPlateError):
            vehicle_service.register_vehicle(unit.id, plate)

    def test_same_plate_twice_in_unit_rejected(self, vehicle_service, unit):
        vehicle_service.register_vehicle(unit.id, "ABC123")

        with pytest.raises(DuplicateVehicleError) as exc_info:
            vehicle_service.register_vehicle(unit.id, "abc 123")

        assert exc_info.value.license_plate == "ABC123"

    def test_same_plate_in_other_unit_allowed(self, vehicle_service, make_unit):
        a, b = make_unit(), make_unit()
        vehicle_service.register_vehicle(a.id, "ABC123")

        assert vehicle_service.register_vehicle(b.id, "ABC123").unit_id == b.id

    def test_unknown_unit(self, vehicle_service):
        with pytest.raises(UnitNotFoundError):
            vehicle_service.register_vehicle(uuid4(), "ABC123")

    def test_list_ordered_by_plate(self, vehicle_service, unit):
        for plate in ("ZED1", "ALPHA2", "MID3"):
            vehicle_service.register_vehicle(unit.id, plate)

        plates = [v.license_plate for v in vehicle_service.list_vehicles_by_unit(unit.id)]
        assert plates == ["ALPHA2", "MID3", "ZED1"]


class TestUpdate:
    def test_update_fields(self, vehicle_service, vehicle):
        updated = vehicle_service.update_vehicle(vehicle.id, color="Green", nickname="")

        assert updated.color == "Green"
        assert updated.nickname is None
        assert updated.make == vehicle.make

    def test_update_plate_normalized(self, vehicle_service, vehicle):
        assert vehicle_service.update_vehicle(vehicle.id, license_plate="new-1").license_plate == "NEW1"

    def test_update_to_taken_plate_rejected(self, vehicle_service, unit, vehicle):
        vehicle_service.register_vehicle(unit.id, "OTHER1")

        with pytest.raises(DuplicateVehicleError):
            vehicle_service.update_vehicle(vehicle.id, license_plate="other-1")

    def test_update_to_own_plate_allowed(self, vehicle_service, vehicle):
        assert vehicle_service.update_vehicle(vehicle.id, license_plate="abc 123").license_plate == "ABC123"

    def test_update_unknown_vehicle(self, vehicle_service):
        with pytest.raises(VehicleNotFoundError):
            vehicle_service.update_vehicle(uuid4(), color="Red")

    def test_issued_pass_keeps_snapshot(self, vehicle_service, ledger, unit, vehicle):
        issued = ledger.create_pass(unit.id, vehicle.id)

        vehicle_service.update_vehicle(vehicle.id, license_plate="CHANGED9", color="Black")

        stored = ledger.get_pass(issued.id)
        assert stored.vehicle_snapshot.license_plate == "ABC123"
        assert stored.vehicle_snapshot.color == "Blue"

    def test_new_pass_uses_current_fields(self, vehicle_service, ledger, unit, vehicle, deterministic_clock):
        ledger.create_pass(unit.id, vehicle.id)
        vehicle_service.update_vehicle(vehicle.id, color="Black")
        deterministic_clock.advance_hours(25)

        assert ledger.create_pass(unit.id, vehicle.id).vehicle_snapshot.color == "Black"


class TestDelete:
    def test_delete_vehicle(self, vehicle_service, unit, vehicle):
        vehicle_service.delete_vehicle(vehicle.id)
        assert vehicle_service.list_vehicles_by_unit(unit.id) == []

    def test_delete_keeps_passes(self, vehicle_service, ledger, unit, vehicle):
        issued = ledger.create_pass(unit.id, vehicle.id)

        vehicle_service.delete_vehicle(vehicle.id)

        history = ledger.list_passes_by_unit(unit.id)
        assert [p.id for p in history] == [issued.id]
        assert history[0].vehicle_snapshot.license_plate == "ABC123"

    def test_delete_releases_claim(self, session, vehicle_service, ledger, unit, vehicle):
        ledger.create_pass(unit.id, vehicle.id)

        vehicle_service.delete_vehicle(vehicle.id)

        claims = session.execute(
            select(func.count())
            .select_from(VehiclePassClaim)
            .where(VehiclePassClaim.vehicle_id == vehicle.id)
        ).scalar_one()
        assert claims == 0

    def test_deleted_vehicle_cannot_get_pass(self, vehicle_service, ledger, unit, vehicle):
        vehicle_service.delete_vehicle(vehicle.id)

        with pytest.raises(VehicleNotFoundError):
            ledger.create_pass(unit.id, vehicle.id)

    def test_delete_unknown_vehicle(self, vehicle_service):
        with pytest.raises(VehicleNotFoundError):
            vehicle_service.delete_vehicle(uuid4())
