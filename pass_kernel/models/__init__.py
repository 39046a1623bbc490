"""Domain models for the pass kernel."""

from pass_kernel.models.unit import Building, Unit, UnitPartyDay
from pass_kernel.models.vehicle import Vehicle
from pass_kernel.models.visitor_pass import VehiclePassClaim, VisitorPass

__all__ = [
    "Building",
    "Unit",
    "UnitPartyDay",
    "Vehicle",
    "VehiclePassClaim",
    "VisitorPass",
]
