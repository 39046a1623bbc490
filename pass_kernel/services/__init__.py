"""Kernel services: flush-only writers over the SQLAlchemy session."""

from pass_kernel.services.base import BaseService
from pass_kernel.services.pass_ledger import PassLedger
from pass_kernel.services.pass_store import PassStore
from pass_kernel.services.payment_service import PaymentService
from pass_kernel.services.unit_service import UnitService
from pass_kernel.services.vehicle_service import VehicleService

__all__ = [
    "BaseService",
    "PassLedger",
    "PassStore",
    "PaymentService",
    "UnitService",
    "VehicleService",
]
