"""
DTOs -- immutable records passed across the selector / service boundary.

Selectors and services return these instead of ORM entities, so callers
never hold a live row they could mutate outside the ledger's rules.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from pass_kernel.domain.values import (
    PassStatus,
    PassType,
    PaymentStatus,
    VehicleSnapshot,
)


@dataclass(frozen=True)
class VehicleInfo:
    id: UUID
    unit_id: UUID
    license_plate: str
    make: str
    model: str
    color: str
    nickname: str | None = None

    def snapshot(self) -> VehicleSnapshot:
        """Freeze the vehicle's current descriptive fields."""
        return VehicleSnapshot(
            license_plate=self.license_plate,
            make=self.make,
            model=self.model,
            color=self.color,
            nickname=self.nickname,
        )


@dataclass(frozen=True)
class BuildingInfo:
    id: UUID
    number: str
    name: str | None = None


@dataclass(frozen=True)
class UnitInfo:
    id: UUID
    building_id: UUID
    building_number: str
    number: str
    free_pass_limit: int
    party_days: tuple[date, ...] = ()


@dataclass(frozen=True)
class PassWrite:
    """Everything needed to insert a pass; built by the ledger from a decision."""

    unit_id: UUID
    vehicle_id: UUID
    vehicle_snapshot: VehicleSnapshot
    created_at: datetime
    expires_at: datetime
    pass_type: PassType
    payment_status: PaymentStatus
    price: Decimal | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass(frozen=True)
class PassInfo:
    """An issued pass."""

    id: UUID
    unit_id: UUID
    vehicle_id: UUID
    vehicle_snapshot: VehicleSnapshot
    created_at: datetime
    expires_at: datetime
    pass_type: PassType
    payment_status: PaymentStatus
    price: Decimal | None = None

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def status_at(self, now: datetime) -> PassStatus:
        return PassStatus.ACTIVE if self.is_active(now) else PassStatus.EXPIRED
