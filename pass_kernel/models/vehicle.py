"""
Module: pass_kernel.models.vehicle
Responsibility: ORM persistence for resident vehicles.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - license_plate is stored normalized (uppercase alphanumerics); the
      vehicle service normalizes before writing.
    - A plate appears at most once per unit (uq_vehicle_unit_plate).

Vehicles are mutable and deletable.  Passes never reference vehicle rows
through a foreign key: they carry a frozen snapshot, so editing or deleting
a vehicle leaves issued passes untouched.
"""

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pass_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from pass_kernel.models.unit import Unit


class Vehicle(TrackedBase):
    """A vehicle registered to exactly one unit."""

    __tablename__ = "vehicles"

    __table_args__ = (
        UniqueConstraint("unit_id", "license_plate", name="uq_vehicle_unit_plate"),
        Index("idx_vehicle_unit", "unit_id"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
    )

    license_plate: Mapped[str] = mapped_column(String(20), nullable=False)

    make: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    model: Mapped[str] = mapped_column(String(50), nullable=False, default="")

    color: Mapped[str] = mapped_column(String(30), nullable=False, default="")

    nickname: Mapped[str | None] = mapped_column(String(100), nullable=True)

    unit: Mapped["Unit"] = relationship(back_populates="vehicles")

    def __repr__(self) -> str:
        return f"<Vehicle {self.license_plate} ({self.make} {self.model})>"
