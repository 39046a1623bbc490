"""
Module: pass_kernel.models.unit
Responsibility: ORM persistence for buildings, residential units, and the
    party days each unit has consumed.
Architecture position: Kernel > Models.  May import from db/base.py only.
    MUST NOT import from services/, selectors/, domain/, or outer layers.

Invariants enforced:
    - Unit number is unique within a building (uq_unit_building_number).
    - free_pass_limit >= 0 (ck_unit_free_pass_limit).
    - A party date appears at most once per unit (uq_party_day_unit_date),
      which makes party-day append idempotent at the storage layer.
    - Party days are never deleted on their own; only the unit cascade
      removes them (db/immutability.py).
    Not enforced here: party days per month <= party_pass_limit.  That limit
    is global configuration, checked by the decision engine at write time.

Failure modes:
    - IntegrityError on duplicate building number, unit number, or party date.
"""

from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import CheckConstraint, Date, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pass_kernel.db.base import Base, TrackedBase, UUIDString

if TYPE_CHECKING:
    from pass_kernel.models.vehicle import Vehicle
    from pass_kernel.models.visitor_pass import VisitorPass


class Building(TrackedBase):
    """A building; units are addressed as (building number, unit number)."""

    __tablename__ = "buildings"

    __table_args__ = (
        UniqueConstraint("number", name="uq_building_number"),
    )

    number: Mapped[str] = mapped_column(String(20), nullable=False)

    name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    units: Mapped[list["Unit"]] = relationship(
        back_populates="building",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Building {self.number}>"


class Unit(TrackedBase):
    """
    A residential unit with its monthly free-pass limit.

    Contract:
        Deleting a unit deletes its vehicles, passes, and party days.
    """

    __tablename__ = "units"

    __table_args__ = (
        UniqueConstraint("building_id", "number", name="uq_unit_building_number"),
        CheckConstraint("free_pass_limit >= 0", name="ck_unit_free_pass_limit"),
    )

    building_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("buildings.id", ondelete="CASCADE"),
        nullable=False,
    )

    number: Mapped[str] = mapped_column(String(20), nullable=False)

    # Monthly cap on free regular passes
    free_pass_limit: Mapped[int] = mapped_column(nullable=False, default=12)

    building: Mapped[Building] = relationship(back_populates="units")

    party_days: Mapped[list["UnitPartyDay"]] = relationship(
        back_populates="unit",
        cascade="all, delete-orphan",
        order_by="UnitPartyDay.party_date",
    )

    vehicles: Mapped[list["Vehicle"]] = relationship(
        back_populates="unit",
        cascade="all, delete-orphan",
    )

    passes: Mapped[list["VisitorPass"]] = relationship(
        back_populates="unit",
        cascade="all, delete-orphan",
    )

    def __repr__(self) -> str:
        return f"<Unit {self.number} free_pass_limit={self.free_pass_limit}>"


class UnitPartyDay(Base):
    """One consumed party-day allocation: a calendar date in business time."""

    __tablename__ = "unit_party_days"

    __table_args__ = (
        UniqueConstraint("unit_id", "party_date", name="uq_party_day_unit_date"),
        Index("idx_party_day_unit", "unit_id", "party_date"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
    )

    party_date: Mapped[date] = mapped_column(Date, nullable=False)

    unit: Mapped[Unit] = relationship(back_populates="party_days")

    def __repr__(self) -> str:
        return f"<UnitPartyDay {self.unit_id} {self.party_date.isoformat()}>"
