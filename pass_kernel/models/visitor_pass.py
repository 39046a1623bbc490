"""
Module: pass_kernel.models.visitor_pass
Responsibility: ORM persistence for issued visitor passes and the per-vehicle
    claim row that serializes pass issuance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - At most one active pass per vehicle.  ``vehicle_pass_claims`` holds one
      row per vehicle (uq_claim_vehicle) recording the expiry of the pass that
      currently owns the vehicle.  A new pass may take the claim only when the
      held expiry is <= now (conditional UPDATE) or when no row exists (INSERT,
      protected by the unique key).  Two concurrent issuers cannot both win.
    - Pass immutability: every column except payment_status is frozen after
      INSERT (db/immutability.py).
    - price is non-null exactly for paid passes (ck_pass_price_paid_only).
    - expires_at > created_at (ck_pass_expiry_after_creation).

Failure modes:
    - IntegrityError on uq_claim_vehicle when two issuers race for a vehicle
      with no claim row yet; translated to ConstraintViolationError by the
      pass store.
"""

from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import JSON, CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from pass_kernel.db.base import Base, UUIDString

if TYPE_CHECKING:
    from pass_kernel.models.unit import Unit


class VisitorPass(Base):
    """
    A 24-hour authorization for one vehicle.

    Contract:
        Created only by PassLedger.  payment_status changes only through
        PaymentService.  Deleted only when the owning unit is deleted.
    """

    __tablename__ = "passes"

    __table_args__ = (
        CheckConstraint(
            "(pass_type = 'paid' AND price IS NOT NULL) "
            "OR (pass_type <> 'paid' AND price IS NULL)",
            name="ck_pass_price_paid_only",
        ),
        CheckConstraint(
            "expires_at > created_at",
            name="ck_pass_expiry_after_creation",
        ),
        Index("idx_pass_vehicle_expiry", "vehicle_id", "expires_at"),
        Index("idx_pass_unit_type_created", "unit_id", "pass_type", "created_at"),
        Index("idx_pass_created", "created_at"),
    )

    unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("units.id", ondelete="CASCADE"),
        nullable=False,
    )

    # No foreign key: the vehicle may be edited or deleted after issuance
    vehicle_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    # Canonical snapshot (see VehicleSnapshot.to_stored)
    vehicle_snapshot: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(nullable=False)

    expires_at: Mapped[datetime] = mapped_column(nullable=False)

    pass_type: Mapped[str] = mapped_column(String(20), nullable=False)

    payment_status: Mapped[str] = mapped_column(String(20), nullable=False)

    price: Mapped[Decimal | None] = mapped_column(nullable=True)

    unit: Mapped["Unit"] = relationship(back_populates="passes")

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now

    def __repr__(self) -> str:
        return (
            f"<VisitorPass {self.id} {self.pass_type}/{self.payment_status} "
            f"expires={self.expires_at.isoformat()}>"
        )


class VehiclePassClaim(Base):
    """
    Which pass currently owns a vehicle, and until when.

    One row per vehicle ever issued a pass.  The row is rewritten in place
    when a new pass is issued after the previous one expired.
    """

    __tablename__ = "vehicle_pass_claims"

    __table_args__ = (
        UniqueConstraint("vehicle_id", name="uq_claim_vehicle"),
    )

    vehicle_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    pass_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        nullable=False,
    )

    expires_at: Mapped[datetime] = mapped_column(nullable=False)
