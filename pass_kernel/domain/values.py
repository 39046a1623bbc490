"""
Values -- Immutable domain value objects and enumerations.

Responsibility:
    Provides the vocabulary shared by the decision engine, the ledger, and
    the storage boundary: pass kinds and types, payment statuses, actor
    roles, and the canonical ``VehicleSnapshot``.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - License plates are uppercase alphanumerics with no separators.
    - A ``VehicleSnapshot`` has exactly one shape; stored variants
      (camelCase or snake_case keys) are reconciled in ``from_stored`` and
      nowhere else.
    - Money is Decimal, quantized to cents.

Failure modes:
    - ValueError from ``VehicleSnapshot.from_stored`` when the stored value
      carries no recognizable license plate key.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any

_PLATE_STRIP = re.compile(r"[^A-Za-z0-9]")

CENT = Decimal("0.01")


class PassKind(str, Enum):
    """What the resident asked for."""

    REGULAR = "regular"
    PARTY = "party"


class PassType(str, Enum):
    """What the engine decided the pass is."""

    FREE = "free"
    PAID = "paid"
    PARTY = "party"


class PaymentStatus(str, Enum):
    """
    Payment state of a pass.

    State machine (see domain/payment.py):
        PAYMENT_REQUIRED -> PAID | WAIVED
        FREE, PAID, WAIVED: terminal
    """

    FREE = "free"
    PAID = "paid"
    PAYMENT_REQUIRED = "payment_required"
    WAIVED = "waived"


class PassStatus(str, Enum):
    """Derived status of a pass relative to an evaluation instant."""

    ACTIVE = "active"
    EXPIRED = "expired"


class ActorRole(str, Enum):
    """Who is calling."""

    RESIDENT = "resident"
    ADMIN = "admin"


def normalize_plate(raw: str | None) -> str:
    """Remove spaces, dashes and any other non-alphanumeric, then uppercase."""
    return _PLATE_STRIP.sub("", raw or "").upper()


def quantize_money(amount: Decimal) -> Decimal:
    """Round to cents, half up."""
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class VehicleSnapshot:
    """
    Copy of a vehicle's descriptive fields frozen at pass issuance.

    Guarantees:
        - ``license_plate`` is normalized.
        - ``to_stored()`` / ``from_stored()`` use one canonical key set.
    """

    license_plate: str
    make: str
    model: str
    color: str
    nickname: str | None = None

    def to_stored(self) -> dict[str, Any]:
        return {
            "license_plate": self.license_plate,
            "make": self.make,
            "model": self.model,
            "color": self.color,
            "nickname": self.nickname,
        }

    @classmethod
    def from_stored(cls, raw: dict[str, Any]) -> VehicleSnapshot:
        """
        Build the canonical snapshot from whatever the store holds.

        Accepts ``licensePlate`` (camelCase), ``license_plate`` (snake_case)
        and the legacy lowercase ``licenseplate`` column name.
        """
        plate = (
            raw.get("license_plate")
            or raw.get("licensePlate")
            or raw.get("licenseplate")
        )
        if not plate:
            raise ValueError(f"Stored vehicle snapshot has no license plate: {raw!r}")
        return cls(
            license_plate=normalize_plate(plate),
            make=raw.get("make") or "",
            model=raw.get("model") or "",
            color=raw.get("color") or "",
            nickname=raw.get("nickname") or None,
        )
