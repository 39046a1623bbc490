"""
AllowanceSettings schema.

The admin-global settings that the decision engine and the ledger read:
price of an overflow pass, monthly party-day limit, default monthly free-pass
limit for new units, and the business timezone in which
months and days are counted.

Settings are a frozen value.  An admin edit produces a new value via
``with_overrides``; services receive the value explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timezone, tzinfo
from decimal import Decimal
from typing import Any
from zoneinfo import ZoneInfo


@dataclass(frozen=True)
class AllowanceSettings:
    """Validated, immutable allowance configuration."""

    price_per_pass: Decimal = Decimal("5.00")
    party_pass_limit: int = 3
    default_free_pass_limit: int = 12
    timezone: str = "UTC"
    serialize_unit_allowance: bool = False
    config_id: str = "defaults"

    @property
    def tz(self) -> tzinfo:
        """The business timezone as a tzinfo."""
        if self.timezone.upper() == "UTC":
            return timezone.utc
        return ZoneInfo(self.timezone)

    def with_overrides(self, **changes: Any) -> AllowanceSettings:
        """
        Return a new settings value with ``changes`` applied and validated.

        Raises:
            ValueError: if the result fails validation.
        """
        from pass_config.validator import validate_settings

        if "price_per_pass" in changes:
            changes["price_per_pass"] = Decimal(str(changes["price_per_pass"]))
        updated = replace(self, **changes)
        result = validate_settings(updated)
        if not result.is_valid:
            raise ValueError(
                "Settings validation failed:\n"
                + "\n".join(f"  - {e}" for e in result.errors)
            )
        return updated
