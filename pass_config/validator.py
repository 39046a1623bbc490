"""
Settings Validator (``pass_config.validator``).

Responsibility
--------------
Validates an ``AllowanceSettings`` value before it is handed to services.
Collects every problem instead of stopping at the first one.

Invariants enforced
-------------------
* ``price_per_pass`` > 0, at most two decimal places.
* ``party_pass_limit`` and ``default_free_pass_limit`` >= 0.
* ``timezone`` resolves to an IANA zone.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from zoneinfo import ZoneInfoNotFoundError

from pass_config.schema import AllowanceSettings


@dataclass
class ConfigValidationResult:
    """
    Result of settings validation.

    ``is_valid`` returns ``True`` only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_settings(settings: AllowanceSettings) -> ConfigValidationResult:
    """
    Validate a settings value.

    Postconditions:
        - Returns a ``ConfigValidationResult``; never raises for bad values.
    """
    result = ConfigValidationResult()

    price = settings.price_per_pass
    if not isinstance(price, Decimal):
        result.add_error(f"price_per_pass must be a Decimal, got {type(price).__name__}")
    elif not price.is_finite() or price <= 0:
        result.add_error(f"price_per_pass must be positive, got {price}")
    elif price.as_tuple().exponent < -2:
        result.add_error(f"price_per_pass has more than two decimal places: {price}")

    for name in ("party_pass_limit", "default_free_pass_limit"):
        value = getattr(settings, name)
        if isinstance(value, bool) or not isinstance(value, int):
            result.add_error(f"{name} must be an integer, got {value!r}")
        elif value < 0:
            result.add_error(f"{name} must be >= 0, got {value}")

    if settings.default_free_pass_limit == 0:
        result.add_warning("default_free_pass_limit is 0, every regular pass in a new unit is paid")

    try:
        settings.tz
    except (ZoneInfoNotFoundError, ValueError) as exc:
        result.add_error(f"Unknown timezone {settings.timezone!r}: {exc}")

    if not isinstance(settings.serialize_unit_allowance, bool):
        result.add_error(
            f"serialize_unit_allowance must be a boolean, got {settings.serialize_unit_allowance!r}"
        )

    return result
