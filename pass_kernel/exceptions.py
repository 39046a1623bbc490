"""
Typed Exception Hierarchy for the Pass Kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (resident dashboard, admin console, HTTP handlers) must react to a
rejected pass request precisely: show the existing expiry, show the party
limit, or retry once after a storage race. Parsing message strings for that
is fragile, so:

  1. Every error has a TYPED exception class (catch by type, not message)
  2. Every exception has a CODE attribute (machine-readable, API-safe)
  3. Exceptions carry structured DATA (not just a message string)

Example - RIGHT way:
    try:
        ledger.create_pass(unit_id, vehicle_id, PassKind.REGULAR)
    except DuplicateActivePassError as e:
        api_response(code=e.code, expires_at=e.expires_at.isoformat())

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    PassKernelError (base)
    |
    +-- LookupFailure
    |   +-- VehicleNotFoundError
    |   +-- UnitNotFoundError
    |   +-- BuildingNotFoundError
    |   +-- PassNotFoundError
    |
    +-- EligibilityError
    |   +-- DuplicateActivePassError
    |   +-- PartyLimitReachedError
    |
    +-- PaymentError
    |   +-- InvalidTransitionError
    |   +-- AdminRequiredError
    |
    +-- ConcurrencyError
    |   +-- ConstraintViolationError
    |
    +-- ImmutabilityError
    |   +-- ImmutabilityViolationError
    |
    +-- ValidationError
        +-- InvalidPlateError
        +-- DuplicateVehicleError
        +-- DuplicateUnitError
        +-- DuplicateBuildingError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Lookup          | VEHICLE_NOT_FOUND           | Vehicle ID doesn't exist (or other unit)
                | UNIT_NOT_FOUND              | Unit ID doesn't exist
                | BUILDING_NOT_FOUND          | Building number/ID doesn't exist
                | PASS_NOT_FOUND              | Pass ID doesn't exist
----------------|-----------------------------|-----------------------------------------
Eligibility     | DUPLICATE_ACTIVE_PASS       | Vehicle already holds a non-expired pass
                | PARTY_LIMIT_REACHED         | Monthly party days exhausted
----------------|-----------------------------|-----------------------------------------
Payment         | INVALID_TRANSITION          | Payment status change not allowed
                | ADMIN_REQUIRED              | Non-admin tried to change payment status
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONSTRAINT_VIOLATION        | Lost the per-vehicle claim race
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Modifying a frozen pass field
----------------|-----------------------------|-----------------------------------------
Validation      | INVALID_PLATE               | Plate empty after normalization
                | DUPLICATE_VEHICLE           | Same plate registered twice in a unit
                | DUPLICATE_UNIT              | Same unit number twice in a building
                | DUPLICATE_BUILDING          | Same building number twice

===============================================================================
HANDLING PATTERNS
===============================================================================

1. User-facing rejections (LookupFailure, EligibilityError) are shown
   verbatim and never retried.

2. ConstraintViolationError is retried ONCE by PassLedger.create_pass.
   A second violation reaches the caller.

3. PaymentError and ImmutabilityError are programming or admin misuse
   errors: surface as a generic failure, never ignore.

===============================================================================
"""

from datetime import datetime


class PassKernelError(Exception):
    """
    Base exception for all pass kernel errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "PASS_KERNEL_ERROR"


# Lookup exceptions


class LookupFailure(PassKernelError):
    """Base exception for references to entities that do not exist."""

    code: str = "LOOKUP_FAILURE"


class VehicleNotFoundError(LookupFailure):
    """Vehicle with given ID was not found."""

    code: str = "VEHICLE_NOT_FOUND"

    def __init__(self, vehicle_id: str):
        self.vehicle_id = vehicle_id
        super().__init__(f"Vehicle not found: {vehicle_id}")


class UnitNotFoundError(LookupFailure):
    """Unit with given ID (or building/unit number pair) was not found."""

    code: str = "UNIT_NOT_FOUND"

    def __init__(self, unit_ref: str):
        self.unit_ref = unit_ref
        super().__init__(f"Unit not found: {unit_ref}")


class BuildingNotFoundError(LookupFailure):
    """Building with given number or ID was not found."""

    code: str = "BUILDING_NOT_FOUND"

    def __init__(self, building_ref: str):
        self.building_ref = building_ref
        super().__init__(f"Building not found: {building_ref}")


class PassNotFoundError(LookupFailure):
    """Pass with given ID was not found."""

    code: str = "PASS_NOT_FOUND"

    def __init__(self, pass_id: str):
        self.pass_id = pass_id
        super().__init__(f"Pass not found: {pass_id}")


# Eligibility exceptions


class EligibilityError(PassKernelError):
    """Base exception for pass requests the allowance rules reject."""

    code: str = "ELIGIBILITY_ERROR"


class DuplicateActivePassError(EligibilityError):
    """The vehicle already holds a pass that has not expired."""

    code: str = "DUPLICATE_ACTIVE_PASS"

    def __init__(self, vehicle_id: str, expires_at: datetime):
        self.vehicle_id = vehicle_id
        self.expires_at = expires_at
        super().__init__(
            f"Vehicle {vehicle_id} already has an active pass expiring at "
            f"{expires_at.isoformat()}"
        )


class PartyLimitReachedError(EligibilityError):
    """The unit has used every party day allowed this month."""

    code: str = "PARTY_LIMIT_REACHED"

    def __init__(self, limit: int, unit_id: str | None = None):
        self.limit = limit
        self.unit_id = unit_id
        super().__init__(f"Party pass limit ({limit}) reached for this month")


# Payment exceptions


class PaymentError(PassKernelError):
    """Base exception for payment status errors."""

    code: str = "PAYMENT_ERROR"


class InvalidTransitionError(PaymentError):
    """Payment status change is not permitted from the current state."""

    code: str = "INVALID_TRANSITION"

    def __init__(self, current: str, target: str, pass_id: str | None = None):
        self.current = current
        self.target = target
        self.pass_id = pass_id
        super().__init__(
            f"Invalid payment status transition: {current} -> {target}"
        )


class AdminRequiredError(PaymentError):
    """Only an administrative actor may change payment status."""

    code: str = "ADMIN_REQUIRED"

    def __init__(self, actor_role: str):
        self.actor_role = actor_role
        super().__init__(
            f"Payment status changes require an admin actor, got: {actor_role}"
        )


# Concurrency exceptions


class ConcurrencyError(PassKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConstraintViolationError(ConcurrencyError):
    """
    A concurrent request claimed the vehicle between check and insert.

    Callers retry the whole create-pass flow once, treating this as if the
    duplicate check had found a pass.
    """

    code: str = "CONSTRAINT_VIOLATION"

    def __init__(self, vehicle_id: str):
        self.vehicle_id = vehicle_id
        super().__init__(
            f"Concurrent active pass detected for vehicle {vehicle_id}"
        )


# Immutability exceptions


class ImmutabilityError(PassKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """Attempted to modify or delete an immutable record."""

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Cannot modify immutable {entity_type} {entity_id}: {reason}"
        )


# Validation exceptions


class ValidationError(PassKernelError):
    """Base exception for invalid registry input."""

    code: str = "VALIDATION_ERROR"


class InvalidPlateError(ValidationError):
    """License plate is empty once separators are stripped."""

    code: str = "INVALID_PLATE"

    def __init__(self, raw_plate: str):
        self.raw_plate = raw_plate
        super().__init__(f"Invalid license plate: {raw_plate!r}")


class DuplicateVehicleError(ValidationError):
    """The unit already has a vehicle with this plate."""

    code: str = "DUPLICATE_VEHICLE"

    def __init__(self, unit_id: str, license_plate: str):
        self.unit_id = unit_id
        self.license_plate = license_plate
        super().__init__(
            f"Unit {unit_id} already has a vehicle with plate {license_plate}"
        )


class DuplicateUnitError(ValidationError):
    """The building already has a unit with this number."""

    code: str = "DUPLICATE_UNIT"

    def __init__(self, building_number: str, unit_number: str):
        self.building_number = building_number
        self.unit_number = unit_number
        super().__init__(
            f"Building {building_number} already has unit {unit_number}"
        )


class DuplicateBuildingError(ValidationError):
    """A building with this number already exists."""

    code: str = "DUPLICATE_BUILDING"

    def __init__(self, building_number: str):
        self.building_number = building_number
        super().__init__(f"Building {building_number} already exists")
