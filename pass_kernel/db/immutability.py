"""
ORM-Level Immutability Enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

An issued pass is a record of what the unit was granted and what it owes.
If its type, expiry, price, or vehicle snapshot could change after issuance,
the monthly free-pass count and the admin's "payment due" list would stop
meaning anything.  Party days are quota bookkeeping: deleting one would hand
the unit an extra party day.

SQLAlchemy fires events before UPDATE/DELETE operations reach the database.
We register listeners that intercept these events and check our invariants:

    session.flush()
         |
         v
    [before_flush]  --> _check_ledger_deletions_before_flush() ---+
         |                                                        |
         v                                                        v
    [before_update] --> _check_*_immutability() --> ImmutabilityViolationError
         |
         v
    SQL sent to database (only if checks pass)

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity         | What is frozen                    | Deletion
---------------|-----------------------------------|-------------------------------
VisitorPass    | Every column except payment_status| Only with its owning Unit
UnitPartyDay   | Every column                      | Only with its owning Unit

payment_status transitions themselves are validated by the payment state
machine (domain/payment.py); this layer only keeps other columns still.

===============================================================================
USAGE
===============================================================================

Called once at application startup:

    from pass_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

To temporarily disable (TESTS ONLY):

    unregister_immutability_listeners()

===============================================================================
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import get_history

from pass_kernel.exceptions import ImmutabilityViolationError
from pass_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

# Only mutable column on a pass
_PASS_MUTABLE_FIELDS = frozenset({"payment_status"})


def _changed_columns(target) -> list[str]:
    """Column attributes of ``target`` with pending changes."""
    state = inspect(target)
    changed = []
    for attr in state.mapper.column_attrs:
        if get_history(target, attr.key).has_changes():
            changed.append(attr.key)
    return changed


def _reject(entity_type: str, entity_id, operation: str, reason: str):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "reason": reason,
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_pass_immutability(mapper, connection, target):
    """Allow only payment_status to change on an issued pass."""
    frozen = [f for f in _changed_columns(target) if f not in _PASS_MUTABLE_FIELDS]
    if frozen:
        _reject(
            "VisitorPass",
            target.id,
            "UPDATE",
            f"fields {', '.join(sorted(frozen))} are frozen after issuance",
        )


def _check_party_day_immutability(mapper, connection, target):
    """Party days are append-only."""
    changed = _changed_columns(target)
    if changed:
        _reject(
            "UnitPartyDay",
            target.id,
            "UPDATE",
            f"party days cannot be edited (changed: {', '.join(sorted(changed))})",
        )


def _check_ledger_deletions_before_flush(session, flush_context, instances):
    """
    Block deletion of passes and party days unless their unit goes too.

    Runs in SessionEvents.before_flush, before the flush plan is finalized,
    so the unit cascade (Unit -> passes, party_days) is already visible in
    ``session.deleted``.
    """
    from pass_kernel.models.unit import Unit, UnitPartyDay
    from pass_kernel.models.visitor_pass import VisitorPass

    deleted = list(session.deleted)
    deleted_unit_ids = {obj.id for obj in deleted if isinstance(obj, Unit)}

    for obj in deleted:
        if isinstance(obj, VisitorPass) and obj.unit_id not in deleted_unit_ids:
            _reject("VisitorPass", obj.id, "DELETE", "passes are only removed with their unit")
        if isinstance(obj, UnitPartyDay) and obj.unit_id not in deleted_unit_ids:
            _reject("UnitPartyDay", obj.id, "DELETE", "party days are only removed with their unit")


def _listeners():
    from pass_kernel.models.unit import UnitPartyDay
    from pass_kernel.models.visitor_pass import VisitorPass

    return (
        (Session, "before_flush", _check_ledger_deletions_before_flush),
        (VisitorPass, "before_update", _check_pass_immutability),
        (UnitPartyDay, "before_update", _check_party_day_immutability),
    )


def register_immutability_listeners():
    """
    Register all immutability enforcement event listeners (idempotent).

    Call this after all models are imported but before any database
    operations begin.
    """
    for target, event_name, listener_fn in _listeners():
        if not event.contains(target, event_name, listener_fn):
            event.listen(target, event_name, listener_fn)


def unregister_immutability_listeners():
    """
    Remove immutability enforcement event listeners.

    WARNING: Only use this in tests where you need to intentionally
    violate immutability rules to verify detection.
    """
    for target, event_name, listener_fn in _listeners():
        if event.contains(target, event_name, listener_fn):
            event.remove(target, event_name, listener_fn)
