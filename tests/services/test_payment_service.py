"""
Tests for PaymentService (pass_kernel/services/payment_service.py).

Covers:
- Admin-only access
- payment_required -> paid / waived, exactly once
- Rejection of every other transition
- Only payment_status changes
"""

from uuid import uuid4

import pytest

from pass_kernel.domain.values import ActorRole, PassKind, PaymentStatus
from pass_kernel.exceptions import (
    AdminRequiredError,
    InvalidTransitionError,
    PassNotFoundError,
)


@pytest.fixture
def paid_pass(ledger, make_unit, make_vehicle):
    """A pass issued over the free limit, awaiting payment."""
    unit = make_unit(free_pass_limit=0)
    return ledger.create_pass(unit.id, make_vehicle(unit.id).id)


@pytest.fixture
def free_pass(ledger, unit, vehicle):
    return ledger.create_pass(unit.id, vehicle.id)


class TestAdminTransitions:
    def test_mark_paid(self, payment_service, ledger, paid_pass):
        updated = payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN, actor_id="admin-1")

        assert updated.payment_status == PaymentStatus.PAID
        assert ledger.get_pass(paid_pass.id).payment_status == PaymentStatus.PAID

    def test_waive(self, payment_service, paid_pass):
        updated = payment_service.waive(paid_pass.id, ActorRole.ADMIN)
        assert updated.payment_status == PaymentStatus.WAIVED

    def test_only_payment_status_changes(self, payment_service, paid_pass):
        updated = payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN)

        assert updated.price == paid_pass.price
        assert updated.pass_type == paid_pass.pass_type
        assert updated.created_at == paid_pass.created_at
        assert updated.expires_at == paid_pass.expires_at
        assert updated.vehicle_snapshot == paid_pass.vehicle_snapshot

    def test_generic_update_accepts_string_status(self, payment_service, paid_pass):
        updated = payment_service.update_payment_status(paid_pass.id, "waived", "admin")
        assert updated.payment_status == PaymentStatus.WAIVED


class TestRejectedTransitions:
    def test_mark_paid_twice(self, payment_service, paid_pass):
        payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN)

        with pytest.raises(InvalidTransitionError) as exc_info:
            payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN)

        assert exc_info.value.current == "paid"
        assert exc_info.value.pass_id == str(paid_pass.id)

    def test_waive_after_paid(self, payment_service, paid_pass):
        payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN)

        with pytest.raises(InvalidTransitionError):
            payment_service.waive(paid_pass.id, ActorRole.ADMIN)

    def test_paid_after_waived(self, payment_service, paid_pass):
        payment_service.waive(paid_pass.id, ActorRole.ADMIN)

        with pytest.raises(InvalidTransitionError):
            payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN)

    @pytest.mark.parametrize("target", [PaymentStatus.PAID, PaymentStatus.WAIVED])
    def test_free_pass_is_terminal(self, payment_service, free_pass, target):
        with pytest.raises(InvalidTransitionError):
            payment_service.update_payment_status(free_pass.id, target, ActorRole.ADMIN)

    def test_party_pass_is_terminal(self, payment_service, ledger, unit, vehicle):
        party = ledger.create_pass(unit.id, vehicle.id, PassKind.PARTY)

        with pytest.raises(InvalidTransitionError):
            payment_service.mark_paid(party.id, ActorRole.ADMIN)

    def test_back_to_payment_required_rejected(self, payment_service, paid_pass):
        payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN)

        with pytest.raises(InvalidTransitionError):
            payment_service.update_payment_status(
                paid_pass.id, PaymentStatus.PAYMENT_REQUIRED, ActorRole.ADMIN
            )

    def test_unknown_pass(self, payment_service):
        with pytest.raises(PassNotFoundError):
            payment_service.mark_paid(uuid4(), ActorRole.ADMIN)


class TestAuthorization:
    def test_resident_cannot_change_status(self, payment_service, ledger, paid_pass, captured_logs):
        with pytest.raises(AdminRequiredError) as exc_info:
            payment_service.mark_paid(paid_pass.id, ActorRole.RESIDENT)

        assert exc_info.value.code == "ADMIN_REQUIRED"
        assert ledger.get_pass(paid_pass.id).payment_status == PaymentStatus.PAYMENT_REQUIRED
        assert any(
            r["message"] == "payment_status_change_denied" for r in captured_logs()
        )

    def test_unknown_role_rejected(self, payment_service, paid_pass):
        with pytest.raises(ValueError):
            payment_service.mark_paid(paid_pass.id, "superuser")


class TestQueriesAndLogging:
    def test_list_payment_due(self, payment_service, ledger, make_unit, make_vehicle, deterministic_clock):
        unit = make_unit(free_pass_limit=0)
        first = ledger.create_pass(unit.id, make_vehicle(unit.id).id)
        deterministic_clock.advance(60)
        second = ledger.create_pass(unit.id, make_vehicle(unit.id).id)

        assert [p.id for p in payment_service.list_payment_due()] == [first.id, second.id]

        payment_service.mark_paid(first.id, ActorRole.ADMIN)
        assert [p.id for p in payment_service.list_payment_due()] == [second.id]

    def test_change_logged(self, payment_service, paid_pass, captured_logs):
        payment_service.mark_paid(paid_pass.id, ActorRole.ADMIN, actor_id="admin-7")

        records = [r for r in captured_logs() if r["message"] == "payment_status_changed"]
        assert len(records) == 1
        assert records[0]["to_status"] == "paid"
        assert records[0]["pass_id"] == str(paid_pass.id)
        assert records[0]["actor_id"] == "admin-7"
        assert records[0]["price"] == "5.00"
