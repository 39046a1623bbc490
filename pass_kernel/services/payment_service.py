"""
PaymentService -- admin-only payment status transitions for paid passes.

Responsibility:
    Moves a pass through the payment state machine
    (``payment_required -> paid | waived``) on behalf of an administrator,
    and lists passes awaiting payment.

Architecture position:
    Kernel > Services -- imperative shell.
    Transition rules live in ``domain/payment.py``; the row update is
    ``PassStore.update_payment_status``.

Invariants enforced:
    - Only ``payment_status`` changes; type, price, snapshot and timestamps
      are untouched (also guarded by the ORM immutability listener).
    - Terminal states (free, paid, waived) never change.
    - Only an ADMIN actor may call a transition.

Failure modes:
    - AdminRequiredError: caller is not an admin.
    - PassNotFoundError: unknown pass.
    - InvalidTransitionError: transition not in VALID_PAYMENT_TRANSITIONS.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy.orm import Session

from pass_kernel.domain.dtos import PassInfo
from pass_kernel.domain.values import ActorRole, PaymentStatus
from pass_kernel.exceptions import AdminRequiredError, InvalidTransitionError
from pass_kernel.logging_config import LogContext, get_logger
from pass_kernel.selectors.pass_selector import PassSelector
from pass_kernel.services.base import BaseService
from pass_kernel.services.pass_store import PassStore

if TYPE_CHECKING:
    from pass_config.schema import AllowanceSettings

logger = get_logger("services.payment")


class PaymentService(BaseService):
    """
    Contract:
        ``update_payment_status`` returns the updated ``PassInfo``; on any
        rejection the pass is unchanged.
    """

    def __init__(self, session: Session, settings: AllowanceSettings):
        super().__init__(session)
        self._store = PassStore(session, settings)
        self._passes = PassSelector(session)

    def update_payment_status(
        self,
        pass_id: UUID,
        new_status: PaymentStatus,
        actor_role: ActorRole,
        actor_id: str | None = None,
    ) -> PassInfo:
        """
        Raises:
            AdminRequiredError, PassNotFoundError, InvalidTransitionError.
        """
        role = ActorRole(actor_role)
        target = PaymentStatus(new_status)

        with LogContext.bind(pass_id=pass_id, actor_id=actor_id):
            if role != ActorRole.ADMIN:
                logger.warning(
                    "payment_status_change_denied",
                    extra={"actor_role": role.value, "target": target.value},
                )
                raise AdminRequiredError(role.value)

            try:
                updated = self._store.update_payment_status(pass_id, target)
            except InvalidTransitionError as exc:
                logger.warning(
                    "payment_transition_rejected",
                    extra={"from_status": exc.current, "to_status": exc.target},
                )
                raise

            logger.info(
                "payment_status_changed",
                extra={
                    "to_status": updated.payment_status.value,
                    "price": updated.price,
                },
            )
            return updated

    def mark_paid(
        self,
        pass_id: UUID,
        actor_role: ActorRole,
        actor_id: str | None = None,
    ) -> PassInfo:
        return self.update_payment_status(pass_id, PaymentStatus.PAID, actor_role, actor_id)

    def waive(
        self,
        pass_id: UUID,
        actor_role: ActorRole,
        actor_id: str | None = None,
    ) -> PassInfo:
        return self.update_payment_status(pass_id, PaymentStatus.WAIVED, actor_role, actor_id)

    def list_payment_due(self) -> list[PassInfo]:
        """Passes still in ``payment_required``, oldest first."""
        return self._passes.list_by_payment_status(PaymentStatus.PAYMENT_REQUIRED)
