"""Application service: Record Payment use case.

Called when the payment collaborator reports the outcome of a charge.
``paid`` commits the order's stock and confirms a pending order; ``failed``
fails a pending order and releases its stock.  Admin only.
"""

from __future__ import annotations

from marketcore.application.change_order_status import load_order_for_update, status_notification
from marketcore.application.collaborators import Notifier, fire_and_forget
from marketcore.application.dto import OrderDTO
from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import ForbiddenError, ValidationError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.order import PaymentStatus
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.domain.service.inventory_ledger import InventoryLedger
from marketcore.domain.service.order_state_machine import OrderStateMachine

ACCEPTED = {"paid": PaymentStatus.PAID, "failed": PaymentStatus.FAILED}


class RecordPaymentHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory, notifier: Notifier) -> None:
        self._uow_factory = uow_factory
        self._notifier = notifier

    def handle(self, auth: AuthContext, order_id: int, payment_status: str) -> OrderDTO:
        if not auth.is_admin:
            raise ForbiddenError("Only admin or gateway may update payment status")
        status = ACCEPTED.get(str(payment_status).strip().lower())
        if status is None:
            raise ValidationError(
                "Invalid payment status", errors={"status": "Payment status must be 'paid' or 'failed'"}
            )

        def work(uow: UnitOfWork) -> OrderDTO:
            order = load_order_for_update(uow, order_id)
            machine = OrderStateMachine(InventoryLedger(uow.stock, uow.reservations))
            changes = machine.record_payment(order, status, auth.user_id)
            uow.orders.update(order)

            if status == PaymentStatus.PAID:
                uow.on_commit(
                    fire_and_forget(
                        "notification_failed",
                        lambda: self._notifier.notify(
                            "payment",
                            "Payment received",
                            f"Payment of {order.grand_total} received for order {order.order_number}",
                        ),
                        order_id=order.id,
                    )
                )
            if changes:
                uow.on_commit(status_notification(self._notifier, order))
            return OrderDTO.from_order(order)

        return run_in_transaction(self._uow_factory, work)
