"""Application service: Cancel Order use case.

Cancelling gives the order's stock back: a held reservation is released, an
already committed one is restocked.  Customers may cancel their own orders
only while they are still pending; admins may cancel any open order.

With ``refund=True`` a paid order is marked refunded and the payment
collaborator is asked to refund it once the cancellation has committed.
"""

from __future__ import annotations

from marketcore.application.change_order_status import (
    load_order_for_update,
    refund_request,
    status_notification,
)
from marketcore.application.collaborators import Notifier, PaymentGateway
from marketcore.application.dto import OrderDTO
from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import ForbiddenError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.order import OrderStatus
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.domain.service.inventory_ledger import InventoryLedger
from marketcore.domain.service.order_state_machine import OrderStateMachine


class CancelOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        notifier: Notifier,
        payment_gateway: PaymentGateway,
    ) -> None:
        self._uow_factory = uow_factory
        self._notifier = notifier
        self._payment_gateway = payment_gateway

    def handle(
        self,
        auth: AuthContext,
        order_id: int,
        reason: str | None = None,
        refund: bool = False,
    ) -> OrderDTO:
        def work(uow: UnitOfWork) -> OrderDTO:
            order = load_order_for_update(uow, order_id)
            if not auth.is_admin:
                if not order.is_placed_by(auth.user_id):
                    raise ForbiddenError("You do not have permission to cancel this order")
                if order.status != OrderStatus.PENDING:
                    raise ForbiddenError("Only pending orders can be cancelled by customer")

            machine = OrderStateMachine(InventoryLedger(uow.stock, uow.reservations))
            refund_due = machine.cancel(order, reason or "Cancelled by user", refund, auth.user_id)
            uow.orders.update(order)

            uow.on_commit(status_notification(self._notifier, order))
            if refund_due:
                uow.on_commit(refund_request(self._payment_gateway, order))
            return OrderDTO.from_order(order)

        return run_in_transaction(self._uow_factory, work)
