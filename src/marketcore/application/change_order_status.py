"""Application service: Change Order Status use case.

The order row is locked for the whole unit and written back with a version
check, so two concurrent requests can never both move the order out of the
same prior state.  Refunding a delivered order also locks the vendor rows
and is refused once the vendor has been paid out those earnings.
"""

from __future__ import annotations

from marketcore.application.access import ensure_can_manage
from marketcore.application.collaborators import Notifier, PaymentGateway, fire_and_forget
from marketcore.application.dto import OrderDTO
from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import NotFoundError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.order import Order, OrderStatus, PaymentStatus
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.domain.service.inventory_ledger import InventoryLedger
from marketcore.domain.service.order_state_machine import OrderStateMachine
from marketcore.domain.service.payout_balance_engine import PayoutBalanceEngine


def load_order_for_update(uow: UnitOfWork, order_id: int) -> Order:
    order = uow.orders.get_for_update(order_id)
    if order is None:
        raise NotFoundError(f"Order #{order_id} not found")
    return order


def status_notification(notifier: Notifier, order: Order):
    return fire_and_forget(
        "notification_failed",
        lambda: notifier.notify(
            "order_status",
            "Order status changed",
            f"Order {order.order_number} is now {order.status.value}",
        ),
        order_id=order.id,
    )


def refund_request(gateway: PaymentGateway, order: Order):
    amount = order.grand_total
    return fire_and_forget(
        "refund_failed",
        lambda: gateway.refund(order.order_number, amount.amount, amount.currency),
        order_id=order.id,
    )


class ChangeOrderStatusHandler:

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
        status: str,
        reason: str | None = None,
    ) -> OrderDTO:
        target = OrderStatus.parse(status)

        def work(uow: UnitOfWork) -> OrderDTO:
            order = load_order_for_update(uow, order_id)
            ensure_can_manage(uow, auth, order)

            if order.status == OrderStatus.DELIVERED and target == OrderStatus.REFUNDED:
                PayoutBalanceEngine(uow.vendors, uow.orders, uow.payouts).ensure_refund_covered(order)

            was_paid = order.is_paid
            machine = OrderStateMachine(InventoryLedger(uow.stock, uow.reservations))
            machine.transition(order, target, reason, auth.user_id)
            uow.orders.update(order)

            uow.on_commit(status_notification(self._notifier, order))
            if was_paid and order.payment_status == PaymentStatus.REFUNDED:
                uow.on_commit(refund_request(self._payment_gateway, order))
            return OrderDTO.from_order(order)

        return run_in_transaction(self._uow_factory, work)
