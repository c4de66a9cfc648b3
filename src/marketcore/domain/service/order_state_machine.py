"""Domain service: Order State Machine.

Owns ``Order.status``.  Every status change in the system goes through
``transition`` (or one of the helpers built on it), which checks the edge
against the transition graph, applies the stock side effect through the
InventoryLedger and appends the change to the order's history.

Graph::

    pending    -> confirmed, cancelled, failed
    confirmed  -> processing, cancelled
    processing -> shipped, cancelled
    shipped    -> delivered
    delivered  -> refunded
    any non-terminal -> refunded   (paid orders only)
"""

from __future__ import annotations

import structlog

from marketcore.domain.exceptions import ConflictError, InvalidTransitionError
from marketcore.domain.model.order import Order, OrderStatus, PaymentStatus, StatusChange
from marketcore.domain.service.inventory_ledger import InventoryLedger

logger = structlog.get_logger(__name__)

S = OrderStatus

TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    S.PENDING: frozenset({S.CONFIRMED, S.CANCELLED, S.FAILED}),
    S.CONFIRMED: frozenset({S.PROCESSING, S.CANCELLED}),
    S.PROCESSING: frozenset({S.SHIPPED, S.CANCELLED}),
    S.SHIPPED: frozenset({S.DELIVERED}),
    S.DELIVERED: frozenset({S.REFUNDED}),
    S.CANCELLED: frozenset(),
    S.REFUNDED: frozenset(),
    S.FAILED: frozenset(),
}

TERMINAL_STATES = frozenset({S.CANCELLED, S.REFUNDED, S.DELIVERED, S.FAILED})

# Statuses whose arrival gives the order's stock back.
STOCK_RETURNING_STATES = frozenset({S.CANCELLED, S.FAILED, S.REFUNDED})


def is_terminal(status: OrderStatus) -> bool:
    return status in TERMINAL_STATES


def can_transition(order: Order, target: OrderStatus) -> bool:
    if target in TRANSITIONS[order.status]:
        return True
    # Paid orders can be refunded from anywhere that is still open.
    return target == S.REFUNDED and not is_terminal(order.status) and order.is_paid


def is_valid_walk(statuses: list[OrderStatus], paid: bool = False) -> bool:
    """True when ``statuses`` (starting at PENDING) only follows legal edges."""
    if not statuses or statuses[0] != S.PENDING:
        return False
    for current, target in zip(statuses, statuses[1:]):
        if target in TRANSITIONS[current]:
            continue
        if target == S.REFUNDED and paid and not is_terminal(current):
            continue
        return False
    return True


class OrderStateMachine:

    def __init__(self, ledger: InventoryLedger) -> None:
        self._ledger = ledger

    def open(self, **kwargs) -> Order:
        """Create a new order in its initial (PENDING) state."""
        return Order.place(**kwargs)

    def transition(
        self,
        order: Order,
        target: OrderStatus,
        reason: str | None = None,
        actor_id: int | None = None,
    ) -> StatusChange:
        if not can_transition(order, target):
            logger.info(
                "order_transition_rejected",
                order_id=order.id,
                current=order.status.value,
                target=target.value,
            )
            raise InvalidTransitionError(order.status.value, target.value)

        self._apply_stock_effect(order, target)
        if target == S.REFUNDED and order.is_paid:
            order.record_payment(PaymentStatus.REFUNDED)
        change = order.record_status(target, reason, actor_id)
        logger.info(
            "order_transitioned",
            order_id=order.id,
            from_status=change.from_status.value if change.from_status else None,
            to_status=target.value,
            reason=reason,
        )
        return change

    def cancel(
        self,
        order: Order,
        reason: str | None = None,
        refund: bool = False,
        actor_id: int | None = None,
    ) -> bool:
        """Cancel the order.  Returns True when a monetary refund is due."""
        was_paid = order.is_paid
        self.transition(order, S.CANCELLED, reason or "Cancelled", actor_id)
        if refund and was_paid:
            order.record_payment(PaymentStatus.REFUNDED)
            return True
        return False

    def record_payment(
        self,
        order: Order,
        payment_status: PaymentStatus,
        actor_id: int | None = None,
    ) -> list[StatusChange]:
        """Apply a payment result reported by the payment collaborator.

        ``paid`` commits the stock and confirms a pending order.  ``failed``
        fails a pending order, which releases its stock.
        """
        if payment_status not in (PaymentStatus.PAID, PaymentStatus.FAILED):
            raise ConflictError(f"Cannot record payment as {payment_status.value}")
        if order.payment_status == payment_status:
            return []
        if order.payment_status != PaymentStatus.PENDING:
            raise ConflictError(
                f"Payment for order {order.order_number} is already {order.payment_status.value}"
            )
        if is_terminal(order.status) and order.status != S.DELIVERED:
            raise ConflictError(f"Order {order.order_number} is {order.status.value}")

        changes: list[StatusChange] = []
        order.record_payment(payment_status)
        if payment_status == PaymentStatus.PAID:
            if order.reservation_token and order.status != S.DELIVERED:
                self._ledger.commit(order.reservation_token)
            if order.status == S.PENDING:
                changes.append(self.transition(order, S.CONFIRMED, "Payment received", actor_id))
        elif order.status == S.PENDING:
            changes.append(self.transition(order, S.FAILED, "Payment failed", actor_id))
        return changes

    # --- Internal helpers -----------------------------------------------------

    def _apply_stock_effect(self, order: Order, target: OrderStatus) -> None:
        token = order.reservation_token
        if token is None:
            return
        if target in STOCK_RETURNING_STATES:
            self._ledger.return_to_stock(token)
        elif target == S.SHIPPED:
            self._ledger.commit(token)
