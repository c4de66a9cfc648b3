"""Application service: Create Order use case.

Idempotency check, intake, stock reservation and order insert happen in one
unit of work: if any of them fails nothing is persisted.  The notification
goes out only after commit.

A unique-key collision on ``client_provided_id`` means a concurrent request
with the same key committed first; the whole unit is retried once and the
IdempotencyGuard then answers with the winner's order.
"""

from __future__ import annotations

import dataclasses
from decimal import Decimal

import structlog

from marketcore.application.collaborators import Notifier, fire_and_forget
from marketcore.application.dto import OrderDTO, PlacedOrderDTO
from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import DuplicateKeyError, ForbiddenError, TransientStorageError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.draft import OrderDraft
from marketcore.domain.model.order import Order, OrderItem
from marketcore.domain.model.value_objects import Money, Quantity
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.domain.service.idempotency_guard import Duplicate, IdempotencyGuard
from marketcore.domain.service.inventory_ledger import InventoryLedger
from marketcore.domain.service.order_intake import (
    OrderIntake,
    ValidatedOrder,
    normalize_client_id,
    request_fingerprint,
)
from marketcore.domain.service.order_state_machine import OrderStateMachine

logger = structlog.get_logger(__name__)


class CreateOrderHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        notifier: Notifier,
        payment_methods: frozenset[str] | set[str],
        base_currency: str = "USD",
    ) -> None:
        self._uow_factory = uow_factory
        self._notifier = notifier
        self._payment_methods = frozenset(payment_methods)
        self._base_currency = base_currency

    def handle(self, auth: AuthContext, draft: OrderDraft) -> PlacedOrderDTO:
        """Place an order on behalf of ``auth``.

        Signed-in customers order as themselves: a missing customer
        reference is filled in from ``auth``, and only admins may name
        another user.
        """
        draft = self._bind_customer(auth, draft)
        return run_in_transaction(
            self._uow_factory,
            lambda uow: self._place(uow, auth, draft),
            retry_on=(TransientStorageError, DuplicateKeyError),
        )

    # --- Steps ----------------------------------------------------------------

    @staticmethod
    def _bind_customer(auth: AuthContext, draft: OrderDraft) -> OrderDraft:
        has_user = draft.user_id not in (None, "")
        has_email = isinstance(draft.guest_email, str) and draft.guest_email.strip() != ""
        if not has_user and not has_email and auth.user_id is not None:
            return dataclasses.replace(draft, user_id=auth.user_id)
        if has_user and not auth.is_admin and str(draft.user_id).strip() != str(auth.user_id):
            raise ForbiddenError("You may only place orders for your own account")
        return draft

    def _place(self, uow: UnitOfWork, auth: AuthContext, draft: OrderDraft) -> PlacedOrderDTO:
        # Replays are answered from the stored order, before any catalog lookup.
        fingerprint = request_fingerprint(draft, self._base_currency)
        client_id = normalize_client_id(draft.client_provided_id)
        admission = IdempotencyGuard(uow.orders).admit(client_id, fingerprint)
        if isinstance(admission, Duplicate):
            return PlacedOrderDTO(order=OrderDTO.from_order(admission.order), created=False)

        intake = OrderIntake(
            uow.products, uow.stock, uow.accounts, self._payment_methods, self._base_currency
        )
        validated = intake.validate(draft).unwrap()

        ledger = InventoryLedger(uow.stock, uow.reservations)
        reservation = ledger.reserve([(line.sku, line.quantity) for line in validated.lines])

        machine = OrderStateMachine(ledger)
        order = machine.open(
            customer=validated.customer,
            items=self._snapshot_items(uow, validated),
            payment_method=validated.payment_method,
            currency=validated.currency,
            shipping_fee=Money(validated.shipping_fee, validated.currency),
            discount_amount=Money(validated.discount_amount, validated.currency),
            reservation_token=reservation.token,
            client_provided_id=validated.client_provided_id,
            request_fingerprint=fingerprint,
            shipping_address=validated.shipping_address,
            billing_address=validated.billing_address,
            notes=validated.notes,
            actor_id=auth.user_id,
        )
        uow.orders.add(order)
        ledger.attach(reservation.token, order.id)  # type: ignore[arg-type]

        logger.info(
            "order_created",
            order_id=order.id,
            order_number=order.order_number,
            customer=str(order.customer),
            grand_total=str(order.grand_total),
        )
        uow.on_commit(self._notification(order))
        return PlacedOrderDTO(order=OrderDTO.from_order(order), created=True)

    @staticmethod
    def _snapshot_items(uow: UnitOfWork, validated: ValidatedOrder) -> list[OrderItem]:
        """Build line items with the *current* price and commission (snapshot)."""
        items: list[OrderItem] = []
        rates: dict[int, Decimal] = {}
        for line in validated.lines:
            product = line.product
            rate = Decimal("0")
            if product.vendor_id is not None:
                if product.vendor_id not in rates:
                    vendor = uow.vendors.get_by_id(product.vendor_id)
                    rates[product.vendor_id] = vendor.commission_rate if vendor else Decimal("0")
                rate = rates[product.vendor_id]
            items.append(
                OrderItem(
                    product_id=product.id,
                    variant_id=line.variant_id,
                    sku=line.sku,
                    product_name=product.display_name(line.variant_id),
                    quantity=Quantity(line.quantity),
                    # no conversion: the catalog price is taken as-is in the order currency
                    unit_price=product.price_for(line.variant_id).in_currency(validated.currency),
                    vendor_id=product.vendor_id,
                    commission_rate=rate,
                )
            )
        return items

    def _notification(self, order: Order):
        return fire_and_forget(
            "notification_failed",
            lambda: self._notifier.notify(
                "order",
                "Order placed",
                f"Order {order.order_number} placed for {order.grand_total}",
            ),
            order_id=order.id,
        )
