"""SQLAlchemy-backed implementation of OrderRepository."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from marketcore.domain.exceptions import ConcurrentUpdateError, DuplicateKeyError
from marketcore.domain.model.order import (
    AddressRef,
    CustomerRef,
    Order,
    OrderItem,
    OrderStatus,
    PaymentStatus,
    StatusChange,
)
from marketcore.domain.model.value_objects import Money, Quantity, from_cents, to_cents
from marketcore.domain.repository.order_repository import OrderRepository
from marketcore.infrastructure.persistence.tables import OrderItemRow, OrderRow, StatusHistoryRow


class SqlOrderRepository(OrderRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    # --- OrderRepository interface --------------------------------------------

    def get_by_id(self, order_id: int) -> Order | None:
        row = self._session.scalars(
            select(OrderRow).where(OrderRow.id == order_id)
        ).one_or_none()
        return self._to_domain(row) if row else None

    def get_for_update(self, order_id: int) -> Order | None:
        stmt = (
            select(OrderRow)
            .where(OrderRow.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.scalars(stmt).one_or_none()
        return self._to_domain(row) if row else None

    def get_by_client_id(self, client_provided_id: str) -> Order | None:
        row = self._session.scalars(
            select(OrderRow).where(OrderRow.client_provided_id == client_provided_id)
        ).one_or_none()
        return self._to_domain(row) if row else None

    def add(self, order: Order) -> None:
        row = self._to_row(order)
        self._session.add(row)
        try:
            self._session.flush()
        except IntegrityError as exc:
            raise DuplicateKeyError(
                f"Order {order.order_number} collides with an existing order"
            ) from exc
        order.id = row.id
        order.version = row.version

    def update(self, order: Order) -> None:
        result = self._session.execute(
            update(OrderRow)
            .where(OrderRow.id == order.id, OrderRow.version == order.version)
            .values(
                status=order.status.value,
                payment_status=order.payment_status.value,
                updated_at=order.updated_at,
                version=order.version + 1,
            )
            .execution_options(synchronize_session="fetch")
        )
        if result.rowcount != 1:
            raise ConcurrentUpdateError(
                f"Order #{order.id} was modified by another request"
            )

        stored = self._session.scalar(
            select(func.count()).select_from(StatusHistoryRow).where(StatusHistoryRow.order_id == order.id)
        ) or 0
        for position, change in enumerate(order.status_history[stored:], start=stored):
            self._session.add(self._history_row(order.id, position, change))  # type: ignore[arg-type]
        self._session.flush()
        cached = self._session.get(OrderRow, order.id)
        if cached is not None:
            self._session.expire(cached, ["history"])
        order.version += 1

    def delivered_items_for_vendor(self, vendor_id: int) -> list[OrderItem]:
        rows = self._session.scalars(
            select(OrderItemRow)
            .join(OrderRow, OrderItemRow.order_id == OrderRow.id)
            .where(
                OrderItemRow.vendor_id == vendor_id,
                OrderRow.status == OrderStatus.DELIVERED.value,
            )
            .order_by(OrderItemRow.id)
        ).all()
        return [self._item_to_domain(r, r.order.currency) for r in rows]

    # --- Mapping --------------------------------------------------------------

    @staticmethod
    def _to_row(order: Order) -> OrderRow:
        shipping, billing = order.shipping_address, order.billing_address
        return OrderRow(
            order_number=order.order_number,
            user_id=order.customer.user_id,
            guest_email=order.customer.guest_email,
            status=order.status.value,
            payment_status=order.payment_status.value,
            payment_method=order.payment_method,
            currency=order.currency,
            shipping_fee_cents=order.shipping_fee.cents,
            discount_cents=order.discount_amount.cents,
            client_provided_id=order.client_provided_id,
            request_fingerprint=order.request_fingerprint,
            reservation_token=order.reservation_token,
            shipping_address_id=shipping.address_id if shipping else None,
            shipping_address=shipping.inline if shipping else None,
            billing_address_id=billing.address_id if billing else None,
            billing_address=billing.inline if billing else None,
            notes=order.notes,
            created_at=order.created_at,
            updated_at=order.updated_at,
            version=order.version,
            items=[
                OrderItemRow(
                    position=position,
                    product_id=item.product_id,
                    variant_id=item.variant_id,
                    sku=item.sku,
                    product_name=item.product_name,
                    vendor_id=item.vendor_id,
                    quantity=item.quantity.value,
                    unit_price_cents=to_cents(item.unit_price.amount),
                    commission_rate=str(item.commission_rate),
                )
                for position, item in enumerate(order.items)
            ],
            history=[
                SqlOrderRepository._history_row(None, position, change)
                for position, change in enumerate(order.status_history)
            ],
        )

    @staticmethod
    def _history_row(order_id: int | None, position: int, change: StatusChange) -> StatusHistoryRow:
        row = StatusHistoryRow(
            position=position,
            from_status=change.from_status.value if change.from_status else None,
            to_status=change.to_status.value,
            reason=change.reason,
            actor_id=change.actor_id,
            changed_at=change.changed_at,
        )
        if order_id is not None:
            row.order_id = order_id
        return row

    @staticmethod
    def _item_to_domain(row: OrderItemRow, currency: str) -> OrderItem:
        return OrderItem(
            product_id=row.product_id,
            variant_id=row.variant_id,
            sku=row.sku,
            product_name=row.product_name,
            vendor_id=row.vendor_id,
            quantity=Quantity(row.quantity),
            unit_price=Money(from_cents(row.unit_price_cents), currency),
            commission_rate=Decimal(row.commission_rate),
        )

    @staticmethod
    def _address(address_id: int | None, inline: dict | None) -> AddressRef | None:
        if address_id is None and not inline:
            return None
        return AddressRef(address_id=address_id, inline=inline)

    @classmethod
    def _to_domain(cls, row: OrderRow) -> Order:
        return Order(
            id=row.id,
            order_number=row.order_number,
            customer=CustomerRef(user_id=row.user_id, guest_email=row.guest_email),
            items=[cls._item_to_domain(i, row.currency) for i in row.items],
            payment_method=row.payment_method,
            currency=row.currency,
            shipping_fee=Money(from_cents(row.shipping_fee_cents), row.currency),
            discount_amount=Money(from_cents(row.discount_cents), row.currency),
            status=OrderStatus(row.status),
            payment_status=PaymentStatus(row.payment_status),
            client_provided_id=row.client_provided_id,
            request_fingerprint=row.request_fingerprint,
            reservation_token=row.reservation_token,
            shipping_address=cls._address(row.shipping_address_id, row.shipping_address),
            billing_address=cls._address(row.billing_address_id, row.billing_address),
            notes=row.notes,
            created_at=row.created_at,
            updated_at=row.updated_at,
            version=row.version,
            status_history=[
                StatusChange(
                    from_status=OrderStatus(h.from_status) if h.from_status else None,
                    to_status=OrderStatus(h.to_status),
                    changed_at=h.changed_at,
                    reason=h.reason,
                    actor_id=h.actor_id,
                )
                for h in row.history
            ],
        )
