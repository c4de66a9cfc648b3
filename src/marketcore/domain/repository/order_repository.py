"""Abstract repository for Order aggregate."""

from __future__ import annotations

from abc import ABC, abstractmethod

from marketcore.domain.model.order import Order, OrderItem


class OrderRepository(ABC):

    @abstractmethod
    def get_by_id(self, order_id: int) -> Order | None:
        """Return an order by its ID, or None if not found."""

    @abstractmethod
    def get_for_update(self, order_id: int) -> Order | None:
        """Like ``get_by_id`` but locks the order row until the unit ends."""

    @abstractmethod
    def get_by_client_id(self, client_provided_id: str) -> Order | None:
        """Return the order created with this idempotency key, or None."""

    @abstractmethod
    def add(self, order: Order) -> None:
        """Insert a new order and assign its ``id``.

        Raises DuplicateKeyError when ``client_provided_id`` is taken.
        """

    @abstractmethod
    def update(self, order: Order) -> None:
        """Persist status, payment status and new history entries.

        Fails with ConcurrentUpdateError when the stored ``version`` no
        longer matches ``order.version``; bumps ``order.version`` otherwise.
        """

    @abstractmethod
    def delivered_items_for_vendor(self, vendor_id: int) -> list[OrderItem]:
        """Line items of ``vendor_id`` in orders that reached DELIVERED."""
