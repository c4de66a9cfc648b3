"""Application service: Show Order use case (query)."""

from __future__ import annotations

from marketcore.application.access import ensure_can_view
from marketcore.application.dto import OrderDTO
from marketcore.application.transaction import UnitOfWorkFactory
from marketcore.domain.exceptions import NotFoundError
from marketcore.domain.model.auth import AuthContext


class ShowOrderHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, auth: AuthContext, order_id: int) -> OrderDTO:
        with self._uow_factory() as uow:
            order = uow.orders.get_by_id(order_id)
            if order is None:
                raise NotFoundError(f"Order #{order_id} not found")
            ensure_can_view(uow, auth, order)
            return OrderDTO.from_order(order)
