"""Domain service: Idempotency Guard.

Looks up a client-provided idempotency key before an order is created.
The lookup runs inside the order-creation unit of work; the unique index on
``client_provided_id`` settles races between two first attempts.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from marketcore.domain.exceptions import IdempotencyConflictError
from marketcore.domain.model.order import Order
from marketcore.domain.repository.order_repository import OrderRepository

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class Admitted:
    """No earlier order with this key; go ahead and create one."""


@dataclass(frozen=True)
class Duplicate:
    """The key was used before with the same payload."""

    order: Order

    @property
    def order_id(self) -> int:
        return self.order.id  # type: ignore[return-value]


Admission = Admitted | Duplicate


class IdempotencyGuard:

    def __init__(self, order_repo: OrderRepository) -> None:
        self._order_repo = order_repo

    def admit(self, client_provided_id: str | None, payload_fingerprint: str) -> Admission:
        if client_provided_id is None:
            return Admitted()

        existing = self._order_repo.get_by_client_id(client_provided_id)
        if existing is None:
            return Admitted()

        if existing.request_fingerprint != payload_fingerprint:
            logger.warning(
                "idempotency_key_conflict",
                client_provided_id=client_provided_id,
                order_id=existing.id,
            )
            raise IdempotencyConflictError(client_provided_id)

        logger.info("idempotent_replay", client_provided_id=client_provided_id, order_id=existing.id)
        return Duplicate(existing)
