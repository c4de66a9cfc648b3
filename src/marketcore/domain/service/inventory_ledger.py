"""Domain service: Inventory Ledger.

The only writer of stock quantities during the order lifecycle.  It holds
stock for an order (``reserve``), makes the hold permanent (``commit``),
gives it back (``release``) or, once committed, puts the units back on sale
(``restock``).

Reservation is two-phase so we never leave stock partially held:
  Phase 1: lock every record (sorted by sku, so concurrent orders always
           lock in the same order) and check availability.
  Phase 2: mutate and persist.
"""

from __future__ import annotations

import uuid
from collections import OrderedDict

import structlog

from marketcore.domain.exceptions import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from marketcore.domain.model.stock import Reservation, ReservationLine, ReservationState, StockRecord
from marketcore.domain.repository.stock_repository import ReservationRepository, StockRepository

logger = structlog.get_logger(__name__)


class InventoryLedger:

    def __init__(self, stock_repo: StockRepository, reservation_repo: ReservationRepository) -> None:
        self._stock_repo = stock_repo
        self._reservation_repo = reservation_repo

    def reserve(self, items: list[tuple[str, int]]) -> Reservation:
        """Hold stock for every ``(sku, quantity)`` pair, all or nothing.

        Raises InsufficientStockError naming the first sku (in lock order)
        that cannot be covered.  Nothing is changed in that case.
        """
        if not items:
            raise ValidationError("Nothing to reserve")

        wanted: OrderedDict[str, int] = OrderedDict()
        for sku, qty in sorted(items):
            if qty <= 0:
                raise ValidationError(f"Reservation quantity for {sku} must be positive")
            wanted[sku] = wanted.get(sku, 0) + qty

        # Phase 1: lock and validate
        records = self._stock_repo.get_many_for_update(list(wanted))
        for sku, qty in wanted.items():
            record = records.get(sku)
            if record is None:
                raise NotFoundError(f"No stock record for {sku}")
            if record.manage_stock and qty > record.available_quantity:
                logger.info("stock_reservation_rejected", sku=sku, requested=qty, available=record.available_quantity)
                raise InsufficientStockError(sku, qty, record.available_quantity)

        # Phase 2: mutate and persist
        lines: list[ReservationLine] = []
        for sku, qty in wanted.items():
            record = records[sku]
            record.hold(qty)
            self._stock_repo.save(record)
            lines.append(ReservationLine(sku=sku, quantity=qty, managed=record.manage_stock))

        reservation = Reservation(token=uuid.uuid4().hex, lines=lines)
        self._reservation_repo.add(reservation)
        logger.info("stock_reserved", token=reservation.token, lines=len(lines))
        return reservation

    def attach(self, token: str, order_id: int) -> None:
        """Link a reservation to the order it was taken for."""
        reservation = self._load(token)
        reservation.order_id = order_id
        self._reservation_repo.save(reservation)

    def commit(self, token: str) -> bool:
        """Finalize a held reservation.  Returns False if already committed."""
        reservation = self._load(token)
        if reservation.is_committed:
            return False
        if not reservation.is_held:
            raise ConflictError(f"Reservation {token} is {reservation.state.value}; cannot commit")

        for record, line in self._records_for(reservation):
            record.settle(line.quantity)
            self._stock_repo.save(record)
        reservation.mark(ReservationState.COMMITTED)
        self._reservation_repo.save(reservation)
        logger.info("stock_committed", token=token, order_id=reservation.order_id)
        return True

    def release(self, token: str) -> bool:
        """Give held stock back.

        Safe to repeat: a reservation that was already released is left
        alone and False is returned, so stock is never credited twice.
        """
        reservation = self._load(token)
        if reservation.state in (ReservationState.RELEASED, ReservationState.RESTOCKED):
            logger.info("stock_release_skipped", token=token, state=reservation.state.value)
            return False
        if reservation.is_committed:
            raise ConflictError(f"Reservation {token} is committed; restock it instead")

        for record, line in self._records_for(reservation):
            record.unhold(line.quantity)
            self._stock_repo.save(record)
        reservation.mark(ReservationState.RELEASED)
        self._reservation_repo.save(reservation)
        logger.info("stock_released", token=token, order_id=reservation.order_id)
        return True

    def restock(self, token: str) -> bool:
        """Compensate a committed reservation by returning its units to sale."""
        reservation = self._load(token)
        if reservation.state in (ReservationState.RELEASED, ReservationState.RESTOCKED):
            return False
        if reservation.is_held:
            raise ConflictError(f"Reservation {token} is still held; release it instead")

        for record, line in self._records_for(reservation):
            record.restock(line.quantity)
            self._stock_repo.save(record)
        reservation.mark(ReservationState.RESTOCKED)
        self._reservation_repo.save(reservation)
        logger.info("stock_restocked", token=token, order_id=reservation.order_id)
        return True

    def return_to_stock(self, token: str) -> bool:
        """Undo whatever the reservation currently does to stock."""
        reservation = self._load(token)
        if reservation.is_committed:
            return self.restock(token)
        return self.release(token)

    # --- Internal helpers -----------------------------------------------------

    def _load(self, token: str) -> Reservation:
        reservation = self._reservation_repo.get_for_update(token)
        if reservation is None:
            raise NotFoundError(f"Reservation {token} not found")
        return reservation

    def _records_for(self, reservation: Reservation) -> list[tuple[StockRecord, ReservationLine]]:
        managed = [line for line in reservation.lines if line.managed]
        records = self._stock_repo.get_many_for_update(sorted(line.sku for line in managed))
        pairs: list[tuple[StockRecord, ReservationLine]] = []
        for line in managed:
            record = records.get(line.sku)
            if record is None:
                raise NotFoundError(f"No stock record for {line.sku}")
            pairs.append((record, line))
        return pairs
