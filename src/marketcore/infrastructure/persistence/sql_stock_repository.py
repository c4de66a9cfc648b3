"""SQLAlchemy-backed StockRepository and ReservationRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketcore.domain.model.stock import Reservation, ReservationLine, ReservationState, StockRecord
from marketcore.domain.repository.stock_repository import ReservationRepository, StockRepository
from marketcore.infrastructure.persistence.tables import ReservationLineRow, ReservationRow, StockRow


class SqlStockRepository(StockRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get(self, sku: str) -> StockRecord | None:
        row = self._session.get(StockRow, sku)
        return self._to_domain(row) if row else None

    def get_many_for_update(self, skus: list[str]) -> dict[str, StockRecord]:
        if not skus:
            return {}
        # Rows are locked in sku order so concurrent reservations cannot deadlock.
        stmt = (
            select(StockRow)
            .where(StockRow.sku.in_(sorted(set(skus))))
            .order_by(StockRow.sku)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return {row.sku: self._to_domain(row) for row in self._session.scalars(stmt)}

    def list_all(self) -> list[StockRecord]:
        rows = self._session.scalars(select(StockRow).order_by(StockRow.sku))
        return [self._to_domain(r) for r in rows]

    def save(self, record: StockRecord) -> None:
        row = self._session.get(StockRow, record.sku)
        if row is None:
            row = StockRow(sku=record.sku)
            self._session.add(row)
        row.product_id = record.product_id
        row.variant_id = record.variant_id
        row.available_quantity = record.available_quantity
        row.reserved_quantity = record.reserved_quantity
        row.manage_stock = record.manage_stock
        self._session.flush()

    @staticmethod
    def _to_domain(row: StockRow) -> StockRecord:
        return StockRecord(
            sku=row.sku,
            product_id=row.product_id,
            variant_id=row.variant_id,
            available_quantity=row.available_quantity,
            reserved_quantity=row.reserved_quantity,
            manage_stock=row.manage_stock,
        )


class SqlReservationRepository(ReservationRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_for_update(self, token: str) -> Reservation | None:
        stmt = (
            select(ReservationRow)
            .where(ReservationRow.token == token)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.scalars(stmt).one_or_none()
        if row is None:
            return None
        return Reservation(
            token=row.token,
            lines=[ReservationLine(l.sku, l.quantity, l.managed) for l in row.lines],
            order_id=row.order_id,
            state=ReservationState(row.state),
            created_at=row.created_at,
            settled_at=row.settled_at,
        )

    def add(self, reservation: Reservation) -> None:
        self._session.add(
            ReservationRow(
                token=reservation.token,
                order_id=reservation.order_id,
                state=reservation.state.value,
                created_at=reservation.created_at,
                settled_at=reservation.settled_at,
                lines=[
                    ReservationLineRow(sku=line.sku, quantity=line.quantity, managed=line.managed)
                    for line in reservation.lines
                ],
            )
        )
        self._session.flush()

    def save(self, reservation: Reservation) -> None:
        row = self._session.get(ReservationRow, reservation.token)
        if row is None:
            self.add(reservation)
            return
        row.order_id = reservation.order_id
        row.state = reservation.state.value
        row.settled_at = reservation.settled_at
        self._session.flush()
