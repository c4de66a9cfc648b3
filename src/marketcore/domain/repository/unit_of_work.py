"""Unit of Work port.

One instance spans one atomic unit: every repository reached through it
shares the same transaction.  Used as a context manager; leaving the block
without ``commit()`` rolls back.

    with uow:
        order = uow.orders.get_for_update(order_id)
        ...
        uow.commit()

Callbacks registered with ``on_commit`` run only after a successful commit,
outside the transaction.  Their failures are logged and never propagate.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

import structlog

from marketcore.domain.repository.account_repository import AccountRepository
from marketcore.domain.repository.order_repository import OrderRepository
from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.domain.repository.stock_repository import ReservationRepository, StockRepository
from marketcore.domain.repository.vendor_repository import PayoutRepository, VendorRepository

logger = structlog.get_logger(__name__)


class UnitOfWork(ABC):

    orders: OrderRepository
    products: ProductRepository
    stock: StockRepository
    reservations: ReservationRepository
    accounts: AccountRepository
    vendors: VendorRepository
    payouts: PayoutRepository

    def __init__(self) -> None:
        self._after_commit: list[Callable[[], None]] = []

    def __enter__(self) -> UnitOfWork:
        self._after_commit = []
        self._begin()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        # commit() clears the pending flag; anything else is rolled back.
        try:
            if self._is_active():
                self.rollback()
        finally:
            self._close()
        if exc is not None:
            translated = self._translate(exc)
            if translated is not None:
                raise translated from exc

    def on_commit(self, callback: Callable[[], None]) -> None:
        self._after_commit.append(callback)

    def commit(self) -> None:
        self._commit()
        callbacks, self._after_commit = self._after_commit, []
        for callback in callbacks:
            try:
                callback()
            except Exception:
                logger.exception("after_commit_callback_failed", callback=getattr(callback, "__name__", repr(callback)))

    def rollback(self) -> None:
        self._after_commit = []
        self._rollback()

    @abstractmethod
    def _begin(self) -> None: ...

    @abstractmethod
    def _commit(self) -> None: ...

    @abstractmethod
    def _rollback(self) -> None: ...

    @abstractmethod
    def _is_active(self) -> bool: ...

    def _close(self) -> None:
        """Release resources held by the unit.  Default: nothing."""

    def _translate(self, exc: BaseException) -> Exception | None:
        """Map a storage driver error to a domain error, or None to keep it."""
        return None
