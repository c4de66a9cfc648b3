"""SQLAlchemy implementation of the Unit of Work.

One session per unit; the session's transaction is the unit's transaction.
Driver errors leaving the block are translated into domain errors:

* lock timeouts, deadlocks and serialization failures -> TransientStorageError
* unique-constraint violations -> DuplicateKeyError
* anything else from SQLAlchemy -> InternalError
"""

from __future__ import annotations

import structlog
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from marketcore.domain.exceptions import DuplicateKeyError, InternalError, TransientStorageError
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.infrastructure.persistence.sql_account_repository import SqlAccountRepository
from marketcore.infrastructure.persistence.sql_order_repository import SqlOrderRepository
from marketcore.infrastructure.persistence.sql_product_repository import SqlProductRepository
from marketcore.infrastructure.persistence.sql_stock_repository import (
    SqlReservationRepository,
    SqlStockRepository,
)
from marketcore.infrastructure.persistence.sql_vendor_repository import (
    SqlPayoutRepository,
    SqlVendorRepository,
)

logger = structlog.get_logger(__name__)

# serialization_failure, deadlock_detected, lock_not_available
RETRYABLE_PGCODES = {"40001", "40P01", "55P03"}
RETRYABLE_MESSAGES = (
    "deadlock",
    "could not serialize",
    "database is locked",
    "lock wait timeout",
    "lock timeout",
)


def is_transient(exc: BaseException) -> bool:
    """True for contention errors that a fresh attempt may not hit again."""
    if not isinstance(exc, DBAPIError):
        return False
    orig = exc.orig
    pgcode = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if pgcode in RETRYABLE_PGCODES:
        return True
    message = str(orig).lower()
    return any(fragment in message for fragment in RETRYABLE_MESSAGES)


class SqlAlchemyUnitOfWork(UnitOfWork):

    def __init__(self, session_factory: sessionmaker[Session]) -> None:
        super().__init__()
        self._session_factory = session_factory
        self._session: Session | None = None

    def _begin(self) -> None:
        session = self._session_factory()
        self._session = session
        self.orders = SqlOrderRepository(session)
        self.products = SqlProductRepository(session)
        self.stock = SqlStockRepository(session)
        self.reservations = SqlReservationRepository(session)
        self.accounts = SqlAccountRepository(session)
        self.vendors = SqlVendorRepository(session)
        self.payouts = SqlPayoutRepository(session)

    def _commit(self) -> None:
        assert self._session is not None
        try:
            self._session.commit()
        except SQLAlchemyError as exc:
            self._session.rollback()
            raise self._translate(exc) from exc

    def _rollback(self) -> None:
        if self._session is not None:
            self._session.rollback()

    def _is_active(self) -> bool:
        return self._session is not None and self._session.in_transaction()

    def _close(self) -> None:
        if self._session is not None:
            self._session.close()
            self._session = None

    def _translate(self, exc: BaseException) -> Exception | None:
        if not isinstance(exc, SQLAlchemyError):
            return None
        if isinstance(exc, OperationalError) and is_transient(exc):
            logger.warning("storage_contention", error=str(exc.orig))
            return TransientStorageError("The database is busy, please retry")
        if isinstance(exc, IntegrityError):
            return DuplicateKeyError("A unique constraint rejected the write")
        logger.error("storage_failure", error=str(exc))
        return InternalError("Storage failure, nothing was saved")
