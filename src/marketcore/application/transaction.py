"""Run a piece of work inside one unit of work, with a single retry.

Only transient contention (lock timeouts, deadlocks, serialization
failures) is retried, and only once.  The work must be safe to repeat:
every call starts from a fresh unit, so a retried attempt sees the state
left by whoever won the race.
"""

from __future__ import annotations

from typing import Callable, TypeVar

import structlog

from marketcore.domain.exceptions import TransientStorageError
from marketcore.domain.repository.unit_of_work import UnitOfWork

logger = structlog.get_logger(__name__)

T = TypeVar("T")

UnitOfWorkFactory = Callable[[], UnitOfWork]


def run_in_transaction(
    uow_factory: UnitOfWorkFactory,
    work: Callable[[UnitOfWork], T],
    retry_on: tuple[type[Exception], ...] = (TransientStorageError,),
    retries: int = 1,
) -> T:
    attempt = 0
    while True:
        attempt += 1
        try:
            with uow_factory() as uow:
                result = work(uow)
                uow.commit()
                return result
        except retry_on as exc:
            if attempt > retries:
                raise
            logger.warning("transaction_retry", attempt=attempt, error=type(exc).__name__)
