"""Ports for the external collaborators the core calls after commit.

Neither is allowed to break the caller: notification and refund failures
are logged and swallowed by ``fire_and_forget``.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable

import structlog

logger = structlog.get_logger(__name__)


class Notifier(ABC):

    @abstractmethod
    def notify(self, topic: str, title: str, body: str) -> None:
        """Deliver a notification.  May raise; callers swallow failures."""


class PaymentGateway(ABC):

    @abstractmethod
    def refund(self, order_number: str, amount: Decimal, currency: str) -> None:
        """Ask the payment provider to refund a paid order."""


def fire_and_forget(event: str, action: Callable[[], None], **context) -> Callable[[], None]:
    """Wrap ``action`` so that a failure is logged and never raised."""

    def run() -> None:
        try:
            action()
        except Exception:
            logger.exception(event, **context)

    run.__name__ = event
    return run
