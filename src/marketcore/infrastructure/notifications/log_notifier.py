"""Log-only adapters for the notification and payment collaborators.

Real delivery (email, push, a payment provider's refund api) is wired in by
replacing these in the composition root.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from marketcore.application.collaborators import Notifier, PaymentGateway

logger = structlog.get_logger(__name__)


class LogNotifier(Notifier):

    def notify(self, topic: str, title: str, body: str) -> None:
        logger.info("notification_sent", topic=topic, title=title, body=body)


class LoggingPaymentGateway(PaymentGateway):

    def refund(self, order_number: str, amount: Decimal, currency: str) -> None:
        logger.info("refund_requested", order_number=order_number, amount=f"{amount:.2f}", currency=currency)
