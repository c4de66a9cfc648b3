"""Domain service: Payout Balance Engine.

A vendor earns the line totals of its items in delivered orders, minus the
marketplace commission snapshotted on each line.  Every payout that has not
been rejected counts as already paid out.

``request_payout`` must run in the same unit of work that inserts the payout,
after the vendor row has been locked, so that two requests for the same
vendor can never both spend the same balance.  ``ensure_refund_covered``
takes the same locks before a delivered order is refunded.
"""

from __future__ import annotations

from decimal import Decimal

import structlog

from marketcore.domain.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    NotFoundError,
    PayoutExceedsEarningsError,
    ValidationError,
)
from marketcore.domain.model.order import Order
from marketcore.domain.model.value_objects import CENT
from marketcore.domain.model.vendor import PayoutStatus, Vendor, VendorBalance, VendorPayout
from marketcore.domain.repository.order_repository import OrderRepository
from marketcore.domain.repository.vendor_repository import PayoutRepository, VendorRepository

logger = structlog.get_logger(__name__)


class PayoutBalanceEngine:

    def __init__(
        self,
        vendor_repo: VendorRepository,
        order_repo: OrderRepository,
        payout_repo: PayoutRepository,
        payout_methods: frozenset[str] | set[str] = frozenset({"bank_transfer"}),
    ) -> None:
        self._vendor_repo = vendor_repo
        self._order_repo = order_repo
        self._payout_repo = payout_repo
        self._payout_methods = frozenset(payout_methods)

    def balance(self, vendor_id: int) -> VendorBalance:
        vendor = self._vendor_repo.get_by_id(vendor_id)
        if vendor is None:
            raise NotFoundError(f"Vendor #{vendor_id} not found")
        return self._compute(vendor)

    def request_payout(
        self,
        vendor_id: int,
        amount: Decimal | None,
        method: str,
    ) -> VendorPayout:
        """Validate and insert a pending payout.

        ``amount`` of None asks for the whole available balance.
        """
        if method not in self._payout_methods:
            raise ValidationError(
                f"Unsupported payout method '{method}'",
                errors={"method": f"Unsupported payout method '{method}'"},
            )

        vendor = self._vendor_repo.get_for_update(vendor_id)
        if vendor is None:
            raise NotFoundError(f"Vendor #{vendor_id} not found")

        snapshot = self._compute(vendor)
        available = snapshot.available_for_payout

        # Compared before rounding: quantizing an enormous amount raises.
        if amount is not None and amount > available:
            self._reject_insufficient(vendor_id, amount, available)
        requested = available if amount is None else amount.quantize(CENT)

        if requested <= 0:
            logger.info("payout_rejected", vendor_id=vendor_id, reason="invalid_amount", amount=str(requested))
            raise InvalidAmountError(
                "Payout amount must be greater than zero"
                if amount is not None
                else "No balance available for payout"
            )

        payout = VendorPayout(
            id=None,
            vendor_id=vendor_id,
            amount=requested,
            method=method,
            status=PayoutStatus.PENDING,
            total_sales=snapshot.total_sales,
            total_commission=snapshot.total_commission,
        )
        self._payout_repo.add(payout)
        logger.info("payout_requested", vendor_id=vendor_id, payout_id=payout.id, amount=str(requested))
        return payout

    def ensure_refund_covered(self, order: Order) -> None:
        """Refuse to take back delivered earnings a vendor has already been paid.

        Locks the vendor rows of ``order`` in id order; call it in the unit of
        work that moves the order from delivered to refunded.
        """
        for vendor_id in sorted(order.vendor_ids):
            vendor = self._vendor_repo.get_for_update(vendor_id)
            if vendor is None:
                continue
            earned = Decimal("0.00")
            for item in order.items_for_vendor(vendor_id):
                earned += item.line_total.amount - item.commission_amount.amount
            remaining = self._compute(vendor).raw_available - earned
            if remaining < 0:
                logger.warning(
                    "refund_rejected",
                    order_id=order.id,
                    vendor_id=vendor_id,
                    reason="payout_exceeds_earnings",
                    shortfall=str(-remaining),
                )
                raise PayoutExceedsEarningsError(
                    f"Refunding order {order.order_number} would leave vendor #{vendor_id} "
                    f"paid {-remaining} more than it earned"
                )

    @staticmethod
    def _reject_insufficient(vendor_id: int, amount: Decimal, available: Decimal) -> None:
        logger.info(
            "payout_rejected",
            vendor_id=vendor_id,
            reason="insufficient_balance",
            amount=str(amount),
            available=str(available),
        )
        raise InsufficientBalanceError(f"Requested {amount} exceeds available balance {available}")

    def _compute(self, vendor: Vendor) -> VendorBalance:
        total_sales = Decimal("0.00")
        total_commission = Decimal("0.00")
        for item in self._order_repo.delivered_items_for_vendor(vendor.id):
            total_sales += item.line_total.amount
            total_commission += item.commission_amount.amount

        total_paid = sum(
            (p.amount for p in self._payout_repo.list_for_vendor(vendor.id) if p.counts_against_balance),
            Decimal("0.00"),
        )
        return VendorBalance(
            vendor_id=vendor.id,
            total_sales=total_sales,
            total_commission=total_commission,
            total_paid=total_paid,
        )
