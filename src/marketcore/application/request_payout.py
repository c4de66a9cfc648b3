"""Application service: Request Payout use case.

The balance is computed and the payout inserted in one unit of work, with
the vendor row locked first.  Two concurrent requests for the same vendor
are therefore serialized and the second one sees the first one's payout.
"""

from __future__ import annotations

from decimal import Decimal, InvalidOperation

from marketcore.application.access import ensure_owns_vendor
from marketcore.application.collaborators import Notifier, fire_and_forget
from marketcore.application.dto import PayoutDTO
from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import InvalidAmountError, NotFoundError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.vendor import VendorPayout
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.domain.service.payout_balance_engine import PayoutBalanceEngine


def parse_amount(raw: object) -> Decimal | None:
    """None/empty means "everything available"; anything else must be numeric."""
    if raw is None or raw == "":
        return None
    if isinstance(raw, bool):
        raise InvalidAmountError("Invalid payout amount")
    try:
        amount = Decimal(str(raw))
    except (InvalidOperation, ValueError):
        raise InvalidAmountError("Invalid payout amount") from None
    if not amount.is_finite():
        raise InvalidAmountError("Invalid payout amount")
    return amount


class RequestPayoutHandler:

    def __init__(
        self,
        uow_factory: UnitOfWorkFactory,
        notifier: Notifier,
        payout_methods: frozenset[str] | set[str],
        default_method: str = "bank_transfer",
    ) -> None:
        self._uow_factory = uow_factory
        self._notifier = notifier
        self._payout_methods = frozenset(payout_methods)
        self._default_method = default_method

    def handle(
        self,
        auth: AuthContext,
        vendor_id: int,
        amount: Decimal | None = None,
        method: str | None = None,
    ) -> PayoutDTO:
        method = (method or self._default_method).strip()

        def work(uow: UnitOfWork) -> PayoutDTO:
            vendor = uow.vendors.get_by_id(vendor_id)
            if vendor is None:
                raise NotFoundError(f"Vendor #{vendor_id} not found")
            ensure_owns_vendor(auth, vendor)

            engine = PayoutBalanceEngine(uow.vendors, uow.orders, uow.payouts, self._payout_methods)
            payout = engine.request_payout(vendor_id, amount, method)
            uow.on_commit(self._notification(payout))
            return PayoutDTO.from_payout(payout)

        return run_in_transaction(self._uow_factory, work)

    def _notification(self, payout: VendorPayout):
        return fire_and_forget(
            "notification_failed",
            lambda: self._notifier.notify(
                "payout",
                "Payout Request",
                f"Vendor {payout.vendor_id} requested payout of {payout.amount:.2f}",
            ),
            payout_id=payout.id,
        )
