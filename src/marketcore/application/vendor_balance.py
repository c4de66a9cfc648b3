"""Application service: Show Vendor Balance use case (query)."""

from __future__ import annotations

from marketcore.application.access import ensure_owns_vendor
from marketcore.application.dto import VendorBalanceDTO
from marketcore.application.transaction import UnitOfWorkFactory
from marketcore.domain.exceptions import NotFoundError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.service.payout_balance_engine import PayoutBalanceEngine


class ShowVendorBalanceHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self, auth: AuthContext, vendor_id: int) -> VendorBalanceDTO:
        with self._uow_factory() as uow:
            vendor = uow.vendors.get_by_id(vendor_id)
            if vendor is None:
                raise NotFoundError(f"Vendor #{vendor_id} not found")
            ensure_owns_vendor(auth, vendor)
            engine = PayoutBalanceEngine(uow.vendors, uow.orders, uow.payouts)
            return VendorBalanceDTO.from_balance(engine.balance(vendor_id))
