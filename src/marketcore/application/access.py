"""Ownership checks shared by the order and vendor use cases."""

from __future__ import annotations

from marketcore.domain.exceptions import ForbiddenError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.order import Order
from marketcore.domain.model.vendor import Vendor
from marketcore.domain.repository.unit_of_work import UnitOfWork


def vendor_of(uow: UnitOfWork, auth: AuthContext) -> Vendor | None:
    if auth.user_id is None:
        return None
    return uow.vendors.get_by_user_id(auth.user_id)


def sells_in(uow: UnitOfWork, auth: AuthContext, order: Order) -> bool:
    vendor = vendor_of(uow, auth)
    return vendor is not None and vendor.id in order.vendor_ids


def ensure_can_view(uow: UnitOfWork, auth: AuthContext, order: Order) -> None:
    if auth.is_admin or order.is_placed_by(auth.user_id) or sells_in(uow, auth, order):
        return
    raise ForbiddenError("You do not have permission to view this order")


def ensure_can_manage(uow: UnitOfWork, auth: AuthContext, order: Order) -> None:
    """Admins, or a vendor selling at least one item of the order."""
    if auth.is_admin or sells_in(uow, auth, order):
        return
    raise ForbiddenError("You do not have permission to change this order status")


def ensure_owns_vendor(auth: AuthContext, vendor: Vendor) -> None:
    if auth.is_admin or vendor.is_owned_by(auth.user_id):
        return
    raise ForbiddenError("You do not have permission to act for this vendor")
