"""SQLAlchemy-backed VendorRepository and PayoutRepository."""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketcore.domain.model.value_objects import from_cents, to_cents
from marketcore.domain.model.vendor import PayoutStatus, Vendor, VendorPayout
from marketcore.domain.repository.vendor_repository import PayoutRepository, VendorRepository
from marketcore.infrastructure.persistence.tables import PayoutRow, VendorRow


def _vendor(row: VendorRow) -> Vendor:
    return Vendor(
        id=row.id,
        user_id=row.user_id,
        name=row.name,
        commission_rate=Decimal(row.commission_rate),
    )


class SqlVendorRepository(VendorRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, vendor_id: int) -> Vendor | None:
        row = self._session.get(VendorRow, vendor_id)
        return _vendor(row) if row else None

    def get_for_update(self, vendor_id: int) -> Vendor | None:
        stmt = (
            select(VendorRow)
            .where(VendorRow.id == vendor_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = self._session.scalars(stmt).one_or_none()
        return _vendor(row) if row else None

    def get_by_user_id(self, user_id: int) -> Vendor | None:
        row = self._session.scalars(
            select(VendorRow).where(VendorRow.user_id == user_id)
        ).one_or_none()
        return _vendor(row) if row else None

    def save(self, vendor: Vendor) -> None:
        row = self._session.get(VendorRow, vendor.id)
        if row is None:
            row = VendorRow(id=vendor.id)
            self._session.add(row)
        row.user_id = vendor.user_id
        row.name = vendor.name
        row.commission_rate = str(vendor.commission_rate)
        self._session.flush()


class SqlPayoutRepository(PayoutRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def list_for_vendor(self, vendor_id: int) -> list[VendorPayout]:
        rows = self._session.scalars(
            select(PayoutRow).where(PayoutRow.vendor_id == vendor_id).order_by(PayoutRow.id)
        )
        return [
            VendorPayout(
                id=r.id,
                vendor_id=r.vendor_id,
                amount=from_cents(r.amount_cents),
                method=r.method,
                status=PayoutStatus(r.status),
                total_sales=from_cents(r.total_sales_cents),
                total_commission=from_cents(r.total_commission_cents),
                created_at=r.created_at,
            )
            for r in rows
        ]

    def add(self, payout: VendorPayout) -> None:
        row = PayoutRow(
            vendor_id=payout.vendor_id,
            amount_cents=to_cents(payout.amount),
            method=payout.method,
            status=payout.status.value,
            total_sales_cents=to_cents(payout.total_sales),
            total_commission_cents=to_cents(payout.total_commission),
            created_at=payout.created_at,
        )
        self._session.add(row)
        self._session.flush()
        payout.id = row.id
