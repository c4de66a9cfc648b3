"""SQLAlchemy-backed implementation of ProductRepository."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session

from marketcore.domain.model.product import Product, ProductVariant
from marketcore.domain.model.value_objects import Money, from_cents
from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.infrastructure.persistence.tables import ProductRow, VariantRow


class SqlProductRepository(ProductRepository):

    def __init__(self, session: Session) -> None:
        self._session = session

    def get_by_id(self, product_id: int) -> Product | None:
        row = self._session.get(ProductRow, product_id)
        return self._to_domain(row) if row else None

    def list_all(self) -> list[Product]:
        rows = self._session.scalars(select(ProductRow).order_by(ProductRow.id))
        return [self._to_domain(r) for r in rows]

    def save(self, product: Product) -> None:
        row = self._session.get(ProductRow, product.id) if product.id else None
        if row is None:
            row = ProductRow(id=product.id or None)
            self._session.add(row)
        row.name = product.name
        row.price_cents = product.price.cents
        row.currency = product.price.currency
        row.vendor_id = product.vendor_id
        row.is_active = product.is_active
        row.is_digital = product.is_digital

        # Upsert variants by id
        existing = {v.id: v for v in row.variants}
        for variant in product.variants:
            v_row = existing.pop(variant.id, None)
            if v_row is None:
                v_row = VariantRow(id=variant.id)
                row.variants.append(v_row)
            v_row.name = variant.name
            v_row.price_cents = variant.price.cents if variant.price else None
        for stale in existing.values():
            row.variants.remove(stale)

        self._session.flush()
        product.id = row.id

    @staticmethod
    def _to_domain(row: ProductRow) -> Product:
        return Product(
            id=row.id,
            name=row.name,
            price=Money(from_cents(row.price_cents), row.currency),
            vendor_id=row.vendor_id,
            is_active=row.is_active,
            is_digital=row.is_digital,
            variants=[
                ProductVariant(
                    id=v.id,
                    name=v.name,
                    price=Money(from_cents(v.price_cents), row.currency) if v.price_cents is not None else None,
                )
                for v in row.variants
            ],
        )
