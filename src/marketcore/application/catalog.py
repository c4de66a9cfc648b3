"""Application services: catalog and stock administration.

Small admin use cases the CLI needs to put products on sale.  None of them
touch orders.
"""

from __future__ import annotations

from dataclasses import dataclass

from marketcore.application.dto import StockLineDTO
from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.product import Product, make_sku
from marketcore.domain.model.stock import StockRecord
from marketcore.domain.model.value_objects import Money
from marketcore.domain.repository.unit_of_work import UnitOfWork


@dataclass(frozen=True)
class ProductDTO:
    id: int
    name: str
    price: str
    vendor_id: int | None
    is_digital: bool
    is_active: bool


def _require_admin(auth: AuthContext) -> None:
    if not auth.is_admin:
        raise ForbiddenError("Admin access required")


class AddProductHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory, base_currency: str = "USD") -> None:
        self._uow_factory = uow_factory
        self._base_currency = base_currency

    def handle(
        self,
        auth: AuthContext,
        name: str,
        price: str,
        vendor_id: int | None = None,
        is_digital: bool = False,
        initial_stock: int | None = None,
    ) -> ProductDTO:
        """Add a product; with ``initial_stock`` it is also put under stock management."""
        _require_admin(auth)
        if not name or not name.strip():
            raise ValidationError("Product name is required", errors={"name": "Product name is required"})
        money = Money.of(price, self._base_currency)
        if money.amount <= 0:
            raise ValidationError("Product price must be greater than zero", errors={"price": "Must be greater than zero"})

        def work(uow: UnitOfWork) -> ProductDTO:
            if vendor_id is not None and uow.vendors.get_by_id(vendor_id) is None:
                raise NotFoundError(f"Vendor #{vendor_id} not found")
            product = Product(id=0, name=name.strip(), price=money, vendor_id=vendor_id, is_digital=is_digital)
            uow.products.save(product)
            uow.stock.save(
                StockRecord(
                    sku=make_sku(product.id),
                    product_id=product.id,
                    available_quantity=initial_stock or 0,
                    manage_stock=initial_stock is not None,
                )
            )
            return ProductDTO(
                id=product.id,
                name=product.name,
                price=f"{product.price.amount:.2f}",
                vendor_id=product.vendor_id,
                is_digital=product.is_digital,
                is_active=product.is_active,
            )

        return run_in_transaction(self._uow_factory, work)


class SetStockHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(
        self,
        auth: AuthContext,
        product_id: int,
        quantity: int,
        variant_id: int | None = None,
        manage_stock: bool = True,
    ) -> StockLineDTO:
        """Set the sellable quantity of a product or variant."""
        _require_admin(auth)

        def work(uow: UnitOfWork) -> StockLineDTO:
            product = uow.products.get_by_id(product_id)
            if product is None:
                raise NotFoundError(f"Product #{product_id} not found")
            if variant_id is not None and product.variant(variant_id) is None:
                raise NotFoundError(f"Variant #{variant_id} of product #{product_id} not found")

            sku = make_sku(product_id, variant_id)
            record = uow.stock.get_many_for_update([sku]).get(sku)
            if record is None:
                record = StockRecord(sku=sku, product_id=product_id, variant_id=variant_id)
            record.set_available(quantity)
            record.manage_stock = manage_stock
            uow.stock.save(record)
            return StockLineDTO.from_record(record)

        return run_in_transaction(self._uow_factory, work)


class ShowStockHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self) -> list[StockLineDTO]:
        with self._uow_factory() as uow:
            return [StockLineDTO.from_record(r) for r in uow.stock.list_all()]


class ListProductsHandler:

    def __init__(self, uow_factory: UnitOfWorkFactory) -> None:
        self._uow_factory = uow_factory

    def handle(self) -> list[ProductDTO]:
        with self._uow_factory() as uow:
            return [
                ProductDTO(
                    id=p.id,
                    name=p.name,
                    price=f"{p.price.amount:.2f}",
                    vendor_id=p.vendor_id,
                    is_digital=p.is_digital,
                    is_active=p.is_active,
                )
                for p in uow.products.list_all()
            ]
