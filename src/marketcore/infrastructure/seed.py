"""Load demo data (accounts, vendors, products, stock) from a YAML fixture.

Fixture layout::

    accounts:  [{id, email}]
    addresses: [{id, user_id, line1, city, country, line2?, postal_code?}]
    vendors:   [{id, user_id, name, commission_rate}]
    products:  [{id, name, price, vendor_id?, is_digital?, stock?,
                 variants?: [{id, name, price?, stock?}]}]

A product or variant without ``stock`` is sold without stock management.
Loading the same fixture twice overwrites the rows it names.
"""

from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any

import structlog
import yaml

from marketcore.application.transaction import UnitOfWorkFactory, run_in_transaction
from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.account import Account, Address
from marketcore.domain.model.product import Product, ProductVariant, make_sku
from marketcore.domain.model.stock import StockRecord
from marketcore.domain.model.value_objects import Money
from marketcore.domain.model.vendor import Vendor
from marketcore.domain.repository.unit_of_work import UnitOfWork
from marketcore.infrastructure.config import PROJECT_ROOT

logger = structlog.get_logger(__name__)

DEFAULT_FIXTURE_PATH = PROJECT_ROOT / "config" / "seed.yaml"


def read_fixture(path: Path) -> dict[str, Any]:
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValidationError(f"Fixture {path} must be a mapping")
    return data


def load_fixture(uow_factory: UnitOfWorkFactory, data: dict[str, Any], base_currency: str = "USD") -> dict[str, int]:
    """Write the fixture in one transaction; returns row counts per section."""

    def work(uow: UnitOfWork) -> dict[str, int]:
        counts = {"accounts": 0, "addresses": 0, "vendors": 0, "products": 0, "stock_records": 0}
        for raw in data.get("accounts", []):
            uow.accounts.save(Account(id=int(raw["id"]), email=raw["email"], is_active=raw.get("is_active", True)))
            counts["accounts"] += 1
        for raw in data.get("addresses", []):
            uow.accounts.save_address(
                Address(
                    id=int(raw["id"]),
                    user_id=int(raw["user_id"]),
                    line1=raw["line1"],
                    line2=raw.get("line2", ""),
                    city=raw["city"],
                    country=raw["country"],
                    postal_code=str(raw.get("postal_code", "")),
                )
            )
            counts["addresses"] += 1
        for raw in data.get("vendors", []):
            uow.vendors.save(
                Vendor(
                    id=int(raw["id"]),
                    user_id=int(raw["user_id"]),
                    name=raw["name"],
                    commission_rate=Decimal(str(raw.get("commission_rate", "0"))),
                )
            )
            counts["vendors"] += 1
        for raw in data.get("products", []):
            counts["stock_records"] += _load_product(uow, raw, base_currency)
            counts["products"] += 1
        return counts

    counts = run_in_transaction(uow_factory, work)
    logger.info("fixture_loaded", **counts)
    return counts


def _load_product(uow: UnitOfWork, raw: dict[str, Any], currency: str) -> int:
    product = Product(
        id=int(raw["id"]),
        name=raw["name"],
        price=Money.of(raw["price"], currency),
        vendor_id=raw.get("vendor_id"),
        is_active=raw.get("is_active", True),
        is_digital=raw.get("is_digital", False),
        variants=[
            ProductVariant(
                id=int(v["id"]),
                name=v["name"],
                price=Money.of(v["price"], currency) if v.get("price") is not None else None,
            )
            for v in raw.get("variants", [])
        ],
    )
    uow.products.save(product)

    records = [_stock_record(product.id, None, raw.get("stock"))]
    records += [_stock_record(product.id, int(v["id"]), v.get("stock")) for v in raw.get("variants", [])]
    for record in records:
        uow.stock.save(record)
    return len(records)


def _stock_record(product_id: int, variant_id: int | None, stock: Any) -> StockRecord:
    return StockRecord(
        sku=make_sku(product_id, variant_id),
        product_id=product_id,
        variant_id=variant_id,
        available_quantity=int(stock) if stock is not None else 0,
        manage_stock=stock is not None,
    )
