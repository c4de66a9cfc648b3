"""Tests for the catalog and stock administration use cases."""

import pytest

from marketcore.application.catalog import (
    AddProductHandler,
    ListProductsHandler,
    SetStockHandler,
    ShowStockHandler,
)
from marketcore.domain.exceptions import ForbiddenError, NotFoundError, ValidationError
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.product import ProductVariant
from tests.fakes import FakeStore, uow_factory

ADMIN = AuthContext.admin(1)


@pytest.fixture
def store():
    store = FakeStore()
    store.add_vendor(1, user_id=10)
    store.add_product(1, price="10.00", stock=5, vendor_id=1)
    store.add_product(3, price="15.00", stock=None, variants=[ProductVariant(id=1, name="Small")])
    return store


class TestAddProduct:

    def test_assigns_next_id_and_stock_record(self, store):
        dto = AddProductHandler(uow_factory(store)).handle(ADMIN, "Lamp", "19.90", vendor_id=1, initial_stock=4)

        assert dto.id == 4
        assert dto.price == "19.90"
        record = store.stock("4")
        assert record.manage_stock is True
        assert record.available_quantity == 4

    def test_without_stock_is_unmanaged(self, store):
        dto = AddProductHandler(uow_factory(store)).handle(ADMIN, "Manual", "5", is_digital=True)
        assert dto.is_digital is True
        assert store.stock(str(dto.id)).manage_stock is False

    def test_admin_only(self, store):
        with pytest.raises(ForbiddenError):
            AddProductHandler(uow_factory(store)).handle(AuthContext(user_id=10), "Lamp", "1")

    @pytest.mark.parametrize("name, price", [("", "1.00"), ("Lamp", "0"), ("Lamp", "-3")])
    def test_invalid_input(self, store, name, price):
        with pytest.raises(ValidationError):
            AddProductHandler(uow_factory(store)).handle(ADMIN, name, price)

    def test_unknown_vendor(self, store):
        with pytest.raises(NotFoundError):
            AddProductHandler(uow_factory(store)).handle(ADMIN, "Lamp", "1", vendor_id=99)
        assert 4 not in store.data["products"]


class TestStock:

    def test_set_product_stock(self, store):
        line = SetStockHandler(uow_factory(store)).handle(ADMIN, 1, 40)
        assert line.available == 40
        assert store.stock("1").available_quantity == 40

    def test_set_variant_stock_creates_record(self, store):
        line = SetStockHandler(uow_factory(store)).handle(ADMIN, 3, 7, variant_id=1)
        assert line.sku == "3:1"
        assert store.stock("3:1").manage_stock is True

    def test_unknown_variant(self, store):
        with pytest.raises(NotFoundError):
            SetStockHandler(uow_factory(store)).handle(ADMIN, 3, 7, variant_id=9)

    def test_negative_quantity(self, store):
        with pytest.raises(ValidationError):
            SetStockHandler(uow_factory(store)).handle(ADMIN, 1, -1)
        assert store.stock("1").available_quantity == 5

    def test_listing(self, store):
        lines = ShowStockHandler(uow_factory(store)).handle()
        assert [line.sku for line in lines] == ["1", "3"]
        products = ListProductsHandler(uow_factory(store)).handle()
        assert [p.id for p in products] == [1, 3]
