"""Composition root: wires concrete implementations to domain interfaces.

This is the only place in the codebase that knows about *all* layers.
Every other module depends only on abstractions.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial

from sqlalchemy import Engine

from marketcore.application.cancel_order import CancelOrderHandler
from marketcore.application.catalog import (
    AddProductHandler,
    ListProductsHandler,
    SetStockHandler,
    ShowStockHandler,
)
from marketcore.application.change_order_status import ChangeOrderStatusHandler
from marketcore.application.collaborators import Notifier, PaymentGateway
from marketcore.application.create_order import CreateOrderHandler
from marketcore.application.record_payment import RecordPaymentHandler
from marketcore.application.request_payout import RequestPayoutHandler
from marketcore.application.show_order import ShowOrderHandler
from marketcore.application.transaction import UnitOfWorkFactory
from marketcore.application.vendor_balance import ShowVendorBalanceHandler
from marketcore.infrastructure.config import Settings, load_settings
from marketcore.infrastructure.log_config import configure_logging
from marketcore.infrastructure.notifications.log_notifier import LoggingPaymentGateway, LogNotifier
from marketcore.infrastructure.persistence.database import (
    create_db_engine,
    create_schema,
    create_session_factory,
)
from marketcore.infrastructure.persistence.unit_of_work import SqlAlchemyUnitOfWork


@dataclass
class Application:
    """Every use case, ready to call."""

    settings: Settings
    engine: Engine
    uow_factory: UnitOfWorkFactory
    create_order: CreateOrderHandler
    change_order_status: ChangeOrderStatusHandler
    cancel_order: CancelOrderHandler
    record_payment: RecordPaymentHandler
    show_order: ShowOrderHandler
    vendor_balance: ShowVendorBalanceHandler
    request_payout: RequestPayoutHandler
    add_product: AddProductHandler
    set_stock: SetStockHandler
    show_stock: ShowStockHandler
    list_products: ListProductsHandler


def build_application(
    settings: Settings | None = None,
    notifier: Notifier | None = None,
    payment_gateway: PaymentGateway | None = None,
    create_tables: bool = False,
    setup_logging: bool = True,
) -> Application:
    settings = settings or load_settings()
    if setup_logging:
        configure_logging(settings.log_level, settings.log_json)

    engine = create_db_engine(settings.database_url, settings.lock_timeout_seconds)
    if create_tables:
        create_schema(engine)
    uow_factory = partial(SqlAlchemyUnitOfWork, create_session_factory(engine))

    notifier = notifier or LogNotifier()
    payment_gateway = payment_gateway or LoggingPaymentGateway()

    return Application(
        settings=settings,
        engine=engine,
        uow_factory=uow_factory,
        create_order=CreateOrderHandler(
            uow_factory, notifier, frozenset(settings.payment_methods), settings.base_currency
        ),
        change_order_status=ChangeOrderStatusHandler(uow_factory, notifier, payment_gateway),
        cancel_order=CancelOrderHandler(uow_factory, notifier, payment_gateway),
        record_payment=RecordPaymentHandler(uow_factory, notifier),
        show_order=ShowOrderHandler(uow_factory),
        vendor_balance=ShowVendorBalanceHandler(uow_factory),
        request_payout=RequestPayoutHandler(
            uow_factory, notifier, frozenset(settings.payout_methods), settings.default_payout_method
        ),
        add_product=AddProductHandler(uow_factory, settings.base_currency),
        set_stock=SetStockHandler(uow_factory),
        show_stock=ShowStockHandler(uow_factory),
        list_products=ListProductsHandler(uow_factory),
    )
