import click

from marketcore.domain.model.auth import AuthContext
from marketcore.infrastructure.cli.catalog_commands import product_add, product_list, stock_set, stock_show
from marketcore.infrastructure.cli.context import CliState
from marketcore.infrastructure.cli.db_commands import db_init, db_seed
from marketcore.infrastructure.cli.order_commands import (
    order_cancel,
    order_create,
    order_pay,
    order_show,
    order_status,
)
from marketcore.infrastructure.cli.vendor_commands import vendor_balance, vendor_payout


@click.group()
@click.option("--user", "user_id", type=int, envvar="MARKETCORE_USER", default=None, help="Act as this user id.")
@click.option("--admin", is_flag=True, default=False, help="Act with admin rights.")
@click.pass_context
def cli(ctx: click.Context, user_id: int | None, admin: bool) -> None:
    """marketcore - multi-vendor order lifecycle and settlement"""
    state = ctx.ensure_object(CliState)
    state.auth = AuthContext(user_id=user_id, is_admin=admin)


@cli.group()
def db() -> None:
    """Create and seed the database."""


@cli.group()
def product() -> None:
    """Manage products."""


@cli.group()
def stock() -> None:
    """Manage stock levels."""


@cli.group()
def order() -> None:
    """Manage orders."""


@cli.group()
def vendor() -> None:
    """Vendor balances and payouts."""


# Register subcommands
db.add_command(db_init)
db.add_command(db_seed)
product.add_command(product_add)
product.add_command(product_list)
stock.add_command(stock_set)
stock.add_command(stock_show)
order.add_command(order_cancel)
order.add_command(order_create)
order.add_command(order_pay)
order.add_command(order_show)
order.add_command(order_status)
vendor.add_command(vendor_balance)
vendor.add_command(vendor_payout)
