"""CLI commands for products and stock."""

from __future__ import annotations

import click

from marketcore.domain.exceptions import DomainException
from marketcore.infrastructure.cli.context import CliState, fail, pass_state


@click.command("add")
@click.option("--name", required=True, help="Product name.")
@click.option("--price", required=True, help="Price (e.g. 15.00).")
@click.option("--vendor", "vendor_id", type=int, default=None, help="Selling vendor id.")
@click.option("--digital", is_flag=True, default=False, help="Digital product (no shipping).")
@click.option("--stock", "initial_stock", type=int, default=None, help="Initial stock; omit for unmanaged stock.")
@pass_state
def product_add(
    state: CliState,
    name: str,
    price: str,
    vendor_id: int | None,
    digital: bool,
    initial_stock: int | None,
) -> None:
    """Add a new product to the catalog."""
    handler = state.application().add_product

    try:
        product = handler.handle(state.auth, name, price, vendor_id, digital, initial_stock)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Product #{product.id} '{product.name}' added at {product.price}")


@click.command("list")
@pass_state
def product_list(state: CliState) -> None:
    """List all products in the catalog."""
    products = state.application().list_products.handle()

    if not products:
        click.echo("No products found.")
        return

    click.echo(f"{'ID':<6} {'Name':<20} {'Price':>10} {'Vendor':>8}")
    click.echo("-" * 47)
    for p in products:
        vendor = p.vendor_id if p.vendor_id is not None else "-"
        click.echo(f"{p.id:<6} {p.name:<20} {p.price:>10} {vendor:>8}")


@click.command("set")
@click.option("--product", "product_id", required=True, type=int, help="Product id.")
@click.option("--variant", "variant_id", type=int, default=None, help="Variant id.")
@click.option("--quantity", required=True, type=int, help="Units available for sale.")
@click.option("--unmanaged", is_flag=True, default=False, help="Stop tracking stock for this sku.")
@pass_state
def stock_set(
    state: CliState,
    product_id: int,
    variant_id: int | None,
    quantity: int,
    unmanaged: bool,
) -> None:
    """Set the stock level of a product or variant."""
    handler = state.application().set_stock

    try:
        line = handler.handle(state.auth, product_id, quantity, variant_id, manage_stock=not unmanaged)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Stock for sku {line.sku} set to {line.available}")


@click.command("show")
@pass_state
def stock_show(state: CliState) -> None:
    """Show current stock levels."""
    lines = state.application().show_stock.handle()

    if not lines:
        click.echo("No stock records found.")
        return

    click.echo(f"{'SKU':<12} {'Available':>10} {'Reserved':>10} {'Managed':>8}")
    click.echo("-" * 43)
    for line in lines:
        managed = "yes" if line.manage_stock else "no"
        click.echo(f"{line.sku:<12} {line.available:>10} {line.reserved:>10} {managed:>8}")
