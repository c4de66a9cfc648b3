"""CLI commands for the Order aggregate."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import click

from marketcore.application.dto import OrderDTO
from marketcore.domain.exceptions import DomainException
from marketcore.domain.model.draft import OrderDraft
from marketcore.infrastructure.cli.context import CliState, echo_json, fail, pass_state


def _parse_items(raw: str) -> list[dict[str, Any]]:
    """Parse '1:2,3/1:1' (product[/variant]:qty) into item mappings."""
    items: list[dict[str, Any]] = []
    for pair in raw.split(","):
        pair = pair.strip()
        if ":" not in pair:
            raise click.BadParameter(
                f"Invalid item format '{pair}'. Expected 'ProductId[/VariantId]:Quantity'."
            )
        ref, qty_str = pair.rsplit(":", 1)
        product_str, _, variant_str = ref.partition("/")
        try:
            item: dict[str, Any] = {"product_id": int(product_str), "quantity": int(qty_str)}
            if variant_str:
                item["variant_id"] = int(variant_str)
        except ValueError:
            raise click.BadParameter(f"Invalid item '{pair}'.")
        items.append(item)
    return items


def _display_order(dto: OrderDTO) -> None:
    """Shared formatting for displaying an order."""
    customer = f"user #{dto.user_id}" if dto.user_id is not None else dto.guest_email
    click.echo(f"Order {dto.order_number} (#{dto.id})  status={dto.status}  payment={dto.payment_status}")
    click.echo(f"Customer: {customer}")
    click.echo(f"Created:  {dto.created_at}")
    click.echo()
    click.echo(f"  {'Product':<24} {'Qty':>5} {'Price':>10} {'Total':>10}")
    click.echo(f"  {'-'*51}")
    for item in dto.items:
        click.echo(
            f"  {item.product_name:<24} {item.quantity:>5} {item.unit_price:>10} {item.line_total:>10}"
        )
    click.echo(f"  {'-'*51}")
    click.echo(f"  {'Subtotal':<31} {dto.subtotal:>20}")
    click.echo(f"  {'Shipping':<31} {dto.shipping_fee:>20}")
    click.echo(f"  {'Discount':<31} {dto.discount_amount:>20}")
    click.echo(f"  {'Grand Total (' + dto.currency + ')':<31} {dto.grand_total:>20}")


@click.command("create")
@click.option("--items", default=None, help="Items as 'ProductId[/VariantId]:Qty,...'.")
@click.option("--email", "guest_email", default=None, help="Guest email (orders without --user).")
@click.option("--payment-method", default="credit_card", show_default=True)
@click.option("--currency", default=None, help="Order currency (default: base currency).")
@click.option("--shipping-fee", default=None)
@click.option("--discount", "discount_amount", default=None)
@click.option("--address", "address_id", type=int, default=None, help="Stored shipping address id.")
@click.option("--client-id", "client_provided_id", default=None, help="Idempotency key.")
@click.option("--notes", default=None)
@click.option(
    "--payload",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Read the whole request from a JSON file instead.",
)
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the order as JSON.")
@pass_state
def order_create(
    state: CliState,
    items: str | None,
    guest_email: str | None,
    payment_method: str,
    currency: str | None,
    shipping_fee: str | None,
    discount_amount: str | None,
    address_id: int | None,
    client_provided_id: str | None,
    notes: str | None,
    payload: Path | None,
    as_json: bool,
) -> None:
    """Place a new order."""
    if payload is not None:
        body = json.loads(payload.read_text(encoding="utf-8"))
        if not isinstance(body, dict):
            raise click.BadParameter("payload must hold a JSON object", param_hint="--payload")
    else:
        if not items:
            raise click.UsageError("--items is required unless --payload is given")
        body = {
            "items": _parse_items(items),
            "guest_email": guest_email,
            "payment_method": payment_method,
            "currency": currency,
            "shipping_fee": shipping_fee,
            "discount_amount": discount_amount,
            "shipping_address_id": address_id,
            "client_provided_id": client_provided_id,
            "notes": notes,
        }

    handler = state.application().create_order

    try:
        placed = handler.handle(state.auth, OrderDraft.from_payload(body))
    except DomainException as exc:
        raise fail(exc)

    if as_json:
        echo_json(placed.order.to_dict())
        return
    if placed.created:
        click.echo(f"Order {placed.order.order_number} created")
    else:
        click.echo(f"Order {placed.order.order_number} already exists for this client id")
    click.echo()
    _display_order(placed.order)


@click.command("show")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to display.")
@click.option("--json", "as_json", is_flag=True, default=False, help="Print the order as JSON.")
@pass_state
def order_show(state: CliState, order_id: int, as_json: bool) -> None:
    """Show details of an existing order."""
    handler = state.application().show_order

    try:
        dto = handler.handle(state.auth, order_id)
    except DomainException as exc:
        raise fail(exc)

    if as_json:
        echo_json(dto.to_dict())
        return
    _display_order(dto)
    click.echo()
    click.echo("History:")
    for change in dto.status_history:
        origin = change.from_status or "-"
        click.echo(f"  {change.changed_at}  {origin} -> {change.to_status}  {change.reason or ''}")


@click.command("status")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--status", required=True, help="Target status.")
@click.option("--reason", default=None)
@pass_state
def order_status(state: CliState, order_id: int, status: str, reason: str | None) -> None:
    """Move an order to a new status."""
    handler = state.application().change_order_status

    try:
        dto = handler.handle(state.auth, order_id, status, reason)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Order #{order_id} is now {dto.status}")


@click.command("cancel")
@click.option("--id", "order_id", required=True, type=int, help="Order ID to cancel.")
@click.option("--reason", default=None)
@click.option("--refund", is_flag=True, default=False, help="Refund the payment if the order was paid.")
@pass_state
def order_cancel(state: CliState, order_id: int, reason: str | None, refund: bool) -> None:
    """Cancel an order (releases its stock)."""
    handler = state.application().cancel_order

    try:
        dto = handler.handle(state.auth, order_id, reason, refund)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Order #{order_id} cancelled (payment={dto.payment_status}).")


@click.command("pay")
@click.option("--id", "order_id", required=True, type=int, help="Order ID.")
@click.option("--status", type=click.Choice(["paid", "failed"]), required=True)
@pass_state
def order_pay(state: CliState, order_id: int, status: str) -> None:
    """Record the payment outcome reported by the gateway."""
    handler = state.application().record_payment

    try:
        dto = handler.handle(state.auth, order_id, status)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Order #{order_id}: payment={dto.payment_status}, status={dto.status}")
