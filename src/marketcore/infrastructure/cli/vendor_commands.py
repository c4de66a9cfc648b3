"""CLI commands for vendor balances and payouts."""

from __future__ import annotations

import click

from marketcore.application.request_payout import parse_amount
from marketcore.domain.exceptions import DomainException
from marketcore.infrastructure.cli.context import CliState, fail, pass_state


@click.command("balance")
@click.option("--id", "vendor_id", required=True, type=int, help="Vendor ID.")
@pass_state
def vendor_balance(state: CliState, vendor_id: int) -> None:
    """Show what a vendor has earned and can withdraw."""
    handler = state.application().vendor_balance

    try:
        balance = handler.handle(state.auth, vendor_id)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Vendor #{vendor_id}")
    click.echo(f"  {'Total sales':<22} {balance.total_sales:>12}")
    click.echo(f"  {'Commission':<22} {balance.total_commission:>12}")
    click.echo(f"  {'Paid out':<22} {balance.total_paid:>12}")
    click.echo(f"  {'Available for payout':<22} {balance.available_for_payout:>12}")


@click.command("payout")
@click.option("--id", "vendor_id", required=True, type=int, help="Vendor ID.")
@click.option("--amount", default=None, help="Amount to withdraw (default: everything available).")
@click.option("--method", default=None, help="Payout method.")
@pass_state
def vendor_payout(state: CliState, vendor_id: int, amount: str | None, method: str | None) -> None:
    """Request a payout of the available balance."""
    handler = state.application().request_payout

    try:
        payout = handler.handle(state.auth, vendor_id, parse_amount(amount), method)
    except DomainException as exc:
        raise fail(exc)

    click.echo(f"Payout #{payout.payout_id} of {payout.amount} requested via {payout.method} ({payout.status})")
