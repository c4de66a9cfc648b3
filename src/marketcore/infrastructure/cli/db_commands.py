"""CLI commands for schema creation and demo data."""

from __future__ import annotations

from pathlib import Path

import click

from marketcore.domain.exceptions import DomainException
from marketcore.infrastructure.cli.context import CliState, fail, pass_state
from marketcore.infrastructure.persistence.database import create_schema
from marketcore.infrastructure.seed import DEFAULT_FIXTURE_PATH, load_fixture, read_fixture


@click.command("init")
@pass_state
def db_init(state: CliState) -> None:
    """Create all tables (existing tables are left alone)."""
    app = state.application()
    create_schema(app.engine)
    click.echo(f"Database ready at {app.engine.url.render_as_string(hide_password=True)}")


@click.command("seed")
@click.option(
    "--file",
    "fixture",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=DEFAULT_FIXTURE_PATH,
    show_default=True,
    help="YAML fixture to load.",
)
@pass_state
def db_seed(state: CliState, fixture: Path) -> None:
    """Load accounts, vendors, products and stock from a fixture."""
    app = state.application()
    create_schema(app.engine)
    try:
        counts = load_fixture(app.uow_factory, read_fixture(fixture), app.settings.base_currency)
    except DomainException as exc:
        raise fail(exc)

    click.echo("Seeded " + ", ".join(f"{n} {name}" for name, n in counts.items()))
