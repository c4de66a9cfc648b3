"""Tests for the click command line, run against an in-memory database."""

import json

import click
import pytest
from click.testing import CliRunner

from marketcore.infrastructure.bootstrap import Application, build_application
from marketcore.infrastructure.cli.context import CliState
from marketcore.infrastructure.cli.main import cli
from marketcore.infrastructure.cli.order_commands import _parse_items
from marketcore.infrastructure.config import Settings
from tests.fakes import FakeNotifier, FakePaymentGateway


def _app() -> Application:
    return build_application(
        Settings(database_url="sqlite://"),
        notifier=FakeNotifier(),
        payment_gateway=FakePaymentGateway(),
        create_tables=True,
        setup_logging=False,
    )


def _run(app: Application, *args: str):
    return CliRunner().invoke(cli, list(args), obj=CliState(app=app))


def _seeded() -> Application:
    app = _app()
    result = _run(app, "db", "seed")
    assert result.exit_code == 0, result.output
    return app


class TestParseItems:

    def test_products_and_variants(self):
        assert _parse_items("1:2, 3/1:1") == [
            {"product_id": 1, "quantity": 2},
            {"product_id": 3, "quantity": 1, "variant_id": 1},
        ]

    @pytest.mark.parametrize("raw", ["1", "a:1", "1:x", "1/b:2"])
    def test_rejects_malformed(self, raw):
        with pytest.raises(click.BadParameter):
            _parse_items(raw)


class TestCommands:

    def test_seed_reports_counts(self):
        result = _run(_app(), "db", "seed")
        assert result.exit_code == 0
        assert "Seeded 5 accounts" in result.output

    def test_order_lifecycle(self):
        app = _seeded()

        created = _run(app, "--user", "2", "order", "create", "--items", "1:2", "--address", "1", "--json")
        assert created.exit_code == 0, created.output
        order = json.loads(created.output)
        assert order["grand_total"] == "20.00"
        order_id = str(order["id"])

        paid = _run(app, "--admin", "order", "pay", "--id", order_id, "--status", "paid")
        assert "payment=paid, status=confirmed" in paid.output

        for target in ("processing", "shipped", "delivered"):
            moved = _run(app, "--user", "10", "order", "status", "--id", order_id, "--status", target)
            assert moved.exit_code == 0, moved.output

        shown = _run(app, "--user", "2", "order", "show", "--id", order_id)
        assert "status=delivered" in shown.output
        assert "shipped -> delivered" in shown.output

        balance = _run(app, "--user", "10", "vendor", "balance", "--id", "1")
        assert "18.00" in balance.output

        payout = _run(app, "--user", "10", "vendor", "payout", "--id", "1", "--amount", "8")
        assert payout.exit_code == 0, payout.output
        assert "of 8.00 requested via bank_transfer (pending)" in payout.output

    def test_guest_order_and_replay(self):
        app = _seeded()
        args = ("order", "create", "--items", "4:1", "--email", "guest@example.com", "--client-id", "g-1")

        first = _run(app, *args)
        second = _run(app, *args)

        assert " created" in first.output
        assert "already exists" in second.output

    def test_order_from_payload_file(self, tmp_path):
        app = _seeded()
        payload = tmp_path / "order.json"
        payload.write_text(
            json.dumps({"items": [{"id": 4, "quantity": 1}], "email": "x@example.com", "payment_method": "mada"}),
            encoding="utf-8",
        )
        result = _run(app, "order", "create", "--payload", str(payload), "--json")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["payment_method"] == "mada"

    def test_domain_errors_exit_non_zero(self):
        app = _seeded()
        result = _run(app, "--user", "2", "order", "create", "--items", "2:99", "--address", "1")
        assert result.exit_code == 1
        assert "Insufficient stock" in result.output

        invalid = _run(app, "order", "create", "--items", "1:1", "--payment-method", "gold")
        assert invalid.exit_code == 1
        assert "payment_method:" in invalid.output

        missing = _run(app, "--admin", "order", "show", "--id", "99")
        assert "not found" in missing.output

    def test_items_required_without_payload(self):
        result = _run(_seeded(), "order", "create")
        assert result.exit_code == 2

    def test_cancel(self):
        app = _seeded()
        created = _run(app, "--user", "2", "order", "create", "--items", "1:1", "--address", "1", "--json")
        order_id = str(json.loads(created.output)["id"])

        denied = _run(app, "--user", "3", "order", "cancel", "--id", order_id)
        assert denied.exit_code == 1

        cancelled = _run(app, "--user", "2", "order", "cancel", "--id", order_id, "--reason", "oops")
        assert cancelled.exit_code == 0
        assert "cancelled" in cancelled.output

    def test_catalog_admin(self):
        app = _seeded()
        denied = _run(app, "product", "add", "--name", "Lamp", "--price", "9.50")
        assert denied.exit_code == 1

        added = _run(app, "--admin", "product", "add", "--name", "Lamp", "--price", "9.50", "--stock", "3")
        assert added.exit_code == 0, added.output
        assert "Product #5 'Lamp' added at 9.50" in added.output

        stocked = _run(app, "--admin", "stock", "set", "--product", "5", "--quantity", "12")
        assert "Stock for sku 5 set to 12" in stocked.output

        listing = _run(app, "product", "list")
        assert "Lamp" in listing.output
        assert "Widget" in listing.output

        stock = _run(app, "stock", "show")
        assert stock.exit_code == 0
        assert "3:2" in stock.output
