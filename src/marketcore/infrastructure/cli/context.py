"""Per-invocation CLI state: the caller's identity and the wired application."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

import click

from marketcore.domain.exceptions import DomainException, ValidationError
from marketcore.domain.model.auth import AuthContext
from marketcore.infrastructure.bootstrap import Application, build_application


@dataclass
class CliState:
    app: Application | None = None
    auth: AuthContext = field(default_factory=AuthContext.anonymous)

    def application(self) -> Application:
        if self.app is None:
            self.app = build_application()
        return self.app


pass_state = click.make_pass_decorator(CliState, ensure=True)


def fail(exc: DomainException) -> click.ClickException:
    """Render a domain error for the terminal."""
    if isinstance(exc, ValidationError) and set(exc.errors) != {"_"}:
        details = "\n".join(f"  {key}: {message}" for key, message in sorted(exc.errors.items()))
        return click.ClickException(f"{exc}\n{details}")
    return click.ClickException(str(exc))


def echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, default=str))
