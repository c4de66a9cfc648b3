"""Caller identity handed to every entry point of the core."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class AuthContext:
    """Who is making the request.

    ``user_id`` is None for anonymous (guest) callers.  The core never reads
    session storage; whoever authenticates the request builds this value.
    """

    user_id: int | None = None
    is_admin: bool = False

    @staticmethod
    def anonymous() -> AuthContext:
        return AuthContext()

    @staticmethod
    def admin(user_id: int | None = None) -> AuthContext:
        return AuthContext(user_id=user_id, is_admin=True)
