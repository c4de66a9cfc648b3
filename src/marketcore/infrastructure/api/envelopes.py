"""Response envelopes and the exception-to-status mapping.

Success: ``{"success": true, "data": ...}``.
Failure: ``{"success": false, "message": ..., "reason": ...}`` plus
``errors`` for validation failures.
"""

from __future__ import annotations

import functools
from typing import Any, Callable

import pydantic
import structlog

from marketcore.domain.exceptions import (
    ConflictError,
    DomainException,
    ForbiddenError,
    InsufficientStockError,
    NotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)

Response = tuple[int, dict[str, Any]]

STATUS_CODES: list[tuple[type[DomainException], int]] = [
    (ValidationError, 422),
    (NotFoundError, 404),
    (ForbiddenError, 403),
    (ConflictError, 409),
]


def success(data: Any, status: int = 200) -> Response:
    return status, {"success": True, "data": data}


def failure(exc: DomainException, status: int) -> Response:
    body: dict[str, Any] = {"success": False, "message": str(exc), "reason": exc.reason}
    if isinstance(exc, InsufficientStockError):
        body["message"] = "insufficient stock"
        body["sku"] = exc.sku
    if isinstance(exc, ValidationError):
        body["errors"] = exc.errors
    return status, body


def status_for(exc: DomainException, overrides: dict[type[DomainException], int]) -> int:
    for exc_type, status in overrides.items():
        if isinstance(exc, exc_type):
            return status
    for exc_type, status in STATUS_CODES:
        if isinstance(exc, exc_type):
            return status
    return 500


def request_errors(exc: pydantic.ValidationError) -> ValidationError:
    """Turn a request-body parsing failure into the domain's ValidationError."""
    errors = {
        ".".join(str(part) for part in err["loc"]) or "_": err["msg"]
        for err in exc.errors()
    }
    return ValidationError("Invalid request body", errors=errors)


def endpoint(overrides: dict[type[DomainException], int] | None = None):
    """Catch domain errors raised by an endpoint and return their envelope."""
    overrides = overrides or {}

    def decorator(func: Callable[..., Response]) -> Callable[..., Response]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Response:
            try:
                try:
                    return func(*args, **kwargs)
                except pydantic.ValidationError as exc:
                    raise request_errors(exc) from exc
            except DomainException as exc:
                status = status_for(exc, overrides)
                if status >= 500:
                    logger.error("request_failed", endpoint=func.__name__, reason=exc.reason)
                else:
                    logger.info("request_rejected", endpoint=func.__name__, reason=exc.reason, status=status)
                return failure(exc, status)

        return wrapper

    return decorator
