"""Framework-agnostic HTTP endpoints.

Each function takes the authenticated caller and the decoded request body
and returns ``(status_code, envelope)``.  Mounting them on a web framework
is a matter of routing:

    POST /orders                   create_order
    GET  /orders/{id}              show_order
    POST /orders/{id}/status       change_order_status
    POST /orders/{id}/cancel       cancel_order
    POST /orders/{id}/payment      record_payment
    GET  /vendors/{id}/balance     vendor_balance
    POST /vendors/{id}/payout      request_payout
"""

from __future__ import annotations

from typing import Any, Mapping

from pydantic import BaseModel, ConfigDict

from marketcore.application.request_payout import parse_amount
from marketcore.domain.exceptions import (
    InsufficientBalanceError,
    InvalidAmountError,
    InvalidTransitionError,
    ValidationError,
)
from marketcore.domain.model.auth import AuthContext
from marketcore.domain.model.draft import OrderDraft
from marketcore.infrastructure.api.envelopes import Response, endpoint, success
from marketcore.infrastructure.bootstrap import Application


class StatusBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str
    reason: str | None = None


class CancelBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    reason: str | None = None
    refund: bool = False


class PaymentBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    status: str


class PayoutBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    amount: Any = None
    method: str | None = None


def _object(body: Any) -> Mapping[str, Any]:
    if body is None:
        return {}
    if not isinstance(body, Mapping):
        raise ValidationError("Request body must be a JSON object")
    return body


@endpoint()
def create_order(app: Application, auth: AuthContext, body: Any) -> Response:
    placed = app.create_order.handle(auth, OrderDraft.from_payload(_object(body)))
    return success(placed.order.to_dict(), status=201 if placed.created else 200)


@endpoint()
def show_order(app: Application, auth: AuthContext, order_id: int) -> Response:
    return success(app.show_order.handle(auth, order_id).to_dict())


@endpoint(overrides={InvalidTransitionError: 400})
def change_order_status(app: Application, auth: AuthContext, order_id: int, body: Any) -> Response:
    request = StatusBody.model_validate(_object(body))
    order = app.change_order_status.handle(auth, order_id, request.status, request.reason)
    return success(order.to_dict())


@endpoint(overrides={InvalidTransitionError: 400})
def cancel_order(app: Application, auth: AuthContext, order_id: int, body: Any = None) -> Response:
    request = CancelBody.model_validate(_object(body))
    order = app.cancel_order.handle(auth, order_id, request.reason, request.refund)
    return success(order.to_dict())


@endpoint(overrides={InvalidTransitionError: 400})
def record_payment(app: Application, auth: AuthContext, order_id: int, body: Any) -> Response:
    request = PaymentBody.model_validate(_object(body))
    order = app.record_payment.handle(auth, order_id, request.status)
    return success(order.to_dict())


@endpoint()
def vendor_balance(app: Application, auth: AuthContext, vendor_id: int) -> Response:
    return success(app.vendor_balance.handle(auth, vendor_id).to_dict())


@endpoint(overrides={InsufficientBalanceError: 422, InvalidAmountError: 422})
def request_payout(app: Application, auth: AuthContext, vendor_id: int, body: Any = None) -> Response:
    request = PayoutBody.model_validate(_object(body))
    payout = app.request_payout.handle(auth, vendor_id, parse_amount(request.amount), request.method)
    return success(payout.to_dict(), status=201)
