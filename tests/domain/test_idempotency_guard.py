"""Unit tests for the IdempotencyGuard domain service."""

import pytest

from marketcore.domain.exceptions import IdempotencyConflictError
from marketcore.domain.model.order import CustomerRef, Order, OrderItem
from marketcore.domain.model.value_objects import Money, Quantity
from marketcore.domain.service.idempotency_guard import Admitted, Duplicate, IdempotencyGuard
from tests.fakes import FakeOrderRepository, FakeStore


def _existing_order(repo: FakeOrderRepository, key: str, fingerprint: str) -> Order:
    order = Order.place(
        customer=CustomerRef(guest_email="a@b.co"),
        items=[OrderItem(1, "1", "Widget", Quantity(1), Money.of("5"))],
        payment_method="credit_card",
        currency="USD",
        shipping_fee=Money.of("0"),
        discount_amount=Money.of("0"),
        reservation_token=None,
        client_provided_id=key,
        request_fingerprint=fingerprint,
    )
    repo.add(order)
    return order


class TestAdmit:

    def test_no_key_always_admitted(self):
        guard = IdempotencyGuard(FakeOrderRepository(FakeStore()))
        assert isinstance(guard.admit(None, "f"), Admitted)

    def test_unseen_key_admitted(self):
        guard = IdempotencyGuard(FakeOrderRepository(FakeStore()))
        assert isinstance(guard.admit("abc", "f"), Admitted)

    def test_replay_with_same_payload_returns_original(self):
        repo = FakeOrderRepository(FakeStore())
        original = _existing_order(repo, "abc", "f1")
        admission = IdempotencyGuard(repo).admit("abc", "f1")
        assert isinstance(admission, Duplicate)
        assert admission.order_id == original.id

    def test_replay_with_different_payload_rejected(self):
        repo = FakeOrderRepository(FakeStore())
        _existing_order(repo, "abc", "f1")
        with pytest.raises(IdempotencyConflictError, match="different payload"):
            IdempotencyGuard(repo).admit("abc", "f2")
