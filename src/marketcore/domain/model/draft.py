"""OrderDraft: the raw, unvalidated order request.

Built from an arbitrary JSON mapping without raising.  Values are kept as
given; deciding whether they are acceptable is OrderIntake's job.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class DraftItem:
    product_id: Any
    quantity: Any = 1
    variant_id: Any = None


@dataclass(frozen=True)
class OrderDraft:
    items: Any = field(default_factory=list)
    user_id: Any = None
    guest_email: Any = None
    shipping_address_id: Any = None
    shipping_address: Any = None
    billing_address_id: Any = None
    billing_address: Any = None
    payment_method: Any = None
    currency: Any = None
    shipping_fee: Any = None
    discount_amount: Any = None
    client_provided_id: Any = None
    notes: Any = None

    @staticmethod
    def from_payload(payload: Mapping[str, Any]) -> OrderDraft:
        """Read a request body.  Accepts ``items[].id`` and ``email`` aliases."""
        raw_items = payload.get("items")
        if isinstance(raw_items, list):
            items: Any = [
                DraftItem(
                    product_id=it.get("product_id", it.get("id")),
                    quantity=it.get("quantity", 1),
                    variant_id=it.get("variant_id"),
                )
                if isinstance(it, Mapping)
                else DraftItem(product_id=None, quantity=None)
                for it in raw_items
            ]
        else:
            items = raw_items

        return OrderDraft(
            items=items,
            user_id=payload.get("user_id"),
            guest_email=payload.get("guest_email", payload.get("email")),
            shipping_address_id=payload.get("shipping_address_id"),
            shipping_address=payload.get("shipping_address"),
            billing_address_id=payload.get("billing_address_id"),
            billing_address=payload.get("billing_address"),
            payment_method=payload.get("payment_method"),
            currency=payload.get("currency"),
            shipping_fee=payload.get("shipping_fee"),
            discount_amount=payload.get("discount_amount"),
            client_provided_id=payload.get("client_provided_id"),
            notes=payload.get("notes"),
        )
