"""Domain service: Order Intake.

Turns a raw OrderDraft into a ValidatedOrder.  Every field is checked
independently and all problems are reported together, keyed by field path,
so a client can fix everything in one round trip.

Lookups against the catalog and the account store are read-only; intake
never writes anything.  ``request_fingerprint`` hashes the raw request for
idempotent replays without touching either.
"""

from __future__ import annotations

import hashlib
import json
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.draft import DraftItem, OrderDraft
from marketcore.domain.model.order import MAX_LINE_ITEMS, AddressRef, CustomerRef
from marketcore.domain.model.product import Product, make_sku
from marketcore.domain.model.value_objects import CENT, MAX_AMOUNT
from marketcore.domain.repository.account_repository import AccountRepository
from marketcore.domain.repository.product_repository import ProductRepository
from marketcore.domain.repository.stock_repository import StockRepository

EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
CURRENCY_RE = re.compile(r"^[A-Z]{3}$")
REQUIRED_ADDRESS_FIELDS = ("line1", "city", "country")
MAX_CLIENT_ID_LENGTH = 128
MAX_NOTES_LENGTH = 1000
MAX_ID = 2**31 - 1
MAX_LINE_QUANTITY = 10_000


@dataclass(frozen=True)
class ValidatedLine:
    product: Product
    quantity: int
    variant_id: int | None = None

    @property
    def sku(self) -> str:
        return make_sku(self.product.id, self.variant_id)


@dataclass(frozen=True)
class ValidatedOrder:
    customer: CustomerRef
    lines: list[ValidatedLine]
    payment_method: str
    currency: str
    shipping_fee: Decimal = Decimal("0.00")
    discount_amount: Decimal = Decimal("0.00")
    shipping_address: AddressRef | None = None
    billing_address: AddressRef | None = None
    client_provided_id: str | None = None
    notes: str | None = None


@dataclass(frozen=True)
class IntakeResult:
    """Either ``order`` is set (``ok``) or ``errors`` is non-empty."""

    order: ValidatedOrder | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.order is not None and not self.errors

    def unwrap(self) -> ValidatedOrder:
        if not self.ok:
            raise ValidationError("Order validation failed", errors=self.errors)
        return self.order  # type: ignore[return-value]


def request_fingerprint(draft: OrderDraft, base_currency: str = "USD") -> str:
    """SHA-256 over the canonical JSON of an order request.

    Only the request itself is normalized (ids parsed, text trimmed, amounts
    rounded); nothing is looked up, so a replay hashes the same way after the
    catalog or the customer's addresses have changed.
    """
    canonical = {
        "customer": {
            "user_id": _canonical_id(draft.user_id),
            "guest_email": _clean_str(draft.guest_email).lower() or None,
        },
        "items": _canonical_items(draft.items),
        "payment_method": _clean_str(draft.payment_method) or None,
        "currency": _clean_str(draft.currency).upper() or base_currency.upper(),
        "shipping_fee": _canonical_amount(draft.shipping_fee),
        "discount_amount": _canonical_amount(draft.discount_amount),
        "shipping_address": _canonical_address(draft.shipping_address_id, draft.shipping_address),
        "billing_address": _canonical_address(draft.billing_address_id, draft.billing_address),
        "notes": _clean_str(draft.notes) or None,
    }
    blob = json.dumps(canonical, sort_keys=True, separators=(",", ":"), default=repr)
    return hashlib.sha256(blob.encode("utf-8")).hexdigest()


def _canonical_id(value: Any) -> Any:
    if value is None or value == "":
        return None
    parsed = _bounded_int(value)
    return parsed if parsed is not None else repr(value)


def _canonical_amount(value: Any) -> str:
    errors: dict[str, str] = {}
    amount = _non_negative_amount("amount", value, errors)
    return repr(value) if errors else str(amount)


def _canonical_items(raw_items: Any) -> Any:
    if not isinstance(raw_items, list):
        return repr(raw_items)
    items = []
    for item in raw_items:
        if isinstance(item, Mapping):
            item = DraftItem(item.get("product_id"), item.get("quantity", 1), item.get("variant_id"))
        if not isinstance(item, DraftItem):
            items.append(repr(item))
            continue
        items.append(
            {
                "product_id": _canonical_id(item.product_id),
                "variant_id": _canonical_id(item.variant_id),
                "quantity": _canonical_id(item.quantity),
            }
        )
    return items


def _canonical_address(raw_id: Any, raw_inline: Any) -> Any:
    if raw_id not in (None, ""):
        return {"address_id": _canonical_id(raw_id)}
    if raw_inline in (None, {}):
        return None
    if not isinstance(raw_inline, Mapping):
        return repr(raw_inline)
    return _address_fields(raw_inline)


class OrderIntake:

    def __init__(
        self,
        product_repo: ProductRepository,
        stock_repo: StockRepository,
        account_repo: AccountRepository,
        payment_methods: frozenset[str] | set[str],
        base_currency: str = "USD",
    ) -> None:
        self._product_repo = product_repo
        self._stock_repo = stock_repo
        self._account_repo = account_repo
        self._payment_methods = frozenset(payment_methods)
        self._base_currency = base_currency.upper()

    def validate(self, draft: OrderDraft) -> IntakeResult:
        errors: dict[str, str] = {}

        lines = self._validate_items(draft.items, errors)
        customer = self._validate_customer(draft, errors)
        needs_shipping = any(line.product.requires_shipping for line in lines)
        shipping = self._validate_address(
            "shipping_address", draft.shipping_address_id, draft.shipping_address, customer, errors
        )
        if shipping is None and needs_shipping and "shipping_address" not in errors:
            errors["shipping_address"] = "Shipping address is required for physical items"
        billing = self._validate_address(
            "billing_address", draft.billing_address_id, draft.billing_address, customer, errors
        )

        payment_method = _clean_str(draft.payment_method)
        if not payment_method:
            errors["payment_method"] = "Payment method is required"
        elif payment_method not in self._payment_methods:
            errors["payment_method"] = f"Unsupported payment method '{payment_method}'"

        shipping_fee = _non_negative_amount("shipping_fee", draft.shipping_fee, errors)
        discount = _non_negative_amount("discount_amount", draft.discount_amount, errors)
        currency = self._validate_currency(draft.currency, errors)
        client_id = _validate_client_id(draft.client_provided_id, errors)
        notes = _validate_notes(draft.notes, errors)

        if errors:
            return IntakeResult(errors=errors)

        return IntakeResult(
            order=ValidatedOrder(
                customer=customer,  # type: ignore[arg-type]
                lines=lines,
                payment_method=payment_method,
                currency=currency,
                shipping_fee=shipping_fee,
                discount_amount=discount,
                shipping_address=shipping,
                billing_address=billing,
                client_provided_id=client_id,
                notes=notes,
            )
        )

    # --- Items ----------------------------------------------------------------

    def _validate_items(self, raw_items: Any, errors: dict[str, str]) -> list[ValidatedLine]:
        if not isinstance(raw_items, list) or not raw_items:
            errors["items"] = "Order items are required"
            return []
        if len(raw_items) > MAX_LINE_ITEMS:
            errors["items"] = f"Maximum {MAX_LINE_ITEMS} items per order"
            return []

        lines: list[ValidatedLine] = []
        for idx, item in enumerate(raw_items):
            if isinstance(item, Mapping):
                item = DraftItem(item.get("product_id"), item.get("quantity", 1), item.get("variant_id"))
            if not isinstance(item, DraftItem):
                errors[f"items.{idx}"] = "Invalid item"
                continue
            line = self._validate_item(idx, item, errors)
            if line is not None:
                lines.append(line)
        return lines

    def _validate_item(self, idx: int, item: DraftItem, errors: dict[str, str]) -> ValidatedLine | None:
        prefix = f"items.{idx}"
        product_id = _bounded_int(item.product_id)
        quantity = _bounded_int(item.quantity, MAX_LINE_QUANTITY)
        variant_id = None
        if item.variant_id is not None:
            variant_id = _bounded_int(item.variant_id)
            if variant_id is None:
                errors[f"{prefix}.variant_id"] = "Invalid variant id"
        if quantity is None:
            errors[f"{prefix}.quantity"] = f"Quantity must be between 1 and {MAX_LINE_QUANTITY}"
        if product_id is None:
            errors[f"{prefix}.product_id"] = "Invalid product id"
            return None

        product = self._product_repo.get_by_id(product_id)
        if product is None:
            errors[f"{prefix}.product_id"] = f"Product not found: {product_id}"
            return None
        if not product.is_purchasable:
            errors[f"{prefix}.product_id"] = f"Product {product_id} is not available"
            return None
        if variant_id is not None and product.variant(variant_id) is None:
            errors[f"{prefix}.variant_id"] = f"Unknown variant {variant_id} for product {product_id}"
            return None
        if self._stock_repo.get(make_sku(product_id, variant_id)) is None:
            errors[f"{prefix}.product_id"] = f"Product {product_id} has no stock record"
            return None
        if quantity is None or f"{prefix}.variant_id" in errors:
            return None
        return ValidatedLine(product=product, quantity=quantity, variant_id=variant_id)

    # --- Customer -------------------------------------------------------------

    def _validate_customer(self, draft: OrderDraft, errors: dict[str, str]) -> CustomerRef | None:
        has_user = draft.user_id not in (None, "")
        has_email = _clean_str(draft.guest_email) != ""

        if has_user and has_email:
            errors["customer"] = "Provide either user_id or guest_email, not both"
            return None
        if not has_user and not has_email:
            errors["customer"] = "Customer user_id or valid guest email is required"
            return None

        if has_user:
            user_id = _bounded_int(draft.user_id)
            if user_id is None:
                errors["user_id"] = "Invalid user id"
                return None
            account = self._account_repo.get_by_id(user_id)
            if account is None or not account.is_active:
                errors["user_id"] = f"Unknown customer account {user_id}"
                return None
            return CustomerRef(user_id=user_id)

        email = _clean_str(draft.guest_email).lower()
        if not EMAIL_RE.match(email):
            errors["guest_email"] = "Invalid guest email"
            return None
        return CustomerRef(guest_email=email)

    # --- Addresses ------------------------------------------------------------

    def _validate_address(
        self,
        name: str,
        raw_id: Any,
        raw_inline: Any,
        customer: CustomerRef | None,
        errors: dict[str, str],
    ) -> AddressRef | None:
        if raw_id not in (None, ""):
            address_id = _bounded_int(raw_id)
            if address_id is None:
                errors[f"{name}_id"] = "Invalid address id"
                return None
            address = self._account_repo.get_address(address_id)
            if address is None:
                errors[f"{name}_id"] = f"Address {address_id} not found"
                return None
            if customer is not None and address.user_id != customer.user_id:
                errors[f"{name}_id"] = "Address does not belong to the customer"
                return None
            return AddressRef(address_id=address_id)

        if raw_inline in (None, {}):
            return None
        if not isinstance(raw_inline, Mapping):
            errors[name] = "Address must be an object"
            return None

        cleaned = _address_fields(raw_inline)
        missing = False
        for required in REQUIRED_ADDRESS_FIELDS:
            if not cleaned.get(required):
                errors[f"{name}.{required}"] = f"{required} is required"
                missing = True
        if missing:
            # Keeps the "required for physical items" message from overwriting these.
            errors.setdefault(name, "Address is incomplete")
            return None
        return AddressRef(inline=cleaned)

    def _validate_currency(self, raw: Any, errors: dict[str, str]) -> str:
        currency = _clean_str(raw).upper()
        if not currency:
            return self._base_currency
        if not CURRENCY_RE.match(currency):
            errors["currency"] = "Currency must be a 3-letter code"
        return currency


# --- Field helpers ---------------------------------------------------------------


def _clean_str(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _address_fields(raw: Mapping[Any, Any]) -> dict[str, str]:
    return {
        str(key): str(value).strip()
        for key, value in raw.items()
        if isinstance(value, (str, int)) and not isinstance(value, bool)
    }


def _bounded_int(value: Any, upper: int = MAX_ID) -> int | None:
    """Accept ints and integral numeric strings/floats in ``1..upper``."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        result = value
    elif isinstance(value, float) and value.is_integer():
        result = int(value)
    elif isinstance(value, str) and value.strip().isascii() and value.strip().isdigit():
        text = value.strip().lstrip("0") or "0"
        if len(text) > len(str(upper)):
            return None
        result = int(text)
    else:
        return None
    return result if 0 < result <= upper else None


def _non_negative_amount(name: str, value: Any, errors: dict[str, str]) -> Decimal:
    if value is None or value == "":
        return Decimal("0.00")
    if isinstance(value, bool):
        errors[name] = f"{name} must be a number"
        return Decimal("0.00")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        errors[name] = f"{name} must be a number"
        return Decimal("0.00")
    if not amount.is_finite():
        errors[name] = f"{name} must be a number"
        return Decimal("0.00")
    if amount < 0:
        errors[name] = f"{name} cannot be negative"
        return Decimal("0.00")
    if amount > MAX_AMOUNT:
        errors[name] = f"{name} cannot exceed {MAX_AMOUNT}"
        return Decimal("0.00")
    return amount.quantize(CENT)


def normalize_client_id(value: Any) -> str | None:
    """The idempotency key as stored, or None when absent or unusable."""
    return _validate_client_id(value, {})


def _validate_client_id(value: Any, errors: dict[str, str]) -> str | None:
    if value is None:
        return None
    if isinstance(value, int) and not isinstance(value, bool):
        value = str(value)
    if not isinstance(value, str):
        errors["client_provided_id"] = "client_provided_id must be a string"
        return None
    value = value.strip()
    if not value:
        return None
    if len(value) > MAX_CLIENT_ID_LENGTH:
        errors["client_provided_id"] = f"client_provided_id is limited to {MAX_CLIENT_ID_LENGTH} characters"
        return None
    return value


def _validate_notes(value: Any, errors: dict[str, str]) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        errors["notes"] = "Notes must be text"
        return None
    value = value.strip()
    if len(value) > MAX_NOTES_LENGTH:
        errors["notes"] = f"Notes are limited to {MAX_NOTES_LENGTH} characters"
        return None
    return value or None
