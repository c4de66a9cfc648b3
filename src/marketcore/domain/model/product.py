"""Product aggregate.

Products live independently of orders.  Orders only ever read a product to
snapshot its name, price and vendor at creation time.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from marketcore.domain.exceptions import ValidationError
from marketcore.domain.model.value_objects import Money


def make_sku(product_id: int, variant_id: int | None = None) -> str:
    """Stock keeping unit for a product or one of its variants."""
    if variant_id is None:
        return str(product_id)
    return f"{product_id}:{variant_id}"


@dataclass
class ProductVariant:
    id: int
    name: str
    price: Money | None = None  # falls back to the product price


@dataclass
class Product:
    """A product in the catalog.

    ``is_digital`` products never require a shipping address.
    """

    id: int
    name: str
    price: Money
    vendor_id: int | None = None
    is_active: bool = True
    is_digital: bool = False
    variants: list[ProductVariant] = field(default_factory=list)

    @property
    def is_purchasable(self) -> bool:
        return self.is_active

    @property
    def requires_shipping(self) -> bool:
        return not self.is_digital

    def variant(self, variant_id: int) -> ProductVariant | None:
        for v in self.variants:
            if v.id == variant_id:
                return v
        return None

    def price_for(self, variant_id: int | None) -> Money:
        if variant_id is not None:
            variant = self.variant(variant_id)
            if variant is None:
                raise ValidationError(
                    f"Variant {variant_id} does not belong to product {self.id}"
                )
            if variant.price is not None:
                return variant.price
        return self.price

    def display_name(self, variant_id: int | None) -> str:
        variant = self.variant(variant_id) if variant_id is not None else None
        return f"{self.name} ({variant.name})" if variant else self.name

    def update_price(self, new_price: Money) -> None:
        """Change the product price.

        This does NOT affect any existing orders because orders
        capture a price snapshot at creation time.
        """
        if new_price.amount <= 0:
            raise ValidationError("Product price must be greater than zero")
        self.price = new_price
