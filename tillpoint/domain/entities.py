"""Domain entities for the till.

Product is the read-only catalog row as the engine sees it. CartLine is
the only entity the cart engine owns; CartTotals is derived from the
lines and never stored.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Self

from tillpoint.domain.base import Entity, ValueObject
from tillpoint.domain.exceptions import InvalidProductDataError, InvalidQuantityError
from tillpoint.domain.value_objects import (
    Badge,
    LineKey,
    ProductVariants,
    SelectedVariant,
    badge_value,
    to_price,
    to_quantity,
)


# ============================================================================
# Product
# ============================================================================


@dataclass(frozen=True)
class Product:
    """A sellable catalog item.

    Owned by persisted storage; the engine only reads it. Optional
    columns (brand, barcode, reorder threshold) default to empty.

    Attributes:
        id: Unique product identifier.
        name: Display name.
        category: Key into the category taxonomy.
        price: Base price in major currency units.
        image: Opaque display reference.
        description: Free-text description.
        badge: Promotional tag driving discounts.
        variants: Color/size/flavor option sets.
        brand: Brand name, if known.
        barcode: Barcode, if known.
        reorder_qty: Stock level that triggers a reorder, if set.
        in_stock: Availability flag.
        stock_quantity: Units on hand.
    """

    id: str
    name: str
    category: str
    price: Decimal
    image: str = ""
    description: str = ""
    badge: Badge | None = None
    variants: ProductVariants = field(default_factory=ProductVariants)
    brand: str | None = None
    barcode: str | None = None
    reorder_qty: int | None = None
    in_stock: bool = True
    stock_quantity: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> Self:
        """Build a product from a raw row or JSON object.

        Args:
            data: Raw product data.

        Returns:
            Product instance.

        Raises:
            InvalidProductDataError: If id, name or price are unusable.
        """
        product_id = data.get("id")
        if not isinstance(product_id, str) or not product_id.strip():
            raise InvalidProductDataError(None, "missing id")
        name = data.get("name")
        if not isinstance(name, str) or not name.strip():
            raise InvalidProductDataError(product_id, "missing name")
        try:
            price = to_price(data.get("price"))
        except ValueError as e:
            raise InvalidProductDataError(product_id, str(e)) from e

        return cls(
            id=product_id,
            name=name,
            category=str(data.get("category") or ""),
            price=price,
            image=str(data.get("image") or ""),
            description=str(data.get("description") or ""),
            badge=Badge.parse(data.get("badge")),
            variants=ProductVariants.from_raw(data.get("variants")),
            brand=data.get("brand") or None,
            barcode=data.get("barcode") or None,
            reorder_qty=_as_int(data.get("reorder_qty", data.get("reorderQty"))),
            in_stock=bool(data.get("in_stock", data.get("inStock", True))),
            stock_quantity=_as_int(data.get("stock_quantity", data.get("stockQuantity"))) or 0,
        )

    @property
    def has_variants(self) -> bool:
        """Check if any variant dimension offers options."""
        return self.variants.has_options

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary.

        Returns:
            Dictionary representation.
        """
        return {
            "id": self.id,
            "name": self.name,
            "category": self.category,
            "price": str(self.price),
            "image": self.image,
            "description": self.description,
            "badge": badge_value(self.badge),
            "variants": self.variants.to_dict(),
            "brand": self.brand,
            "barcode": self.barcode,
            "reorder_qty": self.reorder_qty,
            "in_stock": self.in_stock,
            "stock_quantity": self.stock_quantity,
        }


def validate_product(product: object) -> Product:
    """Check that a product can be identified and priced.

    Args:
        product: Candidate product.

    Returns:
        The same product.

    Raises:
        InvalidProductDataError: If id or name is missing or the price is
            not a finite non-negative number.
    """
    if not isinstance(product, Product):
        raise InvalidProductDataError(None, f"expected Product, got {type(product).__name__}")
    if not isinstance(product.id, str) or not product.id.strip():
        raise InvalidProductDataError(None, "missing id")
    if not isinstance(product.name, str) or not product.name.strip():
        raise InvalidProductDataError(product.id, "missing name")
    try:
        to_price(product.price)
    except ValueError as e:
        raise InvalidProductDataError(product.id, str(e)) from e
    return product


# ============================================================================
# Cart Line Entity
# ============================================================================


def _checked_quantity(value: object) -> int:
    try:
        quantity = to_quantity(value)
    except ValueError as e:
        raise InvalidQuantityError(value, "Quantity must be a whole number") from e
    if quantity < 1:
        raise InvalidQuantityError(quantity)
    return quantity


@dataclass(eq=False)
class CartLine(Entity[LineKey]):
    """One distinguishable entry in the basket.

    The unit price and badge are captured when the line is created and
    are not re-read from the catalog while the line exists.

    Attributes:
        id: Composite key of product, variant selection and note.
        product_id: Product identifier.
        name: Product name at add time.
        unit_price: Product price plus variant surcharges, frozen at add time.
        quantity: Number of units (at least 1).
        note: Free-text note.
        selected_variant: Chosen color/size/flavor, if any.
        badge: Badge captured at add time.
        added_at: Timestamp when the line was created.
    """

    id: LineKey
    product_id: str
    name: str
    unit_price: Decimal
    quantity: int
    note: str = ""
    selected_variant: SelectedVariant | None = None
    badge: Badge | None = None
    added_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        """Validate cart line constraints."""
        self.quantity = _checked_quantity(self.quantity)

    @property
    def line_key(self) -> str:
        """Opaque string form of the line key."""
        return self.id.token

    @property
    def line_subtotal(self) -> Decimal:
        """Unit price multiplied by quantity, before discounts."""
        return self.unit_price * self.quantity

    def update_quantity(self, new_quantity: int) -> int:
        """Update line quantity.

        Args:
            new_quantity: New quantity value.

        Returns:
            Previous quantity.

        Raises:
            InvalidQuantityError: If quantity is not a whole number of at least 1.
        """
        checked = _checked_quantity(new_quantity)
        old_quantity = self.quantity
        self.quantity = checked
        return old_quantity

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "line_key": self.line_key,
            "product_id": self.product_id,
            "name": self.name,
            "unit_price": str(self.unit_price),
            "quantity": self.quantity,
            "note": self.note,
            "selected_variant": self.selected_variant.to_dict() if self.selected_variant else None,
            "badge": badge_value(self.badge),
            "added_at": self.added_at.isoformat(),
        }


# ============================================================================
# Cart Totals
# ============================================================================


@dataclass(frozen=True)
class CartTotals(ValueObject):
    """Derived money totals of a cart, rounded to cents.

    Attributes:
        subtotal: Sum of line subtotals before discount.
        discount: Badge discounts plus any manual order discount.
        tax: Tax on the subtotal.
        total: subtotal - discount + tax.
        item_count: Sum of line quantities.
    """

    subtotal: Decimal
    discount: Decimal
    tax: Decimal
    total: Decimal
    item_count: int = 0

    @classmethod
    def zero(cls) -> Self:
        """Totals of an empty cart."""
        zero = Decimal("0.00")
        return cls(subtotal=zero, discount=zero, tax=zero, total=zero, item_count=0)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary with string amounts."""
        return {
            "subtotal": str(self.subtotal),
            "discount": str(self.discount),
            "tax": str(self.tax),
            "total": str(self.total),
            "item_count": self.item_count,
        }


def _as_int(value: object) -> int | None:
    """Parse an optional integer column, treating junk as missing."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
