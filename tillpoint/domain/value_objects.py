"""Value Objects for the domain layer.

Value objects are immutable objects that are defined by their attributes
rather than identity. They are interchangeable when their values are equal.

Prices are plain ``Decimal`` values in major currency units. The engine is
currency-agnostic; only display code knows about symbols.
"""

import hashlib
import json
from collections.abc import Mapping
from dataclasses import dataclass
from decimal import ROUND_HALF_EVEN, Decimal, InvalidOperation
from enum import Enum
from typing import Self
from uuid import UUID, uuid4

from tillpoint.domain.base import ValueObject


# ============================================================================
# Money and Quantity Helpers
# ============================================================================


MONEY_QUANTUM = Decimal("0.01")


def to_price(value: object) -> Decimal:
    """Convert a raw price into a finite, non-negative Decimal.

    Floats go through ``str`` first so that ``2.5`` becomes ``Decimal("2.5")``
    rather than its binary expansion.

    Args:
        value: Raw price (Decimal, int or float).

    Returns:
        Price as Decimal.

    Raises:
        ValueError: If the value is not a finite non-negative number.
    """
    if isinstance(value, bool) or not isinstance(value, (Decimal, int, float)):
        raise ValueError(f"price must be a number, got {type(value).__name__}")
    try:
        amount = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation as e:
        raise ValueError(f"price is not a number: {value!r}") from e
    if not amount.is_finite():
        raise ValueError(f"price must be finite, got {value!r}")
    if amount < 0:
        raise ValueError(f"price must not be negative, got {value!r}")
    return amount


def round_money(amount: Decimal) -> Decimal:
    """Round to 2 decimal places using banker's rounding.

    Args:
        amount: Unrounded amount.

    Returns:
        Amount quantized to cents with ROUND_HALF_EVEN.
    """
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_EVEN)


def to_quantity(value: object) -> int:
    """Convert a raw quantity into an int.

    Integral floats and Decimals (``3.0``) are accepted; bools,
    fractions and non-numbers are not.

    Args:
        value: Raw quantity.

    Returns:
        Quantity as int. No lower bound is applied here.

    Raises:
        ValueError: If the value is not a whole number.
    """
    if isinstance(value, bool):
        raise ValueError("quantity must be a number, got bool")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, Decimal) and value.is_finite() and value == value.to_integral_value():
        return int(value)
    raise ValueError(f"quantity must be a whole number, got {value!r}")


# ============================================================================
# Typed Identifiers
# ============================================================================


@dataclass(frozen=True)
class CartId(ValueObject):
    """Strongly-typed cart identifier."""

    value: UUID

    @classmethod
    def generate(cls) -> Self:
        """Generate a new cart ID.

        Returns:
            New CartId with random UUID.
        """
        return cls(value=uuid4())

    @classmethod
    def from_string(cls, value: str) -> Self:
        """Create CartId from string representation.

        Args:
            value: String UUID representation.

        Returns:
            CartId instance.
        """
        return cls(value=UUID(value))

    def __str__(self) -> str:
        """Return string representation.

        Returns:
            UUID as string.
        """
        return str(self.value)


# ============================================================================
# Badge
# ============================================================================


class Badge(str, Enum):
    """Promotional or status tag carried by a product.

    Badges drive both styling in the front end and per-line discount rules.
    """

    SPECIAL = "special"
    LIMITED = "limited"
    LOW_STOCK = "low-stock"
    PERCENT_OFF = "percent-off"
    NEEDS_REWARD = "needs-reward"

    @classmethod
    def parse(cls, raw: object) -> "Badge | None":
        """Normalise a stored badge string.

        Accepts the canonical values as well as the display labels used by
        older catalog rows ("20% off", "low stock", "needs rewards").

        Args:
            raw: Stored badge value (string, Badge or None).

        Returns:
            Matching Badge, or None for empty or unknown badges.
        """
        if raw is None or isinstance(raw, cls):
            return raw
        if not isinstance(raw, str):
            return None
        text = raw.strip().lower()
        if not text:
            return None
        if text in _BADGE_ALIASES:
            return _BADGE_ALIASES[text]
        try:
            return cls(text.replace(" ", "-").replace("_", "-"))
        except ValueError:
            return None


_BADGE_ALIASES: dict[str, Badge] = {
    "20% off": Badge.PERCENT_OFF,
    "percent off": Badge.PERCENT_OFF,
    "low stock": Badge.LOW_STOCK,
    "needs rewards": Badge.NEEDS_REWARD,
    "needs-rewards": Badge.NEEDS_REWARD,
}


# ============================================================================
# Variants
# ============================================================================


# Variant dimensions in signature order, mapped to their option-set attribute.
VARIANT_DIMENSIONS: dict[str, str] = {
    "color": "colors",
    "size": "sizes",
    "flavor": "flavors",
}


@dataclass(frozen=True)
class VariantOption(ValueObject):
    """One selectable option within a variant dimension.

    Attributes:
        name: Option label (e.g., "Large").
        price: Surcharge added to the product price when selected.
    """

    name: str
    price: Decimal = Decimal("0")

    @classmethod
    def from_raw(cls, raw: object) -> Self | None:
        """Build an option from stored data.

        Args:
            raw: Either a bare option name or a ``{"name", "price"}`` mapping.
                The price may be a number or a decimal string; anything
                unusable counts as no surcharge.

        Returns:
            VariantOption, or None when the entry has no usable name.
        """
        if isinstance(raw, str):
            return cls(name=raw) if raw.strip() else None
        if not isinstance(raw, Mapping):
            return None
        name = raw.get("name")
        if not isinstance(name, str) or not name.strip():
            return None
        raw_price = raw.get("price") or 0
        try:
            if isinstance(raw_price, str):
                raw_price = Decimal(raw_price.strip())
            price = to_price(raw_price)
        except (ValueError, InvalidOperation):
            price = Decimal("0")
        return cls(name=name, price=price)


@dataclass(frozen=True)
class ProductVariants(ValueObject):
    """Color, size and flavor option sets of a product.

    Any set may be empty; a product whose sets are all empty needs no
    customization before it is added to the cart.
    """

    colors: tuple[VariantOption, ...] = ()
    sizes: tuple[VariantOption, ...] = ()
    flavors: tuple[VariantOption, ...] = ()

    @classmethod
    def from_raw(cls, raw: object) -> Self:
        """Build variants from stored data.

        Args:
            raw: Mapping with optional ``colors``, ``sizes`` and ``flavors`` lists.

        Returns:
            ProductVariants (empty for missing or malformed data).
        """
        if not isinstance(raw, Mapping):
            return cls()

        def options(key: str) -> tuple[VariantOption, ...]:
            entries = raw.get(key) or []
            if not isinstance(entries, list | tuple):
                return ()
            parsed = (VariantOption.from_raw(entry) for entry in entries)
            return tuple(option for option in parsed if option is not None)

        return cls(
            colors=options("colors"),
            sizes=options("sizes"),
            flavors=options("flavors"),
        )

    @property
    def has_options(self) -> bool:
        """Check whether any dimension offers at least one option."""
        return bool(self.colors or self.sizes or self.flavors)

    def options_for(self, dimension: str) -> tuple[VariantOption, ...]:
        """Get the option set of a dimension.

        Args:
            dimension: One of "color", "size", "flavor".

        Returns:
            Options of that dimension.
        """
        return getattr(self, VARIANT_DIMENSIONS[dimension])

    def find(self, dimension: str, name: str) -> VariantOption | None:
        """Find an option by name within a dimension."""
        for option in self.options_for(dimension):
            if option.name == name:
                return option
        return None

    def to_dict(self) -> dict[str, list[dict[str, str]]]:
        """Convert to a JSON-friendly dictionary."""
        return {
            attr: [
                {"name": option.name, "price": str(option.price)}
                for option in getattr(self, attr)
            ]
            for attr in VARIANT_DIMENSIONS.values()
        }


@dataclass(frozen=True)
class SelectedVariant(ValueObject):
    """The options an operator chose for a cart line.

    Attributes:
        color: Chosen color name, if any.
        size: Chosen size name, if any.
        flavor: Chosen flavor name, if any.
    """

    color: str | None = None
    size: str | None = None
    flavor: str | None = None

    @classmethod
    def from_raw(cls, raw: object) -> Self | None:
        """Build a selection from a mapping, ignoring blank entries."""
        if not isinstance(raw, Mapping):
            return None
        values = {}
        for dimension in VARIANT_DIMENSIONS:
            value = raw.get(dimension)
            values[dimension] = value if isinstance(value, str) and value else None
        selection = cls(**values)
        return None if selection.is_empty else selection

    @property
    def is_empty(self) -> bool:
        """Check if no dimension was chosen."""
        return self.color is None and self.size is None and self.flavor is None

    def signature(self) -> tuple[str | None, str | None, str | None]:
        """Get the chosen options in dimension order."""
        return (self.color, self.size, self.flavor)

    def items(self) -> list[tuple[str, str]]:
        """Get chosen (dimension, option) pairs."""
        return [
            (dimension, value)
            for dimension, value in zip(VARIANT_DIMENSIONS, self.signature())
            if value is not None
        ]

    def describe(self) -> str:
        """Human-readable summary, e.g. ``"Color: Red, Size: Large"``."""
        return ", ".join(f"{dimension.title()}: {value}" for dimension, value in self.items())

    def to_dict(self) -> dict[str, str | None]:
        """Convert to dictionary."""
        return {"color": self.color, "size": self.size, "flavor": self.flavor}


# ============================================================================
# Line Key
# ============================================================================


@dataclass(frozen=True)
class LineKey(ValueObject):
    """Identity of a cart line: product, variant selection and note.

    Two additions with equal keys merge into one line; any difference
    in variant or note yields a separate line. The string form is an
    opaque token safe to use in URLs.

    Attributes:
        product_id: Product identifier.
        variant: Selected variant, or None for an unconfigured product.
        note: Free-text note, empty when absent.
    """

    product_id: str
    variant: SelectedVariant | None = None
    note: str = ""

    @classmethod
    def for_selection(
        cls,
        product_id: str,
        variant: SelectedVariant | None,
        note: str | None,
    ) -> Self:
        """Build a key, treating an empty selection like no selection."""
        if variant is not None and variant.is_empty:
            variant = None
        return cls(product_id=product_id, variant=variant, note=note or "")

    @property
    def token(self) -> str:
        """Stable opaque string form of this key."""
        signature = self.variant.signature() if self.variant else (None, None, None)
        material = json.dumps([self.product_id, list(signature), self.note], ensure_ascii=False)
        return hashlib.sha256(material.encode("utf-8")).hexdigest()[:20]

    def __str__(self) -> str:
        """Return the opaque token."""
        return self.token


def variant_surcharge(variants: ProductVariants, selection: SelectedVariant | None) -> Decimal:
    """Sum the surcharges of the selected options.

    Options the product does not offer contribute nothing.

    Args:
        variants: Product option sets.
        selection: Chosen options.

    Returns:
        Total surcharge.
    """
    if selection is None:
        return Decimal("0")
    total = Decimal("0")
    for dimension, name in selection.items():
        option = variants.find(dimension, name)
        if option is not None:
            total += option.price
    return total


def badge_value(badge: Badge | None) -> str | None:
    """Serialise an optional badge."""
    return badge.value if badge is not None else None
