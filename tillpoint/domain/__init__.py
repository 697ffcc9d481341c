"""Domain layer - Cart engine, variant resolution, value objects, events.

This module exports the core building blocks of the till:

- **Entities**: Products as read from the catalog and the cart lines built from them
- **Value Objects**: Badges, variant options and selections, line keys, totals
- **Cart Engine**: The single active basket and its totals
- **Variant Resolver**: Direct add vs. customization per product click
- **Domain Events**: User-visible outcomes delivered through an injected notifier
- **Exceptions**: Domain-specific errors and invariant violations

Example usage:
    from tillpoint.domain import CartEngine, EventBus, Product, VariantResolver

    bus = EventBus()
    engine = CartEngine(notifier=bus)
    resolver = VariantResolver(engine)

    product = Product.from_mapping({"id": "p1", "name": "Latte", "price": 2.50})
    resolver.select(product)
    engine.add_item(product, quantity=2)

    print(engine.totals.total)  # 8.25
"""

# Base classes
from tillpoint.domain.base import DomainEvent, Entity, ValueObject

# Cart engine
from tillpoint.domain.cart import CartEngine

# Entities
from tillpoint.domain.entities import CartLine, CartTotals, Product, validate_product

# Domain Events
from tillpoint.domain.events import (
    EVENT_REGISTRY,
    CartCleared,
    CartDiscountChanged,
    CartLineAdded,
    CartLineQuantityUpdated,
    CartLineRemoved,
    CatalogQueryFailed,
    get_event_class,
)

# Exceptions
from tillpoint.domain.exceptions import (
    CartError,
    CartLineNotFoundError,
    CatalogError,
    DeviceProviderError,
    DomainError,
    InvalidDiscountError,
    InvalidProductDataError,
    InvalidQuantityError,
    InvalidQueryError,
    InvalidStateTransitionError,
    InvalidVariantSelectionError,
    ProductNotFoundError,
    QueryFailureError,
)

# Notification
from tillpoint.domain.notifier import ALL_EVENTS, EventBus, Notifier, NullNotifier

# Pricing
from tillpoint.domain.pricing import DEFAULT_TAX_RATE, DISCOUNT_RULES, compute_totals, line_discount

# State Machines
from tillpoint.domain.state_machines import VariantSelectionState, validate_variant_transition

# Value Objects
from tillpoint.domain.value_objects import (
    Badge,
    CartId,
    LineKey,
    ProductVariants,
    SelectedVariant,
    VariantOption,
    round_money,
    to_price,
)

# Variant resolution
from tillpoint.domain.variants import (
    PendingCustomization,
    SelectionOutcome,
    SelectionRun,
    VariantResolver,
)

__all__ = [
    # Base classes
    "DomainEvent",
    "Entity",
    "ValueObject",
    # Entities
    "CartLine",
    "CartTotals",
    "Product",
    "validate_product",
    # Value Objects
    "Badge",
    "CartId",
    "LineKey",
    "ProductVariants",
    "SelectedVariant",
    "VariantOption",
    "round_money",
    "to_price",
    # Cart engine and pricing
    "CartEngine",
    "DEFAULT_TAX_RATE",
    "DISCOUNT_RULES",
    "compute_totals",
    "line_discount",
    # Variant resolution
    "PendingCustomization",
    "SelectionOutcome",
    "SelectionRun",
    "VariantResolver",
    "VariantSelectionState",
    "validate_variant_transition",
    # Notification
    "ALL_EVENTS",
    "EventBus",
    "Notifier",
    "NullNotifier",
    # Domain Events
    "CartCleared",
    "CartDiscountChanged",
    "CartLineAdded",
    "CartLineQuantityUpdated",
    "CartLineRemoved",
    "CatalogQueryFailed",
    "EVENT_REGISTRY",
    "get_event_class",
    # Exceptions
    "CartError",
    "CartLineNotFoundError",
    "CatalogError",
    "DeviceProviderError",
    "DomainError",
    "InvalidDiscountError",
    "InvalidProductDataError",
    "InvalidQuantityError",
    "InvalidQueryError",
    "InvalidStateTransitionError",
    "InvalidVariantSelectionError",
    "ProductNotFoundError",
    "QueryFailureError",
]
