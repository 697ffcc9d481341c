"""Domain events for the till.

Domain events represent significant occurrences in the domain.
They are used for:
- User-visible notifications ("item added", "failed to load products")
- Persisting the active cart after each mutation
- Audit logging
"""

from dataclasses import dataclass
from typing import Any, ClassVar

from tillpoint.domain.base import DomainEvent


# ============================================================================
# Cart Events
# ============================================================================


@dataclass(frozen=True)
class CartLineAdded(DomainEvent):
    """Event raised when a new line is appended to the cart."""

    event_type: ClassVar[str] = "cart.line_added"

    line_key: str = ""
    product_id: str = ""
    product_name: str = ""
    quantity: int = 0
    unit_price: str = "0"
    note: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "line_key": self.line_key,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": self.quantity,
            "unit_price": self.unit_price,
            "note": self.note,
        }


@dataclass(frozen=True)
class CartLineQuantityUpdated(DomainEvent):
    """Event raised when a line quantity changes (merge or stepper)."""

    event_type: ClassVar[str] = "cart.line_quantity_updated"

    line_key: str = ""
    product_id: str = ""
    product_name: str = ""
    old_quantity: int = 0
    new_quantity: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "line_key": self.line_key,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "old_quantity": self.old_quantity,
            "new_quantity": self.new_quantity,
        }


@dataclass(frozen=True)
class CartLineRemoved(DomainEvent):
    """Event raised when a line is removed from the cart."""

    event_type: ClassVar[str] = "cart.line_removed"

    line_key: str = ""
    product_id: str = ""

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {
            "line_key": self.line_key,
            "product_id": self.product_id,
        }


@dataclass(frozen=True)
class CartCleared(DomainEvent):
    """Event raised when the cart is emptied (checkout done or cancelled)."""

    event_type: ClassVar[str] = "cart.cleared"

    line_count: int = 0

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"line_count": self.line_count}


@dataclass(frozen=True)
class CartDiscountChanged(DomainEvent):
    """Event raised when the manual order discount is applied or removed."""

    event_type: ClassVar[str] = "cart.discount_changed"

    amount: str = "0"

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"amount": self.amount}


# ============================================================================
# Catalog Events
# ============================================================================


@dataclass(frozen=True)
class CatalogQueryFailed(DomainEvent):
    """Event raised when a catalog page could not be loaded."""

    event_type: ClassVar[str] = "catalog.query_failed"

    message: str = ""
    page: int = 1

    def _payload(self) -> dict[str, Any]:
        """Get event-specific payload."""
        return {"message": self.message, "page": self.page}


# ============================================================================
# Event Registry
# ============================================================================


EVENT_REGISTRY: dict[str, type[DomainEvent]] = {
    CartLineAdded.event_type: CartLineAdded,
    CartLineQuantityUpdated.event_type: CartLineQuantityUpdated,
    CartLineRemoved.event_type: CartLineRemoved,
    CartCleared.event_type: CartCleared,
    CartDiscountChanged.event_type: CartDiscountChanged,
    CatalogQueryFailed.event_type: CatalogQueryFailed,
}


def get_event_class(event_type: str) -> type[DomainEvent] | None:
    """Get event class by event type string.

    Args:
        event_type: Event type identifier (e.g., 'cart.line_added').

    Returns:
        Event class if found, None otherwise.
    """
    return EVENT_REGISTRY.get(event_type)
