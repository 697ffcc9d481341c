"""Domain exceptions.

All domain-level errors that represent business rule violations.
Some of them never leave the domain layer: the cart engine catches
invalid product data and turns it into a logged no-op, and catalog
feeds turn query failures into a retryable error state.
"""

from typing import Any


class DomainError(Exception):
    """Base class for all domain exceptions.

    All domain errors should inherit from this class to allow
    catching domain-specific errors at the application layer.
    """

    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        """Initialize domain error.

        Args:
            message: Human-readable error message.
            details: Optional dictionary with additional error context.
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}


# ============================================================================
# State Machine Errors
# ============================================================================


class InvalidStateTransitionError(DomainError):
    """Raised when an invalid state transition is attempted."""

    def __init__(
        self,
        machine: str,
        current_state: str,
        target_state: str,
        allowed_transitions: list[str] | None = None,
    ) -> None:
        """Initialize invalid state transition error.

        Args:
            machine: Name of the state machine (e.g., "VariantSelection").
            current_state: Current state.
            target_state: Attempted target state.
            allowed_transitions: List of allowed target states from current state.
        """
        allowed = allowed_transitions or []
        message = (
            f"Cannot transition {machine} "
            f"from '{current_state}' to '{target_state}'. "
            f"Allowed transitions: {allowed}"
        )
        super().__init__(
            message,
            details={
                "machine": machine,
                "current_state": current_state,
                "target_state": target_state,
                "allowed_transitions": allowed,
            },
        )


# ============================================================================
# Cart Errors
# ============================================================================


class CartError(DomainError):
    """Base class for cart-related errors."""

    pass


class InvalidProductDataError(CartError):
    """Raised when a product row cannot be priced or identified.

    The cart engine never lets this escape: a malformed catalog row
    must not break basket interaction.
    """

    def __init__(self, product_id: str | None, reason: str) -> None:
        """Initialize invalid product data error.

        Args:
            product_id: ID of the offending product, if it has one.
            reason: What is wrong with the product.
        """
        super().__init__(
            f"Invalid product data for {product_id!r}: {reason}",
            details={"product_id": product_id, "reason": reason},
        )


class InvalidQuantityError(CartError):
    """Raised when an invalid quantity is provided."""

    def __init__(self, quantity: object, reason: str = "Quantity must be at least 1") -> None:
        """Initialize invalid quantity error.

        Args:
            quantity: The invalid quantity value.
            reason: Explanation of why the quantity is invalid.
        """
        super().__init__(
            f"Invalid quantity {quantity}: {reason}",
            details={"quantity": quantity, "reason": reason},
        )


class InvalidDiscountError(CartError):
    """Raised when a manual order discount is negative or not a number."""

    def __init__(self, amount: object) -> None:
        """Initialize invalid discount error.

        Args:
            amount: The rejected discount amount.
        """
        super().__init__(
            f"Invalid discount amount: {amount!r}",
            details={"amount": str(amount)},
        )


class CartLineNotFoundError(CartError):
    """Raised when a line key does not identify a line in the cart."""

    def __init__(self, line_key: str) -> None:
        """Initialize cart line not found error.

        Args:
            line_key: The unknown line key.
        """
        super().__init__(
            f"Line {line_key} not found in cart",
            details={"line_key": line_key},
        )


# ============================================================================
# Variant Errors
# ============================================================================


class InvalidVariantSelectionError(DomainError):
    """Raised when a customization names an option the product does not offer."""

    def __init__(self, product_id: str, dimension: str, option: str) -> None:
        """Initialize invalid variant selection error.

        Args:
            product_id: Product being customized.
            dimension: Variant dimension (color, size or flavor).
            option: The unknown option name.
        """
        super().__init__(
            f"Product {product_id} has no {dimension} option '{option}'",
            details={"product_id": product_id, "dimension": dimension, "option": option},
        )


# ============================================================================
# Catalog Errors
# ============================================================================


class CatalogError(DomainError):
    """Base class for catalog-related errors."""

    pass


class InvalidQueryError(CatalogError):
    """Raised when pagination or sort parameters are malformed."""

    def __init__(self, field: str, value: object, reason: str) -> None:
        """Initialize invalid query error.

        Args:
            field: Name of the offending parameter.
            value: Rejected value.
            reason: Why the value was rejected.
        """
        super().__init__(
            f"Invalid query parameter {field}={value!r}: {reason}",
            details={"field": field, "value": str(value), "reason": reason},
        )


class QueryFailureError(CatalogError):
    """Raised when the product store fails during a catalog query.

    The failure is retryable; the message is safe to show an operator.
    """

    retryable = True

    def __init__(self, message: str = "Failed to load products", cause: str | None = None) -> None:
        """Initialize query failure error.

        Args:
            message: Human-readable message.
            cause: Underlying error description.
        """
        super().__init__(message, details={"cause": cause, "retryable": True})


class ProductNotFoundError(CatalogError):
    """Raised when a product id is not present in the catalog."""

    def __init__(self, product_id: str) -> None:
        """Initialize product not found error.

        Args:
            product_id: The unknown product ID.
        """
        super().__init__(
            f"Product {product_id} not found",
            details={"product_id": product_id},
        )


# ============================================================================
# Device Errors
# ============================================================================


class DeviceProviderError(DomainError):
    """Raised when a device list cannot be obtained."""

    def __init__(self, device_type: str, reason: str) -> None:
        """Initialize device provider error.

        Args:
            device_type: Requested device type.
            reason: Failure description.
        """
        super().__init__(
            f"Failed to list {device_type} devices: {reason}",
            details={"device_type": device_type, "reason": reason},
        )
